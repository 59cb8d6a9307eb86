"""
Matching session: the step-by-step state machine that resolves each song
of a quarter to a catalog track.

The session walks an ordered list of SongEntry objects one at a time.
For each song it asks the injected music service for candidates,
classifies them, and either records an automatic decision and moves on,
or stops and waits for the caller to select, skip or go back.

States:
    AWAITING_SEARCH    Candidates for the current song are not available.
                       This is the state before start() and after a failed
                       search.
    AWAITING_DECISION  Candidates are available and the caller decides.
    COMPLETED          Every song needed has a decision; result is set.

Transitions (each one runs until the next stable state):
    start()          Enter the song at the start index.
    select(id)       Record AUTO/MANUAL (SKIPPED for an unknown id), advance.
    skip()           Record SKIPPED, advance.
    back()           Step to the previous song and review it. No-op at 0.
    retry()          Search the current song again after a failure.

Entering a song:
    1. Search with the cleaned title and the artist
    2. Classify against the title as listed
    3. Unless the song was reached with back(), a single exact candidate
       is recorded as AUTO and the session advances without stopping
    4. Otherwise the candidates are exposed and the session stops

Advancing after a decision completes the session in single-edit mode or
on the last song, and enters the next song otherwise.

Example:
    session = MatchingSession(entries, service, on_complete=save_draft)
    session.start()
    while session.state is SessionState.AWAITING_DECISION:
        session.select(session.candidates[0].id)
"""

from collections.abc import Callable, Sequence

from anisong_playlist.core.exceptions import (
    EmptySongListError,
    SearchFailure,
    SessionError,
)
from anisong_playlist.core.logger import get_logger
from anisong_playlist.matching.classifier import can_auto_match, classify, get_auto_match_result
from anisong_playlist.matching.models import (
    MatchDecision,
    MatchStatus,
    SessionState,
    SongEntry,
)
from anisong_playlist.matching.normalize import clean_track_name
from anisong_playlist.music.base import MusicService
from anisong_playlist.music.models import Confidence, SearchCandidate, SearchQuery, Song


logger = get_logger(__name__)


CompletionCallback = Callable[[list[MatchDecision | None]], None]


class MatchingSession:
    """
    Sequential matching of a song list against a music service.

    The session is single-threaded: each transition calls the music
    service at most once per entered song and returns when the session is
    waiting for the caller again (or has completed).

    Attributes:
        single_edit: Complete after the first recorded decision instead of
                     advancing. Used to re-resolve one song of a draft.

    Raises:
        EmptySongListError: If songs is empty.
    """

    def __init__(
        self,
        songs: Sequence[SongEntry],
        search_service: MusicService,
        decisions: Sequence[MatchDecision | None] | None = None,
        start_index: int = 0,
        single_edit: bool = False,
        on_complete: CompletionCallback | None = None
    ) -> None:
        """
        Create a session positioned on start_index, awaiting its first search.

        Args:
            songs: Songs to resolve, in order. Must not be empty.
            search_service: Collaborator providing search_track().
            decisions: Previously recorded decisions (e.g. from a draft).
                       decisions[i] belongs to songs[i]. Shorter lists are
                       padded with None, longer ones truncated.
            start_index: Song to start at. Clamped into the list bounds.
            single_edit: Complete after one decision.
            on_complete: Called once with the full decision list when the
                         session completes.
        """
        if not songs:
            raise EmptySongListError("A matching session needs at least one song")

        self._songs: list[SongEntry] = list(songs)
        self._service = search_service
        self.single_edit = single_edit
        self._on_complete = on_complete

        self._decisions = self._seed_decisions(decisions)
        self._index = min(max(start_index, 0), len(self._songs) - 1)

        self._state = SessionState.AWAITING_SEARCH
        self._candidates: list[SearchCandidate] = []
        self._started = False
        self._is_searching = False
        self._navigating_back = False
        self._last_error: Exception | None = None
        self._last_auto_matched: MatchDecision | None = None
        self._result: list[MatchDecision | None] | None = None

    def _seed_decisions(self, decisions: Sequence[MatchDecision | None] | None) -> list[MatchDecision | None]:
        seeded = list(decisions or [])
        total = len(self._songs)
        if len(seeded) > total:
            logger.warning(
                f"Dropping {len(seeded) - total} recorded decisions beyond the {total} songs of the session"
            )
            return seeded[:total]
        return seeded + [None] * (total - len(seeded))

    # =========================================================================
    # Observers
    # =========================================================================

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def total(self) -> int:
        return len(self._songs)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_entry(self) -> SongEntry:
        return self._songs[self._index]

    @property
    def current_song(self) -> Song:
        return self._songs[self._index].song

    @property
    def candidates(self) -> list[SearchCandidate]:
        """Classified candidates of the current song. Empty unless awaiting a decision."""
        return list(self._candidates)

    @property
    def is_searching(self) -> bool:
        """True while a transition is waiting on the music service."""
        return self._is_searching

    @property
    def navigating_back(self) -> bool:
        """True between back() and the next successful entry of a song."""
        return self._navigating_back

    @property
    def decisions(self) -> list[MatchDecision | None]:
        """Copy of the decisions recorded so far, one slot per song."""
        return list(self._decisions)

    @property
    def last_error(self) -> Exception | None:
        """The error of the last failed search, None after a successful one."""
        return self._last_error

    @property
    def last_auto_matched(self) -> MatchDecision | None:
        """The most recent decision the session made without the caller."""
        return self._last_auto_matched

    @property
    def result(self) -> list[MatchDecision | None] | None:
        """The final decision list once COMPLETED, otherwise None."""
        return list(self._result) if self._result is not None else None

    @property
    def preselected_candidate_id(self) -> str | None:
        """
        Id of the previously selected track for the current song, if it is
        among the current candidates. Lets a UI highlight the earlier
        choice when a song is reviewed again.
        """
        if self._state is not SessionState.AWAITING_DECISION:
            return None
        previous = self._decisions[self._index]
        if previous is None or previous.selected_candidate is None:
            return None
        selected_id = previous.selected_candidate.id
        if any(candidate.id == selected_id for candidate in self._candidates):
            return selected_id
        return None

    # =========================================================================
    # Transitions
    # =========================================================================

    def start(self) -> None:
        """
        Enter the song at the start index.

        Raises:
            SessionError: If the session was already started.
            SearchFailure: If the search for the entered song failed.
        """
        self._ensure_not_completed()
        if self._started:
            raise SessionError("Matching session already started")
        self._started = True
        logger.debug(f"Matching session started at song {self._index + 1}/{self.total}")
        self._enter()

    def select(self, candidate_id: str) -> None:
        """
        Record the candidate chosen by the caller and advance.

        The decision is AUTO when the candidate set qualifies for auto-match
        and the chosen candidate is the exact one, MANUAL otherwise. An id
        that is not among the current candidates records SKIPPED.

        Raises:
            SessionError: If the session is not awaiting a decision.
            SearchFailure: If the search for the next song failed.
        """
        self._ensure_state(SessionState.AWAITING_DECISION, "select a candidate")

        chosen = next((c for c in self._candidates if c.id == candidate_id), None)
        if chosen is None:
            logger.warning(f"Unknown candidate '{candidate_id}' for song {self._index + 1}, recording skip")
            status = MatchStatus.SKIPPED
        elif can_auto_match(self._candidates) and chosen.confidence == Confidence.EXACT:
            status = MatchStatus.AUTO
        else:
            status = MatchStatus.MANUAL

        decision = MatchDecision.for_entry(self.current_entry, status, chosen, self._candidates)
        if not self._record(decision):
            self._enter()

    def skip(self) -> None:
        """
        Record the current song as SKIPPED and advance.

        Allowed while awaiting a decision, and after a failed search (the
        decision then carries no candidates).

        Raises:
            SessionError: If there is nothing to skip.
            SearchFailure: If the search for the next song failed.
        """
        self._ensure_not_completed()
        if self._state is not SessionState.AWAITING_DECISION and self._last_error is None:
            raise SessionError(
                "Cannot skip: no candidates and no failed search for the current song",
                details={"index": self._index, "state": self._state.value}
            )

        decision = MatchDecision.for_entry(self.current_entry, MatchStatus.SKIPPED, None, self._candidates)
        if not self._record(decision):
            self._enter()

    def back(self) -> None:
        """
        Go back to the previous song and stop there for review.

        No-op on the first song. Otherwise the previous song is searched
        again and always stops at AWAITING_DECISION, even if it would
        auto-match.

        Raises:
            SessionError: If the session is completed or not started.
            SearchFailure: If the search for the previous song failed.
        """
        self._ensure_not_completed()
        if self._index == 0:
            return
        if not self._started:
            raise SessionError("Cannot go back before the session is started")

        self._index -= 1
        self._navigating_back = True
        logger.debug(f"Back to song {self._index + 1}/{self.total}")
        self._enter()

    def retry(self) -> None:
        """
        Search the current song again after a failure.

        Raises:
            SessionError: If the last search did not fail.
            SearchFailure: If the search failed again.
        """
        self._ensure_not_completed()
        if self._state is not SessionState.AWAITING_SEARCH or self._last_error is None:
            raise SessionError(
                "Nothing to retry: the last search did not fail",
                details={"index": self._index, "state": self._state.value}
            )
        self._enter()

    # =========================================================================
    # Internals
    # =========================================================================

    def _ensure_not_completed(self) -> None:
        if self._state is SessionState.COMPLETED:
            raise SessionError("Matching session already completed")

    def _ensure_state(self, expected: SessionState, action: str) -> None:
        self._ensure_not_completed()
        if self._state is not expected:
            raise SessionError(
                f"Cannot {action} while {self._state.value}",
                details={"index": self._index, "state": self._state.value}
            )

    def _search(self, entry: SongEntry) -> list[SearchCandidate]:
        song = entry.song
        query = SearchQuery(
            track_name=clean_track_name(song.track_name) or song.track_name,
            artist=song.artist,
        )

        self._state = SessionState.AWAITING_SEARCH
        self._candidates = []
        self._is_searching = True
        try:
            results = self._service.search_track(query)
        except Exception as e:
            # Any collaborator failure leaves the song retryable and skippable
            self._last_error = e
            logger.error(f"Search failed for song {self._index + 1} ({song.track_name}): {e}")
            raise SearchFailure(
                f"Search failed for '{song.track_name}': {e}",
                index=self._index,
                details={"track_name": song.track_name, "original_error": str(e)}
            ) from e
        finally:
            self._is_searching = False

        self._last_error = None
        return classify(entry.query, results)

    def _enter(self) -> None:
        """Enter the current song, auto-advancing until a stable state."""
        while True:
            entry = self.current_entry
            classified = self._search(entry)

            if not self._navigating_back and can_auto_match(classified):
                decision = MatchDecision.for_entry(
                    entry, MatchStatus.AUTO, get_auto_match_result(classified), classified
                )
                self._last_auto_matched = decision
                logger.info(f"Auto-matched: {entry.anime_name} / {entry.song.track_name}")
                if self._record(decision):
                    return
                continue

            self._navigating_back = False
            self._candidates = classified
            self._state = SessionState.AWAITING_DECISION
            return

    def _record(self, decision: MatchDecision) -> bool:
        """
        Store the decision for the current index and move on.

        Returns:
            True if the session completed, False if the cursor advanced.
        """
        self._decisions[self._index] = decision
        self._navigating_back = False
        logger.debug(
            f"Song {self._index + 1}/{self.total}: {decision.match_status.value}"
            + (f" -> {decision.selected_candidate.id}" if decision.selected_candidate else "")
        )

        if self.single_edit or self._index >= len(self._songs) - 1:
            self._complete()
            return True

        self._index += 1
        return False

    def _complete(self) -> None:
        self._state = SessionState.COMPLETED
        self._candidates = []
        self._result = list(self._decisions)
        logger.debug(f"Matching session completed with {len(self._result)} decisions")
        if self._on_complete is not None:
            self._on_complete(list(self._result))
