"""
Playlist creation from saved drafts.

Two modes:
    Per quarter: "<quarter> アニメ主題歌" with every matched track of the
                 draft, in draft order.
    Merged:      One playlist for several quarters. Tracks are taken draft
                 by draft in the given order, and a track already added
                 (same URI) is not added again.

Only decisions with a selected track are used; skipped songs are left out.
"""

from collections.abc import Sequence

from anisong_playlist.core.drafts import Draft
from anisong_playlist.core.exceptions import PlaylistError
from anisong_playlist.core.logger import get_logger
from anisong_playlist.matching.models import MatchDecision
from anisong_playlist.music.base import MusicService
from anisong_playlist.music.models import CreatedPlaylist
from anisong_playlist.playlist.quarters import generate_merged_playlist_name, sort_quarters


logger = get_logger(__name__)


def matched_decisions(draft: Draft) -> list[MatchDecision]:
    """Decisions of the draft that carry a selected track with a URI."""
    matched = []
    for decision in draft.tracks:
        if decision is None or decision.selected_candidate is None:
            continue
        if not decision.selected_candidate.uri:
            logger.warning(
                f"Track '{decision.selected_candidate.name}' has no URI and cannot be added"
            )
            continue
        matched.append(decision)
    return matched


def quarter_playlist_name(quarter: str) -> str:
    return f"{quarter} アニメ主題歌"


def create_quarter_playlist(service: MusicService, draft: Draft) -> CreatedPlaylist:
    """
    Create the playlist of one quarter.

    Args:
        service: Music service the playlist is created on.
        draft: The quarter's saved draft.

    Returns:
        The created playlist.

    Raises:
        PlaylistError: If the draft has no matched track.
        MusicServiceError: If the service request fails.
    """
    decisions = matched_decisions(draft)
    if not decisions:
        raise PlaylistError(
            "No matched tracks to add to the playlist",
            details={"quarter": draft.quarter}
        )

    track_uris = [decision.selected_candidate.uri for decision in decisions]
    playlist = service.create_playlist(
        name=quarter_playlist_name(draft.quarter),
        description=f"{draft.quarter}の視聴済みアニメの主題歌プレイリスト（{len(track_uris)}曲）",
        track_uris=track_uris,
    )
    logger.info(f"Created playlist '{playlist.name}' ({len(track_uris)} tracks)")
    return CreatedPlaylist(
        id=playlist.id,
        name=playlist.name,
        url=playlist.url,
        track_count=len(track_uris),
        quarters=(draft.quarter,),
    )


def create_merged_playlist(service: MusicService, drafts: Sequence[Draft]) -> CreatedPlaylist:
    """
    Create one playlist from several drafts.

    Args:
        service: Music service the playlist is created on.
        drafts: Drafts in the order their tracks are added.

    Returns:
        The created playlist. Its quarters are sorted oldest first.

    Raises:
        PlaylistError: If no draft is given or none has a matched track.
        MusicServiceError: If the service request fails.
    """
    if not drafts:
        raise PlaylistError("No drafts selected for the merged playlist")

    track_uris: list[str] = []
    seen: set[str] = set()
    for draft in drafts:
        for decision in matched_decisions(draft):
            uri = decision.selected_candidate.uri
            if uri not in seen:
                seen.add(uri)
                track_uris.append(uri)

    quarters = sort_quarters(draft.quarter for draft in drafts)
    if not track_uris:
        raise PlaylistError(
            "No matched tracks to add to the playlist",
            details={"quarters": quarters}
        )

    playlist = service.create_playlist(
        name=generate_merged_playlist_name(quarters),
        description=f"{', '.join(quarters)}の視聴済みアニメの主題歌プレイリスト（{len(track_uris)}曲）",
        track_uris=track_uris,
    )
    logger.info(f"Created merged playlist '{playlist.name}' ({len(track_uris)} tracks)")
    return CreatedPlaylist(
        id=playlist.id,
        name=playlist.name,
        url=playlist.url,
        track_count=len(track_uris),
        quarters=tuple(quarters),
    )
