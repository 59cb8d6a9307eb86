"""
Command-line interface for anisong-playlist.

This module implements the CLI using Click. rich-click is used for the
help output colors.

Commands:
    anisong anime [QUARTER]                    List anime with their status
    anisong status <anime-id> watched|unwatched|clear
                                               Set the status of an anime
    anisong quarters                           Watched quarters and draft progress
    anisong match <quarter>                    Match songs interactively
    anisong match <quarter> --auto             Accept exact matches, skip the rest
    anisong match <quarter> --edit <N>         Re-match song N of the draft
    anisong drafts [list]                      List saved drafts
    anisong drafts show <quarter>              Show the decisions of a draft
    anisong drafts delete <quarter>            Delete a draft
    anisong create <quarter>...                One playlist per quarter
    anisong create <quarter>... --merge        One playlist for all quarters

Global Options:
    --config <config.yaml>                     Configuration file (default: ./config.yaml)
    --verbose                                  Show debug messages
    --version                                  Show version and exit

Interactive Matching:
    For every song that is not matched automatically the candidates are
    listed with a similarity score. Answer with:
        <number>   select that candidate
        s          skip the song
        b          go back to the previous song
        r          retry after a failed search
        q          quit without saving

Exit Codes:
    0   Success
    1   Configuration error, usage error or unexpected error
    2   Storage error
    3   Music service error
    4   Other application error (e.g. nothing to put in a playlist)
    130 Interrupted by user
"""

import sys
from dataclasses import replace
from functools import wraps
from pathlib import Path
from typing import Callable

import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
click.rich_click.OPTION_GROUPS = {
    "anisong match": [
        {
            "name": "Song Selection",
            "options": ["--filter", "--edit"],
        },
        {
            "name": "Mode",
            "options": ["--auto", "--yes"],
        },
    ],
}

from anisong_playlist import __version__
from anisong_playlist.core.config import Config, load_config
from anisong_playlist.core.drafts import Draft, DraftStore
from anisong_playlist.core.exceptions import (
    AnisongError,
    ConfigError,
    MusicServiceError,
    PlaylistError,
    SearchFailure,
    StorageError,
)
from anisong_playlist.core.logger import (
    format_auto_matched_message,
    format_progress_message,
    format_selected_message,
    format_skipped_message,
    get_logger,
    log_unmatched_song,
    setup_logging,
    shutdown_logging,
)
from anisong_playlist.core.progress import MatchingProgressBar
from anisong_playlist.core.statuses import AnimeStatus, AnimeStatusStore
from anisong_playlist.core.storage import SqliteMedium
from anisong_playlist.matching.classifier import similarity
from anisong_playlist.matching.models import (
    MatchDecision,
    MatchStatus,
    SessionState,
    SongEntry,
    SongFilterMode,
)
from anisong_playlist.matching.session import MatchingSession
from anisong_playlist.music import create_music_service
from anisong_playlist.music.base import MusicService
from anisong_playlist.music.models import Confidence
from anisong_playlist.playlist.creator import create_merged_playlist, create_quarter_playlist
from anisong_playlist.playlist.quarters import parse_quarter, quarter_to_japanese_name
from anisong_playlist.playlist.songs import (
    build_song_entries,
    load_anime_list,
    watched_anime_for_quarter,
    watched_quarters,
)
from anisong_playlist.utils import format_duration, format_release_date

logger = get_logger(__name__)


class AppContext:
    """
    Resources shared by the commands of one invocation.

    The configuration, logging and storage are set up on first use, so
    `--help` and `--version` work without a config file.
    """

    def __init__(self, config_path: Path | None, verbose: bool) -> None:
        self.config_path = config_path
        self.verbose = verbose
        self._config: Config | None = None
        self._medium: SqliteMedium | None = None

    @property
    def config(self) -> Config:
        if self._config is None:
            self._config = load_config(self.config_path)
            setup_logging(self._config.logging.directory, verbose=self.verbose)
            logger.debug(f"anisong-playlist {__version__}, provider: {self._config.music_service.provider}")
        return self._config

    @property
    def medium(self) -> SqliteMedium:
        if self._medium is None:
            self._medium = SqliteMedium(self.config.storage.path)
        return self._medium

    def close(self) -> None:
        if self._medium is not None:
            self._medium.close()
            self._medium = None
        shutdown_logging()


def handle_errors(func: Callable) -> Callable:
    """
    Turn application errors raised by a command into messages and exit codes.

    Click's own exceptions (usage errors, aborted prompts) are left to Click.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)

        except (click.ClickException, click.Abort):
            raise

        except ConfigError as e:
            click.echo(f"Configuration error: {e.message}", err=True)
            sys.exit(1)

        except StorageError as e:
            click.echo(f"Storage error: {e.message}", err=True)
            logger.error(f"Storage error: {e.message}", exc_info=True)
            sys.exit(2)

        except MusicServiceError as e:
            click.echo(f"Music service error: {e.message}", err=True)
            if e.is_auth_error:
                click.echo("Check spotify.client_id and spotify.redirect_uri in config.yaml", err=True)
            logger.error(f"Music service error: {e.message}", exc_info=True)
            sys.exit(3)

        except AnisongError as e:
            click.echo(f"Error: {e.message}", err=True)
            logger.error(f"Error: {e.message}", exc_info=True)
            sys.exit(4)

        except KeyboardInterrupt:
            click.echo("\nInterrupted by user", err=True)
            logger.info("Interrupted by user")
            sys.exit(130)

        except Exception as e:
            click.echo(f"Unexpected error: {e}", err=True)
            logger.exception("Unexpected error")
            sys.exit(1)

    return wrapper


@click.group(invoke_without_command=True)
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml)"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show debug messages"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool, version: bool) -> None:
    """
    anisong-playlist: Playlists from the theme songs of the anime you watched.

    \b
    TYPICAL SESSION:
        anisong anime 2024q1                 # Find anime ids
        anisong status <id> watched          # Mark what you watched
        anisong match 2024q1                 # Match the songs, save a draft
        anisong create 2024q1                # Create the playlist
    """
    if version:
        click.echo(f"anisong-playlist {__version__}")
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)

    app = AppContext(config_path, verbose)
    ctx.obj = app
    ctx.call_on_close(app.close)


# =============================================================================
# Shared helpers
# =============================================================================

def _validate_quarter(quarter: str) -> str:
    try:
        parse_quarter(quarter)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="QUARTER") from e
    return quarter.lower()


def _connect_music_service(config: Config) -> MusicService:
    service = create_music_service(config)
    if not service.is_authenticated():
        service.authenticate()
    return service


def _session_entries(app: AppContext, quarter: str, mode: SongFilterMode) -> list[SongEntry]:
    anime_list = load_anime_list(app.config.data.anime_file)
    watched = AnimeStatusStore(app.medium).watched_ids()
    return build_song_entries(watched_anime_for_quarter(anime_list, quarter, watched, mode))


def _newly_recorded(
    before: list[MatchDecision | None],
    after: list[MatchDecision | None]
) -> list[tuple[int, MatchDecision]]:
    """(index, decision) pairs present in after but not in before, in song order."""
    return [
        (index, decision)
        for index, (previous, decision) in enumerate(zip(before, after))
        if decision is not None and decision is not previous
    ]


def _raise_if_auth_failure(error: SearchFailure) -> None:
    # No search can succeed without a valid login
    cause = error.__cause__
    if isinstance(cause, MusicServiceError) and cause.is_auth_error:
        raise cause


# =============================================================================
# Anime and statuses
# =============================================================================

@cli.command()
@click.argument("quarter", required=False)
@click.pass_obj
@handle_errors
def anime(app: AppContext, quarter: str | None) -> None:
    """List anime (optionally of one QUARTER) with their watched status."""
    if quarter is not None:
        quarter = _validate_quarter(quarter)

    statuses = AnimeStatusStore(app.medium).statuses()
    anime_list = [
        item for item in load_anime_list(app.config.data.anime_file)
        if quarter is None or item.quarter == quarter
    ]
    if not anime_list:
        click.echo("No anime found.")
        return

    for item in anime_list:
        status = statuses.get(item.id)
        label = status.value if status else "-"
        click.echo(f"{item.id:<12} {item.quarter:<8} {label:<10} {item.name} ({len(item.songs)} songs)")


@cli.command()
@click.argument("anime_id")
@click.argument("state", type=click.Choice(["watched", "unwatched", "clear"], case_sensitive=False))
@click.pass_obj
@handle_errors
def status(app: AppContext, anime_id: str, state: str) -> None:
    """Mark an anime as watched or unwatched, or clear its status."""
    anime_by_id = {item.id: item for item in load_anime_list(app.config.data.anime_file)}
    item = anime_by_id.get(anime_id)
    if item is None:
        raise click.BadParameter(f"Unknown anime id: {anime_id}", param_hint="ANIME_ID")

    state = state.lower()
    AnimeStatusStore(app.medium).set_status(anime_id, None if state == "clear" else AnimeStatus(state))
    click.echo(f"{item.name} ({item.quarter}): {state}")


@cli.command()
@click.pass_obj
@handle_errors
def quarters(app: AppContext) -> None:
    """List quarters with watched anime, newest first, with draft progress."""
    anime_list = load_anime_list(app.config.data.anime_file)
    watched = AnimeStatusStore(app.medium).watched_ids()
    drafts = DraftStore(app.medium).get_all()

    found = watched_quarters(anime_list, watched)
    if not found:
        click.echo("No watched anime yet. Mark some with: anisong status <anime-id> watched")
        return

    default_mode = SongFilterMode(app.config.matching.song_filter)
    for quarter in found:
        draft = drafts.get(quarter)
        mode = draft.song_filter if draft else default_mode
        selected = watched_anime_for_quarter(anime_list, quarter, watched, mode)
        song_count = sum(len(item.songs) for item in selected)
        progress = (
            f"draft: {draft.matched_count}/{len(draft.tracks)} matched"
            if draft else "no draft"
        )
        click.echo(
            f"{quarter:<8} {quarter_to_japanese_name(quarter)}  "
            f"{len(selected)} anime, {song_count} songs ({progress})"
        )


# =============================================================================
# Matching
# =============================================================================

def _print_song_header(session: MatchingSession) -> None:
    entry = session.current_entry
    song = entry.song
    click.echo("")
    click.secho(f"[{session.current_index + 1}/{session.total}] {entry.anime_name}", bold=True)
    click.echo(f"  {song.type}: {song.track_name}" + (f" / {song.artist}" if song.artist else ""))


def _print_candidates(session: MatchingSession) -> None:
    candidates = session.candidates
    if not candidates:
        click.echo("  No candidates found.")
        return

    query = session.current_entry.query
    preselected = session.preselected_candidate_id
    for number, candidate in enumerate(candidates, 1):
        marker = "*" if candidate.id == preselected else " "
        exact = click.style(" [exact]", fg="green") if candidate.confidence == Confidence.EXACT else ""
        click.echo(
            f" {marker}{number:>2}. {candidate.name} / {candidate.artist}{exact}"
            f"  ({similarity(query, candidate):.0f}%)"
        )

        details = []
        if candidate.album:
            details.append(candidate.album)
        if candidate.duration_ms is not None:
            details.append(format_duration(candidate.duration_ms))
        if candidate.release_date:
            details.append(format_release_date(candidate.release_date))
        if details:
            click.echo(f"       {' | '.join(details)}")


def _report_recorded(
    quarter: str,
    recorded: list[tuple[int, MatchDecision]],
    user_index: int | None,
    announce: bool
) -> None:
    """
    Echo and log newly recorded decisions.

    Args:
        quarter: Season of the session.
        recorded: Output of _newly_recorded().
        user_index: Index of the song the user decided in this transition,
                    None when the transition only searched.
        announce: Echo one line per decision.
    """
    for index, decision in recorded:
        selected = decision.selected_candidate
        if announce:
            if selected is None:
                click.echo(format_skipped_message(decision.song.track_name, decision.song.artist))
            elif index == user_index:
                click.echo(format_selected_message(selected.name, selected.artist))
            else:
                click.echo(format_auto_matched_message(selected.name, selected.artist))
        if decision.match_status is MatchStatus.SKIPPED:
            log_unmatched_song(
                logger,
                quarter=quarter,
                anime_name=decision.anime_name,
                song_type=decision.song.type,
                track_name=decision.song.track_name,
                artist=decision.song.artist,
            )


def _run_interactive(session: MatchingSession, quarter: str) -> bool:
    """
    Drive the session with prompts until it completes or the user quits.

    Returns:
        True if the session completed, False if the user quit.
    """
    def transition(action: Callable[[], None], user_decides: bool = False) -> None:
        before = session.decisions
        user_index = session.current_index if user_decides else None
        try:
            action()
        except SearchFailure as e:
            _raise_if_auth_failure(e)
            click.secho(f"Search failed: {e.message}", fg="red", err=True)
        finally:
            _report_recorded(quarter, _newly_recorded(before, session.decisions), user_index, announce=True)

    transition(session.start)

    while session.state is not SessionState.COMPLETED:
        _print_song_header(session)

        if session.state is SessionState.AWAITING_SEARCH:
            prompt = "[r]etry, [s]kip, [b]ack, [q]uit"
        else:
            _print_candidates(session)
            prompt = "Number to select, [s]kip, [b]ack, [q]uit"
        choice = click.prompt(prompt).strip().lower()

        if choice == "q":
            if click.confirm("Quit without saving?", default=False):
                return False
        elif choice == "s":
            transition(session.skip, user_decides=True)
        elif choice == "b":
            if session.current_index == 0:
                click.echo("Already at the first song.")
            else:
                transition(session.back)
        elif choice == "r" and session.state is SessionState.AWAITING_SEARCH:
            transition(session.retry)
        elif (
            choice.isdigit()
            and session.state is SessionState.AWAITING_DECISION
            and 1 <= int(choice) <= len(session.candidates)
        ):
            candidate_id = session.candidates[int(choice) - 1].id
            transition(lambda: session.select(candidate_id), user_decides=True)
        else:
            click.echo("Invalid choice.")

    return True


def _run_auto(session: MatchingSession, quarter: str) -> None:
    """
    Drive the session without prompts.

    Exact matches are taken by the session itself. For every other song
    the previously selected track is kept when it is still offered, and
    the song is skipped otherwise. Failed searches are skipped.
    """
    with MatchingProgressBar(total=session.total - session.current_index, description=quarter) as progress:
        def transition(action: Callable[[], None]) -> None:
            before = session.decisions
            try:
                action()
            except SearchFailure as e:
                _raise_if_auth_failure(e)
                progress.log(f"[red]Search failed[/red]: {e.message}")
            finally:
                recorded = _newly_recorded(before, session.decisions)
                for _, decision in recorded:
                    progress.update(decision.match_status, label=decision.song.track_name)
                _report_recorded(quarter, recorded, user_index=None, announce=False)

        transition(session.start)

        while session.state is not SessionState.COMPLETED:
            preselected = session.preselected_candidate_id
            if preselected is not None:
                transition(lambda: session.select(preselected))
            else:
                transition(session.skip)


def _print_summary(decisions: list[MatchDecision | None]) -> None:
    decided = [decision for decision in decisions if decision is not None]
    matched = sum(1 for decision in decided if decision.is_matched)
    skipped = sum(1 for decision in decided if decision.match_status is MatchStatus.SKIPPED)
    click.echo("")
    click.echo(format_progress_message(len(decided), len(decisions), matched, skipped))


@cli.command()
@click.argument("quarter")
@click.option(
    "--filter", "song_filter",
    type=click.Choice([mode.value for mode in SongFilterMode]),
    default=None,
    help="oped: opening/ending themes only, all: every song (default: the draft's, then config)"
)
@click.option(
    "--edit", "edit_number",
    type=click.IntRange(min=1),
    default=None,
    metavar="<N>",
    help="Re-match only song N (1-based) of the saved draft"
)
@click.option(
    "--auto", "auto_mode",
    is_flag=True,
    help="No prompts: take exact matches, keep earlier choices, skip the rest"
)
@click.option(
    "--yes", "-y",
    is_flag=True,
    help="Save the draft without asking"
)
@click.pass_obj
@handle_errors
def match(
    app: AppContext,
    quarter: str,
    song_filter: str | None,
    edit_number: int | None,
    auto_mode: bool,
    yes: bool
) -> None:
    """Match the songs of the watched anime of QUARTER and save a draft."""
    quarter = _validate_quarter(quarter)
    if edit_number is not None and auto_mode:
        raise click.UsageError("--edit cannot be combined with --auto")

    store = DraftStore(app.medium)
    existing = store.get(quarter)

    if song_filter is not None:
        mode = SongFilterMode(song_filter)
    elif existing is not None:
        mode = existing.song_filter
    else:
        mode = SongFilterMode(app.config.matching.song_filter)

    decisions = list(existing.tracks) if existing is not None else None
    if existing is not None and mode is not existing.song_filter:
        click.secho(
            f"The saved draft uses the '{existing.song_filter.value}' filter; "
            f"its decisions are not reused with '{mode.value}'.",
            fg="yellow",
        )
        decisions = None

    entries = _session_entries(app, quarter, mode)
    if not entries:
        raise click.ClickException(f"No watched anime with songs in {quarter}")

    start_index = 0
    if edit_number is not None:
        if decisions is None:
            raise click.UsageError(f"--edit needs a saved draft for {quarter} with the same filter")
        if edit_number > len(entries):
            raise click.UsageError(f"--edit must be between 1 and {len(entries)}")
        start_index = edit_number - 1

    service = _connect_music_service(app.config)
    session = MatchingSession(
        entries,
        service,
        decisions=decisions,
        start_index=start_index,
        single_edit=edit_number is not None,
    )
    logger.info(f"Matching {len(entries)} songs of {quarter} ({mode.value})")

    drafts_changed: list[bool] = []
    unsubscribe = store.subscribe(lambda: drafts_changed.append(True))
    try:
        if auto_mode:
            _run_auto(session, quarter)
        elif not _run_interactive(session, quarter):
            click.echo("Nothing saved.")
            return
        app.medium.poll()
    finally:
        unsubscribe()

    if drafts_changed:
        latest = store.get(quarter)
        if latest != existing:
            logger.debug(f"Draft for {quarter} was changed by another process while matching")
            click.secho(
                f"The draft for {quarter} was changed elsewhere while matching; saving replaces it.",
                fg="yellow",
            )
        existing = latest

    result = session.result
    _print_summary(result)

    if not yes and not click.confirm(f"Save draft for {quarter}?", default=True):
        click.echo("Draft not saved.")
        return

    if existing is not None:
        draft = replace(existing, tracks=tuple(result), song_filter=mode)
    else:
        draft = Draft.new(quarter, result, mode, store.now())
    saved = store.save(quarter, draft)
    click.echo(f"Draft saved: {saved.matched_count}/{len(saved.tracks)} songs matched.")


# =============================================================================
# Drafts
# =============================================================================

@cli.group(invoke_without_command=True)
@click.pass_context
def drafts(ctx: click.Context) -> None:
    """List, show or delete saved drafts."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(drafts_list)


@drafts.command("list")
@click.pass_obj
@handle_errors
def drafts_list(app: AppContext) -> None:
    """List saved drafts."""
    all_drafts = DraftStore(app.medium).get_all()
    if not all_drafts:
        click.echo("No drafts saved.")
        return

    for quarter in sorted(all_drafts, reverse=True):
        draft = all_drafts[quarter]
        click.echo(
            f"{quarter:<8} {draft.matched_count}/{len(draft.tracks)} matched  "
            f"filter: {draft.song_filter.value}  updated: {draft.updated_at}"
        )


@drafts.command("show")
@click.argument("quarter")
@click.pass_obj
@handle_errors
def drafts_show(app: AppContext, quarter: str) -> None:
    """Show every decision of the draft of QUARTER."""
    quarter = _validate_quarter(quarter)
    draft = DraftStore(app.medium).get(quarter)
    if draft is None:
        raise click.ClickException(f"No draft for {quarter}")

    click.secho(f"{quarter} {quarter_to_japanese_name(quarter)}", bold=True)
    click.echo(f"filter: {draft.song_filter.value}  created: {draft.created_at}  updated: {draft.updated_at}")

    for number, decision in enumerate(draft.tracks, 1):
        if decision is None:
            click.echo(f"{number:>3}. (not decided)")
            continue
        click.echo(
            f"{number:>3}. [{decision.match_status.value:<7}] "
            f"{decision.anime_name} / {decision.song.type}: {decision.song.track_name}"
        )
        if decision.selected_candidate is not None:
            click.echo(f"       -> {decision.selected_candidate.name} / {decision.selected_candidate.artist}")


@drafts.command("delete")
@click.argument("quarter")
@click.option("--yes", "-y", is_flag=True, help="Delete without asking")
@click.pass_obj
@handle_errors
def drafts_delete(app: AppContext, quarter: str, yes: bool) -> None:
    """Delete the draft of QUARTER."""
    quarter = _validate_quarter(quarter)
    store = DraftStore(app.medium)
    if store.get(quarter) is None:
        raise click.ClickException(f"No draft for {quarter}")

    if not yes and not click.confirm(f"Delete the draft for {quarter}?", default=False):
        click.echo("Nothing deleted.")
        return

    store.delete(quarter)
    click.echo(f"Draft for {quarter} deleted.")


# =============================================================================
# Playlists
# =============================================================================

@cli.command()
@click.argument("quarter_keys", metavar="QUARTER...", nargs=-1, required=True)
@click.option("--merge", is_flag=True, help="Create one playlist for all quarters")
@click.pass_obj
@handle_errors
def create(app: AppContext, quarter_keys: tuple[str, ...], merge: bool) -> None:
    """Create playlists from the drafts of one or more QUARTERs."""
    requested = list(dict.fromkeys(_validate_quarter(quarter) for quarter in quarter_keys))

    all_drafts = DraftStore(app.medium).get_all()
    missing = [quarter for quarter in requested if quarter not in all_drafts]
    if missing:
        raise PlaylistError(
            f"No draft for: {', '.join(missing)}",
            details={"quarters": missing}
        )
    selected = [all_drafts[quarter] for quarter in requested]

    service = _connect_music_service(app.config)
    if merge:
        playlists = [create_merged_playlist(service, selected)]
    else:
        playlists = [create_quarter_playlist(service, draft) for draft in selected]

    for playlist in playlists:
        click.echo(f"Created '{playlist.name}' ({playlist.track_count} tracks): {playlist.url}")


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `anisong` from the command line.
    """
    cli()


if __name__ == "__main__":
    main()
