"""
Progress bar for unattended matching, built on the Rich library.

The interactive matcher prints one prompt per song and needs no bar; the
`anisong match --auto` mode runs through a whole quarter without input
and shows a MatchingProgressBar instead.

Usage:
    from anisong_playlist.core.progress import MatchingProgressBar

    with MatchingProgressBar(total=len(entries), description="2024q1") as progress:
        for decision in decisions:
            progress.update(decision.match_status, label=decision.song.track_name)
"""

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TextColumn,
)
from rich.theme import Theme

from anisong_playlist.matching.models import MatchStatus


PROGRESS_THEME = Theme({
    "bar.back": "grey23",
    "bar.complete": "rgb(165,66,129)",
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(165,66,129)",
    "progress.percentage": "white",
})


class MatchingProgressBar:
    """
    Progress bar counting matching decisions by status.

    Displays:
    - Description (usually the quarter)
    - Status: ✓ auto-matched, ✎ manually chosen, ✗ skipped
    - Bar and completed/total counter

    Example:
        2024q1     ✓ 12  ✎ 1  ✗ 4     ━━━━━━━━━━━━━━━━━━━━  17/30

    Attributes:
        total: Number of songs in the session.
        completed: Number of decisions recorded so far.
        counts: Decisions per MatchStatus.
    """

    STATUS_SYMBOLS = {
        MatchStatus.AUTO: ("green", "✓"),
        MatchStatus.MANUAL: ("cyan", "✎"),
        MatchStatus.SKIPPED: ("red", "✗"),
    }

    def __init__(self, total: int, description: str = "Matching", console: Console | None = None) -> None:
        self.total = total
        self.description = description
        self.completed = 0
        self.counts: dict[MatchStatus, int] = {status: 0 for status in self.STATUS_SYMBOLS}

        self.console = console or Console(theme=PROGRESS_THEME)
        self.progress = Progress(
            TextColumn("[white]{task.description}", justify="left"),
            TextColumn("{task.fields[status]}"),
            BarColumn(bar_width=40, finished_style="green"),
            MofNCompleteColumn(),
            TextColumn("[grey50]{task.fields[label]}"),
            console=self.console,
            transient=False,
        )
        self.task_id: TaskID | None = None
        self._started = False

    def __enter__(self) -> "MatchingProgressBar":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        if not self._started:
            self.progress.start()
            self.task_id = self.progress.add_task(
                description=self.description,
                total=self.total,
                status=self.status_text(),
                label="",
            )
            self._started = True

    def stop(self) -> None:
        if self._started:
            self.progress.stop()
            self._started = False

    def status_text(self) -> str:
        """Rich markup with one colored counter per status."""
        return "  ".join(
            f"[{color}]{symbol} {self.counts[status]}[/{color}]"
            for status, (color, symbol) in self.STATUS_SYMBOLS.items()
        )

    def update(self, status: MatchStatus, label: str = "") -> None:
        """
        Count one recorded decision.

        Args:
            status: Status of the decision. PENDING is counted as completed
                    without a symbol.
            label: Optional text shown after the counter (e.g. song title).
        """
        self.completed += 1
        if status in self.counts:
            self.counts[status] += 1

        if self.task_id is not None:
            self.progress.update(
                self.task_id,
                completed=self.completed,
                status=self.status_text(),
                label=label,
            )

    def log(self, message: str) -> None:
        """Print a message above the progress bar."""
        self.progress.console.print(message, highlight=False)
