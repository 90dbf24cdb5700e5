"""Inline printing of hunk outcomes, summaries and tables."""

from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

from diffengine.display.theme import Status, Theme
from diffengine.patch.applier import BatchResult, HunkOutcome, OutcomeStatus
from diffengine.patch.refine import RefinedRegion, region_text
from diffengine.patch.types import DiffDocument, Hunk

_OUTCOME_STATUS = {
    OutcomeStatus.APPLIED: Status.OK,
    OutcomeStatus.UNDONE: Status.OK,
    OutcomeStatus.DELETED: Status.OK,
    OutcomeStatus.NOT_YET_APPLIED: Status.PENDING,
    OutcomeStatus.ALREADY_APPLIED: Status.SKIPPED,
    OutcomeStatus.SKIPPED: Status.SKIPPED,
    OutcomeStatus.NOT_FOUND: Status.ERROR,
    OutcomeStatus.MALFORMED: Status.ERROR,
    OutcomeStatus.IO_ERROR: Status.ERROR,
}


class InlinePrinter:
    """Prints diffengine results to a Rich console with gumball indicators."""

    def __init__(self, console: Console, theme: Theme) -> None:
        self.console = console
        self.theme = theme

    def print(self, content: str, style: str | None = None, end: str = "\n") -> None:
        """Print plain content, without markup processing."""
        self.console.print(content, style=style, end=end, markup=False)

    def print_gumball(self, status: Status, message: str, indent: int = 0) -> None:
        """Print a gumball indicator with an (already escaped) message."""
        prefix = " " * indent
        self.console.print(f"{prefix}{self.theme.gumball(status)} {message}")

    def print_error(self, message: str) -> None:
        self.print_gumball(Status.ERROR, f"[{self.theme.error}]{escape(message)}[/]")

    def print_outcome(self, index: int, outcome: HunkOutcome) -> None:
        """Print one hunk outcome as '#N path: message'."""
        target = f"[{self.theme.path}]{escape(str(outcome.target))}[/]: " if outcome.target else ""
        self.print_gumball(
            _OUTCOME_STATUS[outcome.status],
            f"#{index} {target}{escape(outcome.message)}",
            indent=2,
        )

    def print_batch(self, result: BatchResult, first_index: int = 1) -> None:
        """Print every outcome of a batch followed by its summary line."""
        for offset, outcome in enumerate(result.outcomes):
            self.print_outcome(first_index + offset, outcome)
        for path, reason in result.io_errors:
            self.print_error(f"{path}: {reason}")
        status = Status.OK if result.success else Status.ERROR
        self.print_gumball(status, escape(result.message))

    def print_refined(self, text: str, hunk: Hunk, regions: list[RefinedRegion]) -> None:
        """Print a hunk with its refined regions highlighted."""
        rendered = Text(text[hunk.start:hunk.end].rstrip("\n"))
        for region in regions:
            rendered.stylize(
                self.theme.refine_styles[region.kind.value],
                region.start - hunk.start,
                region.end - hunk.start,
            )
        self.console.print(rendered)

    def print_regions(self, text: str, regions: list[RefinedRegion]) -> None:
        """Print a table of refined regions."""
        table = Table(show_header=True, header_style=self.theme.path)
        table.add_column("Start", justify="right")
        table.add_column("End", justify="right")
        table.add_column("Kind")
        table.add_column("Text", overflow="fold")
        for region in regions:
            kind = region.kind.value + (" (whole line)" if region.nonmodified else "")
            table.add_row(
                str(region.start),
                str(region.end),
                kind,
                Text(region_text(text, region)),
            )
        self.console.print(table)

    def print_diffstat(self, document: DiffDocument) -> None:
        """Print per-file added/removed line counts and a total."""
        table = Table(show_header=True, header_style=self.theme.path, show_footer=True)
        table.add_column("File", footer="Total")
        table.add_column("Hunks", justify="right")
        table.add_column("Added", justify="right", style=self.theme.added)
        table.add_column("Removed", justify="right", style=self.theme.removed)
        added = removed = hunks = 0
        for section in document.sections:
            stats = section.stats()
            added += stats.added
            removed += stats.removed
            hunks += len(section.hunks)
            table.add_row(
                Text(section.path or "?"),
                str(len(section.hunks)),
                f"+{stats.added}",
                f"-{stats.removed}",
            )
        table.columns[1].footer = str(hunks)
        table.columns[2].footer = f"+{added}"
        table.columns[3].footer = f"-{removed}"
        self.console.print(table)

    def print_written(self, path: Path) -> None:
        self.print_gumball(Status.OK, f"Wrote [{self.theme.path}]{escape(str(path))}[/]")
