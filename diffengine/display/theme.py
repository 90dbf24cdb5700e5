"""Theme definitions for diffengine output."""

from dataclasses import dataclass, field
from enum import Enum


class Status(Enum):
    """Status states for gumball indicators."""
    OK = "ok"
    PENDING = "pending"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass
class Theme:
    """Visual theme configuration.

    All styling in one place for easy customization.
    """
    # Gumball characters with Rich markup colors
    gumballs: dict[Status, str] = field(default_factory=lambda: {
        Status.OK: "[green]●[/]",
        Status.PENDING: "[cyan]●[/]",
        Status.SKIPPED: "[yellow]●[/]",
        Status.ERROR: "[red]●[/]",
    })

    # Text styles (Rich style strings)
    error: str = "bold red"
    path: str = "bold"
    added: str = "green"
    removed: str = "red"

    # Refined region styles, by RefineKind value
    refine_styles: dict[str, str] = field(default_factory=lambda: {
        "removed": "bold white on red",
        "added": "bold white on green",
        "changed": "bold black on yellow",
    })

    def gumball(self, status: Status) -> str:
        """Get the gumball character for a status."""
        return self.gumballs.get(status, "○")


DEFAULT_THEME = Theme()
