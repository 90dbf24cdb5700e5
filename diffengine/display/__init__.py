"""diffengine display system: shared console, theme and inline printing."""

from diffengine.display.console import get_console, set_console
from diffengine.display.printer import InlinePrinter
from diffengine.display.theme import DEFAULT_THEME, Status, Theme

__all__ = [
    "get_console",
    "set_console",
    "InlinePrinter",
    "DEFAULT_THEME",
    "Status",
    "Theme",
]
