"""
Display components for the devstrap CLI.

This module renders the user-facing output: coloured status lines while the
bootstrap runs and the final tool summary.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from rich.console import Console
from rich.text import Text

if TYPE_CHECKING:
    from devstrap.setup.checker import ToolStatus


# Label and colour for each status level
LEVEL_STYLES = {
    "info": ("INFO", "blue"),
    "success": ("SUCCESS", "green"),
    "warning": ("WARNING", "bold yellow"),
    "error": ("ERROR", "red"),
}

PRESENT_MARK = "✓"
ABSENT_MARK = "✗"
SEPARATOR = "=" * 38


class StatusConsole:
    """Coloured status line printer."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(highlight=False)

    def _line(self, level: str, message: str) -> None:
        label, style = LEVEL_STYLES[level]
        self.console.print(Text.assemble((f"[{label}]", style), " ", message))

    def info(self, message: str) -> None:
        self._line("info", message)

    def success(self, message: str) -> None:
        self._line("success", message)

    def warning(self, message: str) -> None:
        self._line("warning", message)

    def error(self, message: str) -> None:
        self._line("error", message)

    def detail(self, message: str) -> None:
        """Print plain command output, such as a version string."""
        self.console.print(Text(message))

    def separator(self) -> None:
        self.console.print(Text(SEPARATOR))

    def tool_line(self, status: ToolStatus) -> None:
        """Print one summary line for a tool."""
        if status.installed:
            version = status.version or "installed"
            self.console.print(
                Text.assemble((PRESENT_MARK, "green"), f" {status.name}: {version}")
            )
        else:
            self.console.print(
                Text.assemble((ABSENT_MARK, "red"), f" {status.name}: Not installed")
            )

    def summary(self, statuses: Iterable[ToolStatus]) -> None:
        """Print the framed tool summary."""
        self.info("Installation Summary:")
        self.separator()
        for status in statuses:
            self.tool_line(status)
        self.separator()
