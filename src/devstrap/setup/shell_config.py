"""
Shell configuration updater for devstrap.

Appends PATH exports for the installed tools to one rc file. A line is only
appended when the file has no line that is exactly equal to it; an export
written with different quoting is not recognised and will be added again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import structlog

from devstrap.config.settings import ShellKind

logger = structlog.get_logger(__name__)

# PATH exports and the tool each one serves, in append order
PATH_EXPORTS: list[tuple[str, str]] = [
    ('export PATH="$HOME/.cargo/bin:$PATH"', "uv (cargo)"),
    ('export PATH="$HOME/.local/bin:$PATH"', "local bin"),
    ('export PATH="$HOME/.bun/bin:$PATH"', "bun"),
]


@dataclass
class ShellConfigUpdate:
    """Result of updating an rc file."""

    rc_file: Path
    appended: list[str] = field(default_factory=list)


class ShellConfigUpdater:
    """Append missing PATH exports to a shell rc file."""

    def __init__(
        self,
        home: Path,
        shell: ShellKind,
        exports: list[tuple[str, str]] | None = None,
    ) -> None:
        """
        Initialize the updater.

        Args:
            home: Home directory containing the rc file.
            shell: Shell whose rc file is updated.
            exports: (line, label) pairs to ensure. Defaults to PATH_EXPORTS.
        """
        self.shell = shell
        self.rc_file = home / shell.rc_filename
        self._exports = exports if exports is not None else PATH_EXPORTS

    def existing_lines(self) -> set[str]:
        """Lines currently in the rc file, without line endings."""
        if not self.rc_file.exists():
            return set()
        return set(self.rc_file.read_text(encoding="utf-8", errors="replace").splitlines())

    def missing_lines(self) -> list[str]:
        """Export lines not yet present in the rc file."""
        present = self.existing_lines()
        return [line for line, _ in self._exports if line not in present]

    def update(self) -> ShellConfigUpdate:
        """
        Append every missing export line.

        Creates the rc file if needed. Running it again without changes to
        the file appends nothing.

        Raises:
            OSError: If the rc file cannot be read or written.
        """
        to_append = [(line, self.label_for(line)) for line in self.missing_lines()]
        result = ShellConfigUpdate(rc_file=self.rc_file)

        if not to_append:
            logger.debug("shell_config_up_to_date", rc_file=str(self.rc_file))
            return result

        self.rc_file.parent.mkdir(parents=True, exist_ok=True)
        needs_newline = self.rc_file.exists() and not self._ends_with_newline()

        with self.rc_file.open("a", encoding="utf-8") as f:
            if needs_newline:
                f.write("\n")
            for line, label in to_append:
                f.write(line + "\n")
                result.appended.append(line)
                logger.info("shell_config_line_added", rc_file=str(self.rc_file), tool=label)

        return result

    def label_for(self, line: str) -> str:
        """Tool label for an export line."""
        return next((label for export, label in self._exports if export == line), line)

    def _ends_with_newline(self) -> bool:
        with self.rc_file.open("rb") as f:
            f.seek(0, 2)
            if f.tell() == 0:
                return True
            f.seek(-1, 2)
            return f.read(1) == b"\n"
