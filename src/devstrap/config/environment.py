"""
Environment inspection for devstrap.

Ambient state (PATH, shell variables, machine architecture) is read here,
once, at the edge of the program and turned into explicit values that the
setup components receive as arguments.
"""

from __future__ import annotations

import os
import platform
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Mapping

import structlog

from devstrap.config.settings import ShellKind

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SearchPath:
    """
    Ordered list of directories used to resolve executables.

    Instances are immutable; prepend() returns a new value so each install
    step hands an updated path to the steps after it.
    """

    entries: tuple[str, ...] = ()

    @classmethod
    def from_string(cls, value: str | None) -> "SearchPath":
        """Build a search path from a PATH-style string."""
        if not value:
            return cls()
        return cls(tuple(entry for entry in value.split(os.pathsep) if entry))

    @classmethod
    def from_environ(cls, environ: Mapping[str, str] | None = None) -> "SearchPath":
        """Build a search path from the PATH of an environment mapping."""
        environ = os.environ if environ is None else environ
        return cls.from_string(environ.get("PATH"))

    def prepend(self, *directories: str | Path) -> "SearchPath":
        """Return a copy with the directories moved to the front, in order."""
        front = []
        for directory in directories:
            entry = str(directory)
            if entry not in front:
                front.append(entry)
        rest = [entry for entry in self.entries if entry not in front]
        return SearchPath(tuple(front + rest))

    def which(self, name: str) -> str | None:
        """Resolve an executable against this path."""
        if not self.entries:
            return None
        return shutil.which(name, path=self.as_env())

    def as_env(self) -> str:
        """Render as a PATH environment variable value."""
        return os.pathsep.join(self.entries)

    def __contains__(self, directory: object) -> bool:
        return str(directory) in self.entries

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def detect_shell(environ: Mapping[str, str] | None = None) -> ShellKind:
    """
    Pick the target shell from ambient shell signals.

    Order: BASH_VERSION, ZSH_VERSION, then the basename of $SHELL. Anything
    else falls back to ~/.profile.
    """
    environ = os.environ if environ is None else environ

    if environ.get("BASH_VERSION"):
        return ShellKind.BASH
    if environ.get("ZSH_VERSION"):
        return ShellKind.ZSH

    login_shell = Path(environ.get("SHELL", "")).name
    if login_shell == "bash":
        return ShellKind.BASH
    if login_shell == "zsh":
        return ShellKind.ZSH

    return ShellKind.PROFILE


@dataclass
class EnvironmentInfo:
    """Information about the runtime environment."""

    platform: str
    machine: str
    user: str
    codespace: str | None


def get_environment_info(environ: Mapping[str, str] | None = None) -> EnvironmentInfo:
    """
    Get information about the runtime environment.

    Returns:
        EnvironmentInfo object with system details.
    """
    environ = os.environ if environ is None else environ

    return EnvironmentInfo(
        platform=platform.platform(),
        machine=platform.machine(),
        user=environ.get("USER", environ.get("USERNAME", "unknown")),
        codespace=environ.get("CODESPACE_NAME"),
    )


def home_dirs(home: Path, relative: Iterable[str]) -> list[Path]:
    """Resolve home-relative directories such as '.local/bin'."""
    return [home / entry for entry in relative]
