"""
devstrap configuration settings using Pydantic.

Settings come from environment variables with the DEVSTRAP_ prefix or from a
.env file in the current directory. Everything has a default, so a plain
`devstrap` invocation needs no configuration at all.
"""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ShellKind(str, Enum):
    """Shell whose rc file receives the PATH exports."""

    BASH = "bash"
    ZSH = "zsh"
    PROFILE = "profile"

    @property
    def rc_filename(self) -> str:
        """Name of the rc file in the home directory."""
        return {
            ShellKind.BASH: ".bashrc",
            ShellKind.ZSH: ".zshrc",
            ShellKind.PROFILE: ".profile",
        }[self]


class DevstrapSettings(BaseSettings):
    """
    Main devstrap configuration.

    Examples:
        DEVSTRAP_SHELL=zsh devstrap
        DEVSTRAP_USE_SUDO=false devstrap
        DEVSTRAP_COMMAND_TIMEOUT=900 devstrap
    """

    model_config = SettingsConfigDict(
        env_prefix="DEVSTRAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    home: Path = Field(
        default_factory=Path.home,
        description="Home directory holding tool directories and the rc file",
    )
    user: str = Field(
        default_factory=lambda: os.environ.get("USER", ""),
        description="Login name added to the docker group after a Docker install",
    )
    shell: ShellKind | None = Field(
        default=None,
        description="Target shell; detected from the environment when unset",
    )
    use_sudo: bool = Field(
        default=True,
        description="Prefix privileged commands (apt, usermod) with sudo",
    )
    min_node_major: int = Field(
        default=18,
        ge=1,
        le=100,
        description="Oldest Node.js major version accepted without reinstalling",
    )
    command_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Timeout in seconds for each external command (unbounded by default)",
    )
    http_timeout: float = Field(
        default=60.0,
        gt=0,
        le=3600,
        description="Timeout in seconds for each HTTP download",
    )
    download_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per download on timeouts and connection errors",
    )
    verbose: bool = Field(
        default=False,
        description="Show structured debug logs",
    )

    @field_validator("home")
    @classmethod
    def expand_home(cls, v: Path) -> Path:
        """Expand a leading ~ in the configured home directory."""
        return v.expanduser()

    def rc_file(self, shell: ShellKind | None = None) -> Path:
        """Get the rc file for the given shell (or the configured one)."""
        kind = shell or self.shell or ShellKind.PROFILE
        return self.home / kind.rc_filename
