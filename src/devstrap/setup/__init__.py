"""
devstrap setup package.

This module handles host checks, tool installation through fallback chains,
shell configuration and the final availability summary.
"""

from devstrap.setup.checker import (
    ComponentCheck,
    ComponentStatus,
    EnvironmentChecker,
    ToolStatus,
    probe_tool,
)
from devstrap.setup.installer import (
    InstallContext,
    InstallResult,
    InstallStep,
    ToolInstaller,
)
from devstrap.setup.reporter import SummaryReporter
from devstrap.setup.runner import CommandRunner
from devstrap.setup.shell_config import ShellConfigUpdate, ShellConfigUpdater
from devstrap.setup.tools import (
    BunInstaller,
    DockerInstaller,
    NodeInstaller,
    UvInstaller,
    default_installers,
)

__all__ = [
    "BunInstaller",
    "CommandRunner",
    "ComponentCheck",
    "ComponentStatus",
    "DockerInstaller",
    "EnvironmentChecker",
    "InstallContext",
    "InstallResult",
    "InstallStep",
    "NodeInstaller",
    "ShellConfigUpdate",
    "ShellConfigUpdater",
    "SummaryReporter",
    "ToolInstaller",
    "ToolStatus",
    "UvInstaller",
    "default_installers",
    "probe_tool",
]
