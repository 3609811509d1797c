"""
Summary reporter for devstrap.

Re-probes every provisioned executable and prints one status line per tool.
Nothing here changes the system.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from devstrap.config.environment import SearchPath
from devstrap.setup.checker import ToolStatus, probe_tool
from devstrap.setup.runner import CommandRunner

if TYPE_CHECKING:
    from devstrap.cli.display import StatusConsole

logger = structlog.get_logger(__name__)

# Executables reported in the summary, in display order
SUMMARY_TOOLS = ("uv", "bun", "docker", "node", "npm", "npx")


class SummaryReporter:
    """Collect and print the presence of provisioned tools."""

    def __init__(
        self,
        runner: CommandRunner,
        console: StatusConsole,
        tools: tuple[str, ...] = SUMMARY_TOOLS,
    ) -> None:
        self._runner = runner
        self._console = console
        self._tools = tools

    def collect(self, search_path: SearchPath) -> list[ToolStatus]:
        """Probe every tool on the given search path."""
        statuses = [probe_tool(tool, self._runner, search_path) for tool in self._tools]
        logger.info(
            "summary_collected",
            installed=[s.name for s in statuses if s.installed],
            missing=[s.name for s in statuses if not s.installed],
        )
        return statuses

    def report(self, search_path: SearchPath) -> list[ToolStatus]:
        """Probe every tool and print the summary."""
        statuses = self.collect(search_path)
        self._console.summary(statuses)
        return statuses
