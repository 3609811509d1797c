"""
Bootstrap orchestration for devstrap.

Runs the components in their fixed order:

    environment check -> installers -> shell configuration -> summary

Only the environment check can stop a run. Installers report failures in
their results, and the remaining steps always execute.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import structlog

from devstrap.cli.display import StatusConsole
from devstrap.config.environment import SearchPath
from devstrap.config.settings import DevstrapSettings, ShellKind
from devstrap.setup.checker import EnvironmentChecker, ToolStatus
from devstrap.setup.installer import InstallContext, InstallResult, ToolInstaller
from devstrap.setup.reporter import SummaryReporter
from devstrap.setup.runner import CommandRunner
from devstrap.setup.shell_config import ShellConfigUpdater
from devstrap.setup.tools import default_installers
from devstrap.utils.http_client import DownloadClient, HTTPClientConfig

logger = structlog.get_logger(__name__)


@dataclass
class BootstrapReport:
    """Everything one run did."""

    results: list[InstallResult] = field(default_factory=list)
    rc_file: Path | None = None
    appended_lines: list[str] = field(default_factory=list)
    statuses: list[ToolStatus] = field(default_factory=list)
    search_path: SearchPath = field(default_factory=SearchPath)

    @property
    def failed_tools(self) -> list[str]:
        return [r.tool for r in self.results if not r.success]


class Bootstrapper:
    """
    Sequential bootstrap of a development container.

    All collaborators can be injected, which is how tests replace
    subprocesses and HTTP with fakes.
    """

    def __init__(
        self,
        settings: DevstrapSettings,
        console: StatusConsole | None = None,
        runner: CommandRunner | None = None,
        http: DownloadClient | None = None,
        installers: list[ToolInstaller] | None = None,
        checker: EnvironmentChecker | None = None,
        search_path: SearchPath | None = None,
        machine: str | None = None,
    ) -> None:
        self.settings = settings
        self.console = console or StatusConsole()
        self.runner = runner or CommandRunner(timeout=settings.command_timeout)
        self.http = http or DownloadClient(
            HTTPClientConfig(
                timeout=settings.http_timeout,
                max_attempts=settings.download_attempts,
            )
        )
        self.installers = installers if installers is not None else default_installers()
        self.checker = checker or EnvironmentChecker()
        self.search_path = search_path if search_path is not None else SearchPath.from_environ()
        self.machine = machine

    def check_environment(self) -> None:
        """
        Verify the host preconditions.

        Raises:
            FatalPreconditionError: If the host cannot be bootstrapped.
        """
        self.console.info("Checking environment...")
        self.checker.ensure_supported(self.search_path)
        self.console.success("Environment check passed")

    def run(self) -> BootstrapReport:
        """
        Run the full bootstrap.

        Raises:
            FatalPreconditionError: Before any installation, if the host is
                unsupported. Nothing else escapes.
        """
        self.console.info("Starting development environment setup...")
        self.check_environment()

        report = BootstrapReport()
        ctx = InstallContext(
            settings=self.settings,
            runner=self.runner,
            http=self.http,
            console=self.console,
            search_path=self.search_path,
        )
        if self.machine:
            ctx.machine = self.machine

        try:
            for installer in self.installers:
                report.results.append(self._install(installer, ctx))
        finally:
            self.http.close()

        report.search_path = ctx.search_path
        self._update_shell_config(report)
        report.statuses = SummaryReporter(self.runner, self.console).report(ctx.search_path)

        rc_hint = report.rc_file or self.settings.rc_file()
        self.console.success(
            "Setup complete! You may need to restart your terminal or run "
            f"'source {rc_hint}' to use all tools."
        )
        self.console.success("Setup script completed successfully!")
        logger.info(
            "bootstrap_complete",
            installed=[r.tool for r in report.results if r.success],
            failed=report.failed_tools,
        )
        return report

    def status(self) -> list[ToolStatus]:
        """Print the summary without installing anything."""
        return SummaryReporter(self.runner, self.console).report(self.search_path)

    def _install(self, installer: ToolInstaller, ctx: InstallContext) -> InstallResult:
        try:
            return installer.install(ctx)
        except Exception as e:
            logger.error(
                "installer_crashed",
                tool=installer.name,
                error=str(e),
                error_type=type(e).__name__,
            )
            self.console.warning(f"Failed to install {installer.label}, but continuing with other tools...")
            return InstallResult(
                tool=installer.name,
                success=False,
                method=None,
                message=f"Installer error: {e}",
            )

    def _update_shell_config(self, report: BootstrapReport) -> None:
        self.console.info("Updating shell configuration...")
        shell = self.settings.shell or ShellKind.PROFILE
        updater = ShellConfigUpdater(self.settings.home, shell)
        report.rc_file = updater.rc_file

        try:
            update = updater.update()
        except OSError as e:
            logger.error("shell_config_update_failed", rc_file=str(updater.rc_file), error=str(e))
            self.console.error(f"Could not update {updater.rc_file}: {e}")
            return

        report.appended_lines = update.appended
        for line in update.appended:
            self.console.info(f"Added {updater.label_for(line)} to PATH in {update.rc_file}")
        self.console.success("Shell configuration updated")
