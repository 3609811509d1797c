"""
Tool installer framework for devstrap.

Each tool gets a ToolInstaller subclass that declares its executables, the
directories its installers write to, and an ordered list of installation
steps. install() walks that list until one step succeeds, never letting a
failure escape, then re-probes the tool.

The shared state of a run lives in InstallContext. Its search_path is
replaced, not mutated, whenever an installer adds directories to it.
"""

from __future__ import annotations

import io
import platform
import stat
import tarfile
import zipfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Sequence

import structlog

from devstrap.config.environment import SearchPath, home_dirs
from devstrap.config.settings import DevstrapSettings
from devstrap.setup.checker import ToolStatus, probe_tool
from devstrap.setup.runner import CommandRunner
from devstrap.utils.error_handling import (
    InstallMethod,
    InstallMethodError,
    MethodAttempt,
    guard_method,
)
from devstrap.utils.http_client import DownloadClient

if TYPE_CHECKING:
    import subprocess

    from devstrap.cli.display import StatusConsole

logger = structlog.get_logger(__name__)


@dataclass
class InstallContext:
    """Everything an installer needs for one run."""

    settings: DevstrapSettings
    runner: CommandRunner
    http: DownloadClient
    console: StatusConsole
    search_path: SearchPath
    machine: str = field(default_factory=platform.machine)

    @property
    def home(self) -> Path:
        return self.settings.home

    def which(self, name: str) -> str | None:
        """Resolve an executable on the current search path."""
        return self.search_path.which(name)

    def add_to_path(self, *directories: str | Path) -> None:
        """Put directories in front of the search path for later steps."""
        self.search_path = self.search_path.prepend(*directories)
        logger.debug("search_path_updated", prepended=[str(d) for d in directories])

    def run(self, command: Sequence[str], **kwargs) -> subprocess.CompletedProcess[str]:
        """Run a command on the current search path."""
        return self.runner.run(command, search_path=self.search_path, **kwargs)

    def run_privileged(
        self,
        command: Sequence[str],
        **kwargs,
    ) -> subprocess.CompletedProcess[str]:
        """Run a command that needs root, through sudo unless disabled."""
        return self.run(command, sudo=self.settings.use_sudo, **kwargs)

    def probe(self, name: str) -> ToolStatus:
        return probe_tool(name, self.runner, self.search_path)


@dataclass
class InstallStep:
    """One method in a fallback chain."""

    method: InstallMethod
    description: str
    action: Callable[[InstallContext], None]


@dataclass
class InstallResult:
    """Result of installing one tool."""

    tool: str
    success: bool
    method: InstallMethod | None
    message: str
    already_installed: bool = False
    attempts: list[MethodAttempt] = field(default_factory=list)


class ToolInstaller(ABC):
    """
    Base class for installing one tool through a fallback chain.

    Subclasses set name, binaries and tool_dirs and implement steps().
    """

    name: str = ""
    display_name: str = ""
    # Executables that must all resolve for the tool to count as present
    binaries: tuple[str, ...] = ()
    # Executables verified after installation (defaults to binaries)
    verify_binaries: tuple[str, ...] = ()
    # Home-relative directories the installers write to; searched before the
    # presence check so tools from an earlier run are found
    tool_dirs: tuple[str, ...] = ()
    # Verb of the progress line printed when the installer starts
    action_verb: str = "Installing"

    @property
    def label(self) -> str:
        return self.display_name or self.name

    @abstractmethod
    def steps(self, ctx: InstallContext) -> list[InstallStep]:
        """Installation methods, in the order they should be tried."""

    def is_present(self, ctx: InstallContext) -> bool:
        """Check whether the tool is already installed."""
        return all(ctx.which(binary) for binary in self.binaries)

    def report_present(self, ctx: InstallContext) -> None:
        """Print details about an already installed tool."""
        ctx.console.warning(f"{self.name} is already installed, skipping...")
        self._print_versions(ctx, self.binaries)

    def verify(self, ctx: InstallContext) -> str | None:
        """
        Check the tool after its installation chain.

        Returns:
            The reason the installation is unusable, or None if it is fine.
        """
        expected = self.verify_binaries or self.binaries
        missing = [binary for binary in expected if not ctx.which(binary)]
        if missing:
            return f"{', '.join(missing)} not found after installation"
        return None

    def after_install(self, ctx: InstallContext) -> None:
        """Hook run after a successful installation."""

    def install(self, ctx: InstallContext) -> InstallResult:
        """
        Install the tool unless it is already present.

        Returns:
            InstallResult with the outcome. Failures are reported, not raised.
        """
        ctx.console.info(f"{self.action_verb} {self.label}...")
        ctx.add_to_path(*home_dirs(ctx.home, self.tool_dirs))

        if self.is_present(ctx):
            logger.info("tool_already_installed", tool=self.name)
            self.report_present(ctx)
            return InstallResult(
                tool=self.name,
                success=True,
                method=None,
                message=f"{self.name} is already installed",
                already_installed=True,
            )

        attempts: list[MethodAttempt] = []
        for step in self.steps(ctx):
            ctx.console.info(f"Trying {step.description}...")
            attempt = guard_method(self.name, step.method, lambda step=step: step.action(ctx))
            attempts.append(attempt)
            if attempt.success:
                break
            ctx.console.warning(f"{step.description} failed: {attempt.error}")

        succeeded = next((a for a in attempts if a.success), None)
        problem = self.verify(ctx) if succeeded is not None else None

        if succeeded is not None and problem is None:
            self.after_install(ctx)
            ctx.console.success(f"{self.label} installed successfully")
            self._print_versions(ctx, self.verify_binaries or self.binaries)
            logger.info("tool_installed", tool=self.name, method=succeeded.method.value)
            return InstallResult(
                tool=self.name,
                success=True,
                method=succeeded.method,
                message=f"Installed {self.name} via {succeeded.method.value}",
                attempts=attempts,
            )

        if problem is not None:
            reason = problem
        elif attempts:
            reason = "all installation methods failed"
        else:
            reason = "no installation method available"

        ctx.console.warning(f"Failed to install {self.label}, but continuing with other tools...")
        logger.warning("tool_install_failed", tool=self.name, reason=reason, attempts=len(attempts))
        return InstallResult(
            tool=self.name,
            success=False,
            method=succeeded.method if succeeded else None,
            message=f"Failed to install {self.name}: {reason}",
            attempts=attempts,
        )

    def _print_versions(self, ctx: InstallContext, binaries: Sequence[str]) -> None:
        for binary in binaries:
            status = ctx.probe(binary)
            if status.version:
                ctx.console.detail(status.version)


def run_remote_script(
    ctx: InstallContext,
    url: str,
    interpreter: Sequence[str],
    privileged: bool = False,
    preserve_env: bool = False,
) -> None:
    """Download an installer script and pipe it into an interpreter."""
    script = ctx.http.fetch_text(url)
    if privileged:
        ctx.run(
            interpreter,
            input=script,
            sudo=ctx.settings.use_sudo,
            preserve_env=preserve_env,
        )
    else:
        ctx.run(interpreter, input=script)


def install_release_binary(
    ctx: InstallContext,
    url: str,
    member: str,
    destination: Path,
) -> Path:
    """
    Download a release archive and install one executable from it.

    Both .zip and .tar.gz archives are supported.

    Raises:
        InstallMethodError: If the download fails, the archive is unreadable
            or the member is missing.
    """
    payload = ctx.http.fetch_bytes(url)

    try:
        if url.endswith(".zip"):
            with zipfile.ZipFile(io.BytesIO(payload)) as archive:
                try:
                    data = archive.read(member)
                except KeyError as e:
                    raise InstallMethodError(f"{member} not found in {url}") from e
        else:
            with tarfile.open(fileobj=io.BytesIO(payload), mode="r:*") as archive:
                try:
                    extracted = archive.extractfile(member)
                except KeyError as e:
                    raise InstallMethodError(f"{member} not found in {url}") from e
                if extracted is None:
                    raise InstallMethodError(f"{member} in {url} is not a regular file")
                data = extracted.read()
    except (zipfile.BadZipFile, tarfile.TarError) as e:
        raise InstallMethodError(f"Could not unpack {url}: {e}") from e

    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(data)
    destination.chmod(
        destination.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH
    )
    logger.info("release_binary_installed", url=url, destination=str(destination))
    return destination
