"""
Setup checker for devstrap.

This module validates the host before anything is installed and probes
tools for presence and version. The precondition checks are fatal; the
probes are purely observational.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import structlog

from devstrap.config.environment import SearchPath
from devstrap.setup.runner import CommandRunner
from devstrap.utils.error_handling import FatalPreconditionError, InstallMethodError

logger = structlog.get_logger(__name__)

# Tool every installer script relies on for downloads
FETCH_TOOL = "curl"


class ComponentStatus(str, Enum):
    """Status of a checked component."""

    OK = "ok"
    MISSING = "missing"
    ERROR = "error"
    NOT_RUNNING = "not_running"


@dataclass
class ComponentCheck:
    """Result of checking a component."""

    name: str
    status: ComponentStatus
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_ok(self) -> bool:
        return self.status == ComponentStatus.OK


@dataclass
class ToolStatus:
    """Presence and version of a tool, recomputed on every probe."""

    name: str
    installed: bool
    version: str | None = None
    path: str | None = None


def probe_tool(name: str, runner: CommandRunner, search_path: SearchPath) -> ToolStatus:
    """
    Probe a tool for presence and version.

    The version is the first line printed by a successful `<name> --version`.
    A tool that resolves but cannot report a version is still installed.
    """
    path = search_path.which(name)
    if path is None:
        logger.debug("tool_not_found", tool=name)
        return ToolStatus(name=name, installed=False)

    version = None
    try:
        result = runner.run([name, "--version"], search_path=search_path, check=False)
        output = (result.stdout or "").strip() or (result.stderr or "").strip()
        if result.returncode == 0 and output:
            version = output.splitlines()[0].strip()
    except InstallMethodError as e:
        logger.warning("tool_version_probe_failed", tool=name, error=e.message)

    logger.debug("tool_found", tool=name, path=path, version=version)
    return ToolStatus(name=name, installed=True, version=version, path=path)


class EnvironmentChecker:
    """
    Checks that the host can be bootstrapped at all.

    Only Linux hosts with curl on the search path are supported; anything
    else stops the run before a single installer is attempted.
    """

    def __init__(self, os_type: str | None = None) -> None:
        """
        Initialize the checker.

        Args:
            os_type: Platform identifier to check. Defaults to sys.platform.
        """
        self._os_type = os_type if os_type is not None else sys.platform

    def check_os(self) -> ComponentCheck:
        """Check the host is a Linux system."""
        if self._os_type.startswith("linux"):
            return ComponentCheck(
                name="Operating system",
                status=ComponentStatus.OK,
                message="Linux host",
                details={"os_type": self._os_type},
            )
        return ComponentCheck(
            name="Operating system",
            status=ComponentStatus.ERROR,
            message="This tool is designed for Linux environments (GitHub Codespaces)",
            details={"os_type": self._os_type},
        )

    def check_fetch_tool(self, search_path: SearchPath) -> ComponentCheck:
        """Check curl is available."""
        path = search_path.which(FETCH_TOOL)
        if path:
            return ComponentCheck(
                name=FETCH_TOOL,
                status=ComponentStatus.OK,
                message=f"{FETCH_TOOL} is available",
                details={"path": path},
            )
        return ComponentCheck(
            name=FETCH_TOOL,
            status=ComponentStatus.MISSING,
            message=f"{FETCH_TOOL} is required but not installed",
        )

    def check_all(self, search_path: SearchPath) -> list[ComponentCheck]:
        """Run every precondition check, in order."""
        return [self.check_os(), self.check_fetch_tool(search_path)]

    def ensure_supported(self, search_path: SearchPath) -> None:
        """
        Fail fast on the first failed precondition.

        Raises:
            FatalPreconditionError: If the OS is unsupported or curl is missing.
        """
        for check in self.check_all(search_path):
            if not check.is_ok:
                logger.error(
                    "environment_check_failed",
                    component=check.name,
                    status=check.status.value,
                    **check.details,
                )
                raise FatalPreconditionError(check.message, {"component": check.name})

        logger.info("environment_check_passed", os_type=self._os_type)


def check_docker(runner: CommandRunner, search_path: SearchPath) -> ComponentCheck:
    """Check if Docker is installed and its daemon is reachable."""
    docker = probe_tool("docker", runner, search_path)
    if not docker.installed:
        return ComponentCheck(
            name="Docker",
            status=ComponentStatus.MISSING,
            message="Docker is not installed",
            details={"install_url": "https://docs.docker.com/get-docker/"},
        )

    try:
        info = runner.run(["docker", "info"], search_path=search_path, check=False)
    except InstallMethodError as e:
        return ComponentCheck(
            name="Docker",
            status=ComponentStatus.ERROR,
            message=f"Error checking Docker: {e.message}",
            details={"version": docker.version},
        )

    if info.returncode != 0:
        return ComponentCheck(
            name="Docker",
            status=ComponentStatus.NOT_RUNNING,
            message="Docker daemon is not running",
            details={"version": docker.version},
        )

    return ComponentCheck(
        name="Docker",
        status=ComponentStatus.OK,
        message="Docker daemon is running",
        details={"version": docker.version, "path": docker.path},
    )
