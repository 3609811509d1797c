"""
External command execution for devstrap.

Every subprocess goes through CommandRunner. The program is resolved against
an explicit SearchPath and the child gets that path as its PATH, so a tool
installed earlier in the run is visible to later steps without touching the
process environment.
"""

from __future__ import annotations

import os
import subprocess
from typing import Sequence

import structlog

from devstrap.config.environment import SearchPath
from devstrap.utils.error_handling import InstallMethodError

logger = structlog.get_logger(__name__)

# Characters of stderr kept in error messages
_STDERR_TAIL = 500


class CommandRunner:
    """Run external commands against an explicit search path."""

    def __init__(self, timeout: float | None = None) -> None:
        """
        Initialize the runner.

        Args:
            timeout: Per-command timeout in seconds. None waits forever.
        """
        self._timeout = timeout

    def run(
        self,
        command: Sequence[str],
        *,
        search_path: SearchPath,
        input: str | None = None,
        sudo: bool = False,
        preserve_env: bool = False,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """
        Run a command and capture its output.

        Args:
            command: Program and arguments.
            search_path: Path used to resolve the program and passed to the child.
            input: Text written to the child's stdin.
            sudo: Run the command through sudo.
            preserve_env: Pass -E to sudo.
            check: Raise InstallMethodError on a non-zero exit code.

        Returns:
            The completed process.

        Raises:
            InstallMethodError: If the program cannot be resolved, times out,
                cannot be started, or (with check) exits non-zero.
        """
        argv = list(command)
        if not argv:
            raise ValueError("command must not be empty")

        if sudo:
            sudo_path = search_path.which("sudo")
            if sudo_path is None:
                raise InstallMethodError("sudo is not available", {"command": argv[0]})
            argv = [sudo_path, *(["-E"] if preserve_env else []), *argv]
        else:
            resolved = search_path.which(argv[0])
            if resolved is None:
                raise InstallMethodError(f"{argv[0]} is not available", {"command": argv[0]})
            argv[0] = resolved

        env = dict(os.environ)
        env["PATH"] = search_path.as_env()

        logger.debug("running_command", command=" ".join(argv))

        try:
            result = self._spawn(argv, env, input)
        except subprocess.TimeoutExpired as e:
            logger.warning("command_timeout", command=argv[0], timeout=self._timeout)
            raise InstallMethodError(
                f"{' '.join(command)} timed out after {self._timeout}s",
                {"command": argv[0]},
            ) from e
        except OSError as e:
            logger.warning("command_spawn_failed", command=argv[0], error=str(e))
            raise InstallMethodError(
                f"Could not run {command[0]}: {e}",
                {"command": argv[0]},
            ) from e

        logger.debug("command_finished", command=argv[0], returncode=result.returncode)

        if check and result.returncode != 0:
            stderr = (result.stderr or "").strip()[-_STDERR_TAIL:]
            raise InstallMethodError(
                f"{' '.join(command)} exited with status {result.returncode}"
                + (f": {stderr}" if stderr else ""),
                {"command": argv[0], "returncode": result.returncode},
            )

        return result

    def _spawn(
        self,
        argv: list[str],
        env: dict[str, str],
        input: str | None,
    ) -> subprocess.CompletedProcess[str]:
        """Start the process and wait for it."""
        return subprocess.run(
            argv,
            input=input,
            capture_output=True,
            text=True,
            env=env,
            timeout=self._timeout,
        )
