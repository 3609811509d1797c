"""
Error types and method guards for devstrap.

Failures are layered:
- FatalPreconditionError aborts the whole run before anything is installed
- InstallMethodError marks a single fallback method as failed
- anything else raised inside a method is logged and treated the same way

Installers never let a method failure escape; guard_method turns it into a
MethodAttempt record so the caller can move on to the next method.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

import structlog

logger = structlog.get_logger(__name__)


class DevstrapError(Exception):
    """Base class for devstrap errors."""

    def __init__(self, message: str, metadata: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.metadata = metadata or {}


class FatalPreconditionError(DevstrapError):
    """The host cannot be bootstrapped at all (unsupported OS, no curl)."""


class InstallMethodError(DevstrapError):
    """A single installation method failed; the next one may still succeed."""


class InstallMethod(str, Enum):
    """Installation method used in a fallback chain."""

    OFFICIAL_SCRIPT = "official_script"
    PIP = "pip"
    RELEASE_DOWNLOAD = "release_download"
    NPM = "npm"
    APT_REPOSITORY = "apt_repository"
    NODESOURCE = "nodesource"


@dataclass
class MethodAttempt:
    """Outcome of one method in a fallback chain."""

    method: InstallMethod
    success: bool
    error: str | None = None


def guard_method(
    tool: str,
    method: InstallMethod,
    func: Callable[[], Any],
    log_traceback: bool = False,
) -> MethodAttempt:
    """
    Run one installation method and never raise.

    Args:
        tool: Tool being installed, for log context.
        method: Method being attempted.
        func: Zero-argument callable performing the method. It signals
            failure by raising.
        log_traceback: Include the traceback of unexpected errors in logs.

    Returns:
        MethodAttempt describing the outcome.
    """
    try:
        func()
    except InstallMethodError as e:
        logger.warning(
            "install_method_failed",
            tool=tool,
            method=method.value,
            error=e.message,
            **e.metadata,
        )
        return MethodAttempt(method=method, success=False, error=e.message)
    except Exception as e:
        log_kwargs: dict[str, Any] = {
            "tool": tool,
            "method": method.value,
            "error": str(e),
            "error_type": type(e).__name__,
        }
        if log_traceback:
            log_kwargs["traceback"] = traceback.format_exc()
        logger.error("install_method_error", **log_kwargs)
        return MethodAttempt(
            method=method,
            success=False,
            error=f"{type(e).__name__}: {e}",
        )

    logger.info("install_method_succeeded", tool=tool, method=method.value)
    return MethodAttempt(method=method, success=True)
