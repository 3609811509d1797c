"""
devstrap utilities package.

This module exports the error types, method guard and HTTP download client
shared by the setup components.
"""

from devstrap.utils.error_handling import (
    DevstrapError,
    FatalPreconditionError,
    InstallMethod,
    InstallMethodError,
    MethodAttempt,
    guard_method,
)
from devstrap.utils.http_client import DownloadClient, HTTPClientConfig

__all__ = [
    # Errors
    "DevstrapError",
    "FatalPreconditionError",
    "InstallMethodError",
    # Method guard
    "InstallMethod",
    "MethodAttempt",
    "guard_method",
    # HTTP
    "DownloadClient",
    "HTTPClientConfig",
]
