"""
devstrap configuration module.

This module provides settings handling and the explicit environment values
(search path, target shell) passed to the setup components.
"""

from devstrap.config.environment import (
    EnvironmentInfo,
    SearchPath,
    detect_shell,
    get_environment_info,
    home_dirs,
)
from devstrap.config.settings import DevstrapSettings, ShellKind

__all__ = [
    # Settings
    "DevstrapSettings",
    "ShellKind",
    # Environment
    "EnvironmentInfo",
    "SearchPath",
    "detect_shell",
    "get_environment_info",
    "home_dirs",
]
