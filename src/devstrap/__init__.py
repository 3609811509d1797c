"""
devstrap: development environment bootstrap for cloud coding containers.

This package checks the host, installs a fixed set of developer tools
through ordered fallback chains, wires their directories into the user's
shell rc file and reports what ended up available.
"""

from importlib.metadata import version

__version__ = version("devstrap")
__all__ = ["__version__"]
