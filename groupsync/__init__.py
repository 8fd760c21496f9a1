# =============================================================================
# GroupSync Main Package - Dynamic Version Loading
# =============================================================================
"""
GroupSync - local catch-up of a messaging account from per-group event logs

Version is loaded from installed package metadata (pyproject.toml
[project] version).
"""

from __future__ import annotations


def _get_version() -> str:
    """
    Get package version from installed metadata.

    Returns:
        Version string (e.g., "0.3.0")
    """
    from importlib.metadata import version, PackageNotFoundError

    try:
        return version("groupsync")
    except PackageNotFoundError:
        # Running from a source checkout without install
        return "0.0.0-dev"


__version__: str = _get_version()
__description__: str = "GroupSync - event log replay for peer-to-peer messaging accounts"
__author__: str = "GroupSync Team"

# =============================================================================
# EXPORTS
# =============================================================================
__all__ = [
    "__version__",
    "__description__",
    "__author__",
]
