"""
Directory layout for the toolprovision cache.

Directory Structure:
    Global Cache (~/.toolprovision/ or %USERPROFILE%\\.toolprovision\\):
        - tools/<name>/<version>/ : Cached tool installations
        - downloads/              : Temporary archives and extraction dirs
        - lock/                   : Concurrent access control files
        - registry.json           : (name, version) -> path entries

The location can be moved with the TOOLPROVISION_CACHE_DIR environment
variable (shared build hosts usually point it at a runner-wide directory).
"""

import os
from pathlib import Path
from typing import Dict, Optional

from toolprovision.core.exceptions import CacheError

CACHE_DIR_ENV = "TOOLPROVISION_CACHE_DIR"


def get_global_cache_dir() -> Path:
    """
    Get the platform-specific global cache directory path.

    Returns:
        Path: The global cache directory path.
            - $TOOLPROVISION_CACHE_DIR if set
            - Windows: %USERPROFILE%\\.toolprovision
            - Linux/macOS: ~/.toolprovision/

    Example:
        >>> cache_dir = get_global_cache_dir()
        >>> print(cache_dir)
        /home/user/.toolprovision  # on Linux
    """
    override = os.environ.get(CACHE_DIR_ENV)
    if override:
        return Path(override).expanduser()

    if os.name == "nt":  # Windows
        user_profile = os.environ.get("USERPROFILE")
        if not user_profile:
            raise CacheError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine global cache directory."
            )
        return Path(user_profile) / ".toolprovision"
    else:  # Linux/macOS
        return Path.home() / ".toolprovision"


def ensure_cache_structure(cache_dir: Optional[Path] = None) -> Dict[str, Path]:
    """
    Create the cache directory layout if missing.

    Args:
        cache_dir: Cache root (default: get_global_cache_dir())

    Returns:
        Mapping of 'root', 'tools', 'downloads', 'lock' to their paths

    Raises:
        CacheError: If a directory cannot be created
    """
    root = Path(cache_dir) if cache_dir is not None else get_global_cache_dir()
    layout = {
        "root": root,
        "tools": root / "tools",
        "downloads": root / "downloads",
        "lock": root / "lock",
    }

    try:
        for path in layout.values():
            path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise CacheError(f"Failed to create cache directory {root}: {e}") from e

    return layout


__all__ = ["CACHE_DIR_ENV", "get_global_cache_dir", "ensure_cache_structure"]
