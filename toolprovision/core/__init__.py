"""
Core functionality for toolprovision.

This package contains the foundational modules the acquisition pipeline
depends on: host detection, downloads, archives, locking and the tool cache.
"""

from .platform import (
    HostEnv,
    resolve_platform,
    resolve_arch,
)

from .download import (
    RetryPolicy,
    Downloader,
)

from .filesystem import (
    unpack,
    find_tool_root,
)

from .locking import LockManager

from .tool_cache import ToolCache

from .exceptions import (
    ToolProvisionError,
    HostError,
    UnsupportedPlatformError,
    UnsupportedArchError,
    DownloadError,
    DownloadExhaustedError,
    ArchiveExtractionError,
    UnsupportedFormatError,
    InsecureArchiveError,
    ToolRootNotFoundError,
    CacheError,
    CacheLockTimeout,
    ConfigError,
    VersionError,
)

__all__ = [
    "HostEnv",
    "resolve_platform",
    "resolve_arch",
    "RetryPolicy",
    "Downloader",
    "unpack",
    "find_tool_root",
    "LockManager",
    "ToolCache",
    "ToolProvisionError",
    "HostError",
    "UnsupportedPlatformError",
    "UnsupportedArchError",
    "DownloadError",
    "DownloadExhaustedError",
    "ArchiveExtractionError",
    "UnsupportedFormatError",
    "InsecureArchiveError",
    "ToolRootNotFoundError",
    "CacheError",
    "CacheLockTimeout",
    "ConfigError",
    "VersionError",
]
