"""
Centralized exception hierarchy for toolprovision.

Every error raised by the acquisition pipeline derives from
ToolProvisionError so callers can translate failures in one place.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class ToolProvisionError(Exception):
    """Base exception for all toolprovision errors."""

    pass


# ============================================================================
# Host Exceptions
# ============================================================================


class HostError(ToolProvisionError):
    """Base exception for unsupported host environments."""

    pass


class UnsupportedPlatformError(HostError):
    """Raised when the host operating system is outside linux/windows/macos."""

    def __init__(self, platform_name: str):
        self.platform_name = platform_name
        super().__init__(f"{platform_name} not supported")


class UnsupportedArchError(HostError):
    """Raised when the host CPU architecture has no usable build."""

    def __init__(self, arch: str, platform_name: str = ""):
        self.arch = arch
        self.platform_name = platform_name
        msg = f"{arch} not supported"
        if platform_name:
            msg += f" on {platform_name}"
        super().__init__(msg)


# ============================================================================
# Download Exceptions
# ============================================================================


class DownloadError(ToolProvisionError):
    """Base exception for download failures."""

    pass


class DownloadExhaustedError(DownloadError):
    """Raised when every download attempt failed."""

    def __init__(self, url: str, attempts: int, last_error: Exception):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed to download {url} after {attempts} attempts: {last_error}"
        )


# ============================================================================
# Archive Exceptions
# ============================================================================


class ArchiveExtractionError(ToolProvisionError):
    """Failed to extract an archive."""

    pass


class UnsupportedFormatError(ArchiveExtractionError):
    """Archive extension is not one of the known formats."""

    def __init__(self, ext: str):
        self.ext = ext
        super().__init__(f"unknown ext: {ext}")


class InsecureArchiveError(ArchiveExtractionError):
    """Archive contains members that would escape the destination."""

    pass


class ToolRootNotFoundError(ToolProvisionError):
    """Raised when an extracted archive has no entry to use as tool root."""

    def __init__(self, extract_path):
        self.extract_path = extract_path
        super().__init__(f"tool directory not found: {extract_path}")


# ============================================================================
# Cache Exceptions
# ============================================================================


class CacheError(ToolProvisionError):
    """Base exception for tool cache errors."""

    pass


class CacheLockTimeout(CacheError):
    """Raised when a cache lock cannot be acquired within timeout."""

    pass


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigError(ToolProvisionError):
    """Configuration parsing or validation error."""

    pass


class VersionError(ToolProvisionError):
    """Requested version is neither a release version nor a nightly tag."""

    pass
