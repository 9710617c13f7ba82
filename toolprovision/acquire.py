"""
Cache-or-fetch acquisition of tool assets.

This module orchestrates the acquisition pipeline for one asset:
1. Look up (name, version) in the tool cache and return on a hit
2. Take the per-key lock and look again (another process may have finished)
3. Download the archive with retry
4. Extract it into a clean work directory
5. Locate the tool root inside the extracted tree
6. Store the root in the cache and return the cached path

Any failure in steps 3-6 propagates and leaves no cache entry behind.
Moving tags such as the nightly `latest` skip both lookups and always
refresh their cache entry.
"""

import logging
import time
from pathlib import Path
from typing import Optional

from toolprovision.assets import AssetDescriptor
from toolprovision.core.download import Downloader
from toolprovision.core.filesystem import find_tool_root, remove_path, unpack
from toolprovision.core.locking import DEFAULT_TOOL_TIMEOUT
from toolprovision.core.tool_cache import ToolCache, cache_key

logger = logging.getLogger(__name__)


class ToolAcquirer:
    """
    Provides tool installations from the cache, downloading them on a miss.

    Example:
        >>> env = HostEnv.from_host()
        >>> acquirer = ToolAcquirer(ToolCache(), Downloader(RetryPolicy()))
        >>> path = acquirer.acquire(compiler_asset("4.3.4", env))
        >>> print(f"Installed at: {path}")
    """

    def __init__(
        self,
        cache: ToolCache,
        downloader: Optional[Downloader] = None,
        work_dir: Optional[Path] = None,
        lock_timeout: Optional[float] = None,
    ):
        """
        Args:
            cache: Tool cache to read and populate
            downloader: Downloader (default: Downloader() with default policy)
            work_dir: Directory for archives and extraction (default: cache downloads dir)
            lock_timeout: Seconds to wait for another process acquiring the
                same tool (default: the downloader's worst case plus
                DEFAULT_TOOL_TIMEOUT for extraction and caching)
        """
        self.cache = cache
        self.downloader = downloader or Downloader()
        self.work_dir = Path(work_dir) if work_dir is not None else cache.downloads_dir
        self.work_dir.mkdir(parents=True, exist_ok=True)

        if lock_timeout is None:
            lock_timeout = DEFAULT_TOOL_TIMEOUT + self.downloader.max_duration_ms() / 1000
        self.lock_timeout = lock_timeout

    def acquire(self, descriptor: AssetDescriptor) -> Path:
        """
        Return the installation path for `descriptor`, fetching it if needed.

        Args:
            descriptor: Asset to acquire

        Returns:
            Cached installation path

        Raises:
            UnsupportedPlatformError, UnsupportedArchError: Host cannot use the asset
            DownloadExhaustedError: All download attempts failed
            ArchiveExtractionError: Archive could not be extracted
            ToolRootNotFoundError: Archive had no tool root
            CacheError: Cache could not be updated
        """
        name, version = descriptor.name, descriptor.version
        key = cache_key(name, version)

        if not descriptor.is_cacheable:
            logger.info(f"{descriptor} names a moving build; refreshing cache entry")
            with self.cache.lock_manager.tool_lock(key, timeout=self.lock_timeout):
                return self._fetch_and_store(descriptor)

        cached = self.cache.find(name, version)
        if cached is not None:
            logger.info(f"Found {descriptor} in cache: {cached}")
            return cached

        with self.cache.lock_manager.tool_lock(key, timeout=self.lock_timeout):
            cached = self.cache.find(name, version)
            if cached is not None:
                logger.info(f"{descriptor} was cached by another process: {cached}")
                return cached

            return self._fetch_and_store(descriptor)

    def _fetch_and_store(self, descriptor: AssetDescriptor) -> Path:
        url = descriptor.download_url
        extract_dir = self.work_dir / descriptor.file_name_without_ext
        archive_path = None

        start = time.time()
        try:
            archive_path = self.downloader.fetch(url, self.work_dir)

            unpack(archive_path, extract_dir, descriptor.file_ext)
            tool_root = find_tool_root(extract_dir, descriptor.is_directory_nested)

            cached = self.cache.store(
                descriptor.name, descriptor.version, tool_root, source_url=url
            )
        finally:
            self._cleanup(archive_path, extract_dir)

        logger.info(f"Installed {descriptor} in {time.time() - start:.2f}s")
        return cached

    def _cleanup(self, archive_path: Optional[Path], extract_dir: Path):
        """Remove the downloaded archive and extraction directory."""
        for path in (archive_path, extract_dir):
            if path is None or not (path.exists() or path.is_symlink()):
                continue
            try:
                remove_path(path)
                logger.debug(f"Removed temporary path: {path}")
            except OSError as e:
                logger.warning(f"Failed to remove temporary path {path}: {e}")


def acquire(
    descriptor: AssetDescriptor,
    cache: Optional[ToolCache] = None,
    downloader: Optional[Downloader] = None,
) -> Path:
    """
    Convenience function to acquire one asset.

    For several assets, create a ToolAcquirer instance and reuse it.

    Example:
        >>> from toolprovision.acquire import acquire
        >>> path = acquire(runtime_asset("2.4.0", HostEnv.from_host()))
    """
    return ToolAcquirer(cache or ToolCache(), downloader).acquire(descriptor)


__all__ = ["ToolAcquirer", "acquire"]
