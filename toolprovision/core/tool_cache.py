"""
Host-wide tool cache keyed by (name, version).

Installations are copied under <cache>/tools/<name>/<version>/ and recorded in
registry.json. An entry is only written after the copy is complete, so a
failed or interrupted store never shows up as a cache hit. Entries are never
invalidated or deleted: a published version string is assumed immutable.
Storing an existing key again replaces its installation.
"""

import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from toolprovision.core.directory import ensure_cache_structure
from toolprovision.core.exceptions import CacheError
from toolprovision.core.filesystem import atomic_write, copy_tree, remove_path
from toolprovision.core.locking import DEFAULT_REGISTRY_TIMEOUT, LockManager

logger = logging.getLogger(__name__)

REGISTRY_VERSION = 1


def cache_key(name: str, version: str) -> str:
    """Registry key for a tool, e.g. 'compiler@4.0.5'."""
    return f"{name}@{version}"


class ToolCache:
    """
    Opaque key -> path store backing the acquisition pipeline.

    Example:
        >>> cache = ToolCache(Path("/opt/toolcache"))
        >>> cache.find("runtime", "2.4.0")
        >>> path = cache.store("runtime", "2.4.0", Path("/tmp/work/runtime-2.4.0"))
        >>> cache.find("runtime", "2.4.0") == path
        True
    """

    def __init__(
        self,
        cache_dir: Optional[Path] = None,
        lock_timeout: int = DEFAULT_REGISTRY_TIMEOUT,
    ):
        """
        Args:
            cache_dir: Cache root (default: global cache dir)
            lock_timeout: Timeout in seconds for acquiring the registry lock
        """
        layout = ensure_cache_structure(cache_dir)

        self.cache_dir = layout["root"]
        self.tools_dir = layout["tools"]
        self.downloads_dir = layout["downloads"]
        self.registry_path = self.cache_dir / "registry.json"
        self.lock_manager = LockManager(layout["lock"])
        self.lock_timeout = lock_timeout

        logger.debug(f"Initialized tool cache at {self.cache_dir}")

    def _load_registry(self) -> dict:
        if not self.registry_path.exists():
            return {"version": REGISTRY_VERSION, "tools": {}}

        try:
            with open(self.registry_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Failed to load registry: {e}")
            raise CacheError(f"Failed to load registry: {e}") from e

        if not isinstance(data, dict) or "tools" not in data:
            raise CacheError(f"Invalid registry format: {self.registry_path}")

        return data

    def _save_registry(self, data: dict):
        try:
            atomic_write(
                self.registry_path, json.dumps(data, indent=2, ensure_ascii=False)
            )
        except OSError as e:
            logger.error(f"Failed to save registry: {e}")
            raise CacheError(f"Failed to save registry: {e}") from e

        logger.debug(f"Saved registry with {len(data['tools'])} tools")

    def find(self, name: str, version: str) -> Optional[Path]:
        """
        Look up a cached installation.

        Returns:
            Absolute path of the installation, or None on a miss. An entry
            whose directory has disappeared counts as a miss.
        """
        entry = self._load_registry()["tools"].get(cache_key(name, version))
        if entry is None:
            logger.debug(f"Cache miss: {name} {version}")
            return None

        path = Path(entry["path"])
        if not path.exists():
            logger.warning(f"Cached path for {name} {version} is missing: {path}")
            return None

        logger.debug(f"Cache hit: {name} {version} -> {path}")
        return path

    def store(
        self,
        name: str,
        version: str,
        source: Path,
        source_url: Optional[str] = None,
    ) -> Path:
        """
        Copy `source` into the cache and register it under (name, version).

        Args:
            name: Tool name
            version: Tool version
            source: File or directory holding the installation
            source_url: Where the installation was downloaded from

        Returns:
            Canonical cached path

        Raises:
            CacheError: If the copy or the registry update fails
        """
        source = Path(source)
        if not source.exists():
            raise CacheError(f"Cannot cache missing path: {source}")

        target = self.tools_dir / name / version
        staging = target.parent / f".{version}.{uuid.uuid4().hex}.partial"

        try:
            copy_tree(source, staging)
            if target.exists() or target.is_symlink():
                # A store that died before registering, or a refreshed moving tag
                logger.debug(f"Replacing cache directory: {target}")
                remove_path(target)
            staging.rename(target)
        except OSError as e:
            remove_path(staging)
            raise CacheError(f"Failed to cache {name} {version}: {e}") from e

        target = target.resolve()

        with self.lock_manager.registry_lock(timeout=self.lock_timeout):
            data = self._load_registry()
            data["tools"][cache_key(name, version)] = {
                "name": name,
                "version": version,
                "path": str(target),
                "source_url": source_url,
                "installed": datetime.now().isoformat(),
            }
            self._save_registry(data)

        logger.info(f"Cached {name} {version} at {target}")
        return target

    def get_entry(self, name: str, version: str) -> Optional[Dict]:
        """Raw registry metadata for a key, or None."""
        return self._load_registry()["tools"].get(cache_key(name, version))

    def list_entries(self) -> List[Dict]:
        """All registry entries, sorted by key."""
        tools = self._load_registry()["tools"]
        return [tools[key] for key in sorted(tools)]


__all__ = ["ToolCache", "cache_key"]
