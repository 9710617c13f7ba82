"""
File system utilities for toolprovision.

This module provides the file operations used by the acquisition pipeline:
- Archive extraction (.tar.gz, .zip) into a clean destination
- Discovery of the real tool root inside an extracted archive
- Safe file operations (atomic writes, guarded deletion, tree copies)
"""

import logging
import os
import shutil
import sys
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import Union

from toolprovision.core.exceptions import (
    ArchiveExtractionError,
    InsecureArchiveError,
    ToolRootNotFoundError,
    UnsupportedFormatError,
)

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"

TAR_GZ = ".tar.gz"
ZIP = ".zip"


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check whether `path` is located under `parent`.

    Example:
        >>> is_relative_to(Path('/a/b/c'), Path('/a'))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


# ============================================================================
# Archive Extraction
# ============================================================================


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    member_path = (destination / path).resolve()

    if not is_relative_to(member_path, destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{path}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


def remove_path(path: Union[str, Path]) -> None:
    """Remove a file, symlink or directory tree if present."""
    path = Path(path)

    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.is_dir():
        safe_rmtree(path)


def unpack(
    archive_path: Union[str, Path],
    destination: Union[str, Path],
    ext: str,
) -> Path:
    """
    Extract an archive into `destination`, replacing anything already there.

    The format is chosen from `ext` alone, not from the archive file name.

    Args:
        archive_path: Path to the archive file
        destination: Directory to extract into
        ext: Archive extension, '.tar.gz' or '.zip'

    Returns:
        The destination path

    Raises:
        UnsupportedFormatError: If ext is not a known format
        InsecureArchiveError: If the archive contains escaping member paths
        ArchiveExtractionError: If the archive is missing or corrupt

    Example:
        >>> unpack('/tmp/tool.tar.gz', '/tmp/work/tool-1.0.0-linux64', '.tar.gz')
        PosixPath('/tmp/work/tool-1.0.0-linux64')
    """
    archive_path = Path(archive_path)
    destination = Path(destination)

    if ext == TAR_GZ:
        extractor = _extract_tar_gz
    elif ext == ZIP:
        extractor = _extract_zip
    else:
        raise UnsupportedFormatError(ext)

    if not archive_path.exists():
        raise ArchiveExtractionError(f"Archive not found: {archive_path}")

    if destination.exists() or destination.is_symlink():
        logger.debug(f"Removing stale destination: {destination}")
        remove_path(destination)

    destination.mkdir(parents=True)

    logger.info(f"Extracting {archive_path.name} to {destination}")

    try:
        extractor(archive_path, destination)
    except InsecureArchiveError:
        raise
    except (tarfile.TarError, zipfile.BadZipFile, OSError, EOFError) as e:
        raise ArchiveExtractionError(f"Failed to extract {archive_path}: {e}") from e

    return destination


def _extract_zip(archive_path: Path, destination: Path) -> None:
    """Extract a ZIP archive."""
    with zipfile.ZipFile(archive_path, "r") as zf:
        members = zf.namelist()

        for member in members:
            _validate_archive_path(member, destination)

        zf.extractall(destination)

        # zipfile drops unix permission bits; tool binaries need them back
        if not IS_WINDOWS:
            for info in zf.infolist():
                mode = (info.external_attr >> 16) & 0o777
                if mode:
                    os.chmod(destination / info.filename, mode)


def _extract_tar_gz(archive_path: Path, destination: Path) -> None:
    """Extract a .tar.gz archive."""
    with tarfile.open(archive_path, "r:gz") as tar:
        for member in tar.getmembers():
            _validate_archive_path(member.name, destination)

        # Members are validated above for interpreters without filters
        if sys.version_info >= (3, 12):
            tar.extractall(destination, filter="tar")
        else:
            tar.extractall(destination)


# ============================================================================
# Tool Root Discovery
# ============================================================================


def find_tool_root(extract_path: Union[str, Path], nested: bool) -> Path:
    """
    Locate the real tool root inside an extracted archive.

    Release archives wrap the tool in a single directory whose name is
    generated at build time (e.g. 'haxe_20191217082701_67feacebc'), so it
    cannot be predicted from the asset name.

    Args:
        extract_path: Directory the archive was extracted into
        nested: Whether the root sits one level below extract_path

    Returns:
        Path to the tool root

    Raises:
        ToolRootNotFoundError: If nested and extract_path has no entries
    """
    extract_path = Path(extract_path)

    if not nested:
        return extract_path

    try:
        entries = sorted(name for name in os.listdir(extract_path) if name.strip())
    except FileNotFoundError as e:
        raise ToolRootNotFoundError(extract_path) from e

    if not entries:
        raise ToolRootNotFoundError(extract_path)

    if len(entries) > 1:
        directories = [name for name in entries if (extract_path / name).is_dir()]
        chosen = directories[0] if len(directories) == 1 else entries[0]
        logger.warning(
            f"Expected a single entry in {extract_path}, found {len(entries)}; "
            f"using {chosen}"
        )
    else:
        chosen = entries[0]

    tool_root = extract_path / chosen
    logger.debug(f"found tool root: {tool_root}")
    return tool_root


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    Example:
        >>> atomic_write('registry.json', '{"version": 1}')
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Create temp file in same directory (ensures same filesystem)
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        temp_path.unlink(missing_ok=True)
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Union[str, Path, None] = None
) -> None:
    """
    Remove a directory tree, optionally only when it lies under `require_prefix`.

    Raises:
        ValueError: If path is not under require_prefix
        OSError: If deletion fails

    Example:
        >>> safe_rmtree('/tmp/build', require_prefix='/tmp')
        >>> safe_rmtree('/usr/bin', require_prefix='/home')  # ValueError
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not is_relative_to(path, require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if IS_WINDOWS:

        def handle_remove_readonly(func, target, exc):
            """Error handler for Windows read-only files."""
            if not os.access(target, os.W_OK):
                os.chmod(target, 0o777)
                func(target)
            else:
                raise

        shutil.rmtree(path, onerror=handle_remove_readonly)
    else:
        shutil.rmtree(path)


def copy_tree(source: Union[str, Path], destination: Union[str, Path]) -> Path:
    """
    Copy a file or directory tree to `destination`, preserving symlinks.

    Returns:
        The destination path
    """
    source = Path(source)
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)

    if source.is_dir():
        shutil.copytree(source, destination, symlinks=True)
    else:
        shutil.copy2(source, destination)

    return destination


__all__ = [
    "TAR_GZ",
    "ZIP",
    "is_relative_to",
    "remove_path",
    "unpack",
    "find_tool_root",
    "atomic_write",
    "safe_rmtree",
    "copy_tree",
]
