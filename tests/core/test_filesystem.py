"""
Unit tests for filesystem utilities: extraction, tool root discovery,
and safe file operations.
"""

import io
import os
import sys
import tarfile
import zipfile

import pytest

from tests.fixtures.archives import TOOL_FILES, WRAPPER_DIR, make_zip
from toolprovision.core.exceptions import (
    ArchiveExtractionError,
    InsecureArchiveError,
    ToolRootNotFoundError,
    UnsupportedFormatError,
)
from toolprovision.core.filesystem import (
    atomic_write,
    copy_tree,
    find_tool_root,
    is_relative_to,
    remove_path,
    safe_rmtree,
    unpack,
)


class TestUnpack:
    """Test archive extraction."""

    def test_extract_tar_gz(self, nested_tar_gz, tmp_path):
        dest = tmp_path / "work" / "compiler-4.0.5-linux64"

        result = unpack(nested_tar_gz, dest, ".tar.gz")

        assert result == dest
        assert (dest / WRAPPER_DIR / "compiler").read_bytes() == TOOL_FILES[
            f"{WRAPPER_DIR}/compiler"
        ]
        assert (dest / WRAPPER_DIR / "std" / "StdTypes.hx").exists()

    def test_extract_zip(self, nested_zip, tmp_path):
        dest = tmp_path / "compiler-4.0.5-windows64"

        unpack(nested_zip, dest, ".zip")

        assert (dest / WRAPPER_DIR / "compiler").is_file()

    def test_format_chosen_by_ext_not_file_name(self, tmp_path):
        archive = make_zip(tmp_path / "download.tmp", {"tool/readme": b"hi"})
        dest = tmp_path / "out"

        unpack(archive, dest, ".zip")

        assert (dest / "tool" / "readme").read_bytes() == b"hi"

    def test_clears_stale_directory(self, nested_tar_gz, tmp_path):
        dest = tmp_path / "dest"
        dest.mkdir()
        (dest / "stale.txt").write_text("old")

        unpack(nested_tar_gz, dest, ".tar.gz")

        assert not (dest / "stale.txt").exists()
        assert sorted(os.listdir(dest)) == [WRAPPER_DIR]

    def test_replaces_stale_file(self, nested_tar_gz, tmp_path):
        dest = tmp_path / "dest"
        dest.write_text("not a directory")

        unpack(nested_tar_gz, dest, ".tar.gz")

        assert dest.is_dir()

    def test_unknown_extension(self, nested_tar_gz, tmp_path):
        dest = tmp_path / "dest"
        dest.mkdir()
        (dest / "keep.txt").write_text("untouched")

        with pytest.raises(UnsupportedFormatError, match="unknown ext: .7z"):
            unpack(nested_tar_gz, dest, ".7z")

        assert (dest / "keep.txt").exists()

    def test_missing_archive(self, tmp_path):
        with pytest.raises(ArchiveExtractionError, match="Archive not found"):
            unpack(tmp_path / "missing.tar.gz", tmp_path / "dest", ".tar.gz")

    def test_corrupt_archive(self, tmp_path):
        archive = tmp_path / "broken.tar.gz"
        archive.write_bytes(b"this is not gzip")

        with pytest.raises(ArchiveExtractionError, match="Failed to extract"):
            unpack(archive, tmp_path / "dest", ".tar.gz")

    def test_tar_directory_traversal_blocked(self, tmp_path):
        archive = tmp_path / "evil.tar.gz"
        with tarfile.open(archive, "w:gz") as tar:
            info = tarfile.TarInfo("../escape.txt")
            info.size = 4
            tar.addfile(info, io.BytesIO(b"evil"))

        with pytest.raises(InsecureArchiveError, match="directory traversal"):
            unpack(archive, tmp_path / "dest", ".tar.gz")

        assert not (tmp_path / "escape.txt").exists()

    def test_zip_directory_traversal_blocked(self, tmp_path):
        archive = make_zip(tmp_path / "evil.zip", {"../escape.txt": b"evil"})

        with pytest.raises(InsecureArchiveError):
            unpack(archive, tmp_path / "dest", ".zip")

    @pytest.mark.skipif(sys.platform == "win32", reason="unix permissions")
    def test_zip_restores_unix_mode(self, tmp_path):
        archive = tmp_path / "tool.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            executable = zipfile.ZipInfo("tool/bin/compiler")
            executable.external_attr = 0o755 << 16
            zf.writestr(executable, b"#!/bin/sh\n")
            plain = zipfile.ZipInfo("tool/README")
            plain.external_attr = 0o644 << 16
            zf.writestr(plain, b"docs")

        dest = unpack(archive, tmp_path / "dest", ".zip")

        assert os.access(dest / "tool" / "bin" / "compiler", os.X_OK)
        assert (dest / "tool" / "bin" / "compiler").stat().st_mode & 0o777 == 0o755
        assert (dest / "tool" / "README").stat().st_mode & 0o777 == 0o644

    @pytest.mark.skipif(sys.platform == "win32", reason="unix permissions")
    def test_tar_keeps_executable_bit(self, nested_tar_gz, tmp_path):
        dest = unpack(nested_tar_gz, tmp_path / "dest", ".tar.gz")

        assert os.access(dest / WRAPPER_DIR / "compiler", os.X_OK)


class TestFindToolRoot:
    """Test tool root discovery."""

    def test_not_nested_returns_extract_path(self, tmp_path):
        assert find_tool_root(tmp_path, nested=False) == tmp_path

    def test_single_generated_entry(self, tmp_path):
        (tmp_path / "generated-build-id").mkdir()

        assert find_tool_root(tmp_path, nested=True) == tmp_path / "generated-build-id"

    def test_single_file_entry(self, tmp_path):
        (tmp_path / "tool.bin").write_bytes(b"\x7fELF")

        assert find_tool_root(tmp_path, nested=True) == tmp_path / "tool.bin"

    def test_empty_directory(self, tmp_path):
        with pytest.raises(ToolRootNotFoundError) as exc_info:
            find_tool_root(tmp_path, nested=True)

        assert exc_info.value.extract_path == tmp_path
        assert str(tmp_path) in str(exc_info.value)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ToolRootNotFoundError):
            find_tool_root(tmp_path / "missing", nested=True)

    @pytest.mark.skipif(sys.platform == "win32", reason="whitespace file names")
    def test_whitespace_entries_ignored(self, tmp_path):
        (tmp_path / " ").mkdir()
        (tmp_path / "real-root").mkdir()

        assert find_tool_root(tmp_path, nested=True) == tmp_path / "real-root"

    @pytest.mark.skipif(sys.platform == "win32", reason="whitespace file names")
    def test_only_whitespace_entries(self, tmp_path):
        (tmp_path / "  ").mkdir()

        with pytest.raises(ToolRootNotFoundError):
            find_tool_root(tmp_path, nested=True)

    def test_prefers_single_directory_among_entries(self, tmp_path):
        (tmp_path / "LICENSE").write_text("mit")
        (tmp_path / "tool_2024").mkdir()

        assert find_tool_root(tmp_path, nested=True) == tmp_path / "tool_2024"

    def test_extracted_archive(self, nested_tar_gz, tmp_path):
        dest = unpack(nested_tar_gz, tmp_path / "dest", ".tar.gz")

        root = find_tool_root(dest, nested=True)

        assert root == dest / WRAPPER_DIR
        assert (root / "compiler").is_file()


class TestSafeOperations:
    """Test atomic writes and guarded deletion."""

    def test_atomic_write_text(self, tmp_path):
        target = tmp_path / "sub" / "registry.json"

        atomic_write(target, '{"version": 1}')

        assert target.read_text() == '{"version": 1}'
        assert [p.name for p in target.parent.iterdir()] == ["registry.json"]

    def test_atomic_write_replaces(self, tmp_path):
        target = tmp_path / "file.bin"
        target.write_bytes(b"old")

        atomic_write(target, b"new")

        assert target.read_bytes() == b"new"

    def test_safe_rmtree_requires_prefix(self, tmp_path):
        victim = tmp_path / "a"
        victim.mkdir()

        with pytest.raises(ValueError, match="Refusing to delete"):
            safe_rmtree(victim, require_prefix=tmp_path / "b")

        assert victim.exists()

    def test_safe_rmtree_missing_is_noop(self, tmp_path):
        safe_rmtree(tmp_path / "missing")

    def test_remove_path_handles_files_and_dirs(self, tmp_path):
        f = tmp_path / "f"
        f.write_text("x")
        d = tmp_path / "d"
        (d / "inner").mkdir(parents=True)

        remove_path(f)
        remove_path(d)
        remove_path(tmp_path / "missing")

        assert not f.exists()
        assert not d.exists()

    def test_copy_tree(self, tmp_path):
        source = tmp_path / "src"
        (source / "bin").mkdir(parents=True)
        (source / "bin" / "tool").write_text("run")

        copy_tree(source, tmp_path / "out" / "copy")

        assert (tmp_path / "out" / "copy" / "bin" / "tool").read_text() == "run"

    def test_is_relative_to(self, tmp_path):
        assert is_relative_to(tmp_path / "a" / "b", tmp_path)
        assert not is_relative_to(tmp_path, tmp_path / "a")

