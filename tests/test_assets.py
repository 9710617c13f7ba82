"""
Unit tests for asset descriptors and their derived download naming.
"""

import pytest

from tests.fixtures.hosts import LINUX_X64, MACOS_ARM64, MACOS_X64, WINDOWS_X64
from toolprovision.assets import (
    DEFAULT_DISTRIBUTION,
    AssetDescriptor,
    AssetKind,
    Distribution,
    compiler_asset,
    runtime_asset,
    runtime_asset_for_compiler,
)
from toolprovision.core.exceptions import UnsupportedPlatformError
from toolprovision.core.platform import HostEnv

RELEASES = "https://github.com/HaxeFoundation"
NIGHTLIES = "https://build.haxe.org/builds"


class TestCompilerAsset:
    """Test compiler release naming."""

    def test_linux_release(self, linux_env):
        asset = compiler_asset("4.0.5", linux_env)

        assert asset.name == "compiler"
        assert asset.target == "linux64"
        assert asset.file_name_without_ext == "compiler-4.0.5-linux64"
        assert asset.file_ext == ".tar.gz"
        assert asset.is_directory_nested
        assert asset.download_url == (
            f"{RELEASES}/compiler/releases/download/4.0.5/compiler-4.0.5-linux64.tar.gz"
        )

    def test_windows_release(self, windows_env):
        asset = compiler_asset("4.3.4", windows_env)

        assert asset.target == "windows64"
        assert asset.file_ext == ".zip"
        assert asset.download_url.endswith("/4.3.4/compiler-4.3.4-windows64.zip")

    def test_windows_major_3_is_32_bit_only(self, windows_env):
        asset = compiler_asset("3.4.7", windows_env)

        assert asset.target == "windows"
        assert asset.file_name == "compiler-3.4.7-windows.zip"

    @pytest.mark.parametrize("env", [MACOS_X64, MACOS_ARM64])
    @pytest.mark.parametrize("version", ["3.4.7", "4.3.4"])
    def test_macos_uses_universal_build(self, env, version):
        asset = compiler_asset(version, env)

        assert asset.target == "macos"
        assert asset.file_name == f"compiler-{version}-macos.tar.gz"

    def test_linux_major_3_keeps_arch(self, linux_env):
        assert compiler_asset("3.4.7", linux_env).target == "linux64"


class TestNightlyCompilerAsset:
    """Test nightly compiler naming."""

    TAG = "2019-12-17_development_67feacebc"

    @pytest.mark.parametrize(
        "env, directory, ext",
        [
            (MACOS_ARM64, "mac", ".tar.gz"),
            (LINUX_X64, "linux64", ".tar.gz"),
            (WINDOWS_X64, "windows64", ".zip"),
        ],
    )
    def test_nightly_url(self, env, directory, ext):
        asset = compiler_asset(self.TAG, env, nightly=True)

        assert asset.nightly_target == directory
        assert asset.file_name_without_ext == f"compiler_{self.TAG}"
        assert asset.download_url == (
            f"{NIGHTLIES}/compiler/{directory}/compiler_{self.TAG}{ext}"
        )

    def test_nightly_ignores_release_host(self, linux_env):
        distribution = Distribution(release_host="https://mirror.invalid/releases")
        asset = compiler_asset(self.TAG, linux_env, nightly=True, distribution=distribution)

        assert asset.download_url.startswith(f"{NIGHTLIES}/compiler/linux64/")

    def test_nightly_target_unsupported_platform(self):
        asset = compiler_asset(self.TAG, HostEnv(system="FreeBSD", machine="x86_64"), nightly=True)

        with pytest.raises(UnsupportedPlatformError):
            asset.nightly_target

    def test_latest_is_not_cacheable(self, linux_env):
        assert not compiler_asset("latest", linux_env, nightly=True).is_cacheable

    def test_dated_tag_is_cacheable(self, linux_env):
        assert compiler_asset(self.TAG, linux_env, nightly=True).is_cacheable

    def test_releases_are_cacheable(self, linux_env):
        assert compiler_asset("4.0.5", linux_env).is_cacheable
        assert runtime_asset("2.4.0", linux_env).is_cacheable

    def test_str_marks_nightly(self, linux_env):
        assert str(compiler_asset("latest", linux_env, nightly=True)) == "compiler latest (nightly)"


class TestRuntimeAsset:
    """Test runtime release naming."""

    def test_linux_release(self, linux_env):
        asset = runtime_asset("2.4.0", linux_env)

        assert asset.name == "runtime"
        assert asset.file_name_without_ext == "runtime-2.4.0-linux64"
        assert asset.download_url == (
            f"{RELEASES}/runtime/releases/download/v2-4-0/runtime-2.4.0-linux64.tar.gz"
        )

    def test_windows_legacy_runtime_for_compiler_3(self, windows_env):
        asset = runtime_asset_for_compiler("3.4.7", windows_env)

        assert asset.version == "2.1.0"
        assert asset.target == "windows"
        assert asset.file_ext == ".zip"
        assert asset.download_url == (
            f"{RELEASES}/runtime/releases/download/v2-1-0/runtime-2.1.0-windows.zip"
        )

    def test_windows_current_runtime_has_arch(self, windows_env):
        assert runtime_asset("2.4.0", windows_env).target == "windows64"

    @pytest.mark.parametrize("version", ["2.10.0", "2.11.1"])
    def test_windows_legacy_rule_only_matches_2_1(self, windows_env, version):
        assert runtime_asset(version, windows_env).target == "windows64"

    @pytest.mark.parametrize("env", [MACOS_X64, MACOS_ARM64])
    def test_macos_universal_from_2_4(self, env):
        asset = runtime_asset("2.4.0", env)

        assert asset.target == "macos-universal"
        assert asset.file_name == "runtime-2.4.0-macos-universal.tar.gz"

    def test_macos_older_runtime_keeps_arch(self, macos_env):
        assert runtime_asset("2.1.0", macos_env).target == "macos64"

    def test_runtime_for_modern_compiler(self, linux_env):
        assert runtime_asset_for_compiler("4.0.5", linux_env).version == "2.4.0"

    def test_nightly_runtime_rejected(self, linux_env):
        with pytest.raises(ValueError, match="only published for the compiler"):
            AssetDescriptor(AssetKind.RUNTIME, "2.4.0", linux_env, nightly=True)


class TestDescriptorValues:
    """Test descriptor construction and immutability."""

    def test_immutable(self, linux_env):
        asset = compiler_asset("4.0.5", linux_env)

        with pytest.raises(AttributeError):
            asset.version = "4.1.0"

    def test_derived_properties_are_stable(self, windows_env):
        asset = runtime_asset_for_compiler("3.4.7", windows_env)

        assert {asset.download_url for _ in range(3)} == {asset.download_url}

    def test_empty_version_rejected(self, linux_env):
        with pytest.raises(ValueError, match="version cannot be empty"):
            compiler_asset("", linux_env)

    def test_custom_name(self, linux_env):
        asset = compiler_asset("4.0.5", linux_env, name="haxe")

        assert asset.file_name == "haxe-4.0.5-linux64.tar.gz"
        assert "/haxe/releases/download/4.0.5/" in asset.download_url

    def test_default_name_from_kind(self, linux_env):
        assert AssetDescriptor(AssetKind.RUNTIME, "2.4.0", linux_env).name == "runtime"

    def test_equal_descriptors_hash_equal(self, linux_env):
        a = compiler_asset("4.0.5", linux_env)
        b = compiler_asset("4.0.5", linux_env)

        assert a == b
        assert len({a, b}) == 1


class TestDistribution:
    """Test custom publishing locations."""

    def test_platform_renames(self, windows_env, macos_env):
        distribution = Distribution(platform_names={"windows": "win", "macos": "osx"})

        assert compiler_asset("4.0.5", windows_env, distribution=distribution).target == "win64"
        assert (
            runtime_asset("2.4.0", macos_env, distribution=distribution).target
            == "osx-universal"
        )

    def test_renames_do_not_change_rules(self, windows_env):
        distribution = Distribution(platform_names={"windows": "win"})

        asset = runtime_asset("2.1.0", windows_env, distribution=distribution)

        assert asset.target == "win"
        assert asset.file_ext == ".zip"

    def test_release_host_trailing_slash(self, linux_env):
        distribution = Distribution(release_host="https://mirror.example.com/dist/")

        asset = runtime_asset("2.4.0", linux_env, distribution=distribution)

        assert asset.download_url == (
            "https://mirror.example.com/dist/runtime/releases/download/v2-4-0/"
            "runtime-2.4.0-linux64.tar.gz"
        )

    def test_default_distribution(self):
        assert DEFAULT_DISTRIBUTION.release_host == RELEASES
        assert DEFAULT_DISTRIBUTION.nightly_host == NIGHTLIES
        assert DEFAULT_DISTRIBUTION.platform_name("linux") == "linux"
