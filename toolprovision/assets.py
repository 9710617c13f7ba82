"""
Asset descriptors for the two tool families: the compiler and its runtime.

An AssetDescriptor knows how a given (family, version, host) combination is
named and where it is published. All per-family naming quirks are branched
on `kind` inside this one class so they can be read side by side.

Example URLs with the default distribution:
    runtime 2.4.0, linux    .../runtime/releases/download/v2-4-0/runtime-2.4.0-linux64.tar.gz
    runtime 2.4.0, macos    .../runtime/releases/download/v2-4-0/runtime-2.4.0-macos-universal.tar.gz
    compiler 4.0.5, linux   .../compiler/releases/download/4.0.5/compiler-4.0.5-linux64.tar.gz
    compiler nightly, macos <nightly_host>/compiler/mac/compiler_2024-05-01_development_8cbd3f0.tar.gz
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional

from toolprovision.core.exceptions import UnsupportedPlatformError
from toolprovision.core.filesystem import TAR_GZ, ZIP
from toolprovision.core.platform import LINUX, MACOS, WINDOWS, HostEnv
from toolprovision.versions import (
    MOVING_NIGHTLY_TAGS,
    runtime_version_for,
    version_at_least,
)

DEFAULT_RELEASE_HOST = "https://github.com/HaxeFoundation"
DEFAULT_NIGHTLY_HOST = "https://build.haxe.org/builds"

NIGHTLY_TARGETS = {
    MACOS: "mac",
    LINUX: "linux64",
    WINDOWS: "windows64",
}


class AssetKind(str, Enum):
    """The closed set of asset families."""

    COMPILER = "compiler"
    RUNTIME = "runtime"


@dataclass(frozen=True)
class Distribution:
    """
    Where assets are published and how platforms are spelled in file names.

    Attributes:
        release_host: Base URL of versioned release downloads
        nightly_host: Base URL of nightly compiler builds
        platform_names: Optional renames of platform tokens used in file
            names, e.g. {'windows': 'win', 'macos': 'osx'}
    """

    release_host: str = DEFAULT_RELEASE_HOST
    nightly_host: str = DEFAULT_NIGHTLY_HOST
    platform_names: Mapping[str, str] = field(default_factory=dict)

    def __hash__(self):
        return hash(
            (self.release_host, self.nightly_host, tuple(sorted(self.platform_names.items())))
        )

    def platform_name(self, platform_token: str) -> str:
        return self.platform_names.get(platform_token, platform_token)


DEFAULT_DISTRIBUTION = Distribution()


@dataclass(frozen=True)
class AssetDescriptor:
    """
    Immutable identity of a requested tool plus its derived download naming.

    Attributes:
        kind: Asset family
        version: Release version or nightly build tag
        env: Host the asset is resolved for
        nightly: Request a nightly compiler build (compiler only)
        name: Logical tool name, also the cache key name (default: kind value)
        distribution: Publishing locations
    """

    kind: AssetKind
    version: str
    env: HostEnv
    nightly: bool = False
    name: str = ""
    distribution: Distribution = DEFAULT_DISTRIBUTION

    def __post_init__(self):
        if not self.version:
            raise ValueError("version cannot be empty")
        if self.nightly and self.kind is not AssetKind.COMPILER:
            raise ValueError("nightly builds are only published for the compiler")
        if not self.name:
            object.__setattr__(self, "name", self.kind.value)

    @property
    def platform(self) -> str:
        """Platform token as spelled in file names."""
        return self.distribution.platform_name(self.env.platform)

    @property
    def is_cacheable(self) -> bool:
        """False for tags like nightly `latest` whose build changes over time."""
        return not (self.nightly and self.version in MOVING_NIGHTLY_TAGS)

    @property
    def file_ext(self) -> str:
        if self.env.platform == WINDOWS:
            return ZIP
        return TAR_GZ

    @property
    def is_directory_nested(self) -> bool:
        # Both families wrap the tool in one generated directory
        if self.kind is AssetKind.COMPILER:
            return True
        if self.kind is AssetKind.RUNTIME:
            return True
        raise ValueError(f"unknown asset kind: {self.kind}")

    @property
    def target(self) -> str:
        """Platform and arch suffix used inside release file names."""
        plat = self.env.platform
        default = f"{self.platform}{self.env.arch}"

        if self.kind is AssetKind.RUNTIME:
            # No 64-bit Windows build of runtime 2.1
            if plat == WINDOWS and self.version.startswith("2.1."):
                return self.platform
            if plat == MACOS and version_at_least(self.version, "2.4"):
                return f"{self.platform}-universal"
            return default

        if self.kind is AssetKind.COMPILER:
            # One universal build per release
            if plat == MACOS:
                return self.platform
            # Compiler 3 has to match the 32-bit-only Windows runtime 2.1
            if plat == WINDOWS and self.version.startswith("3."):
                return self.platform
            return default

        raise ValueError(f"unknown asset kind: {self.kind}")

    @property
    def nightly_target(self) -> str:
        """Directory of the nightly build server for this host."""
        plat = self.env.platform
        try:
            return NIGHTLY_TARGETS[plat]
        except KeyError:
            raise UnsupportedPlatformError(plat) from None

    @property
    def file_name_without_ext(self) -> str:
        if self.kind is AssetKind.COMPILER and self.nightly:
            # The nightly tag already encodes the platform
            return f"{self.name}_{self.version}"
        return f"{self.name}-{self.version}-{self.target}"

    @property
    def file_name(self) -> str:
        return f"{self.file_name_without_ext}{self.file_ext}"

    @property
    def download_url(self) -> str:
        release_host = self.distribution.release_host.rstrip("/")

        if self.kind is AssetKind.RUNTIME:
            tag = "v" + self.version.replace(".", "-")
            return f"{release_host}/{self.name}/releases/download/{tag}/{self.file_name}"

        if self.kind is AssetKind.COMPILER:
            if self.nightly:
                nightly_host = self.distribution.nightly_host.rstrip("/")
                return f"{nightly_host}/{self.name}/{self.nightly_target}/{self.file_name}"
            return (
                f"{release_host}/{self.name}/releases/download/{self.version}/{self.file_name}"
            )

        raise ValueError(f"unknown asset kind: {self.kind}")

    def __str__(self) -> str:
        label = f"{self.name} {self.version}"
        if self.nightly:
            label += " (nightly)"
        return label


def compiler_asset(
    version: str,
    env: HostEnv,
    nightly: bool = False,
    name: Optional[str] = None,
    distribution: Distribution = DEFAULT_DISTRIBUTION,
) -> AssetDescriptor:
    """Descriptor for a compiler release or nightly build."""
    return AssetDescriptor(
        kind=AssetKind.COMPILER,
        version=version,
        env=env,
        nightly=nightly,
        name=name or AssetKind.COMPILER.value,
        distribution=distribution,
    )


def runtime_asset(
    version: str,
    env: HostEnv,
    name: Optional[str] = None,
    distribution: Distribution = DEFAULT_DISTRIBUTION,
) -> AssetDescriptor:
    """Descriptor for a runtime release."""
    return AssetDescriptor(
        kind=AssetKind.RUNTIME,
        version=version,
        env=env,
        name=name or AssetKind.RUNTIME.value,
        distribution=distribution,
    )


def runtime_asset_for_compiler(
    compiler_version: str,
    env: HostEnv,
    name: Optional[str] = None,
    distribution: Distribution = DEFAULT_DISTRIBUTION,
) -> AssetDescriptor:
    """Descriptor for the runtime release a compiler version depends on."""
    return runtime_asset(
        runtime_version_for(compiler_version), env, name=name, distribution=distribution
    )


__all__ = [
    "AssetKind",
    "AssetDescriptor",
    "Distribution",
    "DEFAULT_DISTRIBUTION",
    "NIGHTLY_TARGETS",
    "compiler_asset",
    "runtime_asset",
    "runtime_asset_for_compiler",
]
