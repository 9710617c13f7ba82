"""
Platform detection for toolprovision.

Maps the host operating system and CPU to the normalized tokens used in
asset file names. Host state is captured once in an immutable HostEnv value
which is then passed explicitly to everything that needs it.

Usage:
    from toolprovision.core.platform import HostEnv

    env = HostEnv.from_host()
    print(env.platform, env.arch)   # e.g. "linux", "64"

    # Simulated hosts for tests or cross-planning
    env = HostEnv(system="Windows", machine="AMD64")
"""

import platform
from dataclasses import dataclass

from toolprovision.core.exceptions import UnsupportedArchError, UnsupportedPlatformError

LINUX = "linux"
WINDOWS = "windows"
MACOS = "macos"

SUPPORTED_PLATFORMS = (LINUX, WINDOWS, MACOS)

ARCH_64 = "64"

_SYSTEM_MAP = {
    "linux": LINUX,
    "windows": WINDOWS,
    "darwin": MACOS,
}

_X64_MACHINES = ("x86_64", "amd64", "x64")
_ARM64_MACHINES = ("aarch64", "arm64")


@dataclass(frozen=True)
class HostEnv:
    """
    Snapshot of host identification.

    Attributes:
        system: Raw OS name as reported by platform.system() ('Linux', 'Windows', 'Darwin')
        machine: Raw CPU name as reported by platform.machine() ('x86_64', 'AMD64', 'arm64')
    """

    system: str
    machine: str

    @classmethod
    def from_host(cls) -> "HostEnv":
        """Capture the running host."""
        return cls(system=platform.system(), machine=platform.machine())

    @property
    def platform(self) -> str:
        return resolve_platform(self)

    @property
    def arch(self) -> str:
        return resolve_arch(self)

    def __str__(self) -> str:
        return f"{self.system}/{self.machine}"


def resolve_platform(env: HostEnv) -> str:
    """
    Normalize the host OS.

    Returns:
        One of 'linux', 'windows', 'macos'

    Raises:
        UnsupportedPlatformError: For any other OS
    """
    token = _SYSTEM_MAP.get(env.system.lower())
    if token is None:
        raise UnsupportedPlatformError(env.system)
    return token


def resolve_arch(env: HostEnv) -> str:
    """
    Normalize the host CPU to the 64-bit marker.

    x86-64 always resolves. ARM64 resolves only on macOS, where universal
    builds are published; there is no fallback for anything else.

    Returns:
        '64'

    Raises:
        UnsupportedPlatformError: If the OS itself is unsupported
        UnsupportedArchError: For 32-bit or non-macOS ARM hosts
    """
    machine = env.machine.lower()
    plat = resolve_platform(env)

    if machine in _X64_MACHINES:
        return ARCH_64

    if machine in _ARM64_MACHINES and plat == MACOS:
        return ARCH_64

    raise UnsupportedArchError(env.machine, plat)


__all__ = [
    "HostEnv",
    "resolve_platform",
    "resolve_arch",
    "LINUX",
    "WINDOWS",
    "MACOS",
    "SUPPORTED_PLATFORMS",
    "ARCH_64",
]
