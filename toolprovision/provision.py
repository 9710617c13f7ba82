"""
Provision a complete toolchain: the compiler plus the runtime it needs.

The runtime is acquired first because the compiler release is unusable
without it, then the compiler itself. Both go through the shared cache, so
re-running setup for an installed version performs no network I/O.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from toolprovision.acquire import ToolAcquirer
from toolprovision.assets import AssetDescriptor, compiler_asset, runtime_asset_for_compiler
from toolprovision.config import ProvisionSettings
from toolprovision.core.download import Downloader
from toolprovision.core.platform import LINUX, MACOS, WINDOWS, HostEnv
from toolprovision.core.tool_cache import ToolCache

logger = logging.getLogger(__name__)


@dataclass
class ToolchainInstall:
    """Result of a toolchain setup."""

    compiler: AssetDescriptor
    compiler_path: Path
    runtime: AssetDescriptor
    runtime_path: Path


def build_acquirer(settings: ProvisionSettings) -> ToolAcquirer:
    """Wire cache and downloader from settings."""
    cache = ToolCache(settings.cache_dir)
    downloader = Downloader(settings.retry_policy(), timeout_ms=settings.download_timeout)
    return ToolAcquirer(cache, downloader)


def setup_toolchain(
    version: str,
    nightly: bool = False,
    settings: Optional[ProvisionSettings] = None,
    env: Optional[HostEnv] = None,
    acquirer: Optional[ToolAcquirer] = None,
) -> ToolchainInstall:
    """
    Acquire the runtime matching `version`, then the compiler.

    Args:
        version: Compiler release version or nightly tag
        nightly: Whether version is a nightly tag
        settings: Settings (default: ProvisionSettings())
        env: Host to provision for (default: the running host)
        acquirer: Pre-built acquirer (default: built from settings)

    Returns:
        ToolchainInstall with both cached paths
    """
    settings = settings or ProvisionSettings()
    env = env or HostEnv.from_host()
    acquirer = acquirer or build_acquirer(settings)
    distribution = settings.distribution()

    runtime = runtime_asset_for_compiler(
        version, env, name=settings.runtime_name, distribution=distribution
    )
    compiler = compiler_asset(
        version,
        env,
        nightly=nightly,
        name=settings.compiler_name,
        distribution=distribution,
    )

    logger.info(f"Setting up {compiler} with {runtime} on {env.platform}")

    runtime_path = acquirer.acquire(runtime)
    compiler_path = acquirer.acquire(compiler)

    return ToolchainInstall(
        compiler=compiler,
        compiler_path=compiler_path,
        runtime=runtime,
        runtime_path=runtime_path,
    )


def _library_path_variable(platform_token: str) -> Optional[str]:
    if platform_token == LINUX:
        return "LD_LIBRARY_PATH"
    if platform_token == MACOS:
        return "DYLD_FALLBACK_LIBRARY_PATH"
    if platform_token == WINDOWS:
        return None
    raise ValueError(f"unknown platform: {platform_token}")


def toolchain_environment(install: ToolchainInstall) -> Dict[str, str]:
    """
    Environment variables a caller should export for the installed toolchain.

    Example:
        >>> toolchain_environment(install)
        {'COMPILERPATH': '/c/tools/compiler/4.0.5', 'COMPILER_STD_PATH': '/c/tools/compiler/4.0.5/std',
         'RUNTIMEPATH': '/c/tools/runtime/2.4.0', 'LD_LIBRARY_PATH': '/c/tools/runtime/2.4.0'}
    """
    compiler_var = install.compiler.name.upper().replace("-", "_")
    runtime_var = install.runtime.name.upper().replace("-", "_")

    environment = {
        f"{compiler_var}PATH": str(install.compiler_path),
        f"{compiler_var}_STD_PATH": str(install.compiler_path / "std"),
        f"{runtime_var}PATH": str(install.runtime_path),
    }

    library_var = _library_path_variable(install.runtime.env.platform)
    if library_var:
        environment[library_var] = str(install.runtime_path)

    return environment


def toolchain_path_entries(install: ToolchainInstall) -> List[str]:
    """Directories to prepend to PATH, compiler first."""
    return [str(install.compiler_path), str(install.runtime_path)]


__all__ = [
    "ToolchainInstall",
    "build_acquirer",
    "setup_toolchain",
    "toolchain_environment",
    "toolchain_path_entries",
]
