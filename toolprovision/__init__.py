"""
toolprovision - fetch, extract and cache versioned compiler toolchains.

The public API covers the acquisition pipeline:
- HostEnv: host platform/architecture snapshot
- AssetDescriptor: per-family download naming (compiler, runtime)
- ToolAcquirer: cache-or-fetch acquisition
- setup_toolchain: compiler plus matching runtime in one call
"""

from toolprovision.acquire import ToolAcquirer, acquire
from toolprovision.assets import (
    AssetDescriptor,
    AssetKind,
    Distribution,
    compiler_asset,
    runtime_asset,
    runtime_asset_for_compiler,
)
from toolprovision.config import ProvisionSettings, load_settings
from toolprovision.core.download import Downloader, RetryPolicy
from toolprovision.core.platform import HostEnv
from toolprovision.core.tool_cache import ToolCache
from toolprovision.provision import ToolchainInstall, setup_toolchain

__version__ = "0.1.0"

__all__ = [
    "ToolAcquirer",
    "acquire",
    "AssetDescriptor",
    "AssetKind",
    "Distribution",
    "compiler_asset",
    "runtime_asset",
    "runtime_asset_for_compiler",
    "ProvisionSettings",
    "load_settings",
    "Downloader",
    "RetryPolicy",
    "HostEnv",
    "ToolCache",
    "ToolchainInstall",
    "setup_toolchain",
]
