"""
Setup command implementation.

Installs a compiler version and its runtime into the tool cache and reports
where they landed.
"""

import logging
from pathlib import Path
from typing import Dict, List

from toolprovision.config import load_settings
from toolprovision.provision import (
    setup_toolchain,
    toolchain_environment,
    toolchain_path_entries,
)
from toolprovision.versions import resolve_requested_version

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the setup command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    settings = load_settings(args.config).with_overrides(
        download_timeout=args.download_timeout,
        max_retries=args.max_retries,
        retry_delay=args.retry_delay,
        cache_dir=args.cache_dir,
    )

    logger.debug(f"Download timeout set to {settings.download_timeout}ms")
    logger.debug(f"Max retries set to {settings.max_retries}")
    logger.debug(f"Initial retry delay set to {settings.retry_delay}ms")

    version, nightly = resolve_requested_version(args.version)
    install = setup_toolchain(version, nightly=nightly, settings=settings)

    environment = toolchain_environment(install)
    path_entries = toolchain_path_entries(install)

    print(f"{install.compiler}: {install.compiler_path}")
    print(f"{install.runtime}: {install.runtime_path}")

    if args.env_file:
        _append_env_file(args.env_file, environment)
        logger.info(f"Wrote {len(environment)} variables to {args.env_file}")
    else:
        for key, value in environment.items():
            print(f"{key}={value}")

    if args.path_file:
        _append_lines(args.path_file, path_entries)
        logger.info(f"Wrote PATH entries to {args.path_file}")

    return 0


def _append_env_file(env_file: Path, environment: Dict[str, str]):
    _append_lines(env_file, [f"{key}={value}" for key, value in environment.items()])


def _append_lines(target: Path, lines: List[str]):
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "a", encoding="utf-8") as f:
        for line in lines:
            f.write(line + "\n")
