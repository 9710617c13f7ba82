"""
List command implementation.

Prints the tools registered in the tool cache.
"""

import logging

from toolprovision.config import load_settings
from toolprovision.core.tool_cache import ToolCache

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the list command.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    settings = load_settings(args.config).with_overrides(cache_dir=args.cache_dir)
    cache = ToolCache(settings.cache_dir)

    entries = cache.list_entries()
    if not entries:
        print(f"No tools cached in {cache.cache_dir}")
        return 0

    for entry in entries:
        print(f"{entry['name']} {entry['version']}: {entry['path']}")

    return 0
