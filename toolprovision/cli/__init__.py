"""
toolprovision CLI module.

This module provides the command-line interface for toolprovision.
"""

from .parser import CLI, main

__all__ = ["CLI", "main"]
