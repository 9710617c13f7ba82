"""
Entry point for running the toolprovision CLI as a module.

Usage: python -m toolprovision [command] [options]
"""

from toolprovision.cli.parser import main

if __name__ == "__main__":
    main()
