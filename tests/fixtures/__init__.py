"""Test fixtures for toolprovision tests.

Fixtures are organized by type:

- archives: Tool archives with a generated wrapper directory (.tar.gz, .zip)
- hosts: Simulated HostEnv values for each supported platform

Import fixtures in your tests using:
    from tests.fixtures.archives import make_tar_gz, nested_tar_gz
    from tests.fixtures.hosts import LINUX_X64
"""

__all__ = [
    "archives",
    "hosts",
]
