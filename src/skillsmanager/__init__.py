"""skillsmanager: browse, install and sync agent skills across providers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("skillsmanager")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
