"""Project config loading and format-preserving package list editing."""

from .configfile import ConfigFile
from .errors import ConfigError, InvalidPlatformError, PackageNotFoundError, PackagesShapeError
from .packages import Package, PackageList

__all__ = [
    "ConfigError",
    "ConfigFile",
    "InvalidPlatformError",
    "Package",
    "PackageList",
    "PackageNotFoundError",
    "PackagesShapeError",
]
