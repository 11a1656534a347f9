"""Errors raised while loading or editing a project config."""


class ConfigError(ValueError):
    """Raised when a config document cannot be interpreted."""


class PackagesShapeError(ConfigError):
    """Raised when the packages field is neither a string list nor an object."""


class InvalidPlatformError(ValueError):
    """Raised for a platform that is not a known nix system."""


class PackageNotFoundError(KeyError):
    """Raised when an edit names a package that is not declared."""
