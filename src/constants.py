"""Constants used in the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


class PackageShape(Enum):
    """Surface form a package declaration was loaded from.

    Args:
        Enum (string): Surface forms of a declaration in the packages field.
    """

    LEGACY_LIST = "legacy_list"
    STRING = "string"
    RECORD = "record"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    RUNX_PREFIX = "runx:"
    DEFAULT_INDEX = "nixpkgs"
    DEFAULT_VERSION = "latest"
    INDIRECT_SCHEME = "flake:"
    ATTR_PATH_SEPARATOR = "#"
    OUTPUTS_SEPARATOR = "^"
    # Strings starting with one of these are unambiguous flake references.
    FLAKE_PREFIXES = (
        "flake:",
        "path:",
        "github:",
        "gitlab:",
        "sourcehut:",
        "git:",
        "git+",
        "tarball:",
        "tarball+",
        "file:",
        "file+",
        "http:",
        "https:",
        ".",
        "/",
    )
    KNOWN_PLATFORMS = (
        "aarch64-darwin",
        "aarch64-linux",
        "armv7l-linux",
        "i686-linux",
        "x86_64-darwin",
        "x86_64-linux",
    )
    PACKAGES_FIELD = "packages"
    JSON_INDENT = 2
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "DEVSPEC_LOG_LEVEL"
    ENV_CONFIG = "DEVSPEC_CONFIG"
    CONFIG_FILENAME = "devspec.yml"


def _config_candidates() -> list:
    """Return YAML config locations in lookup order."""
    env_path = os.environ.get(Constants.ENV_CONFIG)
    if env_path:
        return [env_path]
    return [
        os.path.join(os.getcwd(), Constants.CONFIG_FILENAME),
        os.path.join(os.path.expanduser("~"), ".config", "devspec", Constants.CONFIG_FILENAME),
    ]


def load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the first readable YAML config file.

    Args:
        path: Explicit config path. When omitted the env var and default
            locations are tried in order.

    Returns:
        Parsed mapping, or an empty dict when no usable file exists.
    """
    candidates = [path] if path else _config_candidates()
    for candidate in candidates:
        if not os.path.isfile(candidate):
            continue
        try:
            with open(candidate, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Failed to load config %s: %s", candidate, exc)
            return {}
        if isinstance(data, dict):
            logger.debug("Loaded config from %s", candidate)
            return data
        logger.warning("Ignoring config %s: top level is not a mapping", candidate)
        return {}
    return {}


def apply_config_overrides(cfg: Optional[Dict[str, Any]] = None) -> None:
    """Apply the ``resolver`` section of a config mapping onto Constants."""
    if cfg is None:
        cfg = load_yaml_config()
    resolver = cfg.get("resolver") if isinstance(cfg, dict) else None
    if not isinstance(resolver, dict):
        return
    default_index = resolver.get("default_index")
    if isinstance(default_index, str) and default_index.strip():
        Constants.DEFAULT_INDEX = default_index.strip()
    default_version = resolver.get("default_version")
    if isinstance(default_version, str) and default_version.strip():
        Constants.DEFAULT_VERSION = default_version.strip()
