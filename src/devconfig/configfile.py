"""Load, edit and write back a project config file.

Only the ``packages`` value is ever rewritten. An unedited file serialises to
its original bytes, and an edited one keeps every comment and formatting
choice outside the packages field.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple, Union

from common.logging_utils import Timer, extra_context, is_debug_enabled
from constants import Constants
from versioning.models import PackageSpec
from versioning.parser import parse_package_spec

from . import jsonc
from .errors import ConfigError
from .packages import Package, PackageList

logger = logging.getLogger(__name__)


class ConfigFile:
    """A parsed config document plus its editable package list."""

    def __init__(self, text: str, tree: Dict[str, Any], packages: PackageList,
                 path: Optional[str] = None):
        self._text = text
        self._tree = tree
        self.packages = packages
        self.path = path

    @classmethod
    def load_bytes(cls, data: Union[bytes, str], path: Optional[str] = None) -> "ConfigFile":
        """Parse a config document.

        Raises:
            ConfigError: If the document is not a JSON object, or its packages
                field has an unsupported shape (PackagesShapeError).
        """
        try:
            text = data.decode("utf-8") if isinstance(data, bytes) else data
        except UnicodeDecodeError as exc:
            raise ConfigError(f"config is not valid UTF-8: {exc}") from exc
        with Timer() as t:
            tree = jsonc.loads(text)
            if not isinstance(tree, dict):
                raise ConfigError("config root must be a JSON object")
            if Constants.PACKAGES_FIELD in tree:
                packages = PackageList.from_json(tree[Constants.PACKAGES_FIELD])
            else:
                packages = PackageList()
        if is_debug_enabled(logger):
            logger.debug(
                "Config loaded",
                extra=extra_context(
                    event="config_load",
                    component="configfile",
                    target=path,
                    package_count=len(packages),
                    duration_ms=t.duration_ms(),
                ),
            )
        return cls(text, tree, packages, path)

    @classmethod
    def load(cls, path: str) -> "ConfigFile":
        """Read and parse the config file at ``path``."""
        try:
            with open(path, "rb") as fh:
                data = fh.read()
        except OSError as exc:
            raise ConfigError(f"cannot read config {path}: {exc}") from exc
        return cls.load_bytes(data, path=path)

    @property
    def nixpkgs_commit(self) -> str:
        """The deprecated ``nixpkgs.commit`` pin, or an empty string."""
        nixpkgs = self._tree.get("nixpkgs")
        if isinstance(nixpkgs, dict) and isinstance(nixpkgs.get("commit"), str):
            return nixpkgs["commit"]
        return ""

    def bytes(self) -> bytes:
        """Serialise the document, splicing in the packages field if edited."""
        return self._render().encode("utf-8")

    def save(self, path: Optional[str] = None) -> None:
        """Write the document to ``path`` (defaults to where it was loaded from)."""
        target = path or self.path
        if not target:
            raise ConfigError("no path to save config to")
        text = self._render()
        tmp = f"{target}.tmp"
        try:
            with open(tmp, "w", encoding="utf-8", newline="") as fh:
                fh.write(text)
            os.replace(tmp, target)
        except OSError:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise
        if self.packages.modified:
            self._tree[Constants.PACKAGES_FIELD] = self.packages.to_json()
        self._text = text
        self.packages.mark_clean()
        self.path = target
        logger.info("Config saved to %s", target)

    def package_specs(self) -> List[Tuple[Package, PackageSpec]]:
        """Resolve every declaration, in order, against this file's pin."""
        pin = self.nixpkgs_commit
        if pin:
            logger.warning("nixpkgs.commit is deprecated; resolving packages against %s", pin)
        resolved = []
        for package in self.packages:
            spec = parse_package_spec(package.spec_string(), pin)
            if spec.is_empty():
                logger.debug("Package %r did not resolve to anything installable", package.name)
            resolved.append((package, spec))
        return resolved

    def _render(self) -> str:
        if not self.packages.modified:
            return self._text
        value = self.packages.to_json()
        span = jsonc.find_value_span(self._text, Constants.PACKAGES_FIELD)
        if span is not None:
            start, end = span
            return self._text[:start] + jsonc.render_value(value, self._text, start, end) + self._text[end:]
        tree = dict(self._tree)
        tree[Constants.PACKAGES_FIELD] = value
        return json.dumps(tree, indent=Constants.JSON_INDENT, ensure_ascii=False) + "\n"
