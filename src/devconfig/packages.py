"""Package declarations and the ordered, shape-preserving package list.

The packages field of a config may be written three ways, all equivalent:

    "packages": ["go@1.20", "python"]                      # legacy list
    "packages": {"go": "1.20", "python": "latest"}         # name -> version
    "packages": {"go": {"version": "1.20", "outputs": []}} # name -> record

Each Package remembers which form it was loaded from so an entry that did not
change renders exactly as it was written. The only reshaping the list ever
does is promoting a legacy list to an object, when an entry gains fields a
list string cannot express.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional

from constants import Constants, PackageShape
from versioning.models import InstallableSyntax
from versioning.parser import detect_syntax, split_versioned_name

from .errors import InvalidPlatformError, PackageNotFoundError
from .schema import validate_packages

logger = logging.getLogger(__name__)

PATCH_MODES = ("auto", "always", "never")
_MISSING = object()


@dataclass
class Package:
    """One package declaration.

    Equality compares name and fields only; the surface form is provenance,
    not content.
    """

    name: str
    fields: Dict[str, Any] = field(default_factory=dict)
    shape: PackageShape = field(default=PackageShape.RECORD, compare=False)
    raw: Optional[str] = field(default=None, compare=False, repr=False)

    @classmethod
    def version_only(cls, name: str, version: str) -> "Package":
        """A package written as ``"name": "version"``."""
        return cls(name, {"version": version}, PackageShape.STRING)

    @classmethod
    def from_legacy(cls, raw: str) -> "Package":
        """A package written as ``"name@version"`` inside a legacy list."""
        name, version = split_versioned_name(raw)
        return cls(
            name,
            {"version": version or Constants.DEFAULT_VERSION},
            PackageShape.LEGACY_LIST,
            raw=raw,
        )

    @property
    def version(self) -> str:
        return self.fields.get("version", "")

    @property
    def platforms(self) -> List[str]:
        return list(self.fields.get("platforms", []))

    @property
    def excluded_platforms(self) -> List[str]:
        return list(self.fields.get("excluded_platforms", []))

    @property
    def outputs(self) -> List[str]:
        return list(self.fields.get("outputs", []))

    @property
    def allow_insecure(self) -> List[str]:
        return list(self.fields.get("allow_insecure", []))

    @property
    def patch(self) -> str:
        return self.fields.get("patch", "")

    @property
    def disable_plugin(self) -> bool:
        return bool(self.fields.get("disable_plugin", False))

    def versioned_name(self) -> str:
        """Return ``name@version``, or the bare name when no version is set."""
        return f"{self.name}@{self.version}" if self.version else self.name

    def spec_string(self) -> str:
        """Return the string to hand to the package spec resolver.

        Flake references carry their own revision, so the version is never
        appended to them. Unchanged legacy entries resolve exactly as written.
        """
        if detect_syntax(self.name) == InstallableSyntax.FLAKE:
            return self.name
        if self._legacy_unchanged():
            return self.raw
        return self.versioned_name()

    def is_enabled_on_platform(self, platform: str) -> bool:
        """True unless the package is restricted away from ``platform``."""
        platforms = self.platforms
        if platforms and platform not in platforms:
            return False
        return platform not in self.excluded_platforms

    def is_version_only(self) -> bool:
        """True when the only declared attribute is a string version."""
        return list(self.fields) == ["version"] and isinstance(self.fields["version"], str)

    def _legacy_unchanged(self) -> bool:
        if self.shape != PackageShape.LEGACY_LIST or self.raw is None:
            return False
        name, version = split_versioned_name(self.raw)
        return (
            self.name == name
            and self.is_version_only()
            and self.version == (version or Constants.DEFAULT_VERSION)
        )

    def to_json(self) -> Any:
        """Render the value this package contributes to the packages field."""
        if self.shape == PackageShape.LEGACY_LIST:
            return self.raw if self._legacy_unchanged() else self.versioned_name()
        if self.shape == PackageShape.STRING and self.is_version_only():
            return self.version
        return dict(self.fields)


class PackageList:
    """Insertion-ordered package declarations of one config file.

    Declaration order is significant: earlier packages take precedence in the
    generated environment. Not thread-safe; callers serialise writes.
    """

    def __init__(self, packages: Optional[Iterable[Package]] = None, as_array: bool = False):
        self._packages: List[Package] = list(packages or [])
        self._as_array = as_array
        self.modified = False

    @classmethod
    def from_json(cls, data: Any) -> "PackageList":
        """Build a list from the raw packages field of a config document.

        Raises:
            PackagesShapeError: If ``data`` is not one of the supported shapes.
        """
        validate_packages(data)
        if isinstance(data, list):
            return cls((Package.from_legacy(s) for s in data), as_array=True)
        packages = []
        for name, value in data.items():
            if isinstance(value, str):
                packages.append(Package.version_only(name, value))
            else:
                packages.append(Package(name, dict(value), PackageShape.RECORD))
        return cls(packages)

    def to_json(self) -> Any:
        """Render the packages field, keeping the shape it was loaded with."""
        if self._as_array:
            return [p.to_json() for p in self._packages]
        return {p.name: p.to_json() for p in self._packages}

    @property
    def is_array(self) -> bool:
        return self._as_array

    def __iter__(self) -> Iterator[Package]:
        return iter(self._packages)

    def __len__(self) -> int:
        return len(self._packages)

    def __contains__(self, name: object) -> bool:
        return any(p.name == name for p in self._packages)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageList):
            return NotImplemented
        return self._packages == other._packages

    def __repr__(self) -> str:
        return f"PackageList({self._packages!r})"

    def names(self) -> List[str]:
        return [p.name for p in self._packages]

    def versioned_names(self) -> List[str]:
        return [p.versioned_name() for p in self._packages]

    def index(self, name: str) -> int:
        """Return the position of the first declaration of ``name``, or -1.

        ``name`` may be a bare name or a ``name@version`` string.
        """
        for i, p in enumerate(self._packages):
            if p.name == name:
                return i
        for i, p in enumerate(self._packages):
            if p.versioned_name() == name:
                return i
        return -1

    def get(self, name: str) -> Package:
        """Return the first declaration of ``name``.

        Raises:
            PackageNotFoundError: If no declaration matches.
        """
        i = self.index(name)
        if i == -1:
            raise PackageNotFoundError(name)
        return self._packages[i]

    def add(self, package: Package) -> bool:
        """Append ``package``.

        Returns False without changing anything when an identical declaration
        already exists. In object form a second declaration of the same name
        updates the existing entry's version instead, since keys are unique.
        """
        if any(p == package for p in self._packages):
            return False
        if not self._as_array and package.name in self:
            existing = self.get(package.name)
            if package.is_version_only():
                self.set_version(package.name, package.version)
                return True
            for key, value in package.fields.items():
                self.set_field(package.name, key, value)
            logger.debug("Merged fields into existing package %s", existing.name)
            return True

        if self._as_array:
            if package.is_version_only():
                package.shape = PackageShape.LEGACY_LIST
            else:
                self._promote()
        elif package.shape == PackageShape.LEGACY_LIST:
            package.shape = PackageShape.STRING
        self._packages.append(package)
        self.modified = True
        logger.debug("Added package %s", package.versioned_name())
        return True

    def add_versioned_name(self, versioned_name: str) -> bool:
        """Add a version-only declaration from a ``name[@version]`` string."""
        name, version = split_versioned_name(versioned_name)
        return self.add(Package.version_only(name, version or Constants.DEFAULT_VERSION))

    def remove(self, name: str) -> Package:
        """Remove and return the first declaration matching ``name``.

        Raises:
            PackageNotFoundError: If no declaration matches.
        """
        i = self.index(name)
        if i == -1:
            raise PackageNotFoundError(name)
        removed = self._packages.pop(i)
        self.modified = True
        logger.debug("Removed package %s", removed.versioned_name())
        return removed

    def set_field(self, name: str, key: str, value: Any) -> None:
        """Update or insert one field of the first declaration of ``name``.

        An entry that stops being version-only is rendered as a record from
        then on; a legacy list is promoted to an object.
        """
        package = self.get(name)
        if package.fields.get(key, _MISSING) == value:
            return
        package.fields[key] = value
        self._reshape(package)
        self.modified = True

    def remove_field(self, name: str, key: str) -> None:
        """Delete one field of ``name``; a record never turns back into shorthand."""
        package = self.get(name)
        if key not in package.fields:
            return
        del package.fields[key]
        self._reshape(package)
        self.modified = True

    def set_version(self, name: str, version: str) -> None:
        self.set_field(name, "version", version)

    def add_platforms(self, name: str, platforms: Iterable[str]) -> None:
        """Restrict ``name`` to ``platforms`` in addition to any already listed.

        The platforms are also dropped from the package's exclusions.
        """
        platforms = _validate_platforms(platforms)
        package = self.get(name)
        self._set_list(name, "platforms", _merge(package.platforms, platforms))
        self._set_list(name, "excluded_platforms",
                       [p for p in package.excluded_platforms if p not in platforms])

    def exclude_platforms(self, name: str, platforms: Iterable[str]) -> None:
        """Exclude ``platforms`` for ``name``, dropping them from its allow list."""
        platforms = _validate_platforms(platforms)
        package = self.get(name)
        self._set_list(name, "excluded_platforms", _merge(package.excluded_platforms, platforms))
        self._set_list(name, "platforms", [p for p in package.platforms if p not in platforms])

    def set_outputs(self, name: str, outputs: Iterable[str]) -> None:
        self._set_list(name, "outputs", list(outputs))

    def set_allow_insecure(self, name: str, packages: Iterable[str]) -> None:
        self._set_list(name, "allow_insecure", list(packages))

    def set_patch(self, name: str, mode: str) -> None:
        if mode not in PATCH_MODES:
            raise ValueError(f"invalid patch mode {mode!r}, expected one of {', '.join(PATCH_MODES)}")
        self.set_field(name, "patch", mode)

    def set_disable_plugin(self, name: str, disabled: bool) -> None:
        if disabled:
            self.set_field(name, "disable_plugin", True)
        else:
            self.remove_field(name, "disable_plugin")

    def mark_clean(self) -> None:
        """Record that the current state has been persisted."""
        self.modified = False

    def _set_list(self, name: str, key: str, values: List[str]) -> None:
        if values:
            self.set_field(name, key, values)
        else:
            self.remove_field(name, key)

    def _reshape(self, package: Package) -> None:
        if package.is_version_only():
            return
        if package.shape == PackageShape.LEGACY_LIST:
            package.shape = PackageShape.RECORD
            self._promote(package)
        elif package.shape == PackageShape.STRING:
            package.shape = PackageShape.RECORD

    def _promote(self, keep: Optional[Package] = None) -> None:
        """Turn a legacy list into object form. There is no way back.

        Each name keeps the position of its first declaration. The declaration
        itself is ``keep`` when it shares that name, otherwise the first one.
        """
        if not self._as_array:
            return
        self._as_array = False
        kept: List[Package] = []
        seen = set()
        for package in self._packages:
            chosen = keep if keep is not None and keep.name == package.name else package
            if package.name not in seen:
                seen.add(package.name)
                if chosen.shape == PackageShape.LEGACY_LIST:
                    chosen.shape = PackageShape.STRING
                kept.append(chosen)
            if package is not chosen:
                logger.warning(
                    "Dropping duplicate declaration %r while converting packages to an object",
                    package.spec_string(),
                )
        self._packages = kept
        logger.debug("Converted legacy package list to object form")


def _merge(existing: List[str], extra: Iterable[str]) -> List[str]:
    merged = list(existing)
    for item in extra:
        if item not in merged:
            merged.append(item)
    return merged


def _validate_platforms(platforms: Iterable[str]) -> List[str]:
    platforms = list(platforms)
    for platform in platforms:
        if platform not in Constants.KNOWN_PLATFORMS:
            raise InvalidPlatformError(
                f"unsupported platform {platform!r}, expected one of "
                f"{', '.join(Constants.KNOWN_PLATFORMS)}"
            )
    return platforms
