"""Data models for package spec resolution."""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from flake import Installable


class InstallableSyntax(Enum):
    """Resolution domain a raw package string belongs to."""
    EMPTY = "empty"
    RUNX = "runx"
    FLAKE = "flake"
    PLAIN_NAME = "plain_name"


class MalformedReferenceError(ValueError):
    """Raised when a runx reference lacks an owner or repo."""


@dataclass(frozen=True)
class PkgRef:
    """Reference to a tool published on the runx registry."""
    owner: str
    repo: str
    version: str

    def __str__(self) -> str:
        return f"runx:{self.owner}/{self.repo}@{self.version}"


@dataclass
class PackageSpec:
    """Resolved installation targets for one package string.

    ``installable`` and ``attr_path_installable`` are both set only for plain
    names without a legacy pin; callers try them in that order.
    """
    name: str = ""
    version: str = ""
    installable: Optional[Installable] = None  # flake reference
    attr_path_installable: Optional[Installable] = None  # lookup in the package index
    runx: Optional[PkgRef] = None

    def candidates(self) -> List[Installable]:
        """Return installables in the order a builder should try them."""
        return [i for i in (self.installable, self.attr_path_installable) if i is not None]

    def is_empty(self) -> bool:
        """True when the string could not be resolved to anything installable."""
        return self == PackageSpec()
