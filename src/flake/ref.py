"""Flake reference parsing.

A flake reference locates a source tree independently of any package index,
for example ``github:NixOS/nixpkgs/nixos-24.05``, ``path:./my-flake`` or the
indirect registry form ``flake:nixpkgs``. Parsing is lenient in the same places
nix is lenient and strict where a typo would silently change meaning (unknown
schemes, missing owner/repo).
"""

from __future__ import annotations

import re
import urllib.parse
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Tuple


class FlakeSyntaxError(ValueError):
    """Raised when a string is not a valid flake reference or installable."""


class FlakeType(Enum):
    """Supported flake reference types."""

    INDIRECT = "indirect"
    PATH = "path"
    GITHUB = "github"
    GITLAB = "gitlab"
    SOURCEHUT = "sourcehut"
    GIT = "git"
    TARBALL = "tarball"
    FILE = "file"


_FORGE_TYPES = {
    "github": FlakeType.GITHUB,
    "gitlab": FlakeType.GITLAB,
    "sourcehut": FlakeType.SOURCEHUT,
}
_TRANSPORTS = ("http", "https", "ssh", "file")
_ARCHIVE_SUFFIXES = (".zip", ".tar", ".tgz", ".tar.gz", ".tar.xz", ".tar.bz2", ".tar.zst")
_REV_PATTERN = re.compile(r"^[0-9a-fA-F]{40}$")


def _is_rev(s: str) -> bool:
    return bool(_REV_PATTERN.match(s))


@dataclass(frozen=True)
class FlakeRef:
    """A parsed flake reference.

    Only the attributes meaningful for ``type`` are set; the rest stay empty so
    two references to the same source compare equal.
    """

    type: FlakeType
    id: str = ""
    owner: str = ""
    repo: str = ""
    ref: str = ""
    rev: str = ""
    path: str = ""
    url: str = ""
    dir: str = ""
    host: str = ""

    def __str__(self) -> str:
        if self.type == FlakeType.INDIRECT:
            s = "flake:" + "/".join(p for p in (self.id, self.ref, self.rev) if p)
            return s + self._query(include_ref=False)
        if self.type == FlakeType.PATH:
            return "path:" + self.path + self._query(include_ref=False)
        if self.type in _FORGE_TYPES.values():
            s = f"{self.type.value}:{self.owner}/{self.repo}"
            if self.rev or self.ref:
                s += "/" + (self.rev or self.ref)
            return s + self._query(include_ref=False, include_host=True)
        if self.type == FlakeType.GIT and self.url.startswith("git:"):
            return self.url + self._query(include_ref=True)
        return f"{self.type.value}+{self.url}" + self._query(include_ref=True)

    def pinned(self, pin: str) -> "FlakeRef":
        """Return a copy fixed to ``pin``, stored as rev when it is a commit hash."""
        if _is_rev(pin):
            return replace(self, ref="", rev=pin)
        return replace(self, ref=pin, rev="")

    def _query(self, include_ref: bool, include_host: bool = False) -> str:
        params = []
        if include_ref and self.ref:
            params.append(("ref", self.ref))
        if include_ref and self.rev:
            params.append(("rev", self.rev))
        if self.dir:
            params.append(("dir", self.dir))
        if include_host and self.host:
            params.append(("host", self.host))
        return "?" + urllib.parse.urlencode(params) if params else ""


def _split_query(s: str) -> Tuple[str, Dict[str, str]]:
    """Split ``s`` into its body and a flat mapping of query parameters."""
    if "?" not in s:
        return s, {}
    body, raw_query = s.split("?", 1)
    return body, dict(urllib.parse.parse_qsl(raw_query, keep_blank_values=True))


def _parse_indirect(body: str, query: Dict[str, str]) -> FlakeRef:
    parts = body.split("/")
    if len(parts) > 3:
        raise FlakeSyntaxError(f"indirect flake reference {body!r} has too many path segments")
    if any(":" in p for p in parts):
        raise FlakeSyntaxError(f"invalid indirect flake reference {body!r}")
    flake_id = parts[0]
    if not flake_id:
        raise FlakeSyntaxError("indirect flake reference is missing an id")
    ref, rev = "", ""
    if len(parts) == 2:
        if _is_rev(parts[1]):
            rev = parts[1]
        else:
            ref = parts[1]
    elif len(parts) == 3:
        ref, rev = parts[1], parts[2]
        if not _is_rev(rev):
            raise FlakeSyntaxError(f"invalid revision {rev!r} in flake reference {body!r}")
    return FlakeRef(
        type=FlakeType.INDIRECT,
        id=flake_id,
        ref=ref or query.get("ref", ""),
        rev=rev or query.get("rev", ""),
        dir=query.get("dir", ""),
    )


def _parse_path(body: str, query: Dict[str, str]) -> FlakeRef:
    if not body:
        raise FlakeSyntaxError("path flake reference is missing a path")
    return FlakeRef(type=FlakeType.PATH, path=body, dir=query.get("dir", ""))


def _parse_forge(flake_type: FlakeType, body: str, query: Dict[str, str]) -> FlakeRef:
    parts = body.split("/", 2)
    if len(parts) < 2 or not parts[0] or not parts[1]:
        raise FlakeSyntaxError(
            f"{flake_type.value} flake reference {body!r} must be of the form owner/repo"
        )
    owner, repo = parts[0], parts[1]
    ref, rev = "", ""
    if len(parts) == 3 and parts[2]:
        if _is_rev(parts[2]):
            rev = parts[2]
        else:
            ref = parts[2]
    if query.get("ref") and (ref or rev):
        raise FlakeSyntaxError(f"flake reference {body!r} sets a ref both in its path and query")
    return FlakeRef(
        type=flake_type,
        owner=owner,
        repo=repo,
        ref=ref or query.get("ref", ""),
        rev=rev or query.get("rev", ""),
        dir=query.get("dir", ""),
        host=query.get("host", ""),
    )


def _parse_url(flake_type: FlakeType, url: str, query: Dict[str, str]) -> FlakeRef:
    if not url or url.endswith("://") or url.endswith(":"):
        raise FlakeSyntaxError(f"{flake_type.value} flake reference is missing a URL")
    return FlakeRef(
        type=flake_type,
        url=url,
        ref=query.get("ref", ""),
        rev=query.get("rev", ""),
        dir=query.get("dir", ""),
    )


def parse_ref(s: str) -> FlakeRef:
    """Parse a flake reference string.

    Args:
        s: Reference such as ``nixpkgs``, ``flake:nixpkgs/nixos-24.05``,
            ``./my-flake`` or ``github:owner/repo/ref``.

    Returns:
        The parsed FlakeRef.

    Raises:
        FlakeSyntaxError: If ``s`` is not a recognised flake reference.
    """
    if not s:
        raise FlakeSyntaxError("empty flake reference")

    body, query = _split_query(s)

    if body.startswith(".") or body.startswith("/"):
        return _parse_path(body, query)
    if ":" not in body:
        return _parse_indirect(body, query)

    scheme, rest = body.split(":", 1)
    if scheme == "flake":
        return _parse_indirect(rest, query)
    if scheme == "path":
        return _parse_path(rest, query)
    if scheme in _FORGE_TYPES:
        return _parse_forge(_FORGE_TYPES[scheme], rest, query)
    if scheme == "git":
        return _parse_url(FlakeType.GIT, body, query)

    base, _, transport = scheme.partition("+")
    if transport and transport not in _TRANSPORTS:
        raise FlakeSyntaxError(f"unsupported transport {transport!r} in flake reference {s!r}")
    if base == "git" and transport:
        return _parse_url(FlakeType.GIT, f"{transport}:{rest}", query)
    if base in ("tarball", "file") and transport:
        return _parse_url(FlakeType(base), f"{transport}:{rest}", query)
    if base in ("tarball", "file"):
        return _parse_url(FlakeType(base), f"file:{rest}", query)
    if scheme in ("http", "https"):
        flake_type = FlakeType.TARBALL if body.endswith(_ARCHIVE_SUFFIXES) else FlakeType.FILE
        return _parse_url(flake_type, body, query)

    raise FlakeSyntaxError(f"unsupported flake reference URL scheme {scheme!r} in {s!r}")

