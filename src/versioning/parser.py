"""Token parsing utilities for package spec resolution."""

import logging
from typing import Optional, Tuple

from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from flake import FlakeSyntaxError, Installable, parse_installable, parse_ref

from .models import InstallableSyntax, MalformedReferenceError, PackageSpec, PkgRef

logger = logging.getLogger(__name__)


def split_versioned_name(s: str) -> Tuple[str, str]:
    """Return (name, version) using the rightmost-@ rule.

    A leading @ (scoped names such as ``@angular/cli``) and a trailing bare @
    are part of the name, never a separator.
    """
    i = s.rfind("@")
    if i <= 0 or i == len(s) - 1:
        return s, ""
    return s[:i], s[i + 1:]


def detect_syntax(s: str) -> InstallableSyntax:
    """Classify ``s`` before any backend-specific parsing."""
    if s == "":
        return InstallableSyntax.EMPTY
    if s.startswith(Constants.RUNX_PREFIX):
        return InstallableSyntax.RUNX
    # The attribute path separator only means something in a flake
    # reference, so its presence alone commits the string to that path.
    if s.startswith(Constants.FLAKE_PREFIXES) or Constants.ATTR_PATH_SEPARATOR in s:
        return InstallableSyntax.FLAKE
    return InstallableSyntax.PLAIN_NAME


def parse_runx_ref(s: str) -> PkgRef:
    """Parse ``runx:owner/repo[@version]``.

    Raises:
        MalformedReferenceError: If owner or repo is missing.
    """
    body = s[len(Constants.RUNX_PREFIX):] if s.startswith(Constants.RUNX_PREFIX) else s
    owner, sep, rest = body.partition("/")
    repo, version = split_versioned_name(rest)
    if not sep or not owner or not repo:
        raise MalformedReferenceError(f"runx reference {s!r} must be of the form runx:owner/repo[@version]")
    return PkgRef(owner=owner, repo=repo, version=version or Constants.DEFAULT_VERSION)


def _try_installable(s: str) -> Optional[Installable]:
    try:
        return parse_installable(s)
    except FlakeSyntaxError as exc:
        logger.debug("Not a flake installable %r: %s", s, exc)
        return None


def _index_installable(attr_path: str, legacy_pin: str) -> Optional[Installable]:
    """Build an attribute path lookup against the default package index."""
    try:
        index = parse_ref(Constants.DEFAULT_INDEX)
    except FlakeSyntaxError as exc:
        logger.warning("Invalid default package index %r: %s", Constants.DEFAULT_INDEX, exc)
        return None
    if legacy_pin:
        index = index.pinned(legacy_pin)
    return Installable(ref=index, attr_path=attr_path)


def parse_package_spec(raw: str, legacy_pin: str = "") -> PackageSpec:
    """Resolve a package string into its installation targets.

    Never raises: a string that cannot be resolved yields an empty
    PackageSpec and the caller decides whether that is an error.

    Args:
        raw: Package string as written in the config (``go@1.22``,
            ``github:owner/repo#pkg``, ``runx:owner/repo``...).
        legacy_pin: Deprecated fixed revision of the default index. When set,
            plain names resolve only against that revision.

    Returns:
        The resolved PackageSpec.
    """
    syntax = detect_syntax(raw)
    if is_debug_enabled(logger):
        logger.debug(
            "Resolving package spec",
            extra=extra_context(
                event="resolve_spec",
                component="parser",
                target=raw,
                syntax=syntax.value,
                legacy_pin=legacy_pin or None,
            ),
        )

    if syntax == InstallableSyntax.EMPTY:
        return PackageSpec()

    if syntax == InstallableSyntax.RUNX:
        try:
            return PackageSpec(runx=parse_runx_ref(raw))
        except MalformedReferenceError as exc:
            logger.debug("Dropping unresolvable runx reference: %s", exc)
            return PackageSpec()

    if syntax == InstallableSyntax.FLAKE:
        # An unrecognised scheme in front of '#' is dropped rather than
        # retried as a plain name.
        installable = _try_installable(raw)
        if installable is None:
            return PackageSpec()
        return PackageSpec(installable=installable)

    name, version = split_versioned_name(raw)

    if legacy_pin:
        if version == "":
            # No implicit @latest with a pinned index.
            return PackageSpec(attr_path_installable=_index_installable(name, legacy_pin))
        return PackageSpec(
            name=name,
            version=version,
            attr_path_installable=_index_installable(raw, legacy_pin),
        )

    token = raw if version else name
    return PackageSpec(
        name=name,
        version=version or Constants.DEFAULT_VERSION,
        installable=_try_installable(Constants.INDIRECT_SCHEME + token),
        attr_path_installable=_index_installable(token, ""),
    )

