"""Flake reference and installable parsing.

Turns strings like ``github:owner/repo#pkg`` or ``./local-flake`` into typed,
comparable values consumed by the package spec resolver.
"""

from .ref import FlakeRef, FlakeSyntaxError, FlakeType, parse_ref
from .installable import Installable, parse_installable

__all__ = [
    "FlakeRef",
    "FlakeSyntaxError",
    "FlakeType",
    "Installable",
    "parse_installable",
    "parse_ref",
]
