"""Flake installables: a flake reference plus an attribute path and outputs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from constants import Constants
from .ref import FlakeRef, FlakeSyntaxError, parse_ref


@dataclass(frozen=True)
class Installable:
    """Something nix can build, e.g. ``nixpkgs#hello^out,man``.

    ``attr_path`` is kept verbatim; an empty attribute path means the flake's
    default package.
    """

    ref: FlakeRef
    attr_path: str = ""
    outputs: Tuple[str, ...] = ()

    def __str__(self) -> str:
        s = str(self.ref)
        if self.attr_path:
            s += Constants.ATTR_PATH_SEPARATOR + self.attr_path
        if self.outputs:
            s += Constants.OUTPUTS_SEPARATOR + ",".join(self.outputs)
        return s


def parse_installable(s: str) -> Installable:
    """Parse ``ref[#attr.path][^out1,out2]`` into an Installable.

    Raises:
        FlakeSyntaxError: If the reference part is invalid.
    """
    if not s:
        raise FlakeSyntaxError("empty installable")

    ref_part, sep, fragment = s.partition(Constants.ATTR_PATH_SEPARATOR)
    outputs: Tuple[str, ...] = ()
    if sep and Constants.OUTPUTS_SEPARATOR in fragment:
        fragment, raw_outputs = fragment.rsplit(Constants.OUTPUTS_SEPARATOR, 1)
        outputs = tuple(o for o in raw_outputs.split(",") if o)
        if not outputs:
            raise FlakeSyntaxError(f"installable {s!r} has an empty output list")
    return Installable(ref=parse_ref(ref_part), attr_path=fragment, outputs=outputs)
