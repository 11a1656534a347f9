"""Package spec resolution: from a declared string to installation targets."""

from .models import InstallableSyntax, MalformedReferenceError, PackageSpec, PkgRef
from .parser import detect_syntax, parse_package_spec, parse_runx_ref, split_versioned_name

__all__ = [
    "InstallableSyntax",
    "MalformedReferenceError",
    "PackageSpec",
    "PkgRef",
    "detect_syntax",
    "parse_package_spec",
    "parse_runx_ref",
    "split_versioned_name",
]
