"""
copy_compliance package bootstrap.

Two-stage compliance gate for generated healthcare ad copy: a deterministic
rule scan followed by an external semantic review.
"""

from importlib import metadata


def get_version() -> str:
    """Return the package version if installed, else '0.0.0'."""
    try:
        return metadata.version("copy-compliance")
    except metadata.PackageNotFoundError:  # pragma: no cover - best effort only
        return "0.0.0"


__all__ = ["get_version"]
