"""Duplicate detection, identity fixes and integrity checks for clinical registries.

Run passes through :mod:`clinrecon.app` or the ``clinrecon`` console script.
"""

from __future__ import annotations

from importlib import metadata

try:
    __version__ = metadata.version("clinrecon")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0+local"
