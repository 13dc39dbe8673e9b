"""Deterministic tar archives of rendered template directories.

The same directory contents plus the same variables always produce
byte-identical archive bytes, and therefore the same sha256 identity.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__: list[str] = [
    "archive",
    "datasource",
    "errors",
    "evidence",
    "templating",
    "variables",
]
