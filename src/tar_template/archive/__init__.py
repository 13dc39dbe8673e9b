"""Deterministic tree walking and tar construction."""

from __future__ import annotations

from tar_template.archive.builder import ArchiveMember, BuildResult, build, build_with_manifest
from tar_template.archive.headers import ArchiveSettings, normalize
from tar_template.archive.walker import EntryKind, TreeEntry, walk

__all__ = [
    "ArchiveMember",
    "ArchiveSettings",
    "BuildResult",
    "EntryKind",
    "TreeEntry",
    "build",
    "build_with_manifest",
    "normalize",
    "walk",
]
