from __future__ import annotations

import tarfile
from dataclasses import dataclass

from tar_template.archive.walker import TreeEntry

DEFAULT_FILE_MODE = 0o600
DEFAULT_DIR_MODE = 0o755


@dataclass(frozen=True, slots=True)
class ArchiveSettings:
    """Fixed permission modes applied to every entry of a build."""

    file_mode: int = DEFAULT_FILE_MODE
    dir_mode: int = DEFAULT_DIR_MODE


DEFAULT_SETTINGS = ArchiveSettings()


def normalize(
    entry: TreeEntry,
    size: int = 0,
    *,
    settings: ArchiveSettings | None = None,
) -> tarfile.TarInfo:
    """Build a tar header for ``entry`` with every host-derived field fixed.

    Timestamps are the epoch, ownership is ``0``/``""`` and the mode comes from
    ``settings`` rather than the source tree. For files, ``size`` must be the
    length of the rendered content.
    """

    settings = settings or DEFAULT_SETTINGS

    info = tarfile.TarInfo(name=entry.path)
    info.mtime = 0
    info.uid = 0
    info.gid = 0
    info.uname = ""
    info.gname = ""
    if entry.is_dir:
        info.type = tarfile.DIRTYPE
        info.mode = settings.dir_mode
        info.size = 0
    else:
        info.type = tarfile.REGTYPE
        info.mode = settings.file_mode
        info.size = size
    return info
