from __future__ import annotations

import enum
import logging
import os
import stat
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from tar_template.errors import TraversalError

logger = logging.getLogger(__name__)


class EntryKind(str, enum.Enum):
    DIRECTORY = "directory"
    FILE = "file"


@dataclass(slots=True)
class TreeEntry:
    """One node below the walk root.

    ``path`` is relative to the root and always uses ``/`` separators.
    File content is read on first access and kept for the entry's lifetime.
    """

    path: str
    kind: EntryKind
    source: Path
    _content: bytes | None = field(default=None, repr=False, compare=False)

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    def content(self) -> bytes:
        if self.is_dir:
            raise ValueError(f"directory entry has no content: {self.path}")
        if self._content is None:
            try:
                self._content = self.source.read_bytes()
            except OSError as exc:
                raise TraversalError(self.path, _reason(exc)) from exc
        return self._content


def _reason(exc: OSError) -> str:
    return exc.strerror or exc.__class__.__name__


def _sorted_children(directory: Path, rel: str) -> list[str]:
    try:
        names = os.listdir(directory)
    except OSError as exc:
        raise TraversalError(rel or ".", _reason(exc)) from exc
    # Byte-wise order, independent of locale and filesystem listing order.
    return sorted(names, key=os.fsencode)


def _classify(path: Path, rel: str) -> EntryKind:
    try:
        st_link = path.lstat()
        st = path.stat()
    except FileNotFoundError as exc:
        raise TraversalError(rel, "broken symlink or vanished file") from exc
    except OSError as exc:
        raise TraversalError(rel, _reason(exc)) from exc

    if stat.S_ISDIR(st.st_mode):
        if stat.S_ISLNK(st_link.st_mode):
            raise TraversalError(rel, "symlinked directories are not supported")
        return EntryKind.DIRECTORY
    if stat.S_ISREG(st.st_mode):
        return EntryKind.FILE
    raise TraversalError(rel, "not a regular file or directory")


def walk(root: str | Path) -> Iterator[TreeEntry]:
    """Yield every entry below ``root`` in deterministic order.

    Each directory's children are visited in byte-wise lexical order of their
    names and a directory is yielded before its contents. The root itself is
    never yielded. Any I/O failure raises ``TraversalError``.
    """

    root_path = Path(root)
    try:
        st = root_path.stat()
    except OSError as exc:
        raise TraversalError(str(root_path), _reason(exc)) from exc
    if not stat.S_ISDIR(st.st_mode):
        raise TraversalError(str(root_path), "source is not a directory")

    yield from _walk_dir(root_path, "")


def _walk_dir(directory: Path, rel_dir: str) -> Iterator[TreeEntry]:
    for name in _sorted_children(directory, rel_dir):
        child = directory / name
        rel = f"{rel_dir}/{name}" if rel_dir else name
        kind = _classify(child, rel)
        logger.debug("walk %s (%s)", rel, kind.value)
        yield TreeEntry(path=rel, kind=kind, source=child)
        if kind is EntryKind.DIRECTORY:
            yield from _walk_dir(child, rel)
