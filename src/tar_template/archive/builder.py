from __future__ import annotations

import hashlib
import io
import logging
import tarfile
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from tar_template.archive.headers import ArchiveSettings, normalize
from tar_template.archive.walker import EntryKind, walk
from tar_template.errors import CancellationError, TemplateRenderError
from tar_template.evidence.hash_utils import identity
from tar_template.templating import FunctionTable, TemplateError, TemplateEvaluationError, render

logger = logging.getLogger(__name__)

# pax keeps long and non-ASCII names intact; with integer mtime and empty
# owner names it emits no extended headers for ordinary trees.
ARCHIVE_FORMAT = tarfile.PAX_FORMAT
ARCHIVE_ENCODING = "utf-8"


@dataclass(frozen=True, slots=True)
class ArchiveMember:
    path: str
    kind: EntryKind
    size: int
    sha256: str | None


@dataclass(frozen=True, slots=True)
class BuildResult:
    data: bytes
    members: tuple[ArchiveMember, ...]

    @property
    def identity(self) -> str:
        return identity(self.data)


def _render_file(path: str, raw: bytes, scope: Mapping[str, str], functions) -> bytes:
    # surrogateescape lets undecodable bytes pass through unchanged.
    text = raw.decode("utf-8", errors="surrogateescape")
    try:
        rendered = render(text, scope, functions=functions)
    except TemplateError as exc:
        raise TemplateRenderError(path, exc) from exc
    try:
        return rendered.encode("utf-8", errors="surrogateescape")
    except UnicodeEncodeError as exc:
        cause = TemplateEvaluationError(f"rendered text is not encodable: {exc.reason}")
        raise TemplateRenderError(path, cause) from exc


def build_with_manifest(
    root: str | Path,
    scope: Mapping[str, str],
    *,
    functions: FunctionTable | None = None,
    settings: ArchiveSettings | None = None,
    cancellation_event: threading.Event | None = None,
) -> BuildResult:
    """Render every file below ``root`` and serialize the tree as a tar archive.

    The first traversal or render failure aborts the whole build; no partial
    archive is ever returned.
    """

    buf = io.BytesIO()
    members: list[ArchiveMember] = []

    with tarfile.open(
        fileobj=buf, mode="w", format=ARCHIVE_FORMAT, encoding=ARCHIVE_ENCODING
    ) as tw:
        for entry in walk(root):
            if cancellation_event is not None and cancellation_event.is_set():
                logger.info("Build of %s cancelled before %s", root, entry.path)
                raise CancellationError(f"build cancelled before {entry.path}")

            if entry.kind is EntryKind.DIRECTORY:
                tw.addfile(normalize(entry, settings=settings))
                members.append(ArchiveMember(entry.path, entry.kind, 0, None))
                continue

            content = _render_file(entry.path, entry.content(), scope, functions)
            header = normalize(entry, len(content), settings=settings)
            tw.addfile(header, io.BytesIO(content))
            members.append(
                ArchiveMember(
                    entry.path,
                    entry.kind,
                    len(content),
                    hashlib.sha256(content).hexdigest(),
                )
            )
            logger.debug("Added %s (%d bytes)", entry.path, len(content))

    result = BuildResult(data=buf.getvalue(), members=tuple(members))
    logger.info(
        "Built archive of %s: %d entries, %d bytes, sha256=%s",
        root,
        len(members),
        len(result.data),
        result.identity[:12],
    )
    return result


def build(
    root: str | Path,
    scope: Mapping[str, str],
    *,
    functions: FunctionTable | None = None,
    settings: ArchiveSettings | None = None,
    cancellation_event: threading.Event | None = None,
) -> bytes:
    return build_with_manifest(
        root,
        scope,
        functions=functions,
        settings=settings,
        cancellation_event=cancellation_event,
    ).data
