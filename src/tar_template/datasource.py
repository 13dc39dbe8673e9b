"""Read side of the ``template_dir`` data source.

A caller hands over a source directory and a variable map; the result is the
rendered archive bytes plus the identity derived from them. The result is
read-only and is recomputed from scratch on every read.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from tar_template.archive import ArchiveSettings, build
from tar_template.evidence.hash_utils import identity
from tar_template.templating import FunctionTable
from tar_template.variables import validate_vars


@dataclass(frozen=True, slots=True)
class TemplateDirResult:
    rendered: bytes
    id: str


def read_template_dir(
    source_dir: str | Path,
    vars: Mapping[str, Any] | None = None,
    *,
    functions: FunctionTable | None = None,
    settings: ArchiveSettings | None = None,
    cancellation_event: threading.Event | None = None,
) -> TemplateDirResult:
    scope = validate_vars(vars or {})
    rendered = build(
        source_dir,
        scope,
        functions=functions,
        settings=settings,
        cancellation_event=cancellation_event,
    )
    return TemplateDirResult(rendered=rendered, id=identity(rendered))
