from __future__ import annotations

import json
from pathlib import Path
from typing import Any


def to_stable_json_bytes(data: Any) -> bytes:
    """Serialize JSON deterministically (sorted keys, UTF-8, trailing newline)."""

    return (json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False) + "\n").encode(
        "utf-8"
    )


def read_json(path: str | Path) -> Any:
    p = Path(path)
    return json.loads(p.read_text(encoding="utf-8"))


def write_json(path: str | Path, data: Any, *, make_parents: bool = False) -> Path:
    """Write JSON deterministically (UTF-8, LF newlines, trailing newline).

    The bytes on disk are exactly ``to_stable_json_bytes(data)`` so a file can be
    hashed and compared across runs.
    """

    p = Path(path)
    if make_parents:
        p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(to_stable_json_bytes(data))
    return p
