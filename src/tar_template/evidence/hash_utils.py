from __future__ import annotations

import hashlib
from pathlib import Path

_CHUNK_SIZE = 1024 * 1024


def identity(archive_bytes: bytes) -> str:
    """Hex sha256 of a complete archive; used as the archive's identity."""

    return hashlib.sha256(archive_bytes).hexdigest()


def sha256_file(path: str | Path) -> str:
    file_path = Path(path)
    digest = hashlib.sha256()
    with file_path.open("rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def write_sha256_sidecar(*, file_path: str | Path, out: str | Path) -> Path:
    # Common sha256sum-style format: <sha256>  <filename>
    file_path = Path(file_path)
    out_path = Path(out)
    line = f"{sha256_file(file_path)}  {file_path.name}\n"
    out_path.write_text(line, encoding="utf-8", newline="\n")
    return out_path


def read_sha256_sidecar(path: str | Path) -> tuple[str, str]:
    text = Path(path).read_text(encoding="utf-8")
    lines = [ln for ln in text.splitlines() if ln.strip()]
    if len(lines) != 1:
        raise ValueError(f"expected exactly one line in sha256 sidecar: {path}")

    line = lines[0].strip()
    if "  " not in line:
        raise ValueError(f"malformed sha256 sidecar line: {line!r}")
    digest, name = line.split("  ", 1)
    if len(digest) != 64 or any(c not in "0123456789abcdef" for c in digest):
        raise ValueError(f"malformed sha256 digest in sidecar: {digest!r}")
    return digest, name
