from __future__ import annotations

import argparse
import hashlib
import io
import tarfile
from dataclasses import dataclass
from pathlib import Path

from tar_template.evidence.hash_utils import read_sha256_sidecar, sha256_file
from tar_template.evidence.stable_json import read_json

ARCHIVE_NAME = "archive.tar"
SIDECAR_NAME = "archive.sha256"
METADATA_NAME = "metadata.json"


@dataclass(frozen=True, slots=True)
class ValidationResult:
    ok: bool
    errors: list[str]
    warnings: list[str]


def _archive_entries(data: bytes) -> list[dict[str, object]]:
    entries: list[dict[str, object]] = []
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:") as tr:
        for member in tr:
            if member.isdir():
                entries.append(
                    {"path": member.name, "kind": "directory", "size": 0, "sha256": None}
                )
                continue
            f = tr.extractfile(member)
            content = f.read() if f is not None else b""
            entries.append(
                {
                    "path": member.name,
                    "kind": "file",
                    "size": member.size,
                    "sha256": hashlib.sha256(content).hexdigest(),
                }
            )
    return entries


def validate_output(out_dir: str | Path) -> ValidationResult:
    out_path = Path(out_dir)
    errors: list[str] = []
    warnings: list[str] = []

    if not out_path.is_dir():
        return ValidationResult(False, [f"Output path is not a directory: {out_path}"], [])

    archive_path = out_path / ARCHIVE_NAME
    sidecar_path = out_path / SIDECAR_NAME
    metadata_path = out_path / METADATA_NAME

    for required in (archive_path, sidecar_path):
        if not required.is_file():
            errors.append(f"Missing required file: {required.name}")
    if errors:
        return ValidationResult(False, errors, warnings)

    actual = sha256_file(archive_path)
    try:
        expected, name = read_sha256_sidecar(sidecar_path)
    except ValueError as exc:
        errors.append(f"Failed to parse {SIDECAR_NAME}: {exc}")
        return ValidationResult(False, errors, warnings)

    if name != ARCHIVE_NAME:
        warnings.append(f"{SIDECAR_NAME} names {name!r}, expected {ARCHIVE_NAME!r}")
    if expected != actual:
        errors.append(f"SHA256 mismatch for {ARCHIVE_NAME}: expected={expected} actual={actual}")

    if not metadata_path.is_file():
        warnings.append(f"Missing recommended file: {METADATA_NAME}")
        return ValidationResult(ok=not errors, errors=errors, warnings=warnings)

    metadata = read_json(metadata_path)
    if metadata.get("identity") != actual:
        errors.append(f"{METADATA_NAME} identity does not match {ARCHIVE_NAME}")
    if metadata.get("size") != archive_path.stat().st_size:
        errors.append(f"{METADATA_NAME} size does not match {ARCHIVE_NAME}")

    try:
        entries = _archive_entries(archive_path.read_bytes())
    except tarfile.TarError as exc:
        errors.append(f"Failed to read {ARCHIVE_NAME}: {exc.__class__.__name__}: {exc}")
        return ValidationResult(False, errors, warnings)

    if metadata.get("entries") != entries:
        errors.append(f"{METADATA_NAME} entries do not match {ARCHIVE_NAME} members")

    return ValidationResult(ok=not errors, errors=errors, warnings=warnings)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python scripts/validate_archive_output.py",
        description=(
            "Validate a build output folder (archive.tar + archive.sha256 + optional "
            "metadata.json) for internal consistency."
        ),
    )
    parser.add_argument("out_dir", type=str, help="Path to the build output folder")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    result = validate_output(args.out_dir)

    for w in result.warnings:
        print(f"WARN: {w}")

    if result.ok:
        print("PASS: archive output is valid")
        return 0

    print("FAIL: archive output is invalid")
    for e in result.errors:
        print(f"- {e}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
