from __future__ import annotations

from pathlib import Path

from tar_template import cli

from scripts.validate_archive_output import main, validate_output
from tests.fixtures import write_template_tree


def _build_output(tmp_path: Path, *, metadata: bool = True) -> Path:
    root = write_template_tree(tmp_path / "tpl")
    out_dir = tmp_path / "out"
    args = [
        "build",
        "--source-dir",
        str(root),
        "--var",
        "bar=bar",
        "--out",
        str(out_dir / "archive.tar"),
        "--sha256-out",
        str(out_dir / "archive.sha256"),
    ]
    if metadata:
        args += ["--metadata-out", str(out_dir / "metadata.json")]
    assert cli.main(args) == 0
    return out_dir


def test_validate_output_passes_for_fresh_build(tmp_path: Path) -> None:
    out_dir = _build_output(tmp_path)

    result = validate_output(out_dir)

    assert result.ok
    assert result.errors == []
    assert result.warnings == []


def test_validate_output_warns_without_metadata(tmp_path: Path) -> None:
    out_dir = _build_output(tmp_path, metadata=False)

    result = validate_output(out_dir)

    assert result.ok
    assert any("metadata.json" in w for w in result.warnings)


def test_validate_output_fails_on_tampered_archive(tmp_path: Path) -> None:
    out_dir = _build_output(tmp_path)
    archive = out_dir / "archive.tar"
    data = bytearray(archive.read_bytes())
    data[-1] = 1
    archive.write_bytes(bytes(data))

    result = validate_output(out_dir)

    assert not result.ok
    assert any("SHA256 mismatch for archive.tar" in e for e in result.errors)
    assert any("identity does not match" in e for e in result.errors)


def test_validate_output_fails_on_missing_files(tmp_path: Path) -> None:
    out_dir = tmp_path / "out"
    out_dir.mkdir()

    result = validate_output(out_dir)

    assert not result.ok
    assert "Missing required file: archive.tar" in result.errors


def test_main_exit_codes(tmp_path: Path) -> None:
    out_dir = _build_output(tmp_path)
    assert main([str(out_dir)]) == 0
    (out_dir / "archive.sha256").write_text("0" * 64 + "  archive.tar\n", encoding="utf-8")
    assert main([str(out_dir)]) == 1
