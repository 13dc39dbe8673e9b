from __future__ import annotations

import json
from pathlib import Path

from tar_template.archive import build_with_manifest
from tar_template.evidence.build_metadata import build_metadata
from tar_template.evidence.stable_json import to_stable_json_bytes

from tests.fixtures import TEMPLATE_DIR_VARS, write_template_tree


def _schema() -> dict:
    repo_root = Path(__file__).resolve().parents[1]
    schema_path = repo_root / "schemas" / "build_metadata.schema.json"
    return json.loads(schema_path.read_text(encoding="utf-8"))


def test_build_metadata_validates_against_schema(tmp_path: Path) -> None:
    # Keep dependency lightweight: jsonschema is a dev/test-only dependency.
    import jsonschema

    root = write_template_tree(tmp_path / "tpl")
    result = build_with_manifest(root, TEMPLATE_DIR_VARS)

    metadata = build_metadata(result, TEMPLATE_DIR_VARS)

    jsonschema.validate(instance=metadata, schema=_schema())
    assert metadata["identity"] == result.identity
    assert metadata["size"] == len(result.data)


def test_build_metadata_has_no_host_specific_fields(tmp_path: Path) -> None:
    root = write_template_tree(tmp_path / "tpl")
    result = build_with_manifest(root, {"bar": "secret-value"})

    raw = to_stable_json_bytes(build_metadata(result, {"bar": "secret-value"}))

    assert str(tmp_path).encode("utf-8") not in raw
    assert b"secret-value" not in raw


def test_build_metadata_bytes_are_deterministic(tmp_path: Path) -> None:
    root = write_template_tree(tmp_path / "tpl")

    one = to_stable_json_bytes(build_metadata(build_with_manifest(root, TEMPLATE_DIR_VARS), TEMPLATE_DIR_VARS))
    two = to_stable_json_bytes(build_metadata(build_with_manifest(root, TEMPLATE_DIR_VARS), TEMPLATE_DIR_VARS))

    assert one == two
    assert one.endswith(b"\n")
