from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from tar_template.archive.builder import BuildResult

BUILD_METADATA_SCHEMA_VERSION = "1.0.0"


def build_metadata(result: BuildResult, scope: Mapping[str, str]) -> dict[str, Any]:
    """Deterministic description of a build: no timestamps, no host paths.

    Variable values are left out; only their names are recorded.
    """

    return {
        "schema_version": BUILD_METADATA_SCHEMA_VERSION,
        "identity": result.identity,
        "size": len(result.data),
        "entries": [
            {
                "path": m.path,
                "kind": m.kind.value,
                "size": m.size,
                "sha256": m.sha256,
            }
            for m in result.members
        ],
        "variables": sorted(scope),
    }
