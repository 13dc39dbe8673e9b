from __future__ import annotations

import copy
from pathlib import Path

# name -> (template, expected rendered output) for scope {"bar": "bar"}
TEMPLATE_DIR_FILES: dict[str, tuple[str, str]] = {
    "foo.txt": ("${bar}", "bar"),
    "nested/monkey.txt": ("ooh-ooh-ooh-eee-eee", "ooh-ooh-ooh-eee-eee"),
    "maths.txt": ("${1+2+3}", "6"),
}

TEMPLATE_DIR_VARS: dict[str, str] = {"bar": "bar"}


def template_dir_files() -> dict[str, tuple[str, str]]:
    """Return a deep copy of the shared template tree fixture.

    Tests should treat fixtures as immutable; a deep copy prevents accidental mutation.
    """

    return copy.deepcopy(TEMPLATE_DIR_FILES)


def write_tree(root: Path, files: dict[str, str | bytes]) -> Path:
    """Write ``files`` (relative POSIX path -> content) below ``root``."""

    root.mkdir(parents=True, exist_ok=True)
    for name, content in files.items():
        path = root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8", newline="")
    return root


def write_template_tree(root: Path) -> Path:
    return write_tree(root, {name: tpl for name, (tpl, _want) in TEMPLATE_DIR_FILES.items()})
