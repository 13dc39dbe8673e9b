from __future__ import annotations

import io
import os
import tarfile
import threading
from pathlib import Path

import pytest

from tar_template.archive import EntryKind, build, build_with_manifest
from tar_template.errors import CancellationError, TemplateRenderError, TraversalError
from tar_template.evidence.hash_utils import identity
from tar_template.templating import (
    TemplateEvaluationError,
    TemplateFunction,
    TemplateSyntaxError,
    default_functions,
)

from tests.fixtures import TEMPLATE_DIR_FILES, TEMPLATE_DIR_VARS, write_template_tree, write_tree


def _read_members(data: bytes) -> list[tuple[tarfile.TarInfo, bytes | None]]:
    out: list[tuple[tarfile.TarInfo, bytes | None]] = []
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:") as tr:
        for member in tr:
            f = tr.extractfile(member) if member.isfile() else None
            out.append((member, f.read() if f is not None else None))
    return out


def test_end_to_end_template_dir(tmp_path: Path) -> None:
    root = write_template_tree(tmp_path / "tpl")

    data = build(root, TEMPLATE_DIR_VARS)

    members = _read_members(data)
    names = [m.name for m, _ in members]
    assert names == ["foo.txt", "maths.txt", "nested", "nested/monkey.txt"]

    for member, content in members:
        if member.isdir():
            assert member.name == "nested"
            assert content is None
            continue
        _template, want = TEMPLATE_DIR_FILES[member.name]
        assert content == want.encode("utf-8")
        assert member.size == len(want)
        assert member.mtime == 0
        assert (member.uid, member.gid, member.uname, member.gname) == (0, 0, "", "")


def test_build_is_deterministic(tmp_path: Path) -> None:
    root = write_template_tree(tmp_path / "tpl")

    first = build(root, TEMPLATE_DIR_VARS)
    second = build(root, dict(TEMPLATE_DIR_VARS))

    assert first == second
    assert identity(first) == identity(second)


def test_archive_ends_with_terminator(tmp_path: Path) -> None:
    root = write_template_tree(tmp_path / "tpl")

    data = build(root, TEMPLATE_DIR_VARS)

    assert len(data) % tarfile.RECORDSIZE == 0
    assert data[-1024:] == b"\0" * 1024


def test_empty_tree_is_just_the_terminator(tmp_path: Path) -> None:
    root = tmp_path / "empty"
    root.mkdir()
    assert build(root, {}) == b"\0" * tarfile.RECORDSIZE


def test_same_tree_created_in_different_order_gives_same_bytes(tmp_path: Path) -> None:
    files = {"b.txt": "${bar}", "a/x.txt": "x", "c.txt": "c"}
    one = write_tree(tmp_path / "one", files)
    two = write_tree(tmp_path / "two", dict(reversed(list(files.items()))))

    assert build(one, TEMPLATE_DIR_VARS) == build(two, TEMPLATE_DIR_VARS)


def test_permuted_names_change_the_archive(tmp_path: Path) -> None:
    one = write_tree(tmp_path / "one", {"a.txt": "first", "b.txt": "second"})
    two = write_tree(tmp_path / "two", {"b.txt": "first", "a.txt": "second"})
    three = write_tree(tmp_path / "three", {"a.txt": "second", "b.txt": "first"})

    # Same file set, different name->content pairs.
    assert build(one, {}) != build(three, {})
    # Identical name->content pairs.
    assert build(two, {}) == build(three, {})


def test_disk_metadata_does_not_leak_into_archive(tmp_path: Path) -> None:
    files = {"f.txt": "${bar}", "d/g.txt": "g"}
    one = write_tree(tmp_path / "one", files)
    two = write_tree(tmp_path / "two", files)

    os.chmod(one / "f.txt", 0o644)
    os.chmod(two / "f.txt", 0o400)
    os.chmod(two / "d", 0o700)
    os.utime(one / "f.txt", (0, 0))
    os.utime(two / "f.txt", (1_700_000_000, 1_700_000_000))
    os.utime(two / "d", (1_600_000_000, 1_600_000_000))

    assert build(one, TEMPLATE_DIR_VARS) == build(two, TEMPLATE_DIR_VARS)


def test_header_size_is_rendered_length(tmp_path: Path) -> None:
    root = write_tree(tmp_path / "tpl", {"long.txt": "${v}"})

    data = build(root, {"v": "a much longer value than the template"})

    ((member, content),) = _read_members(data)
    assert member.size == len("a much longer value than the template")
    assert content == b"a much longer value than the template"


def test_undecodable_bytes_pass_through(tmp_path: Path) -> None:
    raw = b"\xff\xfe plain \x00\x80 bytes"
    root = write_tree(tmp_path / "tpl", {"blob.bin": raw})

    ((_member, content),) = _read_members(build(root, {}))
    assert content == raw


def test_undefined_variable_fails_whole_build(tmp_path: Path) -> None:
    root = write_tree(
        tmp_path / "tpl",
        {"a.txt": "fine", "nested/bad.txt": "${missing}", "z.txt": "${bar}"},
    )

    with pytest.raises(TemplateRenderError) as excinfo:
        build(root, TEMPLATE_DIR_VARS)

    assert excinfo.value.path == "nested/bad.txt"
    assert isinstance(excinfo.value.cause, TemplateEvaluationError)
    assert "nested/bad.txt" in str(excinfo.value)


def test_syntax_error_fails_whole_build(tmp_path: Path) -> None:
    root = write_tree(tmp_path / "tpl", {"bad.txt": "${1 +"})

    with pytest.raises(TemplateRenderError) as excinfo:
        build(root, {})
    assert isinstance(excinfo.value.cause, TemplateSyntaxError)


def test_first_render_error_wins(tmp_path: Path) -> None:
    root = write_tree(tmp_path / "tpl", {"a.txt": "${one}", "b.txt": "${two}"})

    with pytest.raises(TemplateRenderError) as excinfo:
        build(root, {})
    assert excinfo.value.path == "a.txt"


def test_missing_source_dir_is_traversal_error(tmp_path: Path) -> None:
    with pytest.raises(TraversalError):
        build(tmp_path / "nope", {})


def test_cancellation_before_build_aborts(tmp_path: Path) -> None:
    root = write_template_tree(tmp_path / "tpl")
    event = threading.Event()
    event.set()

    with pytest.raises(CancellationError):
        build(root, TEMPLATE_DIR_VARS, cancellation_event=event)


def test_unset_cancellation_event_is_ignored(tmp_path: Path) -> None:
    root = write_template_tree(tmp_path / "tpl")

    data = build(root, TEMPLATE_DIR_VARS, cancellation_event=threading.Event())
    assert data == build(root, TEMPLATE_DIR_VARS)


def test_manifest_lists_members_in_archive_order(tmp_path: Path) -> None:
    root = write_template_tree(tmp_path / "tpl")

    result = build_with_manifest(root, TEMPLATE_DIR_VARS)

    assert [(m.path, m.kind) for m in result.members] == [
        ("foo.txt", EntryKind.FILE),
        ("maths.txt", EntryKind.FILE),
        ("nested", EntryKind.DIRECTORY),
        ("nested/monkey.txt", EntryKind.FILE),
    ]
    nested = result.members[2]
    assert nested.size == 0 and nested.sha256 is None
    maths = result.members[1]
    assert maths.size == 1
    assert result.identity == identity(result.data)


def test_cancellation_between_entries_discards_partial_output(tmp_path: Path) -> None:
    root = write_tree(
        tmp_path / "tpl", {"a.txt": "first", "b.txt": "${stop()}", "c.txt": "${seen()}"}
    )
    event = threading.Event()
    calls: list[str] = []

    def stop() -> str:
        calls.append("stop")
        event.set()
        return ""

    def seen() -> str:
        calls.append("seen")
        return ""

    functions = (
        default_functions()
        .with_("stop", TemplateFunction(stop, 0, 0))
        .with_("seen", TemplateFunction(seen, 0, 0))
    )

    result = None
    with pytest.raises(CancellationError, match="c.txt"):
        result = build_with_manifest(
            root, {}, functions=functions, cancellation_event=event
        )

    assert result is None
    assert calls == ["stop"]


@pytest.mark.parametrize(
    ("template", "cause"),
    [
        ("${ceil(1e999 - 1e999)}", TemplateEvaluationError),
        ("${floor(1e999)}", TemplateEvaluationError),
        ("${" + "9" * 5000 + "}", TemplateSyntaxError),
        ("${" + "(" * 2000 + "1" + ")" * 2000 + "}", TemplateSyntaxError),
        ("${" + "-" * 2000 + "1}", TemplateSyntaxError),
        ("${" + "+".join(["1"] * 5000) + "}", TemplateEvaluationError),
        ("${" + "9" * 4000 + " * " + "9" * 4000 + "}", TemplateEvaluationError),
        ("${1e999 % 2}", TemplateEvaluationError),
    ],
    ids=[
        "ceil-nan",
        "floor-inf",
        "huge-int-literal",
        "deep-parens",
        "deep-unary",
        "long-operator-chain",
        "huge-int-result",
        "modulo-of-inf",
    ],
)
def test_malformed_expressions_fail_as_render_errors(
    tmp_path: Path, template: str, cause: type[Exception]
) -> None:
    root = write_tree(tmp_path / "tpl", {"bad.txt": template})

    with pytest.raises(TemplateRenderError) as excinfo:
        build(root, {})

    assert excinfo.value.path == "bad.txt"
    assert isinstance(excinfo.value.cause, cause)


def test_digest_of_undecodable_bytes_is_a_render_error(tmp_path: Path) -> None:
    root = write_tree(tmp_path / "tpl", {"bad.txt": b'${sha256("\xff\xfe")}'})

    with pytest.raises(TemplateRenderError) as excinfo:
        build(root, {})

    assert excinfo.value.path == "bad.txt"
    assert isinstance(excinfo.value.cause, TemplateEvaluationError)
    assert "sha256" in str(excinfo.value.cause)


def test_unencodable_variable_is_a_render_error(tmp_path: Path) -> None:
    root = write_tree(tmp_path / "tpl", {"v.txt": "${v}"})

    with pytest.raises(TemplateRenderError) as excinfo:
        build(root, {"v": "lone \ud800 surrogate"})

    assert excinfo.value.path == "v.txt"
