from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from tar_template.archive import build_with_manifest
from tar_template.config import load_archive_settings_from_env, log_level_from_env
from tar_template.errors import (
    CancellationError,
    TarTemplateError,
    TemplateRenderError,
    TraversalError,
    VarsValidationError,
)
from tar_template.evidence.build_metadata import build_metadata
from tar_template.evidence.hash_utils import read_sha256_sidecar, sha256_file, write_sha256_sidecar
from tar_template.evidence.stable_json import write_json
from tar_template.variables import load_vars_file, parse_var_assignments, validate_vars

logger = logging.getLogger("tar_template")

EXIT_OK = 0
EXIT_VERIFY_FAILED = 1
EXIT_ERROR = 2
EXIT_CANCELLED = 130


def configure_logging(level: str = "INFO", log_file: Path | None = None) -> logging.Logger:
    """Configure logging to stdout and, optionally, a file."""

    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(file_handler)

    return logger


def _cmd_build(args: argparse.Namespace) -> int:
    raw_vars: dict[str, object] = {}
    if args.vars_file:
        raw_vars.update(load_vars_file(args.vars_file))
    raw_vars.update(parse_var_assignments(args.var or []))
    scope = validate_vars(raw_vars)

    result = build_with_manifest(
        args.source_dir,
        scope,
        settings=load_archive_settings_from_env(),
    )

    out: Path = args.out
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(result.data)
    logger.info("Wrote %s (%d bytes)", out, len(result.data))

    if args.sha256_out is not None:
        args.sha256_out.parent.mkdir(parents=True, exist_ok=True)
        write_sha256_sidecar(file_path=out, out=args.sha256_out)

    if args.metadata_out is not None:
        write_json(args.metadata_out, build_metadata(result, scope), make_parents=True)

    print(result.identity)
    return EXIT_OK


def _cmd_verify(args: argparse.Namespace) -> int:
    expected, name = read_sha256_sidecar(args.sha256)
    if name != args.archive.name:
        logger.warning("Sidecar names %s, verifying %s", name, args.archive.name)
    actual = sha256_file(args.archive)
    if actual != expected:
        print(f"FAIL: sha256 mismatch for {args.archive}: expected={expected} actual={actual}")
        return EXIT_VERIFY_FAILED
    print(f"PASS: {args.archive} sha256={actual}")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tar-template",
        description=(
            "Render every file of a directory as a ${...} template and write the tree "
            "as a deterministic tar archive identified by its sha256."
        ),
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Console log level (default: $TAR_TEMPLATE_LOG_LEVEL or INFO)",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="Optional DEBUG log file")
    sub = parser.add_subparsers(dest="command", required=True)

    b = sub.add_parser("build", help="Build an archive from a template directory")
    b.add_argument("--source-dir", type=Path, required=True, help="Directory to render")
    b.add_argument("--vars-file", type=Path, default=None, help="JSON object of variables")
    b.add_argument(
        "--var",
        action="append",
        metavar="NAME=VALUE",
        help="Variable assignment; repeatable, overrides --vars-file",
    )
    b.add_argument("--out", type=Path, required=True, help="Path to write the .tar")
    b.add_argument("--sha256-out", type=Path, default=None, help="Optional sha256 sidecar path")
    b.add_argument(
        "--metadata-out", type=Path, default=None, help="Optional build metadata JSON path"
    )
    b.set_defaults(func=_cmd_build)

    v = sub.add_parser("verify", help="Verify an archive against its sha256 sidecar")
    v.add_argument("--archive", type=Path, required=True)
    v.add_argument("--sha256", type=Path, required=True)
    v.set_defaults(func=_cmd_verify)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(args.log_level or log_level_from_env(), args.log_file)

    try:
        return args.func(args)
    except CancellationError as exc:
        logger.error("Cancelled: %s", exc)
        return EXIT_CANCELLED
    except VarsValidationError as exc:
        logger.error("Invalid variables: %s", exc)
    except TraversalError as exc:
        logger.error("Traversal failed at %s: %s", exc.path, exc.reason)
    except TemplateRenderError as exc:
        logger.error("Template render failed for %s: %s", exc.path, exc.cause)
    except TarTemplateError as exc:
        logger.error("%s", exc)
    except (OSError, ValueError) as exc:
        logger.error("%s: %s", exc.__class__.__name__, exc)
    return EXIT_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
