from __future__ import annotations

import os

from tar_template.archive.headers import DEFAULT_DIR_MODE, DEFAULT_FILE_MODE, ArchiveSettings

LOG_LEVEL_ENV = "TAR_TEMPLATE_LOG_LEVEL"
FILE_MODE_ENV = "TAR_TEMPLATE_FILE_MODE"
DIR_MODE_ENV = "TAR_TEMPLATE_DIR_MODE"


def env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def env_bool(name: str, default: bool = False) -> bool:
    raw = env(name)
    if raw is None:
        return default
    raw_norm = raw.strip().lower()
    if raw_norm in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if raw_norm in {"0", "false", "f", "no", "n", "off"}:
        return False
    return default


def env_octal(name: str, default: int) -> int:
    raw = env(name)
    if raw is None:
        return default
    try:
        value = int(raw.strip(), 8)
    except ValueError as exc:
        raise ValueError(f"{name} must be an octal permission mode, got {raw!r}") from exc
    if not 0 <= value <= 0o7777:
        raise ValueError(f"{name} out of range: {raw!r}")
    return value


def load_archive_settings_from_env() -> ArchiveSettings:
    return ArchiveSettings(
        file_mode=env_octal(FILE_MODE_ENV, DEFAULT_FILE_MODE),
        dir_mode=env_octal(DIR_MODE_ENV, DEFAULT_DIR_MODE),
    )


def log_level_from_env(default: str = "INFO") -> str:
    return str(env(LOG_LEVEL_ENV, default)).upper()
