from __future__ import annotations


class TarTemplateError(Exception):
    """Base class for every error surfaced by an archive build."""


class VarsValidationError(TarTemplateError, ValueError):
    """The variable set contains values that cannot be used in templates.

    All offending keys are collected before raising.
    """

    def __init__(self, message: str, bad_keys: list[str] | None = None) -> None:
        super().__init__(message)
        self.bad_keys: list[str] = list(bad_keys or [])


class TraversalError(TarTemplateError):
    """Filesystem failure while walking the source tree."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"failed to traverse {path}: {reason}")
        self.path = path
        self.reason = reason


class TemplateRenderError(TarTemplateError):
    """A file's content could not be parsed or evaluated as a template."""

    def __init__(self, path: str, cause: Exception) -> None:
        super().__init__(f"failed to render {path}: {cause}")
        self.path = path
        self.cause = cause


class CancellationError(TarTemplateError):
    """The build was aborted by an external cancellation signal."""
