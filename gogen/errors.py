"""Exception hierarchy for the scaffolding pipeline.

Every failure the pipeline can surface derives from ``ScaffoldError``.  The
orchestrator stamps ``step`` with the generation state that was active when
the error was raised so callers can report which step failed.
"""

from __future__ import annotations

from pathlib import Path


class ScaffoldError(Exception):
    """Base class for every error raised by the scaffolding pipeline."""

    def __init__(self, message: str, *, step: str | None = None) -> None:
        self.step = step
        super().__init__(message)


class ValidationError(ScaffoldError):
    """Raised for bad input or pre-existing state, before anything is mutated."""


class DuplicateProjectError(ValidationError):
    """Raised when a project name is already present in the registry."""

    def __init__(self, name: str, *, step: str | None = None) -> None:
        self.name = name
        super().__init__(f"Project '{name}' already exists", step=step)


class TargetExistsError(ValidationError):
    """Raised when the destination directory of a generation already exists."""

    def __init__(self, path: str | Path, *, step: str | None = None) -> None:
        self.path = Path(path)
        super().__init__(f"Directory '{self.path}' already exists", step=step)


class StorageError(ScaffoldError):
    """Raised when the project registry cannot be read, parsed or written."""


class ScaffoldIOError(ScaffoldError, OSError):
    """Raised when copying, reading or writing template files fails.

    The destination may be left partially populated.
    """


class TemplateError(ScaffoldError):
    """Raised when a template file cannot be parsed or rendered."""

    def __init__(self, path: str | Path, reason: str, *, step: str | None = None) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to render template {self.path}: {reason}", step=step)


class ConfigError(ScaffoldError):
    """Raised when a configuration file is malformed."""


class CollaboratorError(ScaffoldError):
    """Raised when an external tool (go, git) fails.

    The orchestrator downgrades these to warnings.
    """

    def __init__(self, message: str, command: str = "", stderr: str = "") -> None:
        self.command = command
        self.stderr = stderr
        super().__init__(message)
