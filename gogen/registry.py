"""Persistent, append-only registry of generated projects.

The registry is a single JSON file holding every project generated so far and
the next project index.  Each mutation loads the whole file, changes it in
memory and rewrites it.  There is no locking: one writer at a time.
"""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from gogen.errors import DuplicateProjectError, StorageError
from gogen.ports import PortTriple


class ProjectRecord(BaseModel):
    """One completed generation.  Immutable once written."""

    model_config = ConfigDict(frozen=True)

    name: str
    index: int = Field(..., ge=0)
    api_port: int
    db_port: int
    redis_port: int
    entity: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def ports(self) -> PortTriple:
        return PortTriple(api=self.api_port, db=self.db_port, redis=self.redis_port)


class Registry(BaseModel):
    """Every generated project, in insertion order, plus the next free index.

    ``next_index`` starts at 1 so the first project is already offset from
    the raw base ports.
    """

    projects: list[ProjectRecord] = Field(default_factory=list)
    next_index: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _next_index_past_existing(self) -> "Registry":
        # A hand-edited file may carry a stale next_index.
        if self.projects:
            self.next_index = max(self.next_index, max(p.index for p in self.projects) + 1)
        return self

    def find(self, name: str) -> ProjectRecord | None:
        for project in self.projects:
            if project.name == name:
                return project
        return None


class RegistryStore:
    """Reads and writes the registry file at *path*."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> Registry:
        """Load the registry, or an empty one if the file does not exist yet.

        Raises:
            StorageError: If the directory cannot be created, the file cannot
                be read, or its content does not match the registry schema.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to create registry directory {self.path.parent}: {exc}") from exc

        if not self.path.exists():
            return Registry()

        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"Failed to read registry file {self.path}: {exc}") from exc

        try:
            return Registry.model_validate_json(raw)
        except PydanticValidationError as exc:
            raise StorageError(f"Failed to parse registry file {self.path}: {exc}") from exc

    def save(self, registry: Registry) -> None:
        """Serialise *registry* and replace the backing file in one rename.

        Raises:
            StorageError: If the file cannot be written.
        """
        content = registry.model_dump_json(indent=2) + "\n"
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(content)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Failed to write registry file {self.path}: {exc}") from exc

    def add_project(self, name: str, entity: str, ports: PortTriple) -> ProjectRecord:
        """Append a new project under the current ``next_index`` and save.

        This is a read-modify-write with no isolation.

        Raises:
            DuplicateProjectError: If *name* is already registered.
            StorageError: If the registry cannot be loaded or saved.
        """
        registry = self.load()
        if registry.find(name) is not None:
            raise DuplicateProjectError(name)

        record = ProjectRecord(
            name=name,
            index=registry.next_index,
            api_port=ports.api,
            db_port=ports.db,
            redis_port=ports.redis,
            entity=entity,
        )
        registry.projects.append(record)
        registry.next_index += 1
        self.save(registry)
        return record

    def next_index(self) -> int:
        """Return the index the next registered project will receive."""
        return self.load().next_index

    def list_projects(self) -> list[ProjectRecord]:
        """Return every registered project in insertion order."""
        return list(self.load().projects)

    def exists(self, name: str) -> bool:
        return self.load().find(name) is not None

    def get(self, name: str) -> ProjectRecord | None:
        return self.load().find(name)
