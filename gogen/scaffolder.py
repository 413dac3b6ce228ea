"""Main scaffolding orchestrator.

Takes a ``GeneratorOptions`` and a ``Config`` and turns the template tree into
a new Go service, one step at a time::

    NOT_STARTED -> VALIDATED -> PORTS_ALLOCATED -> FILES_COPIED
        -> TEMPLATES_PROCESSED -> FINALIZED -> REGISTERED -> DONE

Any failure moves the scaffolder to ``FAILED`` and re-raises the error with
its ``step`` set.  Nothing is retried or rolled back: a failure after
``FILES_COPIED`` leaves the partial project on disk.

Ports are computed from the registry's next index before the files are
written, and the index is only consumed when the project is registered at the
end.  Two concurrent runs against one registry can therefore allocate the
same ports; gogen assumes a single writer.
"""

from __future__ import annotations

import shutil
from collections.abc import Awaitable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from gogen.config import Config
from gogen.errors import (
    CollaboratorError,
    DuplicateProjectError,
    ScaffoldError,
    ScaffoldIOError,
    TargetExistsError,
    ValidationError,
)
from gogen.git import GitInitializer
from gogen.instantiator import TemplateInstantiator, TemplateVars, entity_name_forms
from gogen.ports import PortTriple, allocate
from gogen.registry import ProjectRecord, RegistryStore
from gogen.utils import print_step, print_warning, run_command


class GenerationState(str, Enum):
    NOT_STARTED = "not_started"
    VALIDATED = "validated"
    PORTS_ALLOCATED = "ports_allocated"
    FILES_COPIED = "files_copied"
    TEMPLATES_PROCESSED = "templates_processed"
    FINALIZED = "finalized"
    REGISTERED = "registered"
    DONE = "done"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Options and result
# ---------------------------------------------------------------------------


class GeneratorOptions(BaseModel):
    """Pydantic model describing the project to scaffold."""

    project_name: str = Field(..., min_length=1, description="Project and directory name")
    entity: str = Field(default="item", min_length=1, description="Primary CRUD entity")
    include_auth: bool = Field(default=True)
    include_s3: bool = Field(default=False)
    include_redis: bool = Field(default=True)
    include_frontend: bool = Field(default=False)
    project_description: str = Field(default="")
    run_module_init: bool = Field(default=True, description="Run 'go mod init' and 'go mod tidy'")
    run_git: bool = Field(default=True, description="Initialize a git repository")

    @classmethod
    def from_config(
        cls,
        project_name: str,
        config: Config,
        *,
        description: str | None = None,
        run_module_init: bool = True,
        run_git: bool = True,
    ) -> "GeneratorOptions":
        """Derive options from an already-overridden ``Config``.

        Raises:
            ValidationError: If the resulting options are invalid.
        """
        entity = config.defaults.primary_entity
        try:
            return cls(
                project_name=project_name,
                entity=entity,
                include_auth=config.features.auth.enabled,
                include_s3=config.features.s3.enabled,
                include_redis=config.features.redis.enabled,
                include_frontend=config.features.frontend.enabled,
                project_description=description or f"DDD API for {entity} management",
                run_module_init=run_module_init,
                run_git=run_git,
            )
        except PydanticValidationError as exc:
            errors = "; ".join(
                f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" for err in exc.errors()
            )
            raise ValidationError(f"Invalid project options: {errors}") from exc


@dataclass
class GenerationResult:
    """Outcome of a successful generation."""

    project_path: Path
    record: ProjectRecord
    warnings: list[str] = field(default_factory=list)

    @property
    def ports(self) -> PortTriple:
        return self.record.ports


def build_template_vars(
    options: GeneratorOptions, ports: PortTriple, config: Config
) -> TemplateVars:
    """Build the variable set for one generation."""
    capitalized, plural = entity_name_forms(options.entity)
    return TemplateVars(
        project_name=options.project_name,
        module_name=config.defaults.module_prefix + options.project_name,
        primary_entity=options.entity,
        entity_capitalized=capitalized,
        entity_plural=plural,
        api_port=str(ports.api),
        db_port=str(ports.db),
        redis_port=str(ports.redis),
        db_name=config.database.database_name(options.project_name),
        db_user=config.database.user,
        db_password=config.database.password,
        include_auth=options.include_auth,
        include_s3=options.include_s3,
        include_redis=options.include_redis,
        include_frontend=options.include_frontend,
        project_description=options.project_description,
    )


# ---------------------------------------------------------------------------
# Scaffolder
# ---------------------------------------------------------------------------


class Scaffolder:
    """Runs one generation transaction.

    Attributes:
        options: What to generate.
        config: Per-invocation configuration.
        registry: Store recording every generated project.
        state: Last state reached.
        failed_step: Step that was in progress when generation failed.
    """

    def __init__(
        self,
        options: GeneratorOptions,
        config: Config,
        registry: RegistryStore | None = None,
    ) -> None:
        self.options = options
        self.config = config
        self.registry = registry or RegistryStore(config.registry_path)
        self.template_dir = config.template_path
        self.target_dir = Path(config.output_dir) / options.project_name
        self.state = GenerationState.NOT_STARTED
        self.failed_step: GenerationState | None = None
        self._step = GenerationState.NOT_STARTED

    # -- Public API --------------------------------------------------------

    async def generate(self) -> GenerationResult:
        """Generate the project and register it.

        Returns:
            The ``GenerationResult`` with the registered record.

        Raises:
            ScaffoldError: Any failure, with ``step`` naming the failed step.
        """
        try:
            return await self._generate()
        except ScaffoldError as exc:
            self._fail(exc)
            raise
        except OSError as exc:
            error = ScaffoldIOError(str(exc))
            self._fail(error)
            raise error from exc

    async def _generate(self) -> GenerationResult:
        name = self.options.project_name
        warnings: list[str] = []

        self._begin(GenerationState.VALIDATED)
        self.validate()

        self._begin(GenerationState.PORTS_ALLOCATED)
        next_index = self.registry.next_index()
        ports = allocate(next_index, self.config.ports)

        self._begin(GenerationState.FILES_COPIED)
        print_step(f"Creating project directory '{self.target_dir}'...")
        TemplateInstantiator.copy_template(self.template_dir, self.target_dir)

        self._begin(GenerationState.TEMPLATES_PROCESSED)
        print_step("Processing templates...")
        variables = build_template_vars(self.options, ports, self.config)
        instantiator = TemplateInstantiator(variables)
        instantiator.process_directory(self.target_dir)

        self._begin(GenerationState.FINALIZED)
        print_step("Finalizing files...")
        instantiator.rename_template_files(self.target_dir)
        instantiator.rename_entity_directory(self.target_dir)
        instantiator.clean_generated_imports(self.target_dir)

        if self.options.run_module_init:
            warnings.extend(await self._run_collaborator(self.init_module(variables.module_name)))
        if self.options.run_git:
            warnings.extend(await self._run_collaborator(self.init_git()))

        self._begin(GenerationState.REGISTERED)
        print_step("Registering project...")
        record = self.registry.add_project(name, self.options.entity, ports)

        self._begin(GenerationState.DONE)
        return GenerationResult(project_path=self.target_dir, record=record, warnings=warnings)

    def validate(self) -> None:
        """Reject the project before anything is written to disk."""
        name = self.options.project_name
        if name in (".", "..") or "/" in name or "\\" in name:
            raise ValidationError(
                f"Invalid project name '{name}': must be a single directory name"
            )
        if self.registry.exists(name):
            raise DuplicateProjectError(name)
        if self.target_dir.exists():
            raise TargetExistsError(self.target_dir)

    # -- Collaborators -----------------------------------------------------

    async def init_module(self, module_name: str) -> None:
        """Run ``go mod init`` and ``go mod tidy`` in the generated project.

        Raises:
            CollaboratorError: If ``go`` is missing or either command fails.
        """
        if shutil.which("go") is None:
            raise CollaboratorError("go not found, skipping module initialization")

        print_step("Initializing Go module...")
        for cmd, timeout in (
            (["go", "mod", "init", module_name], 60),
            (["go", "mod", "tidy"], 300),
        ):
            returncode, _, stderr = await run_command(cmd, cwd=self.target_dir, timeout=timeout)
            if returncode != 0:
                cmd_str = " ".join(cmd)
                raise CollaboratorError(
                    f"Failed to run '{cmd_str}' (exit {returncode}): {stderr}",
                    command=cmd_str,
                    stderr=stderr,
                )

    async def init_git(self) -> None:
        """Create the initial git repository of the generated project."""
        git = GitInitializer(self.target_dir)
        if not git.is_available():
            raise CollaboratorError("git not found, skipping git initialization")

        print_step("Initializing git repository...")
        await git.initialize(self.config.git.initial_commit_message)

    async def _run_collaborator(self, call: Awaitable[None]) -> list[str]:
        """Await a collaborator call and turn its failure into a warning."""
        try:
            await call
        except (CollaboratorError, OSError) as exc:
            message = f"Warning: {exc}"
            print_warning(message)
            return [message]
        return []

    # -- State tracking ----------------------------------------------------

    def _begin(self, step: GenerationState) -> None:
        # The previous step completed successfully.
        self.state = self._step
        self._step = step
        if step is GenerationState.DONE:
            self.state = step

    def _fail(self, exc: ScaffoldError) -> None:
        if exc.step is None:
            exc.step = self._step.value
        self.failed_step = self._step
        self.state = GenerationState.FAILED
