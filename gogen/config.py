"""gogen configuration.

Typed configuration for the scaffolding tool.  All settings use Pydantic v2
models so they are validated at construction time and can be read from the
tool's YAML config file or from environment variables.

A ``Config`` is built once per invocation, adjusted with ``with_overrides``
(which returns a new instance) and then passed explicitly through the
pipeline.  Nothing here is process-global.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from gogen.errors import ConfigError

DEFAULT_CONFIG_NAME = "config.yaml"
DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates" / "ddd-api"


class DatabaseConfig(BaseModel):
    """Credentials and naming for the generated project's PostgreSQL database."""

    user: str = Field(default="postgres")
    password: str = Field(default="postgres")
    name_pattern: str = Field(
        default="{project}_db",
        description="Database name; '{project}' is replaced by the project name",
    )

    def database_name(self, project_name: str) -> str:
        """Return the database name for *project_name* (hyphens become underscores)."""
        return self.name_pattern.replace("{project}", project_name.replace("-", "_"))


class RandomizationConfig(BaseModel):
    """Optional random jitter applied on top of the deterministic ports."""

    enabled: bool = Field(default=False)
    range: int = Field(default=0, ge=0, description="Maximum absolute jitter per port")


class PortsConfig(BaseModel):
    """Base ports and the per-project increment used by the port allocator."""

    base_api: int = Field(default=8080, ge=1024, le=65535)
    base_db: int = Field(default=5432, ge=1024, le=65535)
    base_redis: int = Field(default=6379, ge=1024, le=65535)
    increment: int = Field(default=10, ge=1)
    randomization: RandomizationConfig = Field(default_factory=RandomizationConfig)


class DefaultsConfig(BaseModel):
    module_prefix: str = Field(default="github.com/example/")
    primary_entity: str = Field(default="item", min_length=1)


class FeatureToggle(BaseModel):
    enabled: bool = Field(default=False)
    description: str = Field(default="")


class FeaturesConfig(BaseModel):
    """Feature flags rendered into the generated project."""

    auth: FeatureToggle = Field(
        default_factory=lambda: FeatureToggle(enabled=True, description="JWT authentication")
    )
    s3: FeatureToggle = Field(
        default_factory=lambda: FeatureToggle(enabled=False, description="S3 file uploads")
    )
    redis: FeatureToggle = Field(
        default_factory=lambda: FeatureToggle(enabled=True, description="Redis caching")
    )
    frontend: FeatureToggle = Field(
        default_factory=lambda: FeatureToggle(
            enabled=False, description="CORS for a separate frontend"
        )
    )


class GitConfig(BaseModel):
    initial_commit_message: str = Field(default="Initial commit from gogen")


class Config(BaseModel):
    """Global gogen configuration.

    Holds every tuneable parameter and derived path used by the scaffolder.
    Instances are created once by the CLI entry point and then passed through
    the rest of the system.
    """

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    ports: PortsConfig = Field(default_factory=PortsConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    features: FeaturesConfig = Field(default_factory=FeaturesConfig)
    git: GitConfig = Field(default_factory=GitConfig)
    projects_registry: Path = Field(default=Path("~/.gogen/projects.json"))
    template_dir: Path | None = Field(default=None)
    output_dir: Path = Field(default=Path("."))

    # ------------------------------------------------------------------
    # Derived paths (read-only properties)
    # ------------------------------------------------------------------

    @property
    def registry_path(self) -> Path:
        """Registry file location with ``~`` expanded."""
        return self.projects_registry.expanduser()

    @property
    def template_path(self) -> Path:
        """Template tree to instantiate; the shipped ``ddd-api`` tree by default."""
        if self.template_dir is None:
            return DEFAULT_TEMPLATE_DIR
        return self.template_dir.expanduser()

    # ------------------------------------------------------------------
    # Per-invocation overrides
    # ------------------------------------------------------------------

    def with_overrides(
        self,
        *,
        entity: str | None = None,
        no_auth: bool = False,
        with_s3: bool = False,
        with_frontend: bool = False,
        output_dir: str | Path | None = None,
    ) -> "Config":
        """Return a copy of this config with CLI overrides applied.

        The receiver is left untouched.
        """
        update: dict[str, Any] = {}
        if entity:
            update["defaults"] = self.defaults.model_copy(update={"primary_entity": entity})
        features_update: dict[str, Any] = {}
        if no_auth:
            features_update["auth"] = self.features.auth.model_copy(update={"enabled": False})
        if with_s3:
            features_update["s3"] = self.features.s3.model_copy(update={"enabled": True})
        if with_frontend:
            features_update["frontend"] = self.features.frontend.model_copy(
                update={"enabled": True}
            )
        if features_update:
            update["features"] = self.features.model_copy(update=features_update)
        if output_dir is not None:
            update["output_dir"] = Path(output_dir)
        return self.model_copy(update=update)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: str | Path) -> "Config":
        """Load a configuration from a YAML file.

        Args:
            path: The YAML file to read.

        Returns:
            A validated ``Config`` instance.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ConfigError: If the file is not valid YAML or fails validation.
        """
        raw = Path(path).read_text(encoding="utf-8")
        try:
            data = yaml.safe_load(raw) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse config file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping at the top level")
        try:
            return cls.model_validate(data)
        except PydanticValidationError as exc:
            raise ConfigError(f"Invalid config file {path}: {exc}") from exc

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            GOGEN_REGISTRY, GOGEN_MODULE_PREFIX, GOGEN_OUTPUT_DIR,
            GOGEN_TEMPLATE_DIR, GOGEN_PORT_RANDOMIZE, GOGEN_PORT_RANGE.

        Raises:
            ConfigError: If a variable holds an invalid value.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("GOGEN_REGISTRY"):
            kwargs["projects_registry"] = Path(os.environ["GOGEN_REGISTRY"])
        if os.environ.get("GOGEN_OUTPUT_DIR"):
            kwargs["output_dir"] = Path(os.environ["GOGEN_OUTPUT_DIR"])
        if os.environ.get("GOGEN_TEMPLATE_DIR"):
            kwargs["template_dir"] = Path(os.environ["GOGEN_TEMPLATE_DIR"])
        if os.environ.get("GOGEN_MODULE_PREFIX"):
            kwargs["defaults"] = DefaultsConfig(module_prefix=os.environ["GOGEN_MODULE_PREFIX"])

        randomization_kwargs: dict[str, Any] = {}
        if os.environ.get("GOGEN_PORT_RANDOMIZE"):
            randomization_kwargs["enabled"] = os.environ["GOGEN_PORT_RANDOMIZE"].lower() in (
                "1",
                "true",
                "yes",
            )
        if os.environ.get("GOGEN_PORT_RANGE"):
            try:
                randomization_kwargs["range"] = int(os.environ["GOGEN_PORT_RANGE"])
            except ValueError as exc:
                raise ConfigError(
                    f"GOGEN_PORT_RANGE must be an integer, got {os.environ['GOGEN_PORT_RANGE']!r}"
                ) from exc

        try:
            if randomization_kwargs:
                kwargs["ports"] = PortsConfig(
                    randomization=RandomizationConfig(**randomization_kwargs)
                )
            return cls(**kwargs)
        except PydanticValidationError as exc:
            raise ConfigError(f"Invalid configuration from environment: {exc}") from exc

    @classmethod
    def resolve(cls, path: str | Path | None = None) -> "Config":
        """Locate and load the configuration for this invocation.

        Lookup order: explicit *path*, ``$GOGEN_CONFIG``, ``./config.yaml`` if
        present, and finally environment-variable defaults.
        """
        if path is not None:
            return cls.load(path)
        env_path = os.environ.get("GOGEN_CONFIG")
        if env_path:
            return cls.load(env_path)
        local = Path.cwd() / DEFAULT_CONFIG_NAME
        if local.is_file():
            return cls.load(local)
        return cls.from_env()
