"""Shared pytest fixtures for the gogen test suite.

Provides reusable fixtures for:
- Temporary registry files and output directories
- A small hand-built template tree
- Configs pointing at the temporary locations
- A ready-made TemplateVars set
"""

from __future__ import annotations

import os
import textwrap
from pathlib import Path

import pytest

from gogen.config import Config
from gogen.instantiator import TemplateVars
from gogen.registry import RegistryStore


# ---------------------------------------------------------------------------
# Paths & Directories
# ---------------------------------------------------------------------------

@pytest.fixture
def registry_path(tmp_path: Path) -> Path:
    """Location of a registry file that does not exist yet."""
    return tmp_path / "state" / "projects.json"


@pytest.fixture
def store(registry_path: Path) -> RegistryStore:
    return RegistryStore(registry_path)


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Parent directory for generated projects."""
    out = tmp_path / "out"
    out.mkdir()
    return out


@pytest.fixture
def template_tree(tmp_path: Path) -> Path:
    """A small template tree exercising every instantiator rule.

    Layout::

        README.md.j2                  template marker
        docker-compose.yml            allowlisted, no marker
        .env.example                  allowlisted, no marker
        static.txt                    left untouched
        bin/run.sh                    executable, left untouched
        internal/entity/model.go.j2   entity directory + import literal
    """
    root = tmp_path / "template"
    (root / "bin").mkdir(parents=True)
    (root / "internal" / "entity").mkdir(parents=True)

    (root / "README.md.j2").write_text(
        "# {{ project_name }}\n\n{{ project_description }}\n", encoding="utf-8"
    )
    (root / "docker-compose.yml").write_text(
        'ports:\n  - "{{ api_port }}:8080"\n', encoding="utf-8"
    )
    (root / ".env.example").write_text(
        "DB_NAME={{ db_name }}\n{% if include_s3 %}S3=on\n{% endif %}", encoding="utf-8"
    )
    (root / "static.txt").write_text("literal {{ not_a_variable }}\n", encoding="utf-8")

    script = root / "bin" / "run.sh"
    script.write_text("#!/bin/sh\necho run\n", encoding="utf-8")
    os.chmod(script, 0o755)

    (root / "internal" / "entity" / "model.go.j2").write_text(
        textwrap.dedent(
            """\
            package {{ primary_entity }}

            import "{{ module_name }}//internal/utils"

            type {{ entity_capitalized }} struct{}
            """
        ),
        encoding="utf-8",
    )
    return root


# ---------------------------------------------------------------------------
# Config & variables
# ---------------------------------------------------------------------------

@pytest.fixture
def config(registry_path: Path, output_dir: Path, template_tree: Path) -> Config:
    """Config wired to the temporary registry, output dir and template tree."""
    return Config(
        projects_registry=registry_path,
        output_dir=output_dir,
        template_dir=template_tree,
    )


@pytest.fixture
def shipped_config(registry_path: Path, output_dir: Path) -> Config:
    """Config using the ``ddd-api`` templates shipped with the package."""
    return Config(projects_registry=registry_path, output_dir=output_dir)


@pytest.fixture
def template_vars() -> TemplateVars:
    return TemplateVars(
        project_name="shop",
        module_name="github.com/example/shop",
        primary_entity="item",
        entity_capitalized="Item",
        entity_plural="items",
        api_port="8090",
        db_port="5442",
        redis_port="6389",
        db_name="shop_db",
        db_user="postgres",
        db_password="postgres",
        include_auth=True,
        include_s3=False,
        include_redis=True,
        include_frontend=False,
        project_description="DDD API for item management",
    )
