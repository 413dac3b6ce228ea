"""Template tree instantiation.

Provides the ``TemplateInstantiator`` which copies a template tree into a new
project directory, renders the template files in place with Jinja2 against a
``TemplateVars`` context, and then finalizes the tree: template markers are
stripped, the generic ``entity`` package is renamed and quoted import paths
are cleaned up.

The copy and the render are two separate passes over the same tree.  Neither
is transactional; a failure leaves the destination as far as it got.
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path
from typing import Any

from jinja2 import Environment, StrictUndefined, TemplateError as JinjaTemplateError
from pydantic import BaseModel

from gogen.errors import ScaffoldIOError, TargetExistsError, TemplateError


# ---------------------------------------------------------------------------
# Template conventions
# ---------------------------------------------------------------------------

TEMPLATE_SUFFIX = ".j2"

# Files rendered even though they carry no template marker.
PROCESSABLE_FILES: frozenset[str] = frozenset(
    {
        "docker-compose.yml",
        ".env.example",
        "CLAUDE.md",
    }
)

ENTITY_PLACEHOLDER = "entity"
SOURCE_SUFFIXES: tuple[str, ...] = (".go",)

# Go comments, interpreted strings and raw strings, in that order of precedence.
_GO_LITERAL_RE = re.compile(
    r'//[^\n]*|/\*.*?\*/|"(?:[^"\\\n]|\\.)*"|`[^`]*`',
    re.DOTALL,
)
_DOUBLE_SLASH_RE = re.compile(r"(?<!:)/{2,}")


# ---------------------------------------------------------------------------
# Variable set
# ---------------------------------------------------------------------------


class TemplateVars(BaseModel):
    """Closed set of values substituted into every template of one generation."""

    project_name: str
    module_name: str
    primary_entity: str
    entity_capitalized: str
    entity_plural: str
    api_port: str
    db_port: str
    redis_port: str
    db_name: str
    db_user: str
    db_password: str
    include_auth: bool
    include_s3: bool
    include_redis: bool
    include_frontend: bool
    project_description: str


def entity_name_forms(entity: str) -> tuple[str, str]:
    """Return the capitalized and plural forms of *entity*.

    Fixed suffix rules only; irregular plurals are not handled::

        entity_name_forms("city") -> ("City", "cities")
        entity_name_forms("bus")  -> ("Bus", "buses")
        entity_name_forms("item") -> ("Item", "items")
    """
    capitalized = entity[:1].upper() + entity[1:]

    if entity.endswith("y"):
        plural = entity[:-1] + "ies"
    elif entity.endswith(("s", "sh", "ch")):
        plural = entity + "es"
    else:
        plural = entity + "s"

    return capitalized, plural


# ---------------------------------------------------------------------------
# TemplateInstantiator
# ---------------------------------------------------------------------------


class TemplateInstantiator:
    """Materializes a template tree and renders it with a ``TemplateVars`` context."""

    def __init__(self, variables: TemplateVars) -> None:
        self.vars = variables
        self.env = Environment(
            autoescape=False,
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
            undefined=StrictUndefined,
        )
        self.env.filters["pascal_case"] = _pascal_case_filter
        self.env.filters["snake_case"] = _snake_case_filter

    @property
    def context(self) -> dict[str, Any]:
        return self.vars.model_dump()

    # -- Copy ----------------------------------------------------------------

    @staticmethod
    def copy_template(src_tree: str | Path, dst_tree: str | Path) -> Path:
        """Mirror *src_tree* into *dst_tree*, preserving file modes.

        Raises:
            TargetExistsError: If *dst_tree* already exists.
            ScaffoldIOError: If the source is missing or any copy fails.  The
                destination is not cleaned up.
        """
        src = Path(src_tree)
        dst = Path(dst_tree)
        if dst.exists():
            raise TargetExistsError(dst)
        if not src.is_dir():
            raise ScaffoldIOError(f"Template directory not found: {src}")

        try:
            shutil.copytree(
                src,
                dst,
                copy_function=shutil.copy2,
                ignore=shutil.ignore_patterns("__pycache__", "*.pyc"),
            )
        except OSError as exc:
            raise ScaffoldIOError(f"Failed to copy template {src} to {dst}: {exc}") from exc
        return dst

    # -- Render --------------------------------------------------------------

    def should_process(self, path: Path) -> bool:
        """Return ``True`` for template-marked files and allowlisted names."""
        return path.name.endswith(TEMPLATE_SUFFIX) or path.name in PROCESSABLE_FILES

    def render_string(self, template_string: str) -> str:
        """Render an inline template string with this generation's variables."""
        return self.env.from_string(template_string).render(**self.context)

    def process_file(self, path: str | Path) -> Path:
        """Render a single file in place.

        Raises:
            TemplateError: If the file is not UTF-8 text or fails to parse or render.
            ScaffoldIOError: If the file cannot be read or written.
        """
        file_path = Path(path)
        try:
            source = file_path.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise TemplateError(file_path, f"not valid UTF-8 text ({exc})") from exc
        except OSError as exc:
            raise ScaffoldIOError(f"Failed to read file {file_path}: {exc}") from exc

        try:
            rendered = self.render_string(source)
        except JinjaTemplateError as exc:
            raise TemplateError(file_path, str(exc)) from exc

        try:
            file_path.write_text(rendered, encoding="utf-8")
        except OSError as exc:
            raise ScaffoldIOError(f"Failed to write file {file_path}: {exc}") from exc
        return file_path

    def process_directory(self, tree: str | Path) -> list[Path]:
        """Render every template or allowlisted file under *tree*.

        Other files are left untouched.  The first failure aborts the walk.

        Returns:
            The rendered file paths, in walk order.
        """
        rendered: list[Path] = []
        for path in _walk_files(tree):
            if self.should_process(path):
                rendered.append(self.process_file(path))
        return rendered

    # -- Finalize ------------------------------------------------------------

    @staticmethod
    def rename_template_files(tree: str | Path) -> list[Path]:
        """Strip the ``.j2`` marker from every template file under *tree*.

        Returns:
            The final paths of the renamed files.
        """
        renamed: list[Path] = []
        # Collect first so renames do not disturb the walk.
        templates = [p for p in _walk_files(tree) if p.name.endswith(TEMPLATE_SUFFIX)]
        for template_path in templates:
            target = template_path.with_name(template_path.name[: -len(TEMPLATE_SUFFIX)])
            try:
                template_path.rename(target)
            except OSError as exc:
                raise ScaffoldIOError(
                    f"Failed to rename {template_path} to {target}: {exc}"
                ) from exc
            renamed.append(target)
        return renamed

    def rename_entity_directory(self, tree: str | Path) -> Path | None:
        """Rename ``internal/entity`` to ``internal/<primary_entity>``.

        Returns:
            The new directory, or ``None`` when there was nothing to rename.
        """
        entity_path = Path(tree) / "internal" / ENTITY_PLACEHOLDER
        if not entity_path.is_dir():
            return None

        target = entity_path.with_name(self.vars.primary_entity)
        if target == entity_path:
            return target
        try:
            entity_path.rename(target)
        except OSError as exc:
            raise ScaffoldIOError(
                f"Failed to rename entity directory {entity_path} to {target}: {exc}"
            ) from exc
        return target

    @staticmethod
    def clean_generated_imports(tree: str | Path) -> list[Path]:
        """Collapse doubled ``/`` inside quoted path literals of Go sources.

        Only interpreted string literals that contain a ``/`` are touched;
        comments, raw strings and URL schemes (``://``) are left alone.

        Returns:
            The files whose content changed.
        """
        changed: list[Path] = []
        for path in _walk_files(tree):
            if path.suffix not in SOURCE_SUFFIXES:
                continue
            try:
                content = path.read_text(encoding="utf-8")
                cleaned = fix_import_paths(content)
                if cleaned != content:
                    path.write_text(cleaned, encoding="utf-8")
                    changed.append(path)
            except (OSError, UnicodeDecodeError) as exc:
                raise ScaffoldIOError(f"Failed to clean imports in {path}: {exc}") from exc
        return changed


def fix_import_paths(content: str) -> str:
    """Return *content* with doubled separators removed from quoted paths."""

    def _clean(match: re.Match[str]) -> str:
        literal = match.group(0)
        if not literal.startswith('"') or "/" not in literal:
            return literal
        return _DOUBLE_SLASH_RE.sub("/", literal)

    return _GO_LITERAL_RE.sub(_clean, content)


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------


def _pascal_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_\s]+", value)
    return "".join(word.capitalize() for word in parts if word)


def _snake_case_filter(value: str) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", value)
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _walk_files(tree: str | Path) -> list[Path]:
    """Return every regular file under *tree* in sorted order."""
    return sorted(p for p in Path(tree).rglob("*") if p.is_file() and not p.is_symlink())
