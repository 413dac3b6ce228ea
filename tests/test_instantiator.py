"""Tests for template tree instantiation (gogen.instantiator).

Covers:
- copy_template (mirroring, file modes, existing target, missing source)
- process_directory / process_file (marker and allowlist rules, failures)
- rename_template_files, rename_entity_directory
- clean_generated_imports / fix_import_paths
- entity_name_forms
"""

from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from gogen.errors import ScaffoldIOError, TargetExistsError, TemplateError, ValidationError
from gogen.instantiator import (
    TemplateInstantiator,
    TemplateVars,
    entity_name_forms,
    fix_import_paths,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def instantiator(template_vars: TemplateVars) -> TemplateInstantiator:
    return TemplateInstantiator(template_vars)


@pytest.fixture
def project(tmp_path: Path, template_tree: Path) -> Path:
    """A fresh copy of the template tree."""
    return TemplateInstantiator.copy_template(template_tree, tmp_path / "shop")


# ---------------------------------------------------------------------------
# entity_name_forms
# ---------------------------------------------------------------------------


class TestEntityNameForms:
    @pytest.mark.parametrize(
        ("entity", "expected"),
        [
            ("city", ("City", "cities")),
            ("item", ("Item", "items")),
            ("bus", ("Bus", "buses")),
            ("brush", ("Brush", "brushes")),
            ("church", ("Church", "churches")),
            ("key", ("Key", "keies")),
            ("person", ("Person", "persons")),
        ],
    )
    def test_fixed_suffix_rules(self, entity: str, expected: tuple[str, str]):
        assert entity_name_forms(entity) == expected

    def test_only_first_character_is_upper_cased(self):
        assert entity_name_forms("orderLine")[0] == "OrderLine"

    def test_empty(self):
        assert entity_name_forms("") == ("", "s")


# ---------------------------------------------------------------------------
# copy_template
# ---------------------------------------------------------------------------


class TestCopyTemplate:
    def test_mirrors_tree(self, project: Path, template_tree: Path):
        copied = sorted(p.relative_to(project) for p in project.rglob("*"))
        original = sorted(p.relative_to(template_tree) for p in template_tree.rglob("*"))
        assert copied == original

    def test_preserves_contents(self, project: Path, template_tree: Path):
        assert (project / "static.txt").read_bytes() == (template_tree / "static.txt").read_bytes()

    def test_preserves_file_mode(self, project: Path):
        mode = stat.S_IMODE(os.stat(project / "bin" / "run.sh").st_mode)
        assert mode == 0o755

    def test_existing_target_rejected(self, tmp_path: Path, template_tree: Path):
        target = tmp_path / "exists"
        target.mkdir()
        with pytest.raises(TargetExistsError) as excinfo:
            TemplateInstantiator.copy_template(template_tree, target)
        assert excinfo.value.path == target
        assert isinstance(excinfo.value, ValidationError)
        assert list(target.iterdir()) == []

    def test_missing_source(self, tmp_path: Path):
        with pytest.raises(ScaffoldIOError, match="Template directory not found"):
            TemplateInstantiator.copy_template(tmp_path / "nope", tmp_path / "dst")

    def test_io_error_is_an_oserror(self, tmp_path: Path):
        with pytest.raises(OSError):
            TemplateInstantiator.copy_template(tmp_path / "nope", tmp_path / "dst")


# ---------------------------------------------------------------------------
# process_directory / process_file
# ---------------------------------------------------------------------------


class TestProcessDirectory:
    def test_renders_marked_and_allowlisted_files(
        self, instantiator: TemplateInstantiator, project: Path
    ):
        rendered = instantiator.process_directory(project)
        names = sorted(p.name for p in rendered)
        assert names == [".env.example", "README.md.j2", "docker-compose.yml", "model.go.j2"]

    def test_substitutes_variables(self, instantiator: TemplateInstantiator, project: Path):
        instantiator.process_directory(project)
        assert (project / "README.md.j2").read_text() == (
            "# shop\n\nDDD API for item management\n"
        )
        assert (project / "docker-compose.yml").read_text() == 'ports:\n  - "8090:8080"\n'
        assert (project / ".env.example").read_text() == "DB_NAME=shop_db\n"

    def test_feature_flags_drive_conditionals(
        self, template_vars: TemplateVars, project: Path
    ):
        with_s3 = template_vars.model_copy(update={"include_s3": True})
        TemplateInstantiator(with_s3).process_directory(project)
        assert (project / ".env.example").read_text() == "DB_NAME=shop_db\nS3=on\n"

    def test_other_files_untouched(
        self, instantiator: TemplateInstantiator, project: Path, template_tree: Path
    ):
        instantiator.process_directory(project)
        for rel in ("static.txt", "bin/run.sh"):
            assert (project / rel).read_bytes() == (template_tree / rel).read_bytes()

    def test_syntax_error_names_file(self, instantiator: TemplateInstantiator, project: Path):
        broken = project / "broken.txt.j2"
        broken.write_text("{% if %}", encoding="utf-8")
        with pytest.raises(TemplateError) as excinfo:
            instantiator.process_directory(project)
        assert excinfo.value.path == broken
        assert "broken.txt.j2" in str(excinfo.value)

    def test_undefined_variable_fails(self, instantiator: TemplateInstantiator, project: Path):
        (project / "a.j2").write_text("{{ no_such_variable }}", encoding="utf-8")
        with pytest.raises(TemplateError, match="no_such_variable"):
            instantiator.process_directory(project)

    def test_binary_template_fails(self, instantiator: TemplateInstantiator, project: Path):
        (project / "blob.j2").write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(TemplateError, match="UTF-8"):
            instantiator.process_directory(project)

    def test_render_keeps_file_mode(self, instantiator: TemplateInstantiator, project: Path):
        script = project / "bin" / "start.sh.j2"
        script.write_text("#!/bin/sh\necho {{ project_name }}\n", encoding="utf-8")
        os.chmod(script, 0o755)
        instantiator.process_file(script)
        assert stat.S_IMODE(os.stat(script).st_mode) == 0o755
        assert script.read_text() == "#!/bin/sh\necho shop\n"

    def test_filters(self, instantiator: TemplateInstantiator):
        assert instantiator.render_string("{{ 'order-lines' | pascal_case }}") == "OrderLines"
        assert instantiator.render_string("{{ 'OrderLines' | snake_case }}") == "order_lines"


# ---------------------------------------------------------------------------
# Finalization
# ---------------------------------------------------------------------------


class TestRenameTemplateFiles:
    def test_strips_marker(self, project: Path):
        renamed = TemplateInstantiator.rename_template_files(project)
        assert sorted(p.name for p in renamed) == ["README.md", "model.go"]
        assert list(project.rglob("*.j2")) == []
        assert (project / "README.md").is_file()
        assert (project / "internal" / "entity" / "model.go").is_file()

    def test_unmarked_files_keep_names(self, project: Path):
        TemplateInstantiator.rename_template_files(project)
        assert (project / "docker-compose.yml").is_file()
        assert (project / "static.txt").is_file()


class TestRenameEntityDirectory:
    def test_renames_to_entity(self, instantiator: TemplateInstantiator, project: Path):
        new_path = instantiator.rename_entity_directory(project)
        assert new_path == project / "internal" / "item"
        assert (project / "internal" / "item" / "model.go.j2").is_file()
        assert not (project / "internal" / "entity").exists()

    def test_absent_directory_is_noop(self, instantiator: TemplateInstantiator, tmp_path: Path):
        assert instantiator.rename_entity_directory(tmp_path) is None

    def test_entity_named_entity(self, template_vars: TemplateVars, project: Path):
        same = template_vars.model_copy(update={"primary_entity": "entity"})
        assert TemplateInstantiator(same).rename_entity_directory(project) == (
            project / "internal" / "entity"
        )


class TestCleanGeneratedImports:
    def test_collapses_double_slash_in_go_imports(
        self, instantiator: TemplateInstantiator, project: Path
    ):
        instantiator.process_directory(project)
        instantiator.rename_template_files(project)
        changed = instantiator.clean_generated_imports(project)

        model = project / "internal" / "entity" / "model.go"
        assert changed == [model]
        assert 'import "github.com/example/shop/internal/utils"' in model.read_text()

    def test_non_go_files_untouched(self, instantiator: TemplateInstantiator, tmp_path: Path):
        doc = tmp_path / "notes.md"
        doc.write_text('"a//b"\n', encoding="utf-8")
        assert instantiator.clean_generated_imports(tmp_path) == []
        assert doc.read_text() == '"a//b"\n'

    def test_fix_import_paths(self):
        source = (
            'import (\n'
            '\t"github.com/x/shop//internal/item"\n'
            '\t"fmt"\n'
            ')\n'
            '\n'
            '// see docs//here\n'
            'const url = "http://localhost:8080"\n'
            'const raw = `a//b`\n'
            'const p = "a///b"\n'
        )
        cleaned = fix_import_paths(source)
        assert '"github.com/x/shop/internal/item"' in cleaned
        assert "// see docs//here" in cleaned
        assert '"http://localhost:8080"' in cleaned
        assert "`a//b`" in cleaned
        assert '"a/b"' in cleaned

    def test_escaped_quotes(self):
        source = 'msg := "say \\"hi\\" to a//b"\n'
        assert fix_import_paths(source) == 'msg := "say \\"hi\\" to a/b"\n'
