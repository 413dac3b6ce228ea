"""Unit tests for utility functions (gogen.utils).

Tests cover:
- run_command (success, failure, timeout, cwd, env vars, stderr)
- Rich output helpers (print_step, print_summary_table, etc.)
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from gogen.utils import (
    print_error,
    print_step,
    print_success,
    print_summary_table,
    print_warning,
    run_command,
)

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# run_command
# ---------------------------------------------------------------------------


class TestRunCommand:
    @pytest.mark.asyncio
    async def test_successful_command(self):
        returncode, stdout, stderr = await run_command(
            [sys.executable, "-c", "print('hello')"]
        )
        assert returncode == 0
        assert stdout == "hello"

    @pytest.mark.asyncio
    async def test_failed_command(self):
        returncode, _, _ = await run_command(
            [sys.executable, "-c", "import sys; sys.exit(3)"]
        )
        assert returncode == 3

    @pytest.mark.asyncio
    async def test_command_with_cwd(self, tmp_path: Path):
        returncode, stdout, _ = await run_command(
            [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path
        )
        assert returncode == 0
        assert Path(stdout).resolve() == tmp_path.resolve()

    @pytest.mark.asyncio
    async def test_command_timeout(self):
        returncode, _, stderr = await run_command(
            [sys.executable, "-c", "import time; time.sleep(10)"], timeout=1
        )
        assert returncode == -1
        assert "timed out" in stderr

    @pytest.mark.asyncio
    async def test_command_with_env(self):
        returncode, stdout, _ = await run_command(
            [sys.executable, "-c", "import os; print(os.environ['GOGEN_TEST_VAR'])"],
            env={"GOGEN_TEST_VAR": "test_value"},
        )
        assert returncode == 0
        assert stdout == "test_value"

    @pytest.mark.asyncio
    async def test_command_returns_stderr(self):
        _, _, stderr = await run_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('error_msg\\n')"],
            timeout=10,
        )
        assert stderr == "error_msg"

    @pytest.mark.asyncio
    async def test_missing_executable_raises(self):
        with pytest.raises(FileNotFoundError):
            await run_command(["nonexistent-binary-12345-xyz"])


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


class TestOutputHelpers:
    def test_print_step(self, capsys):
        print_step("Processing templates...")
        assert "Processing templates..." in capsys.readouterr().out

    def test_print_summary_table(self, capsys):
        print_summary_table({"API": "8090", "Database": "5442"}, title="shop")
        out = capsys.readouterr().out
        assert "8090" in out
        assert "5442" in out

    def test_print_success(self, capsys):
        print_success("Project created")
        assert "Project created" in capsys.readouterr().out

    def test_print_warning(self, capsys):
        print_warning("Warning: go not found")
        assert "Warning: go not found" in capsys.readouterr().out

    def test_markup_in_message_is_printed_literally(self, capsys):
        print_error("Failed to parse [ports]")
        assert "Failed to parse [ports]" in capsys.readouterr().out
