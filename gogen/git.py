"""Git repository initialization for generated projects.

Runs ``git init``, ``git add .`` and an initial commit inside a freshly
scaffolded project.  Failures raise ``GitError``; the scaffolder reports them
as warnings and still considers the generation successful.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from gogen.errors import CollaboratorError
from gogen.utils import run_command


class GitError(CollaboratorError):
    """Raised when a git command fails."""


async def _run_git(*args: str, cwd: str | Path, timeout: int = 60) -> str:
    """Run a git command and return its stdout.

    Raises GitError if the command exits with a non-zero code.
    """
    cmd = ["git", *args]
    cmd_str = " ".join(cmd)
    returncode, stdout, stderr = await run_command(cmd, cwd=cwd, timeout=timeout)
    if returncode != 0:
        raise GitError(
            f"Git command failed (exit {returncode}): {cmd_str}\n{stderr}",
            command=cmd_str,
            stderr=stderr,
        )
    return stdout


class GitInitializer:
    """Creates the initial repository of a generated project."""

    def __init__(self, project_path: str | Path) -> None:
        self.project_path = Path(project_path).resolve()

    @staticmethod
    def is_available() -> bool:
        return shutil.which("git") is not None

    async def initialize(self, initial_commit_message: str) -> None:
        """Initialize a repository and commit every generated file.

        A ``.git`` directory carried over from the template tree is removed
        first.

        Raises:
            GitError: If any git command fails.
        """
        git_dir = self.project_path / ".git"
        if git_dir.exists():
            try:
                shutil.rmtree(git_dir)
            except OSError as exc:
                raise GitError(f"Failed to remove existing .git directory: {exc}") from exc

        await _run_git("init", cwd=self.project_path)
        await _run_git("add", ".", cwd=self.project_path)
        await _run_git("commit", "-m", initial_commit_message, cwd=self.project_path)
