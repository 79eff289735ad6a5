"""Test configuration and fixtures."""

from pathlib import Path
from typing import Callable, Generator

import pytest
from git import Actor, Repo
from typer.testing import CliRunner

from tests.fakes import FakeBranchTool, FakeTerminal, KeyInput


@pytest.fixture
def make_terminal() -> Callable[..., FakeTerminal]:
    """Build a FakeTerminal from key presses; plain strings are typed characters."""

    def factory(*keys: KeyInput) -> FakeTerminal:
        return FakeTerminal(list(keys))

    return factory


@pytest.fixture
def fake_tool() -> FakeBranchTool:
    """A fake git with main checked out, one more local branch and one remote branch."""
    return FakeBranchTool("* main\n  feature-x\n  origin/feature-y\n")


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def test_env(tmp_path: Path) -> Generator[tuple[Path, Path], None, None]:
    """Create a test environment with local and remote repositories.

    Local branches: main, feature/test, feature/current (checked out).
    Remote-only branch: feature/remote.

    Returns:
        Tuple of (local_repo_path, remote_repo_path)
    """
    remote_path = tmp_path / "remote"
    local_path = tmp_path / "local"
    remote_path.mkdir()
    local_path.mkdir()

    Repo.init(remote_path, bare=True)
    local_repo = Repo.init(local_path)

    author = Actor("Test User", "test@example.com")
    local_repo.config_writer().set_value("user", "name", author.name).release()
    local_repo.config_writer().set_value("user", "email", author.email).release()

    readme = local_path / "README.md"
    readme.write_text("# Test Repository")
    local_repo.index.add(["README.md"])
    local_repo.index.commit("Initial commit", author=author)

    # Whatever init.defaultBranch says, call it main
    local_repo.git.branch("-M", "main")
    main_branch = local_repo.heads.main

    origin = local_repo.create_remote("origin", url=str(remote_path))
    origin.push("main")
    main_branch.set_tracking_branch(origin.refs.main)

    def create_branch(name: str, content: str) -> None:
        """Create a branch off main with one commit, pushed and tracking origin."""
        main_branch.checkout()
        branch = local_repo.create_head(name)
        branch.checkout()

        test_file = local_path / f"{name}.txt"
        test_file.parent.mkdir(parents=True, exist_ok=True)
        test_file.write_text(content)
        local_repo.index.add([f"{name}.txt"])
        local_repo.index.commit(f"Add {name}", author=author)

        origin.push(name)
        branch.set_tracking_branch(origin.refs[name])

    create_branch("feature/test", "Test branch content")
    create_branch("feature/current", "Current branch content")

    # A branch that only exists on the remote
    create_branch("feature/remote", "Remote branch content")
    main_branch.checkout()
    local_repo.delete_head("feature/remote", force=True)

    local_repo.heads["feature/current"].checkout()

    yield local_path, remote_path
