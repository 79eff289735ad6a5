"""Tests for listing and checking out branches in real repositories."""

from pathlib import Path

import pytest
from git import Actor, Git, Repo

from twig.git import CheckoutError, GitRepo, NotARepositoryError, ToolUnavailableError


def names(repo: GitRepo) -> list[str]:
    return [record.name for record in repo.list_branches()]


def test_list_local_and_remote_branches(test_env: tuple[Path, Path]) -> None:
    """Test that local and remote-tracking branches are both listed."""
    local_path, _ = test_env
    records = {record.name: record for record in GitRepo(local_path).list_branches()}

    assert {"main", "feature/test", "feature/current"} <= set(records)
    assert {"origin/main", "origin/feature/test", "origin/feature/remote"} <= set(records)
    assert "feature/remote" not in records
    assert not any(name.endswith("/HEAD") for name in records)

    assert records["feature/current"].is_current
    assert sum(record.is_current for record in records.values()) == 1
    assert not records["main"].is_remote
    assert records["origin/feature/remote"].is_remote


def test_list_follows_sort_key(test_env: tuple[Path, Path]) -> None:
    """Test that git's sort order is kept as-is."""
    local_path, _ = test_env
    repo = GitRepo(local_path, sort="refname")
    assert names(repo) == [
        "feature/current",
        "feature/test",
        "main",
        "origin/feature/current",
        "origin/feature/remote",
        "origin/feature/test",
        "origin/main",
    ]


def test_list_without_remotes(test_env: tuple[Path, Path]) -> None:
    """Test that remote-tracking branches can be left out."""
    local_path, _ = test_env
    repo = GitRepo(local_path, include_remotes=False)
    assert sorted(names(repo)) == ["feature/current", "feature/test", "main"]


def test_list_reports_upstream_and_tracking(test_env: tuple[Path, Path]) -> None:
    """Test that upstream names and ahead counts come through."""
    local_path, _ = test_env
    local_repo = Repo(local_path)
    author = Actor("Test User", "test@example.com")
    extra = local_path / "unpushed.txt"
    extra.write_text("not pushed yet")
    local_repo.index.add(["unpushed.txt"])
    local_repo.index.commit("Unpushed work", author=author)

    records = {record.name: record for record in GitRepo(local_path).list_branches()}
    current = records["feature/current"]
    assert current.upstream == "origin/feature/current"
    assert current.tracking == "ahead 1"
    assert current.last_commit
    assert records["feature/test"].tracking == ""


def test_list_outside_repository(tmp_path: Path) -> None:
    """Test that git's complaint about a missing repository is kept."""
    with pytest.raises(NotARepositoryError) as excinfo:
        GitRepo(tmp_path).list_branches()
    assert "not a git repository" in excinfo.value.stderr.lower()
    assert "not a git repository" in str(excinfo.value).lower()


def test_missing_directory(tmp_path: Path) -> None:
    """Test that a path that doesn't exist is rejected up front."""
    with pytest.raises(NotARepositoryError):
        GitRepo(tmp_path / "missing")


def test_git_not_installed(test_env: tuple[Path, Path], monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that a git executable that can't be launched is reported as such."""
    local_path, _ = test_env
    monkeypatch.setattr(Git, "GIT_PYTHON_GIT_EXECUTABLE", str(local_path / "no-such-git"))
    with pytest.raises(ToolUnavailableError):
        GitRepo(local_path).list_branches()


def test_checkout_local_branch(test_env: tuple[Path, Path]) -> None:
    """Test checking out an existing local branch."""
    local_path, _ = test_env
    assert GitRepo(local_path).checkout("main") == "main"
    assert Repo(local_path).active_branch.name == "main"


def test_checkout_remote_branch_creates_tracking_branch(test_env: tuple[Path, Path]) -> None:
    """Test that a remote-only branch is checked out as a new local tracking branch."""
    local_path, _ = test_env
    assert GitRepo(local_path).checkout("origin/feature/remote") == "feature/remote"

    local_repo = Repo(local_path)
    assert local_repo.active_branch.name == "feature/remote"
    assert local_repo.active_branch.tracking_branch().name == "origin/feature/remote"


def test_checkout_remote_branch_uses_existing_local(test_env: tuple[Path, Path]) -> None:
    """Test that picking origin/x switches to the local x when there is one."""
    local_path, _ = test_env
    assert GitRepo(local_path).checkout("origin/feature/test") == "feature/test"
    assert Repo(local_path).active_branch.name == "feature/test"


def test_checkout_remote_branch_without_tracking(test_env: tuple[Path, Path]) -> None:
    """Test that with tracking off, the remote ref is checked out as-is."""
    local_path, _ = test_env
    GitRepo(local_path, track_remotes=False).checkout("origin/feature/remote")

    local_repo = Repo(local_path)
    assert local_repo.head.is_detached
    assert "feature/remote" not in [head.name for head in local_repo.heads]


def test_checkout_missing_branch(test_env: tuple[Path, Path]) -> None:
    """Test that git's error text is carried by CheckoutError."""
    local_path, _ = test_env
    with pytest.raises(CheckoutError) as excinfo:
        GitRepo(local_path).checkout("no-such-branch")
    assert excinfo.value.stderr
    assert Repo(local_path).active_branch.name == "feature/current"


def test_checkout_blocked_by_working_tree(test_env: tuple[Path, Path]) -> None:
    """Test that a checkout git refuses leaves the current branch alone."""
    local_path, _ = test_env
    blocker = local_path / "feature" / "test.txt"
    blocker.parent.mkdir(parents=True, exist_ok=True)
    blocker.write_text("untracked work that would be overwritten")

    with pytest.raises(CheckoutError) as excinfo:
        GitRepo(local_path).checkout("feature/test")
    assert "overwritten" in str(excinfo.value)
    assert Repo(local_path).active_branch.name == "feature/current"
    assert blocker.read_text() == "untracked work that would be overwritten"


def test_get_config(test_env: tuple[Path, Path]) -> None:
    """Test reading twig settings from git config."""
    local_path, _ = test_env
    Repo(local_path).config_writer().set_value("twig", "pageSize", "7").release()

    repo = GitRepo(local_path)
    assert repo.get_config("twig.pageSize") == "7"
    assert repo.get_config("twig.sort") is None
