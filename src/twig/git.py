"""Git repository operations."""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Protocol

from git import Git, GitCommandNotFound

from twig.logger import get_logger

logger = get_logger(__name__)

DEFAULT_REMOTES = ("origin",)
DEFAULT_SORT = "-committerdate"

# One ref per line: "<HEAD marker> <full refname>\t<track>\t<date>\t<upstream>"
LISTING_FORMAT = "%09".join(
    [
        "%(HEAD) %(refname)",
        "%(upstream:track,nobracket)",
        "%(committerdate:relative)",
        "%(upstream:short)",
    ]
)

LOCAL_PREFIX = "refs/heads/"
REMOTE_PREFIXES = ("refs/remotes/", "remotes/")
CURRENT_MARKER = "*"
OTHER_MARKERS = (" ", "+")  # "+" marks a branch checked out in another worktree


class GitError(Exception):
    """Git operation error."""

    def __init__(self, message: str, stderr: str = "") -> None:
        """Initialize error.

        Args:
            message: Error message
            stderr: Diagnostic text git printed, if any
        """
        super().__init__(message)
        self.stderr = stderr


class ListError(GitError):
    """Branches could not be listed."""


class ToolUnavailableError(ListError):
    """The git executable could not be launched."""


class NotARepositoryError(ListError):
    """Git refused to list branches, usually outside a repository."""


class ParseError(ListError):
    """Git produced branch listing output we cannot make sense of."""


class CheckoutError(GitError):
    """Git refused to check out the selected branch."""


@dataclass(frozen=True)
class BranchRecord:
    """One selectable branch."""

    name: str
    is_current: bool = False
    is_remote: bool = False
    tracking: str = ""
    last_commit: str = ""
    upstream: str = ""
    pr_number: Optional[int] = None

    @property
    def has_upstream(self) -> bool:
        return bool(self.upstream)

    @property
    def is_gone(self) -> bool:
        return self.tracking == "gone"

    @property
    def local_name(self) -> str:
        """Branch name without the remote segment."""
        if self.is_remote and "/" in self.name:
            return self.name.split("/", 1)[1]
        return self.name


class BranchTool(Protocol):
    """What the CLI needs from git."""

    include_remotes: bool
    sort: str
    track_remotes: bool

    def list_branches(self) -> list[BranchRecord]: ...

    def checkout(self, name: str) -> str: ...

    def get_config(self, key: str) -> Optional[str]: ...


def _classify(name: str, remotes: Iterable[str]) -> tuple[str, bool]:
    """Strip ref decoration and tell local from remote-tracking names."""
    if name.startswith(LOCAL_PREFIX):
        return name[len(LOCAL_PREFIX) :], False
    for prefix in REMOTE_PREFIXES:
        if name.startswith(prefix):
            return name[len(prefix) :], True
    if "/" in name and name.split("/", 1)[0] in remotes:
        return name, True
    return name, False


def parse_branch_listing(output: str, remotes: Iterable[str] = DEFAULT_REMOTES) -> list[BranchRecord]:
    """Parse branch listing output into records, preserving order.

    Accepts both the tab-separated ``for-each-ref`` format used by
    :class:`GitRepo` and plain ``git branch`` style lines such as
    ``"* main"`` or ``"  origin/feature"``.

    Raises:
        ParseError: If a line is malformed, a name repeats, or more than one
            branch is marked current
    """
    remotes = tuple(remotes)
    records: list[BranchRecord] = []
    seen: set[str] = set()
    current: Optional[str] = None

    for lineno, line in enumerate(output.splitlines(), start=1):
        if not line.strip():
            continue
        if len(line) < 3 or line[1] != " " or line[0] not in (CURRENT_MARKER, *OTHER_MARKERS):
            raise ParseError(f"Unexpected branch listing line {lineno}: {line!r}")

        fields = line[2:].split("\t")
        raw_name = fields[0].strip()
        if not raw_name:
            raise ParseError(f"Missing branch name on line {lineno}: {line!r}")

        # Detached HEAD shows up as "(HEAD detached at ...)" in git branch output
        if raw_name.startswith("("):
            continue
        # Symbolic refs like origin/HEAD, or "origin/HEAD -> origin/main"
        if " -> " in raw_name:
            continue

        name, is_remote = _classify(raw_name, remotes)
        if not name:
            raise ParseError(f"Empty branch name on line {lineno}: {line!r}")
        if is_remote and name.endswith("/HEAD"):
            continue
        if name in seen:
            raise ParseError(f"Branch {name!r} listed twice")
        seen.add(name)

        is_current = line[0] == CURRENT_MARKER
        if is_current:
            if current is not None:
                raise ParseError(f"Both {current!r} and {name!r} are marked as current")
            current = name

        extra = [field.strip() for field in fields[1:]] + ["", "", ""]
        records.append(
            BranchRecord(
                name=name,
                is_current=is_current,
                is_remote=is_remote,
                tracking=extra[0],
                last_commit=extra[1],
                upstream=extra[2],
            )
        )

    return records


class GitRepo:
    """Branch listing and checkout through the git command line."""

    def __init__(self, path: Path, include_remotes: bool = True, sort: str = DEFAULT_SORT, track_remotes: bool = True) -> None:
        """Initialize repository.

        Args:
            path: Working directory to run git in
            include_remotes: List remote-tracking branches too
            sort: for-each-ref sort key, empty for git's default order
            track_remotes: Create a local tracking branch when a remote branch is checked out
        """
        if not Path(path).is_dir():
            raise NotARepositoryError(f"Not a directory: {path}")
        self.path = Path(path)
        self.git = Git(str(self.path))
        self.include_remotes = include_remotes
        self.sort = sort
        self.track_remotes = track_remotes

    def _run(self, command: str, *args: str) -> tuple[int, str, str]:
        """Run a git subcommand and return (status, stdout, stderr)."""
        status, stdout, stderr = getattr(self.git, command)(*args, with_extended_output=True, with_exceptions=False)
        logger.debug("git %s %s exited %s", command.replace("_", "-"), " ".join(args), status)
        return status, stdout, stderr

    def list_branches(self) -> list[BranchRecord]:
        """List local (and remote-tracking) branches in git's sort order."""
        args = [f"--format={LISTING_FORMAT}"]
        if self.sort:
            args.insert(0, f"--sort={self.sort}")
        args.append("refs/heads")
        if self.include_remotes:
            args.append("refs/remotes")

        try:
            status, stdout, stderr = self._run("for_each_ref", *args)
        except GitCommandNotFound as err:
            raise ToolUnavailableError(f"Failed to run git: {err}") from err
        if status != 0:
            raise NotARepositoryError(stderr or f"git for-each-ref exited with status {status}", stderr=stderr)

        return parse_branch_listing(stdout)

    def _ref_exists(self, ref: str) -> bool:
        status, _, _ = self._run("rev_parse", "--verify", "--quiet", ref)
        return status == 0

    def _checkout_args(self, name: str) -> tuple[list[str], str]:
        """Work out the checkout arguments and the branch they leave checked out."""
        if not self.track_remotes or "/" not in name:
            return [name], name
        if self._ref_exists(f"{LOCAL_PREFIX}{name}") or not self._ref_exists(f"refs/remotes/{name}"):
            return [name], name

        local = name.split("/", 1)[1]
        if self._ref_exists(f"{LOCAL_PREFIX}{local}"):
            logger.debug("%s already exists locally, checking it out instead of %s", local, name)
            return [local], local
        return ["--track", name], local

    def checkout(self, name: str) -> str:
        """Check out a branch and return the branch now checked out.

        A remote-tracking name like ``origin/feature`` checks out the local
        ``feature`` branch when it exists, otherwise creates it tracking the
        remote branch (unless remote tracking is turned off).

        Raises:
            CheckoutError: If git refuses the checkout
        """
        try:
            args, target = self._checkout_args(name)
            # "--" keeps git from reading the name as a path
            status, _, stderr = self._run("checkout", *args, "--")
        except GitCommandNotFound as err:
            raise CheckoutError(f"Failed to run git: {err}") from err
        if status != 0:
            raise CheckoutError(stderr or f"git checkout exited with status {status}", stderr=stderr)
        return target

    def get_config(self, key: str) -> Optional[str]:
        """Read a git config value, None when unset."""
        try:
            status, stdout, _ = self._run("config", "--get", key)
        except GitCommandNotFound:
            return None
        if status != 0:
            return None
        return stdout.strip()
