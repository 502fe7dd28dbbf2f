"""A local git repository driven through the ``git`` command line."""

from __future__ import annotations

import hashlib
import os
import subprocess
from pathlib import Path

from .gitcmd import Git, run_command
from .reserved_state import ReservedState, read_reserved_state, write_reserved_state
from .types import (
    CommitHash,
    GeneralDiff,
    InvalidRepositoryError,
    NoDiff,
    NonReservedDiff,
    NotFoundError,
    RawRepositoryError,
    ReservedDiff,
    SemanticCommit,
    UnknownError,
)

# Commits made with an explicit author use this fixed zone offset (in minutes).
_AUTHOR_OFFSET_MINUTES = -540


def _format_offset(minutes: int) -> str:
    sign = "-" if minutes < 0 else "+"
    minutes = abs(minutes)
    return f"{sign}{minutes // 60:02d}{minutes % 60:02d}"


def _hash_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def _lines(output: str) -> list[str]:
    return [line for line in output.splitlines() if line.strip()]


class RawRepository:
    """Branch, tag, commit and remote operations on one git repository."""

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self.directory = Path(directory)
        self._git = Git(self.directory)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def init(
        cls,
        directory: str | os.PathLike[str],
        init_commit_message: str,
        init_commit_branch: str,
    ) -> RawRepository:
        """Create a repository with one empty commit on ``init_commit_branch``.

        Fails if a repository already exists at ``directory``.
        """
        path = Path(directory)
        if (path / ".git").exists():
            raise InvalidRepositoryError("there is an already existing repository")
        path.mkdir(parents=True, exist_ok=True)
        repo = cls(path)
        git = repo._git
        git.run("init", "--quiet")
        git.run("symbolic-ref", "HEAD", f"refs/heads/{init_commit_branch}")
        git.run("config", "user.name", "name")
        git.run("config", "user.email", "email")
        git.run("config", "receive.advertisePushOptions", "true")
        git.run("config", "sendpack.sideband", "false")
        repo._commit(init_commit_message)
        return repo

    @classmethod
    def open(cls, directory: str | os.PathLike[str]) -> RawRepository:
        """Open an existing repository."""
        path = Path(directory)
        if not path.is_dir():
            raise NotFoundError(f"directory does not exist: {path}")
        repo = cls(path)
        if repo._git.try_run("rev-parse", "--git-dir") is None:
            raise NotFoundError(f"no repository at {path}")
        return repo

    @classmethod
    def clone(cls, directory: str | os.PathLike[str], url: str) -> RawRepository:
        """Clone ``url`` into ``directory``."""
        path = Path(directory).resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        Git(path.parent).run("clone", "--quiet", url, str(path))
        repo = cls(path)
        repo._git.run("config", "receive.advertisePushOptions", "true")
        repo._git.run("config", "sendpack.sideband", "false")
        return repo

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _commit(
        self,
        message: str,
        author: tuple[str, str, int] | None = None,
    ) -> CommitHash:
        env = dict(os.environ)
        env["LC_ALL"] = "C"
        if author is not None:
            name, email, timestamp = author
            date = f"@{timestamp} {_format_offset(_AUTHOR_OFFSET_MINUTES)}"
            env.update(
                GIT_AUTHOR_NAME=name,
                GIT_AUTHOR_EMAIL=email,
                GIT_AUTHOR_DATE=date,
                GIT_COMMITTER_NAME=name,
                GIT_COMMITTER_EMAIL=email,
                GIT_COMMITTER_DATE=date,
            )
        result = subprocess.run(
            ["git", "commit", "--quiet", "--allow-empty", "--no-verify",
             "--cleanup=verbatim", "-F", "-"],
            cwd=self.directory,
            input=message,
            capture_output=True,
            text=True,
            encoding="utf-8",
            env=env,
            check=False,
        )
        if result.returncode != 0:
            raise RawRepositoryError(f"commit failed: {result.stderr.strip()}")
        return self._git.rev_parse("HEAD")

    def _require_branch(self, branch: str) -> CommitHash:
        return self._git.rev_parse(f"refs/heads/{branch}")

    def _first_parent(self, commit_hash: CommitHash) -> CommitHash:
        parents = self._git.parents(commit_hash)
        if not parents:
            raise NotFoundError(f"commit {commit_hash} has no parent")
        return parents[0]

    # ------------------------------------------------------------------
    # Revisions and branches
    # ------------------------------------------------------------------

    def retrieve_commit_hash(self, revision_selection: str) -> CommitHash:
        """Return the commit named by a revision selection string."""
        return self._git.rev_parse(revision_selection)

    def list_branches(self) -> list[str]:
        """Return local branch names in alphabetical order."""
        output = self._git.run("for-each-ref", "--format=%(refname:lstrip=2)", "refs/heads")
        return sorted(_lines(output))

    def create_branch(self, branch_name: str, commit_hash: CommitHash) -> None:
        """Create a branch on the commit; fails if it exists."""
        self._git.rev_parse(commit_hash.to_hex())
        self._git.run("branch", branch_name, commit_hash.to_hex())

    def locate_branch(self, branch: str) -> CommitHash:
        """Return the commit the branch points to."""
        return self._require_branch(branch)

    def get_branches(self, commit_hash: CommitHash) -> list[str]:
        """Return the local branches pointing at the commit."""
        output = self._git.run(
            "for-each-ref", "--format=%(objectname) %(refname:lstrip=2)", "refs/heads"
        )
        target = commit_hash.to_hex()
        return sorted(
            name
            for oid, name in (line.split(" ", 1) for line in _lines(output))
            if oid == target
        )

    def move_branch(self, branch: str, commit_hash: CommitHash) -> None:
        """Point an existing branch at another commit."""
        self._require_branch(branch)
        self._git.rev_parse(commit_hash.to_hex())
        self._git.run("update-ref", f"refs/heads/{branch}", commit_hash.to_hex())

    def delete_branch(self, branch: str) -> None:
        """Delete a branch; fails if it is the checked out branch."""
        self._require_branch(branch)
        current = (self._git.try_run("symbolic-ref", "--short", "-q", "HEAD") or "HEAD").strip()
        if current == branch:
            raise InvalidRepositoryError("given branch is currently checkout branch")
        self._git.run("branch", "-D", branch)

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def list_tags(self) -> list[str]:
        return sorted(_lines(self._git.run("tag", "-l")))

    def create_tag(self, tag: str, commit_hash: CommitHash) -> None:
        """Create (or overwrite) a lightweight tag on the commit."""
        self._git.rev_parse(commit_hash.to_hex())
        self._git.run("tag", "-f", tag, commit_hash.to_hex())

    def locate_tag(self, tag: str) -> CommitHash:
        return self._git.rev_parse(f"refs/tags/{tag}")

    def get_tag(self, commit_hash: CommitHash) -> list[str]:
        """Return the tags on the commit."""
        output = self._git.run(
            "for-each-ref", "--format=%(objectname) %(refname:lstrip=2)", "refs/tags"
        )
        target = commit_hash.to_hex()
        return sorted(
            name
            for oid, name in (line.split(" ", 1) for line in _lines(output))
            if oid == target
        )

    def remove_tag(self, tag: str) -> None:
        self._git.run("tag", "-d", tag)

    # ------------------------------------------------------------------
    # Commits
    # ------------------------------------------------------------------

    def create_commit(
        self,
        commit_message: str,
        author_name: str,
        author_email: str,
        author_timestamp: int,
        diff: str | None = None,
    ) -> CommitHash:
        """Commit all working-tree changes, after applying ``diff`` if given.

        The committer is the same as the author.
        """
        if diff is not None:
            self._git.run("apply", input_text=diff)
        self._git.run("add", "-A")
        return self._commit(commit_message, (author_name, author_email, author_timestamp))

    def create_semantic_commit(self, commit: SemanticCommit) -> CommitHash:
        """Commit a semantic commit; only no diff or a reserved diff is accepted."""
        message = f"{commit.title}\n\n{commit.body}"
        if isinstance(commit.diff, NoDiff):
            return self._commit(message)
        if isinstance(commit.diff, ReservedDiff):
            try:
                write_reserved_state(self._git.workdir(), commit.diff.state)
            except (OSError, ValueError) as exc:
                raise UnknownError(str(exc)) from exc
            self._git.run("add", "-A")
            return self._commit(message)
        if isinstance(commit.diff, GeneralDiff):
            raise InvalidRepositoryError("diff is Diff::General()")
        raise InvalidRepositoryError("diff is Diff::NonReserved()")

    def read_semantic_commit(self, commit_hash: CommitHash) -> SemanticCommit:
        """Read a commit back as a semantic commit."""
        parent = self._first_parent(commit_hash)
        changed = self._git.run(
            "diff-tree", "--no-commit-id", "--name-only", "-r",
            parent.to_hex(), commit_hash.to_hex(),
        )
        if _lines(changed):
            diff = NonReservedDiff(_hash_text(self.show_commit(commit_hash)))
        else:
            diff = NoDiff()
        output = self._git.run(
            "log", "-1", "--format=%an%x00%at%x00%s%x00%b", commit_hash.to_hex()
        )
        author, seconds, title, body = output.split("\x00", 3)
        return SemanticCommit(
            title=title,
            body=body.rstrip("\n"),
            diff=diff,
            author=author,
            timestamp=int(seconds) * 1000,
        )

    # ------------------------------------------------------------------
    # Working tree
    # ------------------------------------------------------------------

    def checkout_clean(self) -> None:
        """Clean the working tree (nothing to do for this repository)."""

    def checkout(self, branch: str) -> None:
        self._require_branch(branch)
        self._git.run("checkout", "--quiet", branch, "--")

    def checkout_detach(self, commit_hash: CommitHash) -> None:
        """Point ``HEAD`` at the commit in detached mode."""
        self._git.rev_parse(commit_hash.to_hex())
        self._git.run("update-ref", "--no-deref", "HEAD", commit_hash.to_hex())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_head(self) -> CommitHash:
        return self._git.rev_parse("HEAD")

    def get_initial_commit(self) -> CommitHash:
        try:
            self._git.rev_parse("HEAD")
        except NotFoundError:
            raise InvalidRepositoryError("repository is empty") from None
        oids = _lines(self._git.run("rev-list", "--reverse", "--date-order", "HEAD"))
        if not oids:
            raise UnknownError("failed to get revwalk")
        return CommitHash.from_hex(oids[0])

    def get_patch(self, commit_hash: CommitHash) -> str:
        """Return the patch from the first parent to the commit."""
        parent = self._first_parent(commit_hash)
        return self._git.run(
            "diff", "--no-color", "--full-index", parent.to_hex(), commit_hash.to_hex()
        )

    def show_commit(self, commit_hash: CommitHash) -> str:
        """Return the commit formatted as an e-mail patch."""
        self._git.rev_parse(commit_hash.to_hex())
        return self._git.run("format-patch", "-1", "--stdout", commit_hash.to_hex())

    def list_ancestors(
        self, commit_hash: CommitHash, max_count: int | None = None
    ) -> list[CommitHash]:
        """List ancestors, the direct parent first; fails on merge commits."""
        output = self._git.run("rev-list", "--topo-order", commit_hash.to_hex())
        ancestors = [CommitHash.from_hex(oid) for oid in _lines(output)][1:]
        checked = ancestors if max_count is None else ancestors[:max_count]
        for ancestor in checked:
            parents = self._git.parents(ancestor)
            if len(parents) > 1:
                raise InvalidRepositoryError(f"There exists a merge commit, {ancestor}")
            if not parents:
                break
        return checked

    def query_commit_path(
        self, ancestor: CommitHash, descendant: CommitHash
    ) -> list[CommitHash]:
        """Commits after ``ancestor`` up to and including ``descendant``."""
        if ancestor == descendant:
            return []
        if self.find_merge_base(ancestor, descendant) != ancestor:
            raise InvalidRepositoryError("ancestor is not the merge base of two commits")
        output = self._git.run(
            "rev-list", "--topo-order", "--reverse",
            f"{ancestor.to_hex()}..{descendant.to_hex()}",
        )
        return [CommitHash.from_hex(oid) for oid in _lines(output)]

    def find_merge_base(self, commit_hash1: CommitHash, commit_hash2: CommitHash) -> CommitHash:
        output = self._git.try_run("merge-base", commit_hash1.to_hex(), commit_hash2.to_hex())
        if output is None or not output.strip():
            raise NotFoundError(f"no merge base for {commit_hash1} and {commit_hash2}")
        return CommitHash.from_hex(output.strip())

    def read_reserved_state(self) -> ReservedState:
        """Read the reserved state from the working tree."""
        try:
            return read_reserved_state(self._git.workdir())
        except (OSError, ValueError) as exc:
            raise UnknownError(str(exc)) from exc

    # ------------------------------------------------------------------
    # Remotes
    # ------------------------------------------------------------------

    def add_remote(self, remote_name: str, remote_url: str) -> None:
        self._git.run("remote", "add", remote_name, remote_url)

    def remove_remote(self, remote_name: str) -> None:
        self._git.run("remote", "remove", remote_name)

    def fetch_all(self) -> None:
        for name in _lines(self._git.run("remote")):
            self._git.run("fetch", "--quiet", name)

    def push_option(self, remote_name: str, branch: str, option: str | None = None) -> None:
        """Push ``branch`` to ``remote_name``, with a push option if given."""
        workdir = self._git.workdir()
        if option is not None:
            run_command(
                f"cd {workdir} && git push {remote_name} {branch} --push-option='{option}'"
            )
        else:
            run_command(f"cd {workdir} && git push {remote_name} {branch}")

    def list_remotes(self) -> list[tuple[str, str]]:
        """Return ``(remote_name, remote_url)`` pairs sorted by name."""
        names = sorted(_lines(self._git.run("remote")))
        return [(name, self._git.run("remote", "get-url", name).strip()) for name in names]

    def list_remote_tracking_branches(self) -> list[tuple[str, str, CommitHash]]:
        """Return ``(remote_name, branch_name, commit_hash)`` triples."""
        output = self._git.run(
            "for-each-ref",
            "--format=%(refname:lstrip=2)%00%(objectname)%00%(symref)",
            "refs/remotes",
        )
        branches = []
        for line in _lines(output):
            name, oid, symref = line.split("\x00")
            if symref:
                continue
            remote_name, _, branch_name = name.partition("/")
            branches.append((remote_name, branch_name, CommitHash.from_hex(oid)))
        return branches

    def locate_remote_tracking_branch(self, remote_name: str, branch_name: str) -> CommitHash:
        return self._git.rev_parse(f"refs/remotes/{remote_name}/{branch_name}")