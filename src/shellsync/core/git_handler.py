#!/usr/bin/env python3
"""
Git repository handler for ShellSync.

This module wraps the git working tree that holds the shared zsh fragments.
It reports status against the upstream branch and performs commit, pull,
push, log, diff and init. No state is cached between calls: every answer is
read from git at call time.
"""

import shutil
from dataclasses import dataclass, asdict, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from git import Repo, GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from .errors import (
    AlreadyInitializedError,
    EmptyMessageError,
    GitError,
    MergeConflictError,
    NoUpstreamError,
    NothingToCommitError,
    RejectedError,
    RepositoryNotInitializedError,
)
from .locks import LockRegistry
from ..utils.logger import get_logger
from ..utils.path import display_path

_REJECTION_MARKERS = ('[rejected]', 'non-fast-forward', 'fetch first', '[remote rejected]')


@dataclass
class GitStatus:
    """Working tree state relative to HEAD and the upstream branch."""
    branch: str
    clean: bool
    ahead: int = 0
    behind: int = 0
    modified: List[str] = field(default_factory=list)
    untracked: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GitCommit:
    """One entry of the commit history."""
    hash: str
    message: str
    author: str
    date: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PullResult:
    """Outcome of a pull."""
    up_to_date: bool
    message: str
    head: Optional[str] = None


class GitHandler:
    """Handles git operations on the shared fragments directory."""

    def __init__(
        self,
        repo_path: Union[str, Path],
        locks: Optional[LockRegistry] = None,
        default_branch: str = 'main',
        remote_name: str = 'origin',
    ):
        """
        Initialize Git handler.

        Args:
            repo_path: Path to the shared directory (the git working tree root)
            locks: Lock registry shared with the config store
            default_branch: Branch name used by init()
            remote_name: Remote used when push() has to set an upstream
        """
        self.logger = get_logger(f"{__name__}.GitHandler")
        self.repo_path = Path(repo_path).expanduser().resolve()
        self.locks = locks or LockRegistry()
        self.default_branch = default_branch
        self.remote_name = remote_name

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        """Check whether the shared directory has git metadata."""
        return (self.repo_path / '.git').exists()

    def _open_repo(self) -> Repo:
        if not self.is_initialized:
            raise RepositoryNotInitializedError(self.repo_path)
        try:
            return Repo(self.repo_path)
        except (InvalidGitRepositoryError, NoSuchPathError):
            raise RepositoryNotInitializedError(self.repo_path)

    def _error(self, operation: str, error: GitCommandError) -> GitError:
        detail = (error.stderr or str(error)).strip()
        self.logger.error(f"Git {operation} failed: {detail}")
        return GitError(f"git {operation}", self.repo_path, detail)

    @staticmethod
    def _branch_name(repo: Repo) -> str:
        try:
            return repo.active_branch.name
        except TypeError:
            # Detached HEAD
            return 'HEAD'

    @staticmethod
    def _ref_exists(repo: Repo, ref: str) -> bool:
        try:
            repo.git.rev_parse('--verify', '--quiet', ref)
            return True
        except GitCommandError:
            return False

    def _divergence(self, repo: Repo, ref: str) -> Tuple[int, int]:
        """Commits (ahead, behind) of HEAD relative to ``ref``."""
        if not repo.head.is_valid() or not self._ref_exists(repo, ref):
            return 0, 0
        try:
            output = repo.git.rev_list('--left-right', '--count', f'HEAD...{ref}')
        except GitCommandError as e:
            raise self._error('rev-list', e)
        ahead, behind = (int(part) for part in output.split())
        return ahead, behind

    @staticmethod
    def _tracking(repo: Repo):
        try:
            branch = repo.active_branch
        except TypeError:
            return None
        return branch.tracking_branch()

    def _ahead_behind(self, repo: Repo) -> Tuple[int, int]:
        tracking = self._tracking(repo)
        if tracking is None:
            return 0, 0
        return self._divergence(repo, tracking.path)

    @staticmethod
    def _porcelain(repo: Repo) -> Tuple[List[str], List[str]]:
        output = repo.git.status('--porcelain', '-z', '--untracked-files=all')
        modified: List[str] = []
        untracked: List[str] = []

        entries = output.split('\0')
        index = 0
        while index < len(entries):
            entry = entries[index]
            index += 1
            if len(entry) < 4:
                continue

            code, path = entry[:2], entry[3:]
            if code == '??':
                untracked.append(path)
            elif code != '!!':
                modified.append(path)

            if code[0] in ('R', 'C'):
                # Renames and copies are followed by their source path
                index += 1

        return modified, untracked

    def _status(self, repo: Repo) -> GitStatus:
        modified, untracked = self._porcelain(repo)
        ahead, behind = self._ahead_behind(repo)
        return GitStatus(
            branch=self._branch_name(repo),
            clean=not modified and not untracked,
            ahead=ahead,
            behind=behind,
            modified=modified,
            untracked=untracked,
        )

    def _fetch(self, repo: Repo, remote_name: str) -> None:
        try:
            repo.remote(remote_name).fetch()
        except ValueError:
            raise NoUpstreamError(f"Remote '{remote_name}' is not configured")
        except GitCommandError as e:
            raise self._error('fetch', e)

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------

    @property
    def current_branch(self) -> str:
        """Get the current branch name."""
        with self.locks.repository:
            return self._branch_name(self._open_repo())

    def status(self, fetch: bool = False) -> GitStatus:
        """
        Get repository status.

        Args:
            fetch: Fetch the upstream first so ahead/behind reflect the remote

        Returns:
            GitStatus for the shared directory
        """
        with self.locks.repository:
            repo = self._open_repo()
            if fetch:
                tracking = self._tracking(repo)
                if tracking is not None:
                    self._fetch(repo, tracking.remote_name)
            return self._status(repo)

    def commit(self, message: str) -> str:
        """
        Stage every change under the shared directory and commit it.

        Returns:
            Hash of the new commit
        """
        if not message or not message.strip():
            raise EmptyMessageError("Commit message must not be empty")

        with self.locks.repository:
            repo = self._open_repo()
            if self._status(repo).clean:
                raise NothingToCommitError("Nothing to commit, working tree clean")

            try:
                repo.git.add(A=True)
                repo.git.commit('-m', message.strip())
            except GitCommandError as e:
                raise self._error('commit', e)

            commit_hash = repo.head.commit.hexsha

        self.logger.info(f"Committed {commit_hash[:8]}: {message.strip().splitlines()[0]}")
        return commit_hash

    def pull(self) -> PullResult:
        """
        Fetch the upstream branch and merge it.

        Only fast-forwards and merges git completes on its own are accepted;
        on conflicts the merge is aborted and MergeConflictError is raised.
        """
        with self.locks.repository:
            repo = self._open_repo()
            tracking = self._tracking(repo)
            if tracking is None:
                raise NoUpstreamError(
                    f"Branch '{self._branch_name(repo)}' has no upstream branch to pull from"
                )

            self._fetch(repo, tracking.remote_name)
            _, behind = self._divergence(repo, tracking.path)
            head = repo.head.commit.hexsha if repo.head.is_valid() else None
            if behind == 0:
                self.logger.info("Already up to date")
                return PullResult(up_to_date=True, message="Already up to date.", head=head)

            try:
                repo.git.merge(tracking.name, '--no-edit')
            except GitCommandError as e:
                conflicted = self._unmerged_paths(repo)
                if conflicted or (Path(repo.git_dir) / 'MERGE_HEAD').exists():
                    self._abort_merge(repo)
                    raise MergeConflictError("Pull aborted because of conflicting changes", conflicted)
                raise self._error('merge', e)

            head = repo.head.commit.hexsha

        message = f"Pulled {behind} commit(s) from {tracking.name}"
        self.logger.info(message)
        return PullResult(up_to_date=False, message=message, head=head)

    @staticmethod
    def _unmerged_paths(repo: Repo) -> List[str]:
        try:
            output = repo.git.diff('--name-only', '--diff-filter=U')
        except GitCommandError:
            return []
        return [line for line in output.splitlines() if line]

    def _abort_merge(self, repo: Repo) -> None:
        try:
            repo.git.merge('--abort')
        except GitCommandError as e:
            raise self._error('merge --abort', e)

    def push(self, remote: Optional[str] = None) -> str:
        """
        Push the current branch to its upstream.

        Args:
            remote: Remote to push to and record as upstream when the branch
                has none yet. Without it a missing upstream is an error.

        Returns:
            Human readable summary
        """
        with self.locks.repository:
            repo = self._open_repo()
            try:
                branch = repo.active_branch
            except TypeError:
                raise NoUpstreamError("HEAD is detached; check out a branch before pushing")

            tracking = branch.tracking_branch()
            if tracking is None:
                if remote is None:
                    raise NoUpstreamError(
                        f"Branch '{branch.name}' has no upstream branch; "
                        f"push with a remote to set one"
                    )
                remote_name, remote_branch, set_upstream = remote, branch.name, True
            else:
                remote_name, remote_branch, set_upstream = tracking.remote_name, tracking.remote_head, False

            self._fetch(repo, remote_name)
            _, behind = self._divergence(repo, f"refs/remotes/{remote_name}/{remote_branch}")
            if behind:
                raise RejectedError(
                    f"{remote_name}/{remote_branch} has {behind} commit(s) not present locally; pull first"
                )

            args = [remote_name, f"{branch.name}:{remote_branch}"]
            if set_upstream:
                args.insert(0, '--set-upstream')
            try:
                repo.git.push(*args)
            except GitCommandError as e:
                detail = e.stderr or str(e)
                if any(marker in detail for marker in _REJECTION_MARKERS):
                    raise RejectedError(f"Push to {remote_name}/{remote_branch} was rejected; pull first")
                raise self._error('push', e)

        message = f"Pushed {branch.name} to {remote_name}/{remote_branch}"
        self.logger.info(message)
        return message

    def log(self, limit: int = 10) -> List[GitCommit]:
        """Most recent commits, newest first."""
        if limit <= 0:
            return []

        with self.locks.repository:
            repo = self._open_repo()
            if not repo.head.is_valid():
                return []
            return [
                GitCommit(
                    hash=commit.hexsha,
                    message=commit.summary,
                    author=commit.author.name,
                    date=commit.committed_datetime.isoformat(),
                )
                for commit in repo.iter_commits(max_count=limit)
            ]

    def diff(self, staged: bool = False) -> str:
        """Unified diff of uncommitted changes to tracked files."""
        with self.locks.repository:
            repo = self._open_repo()
            try:
                return repo.git.diff('--cached') if staged else repo.git.diff()
            except GitCommandError as e:
                raise self._error('diff', e)

    def init(self) -> str:
        """
        Create the repository and commit the current tree.

        Afterwards status() reports a clean tree.
        """
        with self.locks.repository:
            if self.is_initialized:
                raise AlreadyInitializedError(self.repo_path)

            self.repo_path.mkdir(parents=True, exist_ok=True)
            gitignore = self.repo_path / '.gitignore'
            wrote_gitignore = False
            try:
                repo = Repo.init(self.repo_path)
                repo.git.symbolic_ref('HEAD', f'refs/heads/{self.default_branch}')

                if not gitignore.exists():
                    gitignore.write_text(self._generate_gitignore(), encoding='utf-8')
                    wrote_gitignore = True

                repo.git.add(A=True)
                repo.git.commit('-m', 'Initial commit', '--allow-empty')
            except GitCommandError as e:
                self._undo_init(gitignore if wrote_gitignore else None)
                raise self._error('init', e)

        message = f"Initialized git repository in {display_path(self.repo_path)}"
        self.logger.info(message)
        return message

    def _undo_init(self, gitignore: Optional[Path]) -> None:
        """Remove what a failed init() created so it can be retried."""
        shutil.rmtree(self.repo_path / '.git', ignore_errors=True)
        if gitignore is not None and gitignore.exists():
            gitignore.unlink()
        self.logger.warning(f"Rolled back failed init in {display_path(self.repo_path)}")

    @staticmethod
    def _generate_gitignore() -> str:
        """Generate default .gitignore content."""
        return """# ShellSync gitignore

# Temporary files left by interrupted writes
*.tmp
*~
.DS_Store

# Machine-local fragments never belong in the shared repository
*.local.zsh
"""

    # ------------------------------------------------------------------
    # remotes
    # ------------------------------------------------------------------

    @property
    def remotes(self) -> List[str]:
        """Get list of remote names."""
        with self.locks.repository:
            return [remote.name for remote in self._open_repo().remotes]

    def add_remote(self, name: str, url: str) -> None:
        """Add a remote repository, replacing one with the same name."""
        with self.locks.repository:
            repo = self._open_repo()
            try:
                if name in [remote.name for remote in repo.remotes]:
                    repo.delete_remote(repo.remote(name))
                repo.create_remote(name, url)
            except GitCommandError as e:
                raise self._error('remote add', e)
        self.logger.info(f"Added remote '{name}': {url}")

    def remove_remote(self, name: str) -> None:
        """Remove a remote repository."""
        with self.locks.repository:
            repo = self._open_repo()
            if name not in [remote.name for remote in repo.remotes]:
                raise NoUpstreamError(f"Remote '{name}' is not configured")
            try:
                repo.delete_remote(repo.remote(name))
            except GitCommandError as e:
                raise self._error('remote remove', e)
        self.logger.info(f"Removed remote '{name}'")
