#!/usr/bin/env python3
"""
Tests for git synchronization, against real temporary repositories.
"""

import pytest
from pathlib import Path

from git import Repo

from shellsync.core.errors import (
    AlreadyInitializedError,
    EmptyMessageError,
    GitError,
    MergeConflictError,
    NoUpstreamError,
    NothingToCommitError,
    RejectedError,
    RepositoryNotInitializedError,
)
from shellsync.core.git_handler import GitHandler


def commit_file(repo: Repo, name: str, content: str, message: str) -> None:
    """Commit a file in a plain clone (the other machine)."""
    path = Path(repo.working_tree_dir) / name
    path.write_text(content)
    repo.git.add(name)
    repo.git.commit('-m', message)


@pytest.fixture
def initialized(git_handler, store):
    """Shared directory with one alias, initialized and committed."""
    store.add('alias', 'll', 'ls -lah', 'shared')
    git_handler.init()
    return git_handler


IDENTITY_VARS = ('GIT_AUTHOR_NAME', 'GIT_AUTHOR_EMAIL', 'GIT_COMMITTER_NAME', 'GIT_COMMITTER_EMAIL')


@pytest.fixture
def no_identity(monkeypatch, tmp_path):
    """Leave git without a committer identity, as on a freshly set up machine."""
    for var in IDENTITY_VARS + ('EMAIL',):
        monkeypatch.delenv(var, raising=False)
    (tmp_path / 'gitconfig').write_text('[user]\n\tuseConfigOnly = true\n')


@pytest.fixture
def published(initialized, bare_remote):
    """Initialized repository pushed to the bare remote with upstream set."""
    initialized.add_remote('origin', str(bare_remote))
    initialized.push(remote='origin')
    return initialized


class TestInit:
    """Test repository initialization."""

    def test_init_commits_existing_files(self, initialized):
        status = initialized.status()
        assert status.clean
        assert status.branch == 'main'

        log = initialized.log()
        assert [c.message for c in log] == ['Initial commit']

        repo = Repo(initialized.repo_path)
        tracked = repo.git.ls_files().splitlines()
        assert 'aliases.zsh' in tracked
        assert '.gitignore' in tracked

    def test_init_empty_directory(self, git_handler):
        git_handler.init()
        assert git_handler.status().clean
        assert len(git_handler.log()) == 1

    def test_failed_init_is_rolled_back(self, git_handler, store, no_identity, monkeypatch):
        store.add('alias', 'll', 'ls -lah', 'shared')

        with pytest.raises(GitError):
            git_handler.init()

        assert not git_handler.is_initialized
        assert not (git_handler.repo_path / '.git').exists()
        assert not (git_handler.repo_path / '.gitignore').exists()
        assert (git_handler.repo_path / 'aliases.zsh').read_text() == 'alias ll="ls -lah"\n'

        for var in IDENTITY_VARS:
            value = 'ShellSync Tests' if var.endswith('NAME') else 'tests@shellsync.invalid'
            monkeypatch.setenv(var, value)
        git_handler.init()
        assert git_handler.status().clean

    def test_existing_gitignore_survives_failed_init(self, git_handler, no_identity):
        git_handler.repo_path.mkdir(parents=True, exist_ok=True)
        (git_handler.repo_path / '.gitignore').write_text('secret.zsh\n')

        with pytest.raises(GitError):
            git_handler.init()

        assert (git_handler.repo_path / '.gitignore').read_text() == 'secret.zsh\n'
        assert not git_handler.is_initialized

    def test_init_twice_fails(self, initialized):
        with pytest.raises(AlreadyInitializedError):
            initialized.init()

    def test_operations_need_a_repository(self, git_handler):
        assert not git_handler.is_initialized
        for operation in (git_handler.status, git_handler.pull, git_handler.diff,
                          lambda: git_handler.commit('msg')):
            with pytest.raises(RepositoryNotInitializedError):
                operation()


class TestStatusAndCommit:
    """Test status reporting and committing."""

    def test_commit_on_clean_tree_fails(self, initialized):
        with pytest.raises(NothingToCommitError):
            initialized.commit('msg')

    def test_empty_message_fails(self, initialized, store):
        store.add('alias', 'gs', 'git status', 'shared')
        for message in ('', '   ', '\n'):
            with pytest.raises(EmptyMessageError):
                initialized.commit(message)

    def test_add_then_commit(self, initialized, store):
        store.add('alias', 'gs', 'git status', 'shared')

        status = initialized.status()
        assert not status.clean
        assert status.modified == ['aliases.zsh']
        assert status.untracked == []

        commit_hash = initialized.commit('Add gs')

        assert initialized.status().clean
        head = initialized.log(1)[0]
        assert head.hash == commit_hash
        assert head.message == 'Add gs'
        assert head.author == 'ShellSync Tests'

    def test_untracked_file_reported(self, initialized, store):
        store.add('function', 'mkcd', 'mkdir -p "$1"', 'shared')

        status = initialized.status()

        assert status.untracked == ['functions.zsh']
        assert not status.clean

    def test_local_scope_does_not_touch_repository(self, initialized, store):
        store.add('alias', 'tmp', 'cd /tmp', 'local')
        store.set_config('export X=1\n', 'local')
        assert initialized.status().clean

    def test_log_limits(self, initialized, store):
        for name in ('a', 'b', 'c'):
            store.add('alias', name, 'x', 'shared')
            initialized.commit(f'Add {name}')

        assert [c.message for c in initialized.log(2)] == ['Add c', 'Add b']
        assert initialized.log(0) == []
        assert initialized.log(-1) == []

    def test_diff(self, initialized, store):
        store.add('alias', 'gs', 'git status', 'shared')

        diff = initialized.diff()

        assert '+alias gs="git status"' in diff
        assert initialized.diff(staged=True) == ''

    def test_no_upstream_means_zero_ahead_behind(self, initialized):
        status = initialized.status()
        assert (status.ahead, status.behind) == (0, 0)


class TestRemoteSync:
    """Test push and pull against a bare remote."""

    def test_push_without_upstream_fails(self, initialized):
        with pytest.raises(NoUpstreamError):
            initialized.push()

    def test_pull_without_upstream_fails(self, initialized):
        with pytest.raises(NoUpstreamError):
            initialized.pull()

    def test_first_push_sets_upstream(self, published, bare_remote):
        remote = Repo(bare_remote)
        assert remote.heads.main.commit.hexsha == published.log(1)[0].hash
        assert published.status().ahead == 0

    def test_ahead_after_local_commit(self, published, store):
        store.add('alias', 'gs', 'git status', 'shared')
        published.commit('Add gs')

        status = published.status()
        assert (status.ahead, status.behind) == (1, 0)

        published.push()
        assert published.status().ahead == 0

    def test_pull_up_to_date(self, published):
        result = published.pull()
        assert result.up_to_date
        assert result.message == 'Already up to date.'

    def test_pull_fast_forward(self, published, clone_remote, store):
        other = clone_remote()
        commit_file(other, 'aliases.zsh',
                    'alias ll="ls -lah"\n\nalias gp="git push"\n', 'Add gp on other machine')
        other.git.push('origin', 'main')

        assert published.status(fetch=True).behind == 1

        result = published.pull()

        assert not result.up_to_date
        assert result.head == other.head.commit.hexsha
        assert [a.name for a in store.list('alias', 'shared')] == ['ll', 'gp']
        assert published.status().behind == 0

    def test_pull_conflict_aborts_merge(self, published, clone_remote, store):
        other = clone_remote()
        commit_file(other, 'aliases.zsh', 'alias ll="ls -l"\n', 'Change ll remotely')
        other.git.push('origin', 'main')

        store.update('alias', 'll', 'll', 'ls -la --color', 'shared')
        published.commit('Change ll locally')
        head_before = published.log(1)[0].hash

        with pytest.raises(MergeConflictError) as exc_info:
            published.pull()

        assert exc_info.value.paths == ['aliases.zsh']
        assert published.log(1)[0].hash == head_before
        assert published.status().clean
        assert store.get('alias', 'll', 'shared').command == 'ls -la --color'

    def test_push_rejected_when_behind(self, published, clone_remote, store):
        other = clone_remote()
        commit_file(other, 'config.zsh', 'export EDITOR=vim\n', 'Add config remotely')
        other.git.push('origin', 'main')

        store.add('alias', 'gs', 'git status', 'shared')
        published.commit('Add gs')

        with pytest.raises(RejectedError):
            published.push()

    def test_remotes(self, initialized, bare_remote):
        assert initialized.remotes == []
        initialized.add_remote('origin', str(bare_remote))
        assert initialized.remotes == ['origin']

        initialized.remove_remote('origin')
        assert initialized.remotes == []

        with pytest.raises(NoUpstreamError):
            initialized.remove_remote('origin')
