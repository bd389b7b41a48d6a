#!/usr/bin/env python3
"""
Shared fixtures for ShellSync tests.
"""

import pytest
from pathlib import Path

from git import Repo

from shellsync.core.config import ConfigStore
from shellsync.core.git_handler import GitHandler
from shellsync.core.locks import LockRegistry
from shellsync.core.plugins import PluginRegistry
from shellsync.core.settings import Settings


@pytest.fixture(autouse=True)
def git_identity(monkeypatch, tmp_path):
    """Give git a committer identity and keep it away from the user's config."""
    monkeypatch.setenv('GIT_AUTHOR_NAME', 'ShellSync Tests')
    monkeypatch.setenv('GIT_AUTHOR_EMAIL', 'tests@shellsync.invalid')
    monkeypatch.setenv('GIT_COMMITTER_NAME', 'ShellSync Tests')
    monkeypatch.setenv('GIT_COMMITTER_EMAIL', 'tests@shellsync.invalid')
    monkeypatch.setenv('GIT_CONFIG_NOSYSTEM', '1')
    monkeypatch.setenv('GIT_CONFIG_GLOBAL', str(tmp_path / 'gitconfig'))
    monkeypatch.setenv('HOME', str(tmp_path / 'home'))
    monkeypatch.delenv('SHELLSYNC_CONFIG', raising=False)


@pytest.fixture
def home(tmp_path):
    """A fake home directory."""
    path = tmp_path / 'home'
    path.mkdir(exist_ok=True)
    return path


@pytest.fixture
def settings(home):
    """Default settings rooted at the fake home."""
    return Settings.defaults(home=home)


@pytest.fixture
def locks():
    return LockRegistry()


@pytest.fixture
def store(settings, locks):
    """A ConfigStore over empty fragment files."""
    return ConfigStore(settings, locks)


@pytest.fixture
def plugin_registry(settings, locks):
    return PluginRegistry(settings.plugin_file, locks)


@pytest.fixture
def git_handler(settings, locks):
    return GitHandler(settings.shared_dir, locks, default_branch=settings.default_branch)


@pytest.fixture
def bare_remote(tmp_path):
    """An empty bare repository acting as the remote."""
    path = tmp_path / 'remote.git'
    repo = Repo.init(path, bare=True)
    repo.git.symbolic_ref('HEAD', 'refs/heads/main')
    return path


@pytest.fixture
def clone_remote(bare_remote, tmp_path):
    """Clone the remote into a second working tree, as another machine would."""

    def clone(name: str = 'other') -> Repo:
        return Repo.clone_from(str(bare_remote), str(tmp_path / name))

    return clone
