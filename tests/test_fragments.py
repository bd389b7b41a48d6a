#!/usr/bin/env python3
"""
Tests for fragment files and structural entity stores.
"""

import os
import stat
import threading
import pytest
from unittest.mock import patch

from shellsync.core.codec import Alias, ShellFunction
from shellsync.core.errors import DuplicateNameError, NotFoundError, StorageError
from shellsync.core.fragments import (
    AliasStore,
    FunctionStore,
    RawFragment,
    SecretsAliasView,
    atomic_write,
    read_text,
)
from shellsync.core.locks import LockRegistry


@pytest.fixture
def alias_file(tmp_path):
    return tmp_path / 'zsh' / 'aliases.zsh'


@pytest.fixture
def alias_store(alias_file):
    return AliasStore(alias_file, LockRegistry(), scope='shared')


@pytest.fixture
def function_store(tmp_path):
    return FunctionStore(tmp_path / 'zsh' / 'functions.zsh', LockRegistry(), scope='local')


class TestAtomicWrite:
    """Test atomic file replacement."""

    def test_creates_parent_directories(self, tmp_path):
        target = tmp_path / 'a' / 'b' / 'file.zsh'
        atomic_write(target, 'content\n')
        assert target.read_text() == 'content\n'

    def test_replaces_existing_content(self, tmp_path):
        target = tmp_path / 'file.zsh'
        target.write_text('old\n')
        atomic_write(target, 'new\n')
        assert target.read_text() == 'new\n'
        assert [p.name for p in tmp_path.iterdir()] == ['file.zsh']

    def test_preserves_file_mode(self, tmp_path):
        target = tmp_path / 'file.zsh'
        target.write_text('old\n')
        os.chmod(target, 0o600)
        atomic_write(target, 'new\n')
        assert stat.S_IMODE(target.stat().st_mode) == 0o600

    def test_writes_through_symlinks(self, tmp_path):
        real = tmp_path / 'real.zsh'
        real.write_text('old\n')
        link = tmp_path / 'link.zsh'
        link.symlink_to(real)

        atomic_write(link, 'new\n')

        assert link.is_symlink()
        assert real.read_text() == 'new\n'

    def test_failed_replace_leaves_original(self, tmp_path):
        target = tmp_path / 'file.zsh'
        target.write_text('original\n')

        with patch('shellsync.core.fragments.os.replace', side_effect=OSError('disk full')):
            with pytest.raises(StorageError) as exc_info:
                atomic_write(target, 'new\n')

        assert exc_info.value.operation == 'write'
        assert target.read_text() == 'original\n'
        assert [p.name for p in tmp_path.iterdir()] == ['file.zsh']

    def test_read_missing_file_is_empty(self, tmp_path):
        assert read_text(tmp_path / 'missing.zsh') == ''


class TestAliasStore:
    """Test structural alias edits."""

    def test_list_missing_file(self, alias_store):
        assert alias_store.list() == []

    def test_add_to_empty_file(self, alias_store, alias_file):
        alias_store.add(Alias('ll', 'ls -lah'))
        assert alias_file.read_text() == 'alias ll="ls -lah"\n'
        assert alias_store.list() == [Alias('ll', 'ls -lah')]

    def test_add_separates_with_one_blank_line(self, alias_store, alias_file):
        alias_file.parent.mkdir(parents=True)
        alias_file.write_text('# my aliases\nalias gs="git status"\n')

        alias_store.add(Alias('ll', 'ls -lah'))

        assert alias_file.read_text() == '# my aliases\nalias gs="git status"\n\nalias ll="ls -lah"\n'

    def test_add_to_file_without_trailing_newline(self, alias_store, alias_file):
        alias_file.parent.mkdir(parents=True)
        alias_file.write_text('export X=1')

        alias_store.add(Alias('ll', 'ls'))

        assert alias_file.read_text() == 'export X=1\n\nalias ll="ls"\n'

    def test_add_reuses_trailing_blank_line(self, alias_store, alias_file):
        alias_file.parent.mkdir(parents=True)
        alias_file.write_text('alias a="1"\n\n')

        alias_store.add(Alias('b', '2'))

        assert alias_file.read_text() == 'alias a="1"\n\nalias b="2"\n'

    def test_add_keeps_order_and_other_entities(self, alias_store, alias_file):
        alias_file.parent.mkdir(parents=True)
        alias_file.write_text('alias a="1"\n# comment\nalias b="2"\n')

        alias_store.add(Alias('c', '3'))

        assert alias_store.list() == [Alias('a', '1'), Alias('b', '2'), Alias('c', '3')]
        assert alias_file.read_text().startswith('alias a="1"\n# comment\nalias b="2"\n')

    def test_add_duplicate_leaves_file_unchanged(self, alias_store, alias_file):
        alias_store.add(Alias('ll', 'ls -lah'))
        before = alias_file.read_bytes()

        with pytest.raises(DuplicateNameError):
            alias_store.add(Alias('ll', 'ls -l'))

        assert alias_file.read_bytes() == before
        assert [a.name for a in alias_store.list()] == ['ll']

    def test_update_in_place(self, alias_store, alias_file):
        alias_file.parent.mkdir(parents=True)
        alias_file.write_text('alias a="1"\n\nalias b="2"\n# keep me\nalias c="3"\n')

        alias_store.update('b', Alias('b', 'two'))

        assert alias_file.read_text() == 'alias a="1"\n\nalias b="two"\n# keep me\nalias c="3"\n'
        assert [a.name for a in alias_store.list()] == ['a', 'b', 'c']

    def test_update_rename(self, alias_store, alias_file):
        alias_file.parent.mkdir(parents=True)
        alias_file.write_text('alias a="1"\nalias b="2"\n')

        alias_store.update('a', Alias('z', '26'))

        assert alias_store.list() == [Alias('z', '26'), Alias('b', '2')]

    def test_update_rename_onto_existing_name_fails(self, alias_store, alias_file):
        alias_file.parent.mkdir(parents=True)
        alias_file.write_text('alias a="1"\nalias b="2"\n')

        with pytest.raises(DuplicateNameError):
            alias_store.update('a', Alias('b', 'x'))

        assert alias_file.read_text() == 'alias a="1"\nalias b="2"\n'

    def test_update_missing_fails(self, alias_store):
        with pytest.raises(NotFoundError):
            alias_store.update('nope', Alias('nope', 'x'))

    def test_delete_missing_fails(self, alias_store):
        with pytest.raises(NotFoundError):
            alias_store.delete('nope')

    def test_delete_removes_preceding_blank_line(self, alias_store, alias_file):
        alias_file.parent.mkdir(parents=True)
        alias_file.write_text('alias a="1"\n\nalias b="2"\n\nalias c="3"\n')

        alias_store.delete('b')

        assert alias_file.read_text() == 'alias a="1"\n\nalias c="3"\n'

    def test_delete_removes_following_blank_line_at_start(self, alias_store, alias_file):
        alias_file.parent.mkdir(parents=True)
        alias_file.write_text('alias a="1"\n\nalias b="2"\n')

        alias_store.delete('a')

        assert alias_file.read_text() == 'alias b="2"\n'

    @pytest.mark.parametrize('original', [
        '',
        '# header\n',
        'alias a="1"\n# trailing comment\n',
    ])
    def test_add_then_delete_is_byte_identical(self, alias_store, alias_file, original):
        alias_file.parent.mkdir(parents=True)
        alias_file.write_text(original)

        alias_store.add(Alias('ll', 'ls -lah'))
        alias_store.delete('ll')

        assert alias_file.read_text() == original

    def test_delete_then_add_is_byte_identical(self, alias_store, alias_file):
        alias_file.parent.mkdir(parents=True)
        original = '# aliases\nalias a="1"\n\nalias ll="ls -lah"\n'
        alias_file.write_text(original)

        for _ in range(3):
            alias_store.delete('ll')
            alias_store.add(Alias('ll', 'ls -lah'))

        assert alias_file.read_text() == original

    def test_ignores_functions_in_same_file(self, alias_store, alias_file):
        alias_file.parent.mkdir(parents=True)
        alias_file.write_text('function f() {\n  alias inner="x"\n}\nalias a="1"\n')

        assert alias_store.list() == [Alias('a', '1')]

    def test_concurrent_adds_are_serialized(self, alias_store):
        names = [f'a{i}' for i in range(20)]
        threads = [threading.Thread(target=alias_store.add, args=(Alias(n, 'x'),)) for n in names]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(a.name for a in alias_store.list()) == sorted(names)


class TestFunctionStore:
    """Test structural function edits."""

    def test_add_and_list(self, function_store):
        function_store.add(ShellFunction('mkcd', 'mkdir -p "$1"\ncd "$1"'))
        function_store.add(ShellFunction('hello', 'echo hello'))

        assert [f.name for f in function_store.list()] == ['mkcd', 'hello']
        assert function_store.get('mkcd').content == 'mkdir -p "$1"\ncd "$1"'
        assert function_store.get('missing') is None

    def test_update_preserves_neighbors(self, function_store):
        function_store.add(ShellFunction('one', 'echo 1'))
        function_store.add(ShellFunction('two', 'echo 2'))
        function_store.add(ShellFunction('three', 'echo 3'))

        function_store.update('two', ShellFunction('two', 'echo two\necho 2'))

        assert function_store.list() == [
            ShellFunction('one', 'echo 1'),
            ShellFunction('two', 'echo two\necho 2'),
            ShellFunction('three', 'echo 3'),
        ]

    def test_delete_middle_function(self, function_store):
        function_store.add(ShellFunction('one', 'echo 1'))
        function_store.add(ShellFunction('two', 'echo 2'))
        function_store.add(ShellFunction('three', 'echo 3'))

        function_store.delete('two')

        assert function_store.path.read_text() == (
            'function one() {\n  echo 1\n}\n\nfunction three() {\n  echo 3\n}\n'
        )

    def test_duplicate_error_names_scope(self, function_store):
        function_store.add(ShellFunction('f', 'echo'))
        with pytest.raises(DuplicateNameError) as exc_info:
            function_store.add(ShellFunction('f', 'echo again'))
        assert exc_info.value.scope == 'local'
        assert "already exists in local scope" in str(exc_info.value)


class TestRawFragment:
    """Test whole-file config access."""

    def test_get_and_set(self, tmp_path):
        fragment = RawFragment(tmp_path / 'config.zsh', LockRegistry())
        assert fragment.get_raw() == ''

        fragment.set_raw('export EDITOR=vim\n')

        assert fragment.get_raw() == 'export EDITOR=vim\n'


class TestSecretsAliasView:
    """Test the read-only secrets view."""

    def test_lists_aliases_only(self, tmp_path):
        secrets = tmp_path / '.zshrc.secrets'
        secrets.write_text('export TOKEN=abc\nalias deploy="ssh prod"\nfunction f() {\n  echo\n}\n')

        view = SecretsAliasView(secrets, LockRegistry())

        assert view.list() == [Alias('deploy', 'ssh prod')]
        assert not hasattr(view, 'add')
