#!/usr/bin/env python3
"""
Tests for the shell entity codec.
"""

import pytest

from shellsync.core.codec import (
    Alias,
    ShellFunction,
    Span,
    decode_all,
    encode,
    is_valid_name,
    normalize_body,
    parse_alias_line,
    validate_name,
)
from shellsync.core.errors import InvalidEntityError, InvalidIdentifierError


def decoded_entities(text):
    return [d.entity for d in decode_all(text)]


class TestNames:
    """Test identifier validation."""

    @pytest.mark.parametrize('name', ['ll', 'g', 'git-log', 'docker.ps', 'k8s_ctx', '..', 'ä'])
    def test_valid_names(self, name):
        assert is_valid_name(name)
        assert validate_name(name) == name

    @pytest.mark.parametrize('name', ['', '-x', 'has space', 'a=b', 'semi;colon', 'pipe|d',
                                      'dollar$', 'paren(', 'quote"', "tick'", 'hash#', 'back`tick'])
    def test_invalid_names(self, name):
        assert not is_valid_name(name)
        with pytest.raises(InvalidIdentifierError):
            validate_name(name)


class TestAliasCodec:
    """Test alias encoding and decoding."""

    def test_encode_plain_alias(self):
        assert encode(Alias('ll', 'ls -lah')) == 'alias ll="ls -lah"\n'

    def test_encode_alias_with_double_quote_uses_single_quotes(self):
        assert encode(Alias('say', 'echo "hi"')) == "alias say='echo \"hi\"'\n"

    def test_encode_alias_rejects_newline(self):
        with pytest.raises(InvalidEntityError):
            encode(Alias('bad', 'ls\nrm'))

    def test_encode_alias_rejects_invalid_name(self):
        with pytest.raises(InvalidIdentifierError):
            encode(Alias('bad name', 'ls'))

    @pytest.mark.parametrize('command', [
        'ls -lah',
        'echo "hello world"',
        "echo it's fine",
        'git log --oneline | head -n "$1"',
        "printf '%s\\n' x",
        'cd ~ && echo $HOME # not a comment',
        '',
    ])
    def test_round_trip(self, command):
        alias = Alias('a', command)
        assert decoded_entities(encode(alias)) == [alias]

    def test_parse_hand_written_forms(self):
        assert parse_alias_line("alias gs='git status'") == Alias('gs', 'git status')
        assert parse_alias_line('  alias gp="git push"  ') == Alias('gp', 'git push')
        assert parse_alias_line('alias l=ls') == Alias('l', 'ls')
        assert parse_alias_line("alias gs='git status'  # short") == Alias('gs', 'git status')

    def test_parse_ignores_non_alias_lines(self):
        assert parse_alias_line('# alias ll="ls"') is None
        assert parse_alias_line('export PATH="$HOME/bin:$PATH"') is None
        assert parse_alias_line('alias -g G="| grep"') is None
        assert parse_alias_line('alias two="a" "b"') is None


class TestFunctionCodec:
    """Test function encoding and decoding."""

    def test_encode_function(self):
        func = ShellFunction('mkcd', 'mkdir -p "$1"\ncd "$1"')
        assert encode(func) == 'function mkcd() {\n  mkdir -p "$1"\n  cd "$1"\n}\n'

    def test_content_is_normalized(self):
        func = ShellFunction('f', '\n    echo a   \n\n      echo b\n\n')
        assert func.content == 'echo a\n\n  echo b'
        assert normalize_body(func.content) == func.content

    def test_encode_keeps_blank_lines_unindented(self):
        func = ShellFunction('f', 'echo a\n\necho b')
        assert encode(func) == 'function f() {\n  echo a\n\n  echo b\n}\n'

    def test_encode_rejects_unbalanced_braces(self):
        with pytest.raises(InvalidEntityError):
            encode(ShellFunction('f', 'if true; then { echo; fi'))

    def test_encode_rejects_unterminated_quote(self):
        with pytest.raises(InvalidEntityError):
            encode(ShellFunction('f', 'echo "oops'))

    @pytest.mark.parametrize('content', [
        'echo hi',
        '',
        'if [ -n "$1" ]; then\n  echo "{"\nfi',
        'for f in *; do\n  { echo "$f"; } >> list\ndone',
        "echo '}' # closing brace in quotes",
        'local x=${1:-default}\necho "${x}"',
        'alias inner="ls"\necho done',
    ])
    def test_round_trip(self, content):
        func = ShellFunction('fn', content)
        assert decoded_entities(encode(func)) == [func]

    def test_decode_header_forms(self):
        text = (
            'greet() {\n'
            '    echo hello\n'
            '}\n'
            'function bye {\n'
            '  echo bye\n'
            '}\n'
            'function both() { # comment\n'
            '  echo both\n'
            '}\n'
        )
        assert decoded_entities(text) == [
            ShellFunction('greet', 'echo hello'),
            ShellFunction('bye', 'echo bye'),
            ShellFunction('both', 'echo both'),
        ]

    def test_unterminated_function_is_ignored(self):
        text = 'function broken() {\n  echo never closed\nalias ll="ls"\n'
        assert decoded_entities(text) == [Alias('ll', 'ls')]


class TestDecodeAll:
    """Test locating entities inside whole files."""

    def test_spans_and_order(self):
        text = (
            '# my aliases\n'
            'alias ll="ls -lah"\n'
            '\n'
            'function mkcd() {\n'
            '  mkdir -p "$1" && cd "$1"\n'
            '}\n'
            'export EDITOR=vim\n'
            'alias gs="git status"\n'
        )
        decoded = decode_all(text)

        assert [d.entity.name for d in decoded] == ['ll', 'mkcd', 'gs']
        assert [d.span for d in decoded] == [Span(1, 2), Span(3, 6), Span(7, 8)]

    def test_aliases_inside_functions_belong_to_the_function(self):
        text = 'function setup() {\n  alias tmp="ls"\n}\n'
        decoded = decoded_entities(text)
        assert decoded == [ShellFunction('setup', 'alias tmp="ls"')]

    def test_replacing_one_span_leaves_the_rest_untouched(self):
        text = (
            '# header\n'
            'alias a="1"\n'
            '\n'
            'alias b="2"\n'
            '# trailer\n'
        )
        lines = text.splitlines(keepends=True)
        target = decode_all(text)[1]
        lines[target.span.start:target.span.end] = [encode(Alias('b', 'changed'))]
        new_text = ''.join(lines)

        assert new_text == '# header\nalias a="1"\n\nalias b="changed"\n# trailer\n'
        assert decoded_entities(new_text) == [Alias('a', '1'), Alias('b', 'changed')]

    def test_empty_text(self):
        assert decode_all('') == []
