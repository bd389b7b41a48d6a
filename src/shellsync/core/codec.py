#!/usr/bin/env python3
"""
Shell script codec for ShellSync entities.

This module converts aliases and functions to and from their zsh source form
and locates them inside an existing file, reporting the exact line span each
one occupies so that callers can rewrite a single entity without touching
anything else in the file.
"""

import re
import shlex
import textwrap
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union

from .errors import InvalidEntityError, InvalidIdentifierError


# Characters that can never appear in an alias or function name we write.
_FORBIDDEN_NAME_CHARS = set(" \t\r\n='\"`$\\;&|<>(){}#")

_ALIAS_LINE = re.compile(r"^\s*alias\s+(?P<name>[^\s=\-][^\s=]*)=(?P<value>.*?)\s*$")

_FUNC_NAME = r"[^\s=(){}'\"`$\\;&|<>#]+"
_FUNC_HEADER = re.compile(
    r"^\s*(?:function\s+(?P<kw_name>" + _FUNC_NAME + r")\s*(?:\(\s*\))?"
    r"|(?P<name>" + _FUNC_NAME + r")\s*\(\s*\))"
    r"\s*\{\s*(?:#.*)?$"
)

INDENT = "  "


@dataclass
class Alias:
    """A shell alias: ``alias name="command"``."""
    name: str
    command: str

    kind = "alias"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ShellFunction:
    """A shell function. ``content`` is kept in canonical (dedented) form."""
    name: str
    content: str

    kind = "function"

    def __post_init__(self):
        self.content = normalize_body(self.content)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


Entity = Union[Alias, ShellFunction]


@dataclass(frozen=True)
class Span:
    """Half-open range of line indices ``[start, end)`` within a file."""
    start: int
    end: int


class DecodedEntity(NamedTuple):
    entity: Entity
    span: Span


def is_valid_name(name: str) -> bool:
    """Check whether a name can be used for an alias or function."""
    if not name or name.startswith('-'):
        return False
    return not any(ch in _FORBIDDEN_NAME_CHARS for ch in name)


def validate_name(name: str) -> str:
    """Return the name unchanged or raise InvalidIdentifierError."""
    if is_valid_name(name):
        return name
    if not name:
        raise InvalidIdentifierError(name, "name must not be empty")
    if name.startswith('-'):
        raise InvalidIdentifierError(name, "name must not start with '-'")
    bad = sorted({ch for ch in name if ch in _FORBIDDEN_NAME_CHARS})
    shown = ' '.join(repr(ch) for ch in bad)
    raise InvalidIdentifierError(name, f"contains forbidden characters {shown}")


def normalize_body(content: str) -> str:
    """Canonical function body: dedented, no trailing spaces, no outer blank lines."""
    text = "\n".join(line.rstrip() for line in content.splitlines())
    return textwrap.dedent(text).strip("\n")


def split_lines(text: str) -> List[str]:
    """Split text on newlines, keeping the terminators."""
    if not text:
        return []
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def encode_alias(alias: Alias) -> str:
    validate_name(alias.name)
    command = alias.command
    if '\n' in command or '\r' in command:
        raise InvalidEntityError(f"Alias '{alias.name}' command must be a single line")

    if '"' not in command and '\\' not in command:
        return f'alias {alias.name}="{command}"\n'

    quoted = command.replace("'", "'\\''")
    return f"alias {alias.name}='{quoted}'\n"


def encode_function(func: ShellFunction) -> str:
    validate_name(func.name)
    body = normalize_body(func.content)

    state = _scan_braces(body, 0)
    if state.depth != 0 or state.underflow or state.quote:
        raise InvalidEntityError(
            f"Function '{func.name}' body has unbalanced braces or quotes"
        )

    lines = [f"function {func.name}() {{\n"]
    if body:
        for line in body.split("\n"):
            lines.append(f"{INDENT}{line}\n" if line else "\n")
    lines.append("}\n")
    return ''.join(lines)


def encode(entity: Entity) -> str:
    """Encode an alias or function into its shell source block."""
    if isinstance(entity, Alias):
        return encode_alias(entity)
    if isinstance(entity, ShellFunction):
        return encode_function(entity)
    raise TypeError(f"Cannot encode {type(entity).__name__}")


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def parse_alias_line(line: str) -> Optional[Alias]:
    """Parse a single ``alias name=value`` line, or return None."""
    match = _ALIAS_LINE.match(line.rstrip("\r\n"))
    if not match:
        return None

    value = match.group('value')
    if not value.strip():
        return Alias(name=match.group('name'), command="")

    try:
        lexer = shlex.shlex(value, posix=True)
        lexer.whitespace_split = True
        lexer.commenters = '#'
        words = list(lexer)
    except ValueError:
        return None

    if len(words) != 1:
        return None
    return Alias(name=match.group('name'), command=words[0])


class _ScanState:
    __slots__ = ('depth', 'quote', 'underflow', 'close_at')

    def __init__(self, depth: int):
        self.depth = depth
        self.quote: Optional[str] = None
        self.underflow = False
        self.close_at: Optional[int] = None


def _scan_braces(text: str, depth: int, stop_at_zero: bool = False) -> _ScanState:
    """Track brace depth through shell text, ignoring quoted and commented braces."""
    state = _ScanState(depth)
    escaped = False
    in_comment = False
    prev = "\n"

    for index, ch in enumerate(text):
        if in_comment:
            if ch == "\n":
                in_comment = False
            prev = ch
            continue
        if escaped:
            escaped = False
            prev = ch
            continue

        if state.quote == "'":
            if ch == "'":
                state.quote = None
        elif state.quote == '"':
            if ch == '\\':
                escaped = True
            elif ch == '"':
                state.quote = None
        else:
            if ch == '\\':
                escaped = True
            elif ch in ("'", '"'):
                state.quote = ch
            elif ch == '#' and (prev.isspace() or prev == ';'):
                in_comment = True
            elif ch == '{':
                state.depth += 1
            elif ch == '}':
                state.depth -= 1
                if state.depth < 0:
                    state.underflow = True
                if stop_at_zero and state.depth == 0:
                    state.close_at = index
                    return state
        prev = ch

    return state


def _parse_function_at(lines: List[str], start: int) -> Optional[Tuple[ShellFunction, Span]]:
    header = lines[start].rstrip("\r\n")
    match = _FUNC_HEADER.match(header)
    if not match:
        return None

    name = match.group('kw_name') or match.group('name')
    rest = ''.join(lines[start + 1:])
    state = _scan_braces(rest, 1, stop_at_zero=True)
    if state.close_at is None:
        return None

    # Map the character offset of the closing brace back to a line index.
    consumed = 0
    close_line = start + 1
    for offset, line in enumerate(lines[start + 1:]):
        if consumed + len(line) > state.close_at:
            close_line = start + 1 + offset
            break
        consumed += len(line)
    column = state.close_at - consumed

    body_lines = [line.rstrip("\r\n") for line in lines[start + 1:close_line]]
    tail = lines[close_line][:column]
    if tail.strip():
        body_lines.append(tail.rstrip())

    func = ShellFunction(name=name, content="\n".join(body_lines))
    return func, Span(start, close_line + 1)


def decode_all(text: str) -> List[DecodedEntity]:
    """
    Locate every alias and function definition in a file.

    Returns the entities in file order together with their line spans. Lines
    that are neither are skipped; aliases defined inside a function body are
    part of that function and are not reported separately.
    """
    lines = split_lines(text)
    found: List[DecodedEntity] = []
    index = 0

    while index < len(lines):
        parsed = _parse_function_at(lines, index)
        if parsed:
            func, span = parsed
            found.append(DecodedEntity(func, span))
            index = span.end
            continue

        alias = parse_alias_line(lines[index])
        if alias:
            found.append(DecodedEntity(alias, Span(index, index + 1)))
        index += 1

    return found
