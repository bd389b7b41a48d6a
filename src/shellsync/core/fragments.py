#!/usr/bin/env python3
"""
Fragment files for ShellSync.

A fragment is one physical zsh file holding a single kind of entity for a
single scope (for example the shared aliases file). The stores here perform
structural edits on those files: an add, update or delete touches only the
lines of the affected entity and leaves comments, blank lines and unrelated
statements exactly where they were.
"""

import os
import stat
import tempfile
from pathlib import Path
from typing import List, Optional, Type, Union

from .codec import (
    Alias,
    DecodedEntity,
    Entity,
    ShellFunction,
    decode_all,
    encode,
    split_lines,
)
from .errors import DuplicateNameError, NotFoundError, StorageError
from .locks import LockRegistry
from ..utils.logger import get_logger
from ..utils.path import display_path


def atomic_write(path: Union[str, Path], text: str) -> None:
    """
    Replace a file's content atomically.

    The text is written to a temporary file in the same directory, flushed to
    disk and renamed over the target, so readers see either the old or the new
    content and never a truncated file. Symlinked targets are written through.
    """
    path = Path(path)
    if path.is_symlink():
        path = path.resolve()

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        mode = stat.S_IMODE(path.stat().st_mode) if path.exists() else 0o644

        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix='.tmp', dir=path.parent)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8', newline='') as fh:
                fh.write(text)
                fh.flush()
                os.fsync(fh.fileno())
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except OSError as e:
        raise StorageError("write", path, e) from e


def read_text(path: Union[str, Path]) -> str:
    """Read a fragment file; a file that does not exist yet reads as empty."""
    path = Path(path)
    if not path.exists():
        return ""
    try:
        return path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as e:
        raise StorageError("read", path, e) from e


class FragmentFile:
    """Common plumbing for a single lock-protected fragment file."""

    def __init__(self, path: Union[str, Path], locks: LockRegistry,
                 scope: str = "local", shared_root: bool = False):
        self.path = Path(path).expanduser()
        self.locks = locks
        self.scope = scope
        self.shared_root = shared_root
        self.logger = get_logger(f"{__name__}.{type(self).__name__}")

    def _locked(self):
        return self.locks.hold(self.path, shared_root=self.shared_root)

    def read(self) -> str:
        with self._locked():
            return read_text(self.path)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r}, scope={self.scope!r})"


class EntityStore(FragmentFile):
    """Structural CRUD over the entities of one kind stored in one file."""

    entity_type: Type = None
    kind: str = "entity"

    def _decode(self, text: str) -> List[DecodedEntity]:
        return [d for d in decode_all(text) if isinstance(d.entity, self.entity_type)]

    @staticmethod
    def _find(decoded: List[DecodedEntity], name: str) -> Optional[DecodedEntity]:
        for item in decoded:
            if item.entity.name == name:
                return item
        return None

    def list(self) -> List[Entity]:
        """List the entities in file order."""
        with self._locked():
            text = read_text(self.path)
        return [d.entity for d in self._decode(text)]

    def get(self, name: str) -> Optional[Entity]:
        found = self._find(self._decode(self.read()), name)
        return found.entity if found else None

    def add(self, entity: Entity) -> None:
        """Append an entity, separated from existing content by one blank line."""
        block = encode(entity)

        with self._locked():
            text = read_text(self.path)
            if self._find(self._decode(text), entity.name):
                raise DuplicateNameError(self.kind, entity.name, self.scope)

            lines = split_lines(text)
            if lines:
                if not lines[-1].endswith("\n"):
                    lines[-1] += "\n"
                if lines[-1].strip():
                    lines.append("\n")
            lines.append(block)
            atomic_write(self.path, ''.join(lines))

        self.logger.debug(f"Added {self.kind} '{entity.name}' to {display_path(self.path)}")

    def update(self, old_name: str, entity: Entity) -> None:
        """Replace an entity in place, optionally renaming it."""
        block = encode(entity)

        with self._locked():
            text = read_text(self.path)
            decoded = self._decode(text)
            target = self._find(decoded, old_name)
            if target is None:
                raise NotFoundError(self.kind, old_name, self.scope)
            if entity.name != old_name and self._find(decoded, entity.name):
                raise DuplicateNameError(self.kind, entity.name, self.scope)

            lines = split_lines(text)
            lines[target.span.start:target.span.end] = split_lines(block)
            atomic_write(self.path, ''.join(lines))

        if entity.name != old_name:
            self.logger.debug(f"Renamed {self.kind} '{old_name}' to '{entity.name}' in {display_path(self.path)}")
        else:
            self.logger.debug(f"Updated {self.kind} '{old_name}' in {display_path(self.path)}")

    def delete(self, name: str) -> None:
        """Remove an entity together with one adjacent blank line."""
        with self._locked():
            text = read_text(self.path)
            target = self._find(self._decode(text), name)
            if target is None:
                raise NotFoundError(self.kind, name, self.scope)

            lines = split_lines(text)
            start = target.span.start
            del lines[start:target.span.end]

            if start > 0 and not lines[start - 1].strip():
                del lines[start - 1]
            elif start < len(lines) and not lines[start].strip():
                del lines[start]

            atomic_write(self.path, ''.join(lines))

        self.logger.debug(f"Deleted {self.kind} '{name}' from {display_path(self.path)}")


class AliasStore(EntityStore):
    entity_type = Alias
    kind = "alias"


class FunctionStore(EntityStore):
    entity_type = ShellFunction
    kind = "function"


class RawFragment(FragmentFile):
    """Free-form zsh config file with whole-file get/set."""

    def get_raw(self) -> str:
        return self.read()

    def set_raw(self, text: str) -> None:
        with self._locked():
            atomic_write(self.path, text)
        self.logger.debug(f"Wrote {len(text)} characters to {display_path(self.path)}")


class SecretsAliasView:
    """
    Read-only view of the aliases defined in the secrets file.

    The secrets file is maintained by hand outside ShellSync, so this view only
    lists what is there and offers no way to change it.
    """

    kind = "alias"
    scope = "secrets"

    def __init__(self, path: Union[str, Path], locks: LockRegistry):
        self.path = Path(path).expanduser()
        self.locks = locks

    def list(self) -> List[Alias]:
        with self.locks.hold(self.path):
            text = read_text(self.path)
        return [d.entity for d in decode_all(text) if isinstance(d.entity, Alias)]
