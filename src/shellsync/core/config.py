#!/usr/bin/env python3
"""
Configuration store for ShellSync.

This module is the public entry point for editing the user's zsh setup: it
maps an entity kind and a scope onto the fragment file that holds them and
exposes list/add/update/delete for aliases and functions plus whole-file
access to the free-form config of each scope.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from .codec import Alias, Entity, ShellFunction
from .errors import ReadOnlyScopeError
from .fragments import AliasStore, EntityStore, FunctionStore, RawFragment, SecretsAliasView
from .locks import LockRegistry
from .settings import Settings
from ..utils.logger import get_logger
from ..utils.path import display_path


class ConfigScope(Enum):
    """Where an entity lives."""
    SHARED = "shared"
    LOCAL = "local"
    SECRETS = "secrets"

    @classmethod
    def coerce(cls, value: Union['ConfigScope', str, bool]) -> 'ConfigScope':
        """Accept an enum member, its value, or a ``shared`` flag."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.SHARED if value else cls.LOCAL
        return cls(str(value).lower())

    @property
    def is_shared(self) -> bool:
        return self is ConfigScope.SHARED


class EntityKind(Enum):
    """Kinds of named entities."""
    ALIAS = "alias"
    FUNCTION = "function"

    @classmethod
    def coerce(cls, value: Union['EntityKind', str]) -> 'EntityKind':
        if isinstance(value, cls):
            return value
        return cls(str(value).lower())


WRITABLE_SCOPES = (ConfigScope.SHARED, ConfigScope.LOCAL)

# Labels used by fragment_paths() and the paths command
KIND_LABELS = {
    EntityKind.ALIAS: "aliases",
    EntityKind.FUNCTION: "functions",
}


@dataclass
class ConfigContent:
    """Free-form config blob of one scope."""
    content: str
    scope: ConfigScope

    def to_dict(self) -> Dict[str, Any]:
        return {'content': self.content, 'shared': self.scope.is_shared}


class ConfigStore:
    """Aggregate over all fragment files of both scopes."""

    def __init__(self, settings: Settings, locks: Optional[LockRegistry] = None):
        """
        Initialize the configuration store.

        Args:
            settings: Resolved settings naming the shared and local directories
            locks: Lock registry shared with the git handler (a new one by default)
        """
        self.logger = get_logger(f"{__name__}.ConfigStore")
        self.settings = settings
        self.locks = locks or LockRegistry()

        self._entity_stores: Dict[tuple, EntityStore] = {}
        self._raw: Dict[ConfigScope, RawFragment] = {}

        for scope in WRITABLE_SCOPES:
            shared = scope.is_shared
            self._entity_stores[(EntityKind.ALIAS, scope)] = AliasStore(
                settings.fragment_path('aliases', shared), self.locks, scope.value, shared_root=shared
            )
            self._entity_stores[(EntityKind.FUNCTION, scope)] = FunctionStore(
                settings.fragment_path('functions', shared), self.locks, scope.value, shared_root=shared
            )
            self._raw[scope] = RawFragment(
                settings.fragment_path('config', shared), self.locks, scope.value, shared_root=shared
            )

        self.secrets = SecretsAliasView(settings.secrets_file, self.locks)

    def store(self, kind: Union[EntityKind, str], scope: Union[ConfigScope, str, bool]) -> EntityStore:
        """Get the writable fragment store for a kind and scope."""
        kind = EntityKind.coerce(kind)
        scope = ConfigScope.coerce(scope)
        if scope is ConfigScope.SECRETS:
            raise ReadOnlyScopeError(f"The secrets file is read-only; cannot modify {kind.value}s there")
        return self._entity_stores[(kind, scope)]

    @staticmethod
    def _make_entity(kind: EntityKind, name: str, body: str) -> Entity:
        if kind is EntityKind.ALIAS:
            return Alias(name=name, command=body)
        return ShellFunction(name=name, content=body)

    def list(self, kind: Union[EntityKind, str], scope: Union[ConfigScope, str, bool]) -> List[Entity]:
        """List the entities of a kind in one scope, in file order."""
        kind = EntityKind.coerce(kind)
        scope = ConfigScope.coerce(scope)
        if scope is ConfigScope.SECRETS:
            # The secrets file only contributes aliases
            return list(self.secrets.list()) if kind is EntityKind.ALIAS else []
        return self._entity_stores[(kind, scope)].list()

    def get(self, kind: Union[EntityKind, str], name: str,
            scope: Union[ConfigScope, str, bool]) -> Optional[Entity]:
        for entity in self.list(kind, scope):
            if entity.name == name:
                return entity
        return None

    def add(self, kind: Union[EntityKind, str], name: str, body: str,
            scope: Union[ConfigScope, str, bool]) -> Entity:
        """Add a new alias or function; fails if the name exists in that scope."""
        kind = EntityKind.coerce(kind)
        store = self.store(kind, scope)
        entity = self._make_entity(kind, name, body)
        store.add(entity)
        self.logger.info(f"Added {kind.value} '{name}' ({store.scope})")
        return entity

    def update(self, kind: Union[EntityKind, str], old_name: str, new_name: str, body: str,
               scope: Union[ConfigScope, str, bool]) -> Entity:
        """Replace an entity in place; a different ``new_name`` renames it."""
        kind = EntityKind.coerce(kind)
        store = self.store(kind, scope)
        entity = self._make_entity(kind, new_name or old_name, body)
        store.update(old_name, entity)
        self.logger.info(f"Updated {kind.value} '{old_name}' ({store.scope})")
        return entity

    def delete(self, kind: Union[EntityKind, str], name: str,
               scope: Union[ConfigScope, str, bool]) -> None:
        kind = EntityKind.coerce(kind)
        store = self.store(kind, scope)
        store.delete(name)
        self.logger.info(f"Deleted {kind.value} '{name}' ({store.scope})")

    def list_secrets_aliases(self) -> List[Alias]:
        """Aliases defined in the secrets file (read-only)."""
        return self.secrets.list()

    def _raw_fragment(self, scope: Union[ConfigScope, str, bool]) -> RawFragment:
        scope = ConfigScope.coerce(scope)
        if scope is ConfigScope.SECRETS:
            raise ReadOnlyScopeError("The secrets file has no free-form config")
        return self._raw[scope]

    def get_config(self, scope: Union[ConfigScope, str, bool]) -> ConfigContent:
        fragment = self._raw_fragment(scope)
        return ConfigContent(content=fragment.get_raw(), scope=ConfigScope.coerce(scope))

    def set_config(self, content: str, scope: Union[ConfigScope, str, bool]) -> None:
        fragment = self._raw_fragment(scope)
        fragment.set_raw(content)
        self.logger.info(f"Saved {fragment.scope} config to {display_path(fragment.path)}")

    def reload_shell(self) -> str:
        """
        Explain how to pick up the changes.

        A running shell cannot be reloaded from another process, so this only
        returns the command the user should type.
        """
        return (
            f"Please run 'source {display_path(self.settings.rc_file)}' in your terminal "
            f"to reload the configuration."
        )

    def fragment_paths(self) -> Dict[str, Path]:
        """Map of every file this store reads, keyed by a short label."""
        paths = {}
        for (kind, scope), store in self._entity_stores.items():
            paths[f"{scope.value}.{KIND_LABELS[kind]}"] = store.path
        for scope, fragment in self._raw.items():
            paths[f"{scope.value}.config"] = fragment.path
        paths['secrets.aliases'] = self.secrets.path
        return paths

    @contextmanager
    def snapshot_lock(self, *extra_paths: Path) -> Iterator[None]:
        """Hold every fragment lock at once, for a consistent multi-file read."""
        paths = list(self.fragment_paths().values()) + list(extra_paths)
        with self.locks.hold_all(paths, shared_root=True):
            yield
