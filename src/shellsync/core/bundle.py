#!/usr/bin/env python3
"""
Import and export of ShellSync bundles.

A bundle is a portable snapshot of every alias and function in both scopes,
the free-form config of each scope and the enabled plugins. Importing a
bundle reconciles it with the current store one named entity at a time,
following a merge strategy. The ``ask`` strategy is a two-step protocol:
``begin_import`` reports the colliding names, ``apply`` writes everything
that does not collide and ``resolve`` applies the caller's decisions.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import toml
import yaml

from .codec import Alias, Entity, ShellFunction
from .config import ConfigScope, ConfigStore, EntityKind, WRITABLE_SCOPES
from .errors import BundleFormatError, NotFoundError, ShellSyncError, StorageError
from .fragments import atomic_write, read_text
from .plugins import PluginRegistry
from ..utils.logger import get_logger
from ..utils.path import display_path

SCHEMA_VERSION = "1.0"

_YAML_SUFFIXES = ('.yaml', '.yml')
_TOML_SUFFIXES = ('.toml',)


class MergeStrategy(Enum):
    """How an incoming entity that collides with an existing one is handled."""
    OVERWRITE = "overwrite"
    KEEP = "keep"
    ASK = "ask"

    @classmethod
    def coerce(cls, value: Union['MergeStrategy', str]) -> 'MergeStrategy':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown merge strategy '{value}'")


class ImportStatus(Enum):
    """Overall outcome of an import step."""
    SUCCESS = "success"
    CONFLICT = "conflict"
    ERROR = "error"
    NO_CHANGES = "no_changes"
    PARTIAL = "partial"


@dataclass
class ExportData:
    """Snapshot of the whole configuration."""
    aliases: List[Dict[str, Any]] = field(default_factory=list)
    functions: List[Dict[str, Any]] = field(default_factory=list)
    config: Dict[str, Any] = field(default_factory=dict)
    version: str = SCHEMA_VERSION
    exported_at: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            'version': self.version,
            'exported_at': self.exported_at,
            'aliases': list(self.aliases),
            'functions': list(self.functions),
            'config': dict(self.config),
        }

    @classmethod
    def from_dict(cls, data: Any) -> 'ExportData':
        """Validate the bundle layout. Individual entries are checked on import."""
        if not isinstance(data, dict):
            raise BundleFormatError("Bundle must be a mapping at the top level")

        version = str(data.get('version', SCHEMA_VERSION))
        if version != SCHEMA_VERSION:
            raise BundleFormatError(f"Unsupported bundle version '{version}' (expected {SCHEMA_VERSION})")

        aliases = data.get('aliases') or []
        functions = data.get('functions') or []
        config = data.get('config') or {}
        if not isinstance(aliases, list) or not isinstance(functions, list):
            raise BundleFormatError("Bundle 'aliases' and 'functions' must be lists")
        if not isinstance(config, dict):
            raise BundleFormatError("Bundle 'config' must be a mapping")

        return cls(
            aliases=aliases,
            functions=functions,
            config=config,
            version=version,
            exported_at=str(data.get('exported_at', '')),
        )


@dataclass
class BundleEntity:
    """One alias or function taken from a bundle."""
    kind: EntityKind
    scope: ConfigScope
    entity: Entity

    @property
    def name(self) -> str:
        return self.entity.name

    @property
    def key(self) -> str:
        return f"{self.kind.value}:{self.scope.value}:{self.name}"


@dataclass
class ImportConflict:
    """An incoming entity whose name exists in the same scope with a different body."""
    kind: EntityKind
    scope: ConfigScope
    existing: Entity
    incoming: Entity

    @property
    def name(self) -> str:
        return self.incoming.name

    @property
    def key(self) -> str:
        return f"{self.kind.value}:{self.scope.value}:{self.name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'key': self.key,
            'kind': self.kind.value,
            'scope': self.scope.value,
            'name': self.name,
            'existing': self.existing.to_dict(),
            'incoming': self.incoming.to_dict(),
        }


class ImportResult:
    """Result of an import step."""

    def __init__(self):
        self.status = ImportStatus.SUCCESS
        self.message = ""
        self.added: List[str] = []
        self.updated: List[str] = []
        self.unchanged: List[str] = []
        self.skipped: List[str] = []
        self.conflicts: List[ImportConflict] = []
        self.errors: List[str] = []
        self.config_written: List[str] = []
        self.plugins_enabled: List[str] = []

    def add_error(self, key: str, error: str):
        """Add an error to the result."""
        self.errors.append(f"{key}: {error}")

    def add_conflict(self, conflict: ImportConflict):
        """Add an unresolved conflict to the result."""
        self.conflicts.append(conflict)

    @property
    def applied(self) -> int:
        return len(self.added) + len(self.updated) + len(self.config_written) + len(self.plugins_enabled)

    def finalize(self):
        """Finalize the result and determine overall status."""
        if self.errors:
            self.status = ImportStatus.PARTIAL if self.applied else ImportStatus.ERROR
        elif self.conflicts:
            self.status = ImportStatus.CONFLICT
        elif self.applied == 0:
            self.status = ImportStatus.NO_CHANGES
        else:
            self.status = ImportStatus.SUCCESS

        parts = [f"{len(self.added)} added", f"{len(self.updated)} updated",
                 f"{len(self.unchanged)} unchanged", f"{len(self.skipped)} kept"]
        if self.conflicts:
            parts.append(f"{len(self.conflicts)} awaiting a decision")
        if self.errors:
            parts.append(f"{len(self.errors)} failed")
        self.message = ", ".join(parts)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status.value,
            'message': self.message,
            'added': self.added,
            'updated': self.updated,
            'unchanged': self.unchanged,
            'skipped': self.skipped,
            'conflicts': [c.to_dict() for c in self.conflicts],
            'errors': self.errors,
            'config_written': self.config_written,
            'plugins_enabled': self.plugins_enabled,
        }


class ImportSession:
    """
    A bundle import split into planning and applying.

    Creating the session only reads the store. ``conflicts`` lists the
    colliding entities; ``apply`` writes the rest and, for ``overwrite`` and
    ``keep``, settles the collisions too. Under ``ask`` the collisions stay
    pending until ``resolve`` receives a decision for them.
    """

    def __init__(self, manager: 'BundleManager', bundle: ExportData,
                 strategy: MergeStrategy, include_config: bool = False):
        self.logger = get_logger(f"{__name__}.ImportSession")
        self.manager = manager
        self.bundle = bundle
        self.strategy = strategy
        self.include_config = include_config

        self._new: List[BundleEntity] = []
        self._unchanged: List[BundleEntity] = []
        self._invalid: List[Tuple[str, str]] = []
        self._pending: List[ImportConflict] = []
        self._applied = False

        self._plan()

    @property
    def conflicts(self) -> List[ImportConflict]:
        """Collisions that have not been settled yet."""
        return list(self._pending)

    def _plan(self):
        incoming, self._invalid = self.manager.collect_entities(self.bundle)
        store = self.manager.config_store

        with store.snapshot_lock():
            existing: Dict[Tuple[EntityKind, ConfigScope], Dict[str, Entity]] = {}
            for kind in EntityKind:
                for scope in WRITABLE_SCOPES:
                    existing[(kind, scope)] = {e.name: e for e in store.list(kind, scope)}

        seen = set()
        for item in incoming:
            if item.key in seen:
                self._invalid.append((item.key, "duplicate entry in bundle"))
                continue
            seen.add(item.key)

            current = existing[(item.kind, item.scope)].get(item.name)
            if current is None:
                self._new.append(item)
            elif current == item.entity:
                self._unchanged.append(item)
            else:
                self._pending.append(ImportConflict(item.kind, item.scope, current, item.entity))

        self.logger.debug(
            f"Import plan: {len(self._new)} new, {len(self._unchanged)} unchanged, "
            f"{len(self._pending)} conflicting, {len(self._invalid)} invalid"
        )

    def _write_new(self, item: BundleEntity, result: ImportResult):
        try:
            self.manager.config_store.store(item.kind, item.scope).add(item.entity)
            result.added.append(item.key)
        except ShellSyncError as e:
            self.logger.warning(f"Skipping {item.key}: {e}")
            result.add_error(item.key, str(e))

    def _overwrite(self, conflict: ImportConflict, result: ImportResult):
        store = self.manager.config_store.store(conflict.kind, conflict.scope)
        try:
            try:
                store.update(conflict.name, conflict.incoming)
            except NotFoundError:
                # Removed since the plan was made
                store.add(conflict.incoming)
            result.updated.append(conflict.key)
        except ShellSyncError as e:
            self.logger.warning(f"Skipping {conflict.key}: {e}")
            result.add_error(conflict.key, str(e))

    def _settle(self, conflict: ImportConflict, decision: MergeStrategy, result: ImportResult) -> bool:
        if decision is MergeStrategy.OVERWRITE:
            self._overwrite(conflict, result)
        elif decision is MergeStrategy.KEEP:
            result.skipped.append(conflict.key)
        else:
            return False
        return True

    def apply(self) -> ImportResult:
        """Write the non-colliding entities and settle collisions the strategy decides."""
        result = ImportResult()
        if self._applied:
            result.conflicts = self.conflicts
            return result.finalize()

        for key, error in self._invalid:
            result.add_error(key, error)
        for item in self._unchanged:
            result.unchanged.append(item.key)
        for item in self._new:
            self._write_new(item, result)

        remaining = []
        for conflict in self._pending:
            if not self._settle(conflict, self.strategy, result):
                remaining.append(conflict)
        self._pending = remaining
        result.conflicts = list(remaining)

        if self.include_config:
            self.manager.import_config(self.bundle, self.strategy, result)

        self._applied = True
        result.finalize()
        self.logger.info(f"Import applied: {result.message}")
        return result

    def resolve(self, decisions: Dict[str, Union[MergeStrategy, str]]) -> ImportResult:
        """
        Apply per-name decisions to pending collisions.

        Args:
            decisions: Maps a conflict key (``kind:scope:name``) or a bare
                name to ``overwrite`` or ``keep``. Collisions without a
                decision stay pending.
        """
        result = ImportResult()
        remaining = []

        for conflict in self._pending:
            decision = decisions.get(conflict.key, decisions.get(conflict.name))
            if decision is None or not self._settle(conflict, MergeStrategy.coerce(decision), result):
                remaining.append(conflict)

        self._pending = remaining
        result.conflicts = list(remaining)
        result.finalize()
        self.logger.info(f"Import decisions applied: {result.message}")
        return result


class BundleManager:
    """Exports and imports complete configuration bundles."""

    def __init__(self, config_store: ConfigStore, plugin_registry: PluginRegistry):
        """
        Initialize bundle manager.

        Args:
            config_store: Store holding aliases, functions and config blobs
            plugin_registry: Registry of enabled plugins
        """
        self.logger = get_logger(f"{__name__}.BundleManager")
        self.config_store = config_store
        self.plugin_registry = plugin_registry

    # ------------------------------------------------------------------
    # export
    # ------------------------------------------------------------------

    def export(self) -> ExportData:
        """Consistent snapshot of every scope."""
        store = self.config_store
        aliases, functions, config = [], [], {}

        with store.snapshot_lock(self.plugin_registry.path):
            for scope in WRITABLE_SCOPES:
                shared = scope.is_shared
                aliases.extend(
                    {'name': a.name, 'command': a.command, 'shared': shared}
                    for a in store.list(EntityKind.ALIAS, scope)
                )
                functions.extend(
                    {'name': f.name, 'content': f.content, 'shared': shared}
                    for f in store.list(EntityKind.FUNCTION, scope)
                )
                config[scope.value] = store.get_config(scope).content
            config['plugins'] = self.plugin_registry.enabled_names()

        return ExportData(
            aliases=aliases,
            functions=functions,
            config=config,
            exported_at=datetime.now().isoformat(timespec='seconds'),
        )

    @staticmethod
    def _format_for(path: Path) -> str:
        suffix = path.suffix.lower()
        if suffix in _YAML_SUFFIXES:
            return 'yaml'
        if suffix in _TOML_SUFFIXES:
            return 'toml'
        return 'json'

    def export_to_file(self, path: Union[str, Path]) -> str:
        """Export to a file; the suffix picks JSON (default), YAML or TOML."""
        path = Path(path).expanduser()
        data = self.export()
        payload = data.to_dict()

        fmt = self._format_for(path)
        if fmt == 'yaml':
            text = yaml.safe_dump(payload, default_flow_style=False, sort_keys=False, allow_unicode=True)
        elif fmt == 'toml':
            text = toml.dumps(payload)
        else:
            text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"

        atomic_write(path, text)
        message = (
            f"Exported {len(data.aliases)} aliases and {len(data.functions)} functions "
            f"to {display_path(path)}"
        )
        self.logger.info(message)
        return message

    def load_bundle(self, path: Union[str, Path]) -> ExportData:
        """Read and validate a bundle file."""
        path = Path(path).expanduser()
        if not path.exists():
            raise StorageError("read", path, "file does not exist")
        text = read_text(path)

        fmt = self._format_for(path)
        try:
            if fmt == 'yaml':
                data = yaml.safe_load(text)
            elif fmt == 'toml':
                data = toml.loads(text)
            else:
                data = json.loads(text)
        except (ValueError, yaml.YAMLError, toml.TomlDecodeError) as e:
            raise BundleFormatError(f"Cannot parse {display_path(path)} as {fmt}: {e}") from e

        return ExportData.from_dict(data)

    # ------------------------------------------------------------------
    # import
    # ------------------------------------------------------------------

    @staticmethod
    def collect_entities(bundle: ExportData) -> Tuple[List[BundleEntity], List[Tuple[str, str]]]:
        """Turn bundle entries into entities; malformed entries are returned as errors."""
        entities: List[BundleEntity] = []
        invalid: List[Tuple[str, str]] = []

        sections = (
            (EntityKind.ALIAS, bundle.aliases, 'command'),
            (EntityKind.FUNCTION, bundle.functions, 'content'),
        )
        for kind, entries, body_key in sections:
            for index, entry in enumerate(entries):
                if not isinstance(entry, dict) or not isinstance(entry.get('name'), str):
                    invalid.append((f"{kind.value}[{index}]", "entry has no name"))
                    continue

                scope = ConfigScope.SHARED if entry.get('shared') else ConfigScope.LOCAL
                body = entry.get(body_key, '')
                if not isinstance(body, str):
                    invalid.append((f"{kind.value}:{scope.value}:{entry['name']}", f"'{body_key}' must be text"))
                    continue

                if kind is EntityKind.ALIAS:
                    entity = Alias(name=entry['name'], command=body)
                else:
                    entity = ShellFunction(name=entry['name'], content=body)
                entities.append(BundleEntity(kind, scope, entity))

        return entities, invalid

    def begin_import(self, bundle: ExportData, strategy: Union[MergeStrategy, str],
                     include_config: bool = False) -> ImportSession:
        """Plan an import without writing anything."""
        return ImportSession(self, bundle, MergeStrategy.coerce(strategy), include_config)

    def import_bundle(self, bundle: ExportData, strategy: Union[MergeStrategy, str],
                      include_config: bool = False) -> ImportResult:
        """Plan and apply an import in one call."""
        return self.begin_import(bundle, strategy, include_config).apply()

    def import_from_file(self, path: Union[str, Path], strategy: Union[MergeStrategy, str],
                         include_config: bool = False) -> ImportResult:
        return self.import_bundle(self.load_bundle(path), strategy, include_config)

    def import_config(self, bundle: ExportData, strategy: MergeStrategy, result: ImportResult):
        """
        Import config blobs and plugins.

        Blobs replace the current config under ``overwrite``; otherwise they
        are only written into scopes whose config is empty. Plugins from the
        bundle are enabled, which is a no-op for ones already enabled.
        """
        store = self.config_store

        for scope in WRITABLE_SCOPES:
            blob = bundle.config.get(scope.value)
            if not isinstance(blob, str) or not blob:
                continue

            current = store.get_config(scope).content
            if current == blob:
                continue
            if strategy is not MergeStrategy.OVERWRITE and current.strip():
                result.skipped.append(f"config:{scope.value}")
                continue

            try:
                store.set_config(blob, scope)
                result.config_written.append(scope.value)
            except ShellSyncError as e:
                result.add_error(f"config:{scope.value}", str(e))

        plugins = bundle.config.get('plugins') or []
        if not isinstance(plugins, list):
            result.add_error("plugins", "must be a list of names")
            return

        for name in plugins:
            try:
                if self.plugin_registry.add(str(name)):
                    result.plugins_enabled.append(str(name))
            except ShellSyncError as e:
                result.add_error(f"plugin:{name}", str(e))
