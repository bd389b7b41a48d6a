"""
Core modules for ShellSync.

This package contains the fragment codec and stores, the configuration
store, the plugin registry, git synchronization and bundle import/export.
"""

from .codec import Alias, ShellFunction
from .config import ConfigStore, ConfigContent, ConfigScope, EntityKind
from .bundle import BundleManager, ExportData, ImportResult, ImportSession, ImportStatus, MergeStrategy
from .git_handler import GitHandler, GitStatus, GitCommit, PullResult
from .plugins import Plugin, PluginRegistry
from .settings import Settings
from .errors import ShellSyncError

__all__ = [
    'Alias',
    'ShellFunction',
    'ConfigStore',
    'ConfigContent',
    'ConfigScope',
    'EntityKind',
    'BundleManager',
    'ExportData',
    'ImportResult',
    'ImportSession',
    'ImportStatus',
    'MergeStrategy',
    'GitHandler',
    'GitStatus',
    'GitCommit',
    'PullResult',
    'Plugin',
    'PluginRegistry',
    'Settings',
    'ShellSyncError',
]
