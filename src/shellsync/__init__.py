"""
ShellSync - keep zsh aliases, functions and plugins in sync across machines

This package manages a user's zsh setup as named entities split between a
git-versioned shared directory and a machine-local directory, and keeps the
shared directory in sync with a remote repository.
"""

__version__ = "1.0.0"
__author__ = "ShellSync Team"
__description__ = "Keep zsh aliases, functions and plugins in sync across machines"

from .core.config import ConfigStore, ConfigScope, EntityKind
from .core.bundle import BundleManager, MergeStrategy
from .core.git_handler import GitHandler
from .core.plugins import PluginRegistry
from .core.settings import Settings
from .utils.logger import get_logger

# Version info
VERSION = __version__
VERSION_INFO = tuple(map(int, __version__.split('.')))

__all__ = [
    'ConfigStore',
    'ConfigScope',
    'EntityKind',
    'BundleManager',
    'MergeStrategy',
    'GitHandler',
    'PluginRegistry',
    'Settings',
    'get_logger',
    'VERSION',
    'VERSION_INFO',
]
