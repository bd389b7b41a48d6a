#!/usr/bin/env python3
"""
Settings for ShellSync.

Settings are read from a TOML file (``~/.config/shellsync/config.toml`` by
default, or the file named by ``$SHELLSYNC_CONFIG``). Every key is optional;
missing keys fall back to the layout a zsh user would expect: the shared,
versioned fragments in ``~/.zsh`` and the machine-local ones next to it in
``~/.zsh-local``.
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import toml

from .errors import SettingsError
from ..utils.logger import get_logger
from ..utils.platform import platform_detector

CONFIG_ENV_VAR = 'SHELLSYNC_CONFIG'

# Well-known fragment file names per scope
SHARED_FILES = {
    'aliases': 'aliases.zsh',
    'functions': 'functions.zsh',
    'config': 'config.zsh',
}
LOCAL_FILES = {
    'aliases': 'aliases.local.zsh',
    'functions': 'functions.local.zsh',
    'config': 'config.local.zsh',
}

_PATH_KEYS = ('shared_dir', 'local_dir', 'secrets_file', 'plugin_file', 'oh_my_zsh_dir', 'rc_file', 'log_file')

logger = get_logger(__name__)


def default_config_file() -> Path:
    """Location of the settings file."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()
    return platform_detector.get_config_dir() / 'shellsync' / 'config.toml'


@dataclass
class Settings:
    """Resolved ShellSync settings."""

    shared_dir: Path
    local_dir: Path
    secrets_file: Path
    plugin_file: Path
    oh_my_zsh_dir: Path
    rc_file: Path
    default_branch: str = 'main'
    remote: str = 'origin'
    log_level: str = 'INFO'
    log_file: Optional[Path] = None

    def __post_init__(self):
        for key in _PATH_KEYS:
            value = getattr(self, key)
            if value is not None:
                setattr(self, key, Path(value).expanduser())

    @classmethod
    def defaults(cls, home: Optional[Union[str, Path]] = None) -> 'Settings':
        """Default settings rooted at ``home`` (the user's home directory by default)."""
        if home is None:
            home = platform_detector.home_dir
            oh_my_zsh = platform_detector.get_oh_my_zsh_dir()
            rc_file = platform_detector.get_shell_rc_file()
        else:
            home = Path(home)
            oh_my_zsh = home / '.oh-my-zsh'
            rc_file = home / '.zshrc'

        return cls(
            shared_dir=home / '.zsh',
            local_dir=home / '.zsh-local',
            secrets_file=home / '.zshrc.secrets',
            plugin_file=home / '.zshrc.local',
            oh_my_zsh_dir=oh_my_zsh,
            rc_file=rc_file,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any], home: Optional[Union[str, Path]] = None) -> 'Settings':
        """Overlay a settings mapping on top of the defaults."""
        settings = cls.defaults(home)
        known = {f.name for f in fields(cls)}

        for key, value in data.items():
            if key not in known:
                logger.warning(f"Ignoring unknown setting '{key}'")
                continue
            if key in _PATH_KEYS and value is not None:
                value = Path(str(value)).expanduser()
            setattr(settings, key, value)

        return settings

    @classmethod
    def load(
        cls,
        path: Optional[Union[str, Path]] = None,
        home: Optional[Union[str, Path]] = None,
        **overrides: Any
    ) -> 'Settings':
        """
        Load settings from a TOML file, then apply explicit overrides.

        Args:
            path: Settings file (defaults to ``default_config_file()``)
            home: Base directory for the default layout
            overrides: Values that win over the file, ``None`` values are skipped

        Returns:
            Resolved Settings
        """
        config_file = Path(path).expanduser() if path else default_config_file()
        data: Dict[str, Any] = {}

        if config_file.exists():
            try:
                data = toml.load(config_file)
            except (toml.TomlDecodeError, OSError) as e:
                raise SettingsError(f"Failed to read settings from {config_file}: {e}") from e
            logger.debug(f"Loaded settings from {config_file}")

        data.update({key: value for key, value in overrides.items() if value is not None})
        return cls.from_dict(data, home)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a TOML-friendly dictionary."""
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            data[f.name] = str(value) if isinstance(value, Path) else value
        return data

    def save(self, path: Optional[Union[str, Path]] = None) -> Path:
        """Write the settings to a TOML file."""
        config_file = Path(path).expanduser() if path else default_config_file()
        config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(config_file, 'w', encoding='utf-8') as f:
            toml.dump(self.to_dict(), f)
        return config_file

    def fragment_path(self, kind: str, shared: bool) -> Path:
        """Path of the fragment file holding ``kind`` ('aliases', 'functions', 'config')."""
        if shared:
            return self.shared_dir / SHARED_FILES[kind]
        return self.local_dir / LOCAL_FILES[kind]
