#!/usr/bin/env python3
"""
Platform detection and OS-specific utilities for ShellSync.

This module detects the operating system and the user's shell and resolves
the OS-specific locations ShellSync reads from (configuration directory,
shell rc file, oh-my-zsh installation).
"""

import os
import platform
from pathlib import Path
from typing import Dict, Optional
from enum import Enum


class OSType(Enum):
    """Supported operating system types."""
    LINUX = "linux"
    MACOS = "darwin"
    WINDOWS = "windows"
    UNKNOWN = "unknown"


class PlatformDetector:
    """Handles platform detection and OS-specific operations."""

    def __init__(self):
        self._os_type = self._detect_os()
        self._home_dir = Path.home()
        self._config_paths = self._get_config_paths()

    @staticmethod
    def _detect_os() -> OSType:
        """Detect the current operating system."""
        system = platform.system().lower()

        if system == "linux":
            return OSType.LINUX
        elif system == "darwin":
            return OSType.MACOS
        elif system == "windows":
            return OSType.WINDOWS
        else:
            return OSType.UNKNOWN

    @property
    def os_type(self) -> OSType:
        """Get the detected OS type."""
        return self._os_type

    @property
    def is_linux(self) -> bool:
        """Check if running on Linux."""
        return self._os_type == OSType.LINUX

    @property
    def is_macos(self) -> bool:
        """Check if running on macOS."""
        return self._os_type == OSType.MACOS

    @property
    def is_windows(self) -> bool:
        """Check if running on Windows."""
        return self._os_type == OSType.WINDOWS

    @property
    def is_wsl(self) -> bool:
        """Check if running inside Windows Subsystem for Linux."""
        if not self.is_linux:
            return False
        return 'microsoft' in platform.release().lower()

    @property
    def home_dir(self) -> Path:
        """Get the user's home directory."""
        return self._home_dir

    def _get_config_paths(self) -> Dict[str, Path]:
        """Get OS-specific configuration directory paths."""
        home = self._home_dir

        if self.is_windows:
            appdata = os.environ.get('APPDATA', str(home / 'AppData' / 'Roaming'))
            localappdata = os.environ.get('LOCALAPPDATA', str(home / 'AppData' / 'Local'))
            return {
                'config': Path(appdata),
                'cache': Path(localappdata) / 'Temp',
            }

        # Linux and macOS shell tools both follow the XDG layout
        config_home = os.environ.get('XDG_CONFIG_HOME')
        cache_home = os.environ.get('XDG_CACHE_HOME')
        return {
            'config': Path(config_home) if config_home else home / '.config',
            'cache': Path(cache_home) if cache_home else home / '.cache',
        }

    def get_config_dir(self, name: str = 'config') -> Path:
        """Get a specific configuration directory path."""
        return self._config_paths.get(name, self.home_dir / '.config')

    @property
    def shell_name(self) -> str:
        """Name of the user's login shell, from ``$SHELL``."""
        shell = os.environ.get('SHELL', '')
        return Path(shell).name if shell else 'zsh'

    def get_shell_rc_file(self, shell: Optional[str] = None) -> Path:
        """Get the rc file a reload instruction should point at."""
        shell = shell or self.shell_name
        if shell == 'bash':
            return self.home_dir / '.bashrc'
        return self.home_dir / '.zshrc'

    def get_oh_my_zsh_dir(self) -> Path:
        """Get the oh-my-zsh installation directory (``$ZSH`` or ``~/.oh-my-zsh``)."""
        zsh = os.environ.get('ZSH')
        return Path(zsh).expanduser() if zsh else self.home_dir / '.oh-my-zsh'

    def get_system_info(self) -> Dict[str, str]:
        """Get detailed system information."""
        return {
            'os_type': self.os_type.value,
            'platform': platform.platform(),
            'python_version': platform.python_version(),
            'home_directory': str(self.home_dir),
            'config_directory': str(self.get_config_dir()),
            'shell': self.shell_name,
            'wsl': str(self.is_wsl),
        }


# Global instance for convenience
platform_detector = PlatformDetector()


# Convenience functions
def get_os_type() -> OSType:
    """Get the current OS type."""
    return platform_detector.os_type


def get_home_dir() -> Path:
    """Get the user's home directory."""
    return platform_detector.home_dir


def get_config_dir(name: str = 'config') -> Path:
    """Get a configuration directory path."""
    return platform_detector.get_config_dir(name)
