"""
Utility modules for ShellSync.

This package contains logging, platform detection and path helpers used
throughout ShellSync.
"""

from .logger import get_logger, setup_logging
from .path import display_path
from .platform import platform_detector, get_os_type

__all__ = [
    'get_logger',
    'setup_logging',
    'display_path',
    'platform_detector',
    'get_os_type',
]
