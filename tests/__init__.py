"""
Test package for ShellSync.

This package contains unit tests and integration tests for the entity codec,
fragment stores, configuration store, plugin registry, git synchronization,
bundle import/export and the command-line interface.
"""

import sys
from pathlib import Path

# Add src directory to path so tests can import shellsync modules
test_dir = Path(__file__).parent
src_dir = test_dir.parent / 'src'
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))
