#!/usr/bin/env python3
"""
Exception hierarchy for ShellSync.

Every error raised by the configuration store, the git handler and the
bundle manager derives from ShellSyncError so callers can catch the whole
family at the boundary and show the message to the user.
"""

from pathlib import Path
from typing import List, Optional, Union


class ShellSyncError(Exception):
    """Base class for all ShellSync errors."""
    pass


class NotFoundError(ShellSyncError):
    """A named alias or function does not exist in the target scope."""

    def __init__(self, kind: str, name: str, scope: Optional[str] = None):
        self.kind = kind
        self.name = name
        self.scope = scope
        where = f" in {scope} scope" if scope else ""
        super().__init__(f"{kind.capitalize()} '{name}' not found{where}")


class DuplicateNameError(ShellSyncError):
    """A named alias or function already exists in the target scope."""

    def __init__(self, kind: str, name: str, scope: Optional[str] = None):
        self.kind = kind
        self.name = name
        self.scope = scope
        where = f" in {scope} scope" if scope else ""
        super().__init__(f"{kind.capitalize()} '{name}' already exists{where}")


class ReadOnlyScopeError(ShellSyncError):
    """Mutation attempted against a read-only source such as the secrets file."""
    pass


class InvalidIdentifierError(ShellSyncError):
    """A name is not usable as a shell alias, function or plugin identifier."""

    def __init__(self, name: str, reason: str = "not a valid shell identifier"):
        self.name = name
        super().__init__(f"Invalid name '{name}': {reason}")


class InvalidEntityError(ShellSyncError):
    """An entity body cannot be written in its shell form."""
    pass


class RepositoryNotInitializedError(ShellSyncError):
    """The shared directory has no git metadata yet."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(f"No git repository at {self.path}")


class AlreadyInitializedError(ShellSyncError):
    """git init requested for a directory that already has git metadata."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(f"Git repository already initialized at {self.path}")


class NothingToCommitError(ShellSyncError):
    """Commit requested while the working tree is clean."""
    pass


class EmptyMessageError(ShellSyncError):
    """Commit requested with a blank message."""
    pass


class MergeConflictError(ShellSyncError):
    """Pull could not be reconciled automatically; the merge was aborted."""

    def __init__(self, message: str, paths: Optional[List[str]] = None):
        self.paths = paths or []
        if self.paths:
            message = f"{message}: {', '.join(self.paths)}"
        super().__init__(message)


class RejectedError(ShellSyncError):
    """Push rejected because the remote has commits missing locally."""
    pass


class NoUpstreamError(ShellSyncError):
    """The current branch has no upstream branch configured."""
    pass


class StorageError(ShellSyncError):
    """Filesystem failure, reported with the operation and path involved."""

    def __init__(self, operation: str, path: Union[str, Path, None], cause: object):
        self.operation = operation
        self.path = Path(path) if path is not None else None
        self.cause = cause
        location = f" {self.path}" if self.path is not None else ""
        super().__init__(f"Failed to {operation}{location}: {cause}")


class GitError(StorageError):
    """A git command failed for reasons outside the documented error cases."""
    pass


class BundleFormatError(ShellSyncError):
    """An export bundle could not be read or has an unsupported layout."""
    pass


class SettingsError(ShellSyncError):
    """The settings file exists but cannot be parsed."""
    pass
