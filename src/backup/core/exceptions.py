"""
Custom exceptions for the backup/restore tooling.
"""


class BackupError(Exception):
    """Base exception for all backup tooling errors."""
    pass


class ConfigError(BackupError):
    """
    Error in backup configuration.

    Raised when:
    - Configuration file is missing or invalid
    - A numeric setting cannot be parsed
    """
    pass


class StoreConnectionError(BackupError):
    """
    The live store could not be reached.

    This is fatal: nothing has been mutated when it is raised.
    """

    def __init__(self, message: str, uri: str = None):
        super().__init__(message)
        self.uri = uri


class StoreOperationError(BackupError):
    """
    A single store operation (find, delete, insert) failed.

    Raised per collection; the exchanger logs it and moves on.
    """

    def __init__(self, message: str, collection: str = None):
        super().__init__(message)
        self.collection = collection


class SnapshotNotFoundError(BackupError):
    """The requested snapshot directory (or the backups root) does not exist."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class SnapshotFormatError(BackupError):
    """
    A snapshot file is present but its content is unusable.

    Raised when:
    - The file is not valid JSON / Extended JSON
    - The top-level value is not an array
    - An element of the array is not an object
    """

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class UnknownCollectionError(BackupError):
    """A collection name was requested that is not in the registry."""
    pass


class SnapshotExistsError(BackupError):
    """A new snapshot would be written into an existing directory."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class RestoreCancelled(BackupError):
    """
    The confirmation gate declined a destructive operation.

    Nothing has been mutated when it is raised. ``interrupted`` is True
    when the operator pressed Ctrl+C at the gate.
    """

    def __init__(self, message: str, interrupted: bool = False):
        super().__init__(message)
        self.interrupted = interrupted
