"""Exception types raised by the storage layer."""


class MemoVaultError(Exception):
    """Base class for all storage errors."""


class StorageNotFoundError(MemoVaultError):
    """A path, category or note directory does not exist."""

    def __init__(self, path: str, message: str | None = None):
        self.path = path
        super().__init__(message or f"Not found: {path}")


class StorageIOError(MemoVaultError):
    """A filesystem or remote storage operation failed (permissions, disk, network)."""

    def __init__(self, operation: str, path: str, cause: BaseException | None = None):
        self.operation = operation
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"{operation} failed for {path}{detail}")


class SnapshotParseError(MemoVaultError):
    """A metadata snapshot could not be decoded into a record."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Malformed snapshot {source}: {reason}")
