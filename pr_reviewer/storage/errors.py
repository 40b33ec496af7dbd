"""
Storage-layer exceptions.

Adapters translate driver failures into these so the services never depend
on a particular database driver.
"""


class StorageError(Exception):
    """Base exception for storage failures."""
    pass


class RecordExistsError(StorageError):
    """A unique constraint was violated."""
    pass


class RecordNotFoundError(StorageError):
    """No row matched the lookup."""
    pass


class ReviewerNotAssignedError(StorageError):
    """Removing a reviewer affected zero rows."""
    pass
