"""Error types surfaced by the weather store."""


class StorageError(Exception):
    """The storage engine failed: I/O, corruption, or a constraint violation."""
