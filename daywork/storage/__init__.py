from daywork.storage.base import DuplicateApplication, DuplicateUsername, Storage
from daywork.storage.memory import MemoryStorage
from daywork.storage.sql import SqlStorage


def build_storage(settings) -> Storage:
    """Pick the storage backend named by STORAGE_BACKEND."""
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "memory":
        return MemoryStorage()
    if backend == "sql":
        from daywork.db.session import SessionLocal

        return SqlStorage(SessionLocal)
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND!r}")


__all__ = ["Storage", "MemoryStorage", "SqlStorage", "DuplicateApplication", "DuplicateUsername", "build_storage"]
