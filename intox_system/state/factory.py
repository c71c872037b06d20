from __future__ import annotations

from ..config import Settings
from .blob import InMemoryBlobStore, SqliteBlobStore


def build_blob_store(settings: Settings) -> InMemoryBlobStore | SqliteBlobStore:
    backend = settings.state_backend.strip().lower()
    if backend == "memory":
        return InMemoryBlobStore()
    if backend == "sqlite":
        return SqliteBlobStore(settings.sqlite_path)
    raise ValueError("INTOX_STATE_BACKEND must be 'sqlite' or 'memory'")
