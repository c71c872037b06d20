from .blob import BlobStore, InMemoryBlobStore, SqliteBlobStore
from .factory import build_blob_store
from .store import AttributeRecord, ChatBucket, StateStore
from .utils import clamp_attribute, normalize_character_key

__all__ = [
    "AttributeRecord",
    "BlobStore",
    "ChatBucket",
    "InMemoryBlobStore",
    "SqliteBlobStore",
    "StateStore",
    "build_blob_store",
    "clamp_attribute",
    "normalize_character_key",
]
