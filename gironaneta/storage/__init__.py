"""
Girona Neta - Storage Module
Signed upload URLs and media downloads.
"""

from gironaneta.storage.blob_store import (
    BlobStore,
    SupabaseBlobStore,
    UploadCapability,
    StorageError,
    get_blob_store,
    set_blob_store,
)

__all__ = [
    "BlobStore",
    "SupabaseBlobStore",
    "UploadCapability",
    "StorageError",
    "get_blob_store",
    "set_blob_store",
]
