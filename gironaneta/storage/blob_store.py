"""
Object storage client for Girona Neta

Report photos never pass through this service: the client writes them
directly to the bucket using a signed, time-boxed upload URL. The service
only issues those URLs and downloads the binaries again at dispatch time.

API Documentation: https://supabase.com/docs/reference/api/storage
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlparse

import httpx

from gironaneta.core.config import settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the object store refuses an operation."""


@dataclass
class UploadCapability:
    """Single-use permission to write one object path."""
    path: str
    signed_url: str
    token: str

    def to_dict(self) -> dict:
        return {"path": self.path, "capability": self.signed_url}


class BlobStore(ABC):
    """Interface to the object store holding report media."""

    @abstractmethod
    async def create_upload_capability(self, path: str) -> UploadCapability:
        """Issue a time-boxed upload capability for `path`."""

    @abstractmethod
    async def download(self, path: str) -> Optional[bytes]:
        """Fetch an object, or None if it does not exist."""


class SupabaseBlobStore(BlobStore):
    """
    Blob store backed by the Supabase Storage REST API.

    Usage:
        store = SupabaseBlobStore(base_url, service_key)
        capability = await store.create_upload_capability("abc/0.jpg")
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        service_key: Optional[str] = None,
        bucket: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize storage client.

        Args:
            base_url: Project URL (e.g. https://xyz.supabase.co)
            service_key: Service role key
            bucket: Bucket holding report media
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = (base_url or settings.storage_url or "").rstrip("/")
        self.service_key = service_key or settings.storage_service_key or ""
        self.bucket = bucket or settings.storage_bucket
        self.timeout = timeout or settings.storage_timeout_seconds
        self._transport = transport

        if not self.base_url:
            raise ValueError("Storage URL is required")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.base_url}/storage/v1",
            headers={
                "Authorization": f"Bearer {self.service_key}",
                "apikey": self.service_key,
            },
            timeout=self.timeout,
            transport=self._transport,
        )

    async def create_upload_capability(self, path: str) -> UploadCapability:
        async with self._client() as client:
            try:
                response = await client.post(f"/object/upload/sign/{self.bucket}/{path}")
                response.raise_for_status()
                relative_url = response.json()["url"]
            except (httpx.HTTPError, ValueError, KeyError) as e:
                logger.error(f"Signed upload URL failed for {path}: {e}")
                raise StorageError(f"Could not sign upload for {path}") from e

        token = parse_qs(urlparse(relative_url).query).get("token", [""])[0]
        if not token:
            raise StorageError(f"Signed upload URL for {path} carries no token")

        return UploadCapability(
            path=path,
            signed_url=f"{self.base_url}/storage/v1{relative_url}",
            token=token,
        )

    async def download(self, path: str) -> Optional[bytes]:
        async with self._client() as client:
            try:
                response = await client.get(f"/object/{self.bucket}/{path}")
            except httpx.HTTPError as e:
                logger.error(f"Failed to download {path}: {e}")
                return None

        if response.status_code != 200:
            logger.warning(f"Failed to download {path}: HTTP {response.status_code}")
            return None

        return response.content


_blob_store: Optional[BlobStore] = None


def get_blob_store() -> BlobStore:
    """Get the global blob store instance."""
    global _blob_store
    if _blob_store is None:
        _blob_store = SupabaseBlobStore()
    return _blob_store


def set_blob_store(store: Optional[BlobStore]) -> None:
    """Replace the global blob store instance."""
    global _blob_store
    _blob_store = store
