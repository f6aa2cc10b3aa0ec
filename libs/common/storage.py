"""Blob storage adapters for design files kept in Supabase Storage."""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx
from fastapi import Request
from supabase import Client, create_client

from libs.common.config import Settings
from libs.common.exceptions import UpstreamError
from libs.common.logging import get_logger

logger = get_logger(__name__)

# Supabase caps a single list call; larger folders are paged.
LIST_PAGE_SIZE = 1000


@dataclass(frozen=True)
class BlobEntry:
    """One entry of a single-level listing."""

    name: str
    is_folder: bool


class BlobStore(ABC):
    """Get/put/list/remove by path within one bucket."""

    @abstractmethod
    async def get(self, path: str) -> bytes: ...

    @abstractmethod
    async def put(self, path: str, data: bytes, content_type: str) -> str:
        """Store ``data`` at ``path``, replacing any object there; return its public URL."""

    @abstractmethod
    async def list_entries(self, prefix: str = "") -> list[BlobEntry]:
        """List the direct children of ``prefix`` (not recursive)."""

    @abstractmethod
    async def remove(self, paths: list[str]) -> int:
        """Remove ``paths`` and return how many objects were removed."""


class SupabaseBlobStore(BlobStore):
    """BlobStore backed by a Supabase Storage bucket."""

    def __init__(self, client: Client, bucket: str, timeout: float = 20.0):
        self.client = client
        self.bucket = bucket
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseBlobStore":
        client = create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
        return cls(
            client,
            settings.DESIGN_FILES_BUCKET,
            timeout=settings.BLOB_FETCH_TIMEOUT_SECONDS,
        )

    async def _call(
        self, operation: str, fn: Callable[..., Any], *args, **kwargs
    ) -> Any:
        # The supabase client is synchronous; keep it off the event loop.
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fn, *args, **kwargs), timeout=self.timeout
            )
        except asyncio.TimeoutError as exc:
            raise UpstreamError(
                f"Storage {operation} timed out",
                {"bucket": self.bucket, "timeout_seconds": self.timeout},
            ) from exc

    async def get(self, path: str) -> bytes:
        bucket = self.client.storage.from_(self.bucket)
        return await self._call("download", bucket.download, path)

    async def put(self, path: str, data: bytes, content_type: str) -> str:
        bucket = self.client.storage.from_(self.bucket)
        await self._call(
            "upload",
            bucket.upload,
            path=path,
            file=data,
            file_options={"content-type": content_type, "upsert": "true"},
        )
        logger.debug("Uploaded %s to %s (%d bytes)", path, self.bucket, len(data))
        return bucket.get_public_url(path)

    async def list_entries(self, prefix: str = "") -> list[BlobEntry]:
        bucket = self.client.storage.from_(self.bucket)
        entries: list[BlobEntry] = []
        offset = 0
        while True:
            page = await self._call(
                "list",
                bucket.list,
                prefix,
                {"limit": LIST_PAGE_SIZE, "offset": offset},
            )
            for item in page or []:
                # Folders are returned without an object id
                entries.append(
                    BlobEntry(name=item["name"], is_folder=item.get("id") is None)
                )
            if not page or len(page) < LIST_PAGE_SIZE:
                break
            offset += LIST_PAGE_SIZE
        return entries

    async def remove(self, paths: list[str]) -> int:
        if not paths:
            return 0
        bucket = self.client.storage.from_(self.bucket)
        removed = await self._call("remove", bucket.remove, paths)
        logger.debug("Removed %d object(s) from %s", len(removed or []), self.bucket)
        return len(removed or [])


def get_blob_store(request: Request) -> BlobStore:
    """FastAPI dependency returning the process-wide blob store."""
    return request.app.state.blob_store


async def fetch_url_bytes(url: str, timeout: float = 20.0) -> bytes:
    """Download a file by its public URL."""
    try:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content
    except httpx.HTTPError as exc:
        raise UpstreamError(f"Failed to fetch {url}", {"error": str(exc)}) from exc


def join_path(prefix: Optional[str], name: str) -> str:
    return f"{prefix}/{name}" if prefix else name
