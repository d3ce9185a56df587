"""Client for the hosted object storage (Supabase Storage REST API)"""

import logging
from typing import Optional

import httpx

from yurushiri.errors import StorageError

logger = logging.getLogger(__name__)

EVENT_IMAGES_BUCKET = "event-images"


class StorageClient:
    """Upload, resolve and remove objects in a single public bucket"""

    def __init__(
        self,
        config: dict,
        bucket: str = EVENT_IMAGES_BUCKET,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        base_url = (config.get("supabase_url") or "").rstrip("/")
        self.storage_url = f"{base_url}/storage/v1"
        self.anon_key = config.get("supabase_anon_key")
        self.bucket = bucket
        self._transport = transport

    def _headers(self, access_token: Optional[str]) -> dict:
        # Row-level policies on the bucket see the signed-in user's token
        return {
            "apikey": self.anon_key or "",
            "Authorization": f"Bearer {access_token or self.anon_key or ''}",
        }

    async def upload(
        self,
        path: str,
        content: bytes,
        content_type: str,
        access_token: Optional[str] = None,
    ) -> str:
        """
        Upload (upsert) an object and return its public URL.

        Raises:
            StorageError: On transport errors or non-2xx
        """
        headers = self._headers(access_token)
        headers.update(
            {
                "Content-Type": content_type,
                "x-upsert": "true",
                "cache-control": "max-age=3600",
            }
        )
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=30.0) as client:
                response = await client.post(
                    f"{self.storage_url}/object/{self.bucket}/{path}",
                    content=content,
                    headers=headers,
                )
        except httpx.RequestError as e:
            raise StorageError(f"Storage upload failed: {e}") from e

        if not response.is_success:
            raise StorageError(
                f"Storage upload failed: {response.status_code} {response.text}"
            )

        logger.info(f"Uploaded {path} to bucket {self.bucket}")
        return self.public_url(path)

    def public_url(self, path: str) -> str:
        return f"{self.storage_url}/object/public/{self.bucket}/{path}"

    def path_from_public_url(self, url: Optional[str]) -> Optional[str]:
        """Return the object path for a URL inside this bucket, else None"""
        if not url:
            return None
        marker = f"/{self.bucket}/"
        index = url.find(marker)
        if index == -1:
            return None
        return url[index + len(marker) :]

    async def remove(self, paths: list[str], access_token: Optional[str] = None) -> None:
        """Delete objects. Raises StorageError on failure."""
        if not paths:
            return
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=10.0) as client:
                response = await client.request(
                    "DELETE",
                    f"{self.storage_url}/object/{self.bucket}",
                    json={"prefixes": paths},
                    headers=self._headers(access_token),
                )
        except httpx.RequestError as e:
            raise StorageError(f"Storage removal failed: {e}") from e

        if not response.is_success:
            raise StorageError(
                f"Storage removal failed: {response.status_code} {response.text}"
            )
