"""Supabase Storage download adapter."""

from typing import Optional
from urllib.parse import quote

import httpx

from radar.service import StorageError


class SupabaseStorage:
    """ObjectStorage reading objects from one bucket with the service-role key."""

    def __init__(
        self,
        url: str,
        service_role_key: str,
        bucket: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = url.rstrip("/")
        self._key = service_role_key
        self._bucket = bucket
        self._timeout = timeout
        self._transport = transport

    def object_url(self, path: str) -> str:
        return f"{self._url}/storage/v1/object/{self._bucket}/{quote(path.lstrip('/'))}"

    async def download(self, path: str) -> bytes:
        if not path:
            raise StorageError("Empty object path")
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(
                    self.object_url(path),
                    headers={"apikey": self._key, "Authorization": f"Bearer {self._key}"},
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise StorageError(f"Download failed for {path}: {e}") from e
        if not response.content:
            raise StorageError(f"Empty object {path}")
        return response.content
