"""Object store access (Supabase Storage bucket).

The bucket is a flat key -> bytes map; listing by prefix is never used, the
metadata store holds the authoritative copy of every key. Each call runs the
synchronous Supabase client in a worker thread under a timeout and reports
any failure as ``ObjectStoreFailure``.
"""

import asyncio
import logging
from typing import Optional

import httpx

from app.core.config import settings
from app.core.exceptions import ObjectStoreFailure
from app.utils.supabase_client import get_supabase

logger = logging.getLogger(__name__)


def _signed_url(res: dict) -> str:
    url = res.get("signedUrl") or res.get("signedURL") or res.get("signed_url")
    if not url:
        raise ObjectStoreFailure("Object store returned no signed URL")
    return url


class ObjectStore:
    def __init__(self, bucket: str, timeout: float):
        self.bucket_name = bucket
        self.timeout = timeout

    def _bucket(self):
        return get_supabase().storage.from_(self.bucket_name)

    async def _call(self, op: str, key: str, fn, *args, **kwargs):
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(fn, *args, **kwargs), timeout=self.timeout
            )
        except ObjectStoreFailure:
            raise
        except asyncio.TimeoutError:
            logger.error(f"Object store {op} timed out for {key}")
            raise ObjectStoreFailure(f"Object store {op} timed out")
        except Exception as e:
            logger.exception(f"Object store {op} failed for {key}: {e}")
            raise ObjectStoreFailure(f"Object store {op} failed")

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        await self._call(
            "put",
            key,
            lambda: self._bucket().upload(
                key,
                data,
                file_options={"content-type": content_type, "upsert": "true"},
            ),
        )

    async def signed_get_url(
        self, key: str, expires_in: int, download_name: Optional[str] = None
    ) -> str:
        options = {"download": download_name} if download_name else None
        res = await self._call(
            "sign-get",
            key,
            lambda: self._bucket().create_signed_url(key, expires_in, options),
        )
        return _signed_url(res)

    async def signed_upload_url(self, key: str) -> str:
        res = await self._call(
            "sign-put", key, lambda: self._bucket().create_signed_upload_url(key)
        )
        return _signed_url(res)

    async def copy(self, source_key: str, dest_key: str) -> None:
        await self._call(
            "copy", source_key, lambda: self._bucket().copy(source_key, dest_key)
        )

    async def delete(self, key: str) -> None:
        await self._call("delete", key, lambda: self._bucket().remove([key]))

    async def fetch(self, key: str, expires_in: int) -> bytes:
        """Read an object through a short-lived signed URL."""
        url = await self.signed_get_url(key, expires_in)
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                res = await client.get(url)
                res.raise_for_status()
                return res.content
        except httpx.HTTPError as e:
            logger.warning(f"Signed fetch failed for {key}: {e}")
            raise ObjectStoreFailure("Object store read failed")


def get_object_store() -> ObjectStore:
    return ObjectStore(settings.storage_bucket, settings.storage_timeout_seconds)
