"""Artifact storage and retrieval.

Stores generated audio and video under session-namespaced keys and returns
the public URL each object is reachable at.
"""

import asyncio
import logging
from pathlib import Path

import aioboto3
import httpx

from mock_interview_studio.orchestrator.errors import RenderFetchError
from mock_interview_studio.providers.base import ArtifactFetcher, ArtifactStore

logger = logging.getLogger(__name__)


def _join_url(base_url: str, key: str) -> str:
    return f"{base_url.rstrip('/')}/{key.lstrip('/')}"


class LocalArtifactStore(ArtifactStore):
    """Local file storage handler."""

    def __init__(self, base_path: str, public_url: str) -> None:
        """
        Initialize local storage.

        Args:
            base_path: Base directory for stored artifacts.
            public_url: Base URL the directory is served under.
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_url = public_url

    def _path_for(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if self.base_path.resolve() not in path.parents:
            raise ValueError(f"Artifact key escapes the storage root: {key}")
        return path

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        path = self._path_for(key)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)

        await asyncio.to_thread(_write)
        logger.info(f"Saved {len(data)} bytes ({content_type}) to {path}")
        return _join_url(self.public_url, key)

    def read(self, key: str) -> bytes:
        """
        Read an artifact back from local storage.

        Args:
            key: Artifact key.

        Returns:
            File contents as bytes.
        """
        path = self._path_for(key)
        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        return path.read_bytes()


class S3ArtifactStore(ArtifactStore):
    """S3 storage handler for async uploads."""

    def __init__(
        self,
        bucket_name: str,
        public_url: str,
        region: str | None = None,
        session: aioboto3.Session | None = None,
    ) -> None:
        """
        Initialize S3 storage.

        Args:
            bucket_name: S3 bucket name.
            public_url: Base URL objects in the bucket are served under.
            region: Bucket region (falls back to the default AWS credential chain).
            session: Preconfigured aioboto3 session.
        """
        if not bucket_name:
            raise ValueError("S3 bucket name not provided and S3_BUCKET not set")
        self.bucket_name = bucket_name
        self.public_url = public_url
        self._session = session or aioboto3.Session(region_name=region)

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        async with self._session.client("s3") as client:
            await client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        logger.info(f"Uploaded {len(data)} bytes to s3://{self.bucket_name}/{key}")
        return _join_url(self.public_url, key)


class HttpArtifactFetcher(ArtifactFetcher):
    """Downloads rendered artifacts over HTTP."""

    def __init__(self, timeout_s: float = 120.0, client: httpx.AsyncClient | None = None) -> None:
        self._timeout_s = timeout_s
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout_s, follow_redirects=True)
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str) -> bytes:
        client = await self._get_client()
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise RenderFetchError(f"Failed to download rendered video: {e}") from e

        if not response.is_success:
            raise RenderFetchError(
                f"Failed to download rendered video: HTTP {response.status_code} {response.reason_phrase}"
            )
        return response.content
