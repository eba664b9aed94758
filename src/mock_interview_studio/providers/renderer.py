"""
Talking-head video renderer backed by Replicate.

Creates a prediction on the Replicate HTTP API. When the prediction finishes
within the synchronous wait window its output URL is returned directly;
otherwise a PredictionHandle is returned whose url() polls until the job
completes.
"""

import asyncio
import logging
from typing import Any

import httpx

from mock_interview_studio.orchestrator.schemas import RenderParams
from mock_interview_studio.providers.base import VideoRenderer

logger = logging.getLogger(__name__)

REPLICATE_API_URL = "https://api.replicate.com"

_TERMINAL_FAILURES = ("failed", "canceled")


class RenderJobError(Exception):
    """Raised when a render job fails or never produces an output URL."""

    def __init__(self, message: str, job_id: str | None = None) -> None:
        super().__init__(message)
        self.job_id = job_id


class PredictionHandle:
    """A pending Replicate prediction that resolves to a video URL."""

    def __init__(
        self,
        job_id: str,
        client: httpx.AsyncClient,
        poll_interval_s: float = 2.0,
        max_polls: int = 300,
    ) -> None:
        self.id = job_id
        self._client = client
        self._poll_interval_s = poll_interval_s
        self._max_polls = max_polls

    async def url(self) -> str:
        """
        Poll the prediction until it succeeds.

        Returns:
            The output video URL.

        Raises:
            RenderJobError: If the job fails, is canceled, or never finishes.
        """
        for attempt in range(self._max_polls):
            response = await self._client.get(f"/v1/predictions/{self.id}")
            response.raise_for_status()
            data = response.json()
            status = data.get("status")

            if status == "succeeded":
                output = data.get("output")
                if isinstance(output, str) and output:
                    return output
                raise RenderJobError(f"Prediction {self.id} succeeded without a URL output", self.id)
            if status in _TERMINAL_FAILURES:
                raise RenderJobError(
                    f"Prediction {self.id} {status}: {data.get('error') or 'no error message'}",
                    self.id,
                )

            logger.debug(f"Prediction {self.id} status={status} (poll {attempt + 1})")
            await asyncio.sleep(self._poll_interval_s)

        raise RenderJobError(f"Prediction {self.id} did not finish after {self._max_polls} polls", self.id)


class ReplicateVideoRenderer(VideoRenderer):
    """Renders talking-head videos with a Replicate-hosted model."""

    def __init__(
        self,
        api_token: str,
        model_version: str,
        timeout: int = 60,
        poll_interval_s: float = 2.0,
        base_url: str = REPLICATE_API_URL,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the renderer.

        Args:
            api_token: Replicate API token.
            model_version: Version hash of the talking-head model.
            timeout: Request timeout in seconds.
            poll_interval_s: Delay between status polls for pending jobs.
            base_url: API base URL.
            client: Preconfigured HTTP client, mainly for tests.
        """
        if not api_token and client is None:
            raise ValueError("Replicate API token not provided and REPLICATE_API_TOKEN not set")
        self._api_token = api_token
        self._model_version = model_version
        self._timeout = timeout
        self._poll_interval_s = poll_interval_s
        self._base_url = base_url
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={"Authorization": f"Bearer {self._api_token}"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def render(
        self,
        avatar_image_url: str,
        audio_url: str,
        params: RenderParams,
    ) -> Any:
        client = await self._get_client()
        body = {
            "version": self._model_version,
            "input": {
                **params.model_dump(),
                "driven_audio": audio_url,
                "source_image": avatar_image_url,
            },
        }
        response = await client.post("/v1/predictions", json=body, headers={"Prefer": "wait"})
        response.raise_for_status()
        data = response.json()

        job_id = data.get("id")
        status = data.get("status")
        logger.info(f"Replicate prediction {job_id} created (status={status})")

        if status in _TERMINAL_FAILURES:
            raise RenderJobError(f"Prediction {job_id} {status}: {data.get('error')}", job_id)
        if status == "succeeded" and data.get("output"):
            return {"url": data["output"], "id": job_id}
        if not job_id:
            raise RenderJobError("Replicate response carried neither output nor prediction id")
        return PredictionHandle(job_id, client, poll_interval_s=self._poll_interval_s)
