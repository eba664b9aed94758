"""Text-to-speech adapters.

`PiperSpeechSynthesizer` runs the offline `piper` CLI and returns raw WAV
bytes. `HttpSpeechSynthesizer` calls a TTS web service that answers either
with audio bytes or with a JSON wrapper holding base64 audio.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx

from mock_interview_studio.providers.base import SpeechSynthesizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TTSConfig:
    piper_bin: str = "piper"
    model_path: str | None = None  # path to *.onnx
    speaker_id: int | None = None
    timeout_s: float = 60.0


class PiperSpeechSynthesizer(SpeechSynthesizer):
    content_type = "audio/wav"
    file_extension = "wav"

    def __init__(self, config: TTSConfig | None = None) -> None:
        self._config = config or TTSConfig()
        self._validated_piper_path: str | None = None

    @property
    def config(self) -> TTSConfig:
        return self._config

    def _require_piper(self) -> str:
        if self._validated_piper_path:
            return self._validated_piper_path

        p = shutil.which(self._config.piper_bin)
        if not p:
            raise RuntimeError(
                "piper CLI not found. Install piper (binary) and ensure it's on PATH, "
                "or set PIPER_BIN to its location."
            )
        if not self._config.model_path:
            raise RuntimeError("Piper model path not configured. Set PIPER_MODEL=/path/to/voice.onnx.")

        self._validated_piper_path = p
        return p

    async def synthesize(self, text: str, lang: str = "en") -> bytes:
        # Piper voices are single-language; lang is decided by the model file.
        piper_bin = self._require_piper()
        t = (text or "").strip()
        if not t:
            return b""

        def _call() -> bytes:
            with tempfile.TemporaryDirectory(prefix="piper-") as tmp:
                wav_path = Path(tmp) / "reply.wav"
                cmd = [piper_bin, "--model", str(self._config.model_path), "--output_file", str(wav_path)]
                if self._config.speaker_id is not None:
                    cmd += ["--speaker", str(self._config.speaker_id)]
                try:
                    subprocess.run(
                        cmd,
                        input=t,
                        text=True,
                        check=True,
                        stdout=subprocess.DEVNULL,
                        stderr=subprocess.PIPE,
                        timeout=self._config.timeout_s,
                    )
                except subprocess.TimeoutExpired as e:
                    raise RuntimeError(
                        f"piper timed out after {self._config.timeout_s:.1f}s. "
                        f"model={self._config.model_path!s}."
                    ) from e
                except subprocess.CalledProcessError as e:
                    stderr = (e.stderr or "").strip()
                    raise RuntimeError(
                        f"piper failed (exit={e.returncode}). "
                        f"model={self._config.model_path!s}. "
                        f"stderr={stderr or '<empty>'}"
                    ) from e
                return wav_path.read_bytes()

        audio = await asyncio.to_thread(_call)
        logger.debug(f"piper produced {len(audio)} bytes for {len(t)} chars")
        return audio


class HttpSpeechSynthesizer(SpeechSynthesizer):
    def __init__(
        self,
        endpoint: str,
        timeout_s: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._timeout_s = timeout_s
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout_s)
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def synthesize(self, text: str, lang: str = "en") -> bytes | dict[str, Any]:
        client = await self._get_client()
        response = await client.post(self._endpoint, json={"text": text, "lang": lang})
        response.raise_for_status()

        content_type = response.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            return response.json()
        return response.content
