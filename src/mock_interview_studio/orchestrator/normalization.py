"""
Normalization of polymorphic provider responses.

Speech synthesizers answer with raw bytes or a base64 wrapper; video
renderers answer with a URL, an object carrying a url field, or a job handle
whose url() resolves later. Each response is first classified into an
explicit tagged union, then reduced to the single shape the pipeline needs.
"""

from __future__ import annotations

import base64
import binascii
import inspect
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Union

from mock_interview_studio.orchestrator.errors import RenderFormatError, SynthesisFormatError


@dataclass(frozen=True)
class RawAudio:
    data: bytes


@dataclass(frozen=True)
class Base64Audio:
    encoded: str


SpeechOutput = Union[RawAudio, Base64Audio]


@dataclass(frozen=True)
class DirectUrl:
    url: str


@dataclass(frozen=True)
class UrlField:
    url: str
    job_id: str | None = None


@dataclass(frozen=True)
class DeferredUrl:
    resolver: Callable[[], Union[str, Awaitable[str]]]
    job_id: str | None = None


RenderOutput = Union[DirectUrl, UrlField, DeferredUrl]


def _describe(value: Any) -> str:
    text = repr(value)
    return text if len(text) <= 120 else text[:117] + "..."


def classify_speech_output(payload: Any) -> SpeechOutput:
    """
    Classify a synthesizer payload.

    Raises:
        SynthesisFormatError: If the payload is neither bytes nor an {"audio": str} wrapper.
    """
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return RawAudio(bytes(payload))
    if isinstance(payload, Mapping) and isinstance(payload.get("audio"), str):
        return Base64Audio(payload["audio"])
    raise SynthesisFormatError(f"Unexpected TTS response format: {type(payload).__name__} {_describe(payload)}")


def speech_to_bytes(output: SpeechOutput) -> bytes:
    """
    Reduce a classified speech payload to audio bytes.

    Raises:
        SynthesisFormatError: If the audio is empty or the base64 is malformed.
    """
    if isinstance(output, RawAudio):
        data = output.data
    else:
        try:
            data = base64.b64decode(output.encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise SynthesisFormatError(f"TTS returned invalid base64 audio: {e}") from e

    if not data:
        raise SynthesisFormatError("TTS returned empty audio")
    return data


def normalize_speech_output(payload: Any) -> bytes:
    """Classify and decode a synthesizer payload in one step."""
    return speech_to_bytes(classify_speech_output(payload))


def _job_id_of(value: Any) -> str | None:
    job_id = value.get("id") if isinstance(value, Mapping) else getattr(value, "id", None)
    return str(job_id) if job_id not in (None, "") else None


def classify_render_output(output: Any) -> RenderOutput:
    """
    Classify a renderer output.

    Raises:
        RenderFormatError: If no URL or URL resolver can be found.
    """
    if isinstance(output, str):
        if output.strip():
            return DirectUrl(output.strip())
        raise RenderFormatError("Renderer returned an empty URL")

    if isinstance(output, Mapping):
        if "url" not in output:
            raise RenderFormatError(f"Renderer output missing url property. Output: {_describe(output)}")
        url = output["url"]
    elif hasattr(output, "url"):
        url = getattr(output, "url")
    else:
        raise RenderFormatError(f"Unexpected renderer output type: {type(output).__name__}")

    job_id = _job_id_of(output)
    if callable(url):
        return DeferredUrl(url, job_id)
    if isinstance(url, str) and url.strip():
        return UrlField(url.strip(), job_id)
    raise RenderFormatError(f"Unexpected url type in renderer output: {type(url).__name__}")


async def resolve_render_url(output: RenderOutput) -> str:
    """
    Reduce a classified render output to a plain URL string.

    Deferred resolvers may be plain callables or coroutine functions.

    Raises:
        RenderFormatError: If a resolver yields something other than a non-empty string.
    """
    if isinstance(output, (DirectUrl, UrlField)):
        return output.url

    resolved = output.resolver()
    if inspect.isawaitable(resolved):
        resolved = await resolved
    if isinstance(resolved, str) and resolved.strip():
        return resolved.strip()
    raise RenderFormatError(f"Render job resolved to an unusable URL: {_describe(resolved)}")
