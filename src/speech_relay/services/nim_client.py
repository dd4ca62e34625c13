"""NVIDIA NIM speech backend (Riva/Canary ASR and FastPitch/Magpie TTS)."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import Any, Optional

import httpx

from speech_relay.config import Settings
from speech_relay.languages import to_backend_locale
from speech_relay.services.speech_backend import SynthesisError, TranscriptionError

logger = logging.getLogger(__name__)

HOSTED_API_HOST = "ai.api.nvidia.com"
HOSTED_ASR_BASE_URL = "https://ai.api.nvidia.com/v1/genai/nvidia/"
LOCAL_ASR_FALLBACK_URL = "http://nim-asr:9000/v1/audio/transcriptions"


def _describe(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


class NimSpeechClient:
    """
    SpeechBackend backed by NVIDIA NIM HTTP endpoints.

    Transcription talks to either the hosted NVIDIA API (JSON + base64 audio)
    or a local NIM container (OpenAI-style multipart upload), chosen from
    the configured ASR URL. Synthesis posts JSON and decodes the base64
    ``audio_content`` field.

    One pooled httpx.AsyncClient is shared by every connection; the client
    holds no per-session state.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._settings = settings
        self._http_client = http_client
        self._owns_client = http_client is None
        self._client_lock = asyncio.Lock()

        if not self.api_key:
            logger.warning("NVIDIA_API_KEY is not set. Hosted NIM endpoints will reject requests.")

    @property
    def api_key(self) -> Optional[str]:
        key = self._settings.nvidia_api_key
        return key.get_secret_value() if key else None

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client

        async with self._client_lock:
            if self._http_client is None:
                timeout = httpx.Timeout(self._settings.backend_timeout_seconds, connect=10.0)
                self._http_client = httpx.AsyncClient(timeout=timeout)
                logger.info("Created shared httpx.AsyncClient for NIM")
        return self._http_client

    async def aclose(self) -> None:
        """Close the pooled HTTP client. Call on app shutdown."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
            logger.info("Closed NIM HTTP client")

    async def transcribe(self, audio: bytes, language_code: str) -> str:
        locale = to_backend_locale(language_code)
        base_url = self._settings.nim_asr_url
        if HOSTED_API_HOST in base_url:
            return await self._transcribe_hosted(audio, locale, base_url)
        return await self._transcribe_local(audio, locale, base_url)

    async def _transcribe_hosted(self, audio: bytes, locale: str, base_url: str) -> str:
        invoke_url = base_url if base_url.startswith("http") else f"{HOSTED_ASR_BASE_URL}{base_url}"
        if not self.api_key:
            raise TranscriptionError("NVIDIA_API_KEY is not set")

        payload = {
            "audio_data": base64.b64encode(audio).decode("ascii"),
            "language_code": locale,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        client = await self._get_http_client()
        try:
            response = await client.post(invoke_url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            raise TranscriptionError(_describe(exc)) from exc

        if response.is_error:
            raise TranscriptionError(f"NIM ASR API Error (Hosted): {response.text}")

        body = self._json_body(response, TranscriptionError)
        text = body.get("text")
        if isinstance(text, str):
            return text
        transcriptions = body.get("transcriptions")
        if transcriptions:
            try:
                first = transcriptions[0]["text"]
            except (IndexError, KeyError, TypeError):
                return ""
            return first if isinstance(first, str) else ""
        return ""

    async def _transcribe_local(self, audio: bytes, locale: str, base_url: str) -> str:
        invoke_url = base_url if base_url.startswith("http") else LOCAL_ASR_FALLBACK_URL
        logger.debug(f"Sending multipart ASR request to {invoke_url} [Lang: {locale}]")

        files = {"file": ("audio.wav", audio, "audio/wav")}
        data = {
            "model": self._settings.nim_asr_model,
            "language": locale,
            "response_format": "json",
        }

        client = await self._get_http_client()
        try:
            response = await client.post(invoke_url, files=files, data=data)
        except httpx.HTTPError as exc:
            raise TranscriptionError(_describe(exc)) from exc

        if response.is_error:
            raise TranscriptionError(f"NIM ASR API Error (Local): {response.text}")

        body = self._json_body(response, TranscriptionError)
        text = body.get("text")
        return text if isinstance(text, str) else ""

    async def synthesize(self, text: str) -> bytes:
        url = self._settings.nim_tts_url
        payload = {
            "text": text,
            "speaker": self._settings.nim_tts_speaker,
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        client = await self._get_http_client()
        try:
            response = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            raise SynthesisError(_describe(exc)) from exc

        if response.is_error:
            raise SynthesisError(
                f"NIM TTS API Error: {response.text}. "
                f"(If running locally, ensure 'nim-tts' container is running at {url})"
            )

        body = self._json_body(response, SynthesisError)
        audio_content = body.get("audio_content")
        if not isinstance(audio_content, str):
            raise SynthesisError("Could not find audio_content in response")
        try:
            return base64.b64decode(audio_content, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise SynthesisError(f"Invalid audio_content encoding: {exc}") from exc

    @staticmethod
    def _json_body(response: httpx.Response, error_cls: type) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as exc:
            raise error_cls(f"Invalid JSON from NIM: {exc}") from exc
        if not isinstance(body, dict):
            raise error_cls("Unexpected response payload from NIM")
        return body


__all__ = ["NimSpeechClient"]
