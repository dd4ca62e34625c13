"""NIM client tests using httpx.MockTransport in place of the network."""

from __future__ import annotations

import base64
import json
from typing import Any, Callable

import httpx
import pytest

from speech_relay.config import Settings
from speech_relay.services.nim_client import NimSpeechClient
from speech_relay.services.speech_backend import SynthesisError, TranscriptionError

pytestmark = pytest.mark.anyio

HOSTED_URL = "https://ai.api.nvidia.com/v1/genai/nvidia/riva-asr-canary-1b"
LOCAL_URL = "http://nim-asr:9000/v1/audio/transcriptions"
TTS_URL = "http://nim-tts:9000/v1/tts/synthesize"


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "nvidia_api_key": "nvapi-test",
        "nim_asr_url": HOSTED_URL,
        "nim_tts_url": TTS_URL,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)  # pyright: ignore[reportCallIssue]


def make_client(
    handler: Callable[[httpx.Request], httpx.Response], **overrides: Any
) -> tuple[NimSpeechClient, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
    return NimSpeechClient(make_settings(**overrides), http_client=http_client), seen


async def test_hosted_transcription_sends_base64_json() -> None:
    client, seen = make_client(lambda request: httpx.Response(200, json={"text": "ni hao"}))

    transcript = await client.transcribe(b"\x00\x01wav", "zh")

    assert transcript == "ni hao"
    request = seen[0]
    assert str(request.url) == HOSTED_URL
    assert request.headers["Authorization"] == "Bearer nvapi-test"
    body = json.loads(request.content)
    assert body == {
        "audio_data": base64.b64encode(b"\x00\x01wav").decode("ascii"),
        "language_code": "zh-CN",
    }


async def test_hosted_transcription_reads_transcriptions_list() -> None:
    client, _ = make_client(
        lambda request: httpx.Response(200, json={"transcriptions": [{"text": "privet"}]})
    )

    assert await client.transcribe(b"wav", "ru") == "privet"


async def test_hosted_transcription_defaults_to_empty_text() -> None:
    client, _ = make_client(lambda request: httpx.Response(200, json={"status": "ok"}))

    assert await client.transcribe(b"wav", "en") == ""


async def test_hosted_function_name_is_expanded() -> None:
    client, seen = make_client(
        lambda request: httpx.Response(200, json={"text": "ok"}),
        nim_asr_url="ai.api.nvidia.com-function",
    )

    await client.transcribe(b"wav", "en")

    assert str(seen[0].url) == (
        "https://ai.api.nvidia.com/v1/genai/nvidia/ai.api.nvidia.com-function"
    )


async def test_hosted_transcription_error_status() -> None:
    client, _ = make_client(lambda request: httpx.Response(401, text="bad key"))

    with pytest.raises(TranscriptionError) as excinfo:
        await client.transcribe(b"wav", "en")

    assert excinfo.value.message == "NIM ASR API Error (Hosted): bad key"


async def test_hosted_transcription_requires_api_key() -> None:
    client, seen = make_client(
        lambda request: httpx.Response(200, json={"text": "unused"}),
        nvidia_api_key=None,
    )

    with pytest.raises(TranscriptionError):
        await client.transcribe(b"wav", "en")

    assert seen == []


async def test_local_transcription_sends_multipart() -> None:
    client, seen = make_client(
        lambda request: httpx.Response(200, json={"text": "hello"}),
        nim_asr_url=LOCAL_URL,
    )

    transcript = await client.transcribe(b"RIFFdata", "fr")

    assert transcript == "hello"
    request = seen[0]
    assert str(request.url) == LOCAL_URL
    assert "Authorization" not in request.headers
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    content = request.content
    assert b'filename="audio.wav"' in content
    assert b"RIFFdata" in content
    assert b"canary-1b" in content
    assert b"en-US" in content


async def test_local_transcription_error_status() -> None:
    client, _ = make_client(
        lambda request: httpx.Response(500, text="model not loaded"),
        nim_asr_url=LOCAL_URL,
    )

    with pytest.raises(TranscriptionError) as excinfo:
        await client.transcribe(b"wav", "en")

    assert excinfo.value.message == "NIM ASR API Error (Local): model not loaded"


async def test_transport_failure_becomes_transcription_error() -> None:
    def _refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client, _ = make_client(_refuse, nim_asr_url=LOCAL_URL)

    with pytest.raises(TranscriptionError) as excinfo:
        await client.transcribe(b"wav", "en")

    assert "connection refused" in excinfo.value.message


async def test_synthesis_decodes_audio_content() -> None:
    audio = b"RIFF\x00\x00WAVEfmt"
    client, seen = make_client(
        lambda request: httpx.Response(
            200, json={"audio_content": base64.b64encode(audio).decode("ascii")}
        )
    )

    assert await client.synthesize("hello") == audio
    request = seen[0]
    assert str(request.url) == TTS_URL
    assert json.loads(request.content) == {
        "text": "hello",
        "speaker": "English-US.Female-1",
    }
    assert request.headers["Authorization"] == "Bearer nvapi-test"


async def test_synthesis_missing_audio_content() -> None:
    client, _ = make_client(lambda request: httpx.Response(200, json={"status": "done"}))

    with pytest.raises(SynthesisError) as excinfo:
        await client.synthesize("hello")

    assert excinfo.value.message == "Could not find audio_content in response"


async def test_synthesis_error_status_mentions_container() -> None:
    client, _ = make_client(lambda request: httpx.Response(503, text="busy"))

    with pytest.raises(SynthesisError) as excinfo:
        await client.synthesize("hello")

    assert excinfo.value.message.startswith("NIM TTS API Error: busy.")
    assert TTS_URL in excinfo.value.message


async def test_synthesis_rejects_non_json_body() -> None:
    client, _ = make_client(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(SynthesisError):
        await client.synthesize("hello")


async def test_aclose_keeps_injected_client_open() -> None:
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={}))
    )
    client = NimSpeechClient(make_settings(), http_client=http_client)

    await client.aclose()

    assert not http_client.is_closed
    await http_client.aclose()
