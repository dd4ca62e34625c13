import pathlib
import sys
from typing import Optional

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from speech_relay.services.speech_backend import (  # noqa: E402
    SynthesisError,
    TranscriptionError,
)


class FakeSpeechBackend:
    """Scriptable SpeechBackend that records every call."""

    def __init__(
        self,
        transcript: str = "hello there",
        audio: bytes = b"RIFF-fake-audio",
        transcribe_error: Optional[Exception] = None,
        synthesize_error: Optional[Exception] = None,
    ):
        self.transcript = transcript
        self.audio = audio
        self.transcribe_error = transcribe_error
        self.synthesize_error = synthesize_error
        self.transcribe_calls: list[tuple[bytes, str]] = []
        self.synthesize_calls: list[str] = []

    async def transcribe(self, audio: bytes, language_code: str) -> str:
        self.transcribe_calls.append((audio, language_code))
        if self.transcribe_error is not None:
            raise self.transcribe_error
        return self.transcript

    async def synthesize(self, text: str) -> bytes:
        self.synthesize_calls.append(text)
        if self.synthesize_error is not None:
            raise self.synthesize_error
        return self.audio


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def fake_backend() -> FakeSpeechBackend:
    return FakeSpeechBackend()


@pytest.fixture
def failing_asr_backend() -> FakeSpeechBackend:
    return FakeSpeechBackend(transcribe_error=TranscriptionError("asr unavailable"))


@pytest.fixture
def failing_tts_backend() -> FakeSpeechBackend:
    return FakeSpeechBackend(synthesize_error=SynthesisError("tts unavailable"))
