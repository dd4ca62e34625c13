"""Contracts for the remote speech recognition and synthesis backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, Protocol, TypeVar

T = TypeVar("T")


class SpeechBackendError(Exception):
    """A recoverable failure reported by the speech backend."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TranscriptionError(SpeechBackendError):
    """The backend rejected or could not process the audio."""


class SynthesisError(SpeechBackendError):
    """The backend rejected or could not process the text."""


class SpeechBackend(Protocol):
    """Stateless ASR/TTS capability shared by every connection."""

    async def transcribe(self, audio: bytes, language_code: str) -> str:
        """Return the transcript for ``audio`` spoken in ``language_code``."""

    async def synthesize(self, text: str) -> bytes:
        """Return playable audio bytes for ``text``."""


@dataclass(frozen=True)
class StageResult(Generic[T]):
    """Outcome of one backend call: a value, or a client-visible error message."""

    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


__all__ = [
    "SpeechBackend",
    "SpeechBackendError",
    "StageResult",
    "SynthesisError",
    "TranscriptionError",
]
