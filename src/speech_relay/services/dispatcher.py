"""
Per-connection message dispatcher.

Classifies each inbound frame and drives the speech pipeline:

    BinaryFrame            → transcribe → "Transcript: ..." → synthesize → BinaryFrame
    TextFrame (config)     → update SessionState, nothing sent
    TextFrame ("/speak x") → synthesize(x) → BinaryFrame
    TextFrame (other)      → "Echo: ..."

Backend failures never escape dispatch(). A transcription failure ends the
pipeline for that frame with an "Error: ..." frame. A synthesis failure is
reported as "TTS Error: ..." and keeps whatever was already emitted.
"""

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar

from speech_relay.schemas.control import parse_control_message
from speech_relay.schemas.frames import BinaryFrame, InboundFrame, OutboundFrame, TextFrame
from speech_relay.services.session import SessionState
from speech_relay.services.speech_backend import (
    SpeechBackend,
    SpeechBackendError,
    StageResult,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SPEAK_PREFIX = "/speak "
TRANSCRIPT_PREFIX = "Transcript: "
ERROR_PREFIX = "Error: "
TTS_ERROR_PREFIX = "TTS Error: "
ECHO_PREFIX = "Echo: "


class MessageDispatcher:
    """Turns inbound frames from one connection into outbound frames."""

    def __init__(
        self,
        backend: SpeechBackend,
        session: Optional[SessionState] = None,
        *,
        backend_timeout: Optional[float] = None,
    ):
        self.backend = backend
        self.session = session if session is not None else SessionState()
        self.backend_timeout = backend_timeout

    async def dispatch(self, frame: InboundFrame) -> AsyncIterator[OutboundFrame]:
        """Yield the outbound frames for ``frame`` in delivery order.

        Frames are yielded as soon as they exist, so a transcript can reach
        the client while synthesis is still running.
        """
        if isinstance(frame, BinaryFrame):
            async for out in self._handle_audio(frame.data):
                yield out
            return

        text = frame.text
        logger.debug(f"Received text: {text}")

        control = parse_control_message(text)
        if control is not None:
            self.session.apply(control)
            return

        if text.startswith(SPEAK_PREFIX):
            prompt = text[len(SPEAK_PREFIX):]
            logger.info(f"Synthesizing text: {prompt}")
            async for out in self._synthesize_to_frames(prompt):
                yield out
            return

        yield TextFrame(ECHO_PREFIX + text)

    async def _handle_audio(self, audio: bytes) -> AsyncIterator[OutboundFrame]:
        source = self.session.source_language
        logger.debug(f"Received audio data of size: {len(audio)} bytes [Source: {source}]")

        transcribed = await self._run_stage(
            "Transcription", lambda: self.backend.transcribe(audio, source)
        )
        if not transcribed.ok:
            logger.error(f"ASR error: {transcribed.error}")
            yield TextFrame(ERROR_PREFIX + str(transcribed.error))
            return

        transcript = transcribed.value or ""
        logger.info(f"Transcript [{source}]: {transcript}")
        yield TextFrame(TRANSCRIPT_PREFIX + transcript)

        # TODO: route through a translation step once target_language is honoured
        async for out in self._synthesize_to_frames(transcript):
            yield out

    async def _synthesize_to_frames(self, text: str) -> AsyncIterator[OutboundFrame]:
        synthesized = await self._run_stage(
            "Synthesis", lambda: self.backend.synthesize(text)
        )
        if not synthesized.ok:
            logger.error(f"TTS error: {synthesized.error}")
            yield TextFrame(TTS_ERROR_PREFIX + str(synthesized.error))
            return

        audio = synthesized.value or b""
        logger.info(f"Generated TTS audio: {len(audio)} bytes")
        yield BinaryFrame(audio)

    async def _run_stage(
        self, stage: str, call: Callable[[], Awaitable[T]]
    ) -> StageResult[T]:
        """Run one backend call, converting every failure into a StageResult."""
        try:
            if self.backend_timeout is None:
                value = await call()
            else:
                value = await asyncio.wait_for(call(), timeout=self.backend_timeout)
        except SpeechBackendError as exc:
            return StageResult(error=exc.message)
        except asyncio.TimeoutError:
            message = f"{stage} timed out"
            if self.backend_timeout is not None:
                message += f" after {self.backend_timeout:g}s"
            logger.warning(message)
            return StageResult(error=message)
        except Exception as exc:
            logger.error(f"Unexpected {stage.lower()} failure: {exc}", exc_info=True)
            return StageResult(error=str(exc) or exc.__class__.__name__)
        return StageResult(value=value)


__all__ = [
    "ECHO_PREFIX",
    "ERROR_PREFIX",
    "MessageDispatcher",
    "SPEAK_PREFIX",
    "TRANSCRIPT_PREFIX",
    "TTS_ERROR_PREFIX",
]
