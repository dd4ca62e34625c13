"""
Connection loop for a single relay WebSocket.

Architecture:
    websocket.receive() → inbound_queue → MessageDispatcher → outbound_queue → websocket.send_*

Three tasks run per connection:
- the receiver converts ASGI messages into frames
- the worker dispatches frames strictly one at a time, so frame N+1 is
  not touched until every frame produced for frame N is queued
- the sender writes outbound frames in queue order

The session ends when the client disconnects or a transport read/write
fails. Backend failures are handled inside the dispatcher and never end it.
"""

import asyncio
import logging
from contextlib import suppress
from typing import Optional

from fastapi import WebSocket, WebSocketDisconnect

from speech_relay.schemas.frames import BinaryFrame, InboundFrame, OutboundFrame, TextFrame
from speech_relay.services.dispatcher import MessageDispatcher

logger = logging.getLogger(__name__)


class ConnectionLoop:
    """Pumps frames between one WebSocket and its dispatcher."""

    def __init__(
        self,
        websocket: WebSocket,
        dispatcher: MessageDispatcher,
        *,
        queue_size: int = 32,
        client_label: str = "client",
    ):
        self.websocket = websocket
        self.dispatcher = dispatcher
        self.client_label = client_label
        self._inbound: asyncio.Queue[InboundFrame] = asyncio.Queue(maxsize=queue_size)
        self._outbound: asyncio.Queue[OutboundFrame] = asyncio.Queue(maxsize=queue_size)

    async def run(self) -> None:
        """Run until the client goes away or the transport fails."""
        receiver = asyncio.create_task(self._receive())
        worker = asyncio.create_task(self._work())
        sender = asyncio.create_task(self._send())
        tasks = [receiver, worker, sender]

        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            for task in tasks:
                with suppress(asyncio.CancelledError):
                    try:
                        await task
                    except Exception as e:
                        logger.error(
                            f"Connection task failed for {self.client_label}: {e}",
                            exc_info=True,
                        )

    async def _receive(self) -> None:
        while True:
            try:
                message = await self.websocket.receive()
            except RuntimeError as e:
                logger.error(f"WebSocket receive error for {self.client_label}: {e}")
                return

            if message.get("type") == "websocket.disconnect":
                logger.info(f"{self.client_label} disconnected")
                return

            frame = self._to_frame(message)
            if frame is None:
                continue
            await self._inbound.put(frame)

    @staticmethod
    def _to_frame(message: dict) -> Optional[InboundFrame]:
        data = message.get("bytes")
        if data is not None:
            return BinaryFrame(data)
        text = message.get("text")
        if text is not None:
            return TextFrame(text)
        return None

    async def _work(self) -> None:
        while True:
            frame = await self._inbound.get()
            async for out in self.dispatcher.dispatch(frame):
                await self._outbound.put(out)

    async def _send(self) -> None:
        while True:
            frame = await self._outbound.get()
            try:
                if isinstance(frame, BinaryFrame):
                    await self.websocket.send_bytes(frame.data)
                else:
                    await self.websocket.send_text(frame.text)
            except (WebSocketDisconnect, RuntimeError, OSError) as e:
                logger.error(f"Failed to send to {self.client_label}: {e}")
                return


__all__ = ["ConnectionLoop"]
