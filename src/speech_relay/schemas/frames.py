"""Frame types exchanged with a relay client over the WebSocket."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class TextFrame:
    """A UTF-8 text message."""

    text: str


@dataclass(frozen=True)
class BinaryFrame:
    """A raw binary message (audio in both directions)."""

    data: bytes


InboundFrame = Union[TextFrame, BinaryFrame]
OutboundFrame = Union[TextFrame, BinaryFrame]


__all__ = ["BinaryFrame", "InboundFrame", "OutboundFrame", "TextFrame"]
