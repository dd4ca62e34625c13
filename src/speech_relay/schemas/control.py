"""Control message schema for live language reconfiguration."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, ValidationError

CONFIG_MESSAGE_TYPE = "config"


class ControlMessage(BaseModel):
    """`{"type": "config", "source"?: str, "target"?: str}` sent as a text frame."""

    type: str
    source: Optional[str] = Field(
        default=None,
        description="New source language code; absent or null leaves it unchanged.",
    )
    target: Optional[str] = Field(
        default=None,
        description="New target language code; absent or null leaves it unchanged.",
    )


def parse_control_message(text: str) -> ControlMessage | None:
    """Return the control message encoded in ``text``, or None.

    Anything that is not a JSON object of the expected shape with
    ``type == "config"`` is not a control message.
    """

    try:
        message = ControlMessage.model_validate_json(text)
    except ValidationError:
        return None
    if message.type != CONFIG_MESSAGE_TYPE:
        return None
    return message


__all__ = ["CONFIG_MESSAGE_TYPE", "ControlMessage", "parse_control_message"]
