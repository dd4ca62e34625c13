import logging
from dataclasses import dataclass

from speech_relay.languages import DEFAULT_LANGUAGE
from speech_relay.schemas.control import ControlMessage

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    """Per-connection language configuration, owned by one dispatcher."""

    source_language: str = DEFAULT_LANGUAGE
    target_language: str = DEFAULT_LANGUAGE

    def apply(self, message: ControlMessage) -> None:
        """Apply a config message; codes are stored verbatim without validation."""
        if message.source is not None:
            logger.info(f"Updating source language to: {message.source}")
            self.source_language = message.source
        if message.target is not None:
            logger.info(f"Updating target language to: {message.target}")
            self.target_language = message.target
