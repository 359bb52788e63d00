import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class MessageHandler:
    """Relays editor notifications to the user-facing status callback."""

    DURATIONS = {"info": 3, "warning": 4, "error": 6}

    def __init__(self, set_status: Optional[Callable[[str, float], None]] = None):
        self._set_status = set_status
        self.last_message: Optional[tuple[str, str]] = None

    def _notify(self, severity: str, text: str):
        self.last_message = (severity, text)
        if self._set_status is not None:
            self._set_status(text, self.DURATIONS[severity])

    def info(self, text: str):
        logger.info(text)
        self._notify("info", text)

    def warning(self, text: str):
        logger.warning(text)
        self._notify("warning", text)

    def error(self, text: str):
        logger.error(text)
        self._notify("error", text)

    def log(self, text: str):
        logger.debug(text)

    def handle_message(self, message: dict) -> bool:
        """Dispatch a ``{"command": ..., "text": ...}`` message; False if unknown."""
        command = message.get("command")
        text = str(message.get("text", ""))
        handlers = {
            "info": self.info,
            "warning": self.warning,
            "error": self.error,
            "log": self.log,
        }
        handler = handlers.get(command)
        if handler is None:
            logger.debug("Ignoring unknown message command %r", command)
            return False
        handler(text)
        return True
