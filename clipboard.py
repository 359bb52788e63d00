import logging
import subprocess

from errors import ClipboardError

logger = logging.getLogger(__name__)


class Clipboard:
    """Plain-text clipboard backed by configured shell commands."""

    def __init__(self, config: dict | None = None):
        config = config or {}
        self.write_cmd = config.get("CLIPBOARD_INTERFACE_COMMAND")
        self.read_cmd = config.get("CLIPBOARD_READ_COMMAND")

    def copy(self, text: str):
        if not self.write_cmd:
            raise ClipboardError(
                "Clipboard not configured (set clipboard_interface_command in config.json)"
            )
        try:
            subprocess.run(self.write_cmd, input=text, text=True, check=True)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise ClipboardError(f"Copy failed: {exc}") from exc
        logger.debug("Copied %d characters", len(text))

    def paste(self) -> str:
        if not self.read_cmd:
            raise ClipboardError(
                "Clipboard not configured (set clipboard_read_command in config.json)"
            )
        try:
            result = subprocess.run(
                self.read_cmd, capture_output=True, text=True, check=True
            )
        except (OSError, subprocess.CalledProcessError) as exc:
            raise ClipboardError(f"Paste failed: {exc}") from exc
        return result.stdout
