# launcher/ui.py
import logging


class UI:
    """User-facing progress output, mirrored into the log."""

    def __init__(self, prefix="", stream=None):
        self.prefix = prefix
        self.stream = stream
        self.log = logging.getLogger("launcher.ui")

    def _emit(self, text):
        print(f"{self.prefix}{text}", file=self.stream)

    def info(self, message):
        self.log.info(message)
        self._emit(message)

    def warn(self, message):
        self.log.warning(message)
        self._emit(f"⚠️ {message}")
