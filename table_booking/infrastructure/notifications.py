# table_booking/infrastructure/notifications.py

import logging
import threading
from typing import Protocol


logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    """Fire-and-forget message delivery to a user or operator."""

    def notify(self, target_identity: str, message: str) -> None:
        ...


class LoggingNotificationSink:
    """Default sink: writes every message to the application log."""

    def notify(self, target_identity: str, message: str) -> None:
        logger.info("Notification to %s: %s", target_identity, message)


class RecordingNotificationSink:
    """
    Keeps delivered messages in memory.
    Handy for local runs and for asserting on notifications in tests.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.messages: list[tuple[str, str]] = []

    def notify(self, target_identity: str, message: str) -> None:
        with self._lock:
            self.messages.append((target_identity, message))

    def messages_for(self, target_identity: str) -> list[str]:
        with self._lock:
            return [text for target, text in self.messages if target == target_identity]
