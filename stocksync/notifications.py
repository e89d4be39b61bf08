"""User-facing notification sink."""

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

logger = logging.getLogger(__name__)


class Level(str, enum.Enum):
    """Notification severity."""

    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass
class Notification:
    """A message shown to the user."""

    level: Level
    message: str
    created_at: datetime = field(default_factory=datetime.now)


class Notifier:
    """Collects notifications and forwards them to an optional display hook.

    The CLI passes a hook that prints each message; tests inspect
    :attr:`history` directly.
    """

    def __init__(self, display: Callable[[Notification], None] | None = None):
        self.display = display
        self.history: list[Notification] = []

    def _emit(self, level: Level, message: str) -> None:
        notification = Notification(level=level, message=message)
        self.history.append(notification)
        if self.display is not None:
            self.display(notification)

    def success(self, message: str) -> None:
        self._emit(Level.SUCCESS, message)

    def info(self, message: str) -> None:
        self._emit(Level.INFO, message)

    def error(self, message: str) -> None:
        logger.debug(f"Reporting error to user: {message}")
        self._emit(Level.ERROR, message)

    @property
    def errors(self) -> list[str]:
        """Messages of every error reported so far."""
        return [n.message for n in self.history if n.level == Level.ERROR]
