from enum import Enum
from typing import Callable, Optional

from chunkstash.utils import logger


class Severity(str, Enum):
    info = "info"
    error = "error"
    success = "success"


Observer = Callable[[str, Severity], None]


def notify(observer: Optional[Observer], message: str, severity: Severity = Severity.info):
    """Log message and forward it to observer. A failing observer is logged and never propagated."""
    if severity == Severity.error:
        logger.fs.error(message)
    elif severity == Severity.success:
        logger.fs.success(message)
    else:
        logger.fs.info(message)
    if observer is None:
        return
    try:
        observer(message, severity)
    except Exception as e:
        logger.fs.warning(f"Observer {getattr(observer, '__name__', observer)} raised while reporting: {e}")


class RecordingObserver:
    """Keeps every (message, severity) pair it receives."""

    def __init__(self):
        self.events = []

    def __call__(self, message: str, severity: Severity):
        self.events.append((message, severity))

    def messages(self, severity: Optional[Severity] = None):
        return [message for message, sev in self.events if severity is None or sev == severity]
