"""
Operation and exception events for the audit sink.
"""

import logging
from typing import Any

from ..collaborators import NotificationSink

logger = logging.getLogger(__name__)

EXCEPTION_OPERATION = "EXCEPTION"


class Notifier:
    """Build structured events and hand them to the sink."""

    def __init__(self, sink: NotificationSink, module: str = "archive_client"):
        self.sink = sink
        self.module = module

    def operation(self, name: str, **target: Any) -> None:
        """Report one successful archive operation."""
        self._dispatch(
            {
                "operation": name.upper(),
                "status": "SUCCESS",
                "target": {"module": self.module, **target},
            }
        )

    def exception(self, exc: BaseException) -> None:
        """Report one classified failure."""
        self._dispatch(
            {
                "operation": EXCEPTION_OPERATION,
                "target": {
                    "message": str(exc),
                    "type": type(exc).__name__,
                    "module": self.module,
                },
            }
        )

    def _dispatch(self, event: dict[str, Any]) -> None:
        try:
            self.sink.dispatch(event)
        except Exception as e:
            # Sink errors never reach the caller
            logger.error(f"Notification sink failed for {event['operation']}: {e}")
