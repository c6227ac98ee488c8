"""
Interfaces for the collaborators the archive client depends on.

- FileStore: persists downloaded attachment bytes and returns a handle
- TokenProvider: supplies the caller's roles and bearer tokens
- NotificationSink: receives operation and exception events for auditing
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class FileStore(ABC):
    """Byte sink for attachments received from the archive."""

    @abstractmethod
    def write(self, data: bytes, destination: str) -> Any:
        """
        Persist bytes.

        Args:
            data: Raw attachment content
            destination: Destination hint (the attachment filename)

        Returns:
            Handle for the stored file
        """
        pass


class TokenProvider(ABC):
    """
    Identity provider for the current caller.

    Either method may raise TokenExpiredError when the caller's session
    token has expired.
    """

    @abstractmethod
    def current_caller_roles(self) -> list[str]:
        """Roles held by the current caller."""
        pass

    @abstractmethod
    def access_tokens(self) -> dict[str, str]:
        """Named bearer tokens available to the current caller."""
        pass


class NotificationSink(ABC):
    """Receiver for structured operation/exception events."""

    @abstractmethod
    def dispatch(self, event: dict[str, Any]) -> None:
        """Deliver one event."""
        pass


class LocalFileStore(FileStore):
    """Store attachments as files under a root directory."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def write(self, data: bytes, destination: str) -> Path:
        # Drop directory parts so a hostile filename cannot escape root
        path = self.root / Path(destination).name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.debug(f"Stored attachment {path} ({len(data)} bytes)")
        return path


class StaticTokenProvider(TokenProvider):
    """Token provider with fixed roles and tokens (service accounts, scripts)."""

    def __init__(self, roles: list[str] | None = None, tokens: dict[str, str] | None = None):
        self.roles = list(roles or [])
        self.tokens = dict(tokens or {})

    def current_caller_roles(self) -> list[str]:
        return list(self.roles)

    def access_tokens(self) -> dict[str, str]:
        return dict(self.tokens)


class LoggingNotificationSink(NotificationSink):
    """Write events to a logger as JSON lines."""

    def __init__(self, audit_logger: logging.Logger | None = None):
        self.audit_logger = audit_logger or logging.getLogger("archive_client.audit")

    def dispatch(self, event: dict[str, Any]) -> None:
        level = logging.WARNING if event.get("operation") == "EXCEPTION" else logging.INFO
        self.audit_logger.log(level, json.dumps(event, sort_keys=True, default=str))
