"""
Test doubles and constants for archive client tests.

- RecordingSink: keeps every notification event
- FakeTokenProvider: settable roles/tokens, can simulate token expiry
- MemoryFileStore: keeps downloaded attachments in memory
"""

from typing import Any

from archive_client.archive_api import TokenExpiredError
from archive_client.collaborators import FileStore, NotificationSink, TokenProvider

BASE_URL = "http://archive.test"
API_KEY = "fake-api-key"
TOKEN_NAME = "archive-user-token"
USER_TOKEN = "tokenFromIdentityProvider"


class RecordingSink(NotificationSink):
    """Notification sink that keeps every event."""

    def __init__(self):
        self.events: list[dict[str, Any]] = []

    def dispatch(self, event: dict[str, Any]) -> None:
        self.events.append(event)

    def operations(self) -> list[dict[str, Any]]:
        return [e for e in self.events if e["operation"] != "EXCEPTION"]

    def exceptions(self) -> list[dict[str, Any]]:
        return [e for e in self.events if e["operation"] == "EXCEPTION"]


class FakeTokenProvider(TokenProvider):
    """Token provider with settable roles/tokens and an expiry switch."""

    def __init__(self, roles: list[str], tokens: dict[str, str] | None = None):
        self.roles = roles
        self.tokens = tokens if tokens is not None else {TOKEN_NAME: USER_TOKEN}
        self.expired = False

    def current_caller_roles(self) -> list[str]:
        if self.expired:
            raise TokenExpiredError("Session token expired")
        return self.roles

    def access_tokens(self) -> dict[str, str]:
        if self.expired:
            raise TokenExpiredError("Session token expired")
        return self.tokens


class MemoryFileStore(FileStore):
    """File store that keeps written files in a dict."""

    def __init__(self):
        self.files: dict[str, bytes] = {}

    def write(self, data: bytes, destination: str) -> str:
        self.files[destination] = data
        return f"memory://{destination}"
