"""
Archive API client.

Provides:
- Document search/get/create/patch/delete
- Attachment upload/download/delete
- GDPR export and delete
- API-key or bearer-token auth chosen per caller
- Bounded pagination and response caching
"""

from .auth import AuthHeaderResolver, AuthMode, ResolvedAuth, has_allowed_role
from .client import ArchiveClient
from .errors import (
    ArchiveAuthConfigError,
    ArchiveAuthorizationError,
    ArchiveConnectionError,
    ArchiveDocumentNotFoundError,
    ArchiveError,
    ArchiveTransportError,
    ArchiveUnexpectedResponseError,
    TokenExpiredError,
)
from .notifier import Notifier
from .transport import RequestExecutor
from .urls import HostnameRewriter, NoopRewriter, UrlRewriter, build_url

__all__ = [
    "ArchiveAuthConfigError",
    "ArchiveAuthorizationError",
    "ArchiveClient",
    "ArchiveConnectionError",
    "ArchiveDocumentNotFoundError",
    "ArchiveError",
    "ArchiveTransportError",
    "ArchiveUnexpectedResponseError",
    "AuthHeaderResolver",
    "AuthMode",
    "HostnameRewriter",
    "NoopRewriter",
    "Notifier",
    "RequestExecutor",
    "ResolvedAuth",
    "TokenExpiredError",
    "UrlRewriter",
    "build_url",
    "has_allowed_role",
]
