"""
Archive client error taxonomy.
"""

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)


class ArchiveError(Exception):
    """Base exception for archive client errors."""

    pass


class ArchiveConnectionError(ArchiveError):
    """Failed to reach the archive at all. Safe for the caller to retry."""

    pass


class ArchiveDocumentNotFoundError(ArchiveError):
    """The archive answered 404, or returned no document where one was expected."""

    pass


class ArchiveAuthConfigError(ArchiveError):
    """Token auth is required but no token name is configured."""

    pass


class ArchiveAuthorizationError(ArchiveError):
    """Caller has no role that allows archive access."""

    pass


class TokenExpiredError(ArchiveError):
    """The identity provider reports that the caller's session token expired."""

    pass


class ArchiveTransportError(ArchiveError, requests.exceptions.RequestException):
    """
    Any other transport-level failure, including non-404 error statuses.

    Also a requests RequestException, so handlers written against requests
    still catch it.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[requests.Response] = None,
    ):
        self.status_code = status_code
        super().__init__(message, response=response)


class ArchiveUnexpectedResponseError(ArchiveError):
    """The archive answered with a status the operation cannot use."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"Archive returned unexpected status {status_code}: {message}")


def classify_request_exception(exc: requests.exceptions.RequestException, url: str) -> ArchiveError:
    """
    Map a requests exception onto the archive error taxonomy.

    Args:
        exc: Exception raised while sending or reading a request
        url: URL of the failed request

    Returns:
        ArchiveError to raise (caller chains it with `from exc`)
    """
    if isinstance(exc, requests.exceptions.HTTPError):
        status_code = exc.response.status_code if exc.response is not None else None
        if status_code == 404:
            logger.error(f"Document not found: {url}")
            return ArchiveDocumentNotFoundError("Document not found")
        logger.error(f"Archive API error {status_code} for {url}: {exc}")
        return ArchiveTransportError(str(exc), status_code=status_code, response=exc.response)

    if isinstance(exc, requests.exceptions.ConnectionError):
        logger.error(f"Connection error to {url}: {exc}")
        return ArchiveConnectionError(f"Failed to connect to archive at {url}: {exc}")

    if isinstance(exc, requests.exceptions.Timeout):
        logger.error(f"Timeout for {url}: {exc}")
        return ArchiveConnectionError(f"Request to archive timed out: {exc}")

    logger.error(f"Request error for {url}: {exc}")
    return ArchiveTransportError(
        f"Request failed: {exc}",
        response=getattr(exc, "response", None),
    )
