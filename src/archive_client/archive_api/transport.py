"""
Request execution: one logical archive call, including pagination.
"""

import logging
import time
from pathlib import PurePosixPath
from typing import Any, Optional
from urllib.parse import urljoin

import requests

from ..collaborators import FileStore
from ..schemas import ArchiveDocument, ArchiveResult, ResultKind
from .errors import classify_request_exception
from .urls import NoopRewriter, UrlRewriter

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 10
DEFAULT_TIMEOUT = 30
DEFAULT_FILENAME = "attachment"


def parse_attachment_filename(content_disposition: str) -> Optional[str]:
    """
    Get the filename of an attachment response.

    Args:
        content_disposition: Content-Disposition header value

    Returns:
        Filename, or None if the header does not mark an attachment
    """
    parts = [part.strip() for part in content_disposition.split(";")]
    if not parts or parts[0].lower() != "attachment":
        return None

    for part in parts[1:]:
        name, _, value = part.partition("=")
        if name.strip().lower() == "filename":
            filename = PurePosixPath(value.strip().strip("\"'")).name
            if filename:
                return filename
    return DEFAULT_FILENAME


def _decode_json(response: requests.Response) -> Any:
    """Decode a JSON body; undecodable or empty bodies give None."""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        logger.debug(f"Response from {response.url} is not JSON, treating as empty")
        return None


class RequestExecutor:
    """
    Issue archive requests and normalize the responses.

    - Attachments (Content-Disposition: attachment) go to the file store
    - JSON bodies become ArchiveDocument rows
    - Paginated results are followed until `count` is reached, `next` runs
      out, or max_pages calls have been made
    """

    def __init__(
        self,
        session: requests.Session,
        file_store: FileStore,
        rewriter: Optional[UrlRewriter] = None,
        max_pages: int = DEFAULT_MAX_PAGES,
        timeout: int = DEFAULT_TIMEOUT,
        debug: bool = False,
    ):
        self.session = session
        self.file_store = file_store
        self.rewriter = rewriter or NoopRewriter()
        self.max_pages = max(1, max_pages)
        self.timeout = timeout
        self.debug = debug

    def _send(self, method: str, url: str, headers: dict[str, str], **options: Any) -> requests.Response:
        start = time.monotonic()
        try:
            response = self.session.request(
                method=method,
                url=url,
                headers=headers,
                timeout=self.timeout,
                **options,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise classify_request_exception(e, url) from e
        finally:
            if self.debug:
                elapsed_ms = (time.monotonic() - start) * 1000
                logger.debug(f"Archive {method} query {url} took {elapsed_ms:.0f} ms")
        return response

    def execute(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        **options: Any,
    ) -> ArchiveResult:
        """
        Execute one logical call.

        Args:
            method: HTTP method
            url: Absolute URL
            headers: Complete request headers (auth already merged in)
            **options: Passed to requests (files, data, ...)

        Returns:
            ArchiveResult tagged with what the response contained

        Raises:
            ArchiveConnectionError: Archive unreachable or timed out
            ArchiveDocumentNotFoundError: 404
            ArchiveTransportError: Any other transport failure
        """
        headers = dict(headers or {})
        method = method.upper()

        rows: list[Any] = []
        pages = 0
        body: Any = None
        current_url = url

        while True:
            response = self._send(method, current_url, headers, **options)
            pages += 1

            filename = parse_attachment_filename(response.headers.get("Content-Disposition", ""))
            if filename is not None:
                return self._file_result(response, filename, pages)

            page = _decode_json(response)
            if not isinstance(page, dict) or not isinstance(page.get("results"), list):
                if pages == 1:
                    body = page
                else:
                    logger.warning(f"Page {pages} of {url} carried no results, stopping")
                break

            body = page
            rows.extend(page["results"])

            count = page.get("count")
            next_url = page.get("next")
            if count is None or count == len(rows) or not next_url:
                break
            if pages >= self.max_pages:
                logger.warning(
                    f"Stopped paging {url} after {pages} pages "
                    f"({len(rows)} of {count} results)"
                )
                break

            current_url = self.rewriter.rewrite(urljoin(current_url, next_url))

        return self._json_result(method, response, body, rows, pages)

    def _file_result(self, response: requests.Response, filename: str, pages: int) -> ArchiveResult:
        handle = self.file_store.write(response.content, filename)
        if response.status_code in (200, 201):
            return ArchiveResult(ResultKind.FILE, response.status_code, file=handle, pages=pages)
        return ArchiveResult(ResultKind.UNHANDLED, response.status_code, file=handle, pages=pages)

    def _json_result(
        self,
        method: str,
        response: requests.Response,
        body: Any,
        rows: list[Any],
        pages: int,
    ) -> ArchiveResult:
        status = response.status_code

        if status == 204 and method == "DELETE":
            return ArchiveResult(ResultKind.DELETED, status, pages=pages)

        if status not in (200, 201):
            return ArchiveResult(ResultKind.UNHANDLED, status, pages=pages)

        if isinstance(body, dict) and isinstance(body.get("results"), list):
            documents = [
                ArchiveDocument.create(row) if isinstance(row, dict) else row for row in rows
            ]
            kind = ResultKind.DOCUMENTS if documents else ResultKind.EMPTY
            merged = {**body, "results": rows}
            return ArchiveResult(kind, status, documents=documents, body=merged, pages=pages)

        if isinstance(body, dict) and body:
            # Bare object (single document) response
            return ArchiveResult(
                ResultKind.DOCUMENTS,
                status,
                documents=[ArchiveDocument.create(body)],
                body=body,
                pages=pages,
            )

        return ArchiveResult(ResultKind.EMPTY, status, pages=pages)
