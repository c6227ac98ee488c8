"""
Archive API client implementation.
"""

import json
import logging
from pathlib import Path
from typing import Any, BinaryIO, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..cache import ResponseCache, cache_key
from ..collaborators import FileStore, LoggingNotificationSink, NotificationSink, TokenProvider
from ..config import ArchiveConfig, ConfigValidationError, load_config
from ..schemas import ArchiveDocument, ArchiveResult, ResultKind, sanitize_content
from .auth import AuthHeaderResolver, AuthMode, merge_headers
from .errors import (
    ArchiveAuthorizationError,
    ArchiveDocumentNotFoundError,
    ArchiveError,
    ArchiveUnexpectedResponseError,
)
from .notifier import Notifier
from .transport import RequestExecutor
from .urls import UrlRewriter, build_url, rewriter_for

logger = logging.getLogger(__name__)


def _document_cache_key(document_id: Optional[str]) -> str:
    # Separate from search keys such as cache_key({"id": ...})
    return cache_key({"document": document_id})


class ArchiveClient:
    """
    Client for the document archive API.

    Features:
    - Search, fetch, create, patch and delete documents
    - Upload, download and delete attachments
    - GDPR export/delete of one user's data (always API-key auth)
    - Per-caller credential selection (API key or bearer token)
    - Optional response cache for searches
    - Operation/exception events for the audit sink
    """

    def __init__(
        self,
        config: ArchiveConfig,
        token_provider: TokenProvider,
        file_store: FileStore,
        notification_sink: NotificationSink,
        session: Optional[requests.Session] = None,
        cache: Optional[ResponseCache] = None,
        rewriter: Optional[UrlRewriter] = None,
    ):
        """
        Initialize archive client.

        Args:
            config: Archive configuration
            token_provider: Source of caller roles and bearer tokens
            file_store: Destination for downloaded attachments
            notification_sink: Receiver of operation/exception events
            session: Preconfigured requests session (default: session with retry)
            cache: Response cache (default: in-memory, config TTL)
            rewriter: Pagination link rewriter (default: chosen by environment)
        """
        self.config = config
        self.auth = AuthHeaderResolver(config, token_provider)
        self.notifier = Notifier(notification_sink)
        self.cache = cache if cache is not None else ResponseCache(config.cache_ttl_seconds)
        self.session = session or self._build_session()
        self.executor = RequestExecutor(
            self.session,
            file_store,
            rewriter=rewriter or rewriter_for(config),
            max_pages=config.max_pages,
            timeout=config.timeout_seconds,
            debug=config.debug,
        )

    @classmethod
    def from_config_file(
        cls,
        config_path: Path,
        token_provider: TokenProvider,
        file_store: FileStore,
        notification_sink: Optional[NotificationSink] = None,
    ) -> "ArchiveClient":
        """
        Build a client from a YAML config file (plus environment overrides).

        Raises:
            ConfigValidationError: If the configuration is incomplete
        """
        config = load_config(config_path)
        errors = config.validate()
        if errors:
            raise ConfigValidationError("; ".join(errors))
        return cls(config, token_provider, file_store, notification_sink or LoggingNotificationSink())

    def _build_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({"Accept": "application/json"})

        # Retry only idempotent methods; 500 is a hard failure for the caller
        retry_strategy = Retry(
            total=self.config.max_retries,
            backoff_factor=self.config.backoff_factor,
            status_forcelist=[429, 502, 503, 504],
            allowed_methods=["GET", "DELETE"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def _url(self, endpoint: str, params: Optional[dict[str, Any]] = None) -> str:
        return build_url(self.config.base_url, self.config.version, endpoint, params)

    def _request(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        force_api_key: bool = False,
        token: Optional[str] = None,
        **options: Any,
    ) -> ArchiveResult:
        """Resolve credentials and execute; failures are notified, then re-raised."""
        try:
            auth = self.auth.resolve_auth(force_api_key=force_api_key, token=token)
            if auth.mode is AuthMode.UNAUTHORIZED:
                self.notifier.exception(
                    ArchiveAuthorizationError("User is not externally authenticated")
                )
            return self.executor.execute(
                method,
                url,
                headers=merge_headers(headers, auth.headers),
                **options,
            )
        except ArchiveError as e:
            self.notifier.exception(e)
            raise

    def _failure(self, exc: ArchiveError) -> ArchiveError:
        """Log and notify an operation-level failure; the caller raises it."""
        logger.error(str(exc))
        self.notifier.exception(exc)
        return exc

    @staticmethod
    def _to_form_data(data: dict[str, Any]) -> dict[str, tuple[None, str]]:
        """Encode fields as multipart parts; structured values become JSON."""
        form: dict[str, tuple[None, str]] = {}
        for key, value in data.items():
            if value is None:
                continue
            if isinstance(value, (dict, list, bool)):
                contents = json.dumps(sanitize_content(value))
            else:
                contents = str(value)
            form[key] = (None, contents)
        return form

    def _seed_transaction_cache(self, documents: list[Any]) -> None:
        for document in documents:
            if isinstance(document, ArchiveDocument) and document.transaction_id:
                self.cache.set(cache_key({"transaction_id": document.transaction_id}), [document])

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def create_document(self, values: dict[str, Any]) -> ArchiveDocument:
        """Create a new, unsaved document locally."""
        return ArchiveDocument.create(values)

    def search_documents(
        self,
        search_params: dict[str, Any],
        refetch: bool = False,
        *,
        force_api_key: bool = False,
        token: Optional[str] = None,
    ) -> list[Any]:
        """
        Search documents.

        Args:
            search_params: Query parameters; a `lookfor` dict becomes a
                `key:value,...` free-text filter
            refetch: Skip the cache read (results are still cached)

        Returns:
            Documents (empty list when nothing was found)

        Raises:
            ArchiveConnectionError: Archive unreachable
            ArchiveTransportError: Other transport failures
        """
        key = cache_key(search_params)

        if self.config.use_cache and not refetch and self.cache.is_cached(key):
            return list(self.cache.get(key))

        try:
            result = self._request(
                "GET",
                self._url("documents", search_params),
                force_api_key=force_api_key,
                token=token,
            )
        except ArchiveDocumentNotFoundError:
            return []

        if not result.ok:
            logger.warning(f"Search returned unexpected status {result.status_code}")
            return []

        documents = result.documents
        self.notifier.operation("SEARCH", cache_key=key, count=len(documents), pages=result.pages)

        if self.config.use_cache and documents:
            self._seed_transaction_cache(documents)
            self.cache.set(key, list(documents))

        if self.config.debug:
            logger.debug(f"Search {key} returned {len(documents)} documents in {result.pages} pages")

        return documents

    def get_document(
        self,
        document_id: str,
        refetch: bool = False,
        *,
        force_api_key: bool = False,
        token: Optional[str] = None,
    ) -> ArchiveDocument:
        """
        Get a single document by id.

        Raises:
            ArchiveDocumentNotFoundError: 404 or empty response
            ArchiveUnexpectedResponseError: Unusable status code
        """
        key = _document_cache_key(document_id)

        if self.config.use_cache and not refetch and self.cache.is_cached(key):
            return self.cache.get(key)

        result = self._request(
            "GET",
            self._url(f"documents/{document_id}"),
            force_api_key=force_api_key,
            token=token,
        )

        if not result.ok:
            raise self._failure(ArchiveUnexpectedResponseError(result.status_code, "get document"))

        document = result.first
        if not isinstance(document, ArchiveDocument):
            raise self._failure(ArchiveDocumentNotFoundError(f"Document {document_id} not found"))

        self.notifier.operation("GET", document_id=document_id)

        if self.config.use_cache:
            self.cache.set(key, document)

        return document

    def get_user_documents(
        self,
        user_id: str,
        transaction_id: str = "",
        *,
        force_api_key: bool = False,
        token: Optional[str] = None,
    ) -> list[Any]:
        """
        Get documents owned by a user, optionally filtered by transaction id.

        Returns:
            Documents across all pages (empty list when none)
        """
        params = {"transaction_id": transaction_id} if transaction_id else None

        result = self._request(
            "GET",
            self._url(f"userdocuments/{user_id}", params),
            force_api_key=force_api_key,
            token=token,
        )

        if not result.ok:
            logger.warning(f"User documents returned unexpected status {result.status_code}")
            return []

        self.notifier.operation("GET_USER_DOCUMENTS", count=len(result.documents))
        return result.documents

    def check_document_exists_by_transaction_id(
        self,
        transaction_id: str,
        *,
        force_api_key: bool = False,
        token: Optional[str] = None,
    ) -> bool:
        """Check whether any document carries the transaction id."""
        documents = self.search_documents(
            {"transaction_id": transaction_id},
            force_api_key=force_api_key,
            token=token,
        )
        return len(documents) > 0

    def post_document(
        self,
        document: ArchiveDocument,
        *,
        force_api_key: bool = False,
        token: Optional[str] = None,
    ) -> Optional[ArchiveDocument]:
        """
        Save a new document.

        Returns:
            Document as stored by the archive, or None if it sent no body

        Raises:
            ArchiveUnexpectedResponseError: Unusable status code
        """
        result = self._request(
            "POST",
            self._url("documents"),
            force_api_key=force_api_key,
            token=token,
            files=self._to_form_data(document.to_dict()),
        )

        if not result.ok:
            raise self._failure(ArchiveUnexpectedResponseError(result.status_code, "create document"))

        created = result.first if isinstance(result.first, ArchiveDocument) else None
        self.notifier.operation(
            "CREATE",
            document_id=created.id if created else None,
            transaction_id=document.transaction_id,
        )
        return created

    def patch_document(
        self,
        document_id: str,
        data: dict[str, Any],
        *,
        force_api_key: bool = False,
        token: Optional[str] = None,
    ) -> Optional[ArchiveDocument]:
        """
        Update fields of an existing document.

        The archive rejects user_id in PATCH bodies, so it is dropped.

        Returns:
            Updated document, or None if the archive sent no body

        Raises:
            ArchiveUnexpectedResponseError: Unusable status code
        """
        payload = {key: value for key, value in data.items() if key != "user_id"}

        result = self._request(
            "PATCH",
            self._url(f"documents/{document_id}"),
            force_api_key=force_api_key,
            token=token,
            files=self._to_form_data(payload),
        )

        if not result.ok:
            raise self._failure(ArchiveUnexpectedResponseError(result.status_code, "patch document"))

        updated = result.first if isinstance(result.first, ArchiveDocument) else None

        if self.config.use_cache and updated and payload.get("transaction_id"):
            self.cache.set(cache_key({"transaction_id": payload["transaction_id"]}), [updated])

        self.notifier.operation("PATCH", document_id=document_id)
        return updated

    def delete_document(
        self,
        document: ArchiveDocument,
        *,
        force_api_key: bool = False,
        token: Optional[str] = None,
    ) -> bool:
        """
        Delete a document.

        Returns:
            True only for a 204 response
        """
        result = self._request(
            "DELETE",
            self._url(f"documents/{document.id or ''}"),
            force_api_key=force_api_key,
            token=token,
        )

        deleted = result.kind is ResultKind.DELETED
        if deleted:
            self.notifier.operation("DELETE", document_id=document.id)
            self.cache.clear(_document_cache_key(document.id))
            if document.transaction_id:
                self.cache.clear(cache_key({"transaction_id": document.transaction_id}))
        return deleted

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    def get_attachment(
        self,
        url: str,
        *,
        force_api_key: bool = False,
        token: Optional[str] = None,
    ) -> Optional[Any]:
        """
        Download an attachment into the file store.

        Args:
            url: Attachment URL (from the document's attachment list)

        Returns:
            File store handle, or None if the response was not a file
        """
        result = self._request("GET", url, force_api_key=force_api_key, token=token)

        if result.kind is not ResultKind.FILE:
            logger.warning(f"Attachment {url} did not return a file (status {result.status_code})")
            return None

        self.notifier.operation("GET_ATTACHMENT", url=url)
        return result.file

    def upload_attachment(
        self,
        document_id: str,
        filename: str,
        stream: BinaryIO,
        *,
        force_api_key: bool = False,
        token: Optional[str] = None,
    ) -> ArchiveResult:
        """
        Upload one attachment to a document.

        The caller owns `stream` and closes it afterwards.

        Returns:
            Tagged result; `.ok` tells whether the upload succeeded
        """
        headers = {"Content-Disposition": f'attachment; filename="{filename}"'}

        result = self._request(
            "POST",
            self._url(f"documents/{document_id}/attachments"),
            headers=headers,
            force_api_key=force_api_key,
            token=token,
            files=[(filename, (filename, stream, "application/octet-stream"))],
        )

        if result.ok:
            self.notifier.operation("UPLOAD_ATTACHMENT", document_id=document_id, filename=filename)
        else:
            logger.warning(f"Attachment upload for {document_id} returned {result.status_code}")
        return result

    def _delete(self, endpoint: str, operation: str, force_api_key: bool, token: Optional[str], **target: Any) -> bool:
        result = self._request("DELETE", endpoint, force_api_key=force_api_key, token=token)
        deleted = result.kind is ResultKind.DELETED
        if deleted:
            self.notifier.operation(operation, **target)
        return deleted

    def delete_attachment(
        self,
        document_id: str,
        attachment_id: str,
        *,
        force_api_key: bool = False,
        token: Optional[str] = None,
    ) -> bool:
        """Delete an attachment by document and attachment id."""
        return self._delete(
            self._url(f"documents/{document_id}/attachments/{attachment_id}"),
            "DELETE_ATTACHMENT",
            force_api_key,
            token,
            document_id=document_id,
            attachment_id=attachment_id,
        )

    def delete_attachment_by_url(
        self,
        url: str,
        *,
        force_api_key: bool = False,
        token: Optional[str] = None,
    ) -> bool:
        """Delete an attachment by its full URL."""
        return self._delete(url, "DELETE_ATTACHMENT", force_api_key, token, url=url)

    def delete_attachment_via_integration_id(
        self,
        integration_id: str,
        *,
        force_api_key: bool = False,
        token: Optional[str] = None,
    ) -> bool:
        """Delete an attachment by integration id (a path below the base URL)."""
        url = f"{self.config.base_url.rstrip('/')}/{integration_id.lstrip('/')}"
        return self._delete(
            url,
            "DELETE_ATTACHMENT",
            force_api_key,
            token,
            integration_id=integration_id,
        )

    # ------------------------------------------------------------------
    # GDPR
    # ------------------------------------------------------------------

    def get_gdpr_data(self, user_id: str) -> dict[str, Any]:
        """Export all archive data of a user. Always uses the API key."""
        result = self._request("GET", self._url(f"gdpr-api/{user_id}"), force_api_key=True)

        if not result.ok:
            logger.warning(f"GDPR export for user returned {result.status_code}")
            return {}

        self.notifier.operation("GET_GDPR_DATA", user_id=user_id)
        return result.body

    def delete_gdpr_data(self, user_id: str) -> bool:
        """Delete all archive data of a user. Always uses the API key."""
        return self._delete(
            self._url(f"gdpr-api/{user_id}"),
            "DELETE_GDPR_DATA",
            True,
            None,
            user_id=user_id,
        )

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def clear_cache(self, key: Optional[str] = None) -> None:
        """Drop one cached entry, or all of them."""
        self.cache.clear(key)
