"""
Tests for the request execution engine.

HTTP is mocked with the responses library.
"""

import pytest
import requests
import responses

from archive_client.archive_api import (
    ArchiveConnectionError,
    ArchiveDocumentNotFoundError,
    ArchiveTransportError,
    HostnameRewriter,
    RequestExecutor,
)
from archive_client.archive_api.transport import parse_attachment_filename
from archive_client.schemas import ArchiveDocument, ResultKind

from fixtures import BASE_URL, MemoryFileStore

DOCUMENTS_URL = f"{BASE_URL}/v1/documents/"


def _executor(file_store=None, **kwargs) -> RequestExecutor:
    return RequestExecutor(requests.Session(), file_store or MemoryFileStore(), **kwargs)


def _page(count: int, start: int, size: int, next_url: str | None) -> dict:
    return {
        "count": count,
        "next": next_url,
        "results": [{"id": f"doc-{i}", "transaction_id": f"tx-{i}"} for i in range(start, start + size)],
    }


class TestParseAttachmentFilename:
    def test_quoted_filename(self):
        assert parse_attachment_filename('attachment; filename="report.pdf"') == "report.pdf"

    def test_unquoted_filename(self):
        assert parse_attachment_filename("attachment;filename=report.pdf") == "report.pdf"

    def test_directory_parts_dropped(self):
        assert parse_attachment_filename('attachment; filename="../../etc/passwd"') == "passwd"

    def test_inline_is_not_attachment(self):
        assert parse_attachment_filename('inline; filename="report.pdf"') is None

    def test_missing_header(self):
        assert parse_attachment_filename("") is None

    def test_attachment_without_filename(self):
        assert parse_attachment_filename("attachment") == "attachment"


class TestResponseClassification:
    """Test how responses are turned into tagged results."""

    @responses.activate
    def test_results_rows_become_documents(self):
        responses.add(
            responses.GET,
            DOCUMENTS_URL,
            json={"count": 2, "next": None, "results": [{"id": "a"}, {"id": "b"}]},
            status=200,
        )

        result = _executor().execute("GET", DOCUMENTS_URL)

        assert result.kind is ResultKind.DOCUMENTS
        assert [doc.id for doc in result.documents] == ["a", "b"]
        assert all(isinstance(doc, ArchiveDocument) for doc in result.documents)

    @responses.activate
    def test_non_object_rows_kept_raw(self):
        responses.add(
            responses.GET,
            DOCUMENTS_URL,
            json={"results": ["one", {"id": "two"}]},
            status=200,
        )

        result = _executor().execute("GET", DOCUMENTS_URL)

        assert result.documents[0] == "one"
        assert result.documents[1].id == "two"

    @responses.activate
    def test_unparseable_row_content_does_not_fail_the_call(self):
        responses.add(
            responses.GET,
            DOCUMENTS_URL,
            json={"count": 1, "results": [{"id": "1", "content": "{'name': \"O'Brien\"}"}]},
            status=200,
        )

        result = _executor().execute("GET", DOCUMENTS_URL)

        assert result.kind is ResultKind.DOCUMENTS
        assert result.first.id == "1"
        assert result.first.content is None

    @responses.activate
    def test_bare_object_wrapped_in_list(self):
        responses.add(
            responses.POST,
            DOCUMENTS_URL,
            json={"id": "new-id", "transaction_id": "tx-1"},
            status=201,
        )

        result = _executor().execute("POST", DOCUMENTS_URL)

        assert result.kind is ResultKind.DOCUMENTS
        assert len(result.documents) == 1
        assert result.first.id == "new-id"

    @responses.activate
    def test_non_json_body_is_empty(self):
        responses.add(responses.GET, DOCUMENTS_URL, body="<html>oops</html>", status=200)

        result = _executor().execute("GET", DOCUMENTS_URL)

        assert result.kind is ResultKind.EMPTY
        assert result.documents == []

    @responses.activate
    def test_empty_list_body_is_empty(self):
        responses.add(responses.GET, DOCUMENTS_URL, json=[], status=200)

        result = _executor().execute("GET", DOCUMENTS_URL)

        assert result.kind is ResultKind.EMPTY

    @responses.activate
    def test_empty_results_is_empty(self):
        responses.add(responses.GET, DOCUMENTS_URL, json={"count": 0, "results": []}, status=200)

        result = _executor().execute("GET", DOCUMENTS_URL)

        assert result.kind is ResultKind.EMPTY

    @responses.activate
    def test_attachment_goes_to_file_store(self):
        content = b"%PDF-1.4 attachment bytes"
        url = f"{BASE_URL}/v1/documents/abc/attachments/1/"
        responses.add(
            responses.GET,
            url,
            body=content,
            status=200,
            content_type="application/pdf",
            headers={"Content-Disposition": 'attachment; filename="liite.pdf"'},
        )
        store = MemoryFileStore()

        result = _executor(store).execute("GET", url)

        assert result.kind is ResultKind.FILE
        assert result.file == "memory://liite.pdf"
        assert store.files["liite.pdf"] == content

    @responses.activate
    def test_unhandled_status(self):
        responses.add(responses.GET, DOCUMENTS_URL, json={"results": []}, status=202)

        result = _executor().execute("GET", DOCUMENTS_URL)

        assert result.kind is ResultKind.UNHANDLED
        assert result.ok is False
        assert result.status_code == 202


class TestDeleteSemantics:
    URL = f"{BASE_URL}/v1/gdpr-api/userid/"

    @responses.activate
    def test_204_is_deleted(self):
        responses.add(responses.DELETE, self.URL, status=204)

        assert _executor().execute("DELETE", self.URL).kind is ResultKind.DELETED

    @responses.activate
    def test_200_is_not_deleted(self):
        responses.add(responses.DELETE, self.URL, body="Unexpected 200 in delete", status=200)

        assert _executor().execute("DELETE", self.URL).kind is not ResultKind.DELETED

    @responses.activate
    def test_204_on_get_is_unhandled(self):
        responses.add(responses.GET, self.URL, status=204)

        assert _executor().execute("GET", self.URL).kind is ResultKind.UNHANDLED

    @responses.activate
    def test_500_raises_transport_error(self):
        responses.add(responses.DELETE, self.URL, body="Fake connection error", status=500)

        with pytest.raises(ArchiveTransportError) as exc_info:
            _executor().execute("DELETE", self.URL)

        assert exc_info.value.status_code == 500


class TestErrorClassification:
    @responses.activate
    def test_connection_error(self):
        responses.add(
            responses.GET,
            DOCUMENTS_URL,
            body=requests.exceptions.ConnectionError("Failed to connect"),
        )

        with pytest.raises(ArchiveConnectionError):
            _executor().execute("GET", DOCUMENTS_URL)

    @responses.activate
    def test_timeout_is_connection_error(self):
        responses.add(responses.GET, DOCUMENTS_URL, body=requests.exceptions.ReadTimeout("slow"))

        with pytest.raises(ArchiveConnectionError):
            _executor().execute("GET", DOCUMENTS_URL)

    @responses.activate
    def test_404_is_not_found(self):
        responses.add(responses.GET, DOCUMENTS_URL, json={"detail": "Not found."}, status=404)

        with pytest.raises(ArchiveDocumentNotFoundError):
            _executor().execute("GET", DOCUMENTS_URL)

    @responses.activate
    def test_403_is_transport_error(self):
        responses.add(responses.GET, DOCUMENTS_URL, json={"detail": "Forbidden"}, status=403)

        with pytest.raises(ArchiveTransportError) as exc_info:
            _executor().execute("GET", DOCUMENTS_URL)

        assert exc_info.value.status_code == 403

    @responses.activate
    def test_transport_error_is_a_requests_exception(self):
        responses.add(responses.GET, DOCUMENTS_URL, json={"detail": "Forbidden"}, status=403)

        with pytest.raises(requests.exceptions.RequestException) as exc_info:
            _executor().execute("GET", DOCUMENTS_URL)

        assert isinstance(exc_info.value, ArchiveTransportError)
        assert exc_info.value.response.status_code == 403

    @responses.activate
    def test_original_exception_is_chained(self):
        responses.add(responses.GET, DOCUMENTS_URL, status=502)

        with pytest.raises(ArchiveTransportError) as exc_info:
            _executor().execute("GET", DOCUMENTS_URL)

        assert isinstance(exc_info.value.__cause__, requests.exceptions.HTTPError)


class TestPagination:
    """Test bounded pagination."""

    @responses.activate
    def test_accumulates_all_pages(self):
        url = f"{BASE_URL}/v1/userdocuments/test_user/"
        responses.add(responses.GET, url, json=_page(25, 0, 10, f"{url}p2/"), status=200)
        responses.add(responses.GET, f"{url}p2/", json=_page(25, 10, 10, f"{url}p3/"), status=200)
        responses.add(responses.GET, f"{url}p3/", json=_page(25, 20, 5, None), status=200)

        result = _executor().execute("GET", url)

        assert len(responses.calls) == 3
        assert result.pages == 3
        assert len(result.documents) == 25
        assert [doc.id for doc in result.documents] == [f"doc-{i}" for i in range(25)]
        assert len(result.body["results"]) == 25

    @responses.activate
    def test_relative_next_link(self):
        url = f"{BASE_URL}/v1/userdocuments/test_user/"
        first = {"count": 15, "next": "path/to/next/page", "results": [str(i) for i in range(10)]}
        second = {"count": 15, "results": [str(i) for i in range(10, 15)]}
        responses.add(responses.GET, url, json=first, status=200)
        responses.add(responses.GET, f"{url}path/to/next/page", json=second, status=200)

        result = _executor().execute("GET", url)

        assert len(result.documents) == 15

    @responses.activate
    def test_headers_sent_on_every_page(self):
        url = f"{BASE_URL}/v1/userdocuments/test_user/"
        responses.add(responses.GET, url, json=_page(2, 0, 1, f"{url}p2/"), status=200)
        responses.add(responses.GET, f"{url}p2/", json=_page(2, 1, 1, None), status=200)

        _executor().execute("GET", url, headers={"Authorization": "Bearer T"})

        assert [call.request.headers["Authorization"] for call in responses.calls] == [
            "Bearer T",
            "Bearer T",
        ]

    @responses.activate
    def test_stops_at_max_pages_when_count_never_reconciles(self):
        url = f"{BASE_URL}/v1/documents/loop/"
        responses.add(responses.GET, url, json={"count": 10_000, "next": url, "results": [{"id": "x"}]})

        result = _executor(max_pages=4).execute("GET", url)

        assert len(responses.calls) == 4
        assert result.pages == 4
        assert len(result.documents) == 4

    @responses.activate
    def test_default_max_pages_is_ten(self):
        url = f"{BASE_URL}/v1/documents/loop/"
        responses.add(responses.GET, url, json={"count": 10_000, "next": url, "results": [{"id": "x"}]})

        _executor().execute("GET", url)

        assert len(responses.calls) == 10

    @responses.activate
    def test_no_next_link_stops(self):
        responses.add(responses.GET, DOCUMENTS_URL, json=_page(50, 0, 10, None), status=200)

        result = _executor().execute("GET", DOCUMENTS_URL)

        assert len(responses.calls) == 1
        assert len(result.documents) == 10

    @responses.activate
    def test_next_link_is_rewritten(self):
        responses.add(
            responses.GET,
            DOCUMENTS_URL,
            json=_page(2, 0, 1, "https://archive.public.example/v1/documents/p2/"),
            status=200,
        )
        responses.add(responses.GET, f"{DOCUMENTS_URL}p2/", json=_page(2, 1, 1, None), status=200)

        rewriter = HostnameRewriter("https://archive.public.example", BASE_URL)
        result = _executor(rewriter=rewriter).execute("GET", DOCUMENTS_URL)

        assert responses.calls[1].request.url == f"{DOCUMENTS_URL}p2/"
        assert len(result.documents) == 2
