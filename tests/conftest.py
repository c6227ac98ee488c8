"""Test fixtures and utilities."""

import pytest

from archive_client.archive_api import ArchiveClient
from archive_client.config import ArchiveConfig
from fixtures import (
    API_KEY,
    BASE_URL,
    TOKEN_NAME,
    FakeTokenProvider,
    MemoryFileStore,
    RecordingSink,
)


@pytest.fixture
def archive_config() -> ArchiveConfig:
    """Token-auth configuration, cache disabled."""
    return ArchiveConfig(
        base_url=BASE_URL,
        version="v1",
        api_key=API_KEY,
        service_name="service",
        use_token_auth=True,
        token_name=TOKEN_NAME,
        admin_roles=["admin"],
        user_roles=["archive-user"],
        max_pages=10,
        environment="unit_test",
        use_cache=False,
        max_retries=0,
    )


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def user_provider() -> FakeTokenProvider:
    """Caller with only the archive-user role."""
    return FakeTokenProvider(["user", "archive-user"])


@pytest.fixture
def admin_provider() -> FakeTokenProvider:
    """Caller with only the admin role."""
    return FakeTokenProvider(["admin"])


@pytest.fixture
def file_store() -> MemoryFileStore:
    return MemoryFileStore()


@pytest.fixture
def client(archive_config, user_provider, file_store, sink) -> ArchiveClient:
    """Client for an archive-user caller."""
    return ArchiveClient(archive_config, user_provider, file_store, sink)


@pytest.fixture
def sample_document_data() -> dict:
    """Sample archive document API response."""
    return {
        "id": "a67dec08cc7c11eca4fb00155dcd8647",
        "type": "grant_application",
        "service": "service",
        "status": "DRAFT",
        "transaction_id": "67e5504410b1426f9247bb680e5fe0c8",
        "user_id": "a67dec08-cc7c-11ec-a4fb-00155dcd8647",
        "business_id": "1234567-1",
        "tos_function_id": "f917d43aab76420bb2ec53f6684da7f7",
        "tos_record_id": "89837a682b5d410e861f8f3688154163",
        "draft": True,
        "metadata": {"name": "Name", "value": "Value"},
        "content": {"data": "content"},
        "created_at": "2024-06-06T13:13:54.247974+03:00",
        "updated_at": "2024-06-07T13:13:54.247974+03:00",
        "locked_after": "2024-06-08T13:13:54.247974+03:00",
        "attachments": [],
        "href": f"{BASE_URL}/v1/documents/a67dec08cc7c11eca4fb00155dcd8647/",
    }
