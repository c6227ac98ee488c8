"""
Archive document model.

Documents are built from partial value maps: only keys that are present
are set, and unset fields are never serialized. The archive sometimes
returns metadata/content as a string in a non-standard JSON dialect
(single quotes, Python-style False); parse_content normalizes it.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Wire keys that survive a create -> to_dict round trip, in output order.
SERIALIZED_FIELDS = (
    "id",
    "created_at",
    "updated_at",
    "status",
    "type",
    "transaction_id",
    "business_id",
    "tos_function_id",
    "tos_record_id",
    "metadata",
    "content",
)

# Accepted by create() but not written back by to_dict().
INBOUND_ONLY_FIELDS = (
    "service",
    "user_id",
    "draft",
    "locked_after",
    "attachments",
    "href",
)

_STRUCTURED_FIELDS = ("metadata", "content")

# Opening or closing tag; a bare "<" in plain text is not a tag
_TAG_RE = re.compile(r"</?[A-Za-z][^>]*>")


def parse_content(content: str) -> Any:
    """
    Parse malformed JSON emitted by the archive.

    Args:
        content: JSON text, possibly using single quotes and `False`

    Returns:
        Decoded value

    Raises:
        json.JSONDecodeError: If the text is not JSON even after normalization
    """
    replaced = content.replace("'", '"')
    replaced = replaced.replace("False", "false")
    return json.loads(replaced)


def sanitize_content(value: Any) -> Any:
    """Recursively strip HTML tags from every string in a structured value."""
    if isinstance(value, dict):
        return {key: sanitize_content(item) for key, item in value.items()}
    if isinstance(value, list):
        return [sanitize_content(item) for item in value]
    if isinstance(value, str):
        return _TAG_RE.sub("", value)
    return value


@dataclass
class ArchiveDocument:
    """One archive record. None means the field was not supplied."""

    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    status: Optional[Any] = None
    type: Optional[str] = None
    service: Optional[Any] = None
    transaction_id: Optional[str] = None
    user_id: Optional[str] = None
    business_id: Optional[str] = None
    # Retention (records management) classification
    tos_function_id: Optional[str] = None
    tos_record_id: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    content: Optional[dict[str, Any]] = None
    draft: Optional[bool] = None
    locked_after: Optional[str] = None
    attachments: Optional[list[Any]] = None
    href: Optional[str] = None

    @classmethod
    def create(cls, values: dict[str, Any]) -> "ArchiveDocument":
        """
        Create from a partial value map (API response or caller data).

        String metadata/content that cannot be parsed is left unset.
        """
        document = cls()
        for key in SERIALIZED_FIELDS + INBOUND_ONLY_FIELDS:
            value = values.get(key)
            if value is None:
                continue
            if key in _STRUCTURED_FIELDS and isinstance(value, str):
                try:
                    value = parse_content(value)
                except ValueError as e:
                    logger.warning(f"Could not parse document {key}, leaving it unset: {e}")
                    continue
            setattr(document, key, value)
        return document

    def to_dict(self) -> dict[str, Any]:
        """Serialize set fields using wire keys."""
        data: dict[str, Any] = {}
        for key in SERIALIZED_FIELDS:
            value = getattr(self, key)
            if value is not None:
                data[key] = value
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def is_new(self) -> bool:
        """A document without an id has not been saved to the archive."""
        return not self.id

    def add_metadata(self, key: str, value: Any) -> None:
        if self.metadata is None:
            self.metadata = {}
        self.metadata[key] = value
