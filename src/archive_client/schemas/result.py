"""
Tagged result of one archive request (possibly spanning several pages).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ResultKind(str, Enum):
    """What a response turned out to contain."""

    DOCUMENTS = "documents"  # JSON rows (documents or raw values)
    FILE = "file"  # Attachment handed to the file store
    EMPTY = "empty"  # Success without usable data
    DELETED = "deleted"  # 204 for a DELETE
    UNHANDLED = "unhandled"  # Status the engine does not interpret


@dataclass
class ArchiveResult:
    """Normalized response."""

    kind: ResultKind
    status_code: int
    documents: list[Any] = field(default_factory=list)
    file: Optional[Any] = None
    body: dict[str, Any] = field(default_factory=dict)
    pages: int = 1

    @property
    def ok(self) -> bool:
        """True for every kind except UNHANDLED."""
        return self.kind is not ResultKind.UNHANDLED

    @property
    def first(self) -> Optional[Any]:
        """First result row, if any."""
        return self.documents[0] if self.documents else None
