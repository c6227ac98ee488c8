"""
Data types exchanged with the archive.
"""

from .document import ArchiveDocument, parse_content, sanitize_content
from .result import ArchiveResult, ResultKind

__all__ = [
    "ArchiveDocument",
    "ArchiveResult",
    "ResultKind",
    "parse_content",
    "sanitize_content",
]
