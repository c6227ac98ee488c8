"""
Ephemeral response cache.

Keys are SHA-256 digests of normalized query parameters. Entries live for
the lifetime of the cache object (one logical request/session) unless a TTL
is configured, in which case they expire by wall-clock age.

The cache is a plain last-writer-wins dict: concurrent writers for one key
may race, but readers never see a partially written entry.
"""

import hashlib
import logging
import re
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

# Free-text filter, too variable to be part of a cache key
FREE_TEXT_PARAM = "lookfor"

_WHITESPACE_RE = re.compile(r"\s+")


def _flatten(value: Any) -> str:
    if isinstance(value, dict):
        return "".join(f"{key}{_flatten(value[key])}" for key in sorted(value, key=str))
    if isinstance(value, (list, tuple)):
        return "".join(_flatten(item) for item in value)
    return str(value)


def cache_key(params: dict[str, Any]) -> str:
    """
    Derive a stable cache key from search parameters.

    Key order does not matter; the free-text filter is ignored.

    Args:
        params: Search parameter map (may be nested)

    Returns:
        64-character hex digest
    """
    stable = {key: value for key, value in params.items() if key != FREE_TEXT_PARAM}
    flat = _WHITESPACE_RE.sub("", _flatten(stable))
    return hashlib.sha256(flat.encode("utf-8")).hexdigest()


class ResponseCache:
    """In-memory key -> value store with optional age limit."""

    def __init__(self, ttl_seconds: int = 0, clock: Callable[[], float] = time.time):
        """
        Args:
            ttl_seconds: Maximum entry age; 0 keeps entries until cleared
            clock: Wall-clock source (seconds)
        """
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def is_cached(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None:
            return False
        if self.ttl_seconds > 0 and self.clock() - entry[1] >= self.ttl_seconds:
            return False
        return True

    def get(self, key: str) -> Optional[Any]:
        if not self.is_cached(key):
            return None
        logger.debug(f"Request cache found {key}")
        return self._entries[key][0]

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (value, self.clock())
        logger.debug(f"Request cache updated {key}")

    def clear(self, key: Optional[str] = None) -> None:
        """Drop one entry, or everything when no key is given."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
