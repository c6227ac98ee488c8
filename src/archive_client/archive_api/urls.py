"""
Archive URL construction and environment-specific link rewriting.
"""

import logging
from typing import Any, Optional

from ..config import ArchiveConfig

logger = logging.getLogger(__name__)


def _format_lookfor(value: Any) -> str:
    """Flatten a lookfor map into `key:value,key:value`."""
    if isinstance(value, dict):
        return ",".join(f"{key}:{item}" for key, item in value.items())
    return str(value)


def build_query(params: dict[str, Any]) -> str:
    """Encode params as `key=value` pairs joined by `&`."""
    parts = []
    for key, value in params.items():
        if key == "lookfor":
            value = _format_lookfor(value)
        parts.append(f"{key}={value}")
    return "&".join(parts)


def build_url(
    base_url: str,
    version: str,
    endpoint: str,
    params: Optional[dict[str, Any]] = None,
) -> str:
    """
    Build an archive endpoint URL.

    Args:
        base_url: Archive root, with or without trailing slash
        version: API version segment (e.g. "v1")
        endpoint: Path below the version (e.g. "documents/abc")
        params: Query parameters

    Returns:
        URL; paths without a query always end in "/"
    """
    url = f"{base_url.rstrip('/')}/{version.strip('/')}/{endpoint.strip('/')}"

    if params:
        return f"{url}/?{build_query(params)}"

    if not url.endswith("/"):
        url += "/"
    return url


class UrlRewriter:
    """Strategy applied to pagination links before they are followed."""

    def rewrite(self, url: str) -> str:
        return url


class NoopRewriter(UrlRewriter):
    pass


class HostnameRewriter(UrlRewriter):
    """Replace a hostname fragment, e.g. public host -> local gateway."""

    def __init__(self, search: str, replace: str):
        self.search = search
        self.replace = replace

    def rewrite(self, url: str) -> str:
        if self.search in url:
            rewritten = url.replace(self.search, self.replace)
            logger.debug(f"Rewrote pagination link {url} -> {rewritten}")
            return rewritten
        return url


def rewriter_for(config: ArchiveConfig) -> UrlRewriter:
    """Pick the link rewriter for the configured environment."""
    if config.is_local() and config.local_rewrite_from and config.local_rewrite_to:
        return HostnameRewriter(config.local_rewrite_from, config.local_rewrite_to)
    return NoopRewriter()
