"""
Per-call credential selection.

The resolver returns headers as a value; nothing is stored between calls,
so one client can serve concurrent callers.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..collaborators import TokenProvider
from ..config import ArchiveConfig
from .errors import ArchiveAuthConfigError

logger = logging.getLogger(__name__)

AUTH_HEADERS = ("Authorization", "X-Api-Key")


class AuthMode(str, Enum):
    API_KEY = "api_key"
    TOKEN = "token"
    TOKEN_MISSING = "token_missing"  # Token auth applies but provider has no token yet
    UNAUTHORIZED = "unauthorized"  # No role allows archive access


@dataclass
class ResolvedAuth:
    """Outcome of credential selection for one call."""

    mode: AuthMode
    headers: dict[str, str] = field(default_factory=dict)


def has_allowed_role(allowed_roles: list[str], user_roles: list[str]) -> bool:
    """Check whether the caller holds at least one of the allowed roles."""
    return bool(set(allowed_roles) & set(user_roles))


def merge_headers(base: Optional[dict[str, str]], auth_headers: dict[str, str]) -> dict[str, str]:
    """
    Merge resolved auth headers over request headers.

    Any Authorization / X-Api-Key already present in `base` is dropped first,
    so stale credentials never leak into a request.
    """
    auth_names = {name.lower() for name in AUTH_HEADERS}
    merged = {key: value for key, value in (base or {}).items() if key.lower() not in auth_names}
    merged.update(auth_headers)
    return merged


class AuthHeaderResolver:
    """
    Decide between the static API key and a bearer token.

    Priority:
    1. force_api_key -> API key
    2. explicit token -> Bearer token
    3. admin role -> API key
    4. token auth enabled and user role -> named token from the provider
    5. token auth disabled -> API key
    6. otherwise -> no headers (caller is not externally authenticated)
    """

    def __init__(self, config: ArchiveConfig, token_provider: TokenProvider):
        self.config = config
        self.token_provider = token_provider

    def _api_key(self) -> ResolvedAuth:
        return ResolvedAuth(AuthMode.API_KEY, {"X-Api-Key": self.config.api_key})

    @staticmethod
    def _bearer(token: str) -> ResolvedAuth:
        return ResolvedAuth(AuthMode.TOKEN, {"Authorization": f"Bearer {token}"})

    def resolve_auth(self, force_api_key: bool = False, token: Optional[str] = None) -> ResolvedAuth:
        """
        Resolve credentials for one call.

        Args:
            force_api_key: Always use the API key (administrative operations)
            token: Explicit bearer token supplied by the caller

        Returns:
            ResolvedAuth with the selected mode and headers (may be empty)

        Raises:
            ArchiveAuthConfigError: Token auth required but token name unset
            TokenExpiredError: Propagated from the token provider
        """
        if force_api_key:
            return self._api_key()

        if token:
            return self._bearer(token)

        roles = self.token_provider.current_caller_roles()

        # Admins bypass token auth even when it is enabled
        if has_allowed_role(self.config.admin_roles, roles):
            return self._api_key()

        if self.config.use_token_auth and has_allowed_role(self.config.user_roles, roles):
            if not self.config.token_name:
                raise ArchiveAuthConfigError(
                    "Token authentication is enabled but no token name is configured"
                )
            tokens = self.token_provider.access_tokens() or {}
            access_token = tokens.get(self.config.token_name)
            if access_token:
                return self._bearer(access_token)
            logger.warning(f"Access token '{self.config.token_name}' not available for caller")
            return ResolvedAuth(AuthMode.TOKEN_MISSING)

        if not self.config.use_token_auth:
            return self._api_key()

        logger.error("User is not externally authenticated, no archive credentials")
        return ResolvedAuth(AuthMode.UNAUTHORIZED)

    def resolve(self, force_api_key: bool = False, token: Optional[str] = None) -> dict[str, str]:
        """Resolve only the headers for one call."""
        return self.resolve_auth(force_api_key=force_api_key, token=token).headers
