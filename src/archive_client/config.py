"""
Configuration management (SSOT).

All archive client configuration keys are defined here; no other module
should invent config keys.

Key invariants:
- base_url + version form the prefix of every archive endpoint
- Token auth is only attempted for callers holding a user role
- max_pages bounds every paginated call
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name, "").strip().lower()
    if value in ("true", "1", "yes"):
        return True
    if value in ("false", "0", "no"):
        return False
    return default


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name, "")
    if value:
        try:
            return int(value)
        except ValueError:
            pass  # Keep default
    return default


@dataclass
class ArchiveConfig:
    """Archive client configuration (SSOT).

    Auth settings:
    - api_key: Static service secret sent as X-Api-Key
    - use_token_auth: Enable per-user bearer tokens for user-role callers
    - token_name: Key of the archive token in the token provider's map
    - admin_roles: Callers with these roles always use the API key
    - user_roles: Callers with these roles use token auth when enabled

    URL settings:
    - environment: "local" enables rewriting of pagination links
    - local_rewrite_from / local_rewrite_to: hostname fragment pair used for that
    """

    base_url: str
    version: str = "v1"
    api_key: str = ""
    service_name: str = ""

    use_token_auth: bool = False
    token_name: str | None = None
    admin_roles: list[str] = field(default_factory=lambda: ["admin"])
    user_roles: list[str] = field(default_factory=list)

    # Pagination guard
    max_pages: int = 10

    environment: str = "production"
    local_rewrite_from: str | None = None
    local_rewrite_to: str | None = None

    # Response cache (ttl 0 = keep until cleared)
    use_cache: bool = False
    cache_ttl_seconds: int = 0

    # HTTP transport
    timeout_seconds: int = 30
    max_retries: int = 3
    backoff_factor: float = 0.5

    # Log request timings and cache hits
    debug: bool = False

    def is_local(self) -> bool:
        """Check if the client runs against a local environment."""
        return self.environment.strip().lower() == "local"

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not self.base_url:
            errors.append("base_url is required")
        if not self.version:
            errors.append("version is required")
        if self.max_pages < 1:
            errors.append("max_pages must be >= 1")
        if self.cache_ttl_seconds < 0:
            errors.append("cache_ttl_seconds must be >= 0")
        if self.use_token_auth and not self.token_name:
            errors.append("token_name is required when token auth is enabled")

        return errors


def load_config(config_path: Path) -> ArchiveConfig:
    """
    Load configuration from YAML file.

    Environment variables can override config values:
    - ARCHIVE_BASE_URL
    - ARCHIVE_VERSION
    - ARCHIVE_API_KEY
    - ARCHIVE_SERVICE
    - ARCHIVE_USE_TOKEN_AUTH (true/false)
    - ARCHIVE_TOKEN_NAME
    - ARCHIVE_MAX_PAGES
    - ARCHIVE_USE_CACHE (true/false)
    - ARCHIVE_CACHE_TTL (seconds)
    - APP_ENV
    - ARCHIVE_DEBUG (true/false)
    """
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    archive_data = data.get("archive", {})
    auth_data = data.get("auth", {})
    cache_data = data.get("cache", {})
    http_data = data.get("http", {})
    rewrite_data = data.get("local_rewrite", {})

    return ArchiveConfig(
        base_url=os.environ.get(
            "ARCHIVE_BASE_URL", archive_data.get("base_url", "http://localhost:8000")
        ),
        version=os.environ.get("ARCHIVE_VERSION", archive_data.get("version", "v1")),
        api_key=os.environ.get("ARCHIVE_API_KEY", auth_data.get("api_key", "")),
        service_name=os.environ.get("ARCHIVE_SERVICE", archive_data.get("service", "")),
        use_token_auth=_env_bool(
            "ARCHIVE_USE_TOKEN_AUTH", auth_data.get("use_token_auth", False)
        ),
        token_name=os.environ.get("ARCHIVE_TOKEN_NAME", auth_data.get("token_name")) or None,
        admin_roles=list(auth_data.get("admin_roles", ["admin"])),
        user_roles=list(auth_data.get("user_roles", [])),
        max_pages=_env_int("ARCHIVE_MAX_PAGES", archive_data.get("max_pages", 10)),
        environment=os.environ.get("APP_ENV", data.get("environment", "production")),
        local_rewrite_from=rewrite_data.get("from"),
        local_rewrite_to=rewrite_data.get("to"),
        use_cache=_env_bool("ARCHIVE_USE_CACHE", cache_data.get("enabled", False)),
        cache_ttl_seconds=_env_int("ARCHIVE_CACHE_TTL", cache_data.get("ttl_seconds", 0)),
        timeout_seconds=http_data.get("timeout_seconds", 30),
        max_retries=http_data.get("max_retries", 3),
        backoff_factor=http_data.get("backoff_factor", 0.5),
        debug=_env_bool("ARCHIVE_DEBUG", data.get("debug", False)),
    )


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# Archive client configuration
#
# Environment variables (ARCHIVE_*, APP_ENV) override values in this file.

archive:
  base_url: "http://localhost:8000"   # Archive API root
  version: "v1"                       # API version path segment
  service: ""                         # Owning service name
  max_pages: 10                       # Upper bound for paginated calls

auth:
  api_key: "YOUR_ARCHIVE_API_KEY"
  use_token_auth: false               # Per-user bearer tokens for user-role callers
  token_name: null                    # Token key in the identity provider's token map
  admin_roles: ["admin"]              # Always use the API key
  user_roles: []                      # Use token auth when enabled

cache:
  enabled: false
  ttl_seconds: 0                      # 0 = keep until cleared

http:
  timeout_seconds: 30
  max_retries: 3
  backoff_factor: 0.5

# Pagination links are rewritten from -> to when environment is "local"
environment: "production"
local_rewrite:
  from: null
  to: null

debug: false
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
