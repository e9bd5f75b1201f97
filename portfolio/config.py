# portfolio/config.py
# Environment-aware configuration for the PNFB property portfolio screen

import os
from dataclasses import dataclass
from typing import Dict, Optional

from portfolio.exceptions import ConfigurationError

# Recognised values of ENV; anything else runs as production
ENVIRONMENTS = ("local", "staging", "production")


def normalize_env(raw: Optional[str]) -> str:
    """
    Normalize an ENV value.

    Returns:
        "local", "staging", or "production" (default for missing/unknown values)
    """
    value = (raw or "").strip().lower()
    return value if value in ENVIRONMENTS else "production"


ENV = normalize_env(os.environ.get("ENV"))
IS_LOCAL = (ENV == "local")

# Local Supabase CLI default (supabase start)
LOCAL_SUPABASE_URL = "http://127.0.0.1:54321"

DEFAULT_TABLE = "properties"
DEFAULT_TIMEOUT_SECONDS = 20.0

# Feature flags
ENABLE_DEBUG_UI = IS_LOCAL  # Diagnostics panel only in local dev

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "DEBUG" if IS_LOCAL else "INFO").upper()
LOG_FORMAT = os.environ.get("LOG_FORMAT", "standard").lower()


@dataclass(frozen=True)
class StoreSettings:
    """Connection settings for the hosted property store."""

    url: str
    api_key: str
    table: str = DEFAULT_TABLE
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    @property
    def rest_url(self) -> str:
        """Base URL of the table endpoint."""
        return f"{self.url}/rest/v1/{self.table}"


def validate_store_url(url: str, env: str) -> None:
    """
    Validate the store base URL according to environment security rules.

    Args:
        url: The store base URL to validate
        env: Current environment ("local", "staging", "production")

    Raises:
        ConfigurationError: If URL violates security constraints for the environment
    """
    if not url:
        raise ConfigurationError("Store URL cannot be empty")

    # Staging/production must use HTTPS and never localhost
    if env in ("staging", "production"):
        if not url.startswith("https://"):
            raise ConfigurationError(f"Production/staging must use HTTPS. Got: {url}")
        if "127.0.0.1" in url or "localhost" in url:
            raise ConfigurationError(f"Production/staging cannot use localhost URLs. Got: {url}")


def get_store_url(env: str = ENV) -> str:
    """
    Get the store base URL with strict priority and validation.

    Priority:
    1. SUPABASE_URL environment variable
    2. Local Supabase default ONLY if env == "local"
    3. Raise error otherwise

    Returns:
        Validated base URL with trailing slash removed
    """
    url = os.environ.get("SUPABASE_URL", "").strip().rstrip("/")
    if url:
        validate_store_url(url, env)
        return url

    if env == "local":
        return LOCAL_SUPABASE_URL

    raise ConfigurationError(
        f"Store URL not configured for {env.upper()} environment. "
        f"Set the SUPABASE_URL environment variable."
    )


def get_store_settings(env: str = ENV) -> StoreSettings:
    """
    Build store settings from the environment.

    Raises:
        ConfigurationError: If the URL, key or timeout is missing or invalid
    """
    url = get_store_url(env)

    api_key = (
        os.environ.get("SUPABASE_KEY", "").strip()
        or os.environ.get("SUPABASE_ANON_KEY", "").strip()
    )
    if not api_key:
        raise ConfigurationError(
            "Store API key not configured. Set SUPABASE_KEY (or SUPABASE_ANON_KEY)."
        )

    table = os.environ.get("PROPERTIES_TABLE", DEFAULT_TABLE).strip() or DEFAULT_TABLE

    raw_timeout = os.environ.get("STORE_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))
    try:
        timeout = float(raw_timeout)
    except ValueError as e:
        raise ConfigurationError(f"STORE_TIMEOUT_SECONDS must be a number. Got: {raw_timeout}") from e
    if timeout <= 0:
        raise ConfigurationError(f"STORE_TIMEOUT_SECONDS must be positive. Got: {raw_timeout}")

    return StoreSettings(url=url, api_key=api_key, table=table, timeout=timeout)


def describe_config() -> Dict[str, str]:
    """Non-sensitive summary of the active configuration, for startup logging."""
    return {
        "env": ENV,
        "store_url": os.environ.get("SUPABASE_URL", "") or ("(local default)" if IS_LOCAL else "(unset)"),
        "table": os.environ.get("PROPERTIES_TABLE", DEFAULT_TABLE),
        "debug_ui": "enabled" if ENABLE_DEBUG_UI else "disabled",
        "log_level": LOG_LEVEL,
    }
