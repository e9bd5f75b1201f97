# portfolio/test_config.py
# Unit tests for environment-aware store configuration

import pytest

from portfolio.config import (
    DEFAULT_TABLE,
    DEFAULT_TIMEOUT_SECONDS,
    LOCAL_SUPABASE_URL,
    StoreSettings,
    describe_config,
    get_store_settings,
    get_store_url,
    normalize_env,
    validate_store_url,
)
from portfolio.exceptions import ConfigurationError


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every store-related variable so each test starts from scratch."""
    for name in (
        "SUPABASE_URL",
        "SUPABASE_KEY",
        "SUPABASE_ANON_KEY",
        "PROPERTIES_TABLE",
        "STORE_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# --------------------------------------------------------------------
# normalize_env
# --------------------------------------------------------------------

@pytest.mark.parametrize(
    "raw, expected",
    [
        ("local", "local"),
        ("STAGING", "staging"),
        (" Production ", "production"),
        ("dev", "production"),
        ("", "production"),
        (None, "production"),
    ],
)
def test_normalize_env(raw, expected):
    assert normalize_env(raw) == expected


# --------------------------------------------------------------------
# validate_store_url
# --------------------------------------------------------------------

def test_empty_url_rejected():
    with pytest.raises(ConfigurationError):
        validate_store_url("", "local")


@pytest.mark.parametrize("env", ["staging", "production"])
def test_remote_envs_require_https(env):
    with pytest.raises(ConfigurationError, match="HTTPS"):
        validate_store_url("http://demo.supabase.co", env)


@pytest.mark.parametrize("url", ["https://localhost:54321", "https://127.0.0.1:54321"])
def test_remote_envs_reject_localhost(url):
    with pytest.raises(ConfigurationError, match="localhost"):
        validate_store_url(url, "production")


def test_local_allows_plain_http():
    validate_store_url("http://127.0.0.1:54321", "local")


# --------------------------------------------------------------------
# get_store_url
# --------------------------------------------------------------------

def test_url_from_environment_strips_trailing_slash(clean_env):
    clean_env.setenv("SUPABASE_URL", "https://demo.supabase.co/")
    assert get_store_url("production") == "https://demo.supabase.co"


def test_local_falls_back_to_cli_default(clean_env):
    assert get_store_url("local") == LOCAL_SUPABASE_URL


def test_production_requires_url(clean_env):
    with pytest.raises(ConfigurationError, match="SUPABASE_URL"):
        get_store_url("production")


# --------------------------------------------------------------------
# get_store_settings
# --------------------------------------------------------------------

def test_settings_defaults(clean_env):
    clean_env.setenv("SUPABASE_URL", "https://demo.supabase.co")
    clean_env.setenv("SUPABASE_KEY", "key-1")

    settings = get_store_settings("production")
    assert settings == StoreSettings(
        url="https://demo.supabase.co",
        api_key="key-1",
        table=DEFAULT_TABLE,
        timeout=DEFAULT_TIMEOUT_SECONDS,
    )
    assert settings.rest_url == "https://demo.supabase.co/rest/v1/properties"


def test_anon_key_fallback(clean_env):
    clean_env.setenv("SUPABASE_ANON_KEY", "anon-1")
    assert get_store_settings("local").api_key == "anon-1"


def test_missing_key(clean_env):
    with pytest.raises(ConfigurationError, match="SUPABASE_KEY"):
        get_store_settings("local")


def test_table_and_timeout_overrides(clean_env):
    clean_env.setenv("SUPABASE_KEY", "key-1")
    clean_env.setenv("PROPERTIES_TABLE", "pnfb_properties")
    clean_env.setenv("STORE_TIMEOUT_SECONDS", "7.5")

    settings = get_store_settings("local")
    assert settings.table == "pnfb_properties"
    assert settings.timeout == 7.5
    assert settings.rest_url.endswith("/rest/v1/pnfb_properties")


@pytest.mark.parametrize("raw", ["soon", "0", "-3"])
def test_bad_timeout(clean_env, raw):
    clean_env.setenv("SUPABASE_KEY", "key-1")
    clean_env.setenv("STORE_TIMEOUT_SECONDS", raw)
    with pytest.raises(ConfigurationError, match="STORE_TIMEOUT_SECONDS"):
        get_store_settings("local")


def test_describe_config_has_no_secrets(clean_env):
    clean_env.setenv("SUPABASE_KEY", "super-secret")
    summary = describe_config()
    assert "super-secret" not in str(summary)
    assert set(summary) == {"env", "store_url", "table", "debug_ui", "log_level"}
