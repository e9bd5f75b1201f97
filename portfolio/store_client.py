"""
portfolio/store_client.py
Thin client for the hosted property store (Supabase PostgREST API).

This module ensures:
1. Every request carries the store API key headers
2. Transport failures and non-2xx responses become StoreRequestError
3. Credentials never appear in logs or error messages
4. Callers only ever see lists of row dicts

The repository depends on the StoreClient protocol, not on this class, so
tests can substitute an in-memory fake.
"""

from typing import Any, Dict, List, Mapping, Optional, Protocol

import requests

from portfolio.config import StoreSettings, get_store_settings
from portfolio.exceptions import StoreRequestError
from portfolio.log_config import get_logger

logger = get_logger(__name__)

Row = Dict[str, Any]

__all__ = ["StoreClient", "PostgrestStoreClient", "create_store_client"]


class StoreClient(Protocol):
    """Operations the repository needs from a tabular store."""

    def select(self, order_by: str = "id", ascending: bool = True) -> List[Row]:
        ...

    def insert(self, rows: List[Row]) -> List[Row]:
        ...

    def update(self, values: Row, match: Mapping[str, Any]) -> List[Row]:
        ...

    def delete(self, match: Mapping[str, Any]) -> List[Row]:
        ...


def eq_filters(match: Mapping[str, Any]) -> Dict[str, str]:
    """Build PostgREST equality filters ({"id": 7} -> {"id": "eq.7"})."""
    return {column: f"eq.{value}" for column, value in match.items()}


class PostgrestStoreClient:
    """StoreClient over a single PostgREST table endpoint."""

    def __init__(self, settings: StoreSettings, session: Optional[requests.Session] = None) -> None:
        self.settings = settings
        self.session = session or requests.Session()

    @property
    def table(self) -> str:
        return self.settings.table

    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.settings.api_key,
            "Authorization": f"Bearer {self.settings.api_key}",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _sanitize(self, text: str) -> str:
        """Remove the API key from any text that might reach a log or the UI."""
        if self.settings.api_key and self.settings.api_key in text:
            text = text.replace(self.settings.api_key, "[REDACTED]")
        return text

    def _request(
        self,
        method: str,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> List[Row]:
        """
        Send one request to the table endpoint and return the rows in the response.

        Raises:
            StoreRequestError: On timeout, connection failure or a non-2xx status
        """
        url = self.settings.rest_url
        timeout = self.settings.timeout
        operation = f"{method} {self.table}"

        logger.debug("[STORE] %s params=%s", operation, params)

        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(prefer),
                timeout=timeout,
            )
        except requests.exceptions.Timeout as e:
            raise StoreRequestError(
                f"{operation} timed out after {timeout}s",
                user_message=f"Request timed out after {timeout:g}s. Please try again.",
                details={"operation": operation},
            ) from e
        except requests.exceptions.ConnectionError as e:
            raise StoreRequestError(
                f"{operation} could not connect to {self.settings.url}",
                user_message=f"Cannot connect to the property store at {self.settings.url}.",
                details={"operation": operation},
            ) from e
        except requests.exceptions.RequestException as e:
            error_msg = self._sanitize(str(e))
            raise StoreRequestError(
                f"{operation} failed: {error_msg}",
                user_message=f"Unexpected error: {error_msg[:100]}",
                details={"operation": operation},
            ) from e

        if not resp.ok:
            payload = _safe_json(resp)
            if payload is None:
                payload = self._sanitize(resp.text[:500])
            message = _error_message(payload)
            raise StoreRequestError(
                f"{operation} failed with HTTP {resp.status_code}: {message or resp.reason}",
                status_code=resp.status_code,
                payload=payload,
                user_message=_user_message(resp.status_code, message),
                details={"operation": operation},
            )

        if resp.status_code == 204 or not resp.content:
            return []

        data = _safe_json(resp)
        if isinstance(data, dict):
            return [data]
        if isinstance(data, list):
            return data
        raise StoreRequestError(
            f"{operation} returned an unexpected body",
            status_code=resp.status_code,
            payload=self._sanitize(resp.text[:500]),
            user_message="The property store returned an unexpected response.",
            details={"operation": operation},
        )

    def select(self, order_by: str = "id", ascending: bool = True) -> List[Row]:
        direction = "asc" if ascending else "desc"
        return self._request("GET", params={"select": "*", "order": f"{order_by}.{direction}"})

    def insert(self, rows: List[Row]) -> List[Row]:
        return self._request("POST", json=rows, prefer="return=representation")

    def update(self, values: Row, match: Mapping[str, Any]) -> List[Row]:
        return self._request(
            "PATCH",
            params=eq_filters(match),
            json=values,
            prefer="return=representation",
        )

    def delete(self, match: Mapping[str, Any]) -> List[Row]:
        return self._request("DELETE", params=eq_filters(match))


def create_store_client(settings: Optional[StoreSettings] = None) -> PostgrestStoreClient:
    """Build a client from explicit settings or the environment.

    Raises:
        ConfigurationError: If the environment does not configure the store
    """
    return PostgrestStoreClient(settings or get_store_settings())


def _safe_json(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


def _error_message(payload: Any) -> str:
    """Pull the human-readable message out of a PostgREST error body."""
    if isinstance(payload, dict):
        for key in ("message", "msg", "error_description", "error", "hint"):
            value = payload.get(key)
            if value:
                return str(value)
        return ""
    if isinstance(payload, str):
        return payload
    return ""


def _user_message(status_code: int, message: str) -> str:
    if status_code == 401:
        return "Not authorised to use the property store. Check the store API key."
    if status_code == 403:
        return "You don't have permission to perform this action."
    if message:
        return message
    return f"Property store error {status_code}"
