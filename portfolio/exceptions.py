"""
portfolio/exceptions.py
Error taxonomy for the property portfolio screen.

Every error carries two faces:
- user_message: short text safe to show inline in a dialog or on the page
- details: structured context for the diagnostics panel and the logs

Raw error objects are never rendered to the user outside the debug UI.
"""

from typing import Any, Dict, Optional


class PortfolioError(Exception):
    """Base exception for all portfolio errors."""

    default_user_message = "Something went wrong. Please try again."

    def __init__(
        self,
        message: str,
        user_message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.user_message = user_message or self.default_user_message
        self.details: Dict[str, Any] = dict(details or {})

    def to_debug_info(self) -> Dict[str, Any]:
        """Return a JSON-friendly dict for the diagnostics panel."""
        info: Dict[str, Any] = {
            "error": type(self).__name__,
            "message": str(self),
        }
        if self.details:
            info["details"] = self.details
        if self.__cause__ is not None:
            info["cause"] = f"{type(self.__cause__).__name__}: {self.__cause__}"
        return info


class ConfigurationError(PortfolioError):
    """Raised when store configuration is invalid or missing."""

    default_user_message = "The property store is not configured."


class StoreRequestError(PortfolioError):
    """Raised by the store client when a request fails.

    Covers transport failures (timeout, connection refused) and non-2xx
    responses. ``status_code`` is None for transport failures.
    """

    default_user_message = "The property store could not be reached."

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Any = None,
        user_message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        merged = {"status_code": status_code, "payload": payload}
        merged.update(details or {})
        super().__init__(message, user_message=user_message, details=merged)
        self.status_code = status_code
        self.payload = payload


class RemoteReadError(PortfolioError):
    """Raised when the property list could not be fetched."""

    default_user_message = "Could not load properties."


class RemoteWriteError(PortfolioError):
    """Raised when a create, update or delete is rejected by the store."""

    default_user_message = "The change could not be saved. Please try again."


class IdentityResolutionError(PortfolioError):
    """Raised when the target of an edit cannot be determined."""

    default_user_message = "Could not determine property ID for update"
