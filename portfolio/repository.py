"""
portfolio/repository.py

Property repository: maps dialog form state onto the hosted ``properties``
table and store rows back onto PropertyRecord.

All four operations are single network calls with no retry. Failures are
logged with their full context here and re-raised as RemoteReadError /
RemoteWriteError carrying a short user message.
"""

from __future__ import annotations

from typing import Any, Dict, List

from pydantic import ValidationError

from portfolio.exceptions import (
    IdentityResolutionError,
    RemoteReadError,
    RemoteWriteError,
    StoreRequestError,
)
from portfolio.log_config import debug_log, get_logger
from portfolio.models import (
    PropertyForm,
    PropertyRecord,
    PropertyRef,
    coerce_submission,
    resolve_property_id,
)
from portfolio.store_client import StoreClient

logger = get_logger(__name__)


class PropertyRepository:
    """Create / read / update / delete properties through a StoreClient."""

    def __init__(self, client: StoreClient) -> None:
        self.client = client

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def list(self) -> List[PropertyRecord]:
        """Fetch every property ordered by id ascending.

        Raises:
            RemoteReadError: If the fetch fails or a row cannot be parsed
        """
        try:
            rows = self.client.select(order_by="id", ascending=True)
        except StoreRequestError as e:
            logger.error("Error fetching properties: %s", e, extra={"context": e.details})
            raise RemoteReadError(
                f"Fetching properties failed: {e}",
                user_message=f"Could not load properties. {e.user_message}",
                details=e.details,
            ) from e

        try:
            records = [PropertyRecord.model_validate(row) for row in rows]
        except ValidationError as e:
            logger.error("Store returned malformed property rows: %s", e)
            raise RemoteReadError(
                "Store returned malformed property rows",
                user_message="Could not load properties. The store returned malformed rows.",
                details={"errors": e.errors(include_url=False)},
            ) from e

        logger.info("Loaded %d properties", len(records))
        return records

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, form: PropertyForm) -> PropertyRecord:
        """Insert one property and return it with its server-assigned id.

        Raises:
            RemoteWriteError: If the store rejects the row or returns no rows
        """
        submission = debug_log("Submission Data", coerce_submission(form), logger)

        try:
            rows = self.client.insert([submission])
        except StoreRequestError as e:
            raise self._write_failed("add", e, submission=submission) from e

        record = self._first_record("add", rows, submission=submission)
        logger.info("Added property %s (%s)", record.id, record.address)
        return record

    def update(self, ref: PropertyRef, form: PropertyForm) -> PropertyRecord:
        """Replace the editable fields of the property identified by ``ref``.

        ``ref`` may be an id, a record, or a wrapper holding the record under
        ``propertyData``. The id is resolved before any request is made.

        Raises:
            IdentityResolutionError: If no id can be determined from ``ref``
            RemoteWriteError: If the store rejects the update or returns no rows
        """
        try:
            property_id = resolve_property_id(ref)
        except IdentityResolutionError:
            logger.error("Could not determine property ID for update: %r", ref)
            raise

        submission = coerce_submission(form)
        debug_log("Submission Data", {"propertyId": property_id, "submissionData": submission}, logger)

        try:
            rows = self.client.update(submission, match={"id": property_id})
        except StoreRequestError as e:
            raise self._write_failed("update", e, property_id=property_id, submission=submission) from e

        record = self._first_record("update", rows, property_id=property_id, submission=submission)
        debug_log("Update Success", record.to_row(), logger)
        logger.info("Updated property %s", record.id)
        return record

    def remove(self, property_id: int) -> None:
        """Hard-delete the property with ``property_id``.

        Raises:
            RemoteWriteError: If the store rejects the delete
        """
        try:
            self.client.delete(match={"id": property_id})
        except StoreRequestError as e:
            raise self._write_failed("delete", e, property_id=property_id) from e

        logger.info("Deleted property %s", property_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _write_failed(self, action: str, error: StoreRequestError, **context: Any) -> RemoteWriteError:
        details: Dict[str, Any] = {"action": action, **context, **error.details}
        logger.error("Error on property %s: %s", action, error, extra={"context": details})
        return RemoteWriteError(
            f"Property {action} failed: {error}",
            user_message=error.user_message or f"Failed to {action} property",
            details=details,
        )

    def _first_record(self, action: str, rows: List[Dict[str, Any]], **context: Any) -> PropertyRecord:
        if not rows:
            details = {"action": action, **context}
            logger.error("No data returned from the server on property %s", action, extra={"context": details})
            raise RemoteWriteError(
                f"Property {action} returned no rows",
                user_message="No data returned from the server",
                details=details,
            )
        try:
            return PropertyRecord.model_validate(rows[0])
        except ValidationError as e:
            details = {"action": action, "row": rows[0], **context}
            logger.error("Store returned a malformed row on property %s: %s", action, e)
            raise RemoteWriteError(
                f"Property {action} returned a malformed row",
                user_message="The server returned an unexpected property.",
                details=details,
            ) from e
