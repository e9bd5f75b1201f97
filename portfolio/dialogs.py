"""
portfolio/dialogs.py

Add / Edit / Delete dialog state, independent of Streamlit.

Each dialog walks: closed -> idle -> submitting -> success | idle (with error).

- A failed submission returns to idle with ``error`` (short message) and
  ``debug_info`` (structured details for the diagnostics panel) set; the
  entered form values are kept so the user can resubmit.
- ``submit()`` is refused unless the dialog is idle, so the same dialog
  never has two submissions in flight.
- Every PortfolioError is caught here; nothing propagates to the page.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from portfolio.exceptions import IdentityResolutionError, PortfolioError
from portfolio.list_state import PropertyListState
from portfolio.log_config import get_logger
from portfolio.models import (
    FIELD_LABELS,
    PropertyForm,
    PropertyRecord,
    ResolvedProperty,
    extract_property_fields,
    resolve_property_ref,
)
from portfolio.repository import PropertyRepository

logger = get_logger(__name__)


class DialogStatus(str, Enum):
    CLOSED = "closed"
    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"


class PropertyDialog:
    """Shared open / submit / fail / close behaviour."""

    action = "submit"

    def __init__(self, repository: PropertyRepository, list_state: PropertyListState) -> None:
        self.repository = repository
        self.list_state = list_state
        self.status = DialogStatus.CLOSED
        self.error: Optional[str] = None
        self.debug_info: Optional[Dict[str, Any]] = None

    @property
    def is_open(self) -> bool:
        return self.status != DialogStatus.CLOSED

    @property
    def is_submitting(self) -> bool:
        return self.status == DialogStatus.SUBMITTING

    @property
    def succeeded(self) -> bool:
        return self.status == DialogStatus.SUCCESS

    @property
    def can_submit(self) -> bool:
        return self.status == DialogStatus.IDLE

    def to_debug_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "error": self.error,
            "debug_info": self.debug_info,
        }

    def _clear_messages(self) -> None:
        self.error = None
        self.debug_info = None

    def close(self) -> None:
        self.status = DialogStatus.CLOSED
        self._clear_messages()

    def _fail(self, error: PortfolioError) -> None:
        logger.warning("%s dialog failed: %s", self.action.capitalize(), error)
        self.error = error.user_message
        self.debug_info = error.to_debug_info()
        self.status = DialogStatus.IDLE

    def submit(self) -> bool:
        """Run the dialog's store operation.

        Returns True on success. On failure the dialog is idle again with
        ``error`` set; the exception never escapes.
        """
        if not self.can_submit:
            logger.debug("Ignoring %s submit while dialog is %s", self.action, self.status.value)
            return False

        self.status = DialogStatus.SUBMITTING
        self._clear_messages()
        try:
            self._perform()
        except PortfolioError as e:
            self._fail(e)
            return False
        self._on_success()
        return True

    def _perform(self) -> None:
        raise NotImplementedError

    def _on_success(self) -> None:
        self.status = DialogStatus.SUCCESS


class PropertyFormDialog(PropertyDialog):
    """Dialogs that collect a PropertyForm."""

    def __init__(self, repository: PropertyRepository, list_state: PropertyListState) -> None:
        super().__init__(repository, list_state)
        self.form = PropertyForm()

    def update_form(self, **fields: str) -> None:
        """Apply widget values to the form (ignored while submitting)."""
        if self.is_submitting:
            return
        self.form = self.form.model_copy(update=fields)

    def validation_error(self) -> Optional[str]:
        missing = self.form.missing_required()
        if not missing:
            return None
        return "Please fill in: " + ", ".join(FIELD_LABELS[name] for name in missing)

    def submit(self) -> bool:
        if self.can_submit:
            problem = self.validation_error()
            if problem:
                self.error = problem
                self.debug_info = None
                return False
        return super().submit()


class AddPropertyDialog(PropertyFormDialog):
    action = "add"

    def __init__(self, repository: PropertyRepository, list_state: PropertyListState) -> None:
        super().__init__(repository, list_state)
        self.created: Optional[PropertyRecord] = None

    def reset(self) -> None:
        self.form = PropertyForm()
        self.created = None
        self._clear_messages()

    def open(self) -> None:
        self.reset()
        self.status = DialogStatus.IDLE

    def add_another(self) -> None:
        """Back to an empty form after a success, for rapid repeated entry."""
        self.reset()
        self.status = DialogStatus.IDLE

    def close(self) -> None:
        self.reset()
        super().close()

    def _perform(self) -> None:
        record = self.repository.create(self.form)
        self.list_state.add(record)
        self.created = record


class EditPropertyDialog(PropertyFormDialog):
    action = "update"

    def __init__(self, repository: PropertyRepository, list_state: PropertyListState) -> None:
        super().__init__(repository, list_state)
        self.target: Any = None
        self.resolved: Optional[ResolvedProperty] = None
        self.updated: Optional[PropertyRecord] = None

    def open(self, ref: Any) -> None:
        """Open for a bare record or a wrapper holding it under ``propertyData``.

        The reference is resolved once here. An unusable reference leaves the
        dialog open with an error; submitting it then fails without any
        network call.
        """
        self.target = ref
        self.resolved = None
        self.updated = None
        self.form = PropertyForm()
        self._clear_messages()
        self.status = DialogStatus.IDLE

        fields = extract_property_fields(ref)
        if fields is None:
            logger.error("EditPropertyDialog received unexpected property structure: %r", ref)
            self.error = "Unexpected property structure. Check the diagnostics panel for details."
            self.debug_info = {"error": "Unexpected property structure", "receivedProperty": _jsonable(ref)}
            return

        self.form = PropertyForm.from_record(fields)
        try:
            self.resolved = resolve_property_ref(ref)
        except IdentityResolutionError as e:
            self.error = e.user_message
            self.debug_info = e.to_debug_info()

    @property
    def property_id(self) -> Optional[int]:
        return self.resolved.property_id if self.resolved else None

    def close(self) -> None:
        super().close()
        self.target = None
        self.resolved = None

    def submit(self) -> bool:
        if self.can_submit and self.resolved is None:
            # Unresolvable target: fail on identity, not on the empty form
            return PropertyDialog.submit(self)
        return super().submit()

    def _perform(self) -> None:
        ref = self.resolved.property_id if self.resolved else self.target
        record = self.repository.update(ref, self.form)
        self.list_state.replace(record)
        self.updated = record


class DeletePropertyDialog(PropertyDialog):
    action = "delete"

    def __init__(self, repository: PropertyRepository, list_state: PropertyListState) -> None:
        super().__init__(repository, list_state)
        self.record: Optional[PropertyRecord] = None

    def open(self, record: PropertyRecord) -> None:
        self.record = record
        self._clear_messages()
        self.status = DialogStatus.IDLE

    def close(self) -> None:
        super().close()
        self.record = None

    def _perform(self) -> None:
        if self.record is None:
            raise IdentityResolutionError("No property selected for deletion")
        self.repository.remove(self.record.id)
        self.list_state.remove(self.record.id)

    def _on_success(self) -> None:
        # Delete closes straight away instead of showing a success view
        self.close()


def _jsonable(value: Any) -> Any:
    if isinstance(value, PropertyRecord):
        return value.to_row()
    if isinstance(value, dict):
        return value
    return repr(value)
