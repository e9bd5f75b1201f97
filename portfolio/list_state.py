"""
portfolio/list_state.py

Session-owned list of properties.

The page keeps exactly one PropertyListState per browser session (in
st.session_state). It is rehydrated by a full fetch at startup and then
mutated only with the results of completed store calls.
"""

from typing import Iterator, List, Optional

from portfolio.models import PropertyRecord


class PropertyListState:
    """Ordered-by-insertion in-memory collection of properties.

    ``add`` does not deduplicate: adding a record whose id is already present
    yields two rows with that id.
    """

    def __init__(self, records: Optional[List[PropertyRecord]] = None) -> None:
        self._records: List[PropertyRecord] = list(records or [])
        self.loaded = records is not None
        self.load_error: Optional[str] = None

    def load(self, records: List[PropertyRecord]) -> None:
        """Replace the whole list with a freshly fetched one."""
        self._records = list(records)
        self.loaded = True
        self.load_error = None

    def mark_load_failed(self, message: str) -> None:
        """Record a failed startup fetch; the list stays as it was."""
        self.loaded = False
        self.load_error = message

    def add(self, record: PropertyRecord) -> None:
        self._records.append(record)

    def replace(self, record: PropertyRecord) -> None:
        """Substitute every record sharing ``record.id``; no-op if none does."""
        self._records = [record if r.id == record.id else r for r in self._records]

    def remove(self, property_id: int) -> None:
        self._records = [r for r in self._records if r.id != property_id]

    def get(self, property_id: int) -> Optional[PropertyRecord]:
        return next((r for r in self._records if r.id == property_id), None)

    def to_debug_dict(self) -> dict:
        return {
            "count": len(self._records),
            "ids": [r.id for r in self._records],
            "loaded": self.loaded,
            "load_error": self.load_error,
        }

    @property
    def records(self) -> List[PropertyRecord]:
        """A copy of the current list in insertion order."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PropertyRecord]:
        return iter(list(self._records))
