"""Pytest configuration and fixtures."""

from typing import Any, Dict, List, Mapping, Optional

import pytest

from portfolio.exceptions import StoreRequestError
from portfolio.list_state import PropertyListState
from portfolio.models import PropertyRecord
from portfolio.repository import PropertyRepository


class FakeStoreClient:
    """In-memory stand-in for the hosted properties table.

    Records every call in ``calls``. Set ``fail_with`` to make the next
    operation raise, or ``return_nothing`` to make writes return no rows.
    """

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None) -> None:
        self.rows: List[Dict[str, Any]] = [dict(r) for r in rows or []]
        self.next_id = max((r["id"] for r in self.rows), default=0) + 1
        self.calls: List[tuple] = []
        self.fail_with: Optional[StoreRequestError] = None
        self.return_nothing = False

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            error, self.fail_with = self.fail_with, None
            raise error

    def select(self, order_by: str = "id", ascending: bool = True) -> List[Dict[str, Any]]:
        self.calls.append(("select", order_by, ascending))
        self._maybe_fail()
        return sorted((dict(r) for r in self.rows), key=lambda r: r[order_by], reverse=not ascending)

    def insert(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        self.calls.append(("insert", rows))
        self._maybe_fail()
        if self.return_nothing:
            return []
        created = []
        for row in rows:
            new_row = {**row, "id": self.next_id}
            self.next_id += 1
            self.rows.append(new_row)
            created.append(dict(new_row))
        return created

    def update(self, values: Dict[str, Any], match: Mapping[str, Any]) -> List[Dict[str, Any]]:
        self.calls.append(("update", values, dict(match)))
        self._maybe_fail()
        if self.return_nothing:
            return []
        updated = []
        for row in self.rows:
            if all(row.get(k) == v for k, v in match.items()):
                row.update(values)
                updated.append(dict(row))
        return updated

    def delete(self, match: Mapping[str, Any]) -> List[Dict[str, Any]]:
        self.calls.append(("delete", dict(match)))
        self._maybe_fail()
        self.rows = [r for r in self.rows if not all(r.get(k) == v for k, v in match.items())]
        return []


@pytest.fixture
def sample_rows() -> List[Dict[str, Any]]:
    """Three stored properties, deliberately not in id order."""
    return [
        {
            "id": 3,
            "address": "12 Oak Street",
            "type": "House",
            "bedrooms": 3,
            "bathrooms": 1.5,
            "valuation": "£250,500.50",
            "estate_agent": "Foxtons",
            "selling_agent": None,
            "occupied": "Yes",
        },
        {
            "id": 1,
            "address": "Flat 4, Mill Lane",
            "type": "Flat",
            "bedrooms": 2,
            "bathrooms": 1,
            "valuation": "£100,000",
            "estate_agent": None,
            "selling_agent": "Savills",
            "occupied": "No",
        },
        {
            "id": 2,
            "address": "7 Harbour View",
            "type": "House",
            "bedrooms": 4,
            "bathrooms": 2.5,
            "valuation": "",
            "estate_agent": "",
            "selling_agent": "",
            "occupied": "No",
        },
    ]


@pytest.fixture
def sample_records(sample_rows) -> List[PropertyRecord]:
    return [PropertyRecord.model_validate(row) for row in sample_rows]


@pytest.fixture
def fake_store(sample_rows) -> FakeStoreClient:
    return FakeStoreClient(sample_rows)


@pytest.fixture
def repository(fake_store) -> PropertyRepository:
    return PropertyRepository(fake_store)


@pytest.fixture
def list_state(sample_records) -> PropertyListState:
    return PropertyListState(sorted(sample_records, key=lambda r: r.id))


@pytest.fixture
def store_error() -> StoreRequestError:
    return StoreRequestError(
        "POST properties failed with HTTP 400: null value in column \"address\"",
        status_code=400,
        payload={"code": "23502", "message": "null value in column \"address\""},
        user_message="null value in column \"address\"",
    )
