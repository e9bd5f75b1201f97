"""
portfolio/models.py

Pydantic models for the property portfolio screen.

- PropertyRecord: one row of the hosted ``properties`` table
- PropertyForm: the text-valued state of the Add / Edit dialogs
- coerce_submission(): form text -> wire payload (numeric coercion)
- resolve_property_ref(): normalizes the two shapes an edit target can arrive in
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portfolio.exceptions import IdentityResolutionError


class PropertyType(str, Enum):
    HOUSE = "House"
    FLAT = "Flat"


class Occupancy(str, Enum):
    YES = "Yes"
    NO = "No"


PROPERTY_TYPES: List[str] = [t.value for t in PropertyType]
OCCUPANCY_OPTIONS: List[str] = [o.value for o in Occupancy]

# Key under which a wrapped edit target carries its record
WRAPPER_KEY = "propertyData"

REQUIRED_FIELDS = ("address", "type", "bedrooms", "bathrooms", "valuation")

FIELD_LABELS: Dict[str, str] = {
    "id": "ID",
    "address": "Address",
    "type": "Type",
    "bedrooms": "Bedrooms",
    "bathrooms": "Bathrooms",
    "valuation": "Last Valuation",
    "estate_agent": "Estate Agent",
    "selling_agent": "Selling Agent",
    "occupied": "Occupied",
}

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_DECIMAL_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


# ========================================================================
# TEXT <-> NUMBER HELPERS
# ========================================================================

def parse_int_prefix(text: Optional[str]) -> Optional[int]:
    """Parse the leading integer of ``text`` ("3", "3.7" -> 3); None if there is none."""
    if not text:
        return None
    match = _INT_PREFIX.match(text)
    if not match:
        return None
    return int(match.group(1))


def parse_decimal_prefix(text: Optional[str]) -> Optional[Decimal]:
    """Parse the leading decimal number of ``text`` ("1.5", "100k" -> 100); None if there is none."""
    if not text:
        return None
    match = _DECIMAL_PREFIX.match(text)
    if not match:
        return None
    return Decimal(match.group(1))


def number_text(value: Optional[Union[int, float, Decimal]]) -> str:
    """Render a number the way the page shows it.

    Integral values drop their fractional part (2.0 -> "2"), others use the
    shortest representation (1.5 -> "1.5"). None renders as "".
    """
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if value == value.to_integral_value():
        return str(int(value))
    return format(value.normalize(), "f")


# ========================================================================
# RECORD
# ========================================================================

class PropertyRecord(BaseModel):
    """One property row as exchanged with the hosted store.

    ``type`` and ``occupied`` are kept as text: the enumerations are enforced
    by the form widgets only, never on rows read back from the store.
    """
    model_config = ConfigDict(extra="ignore")

    id: int = Field(..., description="Server-assigned identifier")
    address: str = Field("", description="Street address")
    type: str = Field("", description="House or Flat")
    bedrooms: Optional[int] = Field(None, description="Bedroom count")
    bathrooms: Optional[float] = Field(None, description="Bathroom count in 0.5 steps")
    valuation: Optional[str] = Field(None, description="Free-form valuation, may start with £")
    estate_agent: Optional[str] = Field(None, description="Estate agent (optional)")
    selling_agent: Optional[str] = Field(None, description="Selling agent (optional)")
    occupied: str = Field(Occupancy.NO.value, description="Yes or No")

    @field_validator("address", "type", mode="before")
    @classmethod
    def none_to_blank(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("occupied", mode="before")
    @classmethod
    def default_occupied(cls, v: Any) -> Any:
        return Occupancy.NO.value if v is None else v

    @field_validator("valuation", mode="before")
    @classmethod
    def valuation_as_text(cls, v: Any) -> Any:
        """Numeric valuation columns come back as numbers; keep the text form."""
        if isinstance(v, (int, float, Decimal)) and not isinstance(v, bool):
            return number_text(v)
        return v

    def to_row(self) -> Dict[str, Any]:
        """Plain dict in the store's column layout."""
        return self.model_dump()


# ========================================================================
# FORM
# ========================================================================

class PropertyForm(BaseModel):
    """Text-valued state of an Add / Edit dialog."""

    address: str = ""
    type: str = ""
    bedrooms: str = ""
    bathrooms: str = ""
    valuation: str = ""
    estate_agent: str = ""
    selling_agent: str = ""
    occupied: str = Occupancy.NO.value

    @classmethod
    def from_record(cls, record: Union[PropertyRecord, Mapping[str, Any]]) -> "PropertyForm":
        """Pre-fill a form from a record or a raw row mapping."""
        data = record.to_row() if isinstance(record, PropertyRecord) else dict(record)

        def text(key: str) -> str:
            value = data.get(key)
            return "" if value is None else str(value)

        return cls(
            address=text("address"),
            type=text("type"),
            bedrooms=number_text(data.get("bedrooms")) if _is_number(data.get("bedrooms")) else text("bedrooms"),
            bathrooms=number_text(data.get("bathrooms")) if _is_number(data.get("bathrooms")) else text("bathrooms"),
            valuation=text("valuation"),
            estate_agent=text("estate_agent"),
            selling_agent=text("selling_agent"),
            occupied=text("occupied") or Occupancy.NO.value,
        )

    def missing_required(self) -> List[str]:
        """Names of required fields that are blank."""
        return [name for name in REQUIRED_FIELDS if not getattr(self, name).strip()]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def coerce_submission(form: PropertyForm) -> Dict[str, Any]:
    """Convert form text into the payload the store expects.

    bedrooms -> int, bathrooms -> float; empty, unparsable or negative input
    becomes None (never 0 or NaN). Every other field passes through unchanged.
    """
    payload = form.model_dump()

    bedrooms = parse_int_prefix(form.bedrooms)
    payload["bedrooms"] = bedrooms if bedrooms is not None and bedrooms >= 0 else None

    bathrooms = parse_decimal_prefix(form.bathrooms)
    payload["bathrooms"] = float(bathrooms) if bathrooms is not None and bathrooms >= 0 else None

    return payload


# ========================================================================
# EDIT TARGET RESOLUTION
# ========================================================================

PropertyRef = Union[int, PropertyRecord, Mapping[str, Any]]


@dataclass(frozen=True)
class ResolvedProperty:
    """An edit target normalized to its id and record fields."""

    property_id: int
    fields: Dict[str, Any]
    wrapped: bool = False


def _usable_id(value: Any) -> Optional[int]:
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return None


def _as_mapping(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, PropertyRecord):
        return value.to_row()
    if isinstance(value, Mapping):
        return dict(value)
    return None


def extract_property_fields(ref: Any) -> Optional[Dict[str, Any]]:
    """Return the record fields of a bare or wrapped reference, or None.

    A wrapper (``{"propertyData": {...}}``) yields its nested record; a bare
    record yields itself if it carries an ``id`` key.
    """
    data = _as_mapping(ref)
    if data is None:
        return None
    nested = _as_mapping(data.get(WRAPPER_KEY)) if data.get(WRAPPER_KEY) else None
    if nested is not None:
        return nested
    if data.get("id") is not None:
        return data
    return None


def resolve_property_id(ref: Any) -> int:
    """Determine the id an edit should target.

    Accepts a bare id, a PropertyRecord, a bare row mapping, or a wrapper
    holding the row under ``propertyData``. The nested id wins; the outer id
    is the fallback.

    Raises:
        IdentityResolutionError: If no positive integer id can be found
    """
    direct = _usable_id(ref)
    if direct is not None:
        return direct

    data = _as_mapping(ref)
    if data is not None:
        nested = _as_mapping(data.get(WRAPPER_KEY)) if data.get(WRAPPER_KEY) else None
        if nested is not None:
            nested_id = _usable_id(nested.get("id"))
            if nested_id is not None:
                return nested_id
        outer_id = _usable_id(data.get("id"))
        if outer_id is not None:
            return outer_id

    raise IdentityResolutionError(
        "Could not determine property ID for update",
        details={"property": _describe_ref(ref)},
    )


def resolve_property_ref(ref: Any) -> ResolvedProperty:
    """Resolve a reference into its id and record fields in one step."""
    property_id = resolve_property_id(ref)
    fields = extract_property_fields(ref)
    if fields is None:
        fields = {"id": property_id}
    data = _as_mapping(ref) or {}
    return ResolvedProperty(
        property_id=property_id,
        fields=fields,
        wrapped=bool(data.get(WRAPPER_KEY)),
    )


def _describe_ref(ref: Any) -> Any:
    data = _as_mapping(ref)
    if data is not None:
        return data
    return repr(ref)
