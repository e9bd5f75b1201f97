# portfolio/dev_observability.py
# Diagnostics panel helpers: redacted event timeline, session snapshots, JSON export.
# Only rendered when ENABLE_DEBUG_UI is on (local env).

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, MutableMapping, Optional

EVENTS_KEY = "_portfolio_events"
MAX_EVENTS = 100
REDACTED = "[REDACTED]"

# Substrings marking a key whose value is a store credential or similar
SENSITIVE_MARKERS = (
    "apikey",
    "api_key",
    "authorization",
    "supabase_key",
    "anon_key",
    "service_role",
    "password",
    "token",
    "secret",
)


def is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in SENSITIVE_MARKERS)


def redact_value(key: str, value: Any) -> Any:
    """Hide credentials anywhere inside ``value``.

    Nested dicts are walked key by key; list items inherit the key of the list.
    """
    if is_sensitive(key):
        return REDACTED
    if isinstance(value, Mapping):
        return {k: redact_value(str(k), v) for k, v in value.items()}
    if isinstance(value, list):
        return [redact_value(key, item) for item in value]
    return value


def utc_stamp() -> str:
    """UTC time with millisecond precision and a Z suffix."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


def track_event(
    session_state: MutableMapping[str, Any],
    name: str,
    details: Optional[Dict[str, Any]] = None,
) -> None:
    """Record a fetch / submit / failure event on the session timeline.

    The timeline keeps the latest MAX_EVENTS entries.
    """
    event: Dict[str, Any] = {"ts": utc_stamp(), "name": name}
    if details:
        event["details"] = redact_value("details", details)

    events = list(session_state.get(EVENTS_KEY, []))
    events.append(event)
    session_state[EVENTS_KEY] = events[-MAX_EVENTS:]


def snapshot_state(session_state: Mapping[str, Any], keys: List[str]) -> Dict[str, Any]:
    """Redacted view of selected session keys.

    Objects with a ``to_debug_dict()`` method (list state, dialogs) are shown
    through it.
    """
    snapshot: Dict[str, Any] = {}
    for key in keys:
        if key not in session_state:
            snapshot[key] = {"exists": False}
            continue
        value = session_state[key]
        to_debug_dict = getattr(value, "to_debug_dict", None)
        if callable(to_debug_dict):
            value = to_debug_dict()
        snapshot[key] = {"value": redact_value(key, value), "exists": True}
    return snapshot


def get_recent_events(session_state: Mapping[str, Any], limit: int = 30) -> List[Dict[str, Any]]:
    """Newest first."""
    events = session_state.get(EVENTS_KEY, [])
    return events[::-1][:limit]


def clear_debug_history(session_state: MutableMapping[str, Any]) -> None:
    session_state[EVENTS_KEY] = []


def export_snapshot_json(session_state: Mapping[str, Any], keys: List[str]) -> str:
    """Snapshot plus the last 50 events as indented JSON, for bug reports."""
    return json.dumps(
        {
            "timestamp": utc_stamp(),
            "state": snapshot_state(session_state, keys),
            "recent_events": get_recent_events(session_state, limit=50),
        },
        indent=2,
        default=str,
    )
