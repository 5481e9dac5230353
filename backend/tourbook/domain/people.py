"""Attendee lists stored on visit-history rows.

Manually authored entries carry a free-text attendee field. It is parsed once,
at the storage boundary, into either a structured list or a raw fallback.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence, Union

from .services import companion_full_name

RAW_NAME_MAX_LENGTH = 60


@dataclass(frozen=True)
class StructuredAttendees:
    items: list[dict[str, Any]] = field(default_factory=list)

    def to_records(self) -> list[dict[str, Any]]:
        return [dict(item) for item in self.items]


@dataclass(frozen=True)
class RawAttendees:
    text: str

    def to_records(self) -> list[dict[str, Any]]:
        return [{"name": self.text[:RAW_NAME_MAX_LENGTH], "age_band": None}]


Attendees = Union[StructuredAttendees, RawAttendees]


def parse_attendees(raw: str | None) -> Attendees:
    if raw is None or not raw.strip():
        return StructuredAttendees()
    try:
        decoded = json.loads(raw)
    except ValueError:
        return RawAttendees(raw)
    if not isinstance(decoded, list):
        return RawAttendees(raw)
    items: list[dict[str, Any]] = []
    for entry in decoded:
        if isinstance(entry, Mapping):
            items.append(dict(entry))
        else:
            items.append({"name": str(entry), "age_band": None})
    return StructuredAttendees(items)


def attendees_from_reservation(holder_name: str, companions: Sequence[Mapping[str, Any]]) -> StructuredAttendees:
    """Attendees recorded for a paid reservation.

    The holder is assumed to be listed among the companions, so only the
    companions are recorded. The holder alone is recorded when there are none.
    """
    items = [
        {"name": companion_full_name(companion), "age_band": companion.get("age_range")}
        for companion in companions
    ]
    if not items and holder_name:
        items.append({"name": holder_name, "age_band": None})
    return StructuredAttendees(items)
