from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from .errors import InsufficientCapacityError, ValidationFailedError

COMPANION_FIELDS = ("first_name", "last_name_paternal", "last_name_maternal", "age_range")


@dataclass(frozen=True)
class SlotSnapshot:
    capacity_total: int
    capacity_reserved: int

    @property
    def remaining(self) -> int:
        return max(self.capacity_total - self.capacity_reserved, 0)


def validate_capacity(snapshot: SlotSnapshot, *, qty: int) -> int:
    """
    Pure capacity check for reserving `qty` seats.
    Returns remaining capacity after booking if OK. Raises domain errors otherwise.
    """
    if qty <= 0:
        raise ValidationFailedError("party size must be at least 1")
    if qty > snapshot.remaining:
        raise InsufficientCapacityError(requested=qty, remaining=snapshot.remaining)
    return snapshot.remaining - qty


def normalize_companions(companions: Sequence[Mapping[str, Any]], *, party_size: int) -> list[dict[str, str]]:
    if party_size < 1:
        raise ValidationFailedError("party size must be at least 1")
    if len(companions) != party_size:
        raise ValidationFailedError(
            f"expected details for {party_size} people but got {len(companions)}"
        )
    normalized: list[dict[str, str]] = []
    for position, companion in enumerate(companions, start=1):
        entry = {field: str(companion.get(field) or "").strip() for field in COMPANION_FIELDS}
        missing = [field for field, value in entry.items() if not value]
        if missing:
            raise ValidationFailedError(
                f"person {position} is missing: {', '.join(missing)}"
            )
        normalized.append(entry)
    return normalized


def validate_contact_email(email: str, email_confirm: str) -> str:
    email = email.strip()
    if email != email_confirm.strip():
        raise ValidationFailedError("email and email confirmation do not match")
    return email


def companion_full_name(companion: Mapping[str, Any]) -> str:
    parts = (
        companion.get("first_name"),
        companion.get("last_name_paternal"),
        companion.get("last_name_maternal"),
    )
    return " ".join(str(part).strip() for part in parts if part and str(part).strip())
