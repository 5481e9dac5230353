from dataclasses import dataclass
from datetime import datetime

from ..domain.errors import NotFoundError, ValidationFailedError
from ..domain.people import Attendees, attendees_from_reservation
from ..domain.repositories import ReservationView, VisitHistoryRepository
from ..models import VisitHistory
from ..utils.time import utc_now_naive

PAGE_SIZE = 10


@dataclass(frozen=True)
class ManualHistoryEntry:
    attendees: Attendees
    record_at: datetime | None = None
    activity_id: str | None = None
    activity_name: str = ""
    slot_id: str | None = None
    start_at: datetime | None = None
    phone: str = ""
    email: str = ""
    pay_method: str = ""
    amount_cents: int = 0
    notes: str = ""


async def append_from_reservation(history_repo: VisitHistoryRepository, *, view: ReservationView) -> VisitHistory:
    reservation = view.reservation
    people = attendees_from_reservation(reservation.holder_name, reservation.companions or [])
    entry = VisitHistory(
        reservation_id=reservation.id,
        record_at=utc_now_naive(),
        activity_id=reservation.activity_id,
        activity_name=view.activity_name,
        slot_id=reservation.slot_id,
        start_at=view.starts_at,
        people=people.to_records(),
        phone=reservation.phone or "",
        email=reservation.email or "",
        pay_method=str(reservation.pay_method or ""),
        amount_cents=reservation.amount_cents or 0,
        notes=reservation.notes or "",
    )
    return await history_repo.append(entry)


async def append_manual(history_repo: VisitHistoryRepository, *, entry: ManualHistoryEntry) -> VisitHistory:
    if entry.amount_cents < 0:
        raise ValidationFailedError("amount must not be negative")
    record = VisitHistory(
        reservation_id=None,
        record_at=entry.record_at or utc_now_naive(),
        activity_id=entry.activity_id or None,
        activity_name=entry.activity_name,
        slot_id=entry.slot_id or None,
        start_at=entry.start_at,
        people=entry.attendees.to_records(),
        phone=entry.phone,
        email=entry.email,
        pay_method=entry.pay_method,
        amount_cents=entry.amount_cents,
        notes=entry.notes,
    )
    return await history_repo.append(record)


async def list_history(history_repo: VisitHistoryRepository, *, page: int) -> tuple[list[VisitHistory], int]:
    page = max(page, 1)
    return await history_repo.list_page(limit=PAGE_SIZE, offset=(page - 1) * PAGE_SIZE)


async def delete_entry(history_repo: VisitHistoryRepository, *, entry_id: str) -> None:
    if not await history_repo.delete(entry_id):
        raise NotFoundError("history entry not found")
