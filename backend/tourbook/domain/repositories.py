from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from ..models import Activity, ExtraVisit, PaymentMethod, Reservation, ReservationStatus, ScheduleSlot, VisitHistory


@dataclass
class ReservationView:
    """A reservation joined with its slot and activity; the slot may have been deleted."""

    reservation: Reservation
    slot: ScheduleSlot | None
    activity_name: str

    @property
    def starts_at(self) -> datetime | None:
        return self.slot.starts_at if self.slot is not None else None


class ActivityRepository(Protocol):
    async def get(self, activity_id: str) -> Activity | None: ...

    async def create(
        self,
        *,
        name: str,
        description: str | None,
        location: str | None,
        base_price_cents: int,
    ) -> Activity: ...

    async def list_all(self) -> list[Activity]: ...


class SlotRepository(Protocol):
    async def get(self, slot_id: str) -> ScheduleSlot | None: ...

    async def reserve_seats(self, slot_id: str, qty: int) -> ScheduleSlot | None:
        """Atomically add `qty` to capacity_reserved if it still fits; None when it does not."""
        ...

    async def release_seats(self, slot_id: str, qty: int) -> None: ...

    async def create(
        self,
        *,
        activity_id: str,
        starts_at: datetime,
        ends_at: datetime,
        capacity_total: int,
        price_cents: int,
        published: bool,
    ) -> ScheduleSlot: ...

    async def list_published_for_activity(self, activity_id: str) -> list[ScheduleSlot]: ...

    async def delete(self, slot_id: str) -> bool: ...


class ReservationRepository(Protocol):
    async def get_for_update(self, reservation_id: str) -> Reservation | None: ...

    async def get_view(self, reservation_id: str) -> ReservationView | None: ...

    async def find_view_by_checkin_code(self, code: str) -> ReservationView | None: ...

    async def find_view_for_holder(self, reservation_id: str, phone_last_digits: str) -> ReservationView | None: ...

    async def checkin_code_exists(self, code: str) -> bool: ...

    async def create(
        self,
        *,
        slot_id: str,
        activity_id: str,
        holder_name: str,
        phone: str,
        email: str,
        party_size: int,
        companions: list[dict[str, Any]],
        notes: str,
        pay_method: PaymentMethod,
        amount_cents: int,
        status: ReservationStatus,
    ) -> Reservation: ...

    async def save(self, reservation: Reservation) -> Reservation: ...

    async def list_page(self, *, limit: int, offset: int) -> tuple[list[ReservationView], int]: ...


class VisitHistoryRepository(Protocol):
    async def append(self, entry: VisitHistory) -> VisitHistory: ...

    async def list_page(self, *, limit: int, offset: int) -> tuple[list[VisitHistory], int]: ...

    async def delete(self, entry_id: str) -> bool: ...


class ExtraVisitRepository(Protocol):
    async def create(
        self,
        *,
        reservation_id: str,
        activity_id: str,
        note: str,
        visited_at: datetime | None,
    ) -> ExtraVisit: ...

    async def list_for_reservation(self, reservation_id: str) -> list[ExtraVisit]: ...


class PaymentNotifier(Protocol):
    async def notify_payment_confirmed(self, view: ReservationView, checkin_code: str) -> bool:
        """Deliver the payment confirmation; True only when delivery succeeded."""
        ...
