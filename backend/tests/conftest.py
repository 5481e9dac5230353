from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import pytest
from tourbook.domain.repositories import ReservationView
from tourbook.models import (
    Activity,
    ExtraVisit,
    PaymentMethod,
    Reservation,
    ReservationStatus,
    ScheduleSlot,
    VisitHistory,
    new_id,
)


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def companion(first_name: str = "Ana", age_range: str = "18-30") -> dict[str, str]:
    return {
        "first_name": first_name,
        "last_name_paternal": "Lopez",
        "last_name_maternal": "Ruiz",
        "age_range": age_range,
    }


@dataclass
class InMemoryStore:
    activities: dict[str, Activity] = field(default_factory=dict)
    slots: dict[str, ScheduleSlot] = field(default_factory=dict)
    reservations: dict[str, Reservation] = field(default_factory=dict)
    history: list[VisitHistory] = field(default_factory=list)
    extra_visits: list[ExtraVisit] = field(default_factory=list)

    def add_activity(self, name: str = "Cascadas") -> Activity:
        activity = Activity(
            id=new_id(),
            name=name,
            description=None,
            location=None,
            base_price_cents=0,
            created_at=utc_now_naive(),
        )
        self.activities[activity.id] = activity
        return activity

    def add_slot(
        self,
        *,
        activity: Optional[Activity] = None,
        capacity_total: int = 10,
        capacity_reserved: int = 0,
        price_cents: int = 25000,
        published: bool = True,
    ) -> ScheduleSlot:
        activity = activity or self.add_activity()
        starts = utc_now_naive() + timedelta(days=3)
        slot = ScheduleSlot(
            id=new_id(),
            activity_id=activity.id,
            starts_at=starts,
            ends_at=starts + timedelta(hours=2),
            capacity_total=capacity_total,
            capacity_reserved=capacity_reserved,
            price_cents=price_cents,
            published=published,
            created_at=utc_now_naive(),
        )
        self.slots[slot.id] = slot
        return slot

    def add_reservation(
        self,
        slot: ScheduleSlot,
        *,
        party_size: int = 1,
        status: ReservationStatus = ReservationStatus.PENDING,
        checkin_code: Optional[str] = None,
        phone: str = "5512345678",
        email: str = "ana@example.com",
    ) -> Reservation:
        reservation = Reservation(
            id=new_id(),
            slot_id=slot.id,
            activity_id=slot.activity_id,
            holder_name="Ana Lopez",
            phone=phone,
            email=email,
            party_size=party_size,
            companions=[companion(f"Person{i}") for i in range(party_size)],
            notes="",
            pay_method=PaymentMethod.DEPOSIT,
            amount_cents=slot.price_cents * party_size,
            status=status,
            checkin_code=checkin_code,
            checked_in_at=None,
            paid_email_sent_at=None,
            created_at=utc_now_naive(),
        )
        self.reservations[reservation.id] = reservation
        return reservation

    def view(self, reservation: Reservation) -> ReservationView:
        activity = self.activities.get(reservation.activity_id)
        return ReservationView(
            reservation=reservation,
            slot=self.slots.get(reservation.slot_id),
            activity_name=activity.name if activity is not None else "",
        )


class FakeActivityRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def get(self, activity_id: str) -> Activity | None:
        return self.store.activities.get(activity_id)

    async def create(
        self,
        *,
        name: str,
        description: str | None,
        location: str | None,
        base_price_cents: int,
    ) -> Activity:
        activity = self.store.add_activity(name)
        activity.description = description
        activity.location = location
        activity.base_price_cents = base_price_cents
        return activity

    async def list_all(self) -> list[Activity]:
        return sorted(self.store.activities.values(), key=lambda a: a.name)


class FakeSlotRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.reserve_calls = 0

    async def get(self, slot_id: str) -> ScheduleSlot | None:
        return self.store.slots.get(slot_id)

    async def reserve_seats(self, slot_id: str, qty: int) -> ScheduleSlot | None:
        self.reserve_calls += 1
        slot = self.store.slots.get(slot_id)
        if slot is None or slot.capacity_reserved + qty > slot.capacity_total:
            return None
        slot.capacity_reserved += qty
        return slot

    async def release_seats(self, slot_id: str, qty: int) -> None:
        slot = self.store.slots.get(slot_id)
        if slot is not None:
            slot.capacity_reserved = max(slot.capacity_reserved - qty, 0)

    async def create(
        self,
        *,
        activity_id: str,
        starts_at: datetime,
        ends_at: datetime,
        capacity_total: int,
        price_cents: int,
        published: bool,
    ) -> ScheduleSlot:
        slot = ScheduleSlot(
            id=new_id(),
            activity_id=activity_id,
            starts_at=starts_at,
            ends_at=ends_at,
            capacity_total=capacity_total,
            capacity_reserved=0,
            price_cents=price_cents,
            published=published,
            created_at=utc_now_naive(),
        )
        self.store.slots[slot.id] = slot
        return slot

    async def list_published_for_activity(self, activity_id: str) -> list[ScheduleSlot]:
        slots = [s for s in self.store.slots.values() if s.activity_id == activity_id and s.published]
        return sorted(slots, key=lambda s: s.starts_at)

    async def delete(self, slot_id: str) -> bool:
        return self.store.slots.pop(slot_id, None) is not None


class FakeReservationRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.saved = 0
        self.taken_codes: set[str] = set()

    async def get_for_update(self, reservation_id: str) -> Reservation | None:
        return self.store.reservations.get(reservation_id)

    async def get_view(self, reservation_id: str) -> ReservationView | None:
        reservation = self.store.reservations.get(reservation_id)
        return self.store.view(reservation) if reservation is not None else None

    async def find_view_by_checkin_code(self, code: str) -> ReservationView | None:
        for reservation in self.store.reservations.values():
            if (reservation.checkin_code or "").upper() == code:
                return self.store.view(reservation)
        return None

    async def find_view_for_holder(self, reservation_id: str, phone_last_digits: str) -> ReservationView | None:
        reservation = self.store.reservations.get(reservation_id)
        if reservation is None or not reservation.phone.endswith(phone_last_digits):
            return None
        return self.store.view(reservation)

    async def checkin_code_exists(self, code: str) -> bool:
        if code in self.taken_codes:
            return True
        return any(r.checkin_code == code for r in self.store.reservations.values())

    async def create(self, **fields: Any) -> Reservation:
        reservation = Reservation(
            id=new_id(),
            checkin_code=None,
            checked_in_at=None,
            paid_email_sent_at=None,
            created_at=utc_now_naive(),
            **fields,
        )
        self.store.reservations[reservation.id] = reservation
        return reservation

    async def save(self, reservation: Reservation) -> Reservation:
        self.saved += 1
        self.store.reservations[reservation.id] = reservation
        return reservation

    async def list_page(self, *, limit: int, offset: int) -> tuple[list[ReservationView], int]:
        items = sorted(self.store.reservations.values(), key=lambda r: r.created_at, reverse=True)
        return [self.store.view(r) for r in items[offset : offset + limit]], len(items)


class FakeHistoryRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def append(self, entry: VisitHistory) -> VisitHistory:
        if not entry.id:
            entry.id = new_id()
        self.store.history.append(entry)
        return entry

    async def list_page(self, *, limit: int, offset: int) -> tuple[list[VisitHistory], int]:
        items = sorted(self.store.history, key=lambda e: e.record_at, reverse=True)
        return items[offset : offset + limit], len(items)

    async def delete(self, entry_id: str) -> bool:
        before = len(self.store.history)
        self.store.history = [e for e in self.store.history if e.id != entry_id]
        return len(self.store.history) < before


class FakeExtraVisitRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store

    async def create(
        self,
        *,
        reservation_id: str,
        activity_id: str,
        note: str,
        visited_at: datetime | None,
    ) -> ExtraVisit:
        visit = ExtraVisit(
            id=new_id(),
            reservation_id=reservation_id,
            activity_id=activity_id,
            note=note,
            visited_at=visited_at,
            created_at=utc_now_naive(),
        )
        self.store.extra_visits.append(visit)
        return visit

    async def list_for_reservation(self, reservation_id: str) -> list[ExtraVisit]:
        return [v for v in self.store.extra_visits if v.reservation_id == reservation_id]


class RecordingNotifier:
    def __init__(self, result: bool | Exception = True) -> None:
        self.result = result
        self.calls: list[tuple[str, str]] = []

    async def notify_payment_confirmed(self, view: ReservationView, checkin_code: str) -> bool:
        self.calls.append((view.reservation.id, checkin_code))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def activity_repo(store: InMemoryStore) -> FakeActivityRepo:
    return FakeActivityRepo(store)


@pytest.fixture
def slot_repo(store: InMemoryStore) -> FakeSlotRepo:
    return FakeSlotRepo(store)


@pytest.fixture
def res_repo(store: InMemoryStore) -> FakeReservationRepo:
    return FakeReservationRepo(store)


@pytest.fixture
def history_repo(store: InMemoryStore) -> FakeHistoryRepo:
    return FakeHistoryRepo(store)


@pytest.fixture
def extra_repo(store: InMemoryStore) -> FakeExtraVisitRepo:
    return FakeExtraVisitRepo(store)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_companions() -> Callable[[int], list[dict[str, str]]]:
    def _make(count: int) -> list[dict[str, str]]:
        return [companion(f"Person{i}") for i in range(count)]

    return _make
