from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Tuple

from sqlalchemy import Select, case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.repositories import (
    ActivityRepository,
    ExtraVisitRepository,
    ReservationRepository,
    ReservationView,
    SlotRepository,
    VisitHistoryRepository,
)
from ..models import (
    Activity,
    ExtraVisit,
    PaymentMethod,
    Reservation,
    ReservationStatus,
    ScheduleSlot,
    VisitHistory,
    new_id,
)
from ..utils.time import utc_now_naive


class SqlAlchemyActivityRepository(ActivityRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, activity_id: str) -> Activity | None:
        return await self.session.get(Activity, activity_id)

    async def create(
        self,
        *,
        name: str,
        description: str | None,
        location: str | None,
        base_price_cents: int,
    ) -> Activity:
        activity = Activity(
            id=new_id(),
            name=name,
            description=description,
            location=location,
            base_price_cents=base_price_cents,
            created_at=utc_now_naive(),
        )
        self.session.add(activity)
        await self.session.flush()
        return activity

    async def list_all(self) -> list[Activity]:
        rows = await self.session.scalars(select(Activity).order_by(Activity.name))
        return list(rows.all())


class SqlAlchemySlotRepository(SlotRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, slot_id: str) -> ScheduleSlot | None:
        return await self.session.get(ScheduleSlot, slot_id)

    async def reserve_seats(self, slot_id: str, qty: int) -> ScheduleSlot | None:
        # Check and increment in one statement so concurrent bookings cannot overshoot.
        stmt = (
            update(ScheduleSlot)
            .where(
                ScheduleSlot.id == slot_id,
                ScheduleSlot.capacity_reserved + qty <= ScheduleSlot.capacity_total,
            )
            .values(capacity_reserved=ScheduleSlot.capacity_reserved + qty)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            return None
        return await self.session.get(ScheduleSlot, slot_id, populate_existing=True)

    async def release_seats(self, slot_id: str, qty: int) -> None:
        stmt = (
            update(ScheduleSlot)
            .where(ScheduleSlot.id == slot_id)
            .values(
                capacity_reserved=case(
                    (ScheduleSlot.capacity_reserved > qty, ScheduleSlot.capacity_reserved - qty),
                    else_=0,
                )
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

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
        self.session.add(slot)
        await self.session.flush()
        return slot

    async def list_published_for_activity(self, activity_id: str) -> list[ScheduleSlot]:
        stmt = (
            select(ScheduleSlot)
            .where(ScheduleSlot.activity_id == activity_id, ScheduleSlot.published.is_(True))
            .order_by(ScheduleSlot.starts_at)
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def delete(self, slot_id: str) -> bool:
        result = await self.session.execute(delete(ScheduleSlot).where(ScheduleSlot.id == slot_id))
        return result.rowcount > 0


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _view_query(self) -> Select[Tuple[Reservation, Optional[ScheduleSlot], Optional[str]]]:
        return (
            select(Reservation, ScheduleSlot, Activity.name)
            .outerjoin(ScheduleSlot, ScheduleSlot.id == Reservation.slot_id)
            .outerjoin(Activity, Activity.id == Reservation.activity_id)
        )

    @staticmethod
    def _to_view(row: Any) -> ReservationView | None:
        if row is None:
            return None
        reservation, slot, activity_name = row
        return ReservationView(reservation=reservation, slot=slot, activity_name=activity_name or "")

    async def get_for_update(self, reservation_id: str) -> Reservation | None:
        stmt = (
            select(Reservation)
            .where(Reservation.id == reservation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def get_view(self, reservation_id: str) -> ReservationView | None:
        stmt = self._view_query().where(Reservation.id == reservation_id)
        return self._to_view((await self.session.execute(stmt)).first())

    async def find_view_by_checkin_code(self, code: str) -> ReservationView | None:
        stmt = self._view_query().where(func.upper(Reservation.checkin_code) == code).limit(1)
        return self._to_view((await self.session.execute(stmt)).first())

    async def find_view_for_holder(self, reservation_id: str, phone_last_digits: str) -> ReservationView | None:
        stmt = self._view_query().where(Reservation.id == reservation_id)
        view = self._to_view((await self.session.execute(stmt)).first())
        if view is None or not view.reservation.phone.endswith(phone_last_digits):
            return None
        return view

    async def checkin_code_exists(self, code: str) -> bool:
        stmt = select(Reservation.id).where(Reservation.checkin_code == code).limit(1)
        return await self.session.scalar(stmt) is not None

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
    ) -> Reservation:
        reservation = Reservation(
            id=new_id(),
            slot_id=slot_id,
            activity_id=activity_id,
            holder_name=holder_name,
            phone=phone,
            email=email,
            party_size=party_size,
            companions=companions,
            notes=notes,
            pay_method=pay_method,
            amount_cents=amount_cents,
            status=status,
            checkin_code=None,
            checked_in_at=None,
            paid_email_sent_at=None,
            created_at=utc_now_naive(),
        )
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def save(self, reservation: Reservation) -> Reservation:
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def list_page(self, *, limit: int, offset: int) -> tuple[list[ReservationView], int]:
        total = int(await self.session.scalar(select(func.count(Reservation.id))) or 0)
        stmt = (
            self._view_query()
            .order_by(ScheduleSlot.starts_at.desc(), Reservation.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        rows = await self.session.execute(stmt)
        views: List[ReservationView] = []
        for row in rows.all():
            view = self._to_view(row)
            if view is not None:
                views.append(view)
        return views, total


class SqlAlchemyVisitHistoryRepository(VisitHistoryRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def append(self, entry: VisitHistory) -> VisitHistory:
        if not entry.id:
            entry.id = new_id()
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def list_page(self, *, limit: int, offset: int) -> tuple[list[VisitHistory], int]:
        total = int(await self.session.scalar(select(func.count(VisitHistory.id))) or 0)
        stmt = select(VisitHistory).order_by(VisitHistory.record_at.desc()).limit(limit).offset(offset)
        rows = await self.session.scalars(stmt)
        return list(rows.all()), total

    async def delete(self, entry_id: str) -> bool:
        result = await self.session.execute(delete(VisitHistory).where(VisitHistory.id == entry_id))
        return result.rowcount > 0


class SqlAlchemyExtraVisitRepository(ExtraVisitRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

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
        self.session.add(visit)
        await self.session.flush()
        return visit

    async def list_for_reservation(self, reservation_id: str) -> list[ExtraVisit]:
        stmt = (
            select(ExtraVisit)
            .where(ExtraVisit.reservation_id == reservation_id)
            .order_by(ExtraVisit.created_at)
        )
        rows = await self.session.scalars(stmt)
        return list(rows.all())
