from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_serializer

from .domain.repositories import ReservationView
from .models import Activity, ExtraVisit, PaymentMethod, ReservationStatus, ScheduleSlot, VisitHistory
from .utils.time import SITE_TZ, utc_naive_to_site


def _site_or_none(dt: Optional[datetime]) -> Optional[datetime]:
    return utc_naive_to_site(dt) if dt is not None else None


def _iso_site(dt: Optional[datetime]) -> Optional[str]:
    return dt.astimezone(SITE_TZ).isoformat() if dt is not None else None


class ActivityCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=255)
    base_price_cents: int = Field(default=0, ge=0)


class ActivityRead(BaseModel):
    activity_id: str
    name: str
    description: Optional[str]
    location: Optional[str]
    base_price_cents: int

    @classmethod
    def from_db(cls, *, activity: Activity) -> "ActivityRead":
        return cls(
            activity_id=activity.id,
            name=activity.name,
            description=activity.description,
            location=activity.location,
            base_price_cents=activity.base_price_cents,
        )


class SlotCreate(BaseModel):
    starts_at: datetime
    ends_at: datetime
    capacity_total: int = Field(ge=0)
    price_cents: int = Field(default=0, ge=0)
    published: bool = True


class SlotRead(BaseModel):
    slot_id: str
    activity_id: str
    starts_at: datetime
    ends_at: datetime
    capacity_total: int
    capacity_reserved: int
    remaining: int
    price_cents: int
    published: bool

    @field_serializer("starts_at", "ends_at")
    def _ser_datetime(self, dt: datetime) -> Optional[str]:
        return _iso_site(dt)

    @classmethod
    def from_db(cls, *, slot: ScheduleSlot) -> "SlotRead":
        return cls(
            slot_id=slot.id,
            activity_id=slot.activity_id,
            starts_at=utc_naive_to_site(slot.starts_at),
            ends_at=utc_naive_to_site(slot.ends_at),
            capacity_total=slot.capacity_total,
            capacity_reserved=slot.capacity_reserved,
            remaining=slot.remaining,
            price_cents=slot.price_cents,
            published=slot.published,
        )


class Companion(BaseModel):
    first_name: str = ""
    last_name_paternal: str = ""
    last_name_maternal: str = ""
    age_range: str = ""


class ReservationCreate(BaseModel):
    holder_name: str = Field(max_length=255)
    phone: str = Field(default="", max_length=50)
    email: str = Field(default="", max_length=255)
    email_confirm: str = Field(default="", max_length=255)
    party_size: int = Field(ge=1)
    companions: list[Companion] = Field(default_factory=list)
    pay_method: PaymentMethod = PaymentMethod.DEPOSIT
    notes: str = ""


class ReservationLookup(BaseModel):
    reservation_id: str = Field(min_length=1, max_length=36)
    phone_last_digits: str = Field(min_length=2, max_length=2, pattern=r"^\d{2}$")


class ReservationRead(BaseModel):
    reservation_id: str
    slot_id: str
    activity_id: str
    activity_name: str
    holder_name: str
    phone: str
    email: str
    party_size: int
    companions: list[Companion]
    notes: str
    pay_method: PaymentMethod
    amount_cents: int
    status: ReservationStatus
    checkin_code: Optional[str]
    checked_in_at: Optional[datetime]
    paid_email_sent_at: Optional[datetime]
    created_at: datetime
    starts_at: Optional[datetime]
    ends_at: Optional[datetime]

    @field_serializer("checked_in_at", "paid_email_sent_at", "created_at", "starts_at", "ends_at")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return _iso_site(dt)

    @classmethod
    def from_view(cls, view: ReservationView) -> "ReservationRead":
        reservation = view.reservation
        slot = view.slot
        return cls(
            reservation_id=reservation.id,
            slot_id=reservation.slot_id,
            activity_id=reservation.activity_id,
            activity_name=view.activity_name,
            holder_name=reservation.holder_name,
            phone=reservation.phone,
            email=reservation.email,
            party_size=reservation.party_size,
            companions=[Companion(**c) for c in reservation.companions or []],
            notes=reservation.notes,
            pay_method=reservation.pay_method,
            amount_cents=reservation.amount_cents,
            status=reservation.status,
            checkin_code=reservation.checkin_code,
            checked_in_at=_site_or_none(reservation.checked_in_at),
            paid_email_sent_at=_site_or_none(reservation.paid_email_sent_at),
            created_at=utc_naive_to_site(reservation.created_at),
            starts_at=_site_or_none(slot.starts_at if slot is not None else None),
            ends_at=_site_or_none(slot.ends_at if slot is not None else None),
        )


class ReservationPage(BaseModel):
    items: list[ReservationRead]
    page: int
    total_pages: int


class ConfirmRead(BaseModel):
    reservation: ReservationRead
    checkin_code: str
    newly_paid: bool
    notification_queued: bool


class CheckinLookupRead(BaseModel):
    reservation: ReservationRead
    ready_for_checkin: bool
    message: Optional[str] = None


class HistoryCreate(BaseModel):
    record_at: Optional[datetime] = None
    activity_id: Optional[str] = None
    activity_name: str = ""
    slot_id: Optional[str] = None
    start_at: Optional[datetime] = None
    people_json: str = "[]"
    phone: str = ""
    email: str = ""
    pay_method: str = ""
    amount_cents: int = Field(default=0, ge=0)
    notes: str = ""


class HistoryRead(BaseModel):
    entry_id: str
    reservation_id: Optional[str]
    record_at: datetime
    activity_id: Optional[str]
    activity_name: str
    slot_id: Optional[str]
    start_at: Optional[datetime]
    people: list[dict[str, Any]]
    phone: str
    email: str
    pay_method: str
    amount_cents: int
    notes: str

    @field_serializer("record_at", "start_at")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return _iso_site(dt)

    @classmethod
    def from_db(cls, *, entry: VisitHistory) -> "HistoryRead":
        return cls(
            entry_id=entry.id,
            reservation_id=entry.reservation_id,
            record_at=utc_naive_to_site(entry.record_at),
            activity_id=entry.activity_id,
            activity_name=entry.activity_name,
            slot_id=entry.slot_id,
            start_at=_site_or_none(entry.start_at),
            people=list(entry.people or []),
            phone=entry.phone,
            email=entry.email,
            pay_method=entry.pay_method,
            amount_cents=entry.amount_cents,
            notes=entry.notes,
        )


class HistoryPage(BaseModel):
    items: list[HistoryRead]
    page: int
    total_pages: int


class ExtraVisitCreate(BaseModel):
    activity_id: str = Field(min_length=1)
    note: str = ""
    visited_at: Optional[datetime] = None


class ExtraVisitRead(BaseModel):
    extra_visit_id: str
    reservation_id: str
    activity_id: str
    note: str
    visited_at: Optional[datetime]

    @field_serializer("visited_at")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return _iso_site(dt)

    @classmethod
    def from_db(cls, *, visit: ExtraVisit) -> "ExtraVisitRead":
        return cls(
            extra_visit_id=visit.id,
            reservation_id=visit.reservation_id,
            activity_id=visit.activity_id,
            note=visit.note,
            visited_at=_site_or_none(visit.visited_at),
        )


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenRead(BaseModel):
    access_token: str
    token_type: str = "bearer"


def total_pages(total: int, page_size: int) -> int:
    return max(1, -(-total // page_size))
