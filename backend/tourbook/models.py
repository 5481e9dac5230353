from __future__ import annotations

import uuid
from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, CheckConstraint, Enum, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql.sqltypes import DateTime, Integer, String, Text


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class ReservationStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    CANCELED = "canceled"


class PaymentMethod(StrEnum):
    DEPOSIT = "deposit"
    MERCADOPAGO = "mercadopago"
    PAYPAL = "paypal"


def _str_enum(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        values_callable=lambda members: [e.value for e in members],
        native_enum=False,
    )


class Activity(Base):
    __tablename__ = "activity"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    base_price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)


class ScheduleSlot(Base):
    __tablename__ = "schedule_slot"
    __table_args__ = (
        CheckConstraint("starts_at < ends_at", name="chk_slot_time"),
        CheckConstraint("capacity_total >= 0", name="chk_slot_capacity_total"),
        CheckConstraint(
            "capacity_reserved >= 0 AND capacity_reserved <= capacity_total",
            name="chk_slot_capacity_reserved",
        ),
        CheckConstraint("price_cents >= 0", name="chk_slot_price"),
        Index("idx_slot_activity", "activity_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    # Plain column rather than a foreign key: deleting an activity or slot
    # leaves dependent rows in place.
    activity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    starts_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    capacity_total: Mapped[int] = mapped_column(Integer, nullable=False)
    capacity_reserved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    @property
    def remaining(self) -> int:
        return max(self.capacity_total - self.capacity_reserved, 0)


class Reservation(Base):
    __tablename__ = "reservation"
    __table_args__ = (
        CheckConstraint("party_size >= 1", name="chk_res_party_size"),
        CheckConstraint("amount_cents >= 0", name="chk_res_amount"),
        UniqueConstraint("checkin_code", name="uq_res_checkin_code"),
        Index("idx_res_slot", "slot_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    slot_id: Mapped[str] = mapped_column(String(36), nullable=False)
    activity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    holder_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    party_size: Mapped[int] = mapped_column(Integer, nullable=False)
    companions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    pay_method: Mapped[PaymentMethod] = mapped_column(
        _str_enum(PaymentMethod), nullable=False, default=PaymentMethod.DEPOSIT
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ReservationStatus] = mapped_column(
        _str_enum(ReservationStatus), nullable=False, default=ReservationStatus.PENDING
    )
    checkin_code: Mapped[Optional[str]] = mapped_column(String(9), nullable=True)
    checked_in_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    paid_email_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)


class VisitHistory(Base):
    __tablename__ = "visit_history"
    __table_args__ = (Index("idx_history_record_at", "record_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    reservation_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    record_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    activity_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    activity_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    slot_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    start_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    people: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    phone: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    pay_method: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")


class ExtraVisit(Base):
    __tablename__ = "extra_visit"
    __table_args__ = (Index("idx_extra_visit_res", "reservation_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    reservation_id: Mapped[str] = mapped_column(String(36), nullable=False)
    activity_id: Mapped[str] = mapped_column(String(36), nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")
    visited_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
