import logging
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Sequence

from ..domain import checkin_codes
from ..domain.errors import InvalidStateError, NotFoundError, ValidationFailedError
from ..domain.repositories import (
    ActivityRepository,
    ExtraVisitRepository,
    PaymentNotifier,
    ReservationRepository,
    ReservationView,
    SlotRepository,
    VisitHistoryRepository,
)
from ..domain.services import normalize_companions, validate_contact_email
from ..models import ExtraVisit, PaymentMethod, Reservation, ReservationStatus, ScheduleSlot
from ..utils.time import utc_now_naive
from . import capacity
from .checkin_codes import DEFAULT_MAX_ATTEMPTS, generate_checkin_code
from .visit_history import append_from_reservation

logger = logging.getLogger(__name__)

PAGE_SIZE = 10


@dataclass(frozen=True)
class ConfirmOutcome:
    view: ReservationView
    checkin_code: str
    newly_paid: bool


async def create_reservation(
    slot_repo: SlotRepository,
    res_repo: ReservationRepository,
    *,
    slot_id: str,
    holder_name: str,
    phone: str,
    email: str,
    email_confirm: str,
    party_size: int,
    companions: Sequence[Mapping[str, Any]],
    pay_method: PaymentMethod,
    notes: str,
) -> tuple[Reservation, ScheduleSlot]:
    slot = await slot_repo.get(slot_id)
    if slot is None or not slot.published:
        raise NotFoundError("slot not found")

    holder_name = holder_name.strip()
    if not holder_name:
        raise ValidationFailedError("holder name is required")
    members = normalize_companions(companions, party_size=party_size)
    email = validate_contact_email(email, email_confirm)

    slot = await capacity.try_reserve(slot_repo, slot_id=slot.id, qty=party_size)

    reservation = await res_repo.create(
        slot_id=slot.id,
        activity_id=slot.activity_id,
        holder_name=holder_name,
        phone=phone.strip(),
        email=email,
        party_size=party_size,
        companions=members,
        notes=notes.strip(),
        pay_method=pay_method,
        amount_cents=slot.price_cents * party_size,
        status=ReservationStatus.PENDING,
    )
    return reservation, slot


async def confirm_payment(
    res_repo: ReservationRepository,
    history_repo: VisitHistoryRepository,
    *,
    reservation_id: str,
    max_code_attempts: int = DEFAULT_MAX_ATTEMPTS,
    choose: checkin_codes.Chooser = secrets.choice,
) -> ConfirmOutcome:
    reservation = await res_repo.get_for_update(reservation_id)
    if reservation is None:
        raise NotFoundError("reservation not found")
    if reservation.status == ReservationStatus.CANCELED:
        raise InvalidStateError("canceled reservations cannot be confirmed")

    # Idempotent: an issued code means the confirmation already happened.
    if reservation.checkin_code:
        view = await _require_view(res_repo, reservation_id)
        return ConfirmOutcome(view=view, checkin_code=reservation.checkin_code, newly_paid=False)

    code = await generate_checkin_code(res_repo, max_attempts=max_code_attempts, choose=choose)
    reservation.status = ReservationStatus.PAID
    reservation.checkin_code = code
    await res_repo.save(reservation)

    view = await _require_view(res_repo, reservation_id)
    await append_from_reservation(history_repo, view=view)
    return ConfirmOutcome(view=view, checkin_code=code, newly_paid=True)


async def payment_notification_target(
    res_repo: ReservationRepository,
    *,
    reservation_id: str,
) -> ReservationView | None:
    """Unlocked read of a paid reservation whose confirmation email is still owed."""
    view = await res_repo.get_view(reservation_id)
    if view is None:
        return None
    reservation = view.reservation
    if reservation.status != ReservationStatus.PAID or not reservation.checkin_code:
        return None
    if reservation.paid_email_sent_at is not None:
        return None
    return view


async def send_payment_notification(notifier: PaymentNotifier, *, view: ReservationView) -> bool:
    reservation = view.reservation
    try:
        delivered = await notifier.notify_payment_confirmed(view, reservation.checkin_code or "")
    except Exception:
        logger.exception("payment notification failed for reservation %s", reservation.id)
        return False
    if not delivered:
        logger.warning("payment notification not delivered for reservation %s", reservation.id)
        return False
    return True


async def mark_payment_notified(res_repo: ReservationRepository, *, reservation_id: str) -> bool:
    reservation = await res_repo.get_for_update(reservation_id)
    # A concurrent delivery may have stamped it first.
    if reservation is None or reservation.paid_email_sent_at is not None:
        return False
    reservation.paid_email_sent_at = utc_now_naive()
    await res_repo.save(reservation)
    return True


async def cancel_reservation(
    slot_repo: SlotRepository,
    res_repo: ReservationRepository,
    *,
    reservation_id: str,
) -> tuple[Reservation, ReservationStatus]:
    reservation = await res_repo.get_for_update(reservation_id)
    if reservation is None:
        raise NotFoundError("reservation not found")
    previous = reservation.status
    # Idempotent: already canceled returns as-is
    if previous == ReservationStatus.CANCELED:
        return reservation, previous

    await capacity.release(slot_repo, slot_id=reservation.slot_id, qty=reservation.party_size or 1)
    reservation.status = ReservationStatus.CANCELED
    await res_repo.save(reservation)
    return reservation, previous


async def record_checkin(res_repo: ReservationRepository, *, reservation_id: str) -> Reservation:
    reservation = await res_repo.get_for_update(reservation_id)
    if reservation is None:
        raise NotFoundError("reservation not found")
    if reservation.status != ReservationStatus.PAID:
        raise InvalidStateError("only paid reservations can be checked in")
    if reservation.checked_in_at is None:
        reservation.checked_in_at = utc_now_naive()
        await res_repo.save(reservation)
    return reservation


async def get_reservation(res_repo: ReservationRepository, *, reservation_id: str) -> ReservationView:
    return await _require_view(res_repo, reservation_id)


async def find_for_holder(
    res_repo: ReservationRepository,
    *,
    reservation_id: str,
    phone_last_digits: str,
) -> ReservationView:
    digits = phone_last_digits.strip()
    if not digits:
        raise ValidationFailedError("phone digits are required")
    view = await res_repo.find_view_for_holder(reservation_id.strip(), digits)
    if view is None:
        raise NotFoundError("reservation not found")
    return view


async def list_reservations(res_repo: ReservationRepository, *, page: int) -> tuple[list[ReservationView], int]:
    page = max(page, 1)
    return await res_repo.list_page(limit=PAGE_SIZE, offset=(page - 1) * PAGE_SIZE)


async def record_extra_visit(
    res_repo: ReservationRepository,
    activity_repo: ActivityRepository,
    extra_repo: ExtraVisitRepository,
    *,
    reservation_id: str,
    activity_id: str,
    note: str,
    visited_at: datetime | None,
) -> ExtraVisit:
    if await res_repo.get_view(reservation_id) is None:
        raise NotFoundError("reservation not found")
    if await activity_repo.get(activity_id) is None:
        raise NotFoundError("activity not found")
    return await extra_repo.create(
        reservation_id=reservation_id,
        activity_id=activity_id,
        note=note.strip(),
        visited_at=visited_at,
    )


async def _require_view(res_repo: ReservationRepository, reservation_id: str) -> ReservationView:
    view = await res_repo.get_view(reservation_id)
    if view is None:
        raise NotFoundError("reservation not found")
    return view
