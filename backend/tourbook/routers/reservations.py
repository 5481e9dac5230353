import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..database import async_session
from ..deps import get_current_admin, get_notifier, get_session
from ..domain.errors import DomainError
from ..domain.repositories import PaymentNotifier
from ..infrastructure.repositories import (
    SqlAlchemyActivityRepository,
    SqlAlchemyExtraVisitRepository,
    SqlAlchemyReservationRepository,
    SqlAlchemySlotRepository,
    SqlAlchemyVisitHistoryRepository,
)
from ..models import ReservationStatus
from ..schemas import (
    ConfirmRead,
    ExtraVisitCreate,
    ExtraVisitRead,
    ReservationCreate,
    ReservationLookup,
    ReservationPage,
    ReservationRead,
    total_pages,
)
from ..usecases import reservations as reservation_usecase
from ..utils.time import to_utc_naive
from .errors import audit, http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["reservations"])
admin_router = APIRouter(
    prefix="/admin/reservations",
    tags=["admin-reservations"],
    dependencies=[Depends(get_current_admin)],
)


@router.post(
    "/slots/{slot_id}/reservations",
    response_model=ReservationRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_reservation(
    payload: ReservationCreate,
    slot_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session),
) -> ReservationRead:
    slot_repo = SqlAlchemySlotRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        try:
            reservation, slot = await reservation_usecase.create_reservation(
                slot_repo,
                res_repo,
                slot_id=slot_id,
                holder_name=payload.holder_name,
                phone=payload.phone,
                email=payload.email,
                email_confirm=payload.email_confirm,
                party_size=payload.party_size,
                companions=[c.model_dump() for c in payload.companions],
                pay_method=payload.pay_method,
                notes=payload.notes,
            )
        except DomainError as exc:
            raise http_error(exc) from exc
        view = await reservation_usecase.get_reservation(res_repo, reservation_id=reservation.id)

    audit(
        action="reservation.created",
        initiator="visitor",
        reservation_id=reservation.id,
        slot_id=slot.id,
        activity_id=reservation.activity_id,
        party_size=reservation.party_size,
        status_to=reservation.status,
        extra={"amount_cents": reservation.amount_cents, "remaining": slot.remaining},
    )
    return ReservationRead.from_view(view)


@router.post("/reservations/lookup", response_model=ReservationRead)
async def lookup_my_reservation(
    payload: ReservationLookup,
    session: AsyncSession = Depends(get_session),
) -> ReservationRead:
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        view = await reservation_usecase.find_for_holder(
            res_repo,
            reservation_id=payload.reservation_id,
            phone_last_digits=payload.phone_last_digits,
        )
    except DomainError as exc:
        raise http_error(exc) from exc
    return ReservationRead.from_view(view)


@admin_router.get("", response_model=ReservationPage)
async def list_reservations(
    page: int = Query(default=1, ge=1),
    session: AsyncSession = Depends(get_session),
) -> ReservationPage:
    res_repo = SqlAlchemyReservationRepository(session)
    views, total = await reservation_usecase.list_reservations(res_repo, page=page)
    return ReservationPage(
        items=[ReservationRead.from_view(view) for view in views],
        page=page,
        total_pages=total_pages(total, reservation_usecase.PAGE_SIZE),
    )


@admin_router.get("/{reservation_id}", response_model=ReservationRead)
async def get_reservation(
    reservation_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session),
) -> ReservationRead:
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        view = await reservation_usecase.get_reservation(res_repo, reservation_id=reservation_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return ReservationRead.from_view(view)


@admin_router.post("/{reservation_id}/confirm", response_model=ConfirmRead)
async def confirm_reservation(
    background_tasks: BackgroundTasks,
    reservation_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session),
    notifier: PaymentNotifier = Depends(get_notifier),
    admin: str = Depends(get_current_admin),
) -> ConfirmRead:
    res_repo = SqlAlchemyReservationRepository(session)
    history_repo = SqlAlchemyVisitHistoryRepository(session)
    settings = get_settings()
    async with session.begin():
        try:
            outcome = await reservation_usecase.confirm_payment(
                res_repo,
                history_repo,
                reservation_id=reservation_id,
                max_code_attempts=settings.checkin_code_max_attempts,
            )
        except DomainError as exc:
            raise http_error(exc) from exc

    reservation = outcome.view.reservation
    # Repeat confirms re-queue the email until one delivery is recorded.
    queued = reservation.status == ReservationStatus.PAID and reservation.paid_email_sent_at is None
    if queued:
        background_tasks.add_task(deliver_payment_notification, reservation.id, notifier)

    if outcome.newly_paid:
        audit(
            action="reservation.paid",
            initiator="admin",
            actor=admin,
            reservation_id=reservation.id,
            slot_id=reservation.slot_id,
            activity_id=reservation.activity_id,
            party_size=reservation.party_size,
            status_from=ReservationStatus.PENDING,
            status_to=reservation.status,
            extra={"notification_queued": queued},
        )
    return ConfirmRead(
        reservation=ReservationRead.from_view(outcome.view),
        checkin_code=outcome.checkin_code,
        newly_paid=outcome.newly_paid,
        notification_queued=queued,
    )


async def deliver_payment_notification(reservation_id: str, notifier: PaymentNotifier) -> None:
    """Runs after the confirm response; the SMTP round trip happens outside any row lock."""
    try:
        async with async_session() as session:
            res_repo = SqlAlchemyReservationRepository(session)
            async with session.begin():
                view = await reservation_usecase.payment_notification_target(res_repo, reservation_id=reservation_id)
            if view is None:
                return
            if not await reservation_usecase.send_payment_notification(notifier, view=view):
                return
            async with session.begin():
                stamped = await reservation_usecase.mark_payment_notified(res_repo, reservation_id=reservation_id)
    except SQLAlchemyError:
        logger.exception("could not record payment notification for reservation %s", reservation_id)
        return
    if stamped:
        logger.info("payment notification recorded for reservation %s", reservation_id)


@admin_router.post("/{reservation_id}/cancel", response_model=ReservationRead)
async def cancel_reservation(
    reservation_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session),
    admin: str = Depends(get_current_admin),
) -> ReservationRead:
    slot_repo = SqlAlchemySlotRepository(session)
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        try:
            reservation, previous = await reservation_usecase.cancel_reservation(
                slot_repo,
                res_repo,
                reservation_id=reservation_id,
            )
        except DomainError as exc:
            raise http_error(exc) from exc
        view = await reservation_usecase.get_reservation(res_repo, reservation_id=reservation_id)

    if previous != reservation.status:
        audit(
            action="reservation.canceled",
            initiator="admin",
            actor=admin,
            reservation_id=reservation.id,
            slot_id=reservation.slot_id,
            activity_id=reservation.activity_id,
            party_size=reservation.party_size,
            status_from=previous,
            status_to=reservation.status,
        )
    return ReservationRead.from_view(view)


@admin_router.post(
    "/{reservation_id}/extra-visits",
    response_model=ExtraVisitRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_extra_visit(
    payload: ExtraVisitCreate,
    reservation_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session),
    admin: str = Depends(get_current_admin),
) -> ExtraVisitRead:
    visited_at = payload.visited_at
    if visited_at is not None and visited_at.tzinfo is not None:
        visited_at = to_utc_naive(visited_at)
    res_repo = SqlAlchemyReservationRepository(session)
    activity_repo = SqlAlchemyActivityRepository(session)
    extra_repo = SqlAlchemyExtraVisitRepository(session)
    async with session.begin():
        try:
            visit = await reservation_usecase.record_extra_visit(
                res_repo,
                activity_repo,
                extra_repo,
                reservation_id=reservation_id,
                activity_id=payload.activity_id,
                note=payload.note,
                visited_at=visited_at,
            )
        except DomainError as exc:
            raise http_error(exc) from exc

    audit(
        action="reservation.extra_visit",
        initiator="admin",
        actor=admin,
        reservation_id=reservation_id,
        activity_id=visit.activity_id,
    )
    return ExtraVisitRead.from_db(visit=visit)
