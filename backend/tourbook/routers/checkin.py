from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_admin, get_session
from ..domain.errors import DomainError
from ..infrastructure.repositories import SqlAlchemyReservationRepository
from ..models import ReservationStatus
from ..schemas import CheckinLookupRead, ReservationRead
from ..usecases import checkin_codes as checkin_usecase
from ..usecases import reservations as reservation_usecase
from .errors import audit, http_error

router = APIRouter(prefix="/admin/checkin", tags=["checkin"], dependencies=[Depends(get_current_admin)])


@router.get("", response_model=CheckinLookupRead)
async def lookup_code(
    code: str = Query(..., min_length=1, max_length=32),
    session: AsyncSession = Depends(get_session),
) -> CheckinLookupRead:
    res_repo = SqlAlchemyReservationRepository(session)
    try:
        view = await checkin_usecase.lookup_by_code(res_repo, code=code)
    except DomainError as exc:
        raise http_error(exc) from exc

    reservation = view.reservation
    message = None
    if reservation.status != ReservationStatus.PAID:
        message = "reservation exists but is not marked as paid"
    elif reservation.checked_in_at is not None:
        message = "reservation was already checked in"
    return CheckinLookupRead(
        reservation=ReservationRead.from_view(view),
        ready_for_checkin=reservation.status == ReservationStatus.PAID and reservation.checked_in_at is None,
        message=message,
    )


@router.post("/{reservation_id}", response_model=ReservationRead)
async def mark_checked_in(
    reservation_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session),
    admin: str = Depends(get_current_admin),
) -> ReservationRead:
    res_repo = SqlAlchemyReservationRepository(session)
    async with session.begin():
        try:
            reservation = await reservation_usecase.record_checkin(res_repo, reservation_id=reservation_id)
        except DomainError as exc:
            raise http_error(exc) from exc
        view = await reservation_usecase.get_reservation(res_repo, reservation_id=reservation_id)

    audit(
        action="reservation.checked_in",
        initiator="admin",
        actor=admin,
        reservation_id=reservation.id,
        slot_id=reservation.slot_id,
        activity_id=reservation.activity_id,
        party_size=reservation.party_size,
        extra={"checked_in_at": reservation.checked_in_at},
    )
    return ReservationRead.from_view(view)
