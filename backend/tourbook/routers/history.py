from datetime import datetime

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_admin, get_session
from ..domain.errors import DomainError
from ..domain.people import parse_attendees
from ..infrastructure.repositories import SqlAlchemyVisitHistoryRepository
from ..schemas import HistoryCreate, HistoryPage, HistoryRead, total_pages
from ..usecases import visit_history as history_usecase
from ..utils.time import to_utc_naive
from .errors import audit, http_error

router = APIRouter(prefix="/admin/history", tags=["visit-history"], dependencies=[Depends(get_current_admin)])


@router.get("", response_model=HistoryPage)
async def list_history(
    page: int = Query(default=1, ge=1),
    session: AsyncSession = Depends(get_session),
) -> HistoryPage:
    history_repo = SqlAlchemyVisitHistoryRepository(session)
    entries, total = await history_usecase.list_history(history_repo, page=page)
    return HistoryPage(
        items=[HistoryRead.from_db(entry=entry) for entry in entries],
        page=page,
        total_pages=total_pages(total, history_usecase.PAGE_SIZE),
    )


@router.post("", response_model=HistoryRead, status_code=status.HTTP_201_CREATED)
async def add_history_entry(
    payload: HistoryCreate,
    session: AsyncSession = Depends(get_session),
    admin: str = Depends(get_current_admin),
) -> HistoryRead:
    entry = history_usecase.ManualHistoryEntry(
        attendees=parse_attendees(payload.people_json),
        record_at=_utc_or_naive(payload.record_at),
        activity_id=payload.activity_id,
        activity_name=payload.activity_name,
        slot_id=payload.slot_id,
        start_at=_utc_or_naive(payload.start_at),
        phone=payload.phone,
        email=payload.email,
        pay_method=payload.pay_method,
        amount_cents=payload.amount_cents,
        notes=payload.notes,
    )
    history_repo = SqlAlchemyVisitHistoryRepository(session)
    async with session.begin():
        try:
            record = await history_usecase.append_manual(history_repo, entry=entry)
        except DomainError as exc:
            raise http_error(exc) from exc

    audit(
        action="visit_history.added",
        initiator="admin",
        actor=admin,
        reservation_id=None,
        activity_id=record.activity_id,
        extra={"entry_id": record.id},
    )
    return HistoryRead.from_db(entry=record)


@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_history_entry(
    entry_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session),
    admin: str = Depends(get_current_admin),
) -> None:
    history_repo = SqlAlchemyVisitHistoryRepository(session)
    async with session.begin():
        try:
            await history_usecase.delete_entry(history_repo, entry_id=entry_id)
        except DomainError as exc:
            raise http_error(exc) from exc

    audit(
        action="visit_history.deleted",
        initiator="admin",
        actor=admin,
        reservation_id=None,
        extra={"entry_id": entry_id},
    )


def _utc_or_naive(value: datetime | None) -> datetime | None:
    # Naive datetimes from the admin form are taken as UTC already.
    if value is None or value.tzinfo is None:
        return value
    return to_utc_naive(value)
