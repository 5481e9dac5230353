from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_current_admin, get_session
from ..domain.errors import DomainError
from ..infrastructure.repositories import SqlAlchemyActivityRepository, SqlAlchemySlotRepository
from ..schemas import ActivityCreate, ActivityRead, SlotCreate, SlotRead
from ..usecases import slots as slot_usecase
from ..utils.time import to_utc_naive
from .errors import http_error

router = APIRouter(prefix="", tags=["slots"])
admin_router = APIRouter(prefix="/admin", tags=["admin-slots"], dependencies=[Depends(get_current_admin)])


@router.get("/activities", response_model=List[ActivityRead])
async def list_activities(session: AsyncSession = Depends(get_session)) -> list[ActivityRead]:
    activity_repo = SqlAlchemyActivityRepository(session)
    activities = await slot_usecase.list_activities(activity_repo)
    return [ActivityRead.from_db(activity=activity) for activity in activities]


@router.get("/activities/{activity_id}/slots", response_model=List[SlotRead])
async def list_availability(
    activity_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session),
) -> list[SlotRead]:
    activity_repo = SqlAlchemyActivityRepository(session)
    slot_repo = SqlAlchemySlotRepository(session)
    try:
        rows = await slot_usecase.list_availability(activity_repo, slot_repo, activity_id=activity_id)
    except DomainError as exc:
        raise http_error(exc) from exc
    return [SlotRead.from_db(slot=entry["slot"]) for entry in rows]


@admin_router.post("/activities", response_model=ActivityRead, status_code=status.HTTP_201_CREATED)
async def create_activity(
    payload: ActivityCreate,
    session: AsyncSession = Depends(get_session),
) -> ActivityRead:
    activity_repo = SqlAlchemyActivityRepository(session)
    async with session.begin():
        try:
            activity = await slot_usecase.create_activity(
                activity_repo,
                name=payload.name,
                description=payload.description,
                location=payload.location,
                base_price_cents=payload.base_price_cents,
            )
        except DomainError as exc:
            raise http_error(exc) from exc
    return ActivityRead.from_db(activity=activity)


@admin_router.post(
    "/activities/{activity_id}/slots",
    response_model=SlotRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_slot(
    payload: SlotCreate,
    activity_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session),
) -> SlotRead:
    if payload.starts_at.tzinfo is None or payload.ends_at.tzinfo is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="starts_at/ends_at must have timezone")
    activity_repo = SqlAlchemyActivityRepository(session)
    slot_repo = SqlAlchemySlotRepository(session)
    async with session.begin():
        try:
            slot = await slot_usecase.create_slot(
                activity_repo,
                slot_repo,
                activity_id=activity_id,
                starts_at=to_utc_naive(payload.starts_at),
                ends_at=to_utc_naive(payload.ends_at),
                capacity_total=payload.capacity_total,
                price_cents=payload.price_cents,
                published=payload.published,
            )
        except DomainError as exc:
            raise http_error(exc) from exc
    return SlotRead.from_db(slot=slot)


@admin_router.delete("/slots/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_slot(
    slot_id: str = Path(..., min_length=1),
    session: AsyncSession = Depends(get_session),
) -> None:
    slot_repo = SqlAlchemySlotRepository(session)
    async with session.begin():
        try:
            await slot_usecase.delete_slot(slot_repo, slot_id=slot_id)
        except DomainError as exc:
            raise http_error(exc) from exc
