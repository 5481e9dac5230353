from datetime import datetime
from typing import Any, Dict, List

from ..domain.errors import NotFoundError, ValidationFailedError
from ..domain.repositories import ActivityRepository, SlotRepository
from ..models import Activity, ScheduleSlot


async def create_activity(
    activity_repo: ActivityRepository,
    *,
    name: str,
    description: str | None,
    location: str | None,
    base_price_cents: int,
) -> Activity:
    name = name.strip()
    if not name:
        raise ValidationFailedError("activity name is required")
    if base_price_cents < 0:
        raise ValidationFailedError("price must not be negative")
    return await activity_repo.create(
        name=name,
        description=description,
        location=location,
        base_price_cents=base_price_cents,
    )


async def list_activities(activity_repo: ActivityRepository) -> list[Activity]:
    return await activity_repo.list_all()


async def list_availability(
    activity_repo: ActivityRepository,
    slot_repo: SlotRepository,
    *,
    activity_id: str,
) -> List[Dict[str, Any]]:
    if await activity_repo.get(activity_id) is None:
        raise NotFoundError("activity not found")
    slots = await slot_repo.list_published_for_activity(activity_id)
    return [{"slot": slot, "remaining": slot.remaining} for slot in slots]


async def create_slot(
    activity_repo: ActivityRepository,
    slot_repo: SlotRepository,
    *,
    activity_id: str,
    starts_at: datetime,
    ends_at: datetime,
    capacity_total: int,
    price_cents: int,
    published: bool,
) -> ScheduleSlot:
    if starts_at >= ends_at:
        raise ValidationFailedError("starts_at must be earlier than ends_at")
    if capacity_total < 0:
        raise ValidationFailedError("capacity must be >= 0")
    if price_cents < 0:
        raise ValidationFailedError("price must not be negative")
    if await activity_repo.get(activity_id) is None:
        raise NotFoundError("activity not found")
    return await slot_repo.create(
        activity_id=activity_id,
        starts_at=starts_at,
        ends_at=ends_at,
        capacity_total=capacity_total,
        price_cents=price_cents,
        published=published,
    )


async def delete_slot(slot_repo: SlotRepository, *, slot_id: str) -> None:
    # Reservations on the slot are left in place.
    if not await slot_repo.delete(slot_id):
        raise NotFoundError("slot not found")
