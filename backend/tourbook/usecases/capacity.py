from ..domain.errors import InsufficientCapacityError, NotFoundError
from ..domain.repositories import SlotRepository
from ..domain.services import SlotSnapshot, validate_capacity
from ..models import ScheduleSlot


async def try_reserve(slot_repo: SlotRepository, *, slot_id: str, qty: int) -> ScheduleSlot:
    slot = await slot_repo.get(slot_id)
    if slot is None:
        raise NotFoundError("slot not found")

    snapshot = SlotSnapshot(capacity_total=slot.capacity_total, capacity_reserved=slot.capacity_reserved)
    validate_capacity(snapshot, qty=qty)

    updated = await slot_repo.reserve_seats(slot_id, qty)
    if updated is None:
        # Another booking took the seats between the read and the conditional update.
        raise InsufficientCapacityError(requested=qty, remaining=snapshot.remaining)
    return updated


async def release(slot_repo: SlotRepository, *, slot_id: str, qty: int) -> None:
    if qty <= 0:
        return
    await slot_repo.release_seats(slot_id, qty)
