from datetime import timedelta

import pytest
from tourbook.domain.errors import NotFoundError, ValidationFailedError
from tourbook.domain.people import parse_attendees
from tourbook.usecases import visit_history as uc
from tourbook.utils.time import utc_now_naive


@pytest.mark.asyncio
async def test_append_from_reservation_snapshots_fields(store, history_repo) -> None:
    slot = store.add_slot(price_cents=10000)
    reservation = store.add_reservation(slot, party_size=2)

    entry = await uc.append_from_reservation(history_repo, view=store.view(reservation))

    assert entry.reservation_id == reservation.id
    assert entry.slot_id == slot.id
    assert entry.start_at == slot.starts_at
    assert entry.amount_cents == 20000
    assert entry.pay_method == "deposit"
    assert [p["name"] for p in entry.people] == ["Person0 Lopez Ruiz", "Person1 Lopez Ruiz"]


@pytest.mark.asyncio
async def test_snapshot_survives_deleted_slot(store, history_repo) -> None:
    slot = store.add_slot()
    reservation = store.add_reservation(slot)
    del store.slots[slot.id]

    entry = await uc.append_from_reservation(history_repo, view=store.view(reservation))

    assert entry.start_at is None
    assert entry.slot_id == slot.id


@pytest.mark.asyncio
async def test_manual_entry_with_malformed_people(store, history_repo) -> None:
    entry = await uc.append_manual(
        history_repo,
        entry=uc.ManualHistoryEntry(attendees=parse_attendees("Eva y Raul"), activity_name="Grutas"),
    )

    assert entry.reservation_id is None
    assert entry.people == [{"name": "Eva y Raul", "age_band": None}]
    assert store.history == [entry]


@pytest.mark.asyncio
async def test_manual_entry_rejects_negative_amount(history_repo) -> None:
    with pytest.raises(ValidationFailedError):
        await uc.append_manual(
            history_repo,
            entry=uc.ManualHistoryEntry(attendees=parse_attendees("[]"), amount_cents=-1),
        )


@pytest.mark.asyncio
async def test_list_history_newest_first(history_repo) -> None:
    now = utc_now_naive()
    for days in range(12):
        await uc.append_manual(
            history_repo,
            entry=uc.ManualHistoryEntry(
                attendees=parse_attendees("[]"),
                record_at=now - timedelta(days=days),
                notes=str(days),
            ),
        )

    first, total = await uc.list_history(history_repo, page=1)
    second, _ = await uc.list_history(history_repo, page=2)

    assert total == 12
    assert [e.notes for e in first][:2] == ["0", "1"]
    assert len(second) == 2


@pytest.mark.asyncio
async def test_delete_entry(history_repo) -> None:
    entry = await uc.append_manual(history_repo, entry=uc.ManualHistoryEntry(attendees=parse_attendees("[]")))

    await uc.delete_entry(history_repo, entry_id=entry.id)

    with pytest.raises(NotFoundError):
        await uc.delete_entry(history_repo, entry_id=entry.id)
