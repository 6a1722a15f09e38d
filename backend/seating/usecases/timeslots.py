from datetime import time

from ..domain.errors import TimeslotInUseError, TimeslotNotFoundError
from ..domain.repositories import ReservationLedger, TimeslotRepository
from ..models import Timeslot


def _to_minute(value: time) -> time:
    return value.replace(second=0, microsecond=0, tzinfo=None)


async def list_timeslots(timeslot_repo: TimeslotRepository, *, include_inactive: bool = False) -> list[Timeslot]:
    return await timeslot_repo.list(include_inactive=include_inactive)


async def create_timeslot(
    timeslot_repo: TimeslotRepository,
    *,
    start_time: time,
    is_active: bool = True,
) -> Timeslot:
    return await timeslot_repo.create(start_time=_to_minute(start_time), is_active=is_active)


async def update_timeslot(
    timeslot_repo: TimeslotRepository,
    ledger: ReservationLedger,
    *,
    timeslot_id: int,
    start_time: time | None = None,
    is_active: bool | None = None,
) -> Timeslot:
    """
    Deactivating never touches existing reservations. Moving the start time is
    refused once any reservation, voided or not, references the timeslot.
    """
    timeslot = await timeslot_repo.get(timeslot_id)
    if timeslot is None:
        raise TimeslotNotFoundError("timeslot not found")
    if start_time is not None:
        new_start = _to_minute(start_time)
        if new_start != timeslot.start_time and await ledger.is_timeslot_referenced(timeslot_id):
            raise TimeslotInUseError("timeslot is referenced by reservations; its start time cannot change")
        timeslot.start_time = new_start
    if is_active is not None:
        timeslot.is_active = is_active
    return await timeslot_repo.save(timeslot)


async def delete_timeslot(
    timeslot_repo: TimeslotRepository,
    ledger: ReservationLedger,
    *,
    timeslot_id: int,
) -> Timeslot:
    timeslot = await timeslot_repo.get(timeslot_id)
    if timeslot is None:
        raise TimeslotNotFoundError("timeslot not found")
    if await ledger.has_live_for_timeslot(timeslot_id):
        raise TimeslotInUseError("timeslot has live reservations; deactivate it or delete them first")
    await timeslot_repo.delete(timeslot)
    return timeslot
