from datetime import date

from ..domain.errors import ReservationNotFoundError, TimeslotNotFoundError
from ..domain.repositories import ReservationLedger, TimeslotRepository
from ..domain.services import (
    CapacityConfig,
    ReservationSnapshot,
    SlotDaySnapshot,
    validate_admission,
    validate_guest_count,
    validate_reservation_date,
)
from ..models import Reservation
from ..utils.keyed_lock import KeyedLock, admission_locks


async def book_reservation(
    timeslot_repo: TimeslotRepository,
    ledger: ReservationLedger,
    *,
    config: CapacityConfig,
    user_id: int,
    timeslot_id: int,
    reservation_date: date,
    guest_count: int,
    today: date,
    allow_past: bool = False,
    locks: KeyedLock = admission_locks,
) -> Reservation:
    validate_guest_count(guest_count)
    validate_reservation_date(reservation_date, today=today, allow_past=allow_past)

    timeslot = await timeslot_repo.get(timeslot_id)
    if timeslot is None or not timeslot.is_active:
        raise TimeslotNotFoundError("timeslot not found or inactive")

    # The capacity read, duplicate check and insert form one critical section per key.
    async with locks.hold((reservation_date, timeslot_id)):
        await ledger.lock_slot_day(reservation_date, timeslot_id)
        snapshot = SlotDaySnapshot(
            total_capacity=config.total_capacity,
            consumed=await ledger.consumed_guests(reservation_date, timeslot_id),
            user_has_live_reservation=await ledger.has_live_reservation(user_id, reservation_date, timeslot_id),
        )
        validate_admission(snapshot, guest_count=guest_count)
        return await ledger.insert(
            user_id=user_id,
            timeslot_id=timeslot_id,
            reservation_date=reservation_date,
            number_of_guests=guest_count,
        )


async def cancel_reservation(ledger: ReservationLedger, *, reservation_id: int) -> ReservationSnapshot:
    """Administrative hard delete; the seats are free as soon as the transaction commits."""
    return await ledger.remove(reservation_id)


async def void_reservation(ledger: ReservationLedger, *, reservation_id: int) -> tuple[Reservation, bool]:
    """Soft cancel: keep the row, drop it from the live set. Returns (reservation, changed)."""
    reservation = await ledger.get(reservation_id)
    if reservation is None:
        raise ReservationNotFoundError(f"reservation {reservation_id} not found")
    # Idempotent: already voided returns as-is
    if reservation.is_cancelled:
        return reservation, False
    return await ledger.void(reservation), True


async def list_user_reservations(ledger: ReservationLedger, *, user_id: int) -> list[Reservation]:
    return await ledger.list_live(user_id=user_id)


async def list_all_reservations(
    ledger: ReservationLedger,
    *,
    reservation_date: date | None = None,
    timeslot_id: int | None = None,
) -> list[Reservation]:
    return await ledger.list_live(reservation_date=reservation_date, timeslot_id=timeslot_id)
