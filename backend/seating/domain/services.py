from dataclasses import dataclass
from datetime import date, time
from typing import Optional

from .errors import CapacityExceededError, DuplicateBookingError, PastDateError, ReservationValidationError


@dataclass(frozen=True)
class CapacityConfig:
    """Restaurant-wide seat capacity, shared by every (date, timeslot) pair."""

    config_id: int
    total_capacity: int
    version: int


@dataclass(frozen=True)
class SlotDaySnapshot:
    total_capacity: int
    consumed: int
    user_has_live_reservation: bool

    @property
    def remaining(self) -> int:
        return max(self.total_capacity - self.consumed, 0)


@dataclass(frozen=True)
class ReservationSnapshot:
    """Denormalized copy of a reservation, kept after the row is gone."""

    reservation_id: int
    user_id: int
    user_first_name: Optional[str]
    user_last_name: Optional[str]
    user_email: Optional[str]
    timeslot_id: int
    start_time: Optional[time]
    reservation_date: date
    number_of_guests: int


def validate_guest_count(guest_count: int) -> None:
    if guest_count < 1:
        raise ReservationValidationError("number_of_guests must be at least 1")


def validate_reservation_date(reservation_date: date, *, today: date, allow_past: bool) -> None:
    if not allow_past and reservation_date < today:
        raise PastDateError(f"reservation_date {reservation_date.isoformat()} is in the past")


def validate_admission(snapshot: SlotDaySnapshot, *, guest_count: int) -> int:
    """
    Pure admission check, run while the (date, timeslot) key is locked.
    Capacity is checked before duplicates so the caller always learns the remaining seats.
    Returns the remaining seats after booking if OK. Raises domain errors otherwise.
    """
    validate_guest_count(guest_count)
    if snapshot.consumed + guest_count > snapshot.total_capacity:
        raise CapacityExceededError(snapshot.remaining)
    if snapshot.user_has_live_reservation:
        raise DuplicateBookingError("user already has a reservation for this date and timeslot")
    return snapshot.total_capacity - snapshot.consumed - guest_count
