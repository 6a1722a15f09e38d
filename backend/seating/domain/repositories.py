from __future__ import annotations

from datetime import date, time
from typing import Protocol

from ..models import Reservation, RestaurantConfig, Timeslot
from .services import ReservationSnapshot


class TimeslotRepository(Protocol):
    async def get(self, timeslot_id: int) -> Timeslot | None: ...

    async def list(self, *, include_inactive: bool = False) -> list[Timeslot]: ...

    async def create(self, *, start_time: time, is_active: bool) -> Timeslot: ...

    async def save(self, timeslot: Timeslot) -> Timeslot: ...

    async def delete(self, timeslot: Timeslot) -> None: ...


class CapacityConfigRepository(Protocol):
    async def get_current(self) -> RestaurantConfig | None: ...

    async def create(self, *, total_capacity: int, restaurant_name: str) -> RestaurantConfig: ...

    async def save(self, config: RestaurantConfig) -> RestaurantConfig: ...


class ReservationLedger(Protocol):
    async def lock_slot_day(self, reservation_date: date, timeslot_id: int) -> None: ...

    async def consumed_guests(self, reservation_date: date, timeslot_id: int) -> int: ...

    async def consumed_between(self, start: date, end: date) -> dict[tuple[date, int], int]: ...

    async def has_live_reservation(self, user_id: int, reservation_date: date, timeslot_id: int) -> bool: ...

    async def has_live_for_timeslot(self, timeslot_id: int) -> bool: ...

    async def is_timeslot_referenced(self, timeslot_id: int) -> bool: ...

    async def insert(
        self,
        *,
        user_id: int,
        timeslot_id: int,
        reservation_date: date,
        number_of_guests: int,
    ) -> Reservation: ...

    async def get(self, reservation_id: int) -> Reservation | None: ...

    async def remove(self, reservation_id: int) -> ReservationSnapshot: ...

    async def void(self, reservation: Reservation) -> Reservation: ...

    async def list_live(
        self,
        *,
        user_id: int | None = None,
        reservation_date: date | None = None,
        timeslot_id: int | None = None,
    ) -> list[Reservation]: ...
