import asyncio
from datetime import date, datetime, time, timezone
from typing import Callable

import pytest
from seating.domain.errors import ReservationNotFoundError
from seating.domain.services import ReservationSnapshot
from seating.models import Reservation, RestaurantConfig, Timeslot, User, UserRole


def _utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class FakeTimeslotRepo:
    def __init__(self, timeslots: list[Timeslot] | None = None) -> None:
        self.timeslots: dict[int, Timeslot] = {t.id: t for t in timeslots or []}
        self.deleted: list[int] = []

    async def get(self, timeslot_id: int) -> Timeslot | None:
        return self.timeslots.get(timeslot_id)

    async def list(self, *, include_inactive: bool = False) -> list[Timeslot]:
        rows = [t for t in self.timeslots.values() if include_inactive or t.is_active]
        return sorted(rows, key=lambda t: (t.start_time, t.id))

    async def create(self, *, start_time: time, is_active: bool) -> Timeslot:
        now = _utc_now_naive()
        timeslot = Timeslot(
            id=max(self.timeslots, default=0) + 1,
            start_time=start_time,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        self.timeslots[timeslot.id] = timeslot
        return timeslot

    async def save(self, timeslot: Timeslot) -> Timeslot:
        self.timeslots[timeslot.id] = timeslot
        return timeslot

    async def delete(self, timeslot: Timeslot) -> None:
        self.deleted.append(timeslot.id)
        del self.timeslots[timeslot.id]


class FakeConfigRepo:
    def __init__(self, row: RestaurantConfig | None = None) -> None:
        self.row = row

    async def get_current(self) -> RestaurantConfig | None:
        return self.row

    async def create(self, *, total_capacity: int, restaurant_name: str) -> RestaurantConfig:
        now = _utc_now_naive()
        self.row = RestaurantConfig(
            id=1,
            restaurant_name=restaurant_name,
            total_capacity=total_capacity,
            version=1,
            created_at=now,
            updated_at=now,
        )
        return self.row

    async def save(self, config: RestaurantConfig) -> RestaurantConfig:
        self.row = config
        return config


class FakeLedger:
    """In-memory ledger. Reads yield to the event loop so concurrent bookings interleave."""

    def __init__(self, timeslots: FakeTimeslotRepo | None = None, users: dict[int, User] | None = None) -> None:
        self.rows: dict[int, Reservation] = {}
        self.timeslots = timeslots
        self.users = users or {}
        self.locked_keys: list[tuple[date, int]] = []
        self._next_id = 1

    def _live(self) -> list[Reservation]:
        return [r for r in self.rows.values() if not r.is_cancelled]

    async def lock_slot_day(self, reservation_date: date, timeslot_id: int) -> None:
        self.locked_keys.append((reservation_date, timeslot_id))

    async def consumed_guests(self, reservation_date: date, timeslot_id: int) -> int:
        await asyncio.sleep(0)
        return sum(
            r.number_of_guests
            for r in self._live()
            if r.reservation_date == reservation_date and r.timeslot_id == timeslot_id
        )

    async def consumed_between(self, start: date, end: date) -> dict[tuple[date, int], int]:
        totals: dict[tuple[date, int], int] = {}
        for r in self._live():
            if start <= r.reservation_date < end:
                key = (r.reservation_date, r.timeslot_id)
                totals[key] = totals.get(key, 0) + r.number_of_guests
        return totals

    async def has_live_reservation(self, user_id: int, reservation_date: date, timeslot_id: int) -> bool:
        await asyncio.sleep(0)
        return any(
            r.user_id == user_id and r.reservation_date == reservation_date and r.timeslot_id == timeslot_id
            for r in self._live()
        )

    async def has_live_for_timeslot(self, timeslot_id: int) -> bool:
        return any(r.timeslot_id == timeslot_id for r in self._live())

    async def is_timeslot_referenced(self, timeslot_id: int) -> bool:
        return any(r.timeslot_id == timeslot_id for r in self.rows.values())

    async def insert(
        self,
        *,
        user_id: int,
        timeslot_id: int,
        reservation_date: date,
        number_of_guests: int,
    ) -> Reservation:
        await asyncio.sleep(0)
        now = _utc_now_naive()
        reservation = Reservation(
            id=self._next_id,
            user_id=user_id,
            timeslot_id=timeslot_id,
            reservation_date=reservation_date,
            number_of_guests=number_of_guests,
            is_cancelled=False,
            created_at=now,
            updated_at=now,
        )
        if self.timeslots is not None and timeslot_id in self.timeslots.timeslots:
            reservation.timeslot = self.timeslots.timeslots[timeslot_id]
        if user_id in self.users:
            reservation.user = self.users[user_id]
        self.rows[reservation.id] = reservation
        self._next_id += 1
        return reservation

    async def get(self, reservation_id: int) -> Reservation | None:
        return self.rows.get(reservation_id)

    async def remove(self, reservation_id: int) -> ReservationSnapshot:
        reservation = self.rows.pop(reservation_id, None)
        if reservation is None:
            raise ReservationNotFoundError(f"reservation {reservation_id} not found")
        user = reservation.user
        return ReservationSnapshot(
            reservation_id=reservation.id,
            user_id=reservation.user_id,
            user_first_name=user.first_name if user else None,
            user_last_name=user.last_name if user else None,
            user_email=user.email if user else None,
            timeslot_id=reservation.timeslot_id,
            start_time=reservation.timeslot.start_time if reservation.timeslot else None,
            reservation_date=reservation.reservation_date,
            number_of_guests=reservation.number_of_guests,
        )

    async def void(self, reservation: Reservation) -> Reservation:
        reservation.is_cancelled = True
        return reservation

    async def list_live(
        self,
        *,
        user_id: int | None = None,
        reservation_date: date | None = None,
        timeslot_id: int | None = None,
    ) -> list[Reservation]:
        rows = [
            r
            for r in self._live()
            if (user_id is None or r.user_id == user_id)
            and (reservation_date is None or r.reservation_date == reservation_date)
            and (timeslot_id is None or r.timeslot_id == timeslot_id)
        ]
        start_of = {t.id: t.start_time for t in (self.timeslots.timeslots.values() if self.timeslots else [])}
        return sorted(rows, key=lambda r: (r.reservation_date, start_of.get(r.timeslot_id, time.min), r.id))


@pytest.fixture
def make_timeslot() -> Callable[..., Timeslot]:
    def _make(timeslot_id: int, hour: int, minute: int = 0, *, is_active: bool = True) -> Timeslot:
        now = _utc_now_naive()
        return Timeslot(
            id=timeslot_id,
            start_time=time(hour, minute),
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )

    return _make


@pytest.fixture
def make_user() -> Callable[..., User]:
    def _make(user_id: int, *, role: UserRole = UserRole.CLIENT) -> User:
        now = _utc_now_naive()
        return User(
            id=user_id,
            email=f"guest{user_id}@example.com",
            first_name="Guest",
            last_name=str(user_id),
            phone="0600000000",
            role=role,
            is_active=True,
            created_at=now,
            updated_at=now,
        )

    return _make


@pytest.fixture
def make_config_row() -> Callable[..., RestaurantConfig]:
    def _make(total_capacity: int, *, version: int = 1) -> RestaurantConfig:
        now = _utc_now_naive()
        return RestaurantConfig(
            id=1,
            restaurant_name="Chez Test",
            total_capacity=total_capacity,
            phone="",
            address="",
            version=version,
            created_at=now,
            updated_at=now,
        )

    return _make


@pytest.fixture
def fake_timeslot_repo_cls() -> type[FakeTimeslotRepo]:
    return FakeTimeslotRepo


@pytest.fixture
def fake_ledger_cls() -> type[FakeLedger]:
    return FakeLedger


@pytest.fixture
def fake_config_repo_cls() -> type[FakeConfigRepo]:
    return FakeConfigRepo
