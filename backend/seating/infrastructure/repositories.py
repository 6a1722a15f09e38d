from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Any, Tuple

from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager, joinedload

from ..domain.errors import ReservationNotFoundError
from ..domain.repositories import CapacityConfigRepository, ReservationLedger, TimeslotRepository
from ..domain.services import ReservationSnapshot
from ..models import Reservation, RestaurantConfig, SlotDayLock, Timeslot


def _utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _live():
    return Reservation.is_cancelled.is_(False)


class SqlAlchemyTimeslotRepository(TimeslotRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, timeslot_id: int) -> Timeslot | None:
        return await self.session.get(Timeslot, timeslot_id)

    async def list(self, *, include_inactive: bool = False) -> list[Timeslot]:
        stmt = select(Timeslot).order_by(Timeslot.start_time, Timeslot.id)
        if not include_inactive:
            stmt = stmt.where(Timeslot.is_active.is_(True))
        return list((await self.session.scalars(stmt)).all())

    async def create(self, *, start_time: time, is_active: bool) -> Timeslot:
        now = _utc_now_naive()
        timeslot = Timeslot(start_time=start_time, is_active=is_active, created_at=now, updated_at=now)
        self.session.add(timeslot)
        await self.session.flush()
        return timeslot

    async def save(self, timeslot: Timeslot) -> Timeslot:
        timeslot.updated_at = _utc_now_naive()
        self.session.add(timeslot)
        await self.session.flush()
        return timeslot

    async def delete(self, timeslot: Timeslot) -> None:
        # Live rows are left alone so the RESTRICT foreign key rejects the delete.
        await self.session.execute(
            delete(Reservation).where(Reservation.timeslot_id == timeslot.id, Reservation.is_cancelled.is_(True))
        )
        await self.session.execute(delete(SlotDayLock).where(SlotDayLock.timeslot_id == timeslot.id))
        await self.session.delete(timeslot)
        await self.session.flush()


class SqlAlchemyCapacityConfigRepository(CapacityConfigRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_current(self) -> RestaurantConfig | None:
        stmt = select(RestaurantConfig).order_by(RestaurantConfig.id).limit(1)
        return await self.session.scalar(stmt)

    async def create(self, *, total_capacity: int, restaurant_name: str) -> RestaurantConfig:
        now = _utc_now_naive()
        config = RestaurantConfig(
            restaurant_name=restaurant_name,
            total_capacity=total_capacity,
            phone="",
            address="",
            version=1,
            created_at=now,
            updated_at=now,
        )
        self.session.add(config)
        await self.session.flush()
        return config

    async def save(self, config: RestaurantConfig) -> RestaurantConfig:
        config.updated_at = _utc_now_naive()
        self.session.add(config)
        await self.session.flush()
        return config


class SqlAlchemyReservationLedger(ReservationLedger):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def lock_slot_day(self, reservation_date: date, timeslot_id: int) -> None:
        """Take a row lock on the (date, timeslot) key, creating the key row on first use."""
        stmt = (
            select(SlotDayLock)
            .where(SlotDayLock.timeslot_id == timeslot_id, SlotDayLock.reservation_date == reservation_date)
            .with_for_update()
        )
        if await self.session.scalar(stmt) is not None:
            return
        try:
            async with self.session.begin_nested():
                self.session.add(SlotDayLock(timeslot_id=timeslot_id, reservation_date=reservation_date))
        except IntegrityError:
            # Another worker inserted the key first; fall through and wait on its row lock.
            pass
        await self.session.scalar(stmt)

    async def consumed_guests(self, reservation_date: date, timeslot_id: int) -> int:
        stmt = select(func.coalesce(func.sum(Reservation.number_of_guests), 0)).where(
            Reservation.reservation_date == reservation_date,
            Reservation.timeslot_id == timeslot_id,
            _live(),
        )
        return int(await self.session.scalar(stmt) or 0)

    async def consumed_between(self, start: date, end: date) -> dict[tuple[date, int], int]:
        """Consumed guests per (date, timeslot) for start <= date < end."""
        stmt: Select[Tuple[date, int, Any]] = (
            select(
                Reservation.reservation_date,
                Reservation.timeslot_id,
                func.coalesce(func.sum(Reservation.number_of_guests), 0).label("consumed"),
            )
            .where(
                Reservation.reservation_date >= start,
                Reservation.reservation_date < end,
                _live(),
            )
            .group_by(Reservation.reservation_date, Reservation.timeslot_id)
        )
        rows = await self.session.execute(stmt)
        return {(day, timeslot_id): int(consumed) for day, timeslot_id, consumed in rows.all()}

    async def has_live_reservation(self, user_id: int, reservation_date: date, timeslot_id: int) -> bool:
        stmt = select(Reservation.id).where(
            Reservation.user_id == user_id,
            Reservation.reservation_date == reservation_date,
            Reservation.timeslot_id == timeslot_id,
            _live(),
        )
        return await self.session.scalar(stmt.limit(1)) is not None

    async def has_live_for_timeslot(self, timeslot_id: int) -> bool:
        stmt = select(Reservation.id).where(Reservation.timeslot_id == timeslot_id, _live())
        return await self.session.scalar(stmt.limit(1)) is not None

    async def is_timeslot_referenced(self, timeslot_id: int) -> bool:
        """True when any reservation row, voided ones included, points at the timeslot."""
        stmt = select(Reservation.id).where(Reservation.timeslot_id == timeslot_id)
        return await self.session.scalar(stmt.limit(1)) is not None

    async def insert(
        self,
        *,
        user_id: int,
        timeslot_id: int,
        reservation_date: date,
        number_of_guests: int,
    ) -> Reservation:
        now = _utc_now_naive()
        reservation = Reservation(
            user_id=user_id,
            timeslot_id=timeslot_id,
            reservation_date=reservation_date,
            number_of_guests=number_of_guests,
            is_cancelled=False,
            created_at=now,
            updated_at=now,
        )
        self.session.add(reservation)
        await self.session.flush()
        return await self.get(reservation.id) or reservation

    async def get(self, reservation_id: int) -> Reservation | None:
        stmt = (
            select(Reservation)
            .options(joinedload(Reservation.user), joinedload(Reservation.timeslot))
            .where(Reservation.id == reservation_id)
            .execution_options(populate_existing=True)
        )
        return await self.session.scalar(stmt)

    async def remove(self, reservation_id: int) -> ReservationSnapshot:
        reservation = await self.get(reservation_id)
        if reservation is None:
            raise ReservationNotFoundError(f"reservation {reservation_id} not found")
        snapshot = ReservationSnapshot(
            reservation_id=reservation.id,
            user_id=reservation.user_id,
            user_first_name=reservation.user.first_name if reservation.user else None,
            user_last_name=reservation.user.last_name if reservation.user else None,
            user_email=reservation.user.email if reservation.user else None,
            timeslot_id=reservation.timeslot_id,
            start_time=reservation.timeslot.start_time if reservation.timeslot else None,
            reservation_date=reservation.reservation_date,
            number_of_guests=reservation.number_of_guests,
        )
        await self.session.delete(reservation)
        await self.session.flush()
        return snapshot

    async def void(self, reservation: Reservation) -> Reservation:
        reservation.is_cancelled = True
        reservation.updated_at = _utc_now_naive()
        self.session.add(reservation)
        await self.session.flush()
        return reservation

    async def list_live(
        self,
        *,
        user_id: int | None = None,
        reservation_date: date | None = None,
        timeslot_id: int | None = None,
    ) -> list[Reservation]:
        stmt: Select[Tuple[Reservation]] = (
            select(Reservation)
            .join(Timeslot, Reservation.timeslot_id == Timeslot.id)
            .options(contains_eager(Reservation.timeslot), joinedload(Reservation.user))
            .where(_live())
            .order_by(Reservation.reservation_date, Timeslot.start_time, Reservation.id)
        )
        if user_id is not None:
            stmt = stmt.where(Reservation.user_id == user_id)
        if reservation_date is not None:
            stmt = stmt.where(Reservation.reservation_date == reservation_date)
        if timeslot_id is not None:
            stmt = stmt.where(Reservation.timeslot_id == timeslot_id)
        return list((await self.session.scalars(stmt)).unique().all())
