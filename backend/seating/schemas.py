from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field, field_serializer

from .domain.services import CapacityConfig, ReservationSnapshot
from .models import Reservation, Timeslot, User
from .usecases.availability import DayAvailability
from .utils.time import format_hhmm


class TimeslotCell(BaseModel):
    id: int
    time: str
    total_places: int
    available_places: int


class DayAvailabilityRead(BaseModel):
    date: date
    display_date: str
    day_name: str
    timeslots: list[TimeslotCell]

    @classmethod
    def from_domain(cls, day: DayAvailability) -> "DayAvailabilityRead":
        return cls(
            date=day.day,
            display_date=day.display_date,
            day_name=day.day_name,
            timeslots=[
                TimeslotCell(
                    id=cell.timeslot_id,
                    time=format_hhmm(cell.start_time),
                    total_places=cell.total_capacity,
                    available_places=cell.remaining,
                )
                for cell in day.timeslots
            ],
        )


class ErrorBody(BaseModel):
    error: str
    details: Optional[str] = None


class TimeslotSummary(BaseModel):
    id: int
    start_time: time

    @field_serializer("start_time")
    def _ser_time(self, value: time) -> str:
        return format_hhmm(value)


class UserSummary(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str


class UserContact(UserSummary):
    phone: Optional[str] = None


class ReservationCreate(BaseModel):
    timeslot_id: int = Field(ge=1)
    reservation_date: date
    number_of_guests: int = Field(ge=1)


class ReservationRead(BaseModel):
    id: int
    user_id: int
    timeslot_id: int
    reservation_date: date
    number_of_guests: int
    is_cancelled: bool
    created_at: datetime
    timeslot: Optional[TimeslotSummary] = None
    user: Optional[UserSummary] = None

    @classmethod
    def summarize_user(cls, user: User | None) -> Optional[UserSummary]:
        if user is None:
            return None
        return UserSummary(id=user.id, first_name=user.first_name, last_name=user.last_name, email=user.email)

    @classmethod
    def from_db(cls, *, reservation: Reservation) -> "ReservationRead":
        timeslot = reservation.timeslot
        return cls(
            id=reservation.id,
            user_id=reservation.user_id,
            timeslot_id=reservation.timeslot_id,
            reservation_date=reservation.reservation_date,
            number_of_guests=reservation.number_of_guests,
            is_cancelled=reservation.is_cancelled,
            created_at=reservation.created_at,
            timeslot=None if timeslot is None else TimeslotSummary(id=timeslot.id, start_time=timeslot.start_time),
            user=cls.summarize_user(reservation.user),
        )


class AdminReservationRead(ReservationRead):
    user: Optional[UserContact] = None

    @classmethod
    def summarize_user(cls, user: User | None) -> Optional[UserContact]:
        if user is None:
            return None
        return UserContact(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            phone=user.phone,
        )


class DeletedReservationRead(BaseModel):
    id: int
    user: UserSummary | None
    timeslot: TimeslotSummary | None
    reservation_date: date
    number_of_guests: int

    @classmethod
    def from_snapshot(cls, snapshot: ReservationSnapshot) -> "DeletedReservationRead":
        user = None
        if snapshot.user_email is not None:
            user = UserSummary(
                id=snapshot.user_id,
                first_name=snapshot.user_first_name or "",
                last_name=snapshot.user_last_name or "",
                email=snapshot.user_email,
            )
        timeslot = None
        if snapshot.start_time is not None:
            timeslot = TimeslotSummary(id=snapshot.timeslot_id, start_time=snapshot.start_time)
        return cls(
            id=snapshot.reservation_id,
            user=user,
            timeslot=timeslot,
            reservation_date=snapshot.reservation_date,
            number_of_guests=snapshot.number_of_guests,
        )


class ReservationDeleted(BaseModel):
    message: str
    deleted_reservation: DeletedReservationRead = Field(serialization_alias="deletedReservation")


class TimeslotCreate(BaseModel):
    start_time: time
    is_active: bool = True


class TimeslotUpdate(BaseModel):
    start_time: Optional[time] = None
    is_active: Optional[bool] = None


class TimeslotRead(BaseModel):
    id: int
    start_time: time
    is_active: bool

    @field_serializer("start_time")
    def _ser_time(self, value: time) -> str:
        return format_hhmm(value)

    @classmethod
    def from_db(cls, *, timeslot: Timeslot) -> "TimeslotRead":
        return cls(id=timeslot.id, start_time=timeslot.start_time, is_active=timeslot.is_active)


class CapacityUpdate(BaseModel):
    total_capacity: int = Field(ge=1)


class CapacityRead(BaseModel):
    config_id: int
    total_capacity: int
    version: int

    @classmethod
    def from_domain(cls, config: CapacityConfig) -> "CapacityRead":
        return cls(config_id=config.config_id, total_capacity=config.total_capacity, version=config.version)
