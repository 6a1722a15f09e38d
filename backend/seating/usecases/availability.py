from dataclasses import dataclass
from datetime import date, time, timedelta

from ..domain.errors import NoActiveTimeslotsError
from ..domain.repositories import ReservationLedger, TimeslotRepository
from ..domain.services import CapacityConfig

DEFAULT_WINDOW_DAYS = 7
DAY_NAMES = ("Lundi", "Mardi", "Mercredi", "Jeudi", "Vendredi", "Samedi", "Dimanche")


@dataclass(frozen=True)
class TimeslotAvailability:
    timeslot_id: int
    start_time: time
    total_capacity: int
    remaining: int


@dataclass(frozen=True)
class DayAvailability:
    day: date
    timeslots: list[TimeslotAvailability]

    @property
    def display_date(self) -> str:
        return self.day.strftime("%d/%m/%Y")

    @property
    def day_name(self) -> str:
        return DAY_NAMES[self.day.weekday()]


async def project_availability(
    timeslot_repo: TimeslotRepository,
    ledger: ReservationLedger,
    *,
    config: CapacityConfig,
    window_start: date,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> list[DayAvailability]:
    """
    Remaining seats for every active timeslot over `window_days` days from `window_start`.

    Read-only. Each (date, timeslot) cell comes from a single grouped read of the
    ledger; the window as a whole is not a snapshot under concurrent writes.
    """
    timeslots = await timeslot_repo.list(include_inactive=False)
    if not timeslots:
        raise NoActiveTimeslotsError("no active timeslot configured")

    window_end = window_start + timedelta(days=window_days)
    consumed = await ledger.consumed_between(window_start, window_end)

    days: list[DayAvailability] = []
    for offset in range(window_days):
        day = window_start + timedelta(days=offset)
        cells = [
            TimeslotAvailability(
                timeslot_id=slot.id,
                start_time=slot.start_time,
                total_capacity=config.total_capacity,
                remaining=max(config.total_capacity - consumed.get((day, slot.id), 0), 0),
            )
            for slot in sorted(timeslots, key=lambda s: (s.start_time, s.id))
        ]
        days.append(DayAvailability(day=day, timeslots=cells))
    return days
