from datetime import date, time

import pytest
from seating.domain.errors import NoActiveTimeslotsError
from seating.domain.services import CapacityConfig
from seating.usecases import availability as uc

START = date(2024, 6, 3)  # a Monday


def _config(total: int = 20) -> CapacityConfig:
    return CapacityConfig(config_id=1, total_capacity=total, version=1)


@pytest.fixture
def repos(make_timeslot, fake_timeslot_repo_cls, fake_ledger_cls):
    timeslots = fake_timeslot_repo_cls(
        [make_timeslot(1, 19), make_timeslot(2, 12), make_timeslot(3, 15, is_active=False)]
    )
    return timeslots, fake_ledger_cls(timeslots)


@pytest.mark.asyncio
async def test_empty_ledger_gives_full_capacity_for_seven_days(repos) -> None:
    timeslots, ledger = repos
    days = await uc.project_availability(timeslots, ledger, config=_config(), window_start=START)

    assert len(days) == 7
    assert days[0].day == START
    assert days[-1].day == date(2024, 6, 9)
    for day in days:
        assert [cell.start_time for cell in day.timeslots] == [time(12, 0), time(19, 0)]
        assert all(cell.remaining == 20 and cell.total_capacity == 20 for cell in day.timeslots)


@pytest.mark.asyncio
async def test_display_fields(repos) -> None:
    timeslots, ledger = repos
    days = await uc.project_availability(timeslots, ledger, config=_config(), window_start=START, window_days=2)
    assert days[0].display_date == "03/06/2024"
    assert days[0].day_name == "Lundi"
    assert days[1].day_name == "Mardi"


@pytest.mark.asyncio
async def test_consumption_is_per_date_and_timeslot(repos) -> None:
    timeslots, ledger = repos
    await ledger.insert(user_id=1, timeslot_id=1, reservation_date=START, number_of_guests=6)
    await ledger.insert(user_id=2, timeslot_id=1, reservation_date=START, number_of_guests=4)
    await ledger.insert(user_id=3, timeslot_id=2, reservation_date=date(2024, 6, 4), number_of_guests=25)
    voided = await ledger.insert(user_id=4, timeslot_id=2, reservation_date=START, number_of_guests=5)
    await ledger.void(voided)

    days = await uc.project_availability(timeslots, ledger, config=_config(), window_start=START)
    by_day = {d.day: {c.timeslot_id: c.remaining for c in d.timeslots} for d in days}

    assert by_day[START] == {2: 20, 1: 10}
    assert by_day[date(2024, 6, 4)] == {2: 0, 1: 20}


@pytest.mark.asyncio
async def test_projection_is_idempotent(repos) -> None:
    timeslots, ledger = repos
    await ledger.insert(user_id=1, timeslot_id=2, reservation_date=START, number_of_guests=3)
    first = await uc.project_availability(timeslots, ledger, config=_config(), window_start=START)
    second = await uc.project_availability(timeslots, ledger, config=_config(), window_start=START)
    assert first == second


@pytest.mark.asyncio
async def test_no_active_timeslot_is_a_configuration_error(make_timeslot, fake_timeslot_repo_cls, fake_ledger_cls) -> None:
    timeslots = fake_timeslot_repo_cls([make_timeslot(1, 19, is_active=False)])
    with pytest.raises(NoActiveTimeslotsError):
        await uc.project_availability(timeslots, fake_ledger_cls(timeslots), config=_config(), window_start=START)
