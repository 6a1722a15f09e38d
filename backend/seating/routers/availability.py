import logging
from typing import List

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..deps import get_app_settings, get_session
from ..domain.errors import MissingConfigurationError, NoActiveTimeslotsError
from ..infrastructure.repositories import (
    SqlAlchemyCapacityConfigRepository,
    SqlAlchemyReservationLedger,
    SqlAlchemyTimeslotRepository,
)
from ..schemas import DayAvailabilityRead, ErrorBody
from ..usecases import availability as availability_usecase
from ..usecases import capacity as capacity_usecase
from ..utils.time import local_today

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get(
    "",
    response_model=List[DayAvailabilityRead],
    responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorBody}},
)
async def get_availability(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_app_settings),
):
    config_repo = SqlAlchemyCapacityConfigRepository(session)
    timeslot_repo = SqlAlchemyTimeslotRepository(session)
    ledger = SqlAlchemyReservationLedger(session)
    try:
        config = await capacity_usecase.load_capacity_config(config_repo)
        days = await availability_usecase.project_availability(
            timeslot_repo,
            ledger,
            config=config,
            window_start=local_today(settings.restaurant_timezone),
            window_days=settings.availability_window_days,
        )
    except (MissingConfigurationError, NoActiveTimeslotsError) as exc:
        logger.error("availability unavailable: %s", exc)
        body = ErrorBody(error="restaurant configuration is incomplete", details=str(exc))
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body.model_dump())
    return [DayAvailabilityRead.from_domain(day) for day in days]
