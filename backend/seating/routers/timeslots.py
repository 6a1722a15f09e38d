from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import CurrentUser, get_session, require_admin
from ..domain.errors import TimeslotInUseError, TimeslotNotFoundError
from ..infrastructure.repositories import SqlAlchemyReservationLedger, SqlAlchemyTimeslotRepository
from ..schemas import TimeslotCreate, TimeslotRead, TimeslotUpdate
from ..usecases import timeslots as timeslot_usecase
from ..utils.audit_log import emit_audit_log

router = APIRouter(prefix="/admin/timeslots", tags=["timeslots"], dependencies=[Depends(require_admin)])


@router.get("", response_model=List[TimeslotRead])
async def list_timeslots(
    include_inactive: bool = Query(default=True),
    session: AsyncSession = Depends(get_session),
) -> list[TimeslotRead]:
    timeslot_repo = SqlAlchemyTimeslotRepository(session)
    rows = await timeslot_usecase.list_timeslots(timeslot_repo, include_inactive=include_inactive)
    return [TimeslotRead.from_db(timeslot=row) for row in rows]


@router.post("", response_model=TimeslotRead, status_code=status.HTTP_201_CREATED)
async def create_timeslot(
    payload: TimeslotCreate,
    session: AsyncSession = Depends(get_session),
) -> TimeslotRead:
    if payload.start_time.tzinfo is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start_time must be a local time of day")
    timeslot_repo = SqlAlchemyTimeslotRepository(session)
    async with session.begin():
        timeslot = await timeslot_usecase.create_timeslot(
            timeslot_repo,
            start_time=payload.start_time,
            is_active=payload.is_active,
        )
    return TimeslotRead.from_db(timeslot=timeslot)


@router.patch("/{timeslot_id}", response_model=TimeslotRead)
async def update_timeslot(
    payload: TimeslotUpdate,
    timeslot_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
) -> TimeslotRead:
    timeslot_repo = SqlAlchemyTimeslotRepository(session)
    ledger = SqlAlchemyReservationLedger(session)
    async with session.begin():
        try:
            timeslot = await timeslot_usecase.update_timeslot(
                timeslot_repo,
                ledger,
                timeslot_id=timeslot_id,
                start_time=payload.start_time,
                is_active=payload.is_active,
            )
        except TimeslotNotFoundError:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="timeslot not found")
        except TimeslotInUseError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return TimeslotRead.from_db(timeslot=timeslot)


@router.delete("/{timeslot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_timeslot(
    timeslot_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    admin: CurrentUser = Depends(require_admin),
) -> None:
    timeslot_repo = SqlAlchemyTimeslotRepository(session)
    ledger = SqlAlchemyReservationLedger(session)
    try:
        async with session.begin():
            await timeslot_usecase.delete_timeslot(timeslot_repo, ledger, timeslot_id=timeslot_id)
    except TimeslotNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="timeslot not found")
    except (TimeslotInUseError, IntegrityError):
        # IntegrityError: a reservation was booked between the check and the delete.
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="timeslot has live reservations")

    try:
        emit_audit_log(action="timeslot.deleted", initiator="admin", actor_id=admin.id, timeslot_id=timeslot_id)
    except RuntimeError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed")
