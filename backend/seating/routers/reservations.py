import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..deps import CurrentUser, get_app_settings, get_confirmation_sender, get_current_user, get_session, require_admin
from ..domain.errors import (
    CapacityExceededError,
    DuplicateBookingError,
    MissingConfigurationError,
    ReservationNotFoundError,
    ReservationValidationError,
    TimeslotNotFoundError,
    TransientStoreFailure,
)
from ..infrastructure.errors import store_errors
from ..infrastructure.notifications import ConfirmationDetails, ConfirmationSender, dispatch_confirmation
from ..infrastructure.repositories import (
    SqlAlchemyCapacityConfigRepository,
    SqlAlchemyReservationLedger,
    SqlAlchemyTimeslotRepository,
)
from ..schemas import AdminReservationRead, DeletedReservationRead, ReservationCreate, ReservationDeleted, ReservationRead
from ..usecases import capacity as capacity_usecase
from ..usecases import reservations as reservation_usecase
from ..utils.audit_log import emit_audit_log
from ..utils.time import local_today

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reservations", tags=["reservations"])


@router.post("", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreate,
    background_tasks: BackgroundTasks,
    session: AsyncSession = Depends(get_session),
    user: CurrentUser = Depends(get_current_user),
    settings: Settings = Depends(get_app_settings),
    sender: ConfirmationSender = Depends(get_confirmation_sender),
) -> ReservationRead:
    config_repo = SqlAlchemyCapacityConfigRepository(session)
    timeslot_repo = SqlAlchemyTimeslotRepository(session)
    ledger = SqlAlchemyReservationLedger(session)
    try:
        async with store_errors():
            async with session.begin():
                config = await capacity_usecase.load_capacity_config(config_repo)
                reservation = await reservation_usecase.book_reservation(
                    timeslot_repo,
                    ledger,
                    config=config,
                    user_id=user.id,
                    timeslot_id=payload.timeslot_id,
                    reservation_date=payload.reservation_date,
                    guest_count=payload.number_of_guests,
                    today=local_today(settings.restaurant_timezone),
                    allow_past=settings.allow_past_dates,
                )
    except ReservationValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except TimeslotNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="timeslot not found or inactive")
    except CapacityExceededError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except DuplicateBookingError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="you already have a reservation for this date and timeslot",
        )
    except MissingConfigurationError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="restaurant configuration not found")
    except TransientStoreFailure as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
            headers={"Retry-After": "1"},
        )

    try:
        emit_audit_log(
            action="reservation.created",
            initiator="user",
            actor_id=user.id,
            reservation_id=reservation.id,
            timeslot_id=reservation.timeslot_id,
            reservation_date=reservation.reservation_date,
            user_id=reservation.user_id,
            number_of_guests=reservation.number_of_guests,
        )
    except RuntimeError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed")

    owner = reservation.user
    if owner is not None and reservation.timeslot is not None:
        background_tasks.add_task(
            dispatch_confirmation,
            sender,
            email=owner.email,
            first_name=owner.first_name,
            last_name=owner.last_name,
            details=ConfirmationDetails(
                reservation_id=reservation.id,
                reservation_date=reservation.reservation_date,
                start_time=reservation.timeslot.start_time,
                number_of_guests=reservation.number_of_guests,
            ),
        )
    return ReservationRead.from_db(reservation=reservation)


@router.get("/my", response_model=List[ReservationRead])
async def list_my_reservations(
    session: AsyncSession = Depends(get_session),
    user: CurrentUser = Depends(get_current_user),
) -> list[ReservationRead]:
    ledger = SqlAlchemyReservationLedger(session)
    rows = await reservation_usecase.list_user_reservations(ledger, user_id=user.id)
    return [ReservationRead.from_db(reservation=row) for row in rows]


@router.get("/admin/all", response_model=List[AdminReservationRead])
async def list_all_reservations(
    date_filter: Optional[str] = Query(default=None, alias="date"),
    timeslot_filter: Optional[str] = Query(default=None, alias="timeslot_id"),
    session: AsyncSession = Depends(get_session),
    admin: CurrentUser = Depends(require_admin),
) -> list[AdminReservationRead]:
    # Empty query values (`?date=&timeslot_id=`) mean "no filter".
    try:
        reservation_date = date.fromisoformat(date_filter) if date_filter else None
        timeslot_id = int(timeslot_filter) if timeslot_filter else None
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="date must be YYYY-MM-DD and timeslot_id an integer",
        )
    if timeslot_id is not None and timeslot_id < 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="timeslot_id must be >= 1")

    ledger = SqlAlchemyReservationLedger(session)
    rows = await reservation_usecase.list_all_reservations(
        ledger,
        reservation_date=reservation_date,
        timeslot_id=timeslot_id,
    )
    return [AdminReservationRead.from_db(reservation=row) for row in rows]


@router.delete("/admin/{reservation_id}", response_model=ReservationDeleted)
async def delete_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    admin: CurrentUser = Depends(require_admin),
) -> ReservationDeleted:
    ledger = SqlAlchemyReservationLedger(session)
    try:
        async with session.begin():
            snapshot = await reservation_usecase.cancel_reservation(ledger, reservation_id=reservation_id)
    except ReservationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="reservation not found")

    try:
        emit_audit_log(
            action="reservation.deleted",
            initiator="admin",
            actor_id=admin.id,
            reservation_id=snapshot.reservation_id,
            timeslot_id=snapshot.timeslot_id,
            reservation_date=snapshot.reservation_date,
            user_id=snapshot.user_id,
            number_of_guests=snapshot.number_of_guests,
        )
    except RuntimeError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed")

    return ReservationDeleted(
        message="reservation deleted",
        deleted_reservation=DeletedReservationRead.from_snapshot(snapshot),
    )


@router.post("/admin/{reservation_id}/void", response_model=AdminReservationRead)
async def void_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    admin: CurrentUser = Depends(require_admin),
) -> AdminReservationRead:
    ledger = SqlAlchemyReservationLedger(session)
    try:
        async with session.begin():
            reservation, changed = await reservation_usecase.void_reservation(ledger, reservation_id=reservation_id)
    except ReservationNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="reservation not found")

    if changed:
        try:
            emit_audit_log(
                action="reservation.voided",
                initiator="admin",
                actor_id=admin.id,
                reservation_id=reservation.id,
                timeslot_id=reservation.timeslot_id,
                reservation_date=reservation.reservation_date,
                user_id=reservation.user_id,
                number_of_guests=reservation.number_of_guests,
            )
        except RuntimeError:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed")
    return AdminReservationRead.from_db(reservation=reservation)
