from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session, require_admin
from ..domain.errors import MissingConfigurationError
from ..infrastructure.repositories import SqlAlchemyCapacityConfigRepository
from ..schemas import CapacityRead, CapacityUpdate
from ..usecases import capacity as capacity_usecase

router = APIRouter(prefix="/admin/capacity", tags=["capacity"], dependencies=[Depends(require_admin)])


@router.get("", response_model=CapacityRead)
async def get_capacity(session: AsyncSession = Depends(get_session)) -> CapacityRead:
    config_repo = SqlAlchemyCapacityConfigRepository(session)
    try:
        config = await capacity_usecase.load_capacity_config(config_repo)
    except MissingConfigurationError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="capacity not configured")
    return CapacityRead.from_domain(config)


@router.put("", response_model=CapacityRead)
async def update_capacity(
    payload: CapacityUpdate,
    session: AsyncSession = Depends(get_session),
) -> CapacityRead:
    config_repo = SqlAlchemyCapacityConfigRepository(session)
    async with session.begin():
        config = await capacity_usecase.update_total_capacity(config_repo, total_capacity=payload.total_capacity)
    return CapacityRead.from_domain(config)
