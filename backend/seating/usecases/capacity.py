from ..domain.errors import MissingConfigurationError, ReservationValidationError
from ..domain.repositories import CapacityConfigRepository
from ..domain.services import CapacityConfig

DEFAULT_RESTAURANT_NAME = "Restaurant"


async def load_capacity_config(config_repo: CapacityConfigRepository) -> CapacityConfig:
    row = await config_repo.get_current()
    if row is None:
        raise MissingConfigurationError("restaurant configuration not found")
    if row.total_capacity < 1:
        raise MissingConfigurationError("restaurant total_capacity must be >= 1")
    return CapacityConfig(config_id=row.id, total_capacity=row.total_capacity, version=row.version)


async def update_total_capacity(config_repo: CapacityConfigRepository, *, total_capacity: int) -> CapacityConfig:
    """Set the restaurant-wide capacity; lowering it only limits future admissions."""
    if total_capacity < 1:
        raise ReservationValidationError("total_capacity must be >= 1")
    row = await config_repo.get_current()
    if row is None:
        row = await config_repo.create(total_capacity=total_capacity, restaurant_name=DEFAULT_RESTAURANT_NAME)
    else:
        row.total_capacity = total_capacity
        row.version += 1
        row = await config_repo.save(row)
    return CapacityConfig(config_id=row.id, total_capacity=row.total_capacity, version=row.version)
