class ReservationDomainError(Exception):
    """Base class for errors raised by the capacity ledger and its use cases."""


class ReservationValidationError(ReservationDomainError):
    pass


class PastDateError(ReservationValidationError):
    pass


class TimeslotNotFoundError(ReservationDomainError):
    pass


class ReservationNotFoundError(ReservationDomainError):
    pass


class MissingConfigurationError(ReservationDomainError):
    pass


class NoActiveTimeslotsError(ReservationDomainError):
    pass


class CapacityExceededError(ReservationDomainError):
    def __init__(self, remaining: int) -> None:
        self.remaining = remaining
        super().__init__(f"not enough seats available. remaining seats: {remaining}")


class DuplicateBookingError(ReservationDomainError):
    pass


class TimeslotInUseError(ReservationDomainError):
    pass


class TransientStoreFailure(ReservationDomainError):
    """The atomic admission step hit a lock or transaction conflict; retry the whole call."""
