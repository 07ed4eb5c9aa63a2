"""Domain Exceptions"""
from typing import Optional
from uuid import UUID


class ReservationError(Exception):
    """Base exception for reservation domain errors."""

    pass


class ValidationError(ReservationError):
    """Malformed input: bad date ordering, amounts, missing references."""

    pass


class NotFoundError(ReservationError):
    """Unknown record id."""

    def __init__(self, entity: str, entity_id: UUID):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ConflictError(ReservationError):
    """Room/date overlap with an existing blocking reservation."""

    def __init__(self, message: str, conflicting_reservation_id: Optional[UUID] = None):
        super().__init__(message)
        self.conflicting_reservation_id = conflicting_reservation_id


class InvalidStateError(ReservationError):
    """Requested transition is not legal from the current status."""

    pass
