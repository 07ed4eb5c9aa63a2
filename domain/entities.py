"""Domain Entities - Aggregates"""
from pydantic import BaseModel, Field
from uuid import UUID, uuid4
from datetime import datetime, date, timezone
from typing import Optional
from decimal import Decimal

from domain.enums import (
    ReservationStatus, ReservationSource, BillStatus,
    OCCUPYING_STATUSES, DELETABLE_STATUSES,
)
from domain.exceptions import InvalidStateError, ValidationError
from domain.value_objects import DateRange, Charges


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Reservation(BaseModel):
    """Reservation Aggregate Root Entity"""

    # Identity
    reservation_id: UUID = Field(default_factory=uuid4)

    # References to other contexts
    guest_id: str
    room_id: str
    assigned_room_id: Optional[str] = None

    # Value Objects
    date_range: DateRange
    charges: Charges
    number_of_guests: int = Field(ge=1, le=10)

    # Enums/Status
    status: ReservationStatus = ReservationStatus.PENDING
    source: ReservationSource = ReservationSource.ONLINE

    special_requests: Optional[str] = Field(default=None, max_length=1000)
    notes: Optional[str] = Field(default=None, max_length=500)

    # Lifecycle stamps
    confirmed_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None

    # Soft delete
    is_active: bool = True
    deleted_at: Optional[datetime] = None
    deletion_reason: Optional[str] = None

    # Metadata
    created_at: datetime = Field(default_factory=utcnow)
    modified_at: datetime = Field(default_factory=utcnow)
    created_by: str = "SYSTEM"
    version: int = 1

    class Config:
        from_attributes = True

    # ==================== FACTORY METHOD ====================
    @staticmethod
    def create(
        guest_id: str,
        room_id: str,
        date_range: DateRange,
        number_of_guests: int,
        charges: Charges,
        source: ReservationSource = ReservationSource.ONLINE,
        special_requests: Optional[str] = None,
        notes: Optional[str] = None,
        created_by: str = "SYSTEM"
    ) -> "Reservation":
        """Create new pending reservation with validation"""
        if not guest_id or not room_id:
            raise ValidationError("Guest ID and room ID are required")
        if date_range.check_in < date.today():
            raise ValidationError("Check-in date must not be in the past")

        return Reservation(
            guest_id=guest_id,
            room_id=room_id,
            date_range=date_range,
            number_of_guests=number_of_guests,
            charges=charges,
            source=source,
            special_requests=special_requests,
            notes=notes,
            status=ReservationStatus.PENDING,
            created_by=created_by
        )

    # ==================== COMPUTED PROPERTIES ====================
    @property
    def effective_room_id(self) -> str:
        """Room the stay actually occupies"""
        return self.assigned_room_id or self.room_id

    @property
    def nights(self) -> int:
        return self.date_range.nights()

    @property
    def remaining_balance(self) -> Decimal:
        return self.charges.remaining_balance

    def blocks_room(self, pending_holds_room: bool = True) -> bool:
        """Check if this reservation takes part in the overlap invariant"""
        if not self.is_active:
            return False
        if self.status in OCCUPYING_STATUSES:
            return True
        return pending_holds_room and self.status == ReservationStatus.PENDING

    # ==================== MODIFICATION METHODS ====================
    def apply_changes(
        self,
        room_id: Optional[str] = None,
        assigned_room_id: Optional[str] = None,
        date_range: Optional[DateRange] = None,
        number_of_guests: Optional[int] = None,
        charges: Optional[Charges] = None,
        special_requests: Optional[str] = None,
        notes: Optional[str] = None
    ) -> None:
        """Apply an already validated patch"""
        self.ensure_mutable()

        if room_id is not None:
            self.room_id = room_id
        if assigned_room_id is not None:
            self.assigned_room_id = assigned_room_id
        if date_range is not None:
            self.date_range = date_range
        if number_of_guests is not None:
            if not 1 <= number_of_guests <= 10:
                raise ValidationError("Number of guests must be between 1 and 10")
            self.number_of_guests = number_of_guests
        if charges is not None:
            self.charges = charges
        if special_requests is not None:
            self.special_requests = special_requests
        if notes is not None:
            self.notes = notes

        self._touch()

    # ==================== STATE TRANSITION METHODS ====================
    def confirm(self) -> None:
        """Move a pending reservation to confirmed"""
        self._ensure_active()
        if self.status != ReservationStatus.PENDING:
            raise InvalidStateError(
                f"Only pending reservations can be confirmed (status is {self.status.value})"
            )
        self.status = ReservationStatus.CONFIRMED
        self.confirmed_at = utcnow()
        self._touch()

    def check_in(self) -> None:
        """Mark guest as checked in"""
        self._transition(ReservationStatus.CHECKED_IN)
        self.checked_in_at = utcnow()

    def check_out(self) -> None:
        """Mark guest as checked out"""
        self._transition(ReservationStatus.CHECKED_OUT)
        self.checked_out_at = utcnow()

    def cancel(self, reason: Optional[str]) -> None:
        """Cancel reservation"""
        self._ensure_active()
        if self.status in (ReservationStatus.CANCELLED, ReservationStatus.CHECKED_OUT):
            raise InvalidStateError("Reservation is already cancelled or completed")
        self._transition(ReservationStatus.CANCELLED)
        self.cancellation_reason = reason
        self.cancelled_at = utcnow()

    def mark_no_show(self) -> None:
        """Mark guest as no-show"""
        self._transition(ReservationStatus.NO_SHOW)

    def soft_delete(self, reason: Optional[str], notes: Optional[str] = None) -> None:
        """Deactivate the record without removing it"""
        if not self.is_active:
            raise InvalidStateError("Reservation is already deleted")
        if self.status not in DELETABLE_STATUSES:
            raise InvalidStateError("Only cancelled or pending reservations can be deleted")

        self.is_active = False
        self.deletion_reason = reason
        if notes is not None:
            self.notes = notes
        self.deleted_at = utcnow()
        self._touch()

    # ==================== QUERY METHODS ====================
    def ensure_mutable(self) -> None:
        """Raise unless the record still accepts field changes"""
        if self.status.is_terminal:
            raise InvalidStateError(
                f"Reservation in {self.status.value} status can no longer be modified"
            )
        self._ensure_active()

    # ==================== PRIVATE METHODS ====================
    def _ensure_active(self) -> None:
        if not self.is_active:
            raise InvalidStateError("Deleted reservations can no longer be modified")

    def _transition(self, target: ReservationStatus) -> None:
        self._ensure_active()
        if not self.status.can_transition_to(target):
            raise InvalidStateError(
                f"Cannot change reservation status from {self.status.value} to {target.value}"
            )
        self.status = target
        self._touch()

    def _touch(self) -> None:
        self.modified_at = utcnow()
        self.version += 1


class CheckIn(BaseModel):
    """Check-in record created against a confirmed reservation"""

    check_in_id: UUID = Field(default_factory=uuid4)
    reservation_id: UUID
    room_id: str
    guest_id: str
    assigned_room_number: str
    check_in_time: datetime = Field(default_factory=utcnow)
    key_issued: bool = False
    welcome_pack_delivered: bool = False
    special_instructions: Optional[str] = Field(default=None, max_length=1000)
    created_by: str = "SYSTEM"

    class Config:
        from_attributes = True


class CheckOut(BaseModel):
    """Check-out record closing a stay"""

    check_out_id: UUID = Field(default_factory=uuid4)
    reservation_id: UUID
    check_in_id: UUID
    check_out_time: datetime = Field(default_factory=utcnow)
    final_amount: Decimal = Field(ge=0)
    room_condition_notes: Optional[str] = Field(default=None, max_length=1000)
    created_by: str = "SYSTEM"

    class Config:
        from_attributes = True


class Bill(BaseModel):
    """Bill raised for a reservation"""

    bill_id: UUID = Field(default_factory=uuid4)
    reservation_id: UUID
    guest_id: str
    total_amount: Decimal = Field(ge=0)
    paid_amount: Decimal = Field(ge=0, default=Decimal("0"))
    status: BillStatus = BillStatus.OPEN
    created_at: datetime = Field(default_factory=utcnow)

    class Config:
        from_attributes = True

    @property
    def balance_due(self) -> Decimal:
        return self.total_amount - self.paid_amount
