"""Application Services - Business use cases"""
import logging
from contextlib import asynccontextmanager
from uuid import UUID
from datetime import date
from decimal import Decimal
from typing import Callable, List, Optional, Tuple, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError

from application.locks import RoomLocks
from domain.repositories import (
    ReservationRepository, ReservationFilter,
    CheckInRepository, CheckOutRepository, BillRepository,
)
from domain.entities import Reservation, CheckIn, CheckOut, Bill
from domain.enums import ReservationStatus, ReservationSource, BillStatus, OCCUPYING_STATUSES
from domain.exceptions import ValidationError, NotFoundError, ConflictError, InvalidStateError
from domain.value_objects import DateRange, Charges

logger = logging.getLogger(__name__)


def _validated(factory, **kwargs):
    """Build a model, reporting pydantic failures as domain validation errors"""
    try:
        return factory(**kwargs)
    except PydanticValidationError as e:
        messages = "; ".join(err["msg"] for err in e.errors())
        raise ValidationError(messages) from e


class AvailabilityResult(BaseModel):
    """Outcome of an availability query"""
    available: bool
    room_id: str
    check_in_date: date
    check_out_date: date
    conflicting_reservation_id: Optional[UUID] = None


class AvailabilityChecker:
    """Detects date-range conflicts between reservations on one room"""

    def __init__(self, repository: ReservationRepository, pending_holds_room: bool = True):
        self.repository = repository
        self.pending_holds_room = pending_holds_room

    @property
    def blocking_statuses(self) -> frozenset:
        if self.pending_holds_room:
            return OCCUPYING_STATUSES | {ReservationStatus.PENDING}
        return OCCUPYING_STATUSES

    async def find_conflict(
        self,
        room_id: str,
        check_in: date,
        check_out: date,
        exclude_reservation_id: Optional[UUID] = None
    ) -> Optional[Reservation]:
        """Return the earliest blocking reservation overlapping [check_in, check_out), if any"""
        if check_out <= check_in:
            raise ValidationError("Check-out date must be after check-in date")

        overlapping = await self.repository.find_overlapping(
            room_id, check_in, check_out,
            statuses=self.blocking_statuses,
            exclude_id=exclude_reservation_id
        )
        if not overlapping:
            return None
        return min(overlapping, key=lambda r: r.date_range.check_in)

    async def is_available(
        self,
        room_id: str,
        check_in: date,
        check_out: date,
        exclude_reservation_id: Optional[UUID] = None
    ) -> bool:
        """Check if the room is free for the whole range"""
        conflict = await self.find_conflict(room_id, check_in, check_out, exclude_reservation_id)
        return conflict is None

    async def ensure_available(
        self,
        room_id: str,
        date_range: DateRange,
        exclude_reservation_id: Optional[UUID] = None
    ) -> None:
        """Raise ConflictError when the range collides with a blocking reservation"""
        conflict = await self.find_conflict(
            room_id, date_range.check_in, date_range.check_out, exclude_reservation_id
        )
        if conflict is not None:
            logger.warning(
                "Room %s is not available for %s..%s, conflicts with reservation %s",
                room_id, date_range.check_in, date_range.check_out, conflict.reservation_id
            )
            raise ConflictError(
                "Room is not available for the selected dates",
                conflicting_reservation_id=conflict.reservation_id
            )


class ReservationService:
    """Service for Reservation lifecycle use cases"""

    def __init__(self,
                 repository: ReservationRepository,
                 locks: Optional[RoomLocks] = None,
                 pending_holds_room: bool = True):
        self.repository = repository
        self.locks = locks or RoomLocks()
        self.checker = AvailabilityChecker(repository, pending_holds_room)

    async def create_reservation(
        self,
        guest_id: str,
        room_id: str,
        check_in: date,
        check_out: date,
        number_of_guests: int,
        total_amount: Decimal,
        deposit_amount: Optional[Decimal] = None,
        source: ReservationSource = ReservationSource.ONLINE,
        special_requests: Optional[str] = None,
        notes: Optional[str] = None,
        created_by: str = "SYSTEM"
    ) -> Reservation:
        """Create a pending reservation if the room is free"""
        date_range = _validated(DateRange, check_in=check_in, check_out=check_out)
        charges = _validated(Charges, total_amount=total_amount, deposit_amount=deposit_amount)
        reservation = _validated(
            Reservation.create,
            guest_id=guest_id,
            room_id=room_id,
            date_range=date_range,
            number_of_guests=number_of_guests,
            charges=charges,
            source=source,
            special_requests=special_requests,
            notes=notes,
            created_by=created_by
        )

        async with self.locks.hold(reservation.effective_room_id):
            await self.checker.ensure_available(reservation.effective_room_id, date_range)
            saved = await self.repository.save(reservation)

        logger.info("Reservation created successfully with ID: %s", saved.reservation_id)
        return saved

    async def get_reservation(self, reservation_id: UUID) -> Reservation:
        """Get reservation by ID"""
        reservation = await self.repository.find_by_id(reservation_id)
        if reservation is None:
            raise NotFoundError("Reservation", reservation_id)
        return reservation

    async def list_reservations(self, criteria: ReservationFilter) -> Tuple[List[Reservation], int]:
        """Get one page of reservations plus the total match count"""
        reservations = await self.repository.search(criteria)
        total = await self.repository.count(criteria)
        logger.info("Retrieved %d reservations", len(reservations))
        return reservations, total

    async def check_availability(
        self,
        room_id: str,
        check_in: date,
        check_out: date,
        exclude_reservation_id: Optional[UUID] = None
    ) -> AvailabilityResult:
        """Check room availability for a date range"""
        conflict = await self.checker.find_conflict(room_id, check_in, check_out, exclude_reservation_id)
        logger.info("Checked availability for room %s: %s", room_id, conflict is None)
        return AvailabilityResult(
            available=conflict is None,
            room_id=room_id,
            check_in_date=check_in,
            check_out_date=check_out,
            conflicting_reservation_id=conflict.reservation_id if conflict else None
        )

    async def update_reservation(
        self,
        reservation_id: UUID,
        room_id: Optional[str] = None,
        assigned_room_id: Optional[str] = None,
        check_in: Optional[date] = None,
        check_out: Optional[date] = None,
        number_of_guests: Optional[int] = None,
        total_amount: Optional[Decimal] = None,
        deposit_amount: Optional[Decimal] = None,
        special_requests: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Reservation:
        """Modify reservation details, re-checking availability when room or dates move"""

        def target_room_of(reservation: Reservation) -> str:
            return assigned_room_id or reservation.assigned_room_id or room_id or reservation.room_id

        async with self._locked(reservation_id, target_room_of) as reservation:
            target_room = target_room_of(reservation)
            reservation.ensure_mutable()

            new_range = _validated(
                DateRange,
                check_in=check_in or reservation.date_range.check_in,
                check_out=check_out or reservation.date_range.check_out
            )
            new_charges = None
            if total_amount is not None or deposit_amount is not None:
                new_charges = _validated(
                    Charges,
                    total_amount=total_amount if total_amount is not None else reservation.charges.total_amount,
                    deposit_amount=deposit_amount if deposit_amount is not None else reservation.charges.deposit_amount
                )

            moves = (
                room_id is not None
                or assigned_room_id is not None
                or check_in is not None
                or check_out is not None
            )
            if moves:
                await self.checker.ensure_available(target_room, new_range, exclude_reservation_id=reservation_id)

            reservation.apply_changes(
                room_id=room_id,
                assigned_room_id=assigned_room_id,
                date_range=new_range if new_range != reservation.date_range else None,
                number_of_guests=number_of_guests,
                charges=new_charges,
                special_requests=special_requests,
                notes=notes
            )
            updated = await self.repository.update(reservation)

        logger.info("Updated reservation with ID: %s", reservation_id)
        return updated

    async def confirm_reservation(self, reservation_id: UUID) -> Reservation:
        """Confirm a pending reservation, re-checking the room first"""
        async with self._locked(reservation_id) as reservation:
            reservation.confirm()
            await self.checker.ensure_available(
                reservation.effective_room_id,
                reservation.date_range,
                exclude_reservation_id=reservation_id
            )
            updated = await self.repository.update(reservation)

        logger.info("Confirmed reservation with ID: %s", reservation_id)
        return updated

    async def cancel_reservation(self, reservation_id: UUID, reason: Optional[str] = None) -> Reservation:
        """Cancel reservation"""
        async with self._locked(reservation_id) as reservation:
            reservation.cancel(reason)
            updated = await self.repository.update(reservation)

        logger.info("Cancelled reservation with ID: %s", reservation_id)
        return updated

    async def mark_no_show(self, reservation_id: UUID) -> Reservation:
        """Mark reservation as no-show"""
        return await self.update_status(reservation_id, ReservationStatus.NO_SHOW)

    async def update_status(
        self,
        reservation_id: UUID,
        new_status: Union[str, ReservationStatus],
        reason: Optional[str] = None
    ) -> Reservation:
        """Move a reservation along the state diagram"""
        try:
            target = ReservationStatus(new_status)
        except ValueError:
            raise ValidationError(f"Invalid status value: {new_status}")

        if target == ReservationStatus.CONFIRMED:
            return await self.confirm_reservation(reservation_id)
        if target == ReservationStatus.CANCELLED:
            return await self.cancel_reservation(reservation_id, reason)

        async with self._locked(reservation_id) as reservation:
            if target == ReservationStatus.CHECKED_IN:
                reservation.check_in()
            elif target == ReservationStatus.CHECKED_OUT:
                reservation.check_out()
            elif target == ReservationStatus.NO_SHOW:
                reservation.mark_no_show()
            else:
                raise InvalidStateError(
                    f"Cannot change reservation status from {reservation.status.value} to {target.value}"
                )
            updated = await self.repository.update(reservation)

        logger.info("Updated reservation status to %s for ID: %s", target.value, reservation_id)
        return updated

    async def delete_reservation(
        self,
        reservation_id: UUID,
        reason: Optional[str] = None,
        notes: Optional[str] = None
    ) -> Reservation:
        """Soft delete a pending or cancelled reservation"""
        async with self._locked(reservation_id) as reservation:
            reservation.soft_delete(reason, notes)
            updated = await self.repository.update(reservation)

        logger.info("Deleted reservation with ID: %s", reservation_id)
        return updated

    @asynccontextmanager
    async def _locked(
        self,
        reservation_id: UUID,
        target_room_of: Optional[Callable[[Reservation], str]] = None
    ):
        """Hold the room lock(s) and yield a fresh copy of the reservation.

        The locked rooms are the reservation's effective room plus, when
        given, ``target_room_of(reservation)``. Both are re-derived from the
        copy read under the lock; if either moved while waiting, the locks
        are released and taken again for the new rooms.
        """

        def rooms_of(reservation: Reservation) -> Tuple[str, ...]:
            if target_room_of is None:
                return (reservation.effective_room_id,)
            return (reservation.effective_room_id, target_room_of(reservation))

        while True:
            current = await self.get_reservation(reservation_id)
            rooms = rooms_of(current)
            async with self.locks.hold(*rooms):
                fresh = await self.get_reservation(reservation_id)
                if rooms_of(fresh) == rooms:
                    try:
                        yield fresh
                    except (ConflictError, InvalidStateError, ValidationError) as e:
                        logger.warning("Reservation %s rejected: %s", reservation_id, e)
                        raise
                    return


class StayService:
    """Creates check-in, check-out and bill records referencing a reservation"""

    def __init__(self,
                 reservation_service: ReservationService,
                 check_in_repo: CheckInRepository,
                 check_out_repo: CheckOutRepository,
                 bill_repo: BillRepository):
        self.reservation_service = reservation_service
        self.check_in_repo = check_in_repo
        self.check_out_repo = check_out_repo
        self.bill_repo = bill_repo

    async def check_in_guest(
        self,
        reservation_id: UUID,
        assigned_room_number: str,
        key_issued: bool = False,
        welcome_pack_delivered: bool = False,
        special_instructions: Optional[str] = None,
        created_by: str = "SYSTEM"
    ) -> CheckIn:
        """Record a check-in and move the reservation to checked_in"""
        if not assigned_room_number or not assigned_room_number.strip():
            raise ValidationError("Assigned room number is required")

        reservation = await self.reservation_service.get_reservation(reservation_id)
        check_in = _validated(
            CheckIn,
            reservation_id=reservation.reservation_id,
            room_id=reservation.effective_room_id,
            guest_id=reservation.guest_id,
            assigned_room_number=assigned_room_number.strip().upper(),
            key_issued=key_issued,
            welcome_pack_delivered=welcome_pack_delivered,
            special_instructions=special_instructions,
            created_by=created_by
        )

        await self.reservation_service.update_status(reservation_id, ReservationStatus.CHECKED_IN)
        saved = await self.check_in_repo.save(check_in)
        logger.info("Check-in %s recorded for reservation %s", saved.check_in_id, reservation_id)
        return saved

    async def check_out_guest(
        self,
        reservation_id: UUID,
        room_condition_notes: Optional[str] = None,
        created_by: str = "SYSTEM"
    ) -> CheckOut:
        """Record a check-out and move the reservation to checked_out"""
        check_in = await self.check_in_repo.find_by_reservation_id(reservation_id)
        if check_in is None:
            raise InvalidStateError("Reservation has no check-in record")

        reservation = await self.reservation_service.get_reservation(reservation_id)
        check_out = _validated(
            CheckOut,
            reservation_id=reservation.reservation_id,
            check_in_id=check_in.check_in_id,
            final_amount=reservation.charges.total_amount,
            room_condition_notes=room_condition_notes,
            created_by=created_by
        )

        await self.reservation_service.update_status(reservation_id, ReservationStatus.CHECKED_OUT)
        saved = await self.check_out_repo.save(check_out)
        logger.info("Check-out %s recorded for reservation %s", saved.check_out_id, reservation_id)
        return saved

    async def create_bill(self, reservation_id: UUID) -> Bill:
        """Raise the bill for a reservation, crediting its deposit"""
        reservation = await self.reservation_service.get_reservation(reservation_id)
        if reservation.status in (ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW):
            raise InvalidStateError(
                f"Cannot bill a reservation in {reservation.status.value} status"
            )

        existing = await self.bill_repo.find_by_reservation_id(reservation_id)
        if existing is not None:
            raise ConflictError("Reservation already has a bill")

        paid = reservation.charges.deposit_amount or Decimal("0")
        bill = Bill(
            reservation_id=reservation_id,
            guest_id=reservation.guest_id,
            total_amount=reservation.charges.total_amount,
            paid_amount=paid,
            status=BillStatus.PAID if paid >= reservation.charges.total_amount else BillStatus.OPEN
        )
        saved = await self.bill_repo.save(bill)
        logger.info("Bill %s created for reservation %s", saved.bill_id, reservation_id)
        return saved

    async def get_check_in(self, check_in_id: UUID) -> CheckIn:
        check_in = await self.check_in_repo.find_by_id(check_in_id)
        if check_in is None:
            raise NotFoundError("Check-in", check_in_id)
        return check_in

    async def get_check_out(self, check_out_id: UUID) -> CheckOut:
        check_out = await self.check_out_repo.find_by_id(check_out_id)
        if check_out is None:
            raise NotFoundError("Check-out", check_out_id)
        return check_out

    async def get_bill(self, bill_id: UUID) -> Bill:
        bill = await self.bill_repo.find_by_id(bill_id)
        if bill is None:
            raise NotFoundError("Bill", bill_id)
        return bill

    async def get_stay_records(
        self,
        reservation_id: UUID
    ) -> Tuple[Optional[CheckIn], Optional[CheckOut], Optional[Bill]]:
        """Get everything recorded against a reservation"""
        await self.reservation_service.get_reservation(reservation_id)
        return (
            await self.check_in_repo.find_by_reservation_id(reservation_id),
            await self.check_out_repo.find_by_reservation_id(reservation_id),
            await self.bill_repo.find_by_reservation_id(reservation_id),
        )
