"""Domain Repository Interfaces"""
from abc import ABC, abstractmethod
from typing import Optional, List, Iterable
from uuid import UUID
from datetime import date

from pydantic import BaseModel

from domain.entities import Reservation, CheckIn, CheckOut, Bill
from domain.enums import ReservationStatus, ReservationSource, SortField, SortOrder


class ReservationFilter(BaseModel):
    """Listing criteria for reservations"""
    status: Optional[ReservationStatus] = None
    guest_id: Optional[str] = None
    room_id: Optional[str] = None
    source: Optional[ReservationSource] = None
    is_active: Optional[bool] = None
    check_in_from: Optional[date] = None
    check_out_until: Optional[date] = None
    search: Optional[str] = None
    sort_by: SortField = SortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC
    skip: int = 0
    limit: int = 10


class ReservationRepository(ABC):
    """Repository interface for Reservation Aggregate"""

    @abstractmethod
    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation"""
        pass

    @abstractmethod
    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        pass

    @abstractmethod
    async def find_overlapping(
        self,
        room_id: str,
        check_in: date,
        check_out: date,
        statuses: Iterable[ReservationStatus],
        exclude_id: Optional[UUID] = None
    ) -> List[Reservation]:
        """Find active reservations on a room in the given statuses whose stay intersects the range"""
        pass

    @abstractmethod
    async def search(self, criteria: ReservationFilter) -> List[Reservation]:
        """Find one page of reservations matching criteria"""
        pass

    @abstractmethod
    async def count(self, criteria: ReservationFilter) -> int:
        """Count reservations matching criteria, ignoring paging"""
        pass

    @abstractmethod
    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        pass


class CheckInRepository(ABC):
    """Repository interface for check-in records"""

    @abstractmethod
    async def save(self, check_in: CheckIn) -> CheckIn:
        pass

    @abstractmethod
    async def find_by_id(self, check_in_id: UUID) -> Optional[CheckIn]:
        pass

    @abstractmethod
    async def find_by_reservation_id(self, reservation_id: UUID) -> Optional[CheckIn]:
        pass


class CheckOutRepository(ABC):
    """Repository interface for check-out records"""

    @abstractmethod
    async def save(self, check_out: CheckOut) -> CheckOut:
        pass

    @abstractmethod
    async def find_by_id(self, check_out_id: UUID) -> Optional[CheckOut]:
        pass

    @abstractmethod
    async def find_by_reservation_id(self, reservation_id: UUID) -> Optional[CheckOut]:
        pass


class BillRepository(ABC):
    """Repository interface for bills"""

    @abstractmethod
    async def save(self, bill: Bill) -> Bill:
        pass

    @abstractmethod
    async def find_by_id(self, bill_id: UUID) -> Optional[Bill]:
        pass

    @abstractmethod
    async def find_by_reservation_id(self, reservation_id: UUID) -> Optional[Bill]:
        pass
