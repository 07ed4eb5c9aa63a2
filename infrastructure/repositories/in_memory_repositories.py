"""In-Memory Repository Implementations"""
from typing import Optional, List, Iterable
from uuid import UUID
from datetime import date

from domain.repositories import (
    ReservationRepository, ReservationFilter,
    CheckInRepository, CheckOutRepository, BillRepository,
)
from domain.entities import Reservation, CheckIn, CheckOut, Bill
from domain.enums import ReservationStatus, SortOrder
from domain.exceptions import NotFoundError
from infrastructure.store import InMemoryDocumentStore


class InMemoryReservationRepository(ReservationRepository):
    """In-memory implementation of ReservationRepository"""

    collection_name = "reservations"

    def __init__(self, store: InMemoryDocumentStore):
        self._store = store

    @property
    def _collection(self):
        return self._store.collection(self.collection_name)

    async def save(self, reservation: Reservation) -> Reservation:
        """Save reservation to memory"""
        self._collection.put(reservation.reservation_id, reservation)
        return reservation

    async def find_by_id(self, reservation_id: UUID) -> Optional[Reservation]:
        """Find reservation by ID"""
        return self._collection.get(reservation_id)

    async def find_overlapping(
        self,
        room_id: str,
        check_in: date,
        check_out: date,
        statuses: Iterable[ReservationStatus],
        exclude_id: Optional[UUID] = None
    ) -> List[Reservation]:
        """Find blocking reservations whose stay intersects [check_in, check_out)"""
        statuses = set(statuses)
        return [
            r for r in self._collection.values()
            if r.effective_room_id == room_id
            and r.is_active
            and r.status in statuses
            and r.reservation_id != exclude_id
            and r.date_range.check_in < check_out
            and r.date_range.check_out > check_in
        ]

    async def search(self, criteria: ReservationFilter) -> List[Reservation]:
        """Find one page of reservations"""
        matches = self._matching(criteria)
        matches.sort(
            key=lambda r: _sort_key(r, criteria.sort_by.value),
            reverse=criteria.sort_order == SortOrder.DESC
        )
        return matches[criteria.skip:criteria.skip + criteria.limit]

    async def count(self, criteria: ReservationFilter) -> int:
        """Count matching reservations"""
        return len(self._matching(criteria))

    async def update(self, reservation: Reservation) -> Reservation:
        """Update reservation"""
        if self._collection.contains(reservation.reservation_id):
            self._collection.put(reservation.reservation_id, reservation)
            return reservation
        raise NotFoundError("Reservation", reservation.reservation_id)

    def _matching(self, criteria: ReservationFilter) -> List[Reservation]:
        results = []
        for r in self._collection.values():
            if criteria.status is not None and r.status != criteria.status:
                continue
            if criteria.guest_id is not None and r.guest_id != criteria.guest_id:
                continue
            if criteria.room_id is not None and criteria.room_id not in (r.room_id, r.assigned_room_id):
                continue
            if criteria.source is not None and r.source != criteria.source:
                continue
            if criteria.is_active is not None and r.is_active != criteria.is_active:
                continue
            if criteria.check_in_from is not None and r.date_range.check_in < criteria.check_in_from:
                continue
            if criteria.check_out_until is not None and r.date_range.check_out > criteria.check_out_until:
                continue
            if criteria.search and not _matches_text(r, criteria.search):
                continue
            results.append(r)
        return results


def _matches_text(reservation: Reservation, text: str) -> bool:
    needle = text.lower()
    haystacks = [reservation.special_requests or "", reservation.source.value]
    return any(needle in h.lower() for h in haystacks)


def _sort_key(reservation: Reservation, field: str):
    if field == "check_in_date":
        return reservation.date_range.check_in
    if field == "check_out_date":
        return reservation.date_range.check_out
    if field == "total_amount":
        return reservation.charges.total_amount
    if field == "status":
        return reservation.status.value
    return reservation.created_at


class InMemoryCheckInRepository(CheckInRepository):
    """In-memory implementation of CheckInRepository"""

    def __init__(self, store: InMemoryDocumentStore):
        self._store = store

    async def save(self, check_in: CheckIn) -> CheckIn:
        self._store.collection("check_ins").put(check_in.check_in_id, check_in)
        return check_in

    async def find_by_id(self, check_in_id: UUID) -> Optional[CheckIn]:
        return self._store.collection("check_ins").get(check_in_id)

    async def find_by_reservation_id(self, reservation_id: UUID) -> Optional[CheckIn]:
        for check_in in self._store.collection("check_ins").values():
            if check_in.reservation_id == reservation_id:
                return check_in
        return None


class InMemoryCheckOutRepository(CheckOutRepository):
    """In-memory implementation of CheckOutRepository"""

    def __init__(self, store: InMemoryDocumentStore):
        self._store = store

    async def save(self, check_out: CheckOut) -> CheckOut:
        self._store.collection("check_outs").put(check_out.check_out_id, check_out)
        return check_out

    async def find_by_id(self, check_out_id: UUID) -> Optional[CheckOut]:
        return self._store.collection("check_outs").get(check_out_id)

    async def find_by_reservation_id(self, reservation_id: UUID) -> Optional[CheckOut]:
        for check_out in self._store.collection("check_outs").values():
            if check_out.reservation_id == reservation_id:
                return check_out
        return None


class InMemoryBillRepository(BillRepository):
    """In-memory implementation of BillRepository"""

    def __init__(self, store: InMemoryDocumentStore):
        self._store = store

    async def save(self, bill: Bill) -> Bill:
        self._store.collection("bills").put(bill.bill_id, bill)
        return bill

    async def find_by_id(self, bill_id: UUID) -> Optional[Bill]:
        return self._store.collection("bills").get(bill_id)

    async def find_by_reservation_id(self, reservation_id: UUID) -> Optional[Bill]:
        for bill in self._store.collection("bills").values():
            if bill.reservation_id == reservation_id:
                return bill
        return None
