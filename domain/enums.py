"""Domain Enums"""
from enum import Enum
from typing import Dict, FrozenSet


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"

    def can_transition_to(self, target: "ReservationStatus") -> bool:
        """Check if the state diagram allows moving to target"""
        return target in RESERVATION_TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return not RESERVATION_TRANSITIONS[self]


RESERVATION_TRANSITIONS: Dict[ReservationStatus, FrozenSet[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset({
        ReservationStatus.CONFIRMED,
        ReservationStatus.CANCELLED,
    }),
    ReservationStatus.CONFIRMED: frozenset({
        ReservationStatus.CHECKED_IN,
        ReservationStatus.CANCELLED,
        ReservationStatus.NO_SHOW,
    }),
    ReservationStatus.CHECKED_IN: frozenset({
        ReservationStatus.CHECKED_OUT,
        ReservationStatus.CANCELLED,
    }),
    ReservationStatus.CHECKED_OUT: frozenset(),
    ReservationStatus.CANCELLED: frozenset(),
    ReservationStatus.NO_SHOW: frozenset(),
}

# Statuses that always hold the room exclusively
OCCUPYING_STATUSES = frozenset({ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_IN})

# Soft delete is only allowed from these
DELETABLE_STATUSES = frozenset({ReservationStatus.PENDING, ReservationStatus.CANCELLED})


class ReservationSource(str, Enum):
    ONLINE = "online"
    PHONE = "phone"
    WALK_IN = "walk_in"
    TRAVEL_AGENT = "travel_agent"


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    RECEPTIONIST = "receptionist"


class BillStatus(str, Enum):
    OPEN = "open"
    PAID = "paid"


class SortField(str, Enum):
    CHECK_IN_DATE = "check_in_date"
    CHECK_OUT_DATE = "check_out_date"
    TOTAL_AMOUNT = "total_amount"
    CREATED_AT = "created_at"
    STATUS = "status"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"
