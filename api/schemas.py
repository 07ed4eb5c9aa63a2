"""API Schemas - Request and Response DTOs"""
from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from typing import List, Optional

from domain.enums import ReservationSource, ReservationStatus, UserRole


# ============================================================================
# RESERVATION SCHEMAS
# ============================================================================

class CreateReservationRequest(BaseModel):
    """Create reservation request DTO"""
    guest_id: str = Field(min_length=1)
    room_id: str = Field(min_length=1)
    check_in_date: date
    check_out_date: date
    number_of_guests: int = Field(ge=1, le=10)
    total_amount: Decimal = Field(ge=0, le=100000)
    deposit_amount: Optional[Decimal] = Field(None, ge=0)
    source: ReservationSource
    special_requests: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=500)


class UpdateReservationRequest(BaseModel):
    """Update reservation request DTO"""
    room_id: Optional[str] = Field(None, min_length=1)
    assigned_room_id: Optional[str] = Field(None, min_length=1)
    check_in_date: Optional[date] = None
    check_out_date: Optional[date] = None
    number_of_guests: Optional[int] = Field(None, ge=1, le=10)
    total_amount: Optional[Decimal] = Field(None, ge=0, le=100000)
    deposit_amount: Optional[Decimal] = Field(None, ge=0)
    special_requests: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=500)


class CancelReservationRequest(BaseModel):
    """Cancel reservation request DTO"""
    reason: str = Field(min_length=1, max_length=500)


class UpdateStatusRequest(BaseModel):
    """Status change request DTO; status is free text so unknown values reach the service"""
    status: str
    reason: Optional[str] = Field(None, max_length=500)


class DeleteReservationRequest(BaseModel):
    """Soft delete request DTO"""
    deletion_reason: str = Field(min_length=1, max_length=500)
    notes: Optional[str] = Field(None, max_length=500)


class ReservationResponse(BaseModel):
    """Reservation response DTO"""
    reservation_id: UUID
    guest_id: str
    room_id: str
    assigned_room_id: Optional[str] = None
    check_in_date: date
    check_out_date: date
    nights: int
    number_of_guests: int
    total_amount: Decimal
    deposit_amount: Optional[Decimal] = None
    remaining_balance: Decimal
    status: ReservationStatus
    source: ReservationSource
    special_requests: Optional[str] = None
    notes: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    is_active: bool
    deleted_at: Optional[datetime] = None
    deletion_reason: Optional[str] = None
    created_at: datetime
    modified_at: datetime
    created_by: str
    version: int


class PaginationResponse(BaseModel):
    """Pagination metadata DTO"""
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool


class ReservationPageResponse(BaseModel):
    """Paginated reservation list DTO"""
    reservations: List[ReservationResponse]
    pagination: PaginationResponse


class AvailabilityResponse(BaseModel):
    """Availability check response DTO"""
    available: bool
    room_id: str
    check_in_date: date
    check_out_date: date
    conflicting_reservation_id: Optional[UUID] = None


# ============================================================================
# STAY SCHEMAS
# ============================================================================

class CreateCheckInRequest(BaseModel):
    """Check-in request DTO"""
    reservation_id: UUID
    assigned_room_number: str = Field(min_length=1, max_length=20)
    key_issued: bool = False
    welcome_pack_delivered: bool = False
    special_instructions: Optional[str] = Field(None, max_length=1000)


class CheckInResponse(BaseModel):
    """Check-in response DTO"""
    check_in_id: UUID
    reservation_id: UUID
    room_id: str
    guest_id: str
    assigned_room_number: str
    check_in_time: datetime
    key_issued: bool
    welcome_pack_delivered: bool
    special_instructions: Optional[str] = None
    created_by: str

    class Config:
        from_attributes = True


class CreateCheckOutRequest(BaseModel):
    """Check-out request DTO"""
    reservation_id: UUID
    room_condition_notes: Optional[str] = Field(None, max_length=1000)


class CheckOutResponse(BaseModel):
    """Check-out response DTO"""
    check_out_id: UUID
    reservation_id: UUID
    check_in_id: UUID
    check_out_time: datetime
    final_amount: Decimal
    room_condition_notes: Optional[str] = None
    created_by: str

    class Config:
        from_attributes = True


class CreateBillRequest(BaseModel):
    """Bill request DTO"""
    reservation_id: UUID


class BillResponse(BaseModel):
    """Bill response DTO"""
    bill_id: UUID
    reservation_id: UUID
    guest_id: str
    total_amount: Decimal
    paid_amount: Decimal
    balance_due: Decimal
    status: str
    created_at: datetime


class StayRecordsResponse(BaseModel):
    """Everything recorded against one reservation"""
    reservation_id: UUID
    check_in: Optional[CheckInResponse] = None
    check_out: Optional[CheckOutResponse] = None
    bill: Optional[BillResponse] = None


# ============================================================================
# AUTH SCHEMAS
# ============================================================================

class Token(BaseModel):
    """Token response DTO"""
    access_token: str
    token_type: str


class TokenData(BaseModel):
    """Token payload DTO"""
    username: Optional[str] = None
    role: Optional[UserRole] = None


class UserResponse(BaseModel):
    """User response DTO"""
    user_id: UUID
    username: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: UserRole
    disabled: bool
