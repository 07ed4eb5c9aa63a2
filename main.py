import logging
import math
from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import Optional
from uuid import UUID

from fastapi import FastAPI, HTTPException, Depends, Query, Request
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm

from api.schemas import (
    # Reservation
    CreateReservationRequest, UpdateReservationRequest, CancelReservationRequest,
    UpdateStatusRequest, DeleteReservationRequest, ReservationResponse,
    ReservationPageResponse, PaginationResponse, AvailabilityResponse,
    # Stay
    CreateCheckInRequest, CheckInResponse, CreateCheckOutRequest, CheckOutResponse,
    CreateBillRequest, BillResponse, StayRecordsResponse,
    # Auth
    Token, UserResponse
)

from api.dependencies import get_current_active_user, require_roles, fake_users_db, get_user
from infrastructure.config import settings
from infrastructure.security import verify_password, create_access_token, ACCESS_TOKEN_EXPIRE_MINUTES
from infrastructure.store import InMemoryDocumentStore, StoreClosedError
from infrastructure.repositories.in_memory_repositories import (
    InMemoryReservationRepository, InMemoryCheckInRepository,
    InMemoryCheckOutRepository, InMemoryBillRepository
)
from application.locks import RoomLocks
from application.services import ReservationService, StayService
from domain.auth import User
from domain.entities import Reservation, Bill
from domain.enums import ReservationStatus, ReservationSource, UserRole, SortField, SortOrder
from domain.exceptions import ValidationError, NotFoundError, ConflictError, InvalidStateError
from domain.repositories import ReservationFilter

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

store = InMemoryDocumentStore()
room_locks = RoomLocks()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await store.open()
    yield
    await store.close()


app = FastAPI(
    title="Hotel Back Office API",
    description="Reservations, check-in/out and billing for hotel operations",
    version=settings.service_version,
    lifespan=lifespan
)

# Initialize repositories
reservation_repo = InMemoryReservationRepository(store)
check_in_repo = InMemoryCheckInRepository(store)
check_out_repo = InMemoryCheckOutRepository(store)
bill_repo = InMemoryBillRepository(store)


# Dependency injection
def get_reservation_service() -> ReservationService:
    return ReservationService(reservation_repo, room_locks, settings.pending_holds_room)


def get_stay_service(
    reservation_service: ReservationService = Depends(get_reservation_service)
) -> StayService:
    return StayService(reservation_service, check_in_repo, check_out_repo, bill_repo)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(InvalidStateError)
async def invalid_state_handler(request: Request, exc: InvalidStateError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError):
    conflicting = exc.conflicting_reservation_id
    return JSONResponse(
        status_code=409,
        content={
            "detail": str(exc),
            "conflicting_reservation_id": str(conflicting) if conflicting else None
        }
    )


@app.exception_handler(StoreClosedError)
async def store_closed_handler(request: Request, exc: StoreClosedError):
    logger.error("Request to %s failed: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Storage is unavailable"})


# ============================================================================
# HEALTH & ENUM REFERENCE ENDPOINTS
# ============================================================================

@app.get("/api/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy" if store.is_open else "degraded",
        "service": settings.service_name,
        "version": settings.service_version
    }


@app.get("/api/enums/reservation-status", tags=["Enum Reference"])
async def get_reservation_statuses():
    """Get all ReservationStatus values with their allowed next statuses"""
    return {
        "values": [item.value for item in ReservationStatus],
        "transitions": {
            item.value: sorted(t.value for t in ReservationStatus if item.can_transition_to(t))
            for item in ReservationStatus
        }
    }


@app.get("/api/enums/reservation-source", tags=["Enum Reference"])
async def get_reservation_sources():
    """Get all ReservationSource values"""
    return {"values": [item.value for item in ReservationSource]}


# ============================================================================
# AUTH ENDPOINTS
# ============================================================================

@app.post("/token", response_model=Token, tags=["Auth"])
async def login_for_access_token(form_data: OAuth2PasswordRequestForm = Depends()):
    user = get_user(fake_users_db, form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        logger.warning("Failed login for %s", form_data.username)
        raise HTTPException(
            status_code=401,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token_expires = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(
        data={"sub": user.username, "role": user.role.value}, expires_delta=access_token_expires
    )
    return {"access_token": access_token, "token_type": "bearer"}


@app.get("/users/me", response_model=UserResponse, tags=["Auth"])
async def read_users_me(current_user: User = Depends(get_current_active_user)):
    return current_user


# ============================================================================
# RESERVATION ENDPOINTS
# ============================================================================

@app.post("/api/reservations", response_model=ReservationResponse, status_code=201, tags=["Reservations"])
async def create_reservation(
    request: CreateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Create new reservation"""
    reservation = await service.create_reservation(
        guest_id=request.guest_id,
        room_id=request.room_id,
        check_in=request.check_in_date,
        check_out=request.check_out_date,
        number_of_guests=request.number_of_guests,
        total_amount=request.total_amount,
        deposit_amount=request.deposit_amount,
        source=request.source,
        special_requests=request.special_requests,
        notes=request.notes,
        created_by=current_user.username
    )
    return _reservation_to_response(reservation)


@app.get("/api/reservations", response_model=ReservationPageResponse, tags=["Reservations"])
async def get_all_reservations(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    status: Optional[ReservationStatus] = None,
    guest_id: Optional[str] = None,
    room_id: Optional[str] = None,
    source: Optional[ReservationSource] = None,
    is_active: Optional[bool] = None,
    check_in_date: Optional[date] = Query(None, description="Check-in on or after"),
    check_out_date: Optional[date] = Query(None, description="Check-out on or before"),
    search: Optional[str] = Query(None, max_length=100),
    sort_by: SortField = SortField.CREATED_AT,
    sort_order: SortOrder = SortOrder.DESC,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get reservations with pagination, search and filters"""
    criteria = ReservationFilter(
        status=status,
        guest_id=guest_id,
        room_id=room_id,
        source=source,
        is_active=is_active,
        check_in_from=check_in_date,
        check_out_until=check_out_date,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        skip=(page - 1) * limit,
        limit=limit
    )
    reservations, total = await service.list_reservations(criteria)
    total_pages = math.ceil(total / limit)
    return ReservationPageResponse(
        reservations=[_reservation_to_response(r) for r in reservations],
        pagination=PaginationResponse(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            items_per_page=limit,
            has_next_page=page < total_pages,
            has_prev_page=page > 1
        )
    )


@app.get("/api/reservations/availability", response_model=AvailabilityResponse, tags=["Reservations"])
async def check_availability(
    room_id: str = Query(..., min_length=1),
    check_in_date: date = Query(...),
    check_out_date: date = Query(...),
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Check room availability for a date range"""
    result = await service.check_availability(room_id, check_in_date, check_out_date)
    return AvailabilityResponse(**result.model_dump())


@app.get("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def get_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get reservation by ID"""
    reservation = await service.get_reservation(reservation_id)
    return _reservation_to_response(reservation)


@app.put("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def update_reservation(
    reservation_id: UUID,
    request: UpdateReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Update reservation details"""
    reservation = await service.update_reservation(
        reservation_id=reservation_id,
        room_id=request.room_id,
        assigned_room_id=request.assigned_room_id,
        check_in=request.check_in_date,
        check_out=request.check_out_date,
        number_of_guests=request.number_of_guests,
        total_amount=request.total_amount,
        deposit_amount=request.deposit_amount,
        special_requests=request.special_requests,
        notes=request.notes
    )
    return _reservation_to_response(reservation)


@app.patch("/api/reservations/{reservation_id}/confirm", response_model=ReservationResponse, tags=["Reservations"])
async def confirm_reservation(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Confirm a pending reservation"""
    reservation = await service.confirm_reservation(reservation_id)
    return _reservation_to_response(reservation)


@app.patch("/api/reservations/{reservation_id}/cancel", response_model=ReservationResponse, tags=["Reservations"])
async def cancel_reservation(
    reservation_id: UUID,
    request: CancelReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Cancel reservation"""
    reservation = await service.cancel_reservation(reservation_id, request.reason)
    return _reservation_to_response(reservation)


@app.patch("/api/reservations/{reservation_id}/status", response_model=ReservationResponse, tags=["Reservations"])
async def update_reservation_status(
    reservation_id: UUID,
    request: UpdateStatusRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Move reservation to another status"""
    reservation = await service.update_status(reservation_id, request.status, request.reason)
    return _reservation_to_response(reservation)


@app.patch("/api/reservations/{reservation_id}/no-show", response_model=ReservationResponse, tags=["Reservations"])
async def mark_no_show(
    reservation_id: UUID,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(get_current_active_user)
):
    """Mark guest as no-show"""
    reservation = await service.mark_no_show(reservation_id)
    return _reservation_to_response(reservation)


@app.delete("/api/reservations/{reservation_id}", response_model=ReservationResponse, tags=["Reservations"])
async def delete_reservation(
    reservation_id: UUID,
    request: DeleteReservationRequest,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(require_roles(UserRole.ADMIN, UserRole.MANAGER))
):
    """Soft delete a pending or cancelled reservation"""
    reservation = await service.delete_reservation(
        reservation_id, request.deletion_reason, request.notes
    )
    return _reservation_to_response(reservation)


@app.get("/api/reservations/{reservation_id}/stay", response_model=StayRecordsResponse, tags=["Reservations"])
async def get_stay_records(
    reservation_id: UUID,
    service: StayService = Depends(get_stay_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get check-in, check-out and bill recorded for a reservation"""
    check_in, check_out, bill = await service.get_stay_records(reservation_id)
    return StayRecordsResponse(
        reservation_id=reservation_id,
        check_in=CheckInResponse.model_validate(check_in) if check_in else None,
        check_out=CheckOutResponse.model_validate(check_out) if check_out else None,
        bill=_bill_to_response(bill) if bill else None
    )


# ============================================================================
# CHECK-IN / CHECK-OUT / BILL ENDPOINTS
# ============================================================================

@app.post("/api/check-ins", response_model=CheckInResponse, status_code=201, tags=["Stay"])
async def create_check_in(
    request: CreateCheckInRequest,
    service: StayService = Depends(get_stay_service),
    current_user: User = Depends(get_current_active_user)
):
    """Check in the guest of a confirmed reservation"""
    check_in = await service.check_in_guest(
        reservation_id=request.reservation_id,
        assigned_room_number=request.assigned_room_number,
        key_issued=request.key_issued,
        welcome_pack_delivered=request.welcome_pack_delivered,
        special_instructions=request.special_instructions,
        created_by=current_user.username
    )
    return CheckInResponse.model_validate(check_in)


@app.get("/api/check-ins/{check_in_id}", response_model=CheckInResponse, tags=["Stay"])
async def get_check_in(
    check_in_id: UUID,
    service: StayService = Depends(get_stay_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get check-in by ID"""
    return CheckInResponse.model_validate(await service.get_check_in(check_in_id))


@app.post("/api/check-outs", response_model=CheckOutResponse, status_code=201, tags=["Stay"])
async def create_check_out(
    request: CreateCheckOutRequest,
    service: StayService = Depends(get_stay_service),
    current_user: User = Depends(get_current_active_user)
):
    """Check out a checked-in guest"""
    check_out = await service.check_out_guest(
        reservation_id=request.reservation_id,
        room_condition_notes=request.room_condition_notes,
        created_by=current_user.username
    )
    return CheckOutResponse.model_validate(check_out)


@app.get("/api/check-outs/{check_out_id}", response_model=CheckOutResponse, tags=["Stay"])
async def get_check_out(
    check_out_id: UUID,
    service: StayService = Depends(get_stay_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get check-out by ID"""
    return CheckOutResponse.model_validate(await service.get_check_out(check_out_id))


@app.post("/api/bills", response_model=BillResponse, status_code=201, tags=["Stay"])
async def create_bill(
    request: CreateBillRequest,
    service: StayService = Depends(get_stay_service),
    current_user: User = Depends(get_current_active_user)
):
    """Raise the bill for a reservation"""
    bill = await service.create_bill(request.reservation_id)
    return _bill_to_response(bill)


@app.get("/api/bills/{bill_id}", response_model=BillResponse, tags=["Stay"])
async def get_bill(
    bill_id: UUID,
    service: StayService = Depends(get_stay_service),
    current_user: User = Depends(get_current_active_user)
):
    """Get bill by ID"""
    return _bill_to_response(await service.get_bill(bill_id))


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _reservation_to_response(reservation: Reservation) -> ReservationResponse:
    """Convert Reservation entity to ReservationResponse"""
    return ReservationResponse(
        reservation_id=reservation.reservation_id,
        guest_id=reservation.guest_id,
        room_id=reservation.room_id,
        assigned_room_id=reservation.assigned_room_id,
        check_in_date=reservation.date_range.check_in,
        check_out_date=reservation.date_range.check_out,
        nights=reservation.nights,
        number_of_guests=reservation.number_of_guests,
        total_amount=reservation.charges.total_amount,
        deposit_amount=reservation.charges.deposit_amount,
        remaining_balance=reservation.remaining_balance,
        status=reservation.status,
        source=reservation.source,
        special_requests=reservation.special_requests,
        notes=reservation.notes,
        confirmed_at=reservation.confirmed_at,
        checked_in_at=reservation.checked_in_at,
        checked_out_at=reservation.checked_out_at,
        cancelled_at=reservation.cancelled_at,
        cancellation_reason=reservation.cancellation_reason,
        is_active=reservation.is_active,
        deleted_at=reservation.deleted_at,
        deletion_reason=reservation.deletion_reason,
        created_at=reservation.created_at,
        modified_at=reservation.modified_at,
        created_by=reservation.created_by,
        version=reservation.version
    )


def _bill_to_response(bill: Bill) -> BillResponse:
    """Convert Bill entity to BillResponse"""
    return BillResponse(
        bill_id=bill.bill_id,
        reservation_id=bill.reservation_id,
        guest_id=bill.guest_id,
        total_amount=bill.total_amount,
        paid_amount=bill.paid_amount,
        balance_due=bill.balance_due,
        status=bill.status.value,
        created_at=bill.created_at
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
