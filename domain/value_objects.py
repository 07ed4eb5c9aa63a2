"""Domain Value Objects"""
from pydantic import BaseModel, Field, validator
from datetime import date
from decimal import Decimal
from typing import Optional


class DateRange(BaseModel):
    """Value Object for a half-open stay interval [check_in, check_out)"""
    check_in: date
    check_out: date

    @validator('check_out')
    def check_out_after_check_in(cls, v, values):
        if 'check_in' in values and v <= values['check_in']:
            raise ValueError('Check-out date must be after check-in date')
        return v

    def nights(self) -> int:
        """Calculate number of nights"""
        return (self.check_out - self.check_in).days

    def overlaps(self, other: "DateRange") -> bool:
        """Half-open overlap; a check-out on another stay's check-in day is not a clash"""
        return self.check_in < other.check_out and self.check_out > other.check_in

    class Config:
        frozen = True


class Charges(BaseModel):
    """Value Object for the money side of a reservation"""
    total_amount: Decimal = Field(ge=0)
    deposit_amount: Optional[Decimal] = Field(default=None, ge=0)

    @validator('deposit_amount')
    def deposit_within_total(cls, v, values):
        if v is not None and 'total_amount' in values and v > values['total_amount']:
            raise ValueError('Deposit amount cannot exceed total amount')
        return v

    @property
    def remaining_balance(self) -> Decimal:
        return self.total_amount - (self.deposit_amount or Decimal("0"))

    class Config:
        frozen = True
