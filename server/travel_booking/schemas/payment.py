"""Payment-related Pydantic schemas."""

from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models.booking import BookingStatus
from ..models.payment import PaymentStatus, PaymentType


class GetPaymentOverviewRequest(BaseModel):
    """Request schema for the payment page of a booking."""

    booking_id: UUID = Field(..., description="Booking to pay")


class ListPaymentsRequest(BaseModel):
    """Request schema for the admin payment list."""

    status: Optional[PaymentStatus] = Field(None, description="Filter by status")
    limit: int = Field(100, ge=1, le=500)


class VerifyPaymentRequest(BaseModel):
    """Request schema for approving or rejecting a payment."""

    payment_id: UUID = Field(..., description="Pending payment to resolve")
    approve: bool = Field(..., description="True to approve, False to reject")


class Payment(BaseModel):
    """Payment response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_id: UUID
    amount: int = Field(..., ge=0, description="Amount in Rupiah")
    status: PaymentStatus
    payment_type: PaymentType
    payment_method: str
    proof_url: Optional[str] = None
    paid_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    created_at: datetime


class AdminPayment(Payment):
    """Payment row in the back-office list."""

    booking_code: str


class PaymentListResponse(BaseModel):
    items: list[AdminPayment]


class PaymentSummary(BaseModel):
    total_price: int
    paid: int
    pending: int
    remaining: int


class PaymentOption(BaseModel):
    kind: Literal["deposit", "full"]
    amount: int


class PaymentDeadlines(BaseModel):
    """Due dates; overdue flags are informational and never block a payment."""

    dp_deadline: date
    full_deadline: date
    dp_overdue: bool
    full_overdue: bool


class PaymentOverviewResponse(BaseModel):
    """Everything the payment page needs."""

    booking_id: UUID
    booking_code: str
    booking_status: BookingStatus
    package_title: str
    departure_date: date
    summary: PaymentSummary
    options: list[PaymentOption]
    deadlines: PaymentDeadlines
    has_pending: bool
    payments: list[Payment]
