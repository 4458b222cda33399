"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models.booking import BookingStatus, Gender, PicType
from .common import PageRequest, PaginatedResponse


class RoomQuantity(BaseModel):
    """Selected quantity of a room type."""

    room_type: str = Field(..., min_length=1, max_length=20, description="quad, triple, double or single")
    quantity: int = Field(..., ge=0, le=50, description="Number of rooms")


class PilgrimInput(BaseModel):
    """Occupant data entered in the booking form."""

    name: str = Field("", max_length=255, description="Full name as in passport")
    gender: Optional[Gender] = Field(None, description="male or female")
    phone: Optional[str] = Field(None, max_length=32)
    email: Optional[str] = Field(None, max_length=255)
    nik: Optional[str] = Field(None, max_length=32, description="National identity number")
    passport_number: Optional[str] = Field(None, max_length=32)
    passport_expiry: Optional[date] = None
    birth_date: Optional[date] = None


class SubmitBookingRequest(BaseModel):
    """Request schema for submitting a completed booking wizard."""

    departure_id: UUID = Field(..., description="Departure to book")
    rooms: list[RoomQuantity] = Field(..., min_length=1, description="Room quantities")
    pilgrims: list[PilgrimInput] = Field(default_factory=list, description="One entry per occupant")
    pic_type: PicType = Field(PicType.PUSAT, description="Who is responsible for the booking")
    pic_id: Optional[UUID] = Field(None, description="Branch or agent id for cabang/agen")
    notes: Optional[str] = Field(None, max_length=2000)


class QuoteBookingRequest(BaseModel):
    """Request schema for pricing a room selection without booking it."""

    departure_id: UUID = Field(..., description="Departure to price")
    rooms: list[RoomQuantity] = Field(..., min_length=1, description="Room quantities")


class GetBookingRequest(BaseModel):
    """Request schema for getting a booking."""

    booking_id: UUID = Field(..., description="Booking to retrieve")


class ListBookingsRequest(PageRequest):
    """Request schema for listing the caller's bookings."""

    status: Optional[BookingStatus] = Field(None, description="Filter by status")


class SearchBookingsRequest(PageRequest):
    """Request schema for the admin booking search."""

    status: Optional[BookingStatus] = Field(None, description="Filter by status")
    query: Optional[str] = Field(None, max_length=64, description="Booking code fragment")


class UpdateBookingStatusRequest(BaseModel):
    """Request schema for an admin status override."""

    booking_id: UUID = Field(..., description="Booking to update")
    status: BookingStatus = Field(..., description="New status")


class QuoteLine(BaseModel):
    """Priced room line."""

    room_type: str
    quantity: int
    price: int = Field(..., description="Per-occupant price")
    occupants: int
    subtotal: int


class BookingQuote(BaseModel):
    """Totals of a room selection."""

    departure_id: UUID
    lines: list[QuoteLine]
    total_occupants: int
    total_price: int
    remaining_quota: int


class BookingRoomOut(BaseModel):
    """Booked room line."""

    model_config = ConfigDict(from_attributes=True)

    room_type: str
    quantity: int
    price: int
    subtotal: int


class BookingPilgrimOut(BaseModel):
    """Booked occupant."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    gender: Gender
    phone: Optional[str] = None
    email: Optional[str] = None
    nik: Optional[str] = None
    passport_number: Optional[str] = None
    passport_expiry: Optional[date] = None
    birth_date: Optional[date] = None


class Booking(BaseModel):
    """Booking response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Unique booking ID")
    booking_code: str = Field(..., description="Human readable booking code")
    user_id: UUID
    package_id: UUID
    departure_id: UUID
    total_price: int = Field(..., ge=0, description="Price snapshot in Rupiah")
    status: BookingStatus
    pic_type: PicType
    pic_id: Optional[UUID] = None
    notes: Optional[str] = None
    created_at: datetime
    rooms: list[BookingRoomOut] = Field(default_factory=list)
    pilgrims: list[BookingPilgrimOut] = Field(default_factory=list)


class SubmitBookingResponse(BaseModel):
    """Response schema for a submitted booking."""

    booking: Booking
    next_step: Literal["payment"] = "payment"


class BookingSummary(BaseModel):
    """Booking row in listings."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_code: str
    package_id: UUID
    departure_id: UUID
    total_price: int
    status: BookingStatus
    created_at: datetime


class BookingListResponse(PaginatedResponse):
    """Response schema for booking listings."""

    items: list[BookingSummary]


class AdminBookingDetail(Booking):
    """Booking with back-office fields."""

    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    package_title: str
    departure_date: date
    pic_name: Optional[str] = None
    commission_per_pilgrim: int = 0
    commission_total: int = 0
