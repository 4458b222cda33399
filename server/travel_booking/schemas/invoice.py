"""Invoice Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, Field


class InvoiceRequest(BaseModel):
    """Request schema for rendering a booking invoice."""

    booking_id: UUID = Field(..., description="Booking to render")
