"""Booking router for customer booking operations."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import SessionContext, SessionDependency
from ..core.database import get_db
from ..core.exceptions import ProblemDetailsException
from ..schemas.booking import (
    Booking,
    BookingListResponse,
    BookingQuote,
    BookingSummary,
    GetBookingRequest,
    ListBookingsRequest,
    QuoteBookingRequest,
    QuoteLine,
    SubmitBookingRequest,
    SubmitBookingResponse,
)
from ..services import pricing
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/booking", tags=["booking"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)


@router.post("/quote", response_model=BookingQuote)
async def quote_booking(
    request: QuoteBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    session: SessionContext = SessionDependency
) -> JSONResponse:
    """
    Price a room selection against the departure's stored prices.

    Nothing is reserved; the quota shown may change before submission.
    """
    booking_service = BookingService(db)

    try:
        departure, wizard = await booking_service.quote(request)
        response_data = BookingQuote(
            departure_id=departure.id,
            lines=[
                QuoteLine(
                    room_type=selection.room_type,
                    quantity=selection.quantity,
                    price=selection.price,
                    occupants=pricing.room_occupants(selection),
                    subtotal=pricing.room_subtotal(selection),
                )
                for selection in wizard.selections
            ],
            total_occupants=wizard.total_occupants,
            total_price=wizard.total_price,
            remaining_quota=departure.remaining_quota,
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking quote",
            extra={"departure_id": str(request.departure_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/submit", response_model=SubmitBookingResponse, status_code=201)
async def submit_booking(
    request: SubmitBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    session: SessionContext = SessionDependency
) -> JSONResponse:
    """
    Submit a completed booking wizard.

    The booking, its rooms, its pilgrims and the quota decrement are
    stored atomically. The client continues to the payment step.
    """
    booking_service = BookingService(db)

    try:
        booking = await booking_service.submit_booking(request, session)
        response_data = SubmitBookingResponse(booking=Booking.model_validate(booking))
        return JSONResponse(status_code=201, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in booking submission",
            extra={
                "departure_id": str(request.departure_id),
                "user_id": str(session.user_id),
                "error": str(e)
            },
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/get", response_model=Booking)
async def get_booking(
    request: GetBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    session: SessionContext = SessionDependency
) -> JSONResponse:
    """Get a booking owned by the caller."""
    booking_service = BookingService(db)

    try:
        booking = await booking_service.get_booking_for_session(request.booking_id, session)
        response_data = Booking.model_validate(booking)

        logger.info(
            "Booking retrieved successfully",
            extra={"booking_id": str(booking.id), "booking_code": booking.booking_code}
        )

        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error retrieving booking",
            extra={"booking_id": str(request.booking_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/list", response_model=BookingListResponse)
async def list_bookings(
    request: ListBookingsRequest,
    db: AsyncSession = DB_DEPENDENCY,
    session: SessionContext = SessionDependency
) -> JSONResponse:
    """List the caller's bookings, newest first."""
    booking_service = BookingService(db)

    try:
        bookings, next_cursor = await booking_service.list_user_bookings(session.user_id, request)
        response_data = BookingListResponse(
            items=[BookingSummary.model_validate(booking) for booking in bookings],
            next_cursor=next_cursor
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error listing bookings",
            extra={"user_id": str(session.user_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
