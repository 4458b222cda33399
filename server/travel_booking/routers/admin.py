"""Admin router for back-office operations."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.auth import AdminDependency, SessionContext
from ..core.database import get_db, get_session_factory
from ..core.events import aggregate_cache
from ..core.exceptions import ProblemDetailsException
from ..schemas.admin import CacheFlushResponse, DashboardStats, ReminderRunResponse
from ..schemas.booking import (
    AdminBookingDetail,
    Booking,
    BookingListResponse,
    BookingSummary,
    GetBookingRequest,
    SearchBookingsRequest,
    UpdateBookingStatusRequest,
)
from ..schemas.catalog import (
    CreateDepartureRequest,
    CreateNavigationItemRequest,
    CreatePackageRequest,
    DepartureOut,
    NavigationItem,
    Package,
)
from ..schemas.payment import AdminPayment, ListPaymentsRequest, Payment, PaymentListResponse, VerifyPaymentRequest
from ..schemas.profile import RolesResponse, SetRoleRequest
from ..services.booking_service import BookingService
from ..services.catalog_service import CatalogService
from ..services.dashboard_service import DashboardService
from ..services.payment_service import PaymentService
from ..services.profile_service import ProfileService
from ..services.reminder_service import ReminderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])

DB_DEPENDENCY = Depends(get_db)
SESSION_FACTORY_DEPENDENCY = Depends(get_session_factory)


async def _convert_booking_to_admin_schema(booking, booking_service: BookingService) -> AdminBookingDetail:
    """Convert booking model to the back-office schema."""
    per_pilgrim, total = await booking_service.pic_commission(booking)
    return AdminBookingDetail(
        **Booking.model_validate(booking).model_dump(),
        customer_name=booking.profile.name if booking.profile else None,
        customer_email=booking.profile.email if booking.profile else None,
        package_title=booking.package.title,
        departure_date=booking.departure.departure_date,
        pic_name=await booking_service.pic_name(booking),
        commission_per_pilgrim=per_pilgrim,
        commission_total=total,
    )


def _internal_error(message: str, e: Exception, **extra) -> HTTPException:
    logger.error(message, extra={**extra, "error": str(e)}, exc_info=True)
    return HTTPException(status_code=500, detail="Internal server error")


@router.post("/dashboard", response_model=DashboardStats)
async def get_dashboard(
    admin: SessionContext = AdminDependency,
    session_factory: async_sessionmaker[AsyncSession] = SESSION_FACTORY_DEPENDENCY
) -> JSONResponse:
    """Headline counts and revenue, served from the aggregate cache."""
    try:
        stats = await DashboardService(session_factory).get_stats()
        return JSONResponse(status_code=200, content=stats.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("Unexpected error loading dashboard", e) from e


@router.post("/bookings/search", response_model=BookingListResponse)
async def search_bookings(
    request: SearchBookingsRequest,
    db: AsyncSession = DB_DEPENDENCY,
    admin: SessionContext = AdminDependency
) -> JSONResponse:
    """Search all bookings by status and booking code."""
    booking_service = BookingService(db)

    try:
        bookings, next_cursor = await booking_service.search_bookings(request)
        response_data = BookingListResponse(
            items=[BookingSummary.model_validate(booking) for booking in bookings],
            next_cursor=next_cursor
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("Unexpected error searching bookings", e, query=request.query) from e


@router.post("/bookings/get", response_model=AdminBookingDetail)
async def get_booking(
    request: GetBookingRequest,
    db: AsyncSession = DB_DEPENDENCY,
    admin: SessionContext = AdminDependency
) -> JSONResponse:
    """Booking detail with customer, PIC and commission."""
    booking_service = BookingService(db)

    try:
        booking = await booking_service.get_booking_for_session(request.booking_id, admin)
        response_data = await _convert_booking_to_admin_schema(booking, booking_service)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error(
            "Unexpected error retrieving booking", e, booking_id=str(request.booking_id)
        ) from e


@router.post("/bookings/update-status", response_model=AdminBookingDetail)
async def update_booking_status(
    request: UpdateBookingStatusRequest,
    db: AsyncSession = DB_DEPENDENCY,
    admin: SessionContext = AdminDependency
) -> JSONResponse:
    """Override a booking's status. Cancelling returns its seats."""
    booking_service = BookingService(db)

    try:
        booking = await booking_service.update_status(request, admin)
        response_data = await _convert_booking_to_admin_schema(booking, booking_service)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error(
            "Unexpected error updating booking status", e, booking_id=str(request.booking_id)
        ) from e


@router.post("/payments/list", response_model=PaymentListResponse)
async def list_payments(
    request: ListPaymentsRequest,
    db: AsyncSession = DB_DEPENDENCY,
    admin: SessionContext = AdminDependency
) -> JSONResponse:
    """Payments awaiting or past verification, newest first."""
    payment_service = PaymentService(db)

    try:
        payments = await payment_service.list_payments(request.status, request.limit)
        response_data = PaymentListResponse(
            items=[
                AdminPayment(
                    **Payment.model_validate(payment).model_dump(),
                    booking_code=payment.booking.booking_code,
                )
                for payment in payments
            ]
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("Unexpected error listing payments", e) from e


@router.post("/payments/verify", response_model=Payment)
async def verify_payment(
    request: VerifyPaymentRequest,
    db: AsyncSession = DB_DEPENDENCY,
    admin: SessionContext = AdminDependency
) -> JSONResponse:
    """Approve or reject a pending payment."""
    payment_service = PaymentService(db)

    try:
        payment = await payment_service.verify_payment(request.payment_id, request.approve, admin)
        response_data = Payment.model_validate(payment)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error(
            "Unexpected error verifying payment", e, payment_id=str(request.payment_id)
        ) from e


@router.post("/packages/create", response_model=Package, status_code=201)
async def create_package(
    request: CreatePackageRequest,
    db: AsyncSession = DB_DEPENDENCY,
    admin: SessionContext = AdminDependency
) -> JSONResponse:
    """Create a package with its commission table."""
    catalog_service = CatalogService(db)

    try:
        package = await catalog_service.create_package(request)
        response_data = Package.model_validate(package)
        return JSONResponse(status_code=201, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("Unexpected error creating package", e, slug=request.slug) from e


@router.post("/departures/create", response_model=DepartureOut, status_code=201)
async def create_departure(
    request: CreateDepartureRequest,
    db: AsyncSession = DB_DEPENDENCY,
    admin: SessionContext = AdminDependency
) -> JSONResponse:
    """Create a departure with its room price list."""
    catalog_service = CatalogService(db)

    try:
        departure = await catalog_service.create_departure(request)
        response_data = DepartureOut.model_validate(departure)
        return JSONResponse(status_code=201, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error(
            "Unexpected error creating departure", e, package_id=str(request.package_id)
        ) from e


@router.post("/navigation/create", response_model=NavigationItem, status_code=201)
async def create_navigation_item(
    request: CreateNavigationItemRequest,
    db: AsyncSession = DB_DEPENDENCY,
    admin: SessionContext = AdminDependency
) -> JSONResponse:
    """Add a menu entry."""
    catalog_service = CatalogService(db)

    try:
        item = await catalog_service.create_navigation_item(request)
        response_data = NavigationItem.model_validate(item)
        return JSONResponse(status_code=201, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("Unexpected error creating navigation item", e, label=request.label) from e


@router.post("/users/set-role", response_model=RolesResponse)
async def set_user_role(
    request: SetRoleRequest,
    db: AsyncSession = DB_DEPENDENCY,
    admin: SessionContext = AdminDependency
) -> JSONResponse:
    """Grant or revoke a role; the user's cached session is invalidated."""
    profile_service = ProfileService(db)

    try:
        roles = await profile_service.set_role(request.user_id, request.role, request.granted)
        response_data = RolesResponse(user_id=request.user_id, roles=roles)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("Unexpected error changing role", e, user_id=str(request.user_id)) from e


@router.post("/reminders/run", response_model=ReminderRunResponse)
async def run_reminders(
    db: AsyncSession = DB_DEPENDENCY,
    admin: SessionContext = AdminDependency
) -> JSONResponse:
    """Run the payment reminder sweep now instead of waiting for the worker."""
    try:
        run = await ReminderService(db).run()
        response_data = ReminderRunResponse(
            bookings_checked=run.bookings_checked,
            notifications_created=run.notifications_created,
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        raise _internal_error("Unexpected error running payment reminders", e) from e


@router.post("/cache/flush", response_model=CacheFlushResponse)
async def flush_cache(admin: SessionContext = AdminDependency) -> JSONResponse:
    """Apply pending aggregate invalidations without waiting for the debounce."""
    flushed = aggregate_cache.flush()
    logger.info("Aggregate cache flushed", extra={"flushed": flushed, "admin_id": str(admin.user_id)})
    return JSONResponse(status_code=200, content=CacheFlushResponse(flushed=flushed).model_dump(mode="json"))
