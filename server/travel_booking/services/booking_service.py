"""Booking service for business logic operations."""

import logging
import secrets
import string
import time
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.auth import SessionContext
from ..core.config import settings
from ..core.events import ChangeEvent, aggregate_cache
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingPilgrim, BookingRoom, BookingStatus, PicType
from ..models.departure import Departure, DepartureStatus
from ..models.organization import Agent, Branch
from ..schemas.booking import (
    ListBookingsRequest,
    QuoteBookingRequest,
    SearchBookingsRequest,
    SubmitBookingRequest,
    UpdateBookingStatusRequest,
)
from . import pricing
from .booking_wizard import BookingWizard
from .catalog_service import CatalogService
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_ATTEMPTS = 5

STATUS_MESSAGES = {
    BookingStatus.DRAFT: "Booking dikembalikan ke status draft.",
    BookingStatus.WAITING_PAYMENT: "Booking menunggu pembayaran.",
    BookingStatus.PAID: "Pembayaran booking telah lunas.",
    BookingStatus.CANCELLED: "Booking dibatalkan.",
}


class QuotaExceededError(ConflictError):
    """Exception when a departure has fewer seats left than requested."""

    def __init__(self, departure_id: str, requested: int, remaining: int):
        super().__init__(
            detail=f"Departure {departure_id} has insufficient quota. Requested: {requested}, Remaining: {remaining}",
            conflicting_resource={
                "departure_id": departure_id,
                "requested_seats": requested,
                "remaining_quota": remaining
            }
        )
        self.problem_details.update({
            "code": "QUOTA_EXCEEDED",
            "retryable": False
        })


def generate_booking_code(prefix: str, today: datetime | None = None, length: int = 5) -> str:
    """Random booking code such as ``UMR-250802-7KQ2D``."""
    today = today or datetime.now(timezone.utc)
    suffix = ''.join(secrets.choice(CODE_ALPHABET) for _ in range(length))
    return f"{prefix}-{today:%y%m%d}-{suffix}"


def fallback_booking_code(prefix: str) -> str:
    """Timestamp code used when no random code could be reserved."""
    return f"{prefix}-{int(time.time() * 1000)}"


def _consumes_quota(status: str) -> bool:
    return status != BookingStatus.CANCELLED


class BookingService:
    """Service for booking-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.catalog_service = CatalogService(db)
        self.notification_service = NotificationService(db)

    async def _reserve_booking_code(self) -> str:
        """Pick a booking code not used yet, falling back to a timestamp code."""
        prefix = settings.booking_code_prefix
        try:
            # A failed lookup must not abort the enclosing booking transaction
            async with self.db.begin_nested():
                for _ in range(CODE_ATTEMPTS):
                    code = generate_booking_code(prefix)
                    if not await self.get_booking_by_code(code):
                        return code
        except Exception as e:
            logger.warning(
                "Booking code lookup failed - using fallback code",
                extra={"error": str(e)}
            )
        else:
            logger.warning("No free booking code found - using fallback code")

        metrics_collector.record_booking_code_fallback()
        return fallback_booking_code(prefix)

    async def _validate_pic(self, pic_type: PicType, pic_id: UUID | None) -> UUID | None:
        """Check the person in charge; head office bookings carry no PIC id."""
        if pic_type == PicType.PUSAT:
            return None
        if pic_id is None:
            raise ValidationError(
                detail=f"pic_id is required for PIC type '{pic_type.value}'",
                code="PIC_REQUIRED",
            )

        model = Branch if pic_type == PicType.CABANG else Agent
        target = await self.db.get(model, pic_id)
        if not target or not target.is_active:
            raise NotFoundError(
                resource_type="branch" if pic_type == PicType.CABANG else "agent",
                resource_id=str(pic_id)
            )
        return pic_id

    def _build_wizard(self, departure: Departure, request: SubmitBookingRequest | QuoteBookingRequest) -> BookingWizard:
        wizard = BookingWizard(prices={price.room_type: price.price for price in departure.prices})
        for room in request.rooms:
            wizard.set_quantity(room.room_type, room.quantity)
        return wizard

    async def quote(self, request: QuoteBookingRequest) -> tuple[Departure, BookingWizard]:
        """Price a room selection against the departure's current price list."""
        departure = await self.catalog_service.get_departure_by_id_or_raise(request.departure_id)
        return departure, self._build_wizard(departure, request)

    async def submit_booking(self, request: SubmitBookingRequest, session: SessionContext) -> Booking:
        """
        Create a booking from a completed wizard.

        The booking row, its rooms, its pilgrims and the quota decrement are
        written in one transaction; any failure rolls all of them back.

        Args:
            request: Room quantities, occupants and PIC of the booking
            session: Caller, who becomes the booking owner

        Returns:
            Created booking with rooms and pilgrims loaded

        Raises:
            NotFoundError: If departure or PIC target not found
            ValidationError: If the wizard guards reject the input
            QuotaExceededError: If the departure has too few seats left
        """
        try:
            departure = await self.catalog_service.get_departure_with_lock(request.departure_id)
            package = departure.package

            if departure.status != DepartureStatus.OPEN or not package.is_active:
                raise ConflictError(
                    detail=f"Departure {request.departure_id} is not open for booking",
                    conflicting_resource={"departure_id": str(request.departure_id), "status": departure.status}
                )

            # Replay the wizard server-side with stored prices
            wizard = self._build_wizard(departure, request)
            wizard.next()
            if len(request.pilgrims) != len(wizard.occupants):
                raise ValidationError(
                    detail=f"Expected {len(wizard.occupants)} pilgrims, got {len(request.pilgrims)}",
                    code="PILGRIM_COUNT_MISMATCH",
                )
            for index, pilgrim in enumerate(request.pilgrims):
                wizard.update_occupant(index, **pilgrim.model_dump())
            wizard.next()

            pic_id = await self._validate_pic(request.pic_type, request.pic_id)

            occupants = wizard.total_occupants
            if departure.remaining_quota < occupants:
                logger.warning(
                    "Booking rejected - insufficient quota",
                    extra={
                        "departure_id": str(departure.id),
                        "requested_seats": occupants,
                        "remaining_quota": departure.remaining_quota
                    }
                )
                raise QuotaExceededError(str(departure.id), occupants, departure.remaining_quota)

            booking_code = await self._reserve_booking_code()

            booking = Booking(
                booking_code=booking_code,
                user_id=session.user_id,
                package_id=departure.package_id,
                departure_id=departure.id,
                total_price=wizard.total_price,
                status=BookingStatus.DRAFT,
                pic_type=request.pic_type,
                pic_id=pic_id,
                notes=request.notes,
                rooms=[
                    BookingRoom(
                        room_type=selection.room_type,
                        quantity=selection.quantity,
                        price=selection.price,
                        subtotal=pricing.room_subtotal(selection),
                    )
                    for selection in wizard.selections
                ],
                pilgrims=[
                    BookingPilgrim(
                        position=position,
                        name=occupant.name.strip(),
                        gender=occupant.gender,
                        phone=occupant.phone,
                        email=occupant.email,
                        nik=occupant.nik,
                        passport_number=occupant.passport_number,
                        passport_expiry=occupant.passport_expiry,
                        birth_date=occupant.birth_date,
                    )
                    for position, occupant in enumerate(wizard.occupants)
                ],
            )
            departure.remaining_quota -= occupants

            self.db.add(booking)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(
                "Booking insert failed - transaction rolled back",
                extra={"departure_id": str(request.departure_id), "error": str(e)}
            )
            raise ConflictError(detail="The booking could not be saved, please try again")
        except Exception:
            await self.db.rollback()
            raise

        wizard.mark_submitted()
        metrics_collector.record_booking_created(package.slug)
        aggregate_cache.publish(ChangeEvent.BOOKING_CREATED)

        logger.info(
            "Booking submitted successfully",
            extra={
                "booking_id": str(booking.id),
                "booking_code": booking.booking_code,
                "user_id": str(session.user_id),
                "departure_id": str(departure.id),
                "occupants": occupants,
                "total_price": booking.total_price,
                "remaining_quota": departure.remaining_quota
            }
        )

        return booking

    async def list_user_bookings(self, user_id: UUID, request: ListBookingsRequest) -> tuple[list[Booking], str | None]:
        """List a user's bookings, newest first."""
        stmt = select(Booking).where(Booking.user_id == user_id)
        if request.status:
            stmt = stmt.where(Booking.status == request.status)
        return await self._paginate(stmt, request.cursor, request.limit)

    async def search_bookings(self, request: SearchBookingsRequest) -> tuple[list[Booking], str | None]:
        """Admin search by status and booking code fragment."""
        stmt = select(Booking)
        if request.status:
            stmt = stmt.where(Booking.status == request.status)
        if request.query:
            stmt = stmt.where(Booking.booking_code.ilike(f"%{request.query.strip()}%"))
        return await self._paginate(stmt, request.cursor, request.limit)

    async def _paginate(self, stmt, cursor: str | None, limit: int) -> tuple[list[Booking], str | None]:
        offset = 0
        if cursor:
            try:
                offset = max(0, int(cursor))
            except ValueError:
                logger.warning("Invalid cursor provided in booking listing", extra={"cursor": cursor})

        stmt = stmt.order_by(Booking.created_at.desc(), Booking.id).offset(offset).limit(limit + 1)
        result = await self.db.execute(stmt)
        bookings = list(result.scalars())

        has_next_page = len(bookings) > limit
        if has_next_page:
            bookings = bookings[:-1]
        return bookings, str(offset + limit) if has_next_page else None

    async def get_booking_detail(self, booking_id: UUID) -> Booking | None:
        """Get booking by ID with rooms, pilgrims, package, departure and owner."""
        stmt = (
            select(Booking)
            .options(
                selectinload(Booking.rooms),
                selectinload(Booking.pilgrims),
                selectinload(Booking.package),
                selectinload(Booking.departure),
                selectinload(Booking.profile),
            )
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_booking_for_session(self, booking_id: UUID, session: SessionContext) -> Booking:
        """
        Get a booking the caller may see.

        Raises:
            NotFoundError: If booking not found
            AuthorizationError: If the caller neither owns it nor is an admin
        """
        booking = await self.get_booking_detail(booking_id)
        if not booking:
            logger.warning("Booking not found", extra={"booking_id": str(booking_id)})
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))
        session.require_owner(booking.user_id)
        return booking

    async def get_booking_by_id(self, booking_id: UUID) -> Booking | None:
        """Get booking by ID."""
        stmt = select(Booking).where(Booking.id == booking_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_booking_by_id_or_raise(self, booking_id: UUID) -> Booking:
        """Get booking by ID or raise NotFoundError."""
        booking = await self.get_booking_by_id(booking_id)
        if not booking:
            logger.warning(
                "Booking not found",
                extra={"booking_id": str(booking_id)}
            )
            raise NotFoundError(
                resource_type="booking",
                resource_id=str(booking_id)
            )
        return booking

    async def get_booking_by_code(self, code: str) -> Booking | None:
        """Get booking by booking code."""
        stmt = select(Booking).where(Booking.booking_code == code)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def apply_status(self, booking: Booking, status: BookingStatus) -> bool:
        """
        Move a booking to a new status inside the current transaction.

        Cancelling returns the booking's seats to the departure; leaving
        the cancelled state takes them again.

        Returns:
            True if the status changed

        Raises:
            QuotaExceededError: If a cancelled booking is reopened without seats left
        """
        previous = booking.status
        if previous == status:
            return False

        if _consumes_quota(previous) != _consumes_quota(status):
            departure = await self.catalog_service.get_departure_with_lock(booking.departure_id)
            seats = await self._booked_seats(booking.id)
            if _consumes_quota(status):
                if departure.remaining_quota < seats:
                    raise QuotaExceededError(str(departure.id), seats, departure.remaining_quota)
                departure.remaining_quota -= seats
            else:
                departure.remaining_quota = min(departure.quota, departure.remaining_quota + seats)

        booking.status = status
        logger.info(
            "Booking status changed",
            extra={
                "booking_id": str(booking.id),
                "from_status": previous,
                "to_status": status.value
            }
        )
        return True

    async def _booked_seats(self, booking_id: UUID) -> int:
        result = await self.db.execute(
            select(BookingRoom.room_type, BookingRoom.quantity).where(BookingRoom.booking_id == booking_id)
        )
        return sum(quantity * pricing.occupancy(room_type) for room_type, quantity in result.all())

    async def update_status(self, request: UpdateBookingStatusRequest, admin: SessionContext) -> Booking:
        """
        Admin status override. The owner is notified of the change.

        Raises:
            NotFoundError: If booking not found
            QuotaExceededError: If a cancelled booking is reopened without seats left
        """
        booking = await self.get_booking_by_id_or_raise(request.booking_id)
        try:
            changed = await self.apply_status(booking, request.status)
            if changed:
                self.notification_service.add(
                    user_id=booking.user_id,
                    booking_id=booking.id,
                    title=f"Status booking {booking.booking_code}",
                    message=STATUS_MESSAGES[request.status],
                    type="booking_status",
                )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        if changed:
            aggregate_cache.publish(ChangeEvent.BOOKING_STATUS_CHANGED)
            aggregate_cache.publish(ChangeEvent.NOTIFICATION_CREATED, scope=booking.user_id)
            logger.info(
                "Booking status overridden by admin",
                extra={
                    "booking_id": str(booking.id),
                    "status": request.status.value,
                    "admin_id": str(admin.user_id)
                }
            )

        return await self.get_booking_detail(booking.id)

    async def pic_commission(self, booking: Booking) -> tuple[int, int]:
        """Commission per pilgrim and in total for the booking's PIC."""
        per_pilgrim = await self.catalog_service.commission_amount(booking.package_id, booking.pic_type)
        return per_pilgrim, per_pilgrim * len(booking.pilgrims)

    async def pic_name(self, booking: Booking) -> str | None:
        if booking.pic_type == PicType.PUSAT or booking.pic_id is None:
            return None
        model = Branch if booking.pic_type == PicType.CABANG else Agent
        target = await self.db.get(model, booking.pic_id)
        return target.name if target else None
