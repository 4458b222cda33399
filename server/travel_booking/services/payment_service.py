"""Payment service: balances, options, deadlines, submission and verification."""

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.auth import SessionContext
from ..core.config import settings
from ..core.events import ChangeEvent, aggregate_cache
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingStatus
from ..models.payment import Payment, PaymentStatus, PaymentType
from .booking_service import BookingService
from .catalog_service import dp_deadline_days, full_deadline_days
from .notification_service import NotificationService
from .storage_service import PAYMENT_PROOF_BUCKET, StorageService

logger = logging.getLogger(__name__)

PROOF_CONTENT_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}

OPTION_DEPOSIT = "deposit"
OPTION_FULL = "full"


class PaymentLike(Protocol):
    amount: int
    status: str


@dataclass(frozen=True)
class PaymentSummary:
    """Balance of a booking."""

    total_price: int
    paid: int
    pending: int
    remaining: int


@dataclass(frozen=True)
class PaymentOption:
    """Amount the customer may pay next."""

    kind: str
    amount: int


@dataclass(frozen=True)
class PaymentDeadlines:
    """Due dates derived from the departure date. Overdue flags do not block payment."""

    dp_deadline: date
    full_deadline: date
    dp_overdue: bool
    full_overdue: bool


def summarize_payments(total_price: int, payments: Iterable[PaymentLike]) -> PaymentSummary:
    """paid and pending sums; remaining = total - paid - pending."""
    paid = 0
    pending = 0
    for payment in payments:
        if payment.status == PaymentStatus.PAID:
            paid += payment.amount
        elif payment.status == PaymentStatus.PENDING:
            pending += payment.amount
    return PaymentSummary(
        total_price=total_price,
        paid=paid,
        pending=pending,
        remaining=total_price - paid - pending,
    )


def payment_options(summary: PaymentSummary, minimum_dp: int) -> list[PaymentOption]:
    """
    Options for the next payment.

    A deposit is offered only before anything was paid and when the
    package sets a minimum down payment; it never exceeds the remainder.
    """
    if summary.remaining <= 0:
        return []

    options = []
    if summary.paid == 0 and minimum_dp > 0:
        options.append(PaymentOption(kind=OPTION_DEPOSIT, amount=min(minimum_dp, summary.remaining)))
    options.append(PaymentOption(kind=OPTION_FULL, amount=summary.remaining))
    return options


def payment_deadlines(departure_date: date, dp_days: int, full_days: int, today: date) -> PaymentDeadlines:
    dp_deadline = departure_date - timedelta(days=dp_days)
    full_deadline = departure_date - timedelta(days=full_days)
    return PaymentDeadlines(
        dp_deadline=dp_deadline,
        full_deadline=full_deadline,
        dp_overdue=today > dp_deadline,
        full_overdue=today > full_deadline,
    )


def choose_payment_type(amount: int, remaining: int, paid: int) -> PaymentType:
    """full when the amount settles the remainder, dp for a first payment, else installment."""
    if amount >= remaining:
        return PaymentType.FULL
    if paid == 0:
        return PaymentType.DP
    return PaymentType.INSTALLMENT


def validate_proof(content_type: Optional[str], size: int, max_bytes: int) -> str:
    """
    Check a payment proof before it is uploaded.

    Returns:
        File extension for the stored object

    Raises:
        ValidationError: If the type is not jpeg/png/webp or the file is too large
    """
    extension = PROOF_CONTENT_TYPES.get((content_type or "").lower())
    if extension is None:
        raise ValidationError(
            detail="Payment proof must be a JPEG, PNG or WEBP image",
            code="INVALID_FILE_TYPE",
            errors={"content_type": content_type, "allowed": sorted(PROOF_CONTENT_TYPES)},
        )
    if size <= 0:
        raise ValidationError(detail="Payment proof is empty", code="EMPTY_FILE")
    if size > max_bytes:
        raise ValidationError(
            detail=f"Payment proof must not exceed {max_bytes // (1024 * 1024)} MB",
            code="FILE_TOO_LARGE",
            errors={"size": size, "max_bytes": max_bytes},
        )
    return extension


@dataclass(frozen=True)
class PaymentOverview:
    """Everything the payment page shows for a booking."""

    booking: Booking
    payments: list[Payment]
    summary: PaymentSummary
    options: list[PaymentOption]
    deadlines: PaymentDeadlines

    @property
    def has_pending(self) -> bool:
        return self.summary.pending > 0


class PaymentService:
    """Service for payment-related operations."""

    def __init__(self, db: AsyncSession, storage: StorageService | None = None):
        self.db = db
        self.storage = storage or StorageService()
        self.booking_service = BookingService(db)
        self.notification_service = NotificationService(db)

    async def _load_booking(self, booking_id: UUID) -> Booking:
        stmt = (
            select(Booking)
            .options(
                selectinload(Booking.payments),
                selectinload(Booking.package),
                selectinload(Booking.departure),
            )
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        booking = result.scalar_one_or_none()
        if not booking:
            logger.warning("Booking not found", extra={"booking_id": str(booking_id)})
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))
        return booking

    def _overview(self, booking: Booking, today: date | None = None) -> PaymentOverview:
        payments = list(booking.payments)
        summary = summarize_payments(booking.total_price, payments)
        return PaymentOverview(
            booking=booking,
            payments=payments,
            summary=summary,
            options=payment_options(summary, booking.package.minimum_dp),
            deadlines=payment_deadlines(
                booking.departure.departure_date,
                dp_deadline_days(booking.package),
                full_deadline_days(booking.package),
                today or datetime.now(timezone.utc).date(),
            ),
        )

    async def get_overview(self, booking_id: UUID, session: SessionContext) -> PaymentOverview:
        """
        Balance, options and deadlines of a booking.

        Raises:
            NotFoundError: If booking not found
            AuthorizationError: If the caller neither owns it nor is an admin
        """
        booking = await self._load_booking(booking_id)
        session.require_owner(booking.user_id)
        return self._overview(booking)

    async def submit_payment(
        self,
        booking_id: UUID,
        option: str,
        proof: bytes,
        content_type: Optional[str],
        session: SessionContext,
        payment_method: str = "transfer",
    ) -> Payment:
        """
        Record a payment confirmation with its transfer proof.

        Args:
            booking_id: Booking being paid
            option: ``deposit`` or ``full``
            proof: Uploaded proof image
            content_type: MIME type of the proof
            session: Caller; must own the booking
            payment_method: How the money was sent

        Returns:
            The pending payment

        Raises:
            ValidationError: If the proof or option is invalid
            AuthorizationError: If the caller does not own the booking
            ConflictError: If a payment is pending or nothing is left to pay
        """
        extension = validate_proof(content_type, len(proof), settings.proof_max_bytes)

        booking = await self._load_booking(booking_id)
        session.require_owner(booking.user_id, allow_admin=False)

        if booking.status == BookingStatus.CANCELLED:
            raise ConflictError(detail=f"Booking {booking.booking_code} is cancelled")

        overview = self._overview(booking)
        if overview.has_pending:
            raise ConflictError(
                detail="A payment for this booking is still awaiting verification",
                conflicting_resource={"booking_id": str(booking.id), "pending_amount": overview.summary.pending}
            )

        chosen = next((candidate for candidate in overview.options if candidate.kind == option), None)
        if chosen is None:
            if not overview.options:
                raise ConflictError(detail=f"Booking {booking.booking_code} has nothing left to pay")
            raise ValidationError(
                detail=f"Payment option '{option}' is not available",
                code="OPTION_NOT_AVAILABLE",
                errors={"available": [candidate.kind for candidate in overview.options]},
            )

        payment_type = choose_payment_type(chosen.amount, overview.summary.remaining, overview.summary.paid)

        path = f"{booking.id}/{int(time.time() * 1000)}.{extension}"
        stored = await self.storage.upload(PAYMENT_PROOF_BUCKET, path, proof)

        try:
            payment = Payment(
                booking_id=booking.id,
                amount=chosen.amount,
                status=PaymentStatus.PENDING,
                payment_type=payment_type,
                payment_method=payment_method,
                proof_url=stored.public_url,
            )
            self.db.add(payment)
            await self.booking_service.apply_status(booking, BookingStatus.WAITING_PAYMENT)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            await self.storage.delete(PAYMENT_PROOF_BUCKET, path)
            raise

        metrics_collector.record_payment_submitted(payment_type.value)
        aggregate_cache.publish(ChangeEvent.PAYMENT_SUBMITTED)

        logger.info(
            "Payment submitted successfully",
            extra={
                "payment_id": str(payment.id),
                "booking_id": str(booking.id),
                "amount": payment.amount,
                "payment_type": payment_type.value,
                "user_id": str(session.user_id)
            }
        )
        return payment

    async def list_payments(self, status: Optional[PaymentStatus] = None, limit: int = 100) -> list[Payment]:
        """Admin listing of payments, newest first."""
        stmt = select(Payment).options(selectinload(Payment.booking))
        if status:
            stmt = stmt.where(Payment.status == status)
        stmt = stmt.order_by(Payment.created_at.desc()).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def get_payment_by_id_or_raise(self, payment_id: UUID) -> Payment:
        stmt = (
            select(Payment)
            .options(selectinload(Payment.booking))
            .where(Payment.id == payment_id)
        )
        result = await self.db.execute(stmt)
        payment = result.scalar_one_or_none()
        if not payment:
            logger.warning("Payment not found", extra={"payment_id": str(payment_id)})
            raise NotFoundError(resource_type="payment", resource_id=str(payment_id))
        return payment

    async def verify_payment(self, payment_id: UUID, approve: bool, admin: SessionContext) -> Payment:
        """
        Resolve a pending payment.

        Approving marks the payment and its booking paid. Rejecting marks the
        payment failed and cancels the booking, which returns its seats.

        Raises:
            NotFoundError: If payment not found
            ConflictError: If the payment is not pending
        """
        payment = await self.get_payment_by_id_or_raise(payment_id)
        if payment.status != PaymentStatus.PENDING:
            raise ConflictError(
                detail=f"Payment {payment_id} is already {payment.status}",
                conflicting_resource={"payment_id": str(payment_id), "status": payment.status}
            )

        booking = payment.booking
        now = datetime.now(timezone.utc)
        try:
            if approve:
                payment.status = PaymentStatus.PAID
                payment.paid_at = now
                await self.booking_service.apply_status(booking, BookingStatus.PAID)
                title = "Pembayaran Dikonfirmasi"
                message = f"Pembayaran untuk booking {booking.booking_code} telah dikonfirmasi."
            else:
                payment.status = PaymentStatus.FAILED
                await self.booking_service.apply_status(booking, BookingStatus.CANCELLED)
                title = "Pembayaran Ditolak"
                message = f"Pembayaran untuk booking {booking.booking_code} ditolak. Silakan hubungi admin."

            payment.verified_at = now
            payment.verified_by = admin.user_id
            self.notification_service.add(
                user_id=booking.user_id,
                booking_id=booking.id,
                title=title,
                message=message,
                type="payment",
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        outcome = "approved" if approve else "rejected"
        metrics_collector.record_payment_verified(outcome)
        aggregate_cache.publish(ChangeEvent.PAYMENT_VERIFIED)
        aggregate_cache.publish(ChangeEvent.BOOKING_STATUS_CHANGED)
        aggregate_cache.publish(ChangeEvent.NOTIFICATION_CREATED, scope=booking.user_id)

        logger.info(
            "Payment verified",
            extra={
                "payment_id": str(payment.id),
                "booking_id": str(booking.id),
                "outcome": outcome,
                "admin_id": str(admin.user_id)
            }
        )
        return payment
