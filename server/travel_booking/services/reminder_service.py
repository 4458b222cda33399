"""Payment reminders for bookings with an outstanding balance."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.events import ChangeEvent, aggregate_cache
from ..models.booking import Booking, BookingStatus
from ..models.notification import Notification
from ..models.payment import PaymentStatus
from .catalog_service import dp_deadline_days, full_deadline_days
from .invoice_service import format_rupiah
from .notification_service import NotificationService

logger = logging.getLogger(__name__)

REMINDER_DP = "dp_reminder"
REMINDER_FULL = "full_reminder"
REMINDER_OVERDUE = "overdue"


@dataclass(frozen=True)
class Reminder:
    """Notification to send about one booking."""

    type: str
    title: str
    message: str


def plan_reminders(
    booking_code: str,
    package_title: str,
    departure_date: date,
    dp_days: int,
    full_days: int,
    total_price: int,
    paid: int,
    today: date,
    already_sent: frozenset[str] = frozenset(),
) -> list[Reminder]:
    """
    Decide which reminders a booking gets today.

    Reminders start seven days before a deadline and turn urgent in the
    last three. Once a deadline has passed an overdue notice is sent
    instead. A type already sent today is not repeated.
    """
    remaining = total_price - paid
    if remaining <= 0:
        return []

    days_to_departure = (departure_date - today).days
    days_to_dp = days_to_departure - max(dp_days, 0)
    days_to_full = days_to_departure - max(full_days, 0)
    label = f"Booking {booking_code} - {package_title}"
    reminders: list[Reminder] = []

    if paid == 0 and REMINDER_DP not in already_sent:
        if 0 < days_to_dp <= 3:
            reminders.append(Reminder(
                type=REMINDER_DP,
                title="Deadline DP Mendekat!",
                message=(
                    f"{label}: DP harus dibayar dalam {days_to_dp} hari lagi. "
                    f"Sisa pembayaran: {format_rupiah(remaining)}"
                ),
            ))
        elif 3 < days_to_dp <= 7:
            reminders.append(Reminder(
                type=REMINDER_DP,
                title="Reminder Pembayaran DP",
                message=f"{label}: Jangan lupa bayar DP sebelum {days_to_dp} hari dari sekarang.",
            ))

    if paid > 0 and REMINDER_FULL not in already_sent:
        if 0 < days_to_full <= 3:
            reminders.append(Reminder(
                type=REMINDER_FULL,
                title="Deadline Pelunasan Mendekat!",
                message=(
                    f"{label}: Pelunasan harus selesai dalam {days_to_full} hari. "
                    f"Sisa: {format_rupiah(remaining)}"
                ),
            ))
        elif 3 < days_to_full <= 7:
            reminders.append(Reminder(
                type=REMINDER_FULL,
                title="Reminder Pelunasan",
                message=f"{label}: Segera lunasi pembayaran Anda. Sisa: {format_rupiah(remaining)}",
            ))

    if REMINDER_OVERDUE not in already_sent:
        if paid == 0 and days_to_dp < 0:
            reminders.append(Reminder(
                type=REMINDER_OVERDUE,
                title="Pembayaran Melewati Deadline!",
                message=f"{label}: Pembayaran DP sudah melewati deadline. Segera hubungi admin.",
            ))
        elif paid > 0 and days_to_full < 0:
            reminders.append(Reminder(
                type=REMINDER_OVERDUE,
                title="Pelunasan Melewati Deadline!",
                message=f"{label}: Pelunasan sudah melewati deadline. Segera hubungi admin.",
            ))

    return reminders


@dataclass(frozen=True)
class ReminderRun:
    bookings_checked: int
    notifications_created: int


class ReminderService:
    """Creates payment reminder notifications for unpaid bookings."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.notification_service = NotificationService(db)

    async def _sent_today(self, booking_ids: list[UUID], today: date) -> dict[UUID, set[str]]:
        if not booking_ids:
            return {}
        start_of_day = datetime.combine(today, time.min, tzinfo=timezone.utc)
        end_of_day = start_of_day + timedelta(days=1)
        result = await self.db.execute(
            select(Notification.booking_id, Notification.type).where(
                Notification.booking_id.in_(booking_ids),
                Notification.created_at >= start_of_day,
                Notification.created_at < end_of_day,
            )
        )
        sent: dict[UUID, set[str]] = {}
        for booking_id, type_ in result.all():
            sent.setdefault(booking_id, set()).add(type_)
        return sent

    async def run(self, today: Optional[date] = None) -> ReminderRun:
        """Check every open booking and stage today's reminders."""
        today = today or datetime.now(timezone.utc).date()

        stmt = (
            select(Booking)
            .options(
                selectinload(Booking.package),
                selectinload(Booking.departure),
                selectinload(Booking.payments),
            )
            .where(Booking.status.in_([BookingStatus.DRAFT, BookingStatus.WAITING_PAYMENT]))
        )
        result = await self.db.execute(stmt)
        bookings = list(result.scalars())
        sent = await self._sent_today([booking.id for booking in bookings], today)

        notified_users: set[UUID] = set()
        created = 0
        for booking in bookings:
            paid = sum(p.amount for p in booking.payments if p.status == PaymentStatus.PAID)
            reminders = plan_reminders(
                booking_code=booking.booking_code,
                package_title=booking.package.title,
                departure_date=booking.departure.departure_date,
                dp_days=dp_deadline_days(booking.package),
                full_days=full_deadline_days(booking.package),
                total_price=booking.total_price,
                paid=paid,
                today=today,
                already_sent=frozenset(sent.get(booking.id, ())),
            )
            for reminder in reminders:
                self.notification_service.add(
                    user_id=booking.user_id,
                    booking_id=booking.id,
                    title=reminder.title,
                    message=reminder.message,
                    type=reminder.type,
                )
                notified_users.add(booking.user_id)
                created += 1

        await self.db.commit()
        for user_id in notified_users:
            aggregate_cache.publish(ChangeEvent.NOTIFICATION_CREATED, scope=user_id)

        logger.info(
            "Payment reminder sweep completed",
            extra={"bookings_checked": len(bookings), "notifications_created": created}
        )
        return ReminderRun(bookings_checked=len(bookings), notifications_created=created)
