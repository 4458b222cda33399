"""Unit tests for payment reminders."""

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from travel_booking.models import Notification
from travel_booking.schemas.booking import PilgrimInput, RoomQuantity, SubmitBookingRequest
from travel_booking.services.booking_service import BookingService
from travel_booking.services.reminder_service import (
    REMINDER_DP,
    REMINDER_FULL,
    REMINDER_OVERDUE,
    ReminderService,
    plan_reminders,
)

TODAY = date(2026, 10, 19)


def _plan(days_to_departure, paid=0, total=50_000_000, already_sent=frozenset()):
    return plan_reminders(
        booking_code="UMR-261019-AB12C",
        package_title="Umroh Reguler",
        departure_date=TODAY + timedelta(days=days_to_departure),
        dp_days=30,
        full_days=7,
        total_price=total,
        paid=paid,
        today=TODAY,
        already_sent=already_sent,
    )


def test_no_reminder_far_from_deadlines():
    assert _plan(60) == []


def test_dp_reminder_a_week_ahead():
    reminders = _plan(35)

    assert [(r.type, r.title) for r in reminders] == [(REMINDER_DP, "Reminder Pembayaran DP")]


def test_dp_reminder_turns_urgent():
    reminders = _plan(32)

    assert [r.title for r in reminders] == ["Deadline DP Mendekat!"]
    assert "Rp 50.000.000" in reminders[0].message


def test_full_payment_reminder_after_deposit():
    reminders = _plan(10, paid=5_000_000)

    assert [(r.type, r.title) for r in reminders] == [(REMINDER_FULL, "Deadline Pelunasan Mendekat!")]
    assert "Rp 45.000.000" in reminders[0].message


def test_overdue_deposit():
    reminders = _plan(20)

    assert [(r.type, r.title) for r in reminders] == [(REMINDER_OVERDUE, "Pembayaran Melewati Deadline!")]


def test_overdue_full_payment():
    reminders = _plan(5, paid=5_000_000)

    assert [r.title for r in reminders] == ["Pelunasan Melewati Deadline!"]


def test_settled_booking_gets_nothing():
    assert _plan(20, paid=50_000_000) == []


def test_reminder_sent_today_is_not_repeated():
    assert _plan(35, already_sent=frozenset({REMINDER_DP})) == []


@pytest.mark.asyncio
async def test_run_creates_each_reminder_once(test_session, departure, customer, session_for):
    request = SubmitBookingRequest(
        departure_id=departure.id,
        rooms=[RoomQuantity(room_type="double", quantity=1)],
        pilgrims=[
            PilgrimInput(name="Ahmad Fauzi", gender="male"),
            PilgrimInput(name="Siti Aminah", gender="female"),
        ],
    )
    departure.departure_date = datetime.now(timezone.utc).date() + timedelta(days=35)
    await test_session.commit()
    booking = await BookingService(test_session).submit_booking(request, session_for(customer))
    service = ReminderService(test_session)

    first = await service.run()
    second = await service.run()

    assert first.bookings_checked == 1
    assert first.notifications_created == 1
    assert second.notifications_created == 0

    notifications = (await test_session.execute(
        select(Notification).where(Notification.booking_id == booking.id)
    )).scalars().all()
    assert [(n.type, n.title) for n in notifications] == [(REMINDER_DP, "Reminder Pembayaran DP")]
