"""Unit tests for booking service."""

import re

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from travel_booking.core.exceptions import AuthorizationError, ValidationError
from travel_booking.models import Booking, BookingStatus, Notification, PicType
from travel_booking.schemas.booking import (
    PilgrimInput,
    RoomQuantity,
    SubmitBookingRequest,
    UpdateBookingStatusRequest,
)
from travel_booking.services.booking_service import (
    BookingService,
    QuotaExceededError,
    fallback_booking_code,
    generate_booking_code,
)
from travel_booking.services.catalog_service import CatalogService

PILGRIM_NAMES = ["Ahmad Fauzi", "Siti Aminah", "Budi Santoso", "Dewi Lestari"]


def _quad_request(departure_id, pilgrims=None) -> SubmitBookingRequest:
    if pilgrims is None:
        pilgrims = [
            PilgrimInput(name=name, gender="male" if i % 2 == 0 else "female")
            for i, name in enumerate(PILGRIM_NAMES)
        ]
    return SubmitBookingRequest(
        departure_id=departure_id,
        rooms=[RoomQuantity(room_type="quad", quantity=1)],
        pilgrims=pilgrims,
    )


async def _remaining_quota(db, departure_id) -> int:
    departure = await CatalogService(db).get_departure_by_id_or_raise(departure_id)
    await db.refresh(departure)
    return departure.remaining_quota


async def _booking_count(db) -> int:
    return await db.scalar(select(func.count(Booking.id)))


def test_booking_code_format():
    assert re.fullmatch(r"UMR-\d{6}-[A-Z0-9]{5}", generate_booking_code("UMR"))
    assert re.fullmatch(r"UMR-\d{13}", fallback_booking_code("UMR"))


@pytest.mark.asyncio
async def test_submit_booking(test_session, departure, customer, session_for):
    """One quad for four pilgrims costs 80,000,000 and takes four seats."""
    service = BookingService(test_session)
    departure_id = departure.id

    booking = await service.submit_booking(_quad_request(departure_id), session_for(customer))

    assert booking.total_price == 80_000_000
    assert booking.status == BookingStatus.DRAFT
    assert booking.user_id == customer.id
    assert re.fullmatch(r"UMR-\d{6}-[A-Z0-9]{5}", booking.booking_code)
    assert [room.subtotal for room in booking.rooms] == [80_000_000]
    assert [pilgrim.name for pilgrim in booking.pilgrims] == PILGRIM_NAMES
    assert [pilgrim.position for pilgrim in booking.pilgrims] == [0, 1, 2, 3]
    assert await _remaining_quota(test_session, departure_id) == 36


@pytest.mark.asyncio
async def test_submit_booking_uses_timestamp_code_when_lookup_fails(
    test_session, session_factory, departure, customer, session_for, monkeypatch
):
    """A failing code lookup still commits the booking under a fallback code."""
    async def failing_lookup(self, code):
        raise OperationalError("SELECT bookings", {}, ConnectionError("connection reset"))

    monkeypatch.setattr(BookingService, "get_booking_by_code", failing_lookup)
    departure_id = departure.id

    booking = await BookingService(test_session).submit_booking(_quad_request(departure_id), session_for(customer))

    assert re.fullmatch(r"UMR-\d{13}", booking.booking_code)
    async with session_factory() as other:
        stored = await other.scalar(select(Booking).where(Booking.booking_code == booking.booking_code))
        assert stored is not None
        assert stored.total_price == 80_000_000
    assert await _remaining_quota(test_session, departure_id) == 36


@pytest.mark.asyncio
async def test_submit_booking_quota_exceeded_writes_nothing(test_session, departure, customer, session_for):
    departure_id = departure.id
    departure.remaining_quota = 3
    await test_session.commit()
    session = session_for(customer)

    with pytest.raises(QuotaExceededError) as exc_info:
        await BookingService(test_session).submit_booking(_quad_request(departure_id), session)

    assert exc_info.value.status_code == 409
    assert exc_info.value.problem_details["code"] == "QUOTA_EXCEEDED"
    assert await _booking_count(test_session) == 0
    assert await _remaining_quota(test_session, departure_id) == 3


@pytest.mark.asyncio
async def test_submit_booking_pilgrim_count_mismatch(test_session, departure, customer, session_for):
    departure_id = departure.id
    request = _quad_request(departure_id, pilgrims=[PilgrimInput(name="Ahmad Fauzi", gender="male")])

    with pytest.raises(ValidationError) as exc_info:
        await BookingService(test_session).submit_booking(request, session_for(customer))

    assert exc_info.value.problem_details["code"] == "PILGRIM_COUNT_MISMATCH"
    assert await _booking_count(test_session) == 0
    assert await _remaining_quota(test_session, departure_id) == 40


@pytest.mark.asyncio
async def test_submit_booking_incomplete_pilgrim(test_session, departure, customer, session_for):
    pilgrims = [PilgrimInput(name=name, gender="male") for name in PILGRIM_NAMES[:3]]
    pilgrims.append(PilgrimInput(name="Tanpa Gender"))

    with pytest.raises(ValidationError) as exc_info:
        await BookingService(test_session).submit_booking(_quad_request(departure.id, pilgrims), session_for(customer))

    assert exc_info.value.problem_details["code"] == "OCCUPANTS_INCOMPLETE"
    assert exc_info.value.problem_details["errors"] == {"positions": [3]}


@pytest.mark.asyncio
async def test_submit_booking_requires_pic_id_for_agent(test_session, departure, customer, session_for):
    request = SubmitBookingRequest(
        **_quad_request(departure.id).model_dump(exclude={"pic_type"}),
        pic_type=PicType.AGEN,
    )

    with pytest.raises(ValidationError) as exc_info:
        await BookingService(test_session).submit_booking(request, session_for(customer))

    assert exc_info.value.problem_details["code"] == "PIC_REQUIRED"


@pytest.mark.asyncio
async def test_cancelling_returns_seats_and_notifies_owner(
    test_session, departure, customer, admin_profile, session_for
):
    service = BookingService(test_session)
    departure_id = departure.id
    customer_id = customer.id
    booking = await service.submit_booking(_quad_request(departure_id), session_for(customer))
    admin = session_for(admin_profile, admin=True)

    updated = await service.update_status(
        UpdateBookingStatusRequest(booking_id=booking.id, status=BookingStatus.CANCELLED), admin
    )

    assert updated.status == BookingStatus.CANCELLED
    assert await _remaining_quota(test_session, departure_id) == 40

    notifications = (await test_session.execute(
        select(Notification).where(Notification.user_id == customer_id)
    )).scalars().all()
    assert [n.type for n in notifications] == ["booking_status"]

    # Reopening takes the seats again
    await service.update_status(
        UpdateBookingStatusRequest(booking_id=booking.id, status=BookingStatus.DRAFT), admin
    )
    assert await _remaining_quota(test_session, departure_id) == 36


@pytest.mark.asyncio
async def test_get_booking_for_other_user_is_forbidden(
    test_session, departure, customer, make_profile, session_for
):
    service = BookingService(test_session)
    booking = await service.submit_booking(_quad_request(departure.id), session_for(customer))
    stranger = await make_profile(name="Orang Lain")

    with pytest.raises(AuthorizationError) as exc_info:
        await service.get_booking_for_session(booking.id, session_for(stranger))

    assert exc_info.value.status_code == 403
