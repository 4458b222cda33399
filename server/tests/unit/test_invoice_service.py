"""Unit tests for invoice assembly."""

from uuid import uuid4

import pytest

from travel_booking.core.exceptions import AuthorizationError, NotFoundError
from travel_booking.models import SiteSetting
from travel_booking.schemas.booking import PilgrimInput, RoomQuantity, SubmitBookingRequest
from travel_booking.services.booking_service import BookingService
from travel_booking.services.invoice_service import InvoiceService


async def _submit_quad(db, departure, customer, session_for):
    request = SubmitBookingRequest(
        departure_id=departure.id,
        rooms=[RoomQuantity(room_type="quad", quantity=1)],
        pilgrims=[PilgrimInput(name=f"Jemaah {i}", gender="female") for i in range(1, 5)],
    )
    return await BookingService(db).submit_booking(request, session_for(customer))


@pytest.mark.asyncio
async def test_fetch_invoice_data_joins_all_reads(test_session, session_factory, departure, customer, session_for):
    booking = await _submit_quad(test_session, departure, customer, session_for)

    data = await InvoiceService(session_factory).fetch_invoice_data(booking.id)

    assert data.booking_code == booking.booking_code
    assert data.owner_id == customer.id
    assert data.customer_name == "Ahmad Fauzi"
    assert data.package_title == "Umroh Reguler 9 Hari"
    assert data.status == "draft"
    assert [p.name for p in data.pilgrims] == ["Jemaah 1", "Jemaah 2", "Jemaah 3", "Jemaah 4"]
    assert [(r.room_type, r.subtotal) for r in data.rooms] == [("quad", 80_000_000)]
    assert data.payments == []
    assert data.remaining == 80_000_000
    assert data.company_name == "UmrohPlus"


@pytest.mark.asyncio
async def test_invoice_uses_stored_branding(test_session, session_factory, departure, customer, session_for):
    test_session.add(SiteSetting(
        category="general",
        key="branding",
        value={"company_name": "Barokah Tour", "tagline": "", "logo_url": "https://cdn.example/logo.png"},
    ))
    await test_session.commit()
    booking = await _submit_quad(test_session, departure, customer, session_for)

    document = await InvoiceService(session_factory).render_for_session(booking.id, session_for(customer))

    assert "Barokah Tour" in document
    assert "Travel &amp; Tours" in document
    assert 'src="https://cdn.example/logo.png"' in document


@pytest.mark.asyncio
async def test_invoice_for_unknown_booking(session_factory, customer, session_for):
    with pytest.raises(NotFoundError):
        await InvoiceService(session_factory).render_for_session(uuid4(), session_for(customer))


@pytest.mark.asyncio
async def test_invoice_of_other_user_is_forbidden(
    test_session, session_factory, departure, customer, admin_profile, make_profile, session_for
):
    booking = await _submit_quad(test_session, departure, customer, session_for)
    stranger = await make_profile(name="Orang Lain")
    service = InvoiceService(session_factory)

    with pytest.raises(AuthorizationError):
        await service.render_for_session(booking.id, session_for(stranger))

    document = await service.render_for_session(booking.id, session_for(admin_profile, admin=True))
    assert booking.booking_code in document
