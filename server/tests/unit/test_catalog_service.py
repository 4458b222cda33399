"""Unit tests for catalog service."""

from datetime import date, timedelta
from uuid import uuid4

import pytest

from travel_booking.core.events import Aggregate, aggregate_cache
from travel_booking.core.exceptions import ConflictError, NotFoundError, ValidationError
from travel_booking.models import Agent, Branch, PicType
from travel_booking.schemas.booking import PilgrimInput, RoomQuantity, SubmitBookingRequest
from travel_booking.schemas.catalog import (
    CreateDepartureRequest,
    CreateNavigationItemRequest,
    CreatePackageRequest,
    DeparturePriceInput,
)
from travel_booking.services.booking_service import BookingService
from travel_booking.services.catalog_service import CatalogService


@pytest.mark.asyncio
async def test_create_package_duplicate_slug(test_session, sample_package_data):
    """Test creating a package with duplicate slug raises error."""
    service = CatalogService(test_session)
    await service.create_package(CreatePackageRequest(**sample_package_data))

    with pytest.raises(ConflictError):
        await service.create_package(CreatePackageRequest(**{**sample_package_data, "title": "Lain"}))


@pytest.mark.asyncio
async def test_create_departure_rejects_unknown_room_type(test_session, sample_package_data):
    service = CatalogService(test_session)
    package = await service.create_package(CreatePackageRequest(**sample_package_data))

    with pytest.raises(ValidationError):
        await service.create_departure(CreateDepartureRequest(
            package_id=package.id,
            departure_date=date.today() + timedelta(days=30),
            quota=10,
            prices=[DeparturePriceInput(room_type="suite", price=1)],
        ))


@pytest.mark.asyncio
async def test_package_listing_is_cached_until_catalog_changes(test_session, departure):
    service = CatalogService(test_session)

    cards = await service.list_packages()

    assert [(card.slug, card.lowest_price) for card in cards] == [("umroh-reguler-9-hari", 20_000_000)]
    assert aggregate_cache.peek(Aggregate.PACKAGE_CATALOG) == cards

    await service.create_package(CreatePackageRequest(title="Umroh Ramadhan", slug="umroh-ramadhan"))

    assert aggregate_cache.peek(Aggregate.PACKAGE_CATALOG) is None
    cards = await service.list_packages()
    assert {(card.slug, card.lowest_price) for card in cards} == {
        ("umroh-reguler-9-hari", 20_000_000),
        ("umroh-ramadhan", 0),
    }


@pytest.mark.asyncio
async def test_package_detail_sorts_departures(test_session, departure):
    service = CatalogService(test_session)
    await service.create_departure(CreateDepartureRequest(
        package_id=departure.package_id,
        departure_date=date.today() + timedelta(days=20),
        quota=10,
        prices=[DeparturePriceInput(room_type="quad", price=19_000_000)],
    ))

    detail = await service.get_package_by_slug("umroh-reguler-9-hari")

    assert [d.departure_date for d in detail.departures] == sorted(d.departure_date for d in detail.departures)
    assert detail.lowest_price == 19_000_000
    assert detail.dp_deadline_days == 30
    assert detail.full_deadline_days == 7

    with pytest.raises(NotFoundError):
        await service.get_package_by_slug("tidak-ada")


@pytest.mark.asyncio
async def test_agent_booking_earns_commission(test_session, departure, customer, session_for):
    branch = Branch(name="Cabang Bandung")
    test_session.add(branch)
    await test_session.flush()
    agent = Agent(name="Pak Hasan", branch_id=branch.id)
    test_session.add(agent)
    await test_session.commit()

    targets = await CatalogService(test_session).list_pic_targets()
    assert [t.name for t in targets.branches] == ["Cabang Bandung"]
    assert [(t.name, t.branch_id) for t in targets.agents] == [("Pak Hasan", branch.id)]

    service = BookingService(test_session)
    booking = await service.submit_booking(
        SubmitBookingRequest(
            departure_id=departure.id,
            rooms=[RoomQuantity(room_type="double", quantity=1)],
            pilgrims=[PilgrimInput(name="A", gender="male"), PilgrimInput(name="B", gender="female")],
            pic_type=PicType.AGEN,
            pic_id=agent.id,
        ),
        session_for(customer),
    )

    assert await service.pic_commission(booking) == (750_000, 1_500_000)
    assert await service.pic_name(booking) == "Pak Hasan"


@pytest.mark.asyncio
async def test_navigation_item_parent_must_exist(test_session):
    service = CatalogService(test_session)
    home = await service.create_navigation_item(CreateNavigationItemRequest(label="Beranda", url="/"))
    await service.create_navigation_item(CreateNavigationItemRequest(label="Paket", url="/paket", parent_id=home.id))

    tree = await service.get_navigation()

    assert [(node.label, [child.label for child in node.children]) for node in tree] == [("Beranda", ["Paket"])]

    with pytest.raises(NotFoundError):
        await service.create_navigation_item(
            CreateNavigationItemRequest(label="Yatim", url="/x", parent_id=uuid4())
        )
