"""Unit tests for notification service."""

import pytest

from travel_booking.core.events import Aggregate, aggregate_cache
from travel_booking.services.notification_service import NotificationService


@pytest.mark.asyncio
async def test_unread_count_follows_mark_read(test_session, customer):
    service = NotificationService(test_session)
    first = service.add(user_id=customer.id, title="Satu", message="Pesan pertama")
    service.add(user_id=customer.id, title="Dua", message="Pesan kedua")
    await test_session.commit()

    assert await service.unread_count(customer.id) == 2
    assert aggregate_cache.peek(Aggregate.UNREAD_NOTIFICATIONS, customer.id) == 2

    assert await service.mark_read(customer.id, [first.id]) == 1
    assert await service.unread_count(customer.id) == 1

    assert await service.mark_read(customer.id) == 1
    assert await service.unread_count(customer.id) == 0
    assert await service.mark_read(customer.id) == 0


@pytest.mark.asyncio
async def test_list_unread_only(test_session, customer, make_profile):
    service = NotificationService(test_session)
    other = await make_profile(name="Orang Lain")
    read = service.add(user_id=customer.id, title="Lama", message="Sudah dibaca")
    service.add(user_id=customer.id, title="Baru", message="Belum dibaca")
    service.add(user_id=other.id, title="Lain", message="Bukan milik customer")
    await test_session.commit()
    await service.mark_read(customer.id, [read.id])

    unread = await service.list_for_user(customer.id, unread_only=True)
    everything = await service.list_for_user(customer.id)

    assert [n.title for n in unread] == ["Baru"]
    assert len(everything) == 2
