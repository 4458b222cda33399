"""Unit tests for bearer tokens and the session store."""

import asyncio
from datetime import timedelta
from uuid import uuid4

import jwt
import pytest
from sqlalchemy import func, select

from travel_booking.core.auth import (
    SessionContext,
    SessionStore,
    create_access_token,
    decode_access_token,
)
from travel_booking.core.exceptions import AuthenticationError, AuthorizationError
from travel_booking.models import ADMIN_ROLE, Profile, UserRole


def test_token_round_trip_returns_uuid_subject():
    user_id = uuid4()

    claims = decode_access_token(create_access_token(user_id, email="a@example.com"))

    assert claims["sub"] == user_id
    assert claims["email"] == "a@example.com"


def test_expired_token_is_rejected():
    token = create_access_token(uuid4(), expires_in=timedelta(seconds=-1))

    with pytest.raises(AuthenticationError) as exc_info:
        decode_access_token(token)

    assert exc_info.value.status_code == 401


def test_token_signed_with_other_secret_is_rejected():
    token = create_access_token(uuid4(), secret="someone-else")

    with pytest.raises(AuthenticationError):
        decode_access_token(token)


def test_token_without_valid_subject_is_rejected():
    token = jwt.encode({"sub": "not-a-uuid"}, "test-secret", algorithm="HS256")

    with pytest.raises(AuthenticationError):
        decode_access_token(token, secret="test-secret")


def test_require_owner_allows_owner_and_admin():
    owner_id = uuid4()
    owner = SessionContext(user_id=owner_id)
    admin = SessionContext(user_id=uuid4(), roles=frozenset({ADMIN_ROLE}))

    owner.require_owner(owner_id)
    admin.require_owner(owner_id)

    with pytest.raises(AuthorizationError):
        admin.require_owner(owner_id, allow_admin=False)
    with pytest.raises(AuthorizationError):
        SessionContext(user_id=uuid4()).require_owner(owner_id)


def test_require_admin():
    with pytest.raises(AuthorizationError) as exc_info:
        SessionContext(user_id=uuid4()).require_admin()

    assert exc_info.value.status_code == 403


def test_store_evicts_least_recently_used():
    store = SessionStore(max_size=2)
    first, second, third = (SessionContext(user_id=uuid4()) for _ in range(3))

    store.put(first)
    store.put(second)
    store.get(first.user_id)
    store.put(third)

    assert len(store) == 2
    assert store.get(second.user_id) is None
    assert store.get(first.user_id) is first


def test_invalidate_reports_whether_cached():
    store = SessionStore()
    context = SessionContext(user_id=uuid4())
    store.put(context)

    assert store.invalidate(context.user_id) is True
    assert store.invalidate(context.user_id) is False


@pytest.mark.asyncio
async def test_resolve_creates_profile_for_new_user(test_session):
    store = SessionStore()
    user_id = uuid4()

    context = await store.resolve(test_session, user_id, {"email": "new@example.com", "name": "Baru"})

    assert context.email == "new@example.com"
    assert context.roles == frozenset()
    assert await test_session.get(Profile, user_id) is not None


@pytest.mark.asyncio
async def test_concurrent_first_requests_share_one_profile(session_factory, test_session):
    """Two simultaneous first requests of a new user both resolve a session."""
    store = SessionStore()
    user_id = uuid4()
    claims = {"email": "race@example.com", "name": "Serentak"}

    async with session_factory() as first, session_factory() as second:
        contexts = await asyncio.gather(
            store.resolve(first, user_id, claims),
            store.resolve(second, user_id, claims),
        )

    assert [context.user_id for context in contexts] == [user_id, user_id]
    assert all(context.email == "race@example.com" for context in contexts)
    count = await test_session.scalar(select(func.count()).select_from(Profile).where(Profile.id == user_id))
    assert count == 1


@pytest.mark.asyncio
async def test_cached_session_is_stale_until_refreshed(test_session, make_profile):
    """Role changes become visible after refresh()."""
    store = SessionStore()
    profile = await make_profile()

    before = await store.resolve(test_session, profile.id)
    test_session.add(UserRole(user_id=profile.id, role=ADMIN_ROLE))
    await test_session.commit()

    assert (await store.resolve(test_session, profile.id)).is_admin is False

    after = await store.refresh(test_session, profile.id)

    assert before.is_admin is False
    assert after.is_admin is True
    assert store.get(profile.id) is after
