"""Bearer token authentication and the per-request session context."""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID

import jwt
from fastapi import Depends, Header
from jwt import PyJWTError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .config import settings
from .database import get_db
from .exceptions import AuthenticationError, AuthorizationError
from ..models.profile import ADMIN_ROLE, Profile, UserRole

logger = logging.getLogger(__name__)

TOKEN_ALGORITHM = "HS256"


@dataclass(frozen=True)
class SessionContext:
    """Authenticated user as seen by request handlers."""

    user_id: UUID
    email: Optional[str] = None
    name: Optional[str] = None
    roles: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_admin(self) -> bool:
        return ADMIN_ROLE in self.roles

    def is_owner(self, owner_id: UUID) -> bool:
        return self.user_id == owner_id

    def require_owner(self, owner_id: UUID, allow_admin: bool = True) -> None:
        """Raise AuthorizationError unless this user owns the resource."""
        if self.is_owner(owner_id) or (allow_admin and self.is_admin):
            return
        logger.warning(
            "Ownership check failed",
            extra={"user_id": str(self.user_id), "owner_id": str(owner_id)}
        )
        raise AuthorizationError(detail="You do not have access to this resource")

    def require_admin(self) -> None:
        if not self.is_admin:
            raise AuthorizationError(
                detail="Administrator access is required",
                required_permissions=["admin"]
            )


class SessionStore:
    """
    Cache of resolved session contexts keyed by user id.

    Contexts are built from the Profile and UserRole rows. Anything that
    changes those rows must call invalidate() (or refresh()) so the next
    request sees the new state.
    """

    def __init__(self, max_size: int = 5000):
        self.max_size = max_size
        self._sessions: OrderedDict[UUID, SessionContext] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, user_id: UUID) -> Optional[SessionContext]:
        context = self._sessions.get(user_id)
        if context is not None:
            self._sessions.move_to_end(user_id)
        return context

    def put(self, context: SessionContext) -> None:
        self._sessions[context.user_id] = context
        self._sessions.move_to_end(context.user_id)
        while len(self._sessions) > self.max_size:
            self._sessions.popitem(last=False)

    def invalidate(self, user_id: UUID) -> bool:
        """Drop the cached context of a user. Returns True if one was cached."""
        removed = self._sessions.pop(user_id, None) is not None
        if removed:
            logger.debug("Session invalidated", extra={"user_id": str(user_id)})
        return removed

    def clear(self) -> None:
        self._sessions.clear()

    async def resolve(
        self,
        db: AsyncSession,
        user_id: UUID,
        claims: Optional[dict[str, Any]] = None,
    ) -> SessionContext:
        """Return the cached context or load it from the database."""
        context = self.get(user_id)
        if context is None:
            context = await self._load(db, user_id, claims or {})
            self.put(context)
        return context

    async def refresh(self, db: AsyncSession, user_id: UUID) -> SessionContext:
        """Reload the context of a user regardless of the cache."""
        self.invalidate(user_id)
        return await self.resolve(db, user_id)

    async def _load(self, db: AsyncSession, user_id: UUID, claims: dict[str, Any]) -> SessionContext:
        profile = await db.get(Profile, user_id)
        if profile is None:
            # First request of a freshly registered user
            profile = Profile(id=user_id, email=claims.get("email"), name=claims.get("name"))
            db.add(profile)
            try:
                await db.commit()
                logger.info("Profile created for new user", extra={"user_id": str(user_id)})
            except IntegrityError:
                # A concurrent request created the profile first
                await db.rollback()
                logger.info("Profile already created (race condition)", extra={"user_id": str(user_id)})
                profile = await db.get(Profile, user_id, populate_existing=True)
                if profile is None:
                    raise

        result = await db.execute(select(UserRole.role).where(UserRole.user_id == user_id))
        roles = frozenset(result.scalars())

        return SessionContext(
            user_id=user_id,
            email=profile.email,
            name=profile.name,
            roles=roles,
        )


def create_access_token(
    user_id: UUID,
    expires_in: timedelta = timedelta(hours=1),
    secret: Optional[str] = None,
    **claims: Any,
) -> str:
    """Issue a signed bearer token for a user."""
    payload = {
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + expires_in,
        **claims,
    }
    return jwt.encode(payload, secret or settings.bearer_token_secret, algorithm=TOKEN_ALGORITHM)


def decode_access_token(token: str, secret: Optional[str] = None) -> dict[str, Any]:
    """
    Validate a bearer token and return its claims.

    Raises:
        AuthenticationError: If the token is invalid, expired or has no subject
    """
    key = secret or settings.bearer_token_secret
    if not key:
        logger.error("Bearer token secret is not configured")
        raise AuthenticationError(detail="Token validation is not available")

    try:
        payload = jwt.decode(token, key, algorithms=[TOKEN_ALGORITHM])
    except PyJWTError as e:
        raise AuthenticationError(detail=f"Token validation failed: {str(e)}")

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError(detail="Invalid token payload")
    try:
        payload["sub"] = UUID(subject)
    except ValueError:
        raise AuthenticationError(detail="Invalid token subject")
    return payload


def _parse_authorization(authorization: Optional[str]) -> str:
    if not authorization:
        raise AuthenticationError(detail="Authorization header missing")
    try:
        scheme, token = authorization.split()
    except ValueError:
        raise AuthenticationError(detail="Invalid authorization header format")
    if scheme.lower() != "bearer":
        raise AuthenticationError(detail="Invalid authentication scheme")
    return token


# Global session store instance
session_store = SessionStore(max_size=settings.session_cache_size)


async def get_session_context(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    db: AsyncSession = Depends(get_db),
) -> SessionContext:
    """Resolve the caller's session from the Authorization header."""
    token = _parse_authorization(authorization)
    claims = decode_access_token(token)
    return await session_store.resolve(db, claims["sub"], claims)


async def require_admin(
    session: SessionContext = Depends(get_session_context),
) -> SessionContext:
    """Resolve the caller's session and require the admin role."""
    session.require_admin()
    return session


SessionDependency = Depends(get_session_context)
AdminDependency = Depends(require_admin)
