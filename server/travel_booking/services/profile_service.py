"""Profile service: the caller's profile and role grants."""

import logging
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import session_store
from ..core.exceptions import NotFoundError
from ..models.profile import Profile, UserRole
from ..schemas.profile import UpdateProfileRequest

logger = logging.getLogger(__name__)


class ProfileService:
    """Service for profile-related operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_profile_by_id_or_raise(self, user_id: UUID) -> Profile:
        profile = await self.db.get(Profile, user_id)
        if not profile:
            logger.warning("Profile not found", extra={"user_id": str(user_id)})
            raise NotFoundError(resource_type="profile", resource_id=str(user_id))
        return profile

    async def update_profile(self, user_id: UUID, request: UpdateProfileRequest) -> Profile:
        """
        Update the fields present in the request.

        The cached session of the user is dropped so the new name is seen
        on the next request.
        """
        profile = await self.get_profile_by_id_or_raise(user_id)
        changes = request.model_dump(exclude_unset=True)
        for field, value in changes.items():
            setattr(profile, field, value)

        await self.db.commit()
        session_store.invalidate(user_id)

        logger.info(
            "Profile updated",
            extra={"user_id": str(user_id), "fields": sorted(changes)}
        )
        return profile

    async def set_role(self, user_id: UUID, role: str, granted: bool) -> list[str]:
        """
        Grant or revoke a role. The user's cached session is dropped.

        Returns:
            Roles of the user after the change
        """
        await self.get_profile_by_id_or_raise(user_id)

        existing = await self.db.execute(
            select(UserRole).where(UserRole.user_id == user_id, UserRole.role == role)
        )
        current = existing.scalar_one_or_none()
        if granted and current is None:
            self.db.add(UserRole(user_id=user_id, role=role))
        elif not granted and current is not None:
            await self.db.execute(
                delete(UserRole).where(UserRole.user_id == user_id, UserRole.role == role)
            )
        await self.db.commit()
        session_store.invalidate(user_id)

        result = await self.db.execute(select(UserRole.role).where(UserRole.user_id == user_id))
        roles = sorted(result.scalars())

        logger.info(
            "User role changed",
            extra={"user_id": str(user_id), "role": role, "granted": granted}
        )
        return roles
