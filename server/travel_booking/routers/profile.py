"""Profile router for the caller's profile and session."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import SessionContext, SessionDependency, session_store
from ..core.database import get_db
from ..core.exceptions import ProblemDetailsException
from ..schemas.profile import Profile, ProfileResponse, Session, UpdateProfileRequest
from ..services.profile_service import ProfileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/profile", tags=["profile"])

DB_DEPENDENCY = Depends(get_db)


def _convert_session_to_schema(session: SessionContext) -> Session:
    return Session(
        user_id=session.user_id,
        email=session.email,
        name=session.name,
        roles=sorted(session.roles),
        is_admin=session.is_admin,
    )


@router.post("/me", response_model=ProfileResponse)
async def get_me(
    db: AsyncSession = DB_DEPENDENCY,
    session: SessionContext = SessionDependency
) -> JSONResponse:
    """Profile and resolved session of the caller."""
    profile_service = ProfileService(db)

    try:
        profile = await profile_service.get_profile_by_id_or_raise(session.user_id)
        response_data = ProfileResponse(
            profile=Profile.model_validate(profile),
            session=_convert_session_to_schema(session),
        )
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error loading profile",
            extra={"user_id": str(session.user_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/update", response_model=Profile)
async def update_profile(
    request: UpdateProfileRequest,
    db: AsyncSession = DB_DEPENDENCY,
    session: SessionContext = SessionDependency
) -> JSONResponse:
    """Update the caller's profile."""
    profile_service = ProfileService(db)

    try:
        profile = await profile_service.update_profile(session.user_id, request)
        response_data = Profile.model_validate(profile)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error updating profile",
            extra={"user_id": str(session.user_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/session/refresh", response_model=Session)
async def refresh_session(
    db: AsyncSession = DB_DEPENDENCY,
    session: SessionContext = SessionDependency
) -> JSONResponse:
    """Reload the caller's roles and profile into the session cache."""
    try:
        refreshed = await session_store.refresh(db, session.user_id)
        response_data = _convert_session_to_schema(refreshed)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error refreshing session",
            extra={"user_id": str(session.user_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
