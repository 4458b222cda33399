"""Catalog router for public package, navigation and branding reads."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..core.exceptions import ProblemDetailsException
from ..schemas.catalog import (
    Branding,
    GetPackageRequest,
    NavigationResponse,
    PackageDetail,
    PackageListResponse,
    PicTargetsResponse,
)
from ..services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/catalog", tags=["catalog"])

DB_DEPENDENCY = Depends(get_db)


@router.post("/packages", response_model=PackageListResponse)
async def list_packages(db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """List active packages with their lowest per-occupant price."""
    catalog_service = CatalogService(db)

    try:
        cards = await catalog_service.list_packages()
        response_data = PackageListResponse(items=cards)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error listing packages",
            extra={"error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/package", response_model=PackageDetail)
async def get_package(
    request: GetPackageRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Get an active package with departures and room prices."""
    catalog_service = CatalogService(db)

    try:
        detail = await catalog_service.get_package_by_slug(request.slug)

        logger.info(
            "Package retrieved successfully",
            extra={"package_id": str(detail.id), "slug": request.slug}
        )

        return JSONResponse(status_code=200, content=detail.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error retrieving package",
            extra={"slug": request.slug, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/navigation", response_model=NavigationResponse)
async def get_navigation(db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Active menu entries as a tree."""
    catalog_service = CatalogService(db)

    try:
        nodes = await catalog_service.get_navigation()
        response_data = NavigationResponse(items=nodes)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error building navigation",
            extra={"error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/pic-targets", response_model=PicTargetsResponse)
async def list_pic_targets(db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Branches and agents selectable as the person in charge of a booking."""
    catalog_service = CatalogService(db)

    try:
        targets = await catalog_service.list_pic_targets()
        return JSONResponse(status_code=200, content=targets.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error listing PIC targets",
            extra={"error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/branding", response_model=Branding)
async def get_branding(db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Company name, tagline and contact details."""
    catalog_service = CatalogService(db)

    try:
        branding = Branding.model_validate(await catalog_service.get_branding())
        return JSONResponse(status_code=200, content=branding.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error loading branding",
            extra={"error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
