"""Catalog service for packages, departures, navigation and site settings."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.config import settings
from ..core.events import Aggregate, ChangeEvent, aggregate_cache
from ..core.exceptions import ConflictError, NotFoundError
from ..models.booking import PicType
from ..models.content import NavigationItem, SiteSetting
from ..models.departure import Departure, DeparturePrice
from ..models.organization import Agent, Branch
from ..models.package import Package, PackageCommission
from ..schemas.catalog import (
    CreateDepartureRequest,
    CreateNavigationItemRequest,
    CreatePackageRequest,
    DepartureOut,
    NavigationNode,
    PackageCard,
    PackageDetail,
    PicTarget,
    PicTargetsResponse,
)
from . import pricing
from .navigation import build_navigation_tree

logger = logging.getLogger(__name__)

DEFAULT_BRANDING: dict[str, Any] = {
    "company_name": "UmrohPlus",
    "tagline": "Travel & Tours",
    "logo_url": None,
    "address": None,
    "phone": None,
    "email": None,
}


def _departure_prices(package: Package) -> list[list[int]]:
    return [[price.price for price in departure.prices] for departure in package.departures]


class CatalogService:
    """Service for package catalog operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_packages(self) -> list[PackageCard]:
        """Active packages with their lowest price, served from the aggregate cache."""
        return await aggregate_cache.get_or_compute(Aggregate.PACKAGE_CATALOG, self._load_package_cards)

    async def _load_package_cards(self) -> list[PackageCard]:
        stmt = (
            select(Package)
            .options(selectinload(Package.departures).selectinload(Departure.prices))
            .where(Package.is_active.is_(True))
            .order_by(Package.created_at.desc(), Package.title)
        )
        result = await self.db.execute(stmt)
        packages = list(result.scalars())

        logger.info("Package catalog loaded", extra={"package_count": len(packages)})

        return [
            PackageCard(
                id=package.id,
                title=package.title,
                slug=package.slug,
                package_type=package.package_type,
                duration_days=package.duration_days,
                image_url=package.image_url,
                lowest_price=pricing.lowest_package_price(_departure_prices(package)),
            )
            for package in packages
        ]

    async def get_package_by_slug(self, slug: str) -> PackageDetail:
        """
        Get an active package with departures and prices.

        Raises:
            NotFoundError: If no active package has this slug
        """
        stmt = (
            select(Package)
            .options(selectinload(Package.departures).selectinload(Departure.prices))
            .where(Package.slug == slug, Package.is_active.is_(True))
        )
        result = await self.db.execute(stmt)
        package = result.scalar_one_or_none()
        if not package:
            logger.warning("Package not found", extra={"slug": slug})
            raise NotFoundError(resource_type="package", resource_id=slug)

        departures = sorted(package.departures, key=lambda departure: departure.departure_date)
        return PackageDetail(
            id=package.id,
            title=package.title,
            slug=package.slug,
            description=package.description,
            package_type=package.package_type,
            duration_days=package.duration_days,
            image_url=package.image_url,
            is_active=package.is_active,
            minimum_dp=package.minimum_dp,
            dp_deadline_days=dp_deadline_days(package),
            full_deadline_days=full_deadline_days(package),
            lowest_price=pricing.lowest_package_price(_departure_prices(package)),
            departures=[DepartureOut.model_validate(departure) for departure in departures],
        )

    async def get_package_by_id(self, package_id: UUID) -> Package | None:
        """Get package by ID."""
        return await self.db.get(Package, package_id)

    async def get_package_by_id_or_raise(self, package_id: UUID) -> Package:
        """Get package by ID or raise NotFoundError."""
        package = await self.get_package_by_id(package_id)
        if not package:
            logger.warning("Package not found", extra={"package_id": str(package_id)})
            raise NotFoundError(resource_type="package", resource_id=str(package_id))
        return package

    async def get_departure_by_id(self, departure_id: UUID) -> Departure | None:
        """Get departure by ID with its package and prices."""
        stmt = (
            select(Departure)
            .options(selectinload(Departure.prices), selectinload(Departure.package))
            .where(Departure.id == departure_id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_departure_by_id_or_raise(self, departure_id: UUID) -> Departure:
        """Get departure by ID or raise NotFoundError."""
        departure = await self.get_departure_by_id(departure_id)
        if not departure:
            logger.warning("Departure not found", extra={"departure_id": str(departure_id)})
            raise NotFoundError(resource_type="departure", resource_id=str(departure_id))
        return departure

    async def get_departure_with_lock(self, departure_id: UUID) -> Departure:
        """
        Get departure by ID, serialising quota changes on it.

        Raises:
            NotFoundError: If departure not found
        """
        # Advisory lock released at transaction end; SQLite (tests) has none
        if self.db.bind and self.db.bind.dialect.name == "postgresql":
            await self.db.execute(
                text("SELECT pg_advisory_xact_lock(hashtext(:departure_id))"),
                {"departure_id": str(departure_id)}
            )

        departure = await self.get_departure_by_id_or_raise(departure_id)

        logger.debug("Acquired lock for departure", extra={"departure_id": str(departure_id)})
        return departure

    async def create_package(self, request: CreatePackageRequest) -> Package:
        """
        Create a package and its commission table.

        Raises:
            ConflictError: If the slug is taken
        """
        existing = await self.db.execute(select(Package.id).where(Package.slug == request.slug))
        if existing.scalar_one_or_none():
            raise ConflictError(
                detail=f"Package slug '{request.slug}' is already in use",
                conflicting_resource={"slug": request.slug}
            )

        package = Package(
            title=request.title,
            slug=request.slug,
            description=request.description,
            package_type=request.package_type,
            duration_days=request.duration_days,
            image_url=request.image_url,
            is_active=request.is_active,
            minimum_dp=request.minimum_dp,
            dp_deadline_days=request.dp_deadline_days,
            full_deadline_days=request.full_deadline_days,
            commissions=[
                PackageCommission(pic_type=pic_type.value, commission_amount=amount)
                for pic_type, amount in request.commissions.items()
            ],
        )
        self.db.add(package)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError(
                detail=f"Package slug '{request.slug}' is already in use",
                conflicting_resource={"slug": request.slug}
            )

        aggregate_cache.publish(ChangeEvent.PACKAGE_CHANGED)

        logger.info(
            "Package created successfully",
            extra={"package_id": str(package.id), "slug": package.slug}
        )
        return package

    async def create_departure(self, request: CreateDepartureRequest) -> Departure:
        """
        Create a departure with its price list. All seats start available.

        Raises:
            NotFoundError: If package not found
            ValidationError: If a room type is unknown
        """
        await self.get_package_by_id_or_raise(request.package_id)
        for price in request.prices:
            pricing.occupancy(price.room_type)

        departure = Departure(
            package_id=request.package_id,
            departure_date=request.departure_date,
            return_date=request.return_date,
            quota=request.quota,
            remaining_quota=request.quota,
            prices=[
                DeparturePrice(room_type=price.room_type, price=price.price)
                for price in request.prices
            ],
        )
        self.db.add(departure)
        await self.db.commit()

        aggregate_cache.publish(ChangeEvent.PACKAGE_CHANGED)

        logger.info(
            "Departure created successfully",
            extra={
                "departure_id": str(departure.id),
                "package_id": str(request.package_id),
                "departure_date": request.departure_date.isoformat(),
                "quota": request.quota
            }
        )
        return departure

    async def commission_amount(self, package_id: UUID, pic_type: str) -> int:
        """Commission per pilgrim for a PIC type; head office earns none."""
        if pic_type == PicType.PUSAT.value:
            return 0
        stmt = select(PackageCommission.commission_amount).where(
            PackageCommission.package_id == package_id,
            PackageCommission.pic_type == pic_type,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none() or 0

    async def list_pic_targets(self) -> PicTargetsResponse:
        """Active branches and agents a booking can be assigned to."""
        branches = await self.db.execute(
            select(Branch).where(Branch.is_active.is_(True)).order_by(Branch.name)
        )
        agents = await self.db.execute(
            select(Agent).where(Agent.is_active.is_(True)).order_by(Agent.name)
        )
        return PicTargetsResponse(
            branches=[
                PicTarget(id=branch.id, name=branch.name, pic_type=PicType.CABANG)
                for branch in branches.scalars()
            ],
            agents=[
                PicTarget(id=agent.id, name=agent.name, pic_type=PicType.AGEN, branch_id=agent.branch_id)
                for agent in agents.scalars()
            ],
        )

    async def get_navigation(self) -> list[NavigationNode]:
        result = await self.db.execute(select(NavigationItem))
        return build_navigation_tree(result.scalars())

    async def create_navigation_item(self, request: CreateNavigationItemRequest) -> NavigationItem:
        """
        Add a menu entry.

        Raises:
            NotFoundError: If the parent item does not exist
        """
        if request.parent_id and not await self.db.get(NavigationItem, request.parent_id):
            raise NotFoundError(resource_type="navigation_item", resource_id=str(request.parent_id))

        item = NavigationItem(**request.model_dump())
        self.db.add(item)
        await self.db.commit()

        logger.info("Navigation item created", extra={"item_id": str(item.id), "label": item.label})
        return item

    async def get_branding(self) -> dict[str, Any]:
        """Company branding with defaults for unset keys."""
        return await load_branding(self.db)


async def load_branding(db: AsyncSession) -> dict[str, Any]:
    stmt = select(SiteSetting.value).where(
        SiteSetting.category == "general",
        SiteSetting.key == "branding",
    )
    result = await db.execute(stmt)
    stored = result.scalar_one_or_none() or {}
    return {**DEFAULT_BRANDING, **{key: value for key, value in stored.items() if value not in (None, "")}}


def dp_deadline_days(package: Package) -> int:
    if package.dp_deadline_days is None:
        return settings.default_dp_deadline_days
    return package.dp_deadline_days


def full_deadline_days(package: Package) -> int:
    if package.full_deadline_days is None:
        return settings.default_full_deadline_days
    return package.full_deadline_days
