#!/usr/bin/env python3
"""Setup script for the travel booking API: migrations and sample data."""

import asyncio
import logging
import sys
from datetime import date, timedelta
from pathlib import Path
from uuid import uuid4

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command  # noqa: E402
from alembic.config import Config  # noqa: E402
from sqlalchemy import func, select  # noqa: E402

from travel_booking.core.auth import create_access_token  # noqa: E402
from travel_booking.core.config import settings  # noqa: E402
from travel_booking.core.database import async_session_factory, close_db  # noqa: E402
from travel_booking.models import (  # noqa: E402
    ADMIN_ROLE,
    Agent,
    Branch,
    Departure,
    DeparturePrice,
    NavigationItem,
    Package,
    PackageCommission,
    Profile,
    SiteSetting,
    UserRole,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_PACKAGES = [
    {
        "title": "Umroh Reguler 9 Hari",
        "slug": "umroh-reguler-9-hari",
        "package_type": "reguler",
        "duration_days": 9,
        "minimum_dp": 5_000_000,
        "prices": {"quad": 28_500_000, "triple": 30_000_000, "double": 32_500_000},
    },
    {
        "title": "Umroh Plus Turki 12 Hari",
        "slug": "umroh-plus-turki-12-hari",
        "package_type": "plus",
        "duration_days": 12,
        "minimum_dp": 10_000_000,
        "prices": {"quad": 38_000_000, "triple": 40_000_000, "double": 43_000_000, "single": 49_000_000},
    },
]


def run_migrations() -> None:
    """Upgrade the database schema to the latest revision."""
    logger.info("Running database migrations...")
    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data() -> None:
    """Seed packages, departures, branding, navigation, a branch, an agent and an admin."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        try:
            existing = await db.execute(select(func.count(Package.id)))
            if existing.scalar_one() > 0:
                logger.info("Sample data already exists, skipping...")
                return

            first_departure = date.today() + timedelta(days=45)
            for sample in SAMPLE_PACKAGES:
                package = Package(
                    title=sample["title"],
                    slug=sample["slug"],
                    package_type=sample["package_type"],
                    duration_days=sample["duration_days"],
                    minimum_dp=sample["minimum_dp"],
                    commissions=[
                        PackageCommission(pic_type="cabang", commission_amount=1_000_000),
                        PackageCommission(pic_type="agen", commission_amount=750_000),
                    ],
                )
                db.add(package)
                for i in range(3):
                    departure_date = first_departure + timedelta(days=i * 30)
                    package.departures.append(
                        Departure(
                            departure_date=departure_date,
                            return_date=departure_date + timedelta(days=sample["duration_days"] - 1),
                            quota=45,
                            remaining_quota=45,
                            prices=[
                                DeparturePrice(room_type=room_type, price=price)
                                for room_type, price in sample["prices"].items()
                            ],
                        )
                    )

            branch = Branch(name="Cabang Bandung", city="Bandung")
            db.add(branch)
            db.add(Agent(name="Agen Siti", phone="081200000000", branch=branch))

            db.add(SiteSetting(
                category="general",
                key="branding",
                value={"company_name": "UmrohPlus", "tagline": "Travel & Tours", "phone": "021-0000000"},
            ))

            home = NavigationItem(label="Beranda", url="/", sort_order=0)
            packages = NavigationItem(label="Paket Umroh", url="/paket", sort_order=1)
            db.add_all([home, packages])
            await db.flush()
            db.add(NavigationItem(label="Umroh Plus", url="/paket?type=plus", sort_order=0, parent_id=packages.id))

            admin_id = uuid4()
            db.add(Profile(id=admin_id, name="Administrator", email="admin@umrohplus.example"))
            db.add(UserRole(user_id=admin_id, role=ADMIN_ROLE))

            await db.commit()
            logger.info("Sample data created successfully!")

            if settings.bearer_token_secret:
                token = create_access_token(admin_id, expires_in=timedelta(days=7), email="admin@umrohplus.example")
                logger.info(f"Admin access token (7 days): {token}")
            else:
                logger.info(f"Admin user id: {admin_id} (set BEARER_TOKEN_SECRET to mint a token)")

        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to create sample data: {e}")
            raise

    await close_db()


def main() -> None:
    """Main setup function."""
    logger.info("Starting travel booking API setup...")

    run_migrations()
    asyncio.run(create_sample_data())

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn travel_booking.main:app --reload")


if __name__ == "__main__":
    main()
