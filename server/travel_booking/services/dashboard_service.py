"""Dashboard service for back-office statistics."""

import asyncio
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.events import Aggregate, aggregate_cache
from ..models.booking import Booking, BookingStatus
from ..models.organization import Agent
from ..models.package import Package
from ..models.payment import Payment, PaymentStatus
from ..schemas.admin import DashboardStats

logger = logging.getLogger(__name__)


class DashboardService:
    """Computes dashboard counters, one session per counter."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _scalar(self, stmt) -> int:
        async with self.session_factory() as db:
            result = await db.execute(stmt)
            return result.scalar_one() or 0

    async def compute_stats(self) -> DashboardStats:
        (
            total_bookings,
            waiting_payment,
            pending_payments,
            active_packages,
            active_agents,
            paid_revenue,
        ) = await asyncio.gather(
            self._scalar(select(func.count(Booking.id))),
            self._scalar(
                select(func.count(Booking.id)).where(Booking.status == BookingStatus.WAITING_PAYMENT)
            ),
            self._scalar(
                select(func.count(Payment.id)).where(Payment.status == PaymentStatus.PENDING)
            ),
            self._scalar(select(func.count(Package.id)).where(Package.is_active.is_(True))),
            self._scalar(select(func.count(Agent.id)).where(Agent.is_active.is_(True))),
            self._scalar(
                select(func.coalesce(func.sum(Payment.amount), 0)).where(Payment.status == PaymentStatus.PAID)
            ),
        )

        logger.info("Dashboard statistics computed", extra={"total_bookings": total_bookings})

        return DashboardStats(
            total_bookings=total_bookings,
            waiting_payment_bookings=waiting_payment,
            pending_payments=pending_payments,
            active_packages=active_packages,
            active_agents=active_agents,
            paid_revenue=paid_revenue,
        )

    async def get_stats(self) -> DashboardStats:
        """Dashboard statistics, served from the aggregate cache."""
        return await aggregate_cache.get_or_compute(Aggregate.DASHBOARD_STATS, self.compute_stats)
