"""Back-office Pydantic schemas."""

from pydantic import BaseModel, Field


class DashboardStats(BaseModel):
    """Headline numbers of the admin dashboard."""

    total_bookings: int = Field(..., ge=0)
    waiting_payment_bookings: int = Field(..., ge=0)
    pending_payments: int = Field(..., ge=0)
    active_packages: int = Field(..., ge=0)
    active_agents: int = Field(..., ge=0)
    paid_revenue: int = Field(..., ge=0, description="Sum of verified payments in Rupiah")


class ReminderRunResponse(BaseModel):
    """Result of a payment reminder sweep."""

    bookings_checked: int
    notifications_created: int


class CacheFlushResponse(BaseModel):
    """Pending aggregate invalidations applied by a manual flush."""

    flushed: int = Field(..., ge=0)
