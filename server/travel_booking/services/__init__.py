"""Service layer package."""

from .booking_service import BookingService
from .catalog_service import CatalogService
from .dashboard_service import DashboardService
from .invoice_service import InvoiceService
from .notification_service import NotificationService
from .payment_service import PaymentService
from .profile_service import ProfileService
from .reminder_service import ReminderService
from .storage_service import StorageService

__all__ = [
    "BookingService",
    "CatalogService",
    "DashboardService",
    "InvoiceService",
    "NotificationService",
    "PaymentService",
    "ProfileService",
    "ReminderService",
    "StorageService",
]
