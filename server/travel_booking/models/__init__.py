"""Models module exporting all database models."""

from .booking import Booking, BookingPilgrim, BookingRoom, BookingStatus, Gender, PicType
from .content import NavigationItem, SiteSetting
from .departure import Departure, DeparturePrice, DepartureStatus
from .notification import Notification
from .organization import Agent, Branch
from .package import Package, PackageCommission
from .payment import Payment, PaymentStatus, PaymentType
from .profile import ADMIN_ROLE, Profile, UserRole

__all__ = [
    # Catalog entities
    "Package",
    "PackageCommission",
    "Departure",
    "DeparturePrice",
    "DepartureStatus",

    # Booking entities
    "Booking",
    "BookingRoom",
    "BookingPilgrim",
    "BookingStatus",
    "Gender",
    "PicType",

    # Payment entity
    "Payment",
    "PaymentStatus",
    "PaymentType",

    # Users and organization
    "Profile",
    "UserRole",
    "ADMIN_ROLE",
    "Branch",
    "Agent",

    # Content and messaging
    "SiteSetting",
    "NavigationItem",
    "Notification",
]
