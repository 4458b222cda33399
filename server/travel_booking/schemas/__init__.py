"""Pydantic schemas for request/response validation."""

from .admin import *  # noqa: F403
from .booking import *  # noqa: F403
from .catalog import *  # noqa: F403
from .common import *  # noqa: F403
from .health import *  # noqa: F403
from .invoice import *  # noqa: F403
from .notification import *  # noqa: F403
from .payment import *  # noqa: F403
from .profile import *  # noqa: F403
