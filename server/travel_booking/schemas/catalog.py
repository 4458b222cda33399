"""Package, departure and navigation Pydantic schemas."""

from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..models.booking import PicType
from ..models.departure import DepartureStatus


class DeparturePriceInput(BaseModel):
    """Per-occupant price of a room type."""

    room_type: str = Field(..., min_length=1, max_length=20)
    price: int = Field(..., ge=0, description="Price per occupant in Rupiah")


class CreatePackageRequest(BaseModel):
    """Request schema for creating a package."""

    title: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: Optional[str] = None
    package_type: Optional[str] = Field(None, max_length=50)
    duration_days: Optional[int] = Field(None, ge=1, le=365)
    image_url: Optional[str] = Field(None, max_length=1024)
    is_active: bool = True
    minimum_dp: int = Field(0, ge=0, description="Minimum down payment in Rupiah")
    dp_deadline_days: Optional[int] = Field(None, ge=0, le=365)
    full_deadline_days: Optional[int] = Field(None, ge=0, le=365)
    commissions: dict[PicType, int] = Field(
        default_factory=dict,
        description="Commission per pilgrim keyed by PIC type"
    )

    @model_validator(mode="after")
    def validate_commissions(self):
        if any(amount < 0 for amount in self.commissions.values()):
            raise ValueError("Commission amounts must not be negative")
        return self


class CreateDepartureRequest(BaseModel):
    """Request schema for creating a departure with its price list."""

    package_id: UUID = Field(..., description="Package this departure belongs to")
    departure_date: date
    return_date: Optional[date] = None
    quota: int = Field(..., ge=1, le=1000, description="Seats on this departure")
    prices: list[DeparturePriceInput] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_dates_and_prices(self):
        if self.return_date and self.return_date < self.departure_date:
            raise ValueError("return_date must not be before departure_date")
        room_types = [price.room_type for price in self.prices]
        if len(room_types) != len(set(room_types)):
            raise ValueError("Each room type may be priced only once")
        return self


class GetPackageRequest(BaseModel):
    """Request schema for fetching a package by slug."""

    slug: str = Field(..., min_length=1, max_length=255)


class CreateNavigationItemRequest(BaseModel):
    """Request schema for adding a menu entry."""

    label: str = Field(..., min_length=1, max_length=100)
    url: str = Field(..., min_length=1, max_length=1024)
    parent_id: Optional[UUID] = None
    sort_order: int = 0
    is_active: bool = True
    open_in_new_tab: bool = False


class DeparturePriceOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    room_type: str
    price: int


class DepartureOut(BaseModel):
    """Departure response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    package_id: UUID
    departure_date: date
    return_date: Optional[date] = None
    quota: int
    remaining_quota: int
    status: DepartureStatus
    prices: list[DeparturePriceOut] = Field(default_factory=list)


class PackageCard(BaseModel):
    """Package as listed in the catalog."""

    id: UUID
    title: str
    slug: str
    package_type: Optional[str] = None
    duration_days: Optional[int] = None
    image_url: Optional[str] = None
    lowest_price: int = Field(..., description="Cheapest per-occupant price, 0 if unpriced")


class PackageListResponse(BaseModel):
    items: list[PackageCard]


class PackageDetail(BaseModel):
    """Package with its departures and prices."""

    id: UUID
    title: str
    slug: str
    description: Optional[str] = None
    package_type: Optional[str] = None
    duration_days: Optional[int] = None
    image_url: Optional[str] = None
    is_active: bool
    minimum_dp: int
    dp_deadline_days: int
    full_deadline_days: int
    lowest_price: int
    departures: list[DepartureOut]


class NavigationNode(BaseModel):
    """Menu entry with nested children."""

    id: UUID
    label: str
    url: str
    open_in_new_tab: bool = False
    children: list["NavigationNode"] = Field(default_factory=list)


class NavigationResponse(BaseModel):
    items: list[NavigationNode]


class PicTarget(BaseModel):
    """Branch or agent that can be responsible for a booking."""

    id: UUID
    name: str
    pic_type: PicType
    branch_id: Optional[UUID] = None


class PicTargetsResponse(BaseModel):
    branches: list[PicTarget]
    agents: list[PicTarget]


class Package(BaseModel):
    """Package response schema for back-office writes."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    slug: str
    description: Optional[str] = None
    package_type: Optional[str] = None
    duration_days: Optional[int] = None
    image_url: Optional[str] = None
    is_active: bool
    minimum_dp: int
    dp_deadline_days: Optional[int] = None
    full_deadline_days: Optional[int] = None


class NavigationItem(BaseModel):
    """Stored menu entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    parent_id: Optional[UUID] = None
    label: str
    url: str
    sort_order: int
    is_active: bool
    open_in_new_tab: bool


class Branding(BaseModel):
    company_name: str
    tagline: str
    logo_url: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
