"""Departure and departure price model definitions."""

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

if TYPE_CHECKING:
    from .package import Package


class DepartureStatus(str, Enum):
    """Departure status enumeration."""
    OPEN = "open"
    CLOSED = "closed"


class Departure(Base):
    """Departure entity representing a dated run of a package."""

    __tablename__ = "package_departures"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Foreign key to package
    package_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("packages.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # Departure details
    departure_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    return_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    quota: Mapped[int] = mapped_column(Integer, nullable=False)
    remaining_quota: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[DepartureStatus] = mapped_column(
        String(20),
        nullable=False,
        default=DepartureStatus.OPEN
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("quota >= 0", name="ck_departure_quota_non_negative"),
        CheckConstraint("remaining_quota >= 0", name="ck_departure_remaining_quota_non_negative"),
        CheckConstraint("remaining_quota <= quota", name="ck_departure_remaining_quota_lte_quota"),
    )

    # Relationships
    package: Mapped["Package"] = relationship("Package", back_populates="departures")
    prices: Mapped[list["DeparturePrice"]] = relationship(
        "DeparturePrice",
        back_populates="departure",
        cascade="all, delete-orphan",
        order_by="DeparturePrice.price"
    )

    def __repr__(self) -> str:
        return (
            f"<Departure(id={self.id}, package_id={self.package_id}, "
            f"departure_date={self.departure_date}, quota={self.remaining_quota}/{self.quota})>"
        )


class DeparturePrice(Base):
    """Per-occupant price of one room type on a departure."""

    __tablename__ = "departure_prices"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    departure_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("package_departures.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    room_type: Mapped[str] = mapped_column(String(20), nullable=False)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        UniqueConstraint("departure_id", "room_type", name="uq_departure_price_room_type"),
        CheckConstraint("price >= 0", name="ck_departure_price_non_negative"),
    )

    departure: Mapped["Departure"] = relationship("Departure", back_populates="prices")

    def __repr__(self) -> str:
        return f"<DeparturePrice(departure_id={self.departure_id}, room_type='{self.room_type}', price={self.price})>"
