"""Package and commission model definitions."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

if TYPE_CHECKING:
    from .departure import Departure


class Package(Base):
    """Travel package offered to customers."""

    __tablename__ = "packages"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Package information
    title: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    package_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    duration_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)

    # Payment terms
    minimum_dp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    dp_deadline_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    full_deadline_days: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("minimum_dp >= 0", name="ck_package_minimum_dp_non_negative"),
        CheckConstraint("length(slug) > 0", name="ck_package_slug_not_empty"),
    )

    # Relationships
    departures: Mapped[list["Departure"]] = relationship(
        "Departure",
        back_populates="package",
        cascade="all, delete-orphan"
    )
    commissions: Mapped[list["PackageCommission"]] = relationship(
        "PackageCommission",
        back_populates="package",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Package(id={self.id}, title='{self.title}', slug='{self.slug}')>"


class PackageCommission(Base):
    """Per-pilgrim commission paid to a branch or agent for a package."""

    __tablename__ = "package_commissions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    package_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("packages.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    pic_type: Mapped[str] = mapped_column(String(20), nullable=False)
    commission_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("package_id", "pic_type", name="uq_package_commission_pic_type"),
        CheckConstraint("commission_amount >= 0", name="ck_package_commission_non_negative"),
    )

    package: Mapped["Package"] = relationship("Package", back_populates="commissions")

    def __repr__(self) -> str:
        return (
            f"<PackageCommission(package_id={self.package_id}, pic_type='{self.pic_type}', "
            f"amount={self.commission_amount})>"
        )
