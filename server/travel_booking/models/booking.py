"""Booking, booking room and pilgrim model definitions."""

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, CheckConstraint, Date, DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base, utcnow

if TYPE_CHECKING:
    from .departure import Departure
    from .package import Package
    from .payment import Payment
    from .profile import Profile


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    DRAFT = "draft"
    WAITING_PAYMENT = "waiting_payment"
    PAID = "paid"
    CANCELLED = "cancelled"


class PicType(str, Enum):
    """Who is responsible for the booking."""
    PUSAT = "pusat"
    CABANG = "cabang"
    AGEN = "agen"


class Gender(str, Enum):
    """Pilgrim gender enumeration."""
    MALE = "male"
    FEMALE = "female"


class Booking(Base):
    """Booking entity created by the booking wizard."""

    __tablename__ = "bookings"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    booking_code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)

    # Owner and booked product
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    package_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("packages.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    departure_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("package_departures.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    # Price snapshot taken at creation time
    total_price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[BookingStatus] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.DRAFT,
        index=True
    )

    # Person in charge
    pic_type: Mapped[PicType] = mapped_column(String(20), nullable=False, default=PicType.PUSAT)
    pic_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now()
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("total_price >= 0", name="ck_booking_total_price_non_negative"),
        CheckConstraint("length(booking_code) > 0", name="ck_booking_code_not_empty"),
    )

    # Relationships
    profile: Mapped["Profile"] = relationship("Profile")
    package: Mapped["Package"] = relationship("Package")
    departure: Mapped["Departure"] = relationship("Departure")
    rooms: Mapped[list["BookingRoom"]] = relationship(
        "BookingRoom",
        back_populates="booking",
        cascade="all, delete-orphan"
    )
    pilgrims: Mapped[list["BookingPilgrim"]] = relationship(
        "BookingPilgrim",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingPilgrim.position"
    )
    payments: Mapped[list["Payment"]] = relationship(
        "Payment",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="Payment.created_at"
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, code='{self.booking_code}', "
            f"total_price={self.total_price}, status={self.status})>"
        )


class BookingRoom(Base):
    """Room line of a booking."""

    __tablename__ = "booking_rooms"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    booking_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    room_type: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    subtotal: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_booking_room_quantity_positive"),
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="rooms")

    def __repr__(self) -> str:
        return f"<BookingRoom(room_type='{self.room_type}', quantity={self.quantity}, subtotal={self.subtotal})>"


class BookingPilgrim(Base):
    """Occupant travelling on a booking."""

    __tablename__ = "booking_pilgrims"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    booking_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    gender: Mapped[Gender] = mapped_column(String(10), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    nik: Mapped[str | None] = mapped_column(String(32), nullable=True)
    passport_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    passport_expiry: Mapped[date | None] = mapped_column(Date, nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("length(name) > 0", name="ck_booking_pilgrim_name_not_empty"),
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="pilgrims")

    def __repr__(self) -> str:
        return f"<BookingPilgrim(booking_id={self.booking_id}, name='{self.name}')>"
