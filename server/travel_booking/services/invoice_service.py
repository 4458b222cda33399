"""
Invoice assembly and rendering.

fetch_invoice_data() runs its five reads concurrently, each on its own
session, and joins them into one InvoiceData. render_invoice_html() turns
that into a self-contained printable document; every interpolated value
goes through html.escape.
"""

import asyncio
import html
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from ..core.auth import SessionContext
from ..core.exceptions import NotFoundError
from ..core.observability import metrics_collector
from ..models.booking import Booking, BookingPilgrim, BookingRoom, BookingStatus
from ..models.payment import Payment, PaymentStatus
from .catalog_service import load_branding

logger = logging.getLogger(__name__)

MONTHS_ID = (
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
)

STATUS_LABELS = {
    "draft": "Draft",
    "waiting_payment": "Menunggu Pembayaran",
    "paid": "Lunas",
    "cancelled": "Dibatalkan",
    "pending": "Pending",
    "failed": "Gagal",
}

STATUS_BADGES = {
    "paid": "status-paid",
    "waiting_payment": "status-waiting",
    "cancelled": "status-cancelled",
}

ROOM_LABELS = {
    "quad": "Quad (4 orang)",
    "triple": "Triple (3 orang)",
    "double": "Double (2 orang)",
    "single": "Single (1 orang)",
}

GENDER_LABELS = {
    "male": "Laki-laki",
    "female": "Perempuan",
}

PAYMENT_TYPE_LABELS = {
    "dp": "DP (Uang Muka)",
    "installment": "Cicilan",
    "full": "Pelunasan",
}


@dataclass(frozen=True)
class InvoiceRoom:
    room_type: str
    quantity: int
    price: int
    subtotal: int


@dataclass(frozen=True)
class InvoicePilgrim:
    name: str
    gender: Optional[str]


@dataclass(frozen=True)
class InvoicePayment:
    payment_type: Optional[str]
    amount: int
    status: Optional[str]
    paid_at: Optional[datetime]


@dataclass(frozen=True)
class InvoiceData:
    """Everything printed on an invoice."""

    booking_id: UUID
    owner_id: UUID
    booking_code: str
    customer_name: str
    customer_email: str
    package_title: str
    departure_date: Optional[date]
    total_price: int
    created_at: datetime
    status: str
    company_name: str = "UmrohPlus"
    company_tagline: str = "Travel & Tours"
    logo_url: str = ""
    pilgrims: list[InvoicePilgrim] = field(default_factory=list)
    rooms: list[InvoiceRoom] = field(default_factory=list)
    payments: list[InvoicePayment] = field(default_factory=list)

    @property
    def total_paid(self) -> int:
        return sum(payment.amount for payment in self.payments if payment.status == PaymentStatus.PAID)

    @property
    def remaining(self) -> int:
        return self.total_price - self.total_paid


def format_rupiah(amount: int) -> str:
    """``80000000`` -> ``Rp 80.000.000``."""
    return f"Rp {amount:,}".replace(",", ".")


def format_date_id(value: date | datetime | None) -> str:
    """Indonesian long date, ``-`` when missing."""
    if value is None:
        return "-"
    return f"{value.day} {MONTHS_ID[value.month - 1]} {value.year}"


def _e(value: Any) -> str:
    return html.escape("" if value is None else str(value), quote=True)


class InvoiceService:
    """Service for assembling invoices from several independent reads."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def _load_booking(self, booking_id: UUID) -> Booking | None:
        async with self.session_factory() as db:
            stmt = (
                select(Booking)
                .options(
                    selectinload(Booking.profile),
                    selectinload(Booking.package),
                    selectinload(Booking.departure),
                )
                .where(Booking.id == booking_id)
            )
            result = await db.execute(stmt)
            return result.scalar_one_or_none()

    async def _load_pilgrims(self, booking_id: UUID) -> list[InvoicePilgrim]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(BookingPilgrim.name, BookingPilgrim.gender)
                .where(BookingPilgrim.booking_id == booking_id)
                .order_by(BookingPilgrim.position)
            )
            return [InvoicePilgrim(name=name, gender=gender) for name, gender in result.all()]

    async def _load_rooms(self, booking_id: UUID) -> list[InvoiceRoom]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(BookingRoom.room_type, BookingRoom.quantity, BookingRoom.price, BookingRoom.subtotal)
                .where(BookingRoom.booking_id == booking_id)
            )
            return [InvoiceRoom(*row) for row in result.all()]

    async def _load_payments(self, booking_id: UUID) -> list[InvoicePayment]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Payment.payment_type, Payment.amount, Payment.status, Payment.paid_at)
                .where(Payment.booking_id == booking_id)
                .order_by(Payment.created_at)
            )
            return [InvoicePayment(*row) for row in result.all()]

    async def _load_branding(self) -> dict[str, Any]:
        async with self.session_factory() as db:
            return await load_branding(db)

    async def fetch_invoice_data(self, booking_id: UUID) -> InvoiceData:
        """
        Assemble the invoice of a booking.

        Raises:
            NotFoundError: If booking not found
        """
        booking, pilgrims, rooms, payments, branding = await asyncio.gather(
            self._load_booking(booking_id),
            self._load_pilgrims(booking_id),
            self._load_rooms(booking_id),
            self._load_payments(booking_id),
            self._load_branding(),
        )

        if booking is None:
            logger.warning("Invoice requested for unknown booking", extra={"booking_id": str(booking_id)})
            raise NotFoundError(resource_type="booking", resource_id=str(booking_id))

        profile = booking.profile
        return InvoiceData(
            booking_id=booking.id,
            owner_id=booking.user_id,
            booking_code=booking.booking_code,
            customer_name=(profile.name if profile else None) or "-",
            customer_email=(profile.email if profile else None) or "-",
            package_title=booking.package.title if booking.package else "-",
            departure_date=booking.departure.departure_date if booking.departure else None,
            total_price=booking.total_price,
            created_at=booking.created_at,
            status=BookingStatus(booking.status).value,
            company_name=branding.get("company_name") or "UmrohPlus",
            company_tagline=branding.get("tagline") or "Travel & Tours",
            logo_url=branding.get("logo_url") or "",
            pilgrims=pilgrims,
            rooms=rooms,
            payments=payments,
        )

    async def render_for_session(self, booking_id: UUID, session: SessionContext) -> str:
        """
        Render the invoice of a booking the caller may see.

        Raises:
            NotFoundError: If booking not found
            AuthorizationError: If the caller neither owns it nor is an admin
        """
        data = await self.fetch_invoice_data(booking_id)
        session.require_owner(data.owner_id)

        document = render_invoice_html(data)
        metrics_collector.record_invoice_rendered()

        logger.info(
            "Invoice rendered",
            extra={"booking_id": str(booking_id), "booking_code": data.booking_code}
        )
        return document


def _rooms_section(rooms: list[InvoiceRoom]) -> str:
    if not rooms:
        return ""
    rows = "".join(
        f'<tr><td>{_e(ROOM_LABELS.get(room.room_type, room.room_type))}</td>'
        f'<td class="text-center">{_e(room.quantity)}</td>'
        f'<td class="text-right">{_e(format_rupiah(room.price))}</td>'
        f'<td class="text-right">{_e(format_rupiah(room.subtotal))}</td></tr>'
        for room in rooms
    )
    return f"""
  <div class="section-title">Rincian Kamar</div>
  <table>
    <thead><tr><th>Tipe Kamar</th><th class="text-center">Jumlah</th><th class="text-right">Harga/Pax</th><th class="text-right">Subtotal</th></tr></thead>
    <tbody>
      {rows}
    </tbody>
  </table>"""


def _pilgrims_section(pilgrims: list[InvoicePilgrim]) -> str:
    if not pilgrims:
        return ""
    rows = "".join(
        f"<tr><td>{index}</td><td>{_e(pilgrim.name)}</td>"
        f"<td>{_e(GENDER_LABELS.get(pilgrim.gender or '', pilgrim.gender or '-'))}</td></tr>"
        for index, pilgrim in enumerate(pilgrims, start=1)
    )
    return f"""
  <div class="section-title">Daftar Jemaah ({len(pilgrims)} orang)</div>
  <table>
    <thead><tr><th>No</th><th>Nama</th><th>Jenis Kelamin</th></tr></thead>
    <tbody>
      {rows}
    </tbody>
  </table>"""


def _payments_section(payments: list[InvoicePayment]) -> str:
    if not payments:
        return ""
    rows = "".join(
        f"<tr><td>{_e(PAYMENT_TYPE_LABELS.get(payment.payment_type or '', 'Pelunasan'))}</td>"
        f'<td class="text-right">{_e(format_rupiah(payment.amount))}</td>'
        f"<td>{_e(STATUS_LABELS.get(payment.status or '', payment.status or '-'))}</td>"
        f"<td>{_e(format_date_id(payment.paid_at))}</td></tr>"
        for payment in payments
    )
    return f"""
  <div class="section-title">Riwayat Pembayaran</div>
  <table>
    <thead><tr><th>Tipe</th><th class="text-right">Jumlah</th><th>Status</th><th>Tanggal Bayar</th></tr></thead>
    <tbody>
      {rows}
    </tbody>
  </table>"""


INVOICE_CSS = """
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; color: #1a1a1a; background: #fff; padding: 40px; max-width: 800px; margin: 0 auto; }
    .header { display: flex; justify-content: space-between; align-items: flex-start; border-bottom: 3px solid #0d6b4e; padding-bottom: 20px; margin-bottom: 30px; }
    .company h1 { font-size: 24px; color: #0d6b4e; margin-bottom: 2px; }
    .company p { font-size: 12px; color: #666; }
    .invoice-title { text-align: right; }
    .invoice-title h2 { font-size: 28px; color: #0d6b4e; font-weight: 700; }
    .invoice-title p { font-size: 13px; color: #666; margin-top: 4px; }
    .status-badge { display: inline-block; padding: 4px 12px; border-radius: 20px; font-size: 12px; font-weight: 600; margin-top: 6px; }
    .status-paid { background: #dcfce7; color: #166534; }
    .status-waiting { background: #fef9c3; color: #854d0e; }
    .status-draft { background: #f3f4f6; color: #374151; }
    .status-cancelled { background: #fecaca; color: #991b1b; }
    .info-grid { display: grid; grid-template-columns: 1fr 1fr; gap: 24px; margin-bottom: 30px; }
    .info-box h3 { font-size: 11px; text-transform: uppercase; letter-spacing: 1px; color: #999; margin-bottom: 8px; }
    .info-box p { font-size: 14px; line-height: 1.6; }
    table { width: 100%; border-collapse: collapse; margin-bottom: 24px; }
    th { background: #f0fdf4; color: #0d6b4e; font-size: 12px; text-transform: uppercase; letter-spacing: 0.5px; padding: 10px 12px; text-align: left; border-bottom: 2px solid #0d6b4e; }
    td { padding: 10px 12px; font-size: 13px; border-bottom: 1px solid #e5e7eb; }
    .text-right { text-align: right; }
    .text-center { text-align: center; }
    .summary { margin-left: auto; width: 280px; }
    .summary-row { display: flex; justify-content: space-between; padding: 6px 0; font-size: 14px; }
    .summary-row.total { border-top: 2px solid #0d6b4e; padding-top: 10px; margin-top: 6px; font-weight: 700; font-size: 16px; color: #0d6b4e; }
    .summary-row.remaining { color: #dc2626; font-weight: 600; }
    .section-title { font-size: 14px; font-weight: 700; color: #0d6b4e; margin-bottom: 12px; margin-top: 28px; border-bottom: 1px solid #e5e7eb; padding-bottom: 6px; }
    .footer { margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; text-align: center; font-size: 11px; color: #999; }
    .logo-img { height: 40px; object-fit: contain; }
    @media print { body { padding: 20px; } @page { margin: 15mm; } }
"""


def render_invoice_html(data: InvoiceData) -> str:
    """Render an invoice as a standalone HTML document."""
    logo = (
        f'<img src="{_e(data.logo_url)}" class="logo-img" alt="{_e(data.company_name)}" />'
        if data.logo_url else ""
    )
    badge = STATUS_BADGES.get(data.status, "status-draft")
    remaining = data.remaining
    remaining_row = (
        f'<div class="summary-row remaining"><span>Sisa Pembayaran</span><span>{_e(format_rupiah(remaining))}</span></div>'
        if remaining > 0 else ""
    )

    return f"""<!DOCTYPE html>
<html lang="id">
<head>
  <meta charset="UTF-8">
  <title>Invoice {_e(data.booking_code)}</title>
  <style>{INVOICE_CSS}  </style>
</head>
<body>
  <div class="header">
    <div class="company">
      {logo}
      <h1>{_e(data.company_name)}</h1>
      <p>{_e(data.company_tagline)}</p>
    </div>
    <div class="invoice-title">
      <h2>INVOICE</h2>
      <p>{_e(data.booking_code)}</p>
      <p>{_e(format_date_id(data.created_at))}</p>
      <span class="status-badge {badge}">{_e(STATUS_LABELS.get(data.status, data.status))}</span>
    </div>
  </div>

  <div class="info-grid">
    <div class="info-box">
      <h3>Ditagihkan Kepada</h3>
      <p><strong>{_e(data.customer_name)}</strong><br/>{_e(data.customer_email)}</p>
    </div>
    <div class="info-box">
      <h3>Detail Perjalanan</h3>
      <p><strong>{_e(data.package_title)}</strong><br/>Keberangkatan: {_e(format_date_id(data.departure_date))}</p>
    </div>
  </div>
{_rooms_section(data.rooms)}
{_pilgrims_section(data.pilgrims)}
{_payments_section(data.payments)}

  <div class="summary">
    <div class="summary-row"><span>Total Harga</span><span>{_e(format_rupiah(data.total_price))}</span></div>
    <div class="summary-row"><span>Total Dibayar</span><span>{_e(format_rupiah(data.total_paid))}</span></div>
    {remaining_row}
    <div class="summary-row total"><span>GRAND TOTAL</span><span>{_e(format_rupiah(data.total_price))}</span></div>
  </div>

  <div class="footer">
    <p>Invoice ini dihasilkan secara otomatis oleh sistem {_e(data.company_name)}.</p>
    <p>Terima kasih atas kepercayaan Anda.</p>
  </div>
</body>
</html>"""
