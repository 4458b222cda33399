"""Unit tests for payment balance, option and deadline rules."""

from datetime import date
from types import SimpleNamespace

import pytest

from travel_booking.core.exceptions import ValidationError
from travel_booking.models.payment import PaymentType
from travel_booking.services.payment_service import (
    PaymentSummary,
    choose_payment_type,
    payment_deadlines,
    payment_options,
    summarize_payments,
    validate_proof,
)


def _payment(amount, status):
    return SimpleNamespace(amount=amount, status=status)


def test_pending_payments_reduce_remaining():
    """1,000,000 paid and 500,000 pending of 3,000,000 leaves 1,500,000."""
    summary = summarize_payments(
        3_000_000,
        [_payment(1_000_000, "paid"), _payment(500_000, "pending")],
    )

    assert summary.paid == 1_000_000
    assert summary.pending == 500_000
    assert summary.remaining == 1_500_000


def test_failed_payments_are_ignored():
    summary = summarize_payments(3_000_000, [_payment(3_000_000, "failed")])

    assert summary.paid == 0
    assert summary.pending == 0
    assert summary.remaining == 3_000_000


def test_deposit_offered_only_before_first_payment():
    """A deposit option appears only while nothing is paid and a minimum is set."""
    unpaid = PaymentSummary(total_price=80_000_000, paid=0, pending=0, remaining=80_000_000)
    partly_paid = PaymentSummary(total_price=80_000_000, paid=5_000_000, pending=0, remaining=75_000_000)

    assert [(o.kind, o.amount) for o in payment_options(unpaid, 5_000_000)] == [
        ("deposit", 5_000_000),
        ("full", 80_000_000),
    ]
    assert [o.kind for o in payment_options(unpaid, 0)] == ["full"]
    assert [(o.kind, o.amount) for o in payment_options(partly_paid, 5_000_000)] == [("full", 75_000_000)]


def test_deposit_never_exceeds_remaining():
    summary = PaymentSummary(total_price=3_000_000, paid=0, pending=0, remaining=3_000_000)

    options = payment_options(summary, 5_000_000)

    assert options[0].kind == "deposit"
    assert options[0].amount == 3_000_000


def test_no_options_when_settled():
    summary = PaymentSummary(total_price=3_000_000, paid=3_000_000, pending=0, remaining=0)
    assert payment_options(summary, 1_000_000) == []


def test_deadlines_count_back_from_departure():
    deadlines = payment_deadlines(date(2026, 12, 31), dp_days=30, full_days=7, today=date(2026, 12, 10))

    assert deadlines.dp_deadline == date(2026, 12, 1)
    assert deadlines.full_deadline == date(2026, 12, 24)
    assert deadlines.dp_overdue is True
    assert deadlines.full_overdue is False


def test_deadline_day_itself_is_not_overdue():
    deadlines = payment_deadlines(date(2026, 12, 31), dp_days=30, full_days=7, today=date(2026, 12, 1))
    assert deadlines.dp_overdue is False


@pytest.mark.parametrize(
    "amount,remaining,paid,expected",
    [
        (80_000_000, 80_000_000, 0, PaymentType.FULL),
        (5_000_000, 80_000_000, 0, PaymentType.DP),
        (5_000_000, 75_000_000, 5_000_000, PaymentType.INSTALLMENT),
        (75_000_000, 75_000_000, 5_000_000, PaymentType.FULL),
    ],
)
def test_choose_payment_type(amount, remaining, paid, expected):
    assert choose_payment_type(amount, remaining, paid) == expected


def test_validate_proof_accepts_images():
    assert validate_proof("image/png", 1024, 5 * 1024 * 1024) == "png"
    assert validate_proof("IMAGE/JPEG", 1024, 5 * 1024 * 1024) == "jpg"
    assert validate_proof("image/webp", 1024, 5 * 1024 * 1024) == "webp"


@pytest.mark.parametrize(
    "content_type,size,code",
    [
        ("application/pdf", 1024, "INVALID_FILE_TYPE"),
        (None, 1024, "INVALID_FILE_TYPE"),
        ("image/png", 0, "EMPTY_FILE"),
        ("image/png", 5 * 1024 * 1024 + 1, "FILE_TOO_LARGE"),
    ],
)
def test_validate_proof_rejects(content_type, size, code):
    with pytest.raises(ValidationError) as exc_info:
        validate_proof(content_type, size, 5 * 1024 * 1024)

    assert exc_info.value.problem_details["code"] == code
