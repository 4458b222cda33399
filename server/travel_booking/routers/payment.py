"""Payment router for customer payment operations."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.auth import SessionContext, SessionDependency
from ..core.config import settings
from ..core.database import get_db
from ..core.exceptions import ProblemDetailsException
from ..schemas.payment import (
    GetPaymentOverviewRequest,
    Payment,
    PaymentDeadlines,
    PaymentOption,
    PaymentOverviewResponse,
    PaymentSummary,
)
from ..services.payment_service import PaymentOverview, PaymentService
from ..services.storage_service import StorageService, get_storage_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/payment", tags=["payment"])

DB_DEPENDENCY = Depends(get_db)
STORAGE_DEPENDENCY = Depends(get_storage_service)
PROOF_FILE = File(..., description="Transfer proof image (JPEG, PNG or WEBP)")
BOOKING_ID_FORM = Form(...)
OPTION_FORM = Form(..., description="deposit or full")
PAYMENT_METHOD_FORM = Form("transfer")


def _convert_overview_to_schema(overview: PaymentOverview) -> PaymentOverviewResponse:
    """Convert a payment overview to schema."""
    booking = overview.booking
    return PaymentOverviewResponse(
        booking_id=booking.id,
        booking_code=booking.booking_code,
        booking_status=booking.status,
        package_title=booking.package.title,
        departure_date=booking.departure.departure_date,
        summary=PaymentSummary(
            total_price=overview.summary.total_price,
            paid=overview.summary.paid,
            pending=overview.summary.pending,
            remaining=overview.summary.remaining,
        ),
        options=[PaymentOption(kind=option.kind, amount=option.amount) for option in overview.options],
        deadlines=PaymentDeadlines(
            dp_deadline=overview.deadlines.dp_deadline,
            full_deadline=overview.deadlines.full_deadline,
            dp_overdue=overview.deadlines.dp_overdue,
            full_overdue=overview.deadlines.full_overdue,
        ),
        has_pending=overview.has_pending,
        payments=[Payment.model_validate(payment) for payment in overview.payments],
    )


@router.post("/overview", response_model=PaymentOverviewResponse)
async def get_payment_overview(
    request: GetPaymentOverviewRequest,
    db: AsyncSession = DB_DEPENDENCY,
    session: SessionContext = SessionDependency
) -> JSONResponse:
    """Balance, payment options, deadlines and history of a booking."""
    payment_service = PaymentService(db)

    try:
        overview = await payment_service.get_overview(request.booking_id, session)
        response_data = _convert_overview_to_schema(overview)
        return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error loading payment overview",
            extra={"booking_id": str(request.booking_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e


@router.post("/submit", response_model=Payment, status_code=201)
async def submit_payment(
    booking_id: UUID = BOOKING_ID_FORM,
    option: str = OPTION_FORM,
    payment_method: str = PAYMENT_METHOD_FORM,
    proof: UploadFile = PROOF_FILE,
    db: AsyncSession = DB_DEPENDENCY,
    storage: StorageService = STORAGE_DEPENDENCY,
    session: SessionContext = SessionDependency
) -> JSONResponse:
    """
    Submit a payment confirmation with a transfer proof.

    The payment stays pending until an admin verifies it.
    """
    payment_service = PaymentService(db, storage=storage)

    try:
        # Never buffers more than one byte past the limit
        content = await proof.read(settings.proof_max_bytes + 1)
        payment = await payment_service.submit_payment(
            booking_id=booking_id,
            option=option,
            proof=content,
            content_type=proof.content_type,
            session=session,
            payment_method=payment_method,
        )
        response_data = Payment.model_validate(payment)
        return JSONResponse(status_code=201, content=response_data.model_dump(mode="json"))

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error in payment submission",
            extra={"booking_id": str(booking_id), "option": option, "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e

    finally:
        await proof.close()

