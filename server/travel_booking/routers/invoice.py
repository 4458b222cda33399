"""Invoice router rendering printable booking invoices."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.auth import SessionContext, SessionDependency
from ..core.database import get_session_factory
from ..core.exceptions import ProblemDetailsException
from ..schemas.invoice import InvoiceRequest
from ..services.invoice_service import InvoiceService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/invoice", tags=["invoice"])

SESSION_FACTORY_DEPENDENCY = Depends(get_session_factory)


@router.post("/render", response_class=HTMLResponse)
async def render_invoice(
    request: InvoiceRequest,
    session: SessionContext = SessionDependency,
    session_factory: async_sessionmaker[AsyncSession] = SESSION_FACTORY_DEPENDENCY
) -> HTMLResponse:
    """
    Render the invoice of a booking as an HTML document.

    Only the booking owner or an admin may render it. All user-supplied
    text in the document is HTML-escaped.
    """
    invoice_service = InvoiceService(session_factory)

    try:
        document = await invoice_service.render_for_session(request.booking_id, session)
        return HTMLResponse(content=document, status_code=200)

    except ProblemDetailsException:
        raise

    except Exception as e:
        logger.error(
            "Unexpected error rendering invoice",
            extra={"booking_id": str(request.booking_id), "error": str(e)},
            exc_info=True
        )
        raise HTTPException(status_code=500, detail="Internal server error") from e
