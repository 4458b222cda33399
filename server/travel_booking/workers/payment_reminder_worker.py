"""Background worker for payment deadline reminders."""

import logging

from ..core.database import get_session_factory
from ..services.reminder_service import ReminderService
from .base import BaseWorker

logger = logging.getLogger(__name__)


class PaymentReminderWorker(BaseWorker):
    """
    Periodically notifies customers whose DP or final payment is due soon
    or already overdue. Reminders of one type go out at most once a day
    per booking, so the interval can be shorter than a day.
    """

    def __init__(self, interval_seconds: int = 3600):
        super().__init__(name="PaymentReminder", interval_seconds=interval_seconds)

    async def process(self) -> None:
        """Run one reminder sweep."""
        session_factory = get_session_factory()
        async with session_factory() as db:
            try:
                run = await ReminderService(db).run()
            except Exception as e:
                await db.rollback()
                logger.error(
                    f"Error sending payment reminders: {e!s}",
                    exc_info=True,
                    extra={"worker": self.name}
                )
                raise

        if run.notifications_created > 0:
            logger.info(
                f"Sent {run.notifications_created} payment reminders",
                extra={
                    "bookings_checked": run.bookings_checked,
                    "notifications_created": run.notifications_created,
                    "worker": self.name,
                }
            )
