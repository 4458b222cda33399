"""Background workers for the travel booking system."""

from .payment_reminder_worker import PaymentReminderWorker

__all__ = ["PaymentReminderWorker"]
