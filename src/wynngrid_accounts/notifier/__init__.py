"""Outgoing email notifications."""

from wynngrid_accounts.errors import DeliveryError
from wynngrid_accounts.notifier.email import (
    LoggingNotifier,
    Notifier,
    SmtpNotifier,
    get_notifier,
)

__all__ = [
    "DeliveryError",
    "LoggingNotifier",
    "Notifier",
    "SmtpNotifier",
    "get_notifier",
]
