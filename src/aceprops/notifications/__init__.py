"""
Notificaciones por email.
"""

from aceprops.notifications.email import EmailSender
from aceprops.notifications.messages import (
    EmailMessage,
    new_property_match,
    viewing_confirmation,
    viewing_rejected,
    viewing_request,
)

__all__ = [
    "EmailSender",
    "EmailMessage",
    "new_property_match",
    "viewing_confirmation",
    "viewing_rejected",
    "viewing_request",
]
