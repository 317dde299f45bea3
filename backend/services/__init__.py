# services/__init__.py
# ============================================================================
# ELORA CHECKOUT BACKEND - SERVICES MODULE
# ============================================================================
# Outbound email: delivery and order email content
# ============================================================================

from services.notifier import (
    EmailMessage,
    INotifier,
    NotifierError,
    ResendNotifier,
)

from services.order_emails import (
    customer_message,
    owner_message,
)

__all__ = [
    # Notifier
    "EmailMessage",
    "INotifier",
    "NotifierError",
    "ResendNotifier",
    # Content
    "customer_message",
    "owner_message",
]
