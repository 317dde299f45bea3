# Pipeline - checkout and payment notification handling
# ======================================================

from .checkout import (
    CheckoutError,
    CheckoutOrchestrator,
    CheckoutResult,
    GatewayRejectedError,
    MissingConfigurationError,
    RefIdFactory,
    ReturnUrls,
)
from .reconciler import (
    NotificationReconciler,
    ReconcileOutcome,
)

__all__ = [
    # Checkout
    "CheckoutError",
    "CheckoutOrchestrator",
    "CheckoutResult",
    "GatewayRejectedError",
    "MissingConfigurationError",
    "RefIdFactory",
    "ReturnUrls",
    # Notifications
    "NotificationReconciler",
    "ReconcileOutcome",
]
