# gateway/__init__.py
from gateway.comgate import (
    ComgateClient,
    GatewayResult,
    PAID_STATUSES,
    is_paid_status,
)
from gateway.money import (
    format_czk,
    from_minor_units,
    parse_amount,
    to_minor_units,
)

__all__ = [
    # Comgate
    "ComgateClient",
    "GatewayResult",
    "PAID_STATUSES",
    "is_paid_status",
    # Money
    "format_czk",
    "from_minor_units",
    "parse_amount",
    "to_minor_units",
]
