"""Result models — DCF output contracts."""

from evcharge_dcf.models.results import (
    IRR_UNDETERMINED,
    LCOC_UNDEFINED,
    CashFlowYear,
    DCFResult,
    DCFRow,
)

__all__ = [
    "IRR_UNDETERMINED",
    "LCOC_UNDEFINED",
    "CashFlowYear",
    "DCFResult",
    "DCFRow",
]
