"""Result types — the contract between the engine and its sinks.

Internal values are full-precision floats.  Rounding happens only in
``DCFResult.display()``; ``DCFResult.to_payload()`` renders the absent-metric
markers (``"undetermined"`` IRR, ``"undefined"`` LCOC) for JSON consumers.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel

IRR_UNDETERMINED = "undetermined"
LCOC_UNDEFINED = "undefined"
NOT_AVAILABLE = "N/A"


# ═══════════════════════════════════════════════════════════════════════════
# Per-year rows
# ═══════════════════════════════════════════════════════════════════════════

class CashFlowYear(BaseModel):
    """One operating year of the projection (years 1..N)."""

    year: int
    utilization_factor: float
    """Fraction of peak utilization realized this year (ramp-up policy)."""

    energy_kwh: float
    revenue: float
    """energy_kwh × charging_rate."""

    lcfs_revenue: float
    """energy_kwh × emission_factor × lcfs_credit_value."""

    opex: float
    energy_cost: float
    net_cash_flow: float


class DCFRow(BaseModel):
    """Discounting detail for one year of the series (year 0 included)."""

    year: int
    discount_factor: float
    nominal_cf: float
    pv_cf: float
    cumulative_pv: float


# ═══════════════════════════════════════════════════════════════════════════
# Full result
# ═══════════════════════════════════════════════════════════════════════════

class DCFResult(BaseModel):
    """Full DCF analysis output for one project."""

    npv: float
    """Σ CF_t / (1 + r)^t over t = 0..N.  Year 0 already nets the outlay."""

    irr: float | None
    """Internal Rate of Return (annual fraction). None if undetermined."""

    irr_status: Literal["determined", "no_sign_change", "divergent"]
    """Why ``irr`` is (or is not) present."""

    lcoc: float | None
    """Levelized Cost of Charging ($/kWh). None if no energy is delivered."""

    cash_flows: list[float]
    """Index 0 = net initial outlay; 1..N = annual net cash flows."""

    discounted_payback_year: int | None = None
    """First year where cumulative PV ≥ 0. None if never within the horizon."""

    undiscounted_total: float = 0.0
    years: list[CashFlowYear] = []
    dcf_rows: list[DCFRow] = []

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict with the absent-metric markers spelled out."""
        payload = self.model_dump(mode="json")
        if self.irr is None:
            payload["irr"] = IRR_UNDETERMINED
        if self.lcoc is None:
            payload["lcoc"] = LCOC_UNDEFINED
        return payload

    def display(self) -> dict[str, Any]:
        """Headline metrics rounded for presentation.

        NPV to whole currency units, IRR in percentage points to 2 decimals,
        LCOC in $/kWh to 3 decimals.  Missing metrics render as "N/A".
        """
        return {
            "npv": round(self.npv),
            "irr_pct": round(self.irr * 100, 2) if self.irr is not None else NOT_AVAILABLE,
            "lcoc": round(self.lcoc, 3) if self.lcoc is not None else NOT_AVAILABLE,
            "discounted_payback_year": (
                self.discounted_payback_year
                if self.discounted_payback_year is not None else NOT_AVAILABLE
            ),
        }
