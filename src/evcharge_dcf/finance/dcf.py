"""DCF engine — NPV, IRR, LCOC and discounted payback.

Applies time-value-of-money to the annual series from
``engine.cashflow.compute_cash_flows``.  Everything here is a pure function
of its arguments.

Key formulas:
  PV(r)  = Σ CF_t / (1 + r)^t              t = 0..N
  NPV    = PV(discount_rate)                 (year 0 already holds the net outlay)
  IRR    = r such that PV(r) = 0             (Newton–Raphson or bisection)
  LCOC   = PV(outlay + OpEx + energy cost) / PV(kWh delivered)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any

from evcharge_dcf.config.assumptions import EngineAssumptions, validate_assumptions
from evcharge_dcf.config.project import ProjectInputs, validate_inputs
from evcharge_dcf.engine.cashflow import compute_cash_flows, project_years
from evcharge_dcf.errors import DivergentIRRError, InvalidInputError, InvalidRateError
from evcharge_dcf.models.results import DCFResult, DCFRow

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Present value / NPV
# ═══════════════════════════════════════════════════════════════════════════

def _discount_factors(discount_rate: float, periods: int) -> list[float]:
    """(1 + r)^-t for t = 0..periods-1.

    Raises InvalidRateError for a rate outside (-1, inf) or one whose
    factors leave float range over the horizon (e.g. r = -0.99 over 200 years).
    """
    if not math.isfinite(discount_rate) or discount_rate <= -1:
        raise InvalidRateError(f"Discount rate must be a finite number > -1, got {discount_rate!r}")
    try:
        return [(1 + discount_rate) ** -t for t in range(periods)]
    except OverflowError as exc:
        raise InvalidRateError(
            f"Discount rate {discount_rate!r} is not representable over {periods - 1} years"
        ) from exc


def _check_finite(value: float, discount_rate: float, what: str) -> float:
    if not math.isfinite(value):
        raise InvalidRateError(f"{what} overflows at discount rate {discount_rate!r}")
    return value


def present_value(cash_flows: Sequence[float], discount_rate: float) -> float:
    """Discount a series to t = 0.

    Parameters
    ----------
    cash_flows : Sequence[float]
        Index 0 = today (undiscounted), index t = end of year t.
    discount_rate : float
        Annual rate as a fraction.  Must be > −1.

    Returns
    -------
    float
        Σ CF_t / (1 + r)^t
    """
    dfs = _discount_factors(discount_rate, len(cash_flows))

    pv = 0.0
    for cf, df in zip(cash_flows, dfs):
        pv += cf * df
    return _check_finite(pv, discount_rate, "Present value")


def compute_npv(
    inputs: ProjectInputs | Mapping[str, Any],
    assumptions: EngineAssumptions | Mapping[str, Any] | None = None,
) -> float:
    """NPV of the project's cash flows at its own discount rate."""
    inputs = validate_inputs(inputs)
    return present_value(compute_cash_flows(inputs, assumptions), inputs.discount_rate)


# ═══════════════════════════════════════════════════════════════════════════
# IRR
# ═══════════════════════════════════════════════════════════════════════════

def _has_sign_change(cash_flows: Sequence[float]) -> bool:
    return any(cf > 0 for cf in cash_flows) and any(cf < 0 for cf in cash_flows)


def _pv_and_slope(cash_flows: Sequence[float], rate: float) -> tuple[float, float]:
    """f(r) = Σ CF_t/(1+r)^t and f'(r) = Σ −t·CF_t/(1+r)^(t+1)."""
    base = 1 + rate
    f = 0.0
    slope = 0.0
    try:
        for t, cf in enumerate(cash_flows):
            f += cf / base ** t
            slope -= t * cf / base ** (t + 1)
    except (ZeroDivisionError, OverflowError) as exc:
        raise DivergentIRRError(f"PV is not finite at rate {rate!r}") from exc
    return f, slope


def _irr_newton(cash_flows: Sequence[float], assumptions: EngineAssumptions) -> float:
    lo, hi = assumptions.irr_lower_bound, assumptions.irr_upper_bound
    rate = assumptions.irr_seed

    for i in range(assumptions.irr_max_iterations):
        f, slope = _pv_and_slope(cash_flows, rate)
        if slope == 0:
            raise DivergentIRRError(f"f'(r) vanished at r={rate!r} (iteration {i})")

        raw = rate - f / slope
        if not math.isfinite(raw):
            raise DivergentIRRError(f"Newton step left the finite domain at r={rate!r}")
        nxt = min(max(raw, lo), hi)

        if abs(nxt - rate) < assumptions.irr_tolerance:
            if nxt != raw:
                # Converged onto a clamp bound: the root lies outside [lo, hi].
                raise DivergentIRRError(f"IRR pinned at clamp bound {nxt!r}")
            logger.debug("Newton IRR converged to %.8f after %d iterations", nxt, i + 1)
            return nxt
        rate = nxt

    raise DivergentIRRError(
        f"Newton IRR did not converge within {assumptions.irr_max_iterations} iterations"
    )


def _irr_bisection(cash_flows: Sequence[float], assumptions: EngineAssumptions) -> float:
    lo, hi = assumptions.irr_lower_bound, assumptions.irr_upper_bound
    f_lo, _ = _pv_and_slope(cash_flows, lo)
    f_hi, _ = _pv_and_slope(cash_flows, hi)
    if f_lo * f_hi > 0:
        raise DivergentIRRError(f"No PV sign change inside [{lo}, {hi}]")

    mid = (lo + hi) / 2
    for i in range(assumptions.bisection_max_iterations):
        mid = (lo + hi) / 2
        f_mid, _ = _pv_and_slope(cash_flows, mid)
        if abs(f_mid) < assumptions.bisection_npv_tolerance:
            logger.debug("Bisection IRR converged to %.8f after %d iterations", mid, i + 1)
            return mid
        if f_lo * f_mid < 0:
            hi = mid
        else:
            lo, f_lo = mid, f_mid
    return mid


def compute_irr(
    cash_flows: Sequence[float],
    assumptions: EngineAssumptions | Mapping[str, Any] | None = None,
) -> float | None:
    """Internal Rate of Return (annual fraction).

    Returns None when the series has no sign change: with all flows on one
    side of zero there is no real root, and a bound value would be a lie.

    Raises ``DivergentIRRError`` when the root-finder cannot produce a rate
    (f'(r) = 0, non-finite iterate, root outside the clamp bounds, or
    iteration cap reached).  A series of fewer than two flows has
    f'(r) ≡ 0 and always raises.
    """
    assumptions = validate_assumptions(assumptions)
    flows = list(cash_flows)

    if len(flows) < 2:
        raise DivergentIRRError("f'(r) is identically zero for a series of fewer than two flows")
    if not _has_sign_change(flows):
        return None

    if assumptions.irr_method == "bisection":
        return _irr_bisection(flows, assumptions)
    return _irr_newton(flows, assumptions)


# ═══════════════════════════════════════════════════════════════════════════
# LCOC
# ═══════════════════════════════════════════════════════════════════════════

def compute_lcoc(
    inputs: ProjectInputs | Mapping[str, Any],
    cash_flows: Sequence[float],
    assumptions: EngineAssumptions | Mapping[str, Any] | None = None,
) -> float | None:
    """Levelized Cost of Charging ($/kWh).

    Cost side: the net initial outlay (−CF₀, floored at 0) plus each year's OpEx and
    energy purchase, discounted at ``discount_rate``.  Energy side: each
    year's kWh delivered, discounted at the same rate so that LCOC
    amortizes consistently with NPV.

    Returns None when no energy is delivered (present energy = 0).
    """
    inputs = validate_inputs(inputs)
    if len(cash_flows) != inputs.project_life_years + 1:
        raise InvalidInputError(
            f"Expected {inputs.project_life_years + 1} cash flows, got {len(cash_flows)}"
        )
    rate = inputs.discount_rate
    dfs = _discount_factors(rate, len(cash_flows))

    # Rebates above CapEx make CF₀ an inflow; that surplus is not a negative cost.
    present_cost = max(-cash_flows[0], 0.0)
    present_energy = 0.0
    for y in project_years(inputs, assumptions):
        df = dfs[y.year]
        present_cost += (y.opex + y.energy_cost) * df
        present_energy += y.energy_kwh * df

    if present_energy == 0:
        return None
    return _check_finite(present_cost / present_energy, rate, "LCOC")


# ═══════════════════════════════════════════════════════════════════════════
# Payback & table
# ═══════════════════════════════════════════════════════════════════════════

def compute_discounted_payback(cash_flows: Sequence[float], discount_rate: float) -> int | None:
    """First year t ≥ 1 where cumulative PV(CF) ≥ 0.

    Returns None if the project never breaks even within the horizon.
    """
    return next(
        (row.year for row in build_dcf_table(cash_flows, discount_rate)
         if row.year >= 1 and row.cumulative_pv >= 0),
        None,
    )


def build_dcf_table(cash_flows: Sequence[float], discount_rate: float) -> list[DCFRow]:
    """Per-year discount factor, PV and cumulative PV, year 0 included."""
    dfs = _discount_factors(discount_rate, len(cash_flows))

    rows: list[DCFRow] = []
    cumulative_pv = 0.0
    for t, (cf, df) in enumerate(zip(cash_flows, dfs)):
        pv = cf * df
        cumulative_pv += pv
        _check_finite(cumulative_pv, discount_rate, "Cumulative PV")
        rows.append(DCFRow(
            year=t,
            discount_factor=df,
            nominal_cf=cf,
            pv_cf=pv,
            cumulative_pv=cumulative_pv,
        ))
    return rows


# ═══════════════════════════════════════════════════════════════════════════
# Full pipeline
# ═══════════════════════════════════════════════════════════════════════════

def run_dcf(
    inputs: ProjectInputs | Mapping[str, Any],
    assumptions: EngineAssumptions | Mapping[str, Any] | None = None,
) -> DCFResult:
    """Validate inputs and produce the complete DCF result.

    A divergent IRR does not fail the run: NPV and LCOC are still returned
    with ``irr=None`` and ``irr_status="divergent"``.
    """
    inputs = validate_inputs(inputs)
    assumptions = validate_assumptions(assumptions)

    years = project_years(inputs, assumptions)
    cash_flows = compute_cash_flows(inputs, assumptions)
    npv = present_value(cash_flows, inputs.discount_rate)

    try:
        irr = compute_irr(cash_flows, assumptions)
        irr_status = "determined" if irr is not None else "no_sign_change"
    except DivergentIRRError as exc:
        logger.debug("IRR undetermined: %s", exc)
        irr, irr_status = None, "divergent"

    return DCFResult(
        npv=npv,
        irr=irr,
        irr_status=irr_status,
        lcoc=compute_lcoc(inputs, cash_flows, assumptions),
        cash_flows=cash_flows,
        discounted_payback_year=compute_discounted_payback(cash_flows, inputs.discount_rate),
        undiscounted_total=sum(cash_flows),
        years=years,
        dcf_rows=build_dcf_table(cash_flows, inputs.discount_rate),
    )
