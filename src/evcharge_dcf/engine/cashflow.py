"""Cash-flow projection — project inputs → annual cash-flow series.

Year 0 carries the net initial outlay; years 1..N carry operating margin:

  annual_energy = power_kW × hours/day × days/yr × peak_utilization × chargers
  energy_y      = annual_energy × ramp_factor(y)
  revenue_y     = energy_y × charging_rate
  lcfs_y        = energy_y × emission_factor × lcfs_credit_value
  net_y         = revenue_y + lcfs_y − opex − energy_y × energy_cost_per_kwh
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from evcharge_dcf.config.assumptions import EngineAssumptions, validate_assumptions
from evcharge_dcf.config.project import ProjectInputs, validate_inputs
from evcharge_dcf.models.results import CashFlowYear


def compute_annual_energy(inputs: ProjectInputs, assumptions: EngineAssumptions) -> float:
    """Steady-state kWh delivered per year across all chargers (at peak utilization)."""
    per_charger_kwh = (
        assumptions.charger_power_kw
        * assumptions.operating_hours_per_day
        * assumptions.days_per_year
        * inputs.peak_utilization
    )
    return per_charger_kwh * inputs.charger_count


def initial_outlay(inputs: ProjectInputs) -> float:
    """Year-0 cash flow: gross CapEx net of every one-time rebate, negative."""
    return -inputs.net_capex


def project_years(
    inputs: ProjectInputs | Mapping[str, Any],
    assumptions: EngineAssumptions | Mapping[str, Any] | None = None,
) -> list[CashFlowYear]:
    """Per-year revenue / cost breakdown for operating years 1..N."""
    inputs = validate_inputs(inputs)
    assumptions = validate_assumptions(assumptions)

    annual_energy = compute_annual_energy(inputs, assumptions)
    opex = inputs.annual_opex

    years: list[CashFlowYear] = []
    for year in range(1, inputs.project_life_years + 1):
        factor = assumptions.ramp_factor(year)
        energy = annual_energy * factor
        revenue = energy * inputs.charging_rate
        lcfs_revenue = energy * assumptions.emission_factor_t_per_kwh * inputs.lcfs_credit_value
        energy_cost = energy * assumptions.energy_cost_per_kwh
        years.append(CashFlowYear(
            year=year,
            utilization_factor=factor,
            energy_kwh=energy,
            revenue=revenue,
            lcfs_revenue=lcfs_revenue,
            opex=opex,
            energy_cost=energy_cost,
            net_cash_flow=revenue + lcfs_revenue - opex - energy_cost,
        ))
    return years


def compute_cash_flows(
    inputs: ProjectInputs | Mapping[str, Any],
    assumptions: EngineAssumptions | Mapping[str, Any] | None = None,
) -> list[float]:
    """Full cash-flow series, length ``project_life_years + 1``.

    Index 0 is the net initial investment (negative), 1..N the annual net
    operating cash flows.
    """
    inputs = validate_inputs(inputs)
    years = project_years(inputs, assumptions)
    return [initial_outlay(inputs)] + [y.net_cash_flow for y in years]
