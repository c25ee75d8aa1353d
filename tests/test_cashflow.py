"""Tests for engine/cashflow.py — cash-flow projection."""

from __future__ import annotations

import pytest

from evcharge_dcf.config import EngineAssumptions, ProjectInputs
from evcharge_dcf.engine.cashflow import (
    compute_annual_energy,
    compute_cash_flows,
    initial_outlay,
    project_years,
)
from evcharge_dcf.errors import InvalidInputError

# 350 kW × 16 h × 365 d × 0.5 × 4 chargers
REFERENCE_ANNUAL_KWH = 4_088_000


def test_annual_energy(reference_inputs, assumptions):
    assert compute_annual_energy(reference_inputs, assumptions) == pytest.approx(REFERENCE_ANNUAL_KWH)


def test_annual_energy_uses_assumptions(reference_inputs):
    slow_site = EngineAssumptions(charger_power_kw=150, operating_hours_per_day=24)
    assert compute_annual_energy(reference_inputs, slow_site) == pytest.approx(
        150 * 24 * 365 * 0.5 * 4
    )


@pytest.mark.parametrize("life", [1, 2, 5, 10, 15, 20, 30])
def test_series_length(reference_inputs, life):
    inputs = reference_inputs.model_copy(update={"project_life_years": life})
    assert len(compute_cash_flows(inputs)) == life + 1


def test_year_zero_is_net_outlay(reference_inputs):
    cfs = compute_cash_flows(reference_inputs)
    assert cfs[0] == -400_000


def test_operating_years_positive(reference_inputs):
    cfs = compute_cash_flows(reference_inputs)
    assert all(cf > 0 for cf in cfs[1:])


def test_rebates_net_into_year_zero(reference_inputs):
    inputs = reference_inputs.model_copy(update={
        "state_rebate": 50_000, "energiize_rebate": 20_000, "utility_rebate": 10_000,
    })
    assert initial_outlay(inputs) == -320_000
    assert compute_cash_flows(inputs)[0] == -320_000


def test_steady_state_year(reference_inputs):
    """Year 3 onward runs at full peak: revenue + LCFS − OpEx."""
    cfs = compute_cash_flows(reference_inputs)
    revenue = REFERENCE_ANNUAL_KWH * 0.4
    lcfs = REFERENCE_ANNUAL_KWH * 0.0004 * 150
    assert cfs[3] == pytest.approx(revenue + lcfs - 40_000)
    assert cfs[10] == pytest.approx(cfs[3])


def test_linear_ramp_in_early_years(reference_inputs):
    years = project_years(reference_inputs)
    assert years[0].year == 1
    assert years[0].utilization_factor == pytest.approx(0.70)
    assert years[1].utilization_factor == pytest.approx(0.85)
    assert years[2].utilization_factor == pytest.approx(1.0)
    assert years[0].energy_kwh == pytest.approx(REFERENCE_ANNUAL_KWH * 0.7)
    assert years[0].net_cash_flow < years[1].net_cash_flow < years[2].net_cash_flow


def test_no_ramp_is_flat(reference_inputs, flat_assumptions):
    cfs = compute_cash_flows(reference_inputs, flat_assumptions)
    assert len(set(cfs[1:])) == 1


def test_opex_not_ramped(reference_inputs):
    years = project_years(reference_inputs)
    assert all(y.opex == pytest.approx(40_000) for y in years)


def test_energy_cost_reduces_margin(reference_inputs, flat_assumptions):
    with_energy = flat_assumptions.model_copy(update={"energy_cost_per_kwh": 0.12})
    base = compute_cash_flows(reference_inputs, flat_assumptions)
    costed = compute_cash_flows(reference_inputs, with_energy)
    assert costed[0] == base[0]
    assert base[1] - costed[1] == pytest.approx(REFERENCE_ANNUAL_KWH * 0.12)


def test_year_breakdown_adds_up(reference_inputs):
    for y in project_years(reference_inputs):
        assert y.net_cash_flow == pytest.approx(y.revenue + y.lcfs_revenue - y.opex - y.energy_cost)


def test_accepts_mapping():
    cfs = compute_cash_flows({"charger_count": 5, "capex_per_charger": 80_000, "project_life_years": 3})
    assert len(cfs) == 4
    assert cfs[0] == -400_000


def test_invalid_inputs_fail_before_computation():
    with pytest.raises(InvalidInputError):
        compute_cash_flows({"charger_count": 2})


def test_deterministic(reference_inputs):
    assert compute_cash_flows(reference_inputs) == compute_cash_flows(
        ProjectInputs(**reference_inputs.model_dump())
    )
