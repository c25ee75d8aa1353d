"""Shared test fixtures — a reference 4-charger site and assumption sets."""

from __future__ import annotations

import pytest

from evcharge_dcf.config import EngineAssumptions, ProjectInputs


@pytest.fixture
def reference_inputs() -> ProjectInputs:
    """4 × 350 kW site, 50% peak utilization, $0.40/kWh, LCFS at $150/t."""
    return ProjectInputs(
        charger_count=4,
        capex_per_charger=100_000,
        opex_rate=0.1,
        peak_utilization=0.5,
        charging_rate=0.4,
        lcfs_credit_value=150,
        state_rebate=0,
        project_life_years=10,
        discount_rate=0.08,
    )


@pytest.fixture
def assumptions() -> EngineAssumptions:
    return EngineAssumptions()


@pytest.fixture
def flat_assumptions() -> EngineAssumptions:
    """No utilization ramp — peak from year 1."""
    return EngineAssumptions(ramp_policy="none")


@pytest.fixture
def modest_flows() -> list[float]:
    """Conventional project: IRR ≈ 8.14%."""
    return [-100_000.0] + [15_000.0] * 10
