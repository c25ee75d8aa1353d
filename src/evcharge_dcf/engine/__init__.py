"""Engine — cash-flow projection from project inputs."""

from evcharge_dcf.engine.cashflow import (
    compute_annual_energy,
    compute_cash_flows,
    initial_outlay,
    project_years,
)

__all__ = [
    "compute_annual_energy",
    "compute_cash_flows",
    "initial_outlay",
    "project_years",
]
