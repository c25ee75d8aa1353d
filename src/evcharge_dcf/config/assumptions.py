"""Engine assumptions — physical, policy and solver constants.

None of these are derived from project inputs, yet every one of them moves
the answer: a 150 kW site and a 350 kW site with the same utilization are
very different businesses.  They are kept here as named, overridable
fields instead of literals inside the engine.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from evcharge_dcf.errors import InvalidInputError


class EngineAssumptions(BaseModel):
    """Fixed assumptions for a DC fast-charging deployment.

    Defaults describe a 350 kW heavy-duty site open 16 h/day, a linear
    70% → 100% utilization ramp over the first three years, and a
    Newton–Raphson IRR solver seeded at 10%.
    """

    model_config = ConfigDict(revalidate_instances="always", allow_inf_nan=False)

    # --- Site physics ---
    charger_power_kw: float = Field(default=350.0, ge=0, description="Nominal power per charger (kW)")
    operating_hours_per_day: float = Field(
        default=16.0, ge=0, le=24.0, description="Hours per day the site is open",
    )
    days_per_year: int = Field(default=365, ge=0, le=366, description="Operating days per year")

    # --- Energy & environmental ---
    emission_factor_t_per_kwh: float = Field(
        default=0.0004, ge=0,
        description="Tonnes CO₂e displaced per kWh delivered (drives LCFS credit volume)",
    )
    energy_cost_per_kwh: float = Field(
        default=0.0, ge=0,
        description="Wholesale electricity cost per kWh delivered ($/kWh). "
                    "0 = energy purchase assumed inside the OpEx rate.",
    )

    # --- Utilization ramp-up policy ---
    ramp_policy: Literal["linear", "none"] = Field(
        default="linear",
        description="'linear' = start at ramp_start_factor × peak in year 1 and rise "
                    "linearly to peak over ramp_years; 'none' = peak from year 1.",
    )
    ramp_start_factor: float = Field(
        default=0.70, gt=0, le=1.0,
        description="Year-1 utilization as a fraction of peak (linear ramp only)",
    )
    ramp_years: int = Field(
        default=2, ge=1,
        description="Years of ramp after year 1; peak is reached in year ramp_years + 1",
    )

    # --- IRR solver ---
    irr_method: Literal["newton", "bisection"] = Field(
        default="newton", description="Root-finding strategy for IRR",
    )
    irr_seed: float = Field(default=0.10, description="Newton–Raphson starting rate")
    irr_lower_bound: float = Field(default=-0.99, gt=-1.0, description="Lower clamp / bracket")
    irr_upper_bound: float = Field(default=10.0, description="Upper clamp / bracket")
    irr_tolerance: float = Field(default=1e-5, gt=0, description="Newton step-size convergence threshold")
    irr_max_iterations: int = Field(default=50, ge=1, description="Newton iteration cap")
    bisection_max_iterations: int = Field(default=100, ge=1, description="Bisection iteration cap")
    bisection_npv_tolerance: float = Field(
        default=1.0, gt=0, description="Bisection stops once |PV| falls below this ($)",
    )

    @model_validator(mode="after")
    def _check_bounds(self) -> EngineAssumptions:
        if self.irr_upper_bound <= self.irr_lower_bound:
            raise ValueError("irr_upper_bound must exceed irr_lower_bound")
        if not self.irr_lower_bound <= self.irr_seed <= self.irr_upper_bound:
            raise ValueError("irr_seed must lie within [irr_lower_bound, irr_upper_bound]")
        return self

    def ramp_factor(self, year: int) -> float:
        """Fraction of peak utilization realized in operating year ``year`` (1-indexed)."""
        if self.ramp_policy == "none":
            return 1.0
        step = (1.0 - self.ramp_start_factor) * (year - 1) / self.ramp_years
        return min(1.0, self.ramp_start_factor + step)


def validate_assumptions(
    assumptions: EngineAssumptions | Mapping[str, Any] | None,
) -> EngineAssumptions:
    """Resolve ``None`` to defaults and validate anything else."""
    if assumptions is None:
        return EngineAssumptions()
    try:
        return EngineAssumptions.model_validate(assumptions)
    except ValidationError as exc:
        raise InvalidInputError.from_validation_error(exc, "engine assumptions") from exc


def load_assumptions(path: str | Path) -> EngineAssumptions:
    """Load assumptions from a JSON file; missing keys keep their defaults."""
    try:
        return EngineAssumptions.model_validate_json(Path(path).read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise InvalidInputError.from_validation_error(exc, f"engine assumptions in {path}") from exc
