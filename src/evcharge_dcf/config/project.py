"""Project inputs — the one record the DCF engine consumes.

Two shapes live here:

* ``ProjectInputs`` — fractions only, validated; what the engine runs on.
* ``ProjectForm``   — the dashboard form as entered, with utilization,
  OpEx and discount rate typed in as percentages.  ``to_inputs()`` is the
  single place percentages become fractions.

OpEx convention: ``opex_rate`` is annual operating expense as a fraction of
net CapEx (``capex_per_charger × charger_count`` less one-time rebates).
A rebate therefore behaves exactly like an equal cut in CapEx.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from evcharge_dcf.errors import InvalidInputError


class ProjectInputs(BaseModel):
    """Validated parameter record for one calculation request."""

    # model_validate() on an existing instance re-runs the field checks.
    model_config = ConfigDict(revalidate_instances="always", allow_inf_nan=False)

    charger_count: int = Field(default=4, ge=4, le=8, description="DC fast chargers on site")
    capex_per_charger: float = Field(
        default=150_000.0, gt=0,
        description="Installed capital cost per charger ($): hardware, install, make-ready",
    )
    opex_rate: float = Field(
        default=0.08, ge=0,
        description="Annual OpEx as a fraction of net CapEx (e.g. 0.08 = 8%/yr)",
    )
    peak_utilization: float = Field(
        default=0.25, gt=0, le=1.0,
        description="Share of full-power, full-hours operation actually realized (0–1]",
    )
    charging_rate: float = Field(default=0.45, gt=0, description="Price charged to drivers ($/kWh)")
    lcfs_credit_value: float = Field(
        default=0.0, ge=0, description="LCFS credit price ($/tonne CO₂e). 0 = no credits claimed",
    )
    state_rebate: float = Field(default=0.0, ge=0, description="One-time state capital rebate ($)")
    energiize_rebate: float = Field(
        default=0.0, ge=0, description="One-time EnergIIZE program grant ($)",
    )
    utility_rebate: float = Field(
        default=0.0, ge=0, description="One-time utility make-ready rebate ($)",
    )
    project_life_years: int = Field(default=10, gt=0, description="Analysis horizon (years)")
    discount_rate: float = Field(
        default=0.10, gt=-1.0, description="Annual discount rate as a fraction (e.g. 0.10)",
    )

    @property
    def total_capex(self) -> float:
        """Gross capital outlay before any rebate."""
        return self.capex_per_charger * self.charger_count

    @property
    def total_rebates(self) -> float:
        return self.state_rebate + self.energiize_rebate + self.utility_rebate

    @property
    def net_capex(self) -> float:
        return self.total_capex - self.total_rebates

    @property
    def annual_opex(self) -> float:
        return self.opex_rate * max(self.net_capex, 0.0)


class ProjectForm(BaseModel):
    """Form state as the user typed it — percentages, not fractions."""

    model_config = ConfigDict(allow_inf_nan=False)

    charger_count: int = Field(default=4, ge=4, le=8)
    capex_per_charger: float = Field(default=150_000.0, gt=0)
    opex_rate_pct: float = Field(default=8.0, ge=0, description="Annual OpEx, % of net CapEx")
    peak_utilization_pct: float = Field(default=25.0, gt=0, le=100.0, description="Peak utilization (%)")
    charging_rate: float = Field(default=0.45, gt=0)
    lcfs_credit_value: float = Field(default=0.0, ge=0)
    state_rebate: float = Field(default=0.0, ge=0)
    energiize_rebate: float = Field(default=0.0, ge=0)
    utility_rebate: float = Field(default=0.0, ge=0)
    project_life_years: int = Field(default=10, gt=0)
    discount_rate_pct: float = Field(default=10.0, gt=-100.0, description="Discount rate (%)")

    def to_inputs(self) -> ProjectInputs:
        """Normalize percentages to fractions and return validated engine inputs."""
        return validate_inputs({
            "charger_count": self.charger_count,
            "capex_per_charger": self.capex_per_charger,
            "opex_rate": self.opex_rate_pct / 100,
            "peak_utilization": self.peak_utilization_pct / 100,
            "charging_rate": self.charging_rate,
            "lcfs_credit_value": self.lcfs_credit_value,
            "state_rebate": self.state_rebate,
            "energiize_rebate": self.energiize_rebate,
            "utility_rebate": self.utility_rebate,
            "project_life_years": self.project_life_years,
            "discount_rate": self.discount_rate_pct / 100,
        })


def validate_inputs(inputs: ProjectInputs | Mapping[str, Any]) -> ProjectInputs:
    """Return a validated ``ProjectInputs`` or raise ``InvalidInputError``.

    Accepts an existing instance (re-validated) or a plain mapping.
    """
    try:
        return ProjectInputs.model_validate(inputs)
    except ValidationError as exc:
        raise InvalidInputError.from_validation_error(exc, "project inputs") from exc


def parse_form(form: ProjectForm | Mapping[str, Any]) -> ProjectInputs:
    """Validate raw form state and normalize it into ``ProjectInputs``."""
    try:
        parsed = ProjectForm.model_validate(form)
    except ValidationError as exc:
        raise InvalidInputError.from_validation_error(exc, "project form") from exc
    return parsed.to_inputs()

