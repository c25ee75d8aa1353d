"""Sensitivity / tornado analysis.

One-at-a-time parameter sweeps: vary a single input, hold everything else,
measure the NPV swing.  Produces tornado chart data sorted by impact.

Default sweep set:
  - inputs.charging_rate       ± 10%
  - inputs.peak_utilization    ± 20%
  - inputs.capex_per_charger   ± 15%
  - inputs.opex_rate           ± 20%
  - inputs.lcfs_credit_value   ± 25%
  - inputs.discount_rate       ± 20%

Paths address either the project (``inputs.<field>``) or the engine
assumptions (``assumptions.<field>``).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from evcharge_dcf.config.assumptions import EngineAssumptions, validate_assumptions
from evcharge_dcf.config.project import ProjectInputs, validate_inputs
from evcharge_dcf.errors import InvalidInputError
from evcharge_dcf.finance.dcf import compute_npv


@dataclass(frozen=True)
class TornadoBar:
    """One bar in the tornado chart."""

    param_name: str
    """Human-readable parameter name."""

    param_path: str
    """Dot-path, e.g. 'inputs.charging_rate' or 'assumptions.charger_power_kw'."""

    base_value: float
    low_value: float
    high_value: float

    npv_at_low: float
    """NPV when param = low_value."""

    npv_at_high: float
    """NPV when param = high_value."""

    delta_npv: float
    """abs(npv_at_high − npv_at_low) — total swing width."""


@dataclass
class SensitivityResult:
    """Complete sensitivity analysis output."""

    base_npv: float
    bars: list[TornadoBar] = field(default_factory=list)
    """Tornado bars sorted by delta_npv (descending)."""


DEFAULT_SWEEPS: list[tuple[str, str, float, float]] = [
    ("Charging price", "inputs.charging_rate", -0.10, 0.10),
    ("Peak utilization", "inputs.peak_utilization", -0.20, 0.20),
    ("CapEx per charger", "inputs.capex_per_charger", -0.15, 0.15),
    ("OpEx rate", "inputs.opex_rate", -0.20, 0.20),
    ("LCFS credit price", "inputs.lcfs_credit_value", -0.25, 0.25),
    ("Discount rate", "inputs.discount_rate", -0.20, 0.20),
]


def _fit_to_field(model: BaseModel, name: str, value: float) -> float:
    """Round for int fields and clamp into inclusive ge/le bounds.

    Strict bounds (gt/lt) are left to validation.
    """
    field_info = type(model).model_fields[name]
    if field_info.annotation is int:
        value = round(value)
    for constraint in field_info.metadata:
        ge = getattr(constraint, "ge", None)
        le = getattr(constraint, "le", None)
        if ge is not None:
            value = max(value, ge)
        if le is not None:
            value = min(value, le)
    return value


def _with_value(
    inputs: ProjectInputs,
    assumptions: EngineAssumptions,
    path: str,
    value: float,
) -> tuple[ProjectInputs, EngineAssumptions]:
    """Return copies of (inputs, assumptions) with one field replaced."""
    target, name = _split_path(path, inputs, assumptions)
    value = _fit_to_field(target, name, value)
    if target is inputs:
        return validate_inputs(inputs.model_copy(update={name: value})), assumptions
    return inputs, validate_assumptions(assumptions.model_copy(update={name: value}))


def _split_path(
    path: str, inputs: ProjectInputs, assumptions: EngineAssumptions,
) -> tuple[BaseModel, str]:
    section, _, name = path.partition(".")
    targets: dict[str, BaseModel] = {"inputs": inputs, "assumptions": assumptions}
    target = targets.get(section)
    if target is None or name not in type(target).model_fields:
        raise InvalidInputError(f"Unknown sweep path {path!r}")
    return target, name


def run_sensitivity(
    inputs: ProjectInputs | Mapping[str, Any],
    assumptions: EngineAssumptions | Mapping[str, Any] | None = None,
    sweeps: list[tuple[str, str, float, float]] | None = None,
) -> SensitivityResult:
    """Run a one-at-a-time sensitivity analysis on NPV.

    Parameters
    ----------
    inputs : ProjectInputs
        Base project.
    assumptions : EngineAssumptions | None
        Base engine assumptions.  None = defaults.
    sweeps : list[tuple[name, path, low_pct, high_pct]] | None
        Parameter sweeps. None = use DEFAULT_SWEEPS.

    Returns
    -------
    SensitivityResult
        Tornado bars sorted by NPV impact.
    """
    if sweeps is None:
        sweeps = DEFAULT_SWEEPS

    base_inputs = validate_inputs(inputs)
    base_assumptions = validate_assumptions(assumptions)
    base_npv = compute_npv(base_inputs, base_assumptions)

    bars: list[TornadoBar] = []
    for name, path, low_pct, high_pct in sweeps:
        target, attr = _split_path(path, base_inputs, base_assumptions)
        base_val = float(getattr(target, attr))

        low_val = _fit_to_field(target, attr, base_val * (1 + low_pct))
        high_val = _fit_to_field(target, attr, base_val * (1 + high_pct))

        npv_low = compute_npv(*_with_value(base_inputs, base_assumptions, path, low_val))
        npv_high = compute_npv(*_with_value(base_inputs, base_assumptions, path, high_val))

        bars.append(TornadoBar(
            param_name=name,
            param_path=path,
            base_value=base_val,
            low_value=float(low_val),
            high_value=float(high_val),
            npv_at_low=npv_low,
            npv_at_high=npv_high,
            delta_npv=abs(npv_high - npv_low),
        ))

    # Largest swing first
    bars.sort(key=lambda b: b.delta_npv, reverse=True)

    return SensitivityResult(base_npv=base_npv, bars=bars)
