"""FastAPI server — HTTP surface for the DCF engine.

Run with:
    uvicorn evcharge_dcf.api.server:app --reload --port 8000

Or:
    python -m evcharge_dcf.api.server

Endpoints:
    GET  /health            — liveness probe
    GET  /schema            — JSON Schema for project inputs, form and assumptions
    GET  /defaults          — default project inputs + engine assumptions
    POST /calculate         — DCF for a fraction-based ProjectInputs record
    POST /calculate/form    — DCF for form state entered as percentages
    POST /sensitivity       — parameter sweep → tornado data

The server holds no state: every request is an independent engine call.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from evcharge_dcf.config.assumptions import EngineAssumptions, validate_assumptions
from evcharge_dcf.config.project import ProjectForm, ProjectInputs, parse_form
from evcharge_dcf.errors import InvalidInputError
from evcharge_dcf.finance.dcf import run_dcf
from evcharge_dcf.finance.sensitivity import run_sensitivity
from evcharge_dcf.models.results import DCFResult

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# App setup
# ═══════════════════════════════════════════════════════════════════════════

app = FastAPI(
    title="EV Charging Site DCF API",
    version="1.0",
    description=(
        "Discounted-cash-flow valuation for EV charging station projects: "
        "cash-flow projection, NPV, IRR and Levelized Cost of Charging."
    ),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(InvalidInputError)
def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=422,
        content={"message": str(exc), "detail": jsonable_encoder(exc.errors)},
    )


# ═══════════════════════════════════════════════════════════════════════════
# Request models
# ═══════════════════════════════════════════════════════════════════════════

class CalculateRequest(BaseModel):
    """Request body for /calculate.  ``inputs`` is validated by the engine."""
    inputs: dict[str, Any] = Field(
        default_factory=dict,
        description="ProjectInputs as fractions. Missing optional fields use defaults. "
                    "Example: {'charger_count': 6, 'peak_utilization': 0.3}",
    )
    assumptions: dict[str, Any] = Field(
        default_factory=dict,
        description="Partial EngineAssumptions overrides, e.g. {'ramp_policy': 'none'}",
    )


class FormCalculateRequest(BaseModel):
    """Request body for /calculate/form — percentages as typed into the dashboard."""
    form: dict[str, Any] = Field(default_factory=dict)
    assumptions: dict[str, Any] = Field(default_factory=dict)


class SweepParam(BaseModel):
    """One sweep override.  ``name`` defaults to ``path``."""
    model_config = ConfigDict(allow_inf_nan=False)

    name: str | None = None
    path: str = Field(description="Dotted field path, e.g. 'inputs.charging_rate'")
    low_pct: float = -0.15
    high_pct: float = 0.15


class SensitivityRequest(BaseModel):
    """Request body for /sensitivity."""
    inputs: dict[str, Any] = Field(default_factory=dict)
    assumptions: dict[str, Any] = Field(default_factory=dict)
    sweep_params: list[SweepParam] | None = Field(
        default=None,
        description="Optional override of sweep parameters. "
                    "Format: [{'name': 'Price', 'path': 'inputs.charging_rate', "
                    "'low_pct': -0.1, 'high_pct': 0.1}]",
    )


# ═══════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════

def _build_assumptions(overrides: dict[str, Any]) -> EngineAssumptions:
    """Merge partial overrides onto the default assumptions."""
    defaults = EngineAssumptions().model_dump()
    defaults.update(overrides)
    return validate_assumptions(defaults)


def _result_payload(result: DCFResult) -> dict[str, Any]:
    return {"result": result.to_payload(), "display": result.display()}


# ═══════════════════════════════════════════════════════════════════════════
# Endpoints
# ═══════════════════════════════════════════════════════════════════════════

@app.get("/health")
def health_check():
    """Health check for deployment platforms."""
    return {"status": "ok"}


@app.get("/schema")
def get_schema():
    """JSON Schemas for every input shape — types, defaults, constraints."""
    return {
        "project_inputs": ProjectInputs.model_json_schema(),
        "project_form": ProjectForm.model_json_schema(),
        "engine_assumptions": EngineAssumptions.model_json_schema(),
    }


@app.get("/defaults")
def get_defaults():
    """Default project inputs and engine assumptions as JSON."""
    return {
        "project_inputs": ProjectInputs().model_dump(),
        "engine_assumptions": EngineAssumptions().model_dump(),
    }


@app.post("/calculate")
def calculate(req: CalculateRequest):
    """Run the DCF engine on a fraction-based ProjectInputs record.

    ``result.irr`` is ``"undetermined"`` when no rate can be found and
    ``result.lcoc`` is ``"undefined"`` when no energy is delivered.
    """
    assumptions = _build_assumptions(req.assumptions)
    result = run_dcf(req.inputs, assumptions)
    logger.info(
        "DCF calculated: npv=%.2f irr_status=%s", result.npv, result.irr_status,
    )
    return _result_payload(result)


@app.post("/calculate/form")
def calculate_form(req: FormCalculateRequest):
    """Run the DCF engine on form state entered as percentages."""
    inputs = parse_form(req.form)
    assumptions = _build_assumptions(req.assumptions)
    result = run_dcf(inputs, assumptions)
    logger.info(
        "DCF calculated from form: npv=%.2f irr_status=%s", result.npv, result.irr_status,
    )
    return {"inputs": inputs.model_dump(), **_result_payload(result)}


@app.post("/sensitivity")
def sensitivity(req: SensitivityRequest):
    """Run one-at-a-time sweeps and return NPV impact ranking (tornado data)."""
    assumptions = _build_assumptions(req.assumptions)

    sweep_config = None
    if req.sweep_params:
        sweep_config = [
            (sp.name or sp.path, sp.path, sp.low_pct, sp.high_pct)
            for sp in req.sweep_params
        ]

    result = run_sensitivity(req.inputs, assumptions, sweep_config)

    return {
        "base_npv": round(result.base_npv, 2),
        "tornado_bars": [
            {
                "param_name": bar.param_name,
                "param_path": bar.param_path,
                "base_value": bar.base_value,
                "low_value": bar.low_value,
                "high_value": bar.high_value,
                "npv_at_low": round(bar.npv_at_low, 2),
                "npv_at_high": round(bar.npv_at_high, 2),
                "delta_npv": round(bar.delta_npv, 2),
            }
            for bar in result.bars
        ],
    }


# ═══════════════════════════════════════════════════════════════════════════
# CLI entry point
# ═══════════════════════════════════════════════════════════════════════════

def main():
    """Run the API server."""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "evcharge_dcf.api.server:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )


if __name__ == "__main__":
    main()
