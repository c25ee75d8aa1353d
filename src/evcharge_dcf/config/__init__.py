"""Configuration models — project inputs, form state and engine assumptions."""

from evcharge_dcf.config.assumptions import (
    EngineAssumptions,
    load_assumptions,
    validate_assumptions,
)
from evcharge_dcf.config.project import ProjectForm, ProjectInputs, parse_form, validate_inputs

__all__ = [
    "EngineAssumptions",
    "ProjectForm",
    "ProjectInputs",
    "load_assumptions",
    "parse_form",
    "validate_assumptions",
    "validate_inputs",
]
