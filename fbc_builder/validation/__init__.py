"""Validation entrypoints (model conversion + model checks)."""

from __future__ import annotations

import logging

from ..exceptions import FBCValidationError
from ..models import DeclarativeConfig
from .model import Model, convert_to_model  # noqa: F401

logger = logging.getLogger(__name__)

__all__ = ["convert_to_model", "run_model_checks", "validate_fbc", "Model"]


def run_model_checks(cfg: DeclarativeConfig) -> list[str]:
    """Return every conversion and model issue without raising."""
    model, issues = convert_to_model(cfg)
    return issues + model.validate()


def validate_fbc(cfg: DeclarativeConfig) -> Model:
    """Validate ``cfg`` and return its model; raise `FBCValidationError` on issues."""
    model, issues = convert_to_model(cfg)
    if issues:
        logger.error("error converting the declarative config to model: %d issue(s)", len(issues))
        raise FBCValidationError(issues)
    issues = model.validate()
    if issues:
        logger.error("error validating the generated FBC: %d issue(s)", len(issues))
        raise FBCValidationError(issues)
    return model
