"""Load scoring weights from YAML (with fallbacks to the built-in defaults)."""

from __future__ import annotations

import logging
import math
from dataclasses import fields
from pathlib import Path

import yaml

from jira_assign.assignment.types import DEFAULT_WEIGHTS, ScoringWeights

from .config import SETTINGS

logger = logging.getLogger(__name__)

_CACHE: dict[Path, ScoringWeights] = {}


def reset_weights_cache() -> None:
    _CACHE.clear()


def _coerce_weight(name: str, value, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("Weight %s=%r is not numeric; using %s", name, value, default)
        return default
    if not math.isfinite(number):
        logger.warning("Weight %s=%r is not finite; using %s", name, value, default)
        return default
    if number < 0:
        logger.warning("Weight %s=%r is negative; using %s", name, value, default)
        return default
    return number


def load_weights(path: str | Path | None = None) -> ScoringWeights:
    """Return weights from ``path`` (default: ``weights.yaml`` beside the package).

    The file holds a ``weights:`` mapping of weight name to number. A missing
    or unreadable file yields the defaults; unknown names are ignored and
    negative, non-numeric or non-finite values fall back to their default.
    """
    yaml_path = Path(path) if path else Path(__file__).resolve().parent.parent / SETTINGS.weights_file
    if yaml_path in _CACHE:
        return _CACHE[yaml_path]
    if not yaml_path.exists():
        _CACHE[yaml_path] = DEFAULT_WEIGHTS
        return DEFAULT_WEIGHTS
    try:
        data = yaml.safe_load(yaml_path.read_text()) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not read weights from %s: %s", yaml_path, exc)
        _CACHE[yaml_path] = DEFAULT_WEIGHTS
        return DEFAULT_WEIGHTS

    overrides = data.get("weights") if isinstance(data, dict) else None
    if not isinstance(overrides, dict):
        overrides = {}
    known = {f.name: getattr(DEFAULT_WEIGHTS, f.name) for f in fields(ScoringWeights)}
    values: dict[str, float] = {}
    for name, value in overrides.items():
        if name not in known:
            logger.warning("Ignoring unknown weight %r in %s", name, yaml_path)
            continue
        values[name] = _coerce_weight(name, value, known[name])
    weights = ScoringWeights(**values)
    _CACHE[yaml_path] = weights
    return weights
