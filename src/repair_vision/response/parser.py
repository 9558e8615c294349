"""Structured-data parsing for damage-analysis text payloads.

The generation backend wraps its JSON inconsistently: sometimes inside a
Markdown code fence (optionally tagged ``json``), sometimes as the bare
payload. Both shapes are tried in order; anything else is rejected. The
parsed value is validated against the cost/vehicle schema with Pydantic and
returned unchanged: no defaults are filled in and no currency conversion
happens here.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import TypeAdapter, ValidationError

from repair_vision.core.exceptions import MalformedJSONError, SchemaMismatchError
from repair_vision.core.types import DamageAssessment, RepairCostItem, VehicleInfo

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

_COST_LIST = TypeAdapter(tuple[RepairCostItem, ...])


def _candidates(text: str) -> list[str]:
    """Return the JSON strings to try, fenced content first."""
    candidates = []
    match = _FENCE_RE.search(text)
    if match and match.group(1).strip():
        candidates.append(match.group(1))
    candidates.append(text.strip())
    return candidates


def load_json_payload(text: str) -> Any:
    """Decode the JSON value carried by `text`.

    Raises:
        MalformedJSONError: Neither the fenced block nor the whole trimmed
            text decodes as JSON.
    """
    last_error: json.JSONDecodeError | None = None
    for candidate in _candidates(text or ""):
        try:
            return json.loads(candidate)
        except json.JSONDecodeError as e:
            last_error = e
            continue
    logger.error("Failed to parse cost data JSON: %s. Raw text: %r", last_error, text)
    raise MalformedJSONError(text or "")


def _describe(error: ValidationError) -> str:
    problems = []
    for item in error.errors()[:5]:
        location = ".".join(str(p) for p in item.get("loc", ()))
        problems.append(f"{location or '<root>'}: {item.get('msg')}")
    return "; ".join(problems)


def validate_assessment(data: Any, raw_text: str) -> DamageAssessment:
    """Validate decoded JSON against the expected schema.

    Two top-level shapes are accepted: the full object
    ``{"vehicle": {...}, "costs": [...]}`` and a bare array of cost items
    (in which case the vehicle is unidentified). Any item missing one of the
    five required keys fails the whole payload. Keys are matched by their
    wire names only (`costUSD`, not `cost_usd`).

    Raises:
        SchemaMismatchError: The payload has the wrong shape or any item is
            incomplete or ill-typed.
    """
    try:
        if isinstance(data, list):
            costs = _COST_LIST.validate_python(data, by_alias=True, by_name=False)
            return DamageAssessment(vehicle=VehicleInfo.unidentified(), costs=costs)
        if isinstance(data, dict):
            return DamageAssessment.model_validate(
                data, by_alias=True, by_name=False
            )
    except ValidationError as e:
        details = _describe(e)
        logger.error("Cost data does not match expected format: %s", details)
        raise SchemaMismatchError(raw_text, details) from e

    logger.error("Cost data has unexpected top-level type %s", type(data).__name__)
    raise SchemaMismatchError(
        raw_text, f"Expected a JSON object or array, got {type(data).__name__}."
    )


def parse_damage_assessment(text: str) -> DamageAssessment:
    """Parse and validate the text part of a damage-analysis response.

    Raises:
        MalformedJSONError: The text is not JSON in a recognised wire shape.
        SchemaMismatchError: The JSON does not match the expected schema.
    """
    data = load_json_payload(text)
    return validate_assessment(data, text)
