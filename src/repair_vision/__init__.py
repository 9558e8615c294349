"""Vehicle damage analysis, repair-cost estimation and spoken diagnosis."""

import importlib.metadata
import logging

from repair_vision.config import Settings, resolve_settings
from repair_vision.core.exceptions import (
    APIError,
    ConfigurationError,
    ContentBlockedError,
    EmptyResponseError,
    InvalidInputFileError,
    MalformedJSONError,
    MissingImageError,
    MissingKeyError,
    MissingStructuredDataError,
    RepairVisionError,
    ResponseError,
    SchemaMismatchError,
    SynthesisError,
)
from repair_vision.core.types import (
    AnalysisOutcome,
    AnalysisSuccess,
    DamageAnalysisResult,
    DamageAssessment,
    ImagePayload,
    PartialFailure,
    RepairCostItem,
    RepairPreviewResult,
    TotalFailure,
    VehicleInfo,
)
from repair_vision.costs import CostTotals, aggregate_costs, format_rwf, format_usd
from repair_vision.narration import compose_narration
from repair_vision.orchestrator import AnalysisOrchestrator, AnalysisState
from repair_vision.playback import NarrationSession, PlaybackState
from repair_vision.response import extract_parts, parse_damage_assessment
from repair_vision.shopping import part_search_query, part_search_url

try:
    __version__ = importlib.metadata.version("repair-vision")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Library code never configures handlers; applications do.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [  # noqa: RUF022
    # Orchestration
    "AnalysisOrchestrator",
    "AnalysisState",
    # Configuration
    "Settings",
    "resolve_settings",
    # Response handling
    "extract_parts",
    "parse_damage_assessment",
    # Costs, narration and shopping
    "CostTotals",
    "aggregate_costs",
    "format_usd",
    "format_rwf",
    "compose_narration",
    "NarrationSession",
    "PlaybackState",
    "part_search_query",
    "part_search_url",
    # Data model
    "ImagePayload",
    "VehicleInfo",
    "RepairCostItem",
    "DamageAssessment",
    "DamageAnalysisResult",
    "RepairPreviewResult",
    "AnalysisOutcome",
    "AnalysisSuccess",
    "PartialFailure",
    "TotalFailure",
    # Exceptions
    "RepairVisionError",
    "ConfigurationError",
    "MissingKeyError",
    "APIError",
    "InvalidInputFileError",
    "SynthesisError",
    "ResponseError",
    "ContentBlockedError",
    "EmptyResponseError",
    "MissingImageError",
    "MissingStructuredDataError",
    "MalformedJSONError",
    "SchemaMismatchError",
]
