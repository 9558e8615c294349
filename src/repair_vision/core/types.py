"""Core data types that flow through the analysis pipeline.

Domain records (`VehicleInfo`, `RepairCostItem`, `DamageAssessment`) are
frozen Pydantic models so the parser can validate the model's JSON against
them directly. Pipeline values (images, extracted parts, outcomes) are frozen
dataclasses, mirroring how a request moves through distinct, immutable stages.
"""

from __future__ import annotations

import base64
import dataclasses
import typing

from pydantic import BaseModel, ConfigDict, Field

# --- Result type for explicit, non-raising joins ---

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure", bound=Exception)


@dataclasses.dataclass(frozen=True, slots=True)
class Success(typing.Generic[TSuccess]):
    """A successful branch result."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure(typing.Generic[TFailure]):
    """A failed branch result, containing the error."""

    error: TFailure


Result = Success[TSuccess] | Failure[TFailure]

# --- Images ---


@dataclasses.dataclass(frozen=True, slots=True)
class ImagePayload:
    """Raw image bytes plus their declared MIME type."""

    data: bytes
    mime_type: str

    @property
    def data_uri(self) -> str:
        """Render as a `data:` URI suitable for direct display."""
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    @property
    def extension(self) -> str:
        subtype = self.mime_type.partition("/")[2] or "bin"
        return "jpg" if subtype == "jpeg" else subtype.split("+")[0]


@dataclasses.dataclass(frozen=True, slots=True)
class ExtractedParts:
    """The usable payloads found in one generation response."""

    image: ImagePayload
    text: str | None = None
    finish_reason: str | None = None


# --- Domain records ---

NonNegativeAmount = typing.Annotated[
    float, Field(ge=0, strict=True, allow_inf_nan=False)
]


class VehicleInfo(BaseModel):
    """Identity of the photographed vehicle, as reported by the model."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    make: str
    model: str
    year: str

    @classmethod
    def unidentified(cls) -> VehicleInfo:
        return cls(make="", model="", year="")

    @property
    def display_name(self) -> str:
        """`year make model`, skipping blank fields; empty when unidentified."""
        return " ".join(
            v.strip() for v in (self.year, self.make, self.model) if v.strip()
        )


class RepairCostItem(BaseModel):
    """One itemized repair estimate in both currencies.

    Field names on the wire are the camel-case keys the prompt requests
    (`costUSD`, `costRWF`); Python access uses snake case. Constructing an
    item in code accepts either spelling, but the response parser validates
    by alias only.
    """

    model_config = ConfigDict(
        frozen=True, validate_by_name=True, validate_by_alias=True
    )

    part: str
    damage: str
    suggestion: str
    cost_usd: NonNegativeAmount = Field(alias="costUSD")
    cost_rwf: NonNegativeAmount = Field(alias="costRWF")

    @property
    def is_replacement(self) -> bool:
        """True when the suggestion reads as a replacement rather than a repair."""
        return "replace" in self.suggestion.lower()


class DamageAssessment(BaseModel):
    """Validated structured payload of a damage-analysis response."""

    model_config = ConfigDict(frozen=True)

    vehicle: VehicleInfo
    costs: tuple[RepairCostItem, ...]


# --- Analysis results ---


@dataclasses.dataclass(frozen=True, slots=True)
class DamageAnalysisResult:
    """Annotated image plus the vehicle and cost data parsed alongside it."""

    annotated_image: ImagePayload
    vehicle: VehicleInfo
    costs: tuple[RepairCostItem, ...]


@dataclasses.dataclass(frozen=True, slots=True)
class RepairPreviewResult:
    """The AI-generated "after repair" image."""

    repaired_image: ImagePayload


@dataclasses.dataclass(frozen=True, slots=True)
class AnalysisSuccess:
    """Both branches succeeded."""

    analysis: DamageAnalysisResult
    preview: RepairPreviewResult

    @property
    def error(self) -> None:
        return None

    @property
    def is_renderable(self) -> bool:
        return True


@dataclasses.dataclass(frozen=True, slots=True)
class PartialFailure:
    """Exactly one branch succeeded; `error` describes the other."""

    error: str
    analysis: DamageAnalysisResult | None = None
    preview: RepairPreviewResult | None = None

    def __post_init__(self) -> None:
        if (self.analysis is None) == (self.preview is None):
            raise ValueError("PartialFailure requires exactly one successful branch")
        if not self.error:
            raise ValueError("PartialFailure requires a non-empty error message")

    @property
    def is_renderable(self) -> bool:
        # The results view needs both images plus cost data.
        return False


@dataclasses.dataclass(frozen=True, slots=True)
class TotalFailure:
    """Neither branch produced anything usable."""

    error: str

    @property
    def analysis(self) -> None:
        return None

    @property
    def preview(self) -> None:
        return None

    @property
    def is_renderable(self) -> bool:
        return False


AnalysisOutcome = AnalysisSuccess | PartialFailure | TotalFailure
