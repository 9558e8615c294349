"""Configuration schema and resolution using Pydantic settings.

Each backend has its own settings model reading its own environment prefix
(``GEMINI_*`` for image generation, ``ELEVENLABS_*`` for speech synthesis).
`resolve_settings()` merges programmatic overrides over environment values
over defaults, once, and returns an immutable bundle that is passed
explicitly to the components that need it.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from repair_vision.core.exceptions import ConfigurationError

Language = Literal["en", "sw"]
SUPPORTED_LANGUAGES: tuple[str, ...] = ("en", "sw")


class GeminiSettings(BaseSettings):
    """Settings for the image-generation backend (``GEMINI_`` prefix)."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: str | None = Field(
        default=None,
        description="Google Gemini API key",
    )

    model: str = Field(
        default="gemini-2.5-flash-image-preview",
        description="Image-capable Gemini model identifier",
        min_length=1,
    )

    usd_to_rwf_rate: float = Field(
        default=1300.0,
        description="Approximate USD to RWF rate quoted in the analysis prompt",
        gt=0,
    )


class ElevenLabsSettings(BaseSettings):
    """Settings for the speech-synthesis backend (``ELEVENLABS_`` prefix)."""

    model_config = SettingsConfigDict(
        env_prefix="ELEVENLABS_",
        env_file=None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: str | None = Field(default=None, description="ElevenLabs API key")

    voice_id: str = Field(default="21m00Tcm4TlvDq8ikWAM", min_length=1)

    base_url: str = Field(default="https://api.elevenlabs.io/v1", min_length=1)

    multilingual_model: str = Field(default="eleven_multilingual_v2")

    monolingual_model: str = Field(default="eleven_monolingual_v1")

    stability: float = Field(default=0.5, ge=0.0, le=1.0)

    similarity_boost: float = Field(default=0.5, ge=0.0, le=1.0)

    timeout_seconds: float = Field(default=60.0, ge=1.0)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class AppSettings(BaseSettings):
    """Application-wide settings (``REPAIR_VISION_`` prefix)."""

    model_config = SettingsConfigDict(
        env_prefix="REPAIR_VISION_",
        env_file=None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    language: Language = Field(default="en", description="Narration/prompt language")

    @field_validator("language", mode="before")
    @classmethod
    def normalize_language(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v


@dataclasses.dataclass(frozen=True, slots=True)
class Settings:
    """Resolved, immutable configuration handed to the pipeline."""

    gemini: GeminiSettings
    elevenlabs: ElevenLabsSettings
    language: Language = "en"


def _split_overrides(programmatic: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Route flat or nested overrides to their settings section.

    Accepts ``{"gemini": {"model": ...}}`` as well as the flat form
    ``{"gemini_model": ...}``.
    """
    sections: dict[str, dict[str, Any]] = {"gemini": {}, "elevenlabs": {}, "app": {}}
    for key, value in programmatic.items():
        if key in ("gemini", "elevenlabs") and isinstance(value, dict):
            sections[key].update(value)
        elif key.startswith("gemini_"):
            sections["gemini"][key.removeprefix("gemini_")] = value
        elif key.startswith("elevenlabs_"):
            sections["elevenlabs"][key.removeprefix("elevenlabs_")] = value
        elif key == "language":
            sections["app"]["language"] = value
        else:
            raise ConfigurationError(f"Unknown configuration key: {key}")
    return sections


def resolve_settings(
    programmatic: dict[str, Any] | None = None,
    *,
    env_file: str | Path | None = None,
) -> Settings:
    """Resolve configuration with precedence programmatic > environment > defaults.

    Args:
        programmatic: Optional overrides, flat (``gemini_model``) or nested
            (``{"gemini": {"model": ...}}``).
        env_file: Optional ``.env`` file read in addition to the process
            environment.

    Returns:
        An immutable `Settings` bundle.

    Raises:
        ConfigurationError: If any value fails validation or a key is unknown.

    Example:
        settings = resolve_settings({"language": "sw"})
    """
    sections = _split_overrides(programmatic or {})
    file_kwargs: dict[str, Any] = {"_env_file": env_file} if env_file else {}
    try:
        gemini = GeminiSettings(**file_kwargs, **sections["gemini"])
        elevenlabs = ElevenLabsSettings(**file_kwargs, **sections["elevenlabs"])
        app = AppSettings(**file_kwargs, **sections["app"])
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
    return Settings(gemini=gemini, elevenlabs=elevenlabs, language=app.language)
