"""Turn raw multi-part generation responses into validated domain objects."""

from .extractor import extract_parts
from .parser import parse_damage_assessment

__all__ = ["extract_parts", "parse_damage_assessment"]
