"""Prompt templates for the damage-analysis and repair-preview requests.

The analysis prompt fixes the JSON field names the parser accepts
(``vehicle.make/model/year`` and ``part``, ``damage``, ``suggestion``,
``costUSD``, ``costRWF``); keep the two in sync.
"""

from __future__ import annotations

LANGUAGE_NAMES = {"en": "English", "sw": "Swahili"}

_ANALYSIS_TEMPLATE = """You are an expert auto-body visual assistant.
Task: Analyze the uploaded car photo and user description. You MUST return two separate parts in your response: an edited image AND a JSON object.

1.  **Edited Image Part**:
    -   Take the uploaded car photo and create an EDITED IMAGE that overlays damage areas.
    -   Detect and highlight: dents, scratches, cracked lights, bumper or panel misalignment, chipped paint, rust.
    -   Add semi-transparent RED overlays only where damage likely exists. Keep everything else identical.
    -   Do NOT remove plates, beautify, or change the background. Keep scale, perspective, reflections, and lighting untouched.
    -   If a user description is provided, prioritize those areas. User description: "{description}"

2.  **JSON Text Part**:
    -   Identify the vehicle's make, model and approximate year.
    -   Provide the estimated repair costs for the damage you identified.
    -   Based on the severity of the damage, provide a 'suggestion' for each item, which must be either 'Repair' or 'Replace'.
    -   Write the 'part' and 'damage' values in {language_name}. Keep the JSON keys exactly as shown.
    -   Base your cost estimates on standard US auto repair industry data.
    -   For RWF, use an approximate conversion rate of 1 USD = {rate:g} RWF.
    -   The JSON object must follow this exact schema:
    ```json
    {{
      "vehicle": {{
        "make": "string",
        "model": "string",
        "year": "string"
      }},
      "costs": [
        {{
          "part": "string",
          "damage": "string",
          "suggestion": "string (either 'Repair' or 'Replace')",
          "costUSD": number,
          "costRWF": number
        }}
      ]
    }}
    ```
    -   If no damage is detected, return an empty "costs" array [].

Return BOTH the edited image part and the text part containing only the JSON."""

_REPAIR_TEMPLATE = """You are an expert auto-body visual assistant.
Task: Create a "repaired" version of the SAME uploaded photo, using the user's description as a guide for what to fix.

User Description of Damage: "{description}"

Instructions:
- Remove scratches, fill dents, realign bumper/panels, restore paint to factory look, fix cracked lights based on the original image and user description.
- KEEP the same car model, color, reflections, background, camera angle, and lighting.
- Do not add stickers, text, watermarks, or color grading.
- Do not invent new rims/parts; preserve all identity features.
- The repair should be subtle and realistic. No showroom gloss.

Return: ONLY the edited image (after-repair preview). Do not return text."""


def _description_or_none(description: str | None) -> str:
    text = (description or "").strip()
    return text.replace('"', "'") if text else "none"


def build_damage_analysis_prompt(
    description: str | None,
    *,
    language: str = "en",
    usd_to_rwf_rate: float = 1300.0,
) -> str:
    """Prompt requesting an annotated image plus the vehicle/cost JSON."""
    return _ANALYSIS_TEMPLATE.format(
        description=_description_or_none(description),
        language_name=LANGUAGE_NAMES.get(language, "English"),
        rate=usd_to_rwf_rate,
    )


def build_repair_preview_prompt(description: str | None) -> str:
    """Prompt requesting only an edited, repaired image."""
    return _REPAIR_TEMPLATE.format(description=_description_or_none(description))
