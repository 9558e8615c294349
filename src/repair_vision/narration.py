"""Compose the spoken diagnosis summary for a damage analysis."""

from __future__ import annotations

from collections.abc import Sequence
import math

from repair_vision.core.types import RepairCostItem, VehicleInfo
from repair_vision.costs import aggregate_costs

NO_DAMAGE_SENTENCE = "No damage was detected."


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compose_narration(vehicle: VehicleInfo, costs: Sequence[RepairCostItem]) -> str:
    """Render the fixed narration template for `vehicle` and `costs`.

    The output is deterministic: an opening sentence naming the vehicle and
    the number of damaged parts, one sentence per item in the given order,
    and a closing sentence with the rounded USD total. An empty cost list
    yields only `NO_DAMAGE_SENTENCE`.
    """
    if not costs:
        return NO_DAMAGE_SENTENCE

    vehicle_name = vehicle.display_name or "vehicle"
    part_count = len(costs)
    noun = "parts" if part_count > 1 else "part"
    total = aggregate_costs(costs).total_usd

    sentences = [
        f"Analysis for the {vehicle_name}.",
        f"I've detected damage on {part_count} {noun}.",
    ]
    sentences.extend(
        f"The {item.part} has {item.damage}. "
        f"My suggestion is to {item.suggestion.strip().lower()} this part."
        for item in costs
    )
    sentences.append(
        "The total estimated cost for all repairs is approximately "
        f"{_round_half_up(total)} US dollars."
    )
    return " ".join(sentences)
