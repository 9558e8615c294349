"""Per-currency totals and display formatting for itemized repair costs.

Aggregation is deliberately lenient: an item whose amount is missing or null
counts as zero. Validation of individual items is the parser's job.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import dataclasses
from typing import Any

_FIELD_ALIASES = {
    "cost_usd": "costUSD",
    "cost_rwf": "costRWF",
}


@dataclasses.dataclass(frozen=True, slots=True)
class CostTotals:
    """Summed repair cost in each supported currency."""

    total_usd: float = 0.0
    total_rwf: float = 0.0

    @property
    def formatted_usd(self) -> str:
        return format_usd(self.total_usd)

    @property
    def formatted_rwf(self) -> str:
        return format_rwf(self.total_rwf)


def _amount(item: Any, field: str) -> float:
    if isinstance(item, Mapping):
        value = item.get(_FIELD_ALIASES[field], item.get(field))
    else:
        value = getattr(item, field, None)
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def aggregate_costs(items: Iterable[Any]) -> CostTotals:
    """Sum `cost_usd` and `cost_rwf` across `items`.

    Accepts `RepairCostItem` instances or raw mappings keyed by the wire names
    (``costUSD``/``costRWF``). An empty input yields zero totals; callers
    should render a "no damage detected" state for it rather than an empty
    table.
    """
    usd = 0.0
    rwf = 0.0
    for item in items:
        usd += _amount(item, "cost_usd")
        rwf += _amount(item, "cost_rwf")
    return CostTotals(total_usd=usd, total_rwf=rwf)


def _grouped(amount: float, decimals: int) -> str:
    return f"{abs(amount):,.{decimals}f}"


def format_usd(amount: float) -> str:
    """Format as US dollars with symbol and cents, e.g. ``$1,234.50``."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${_grouped(amount, 2)}"


def format_rwf(amount: float) -> str:
    """Format as Rwandan francs with the ISO code, e.g. ``RWF 650,000``.

    The franc has no minor unit, so amounts are rounded to whole francs.
    """
    sign = "-" if amount < 0 else ""
    return f"RWF {sign}{_grouped(amount, 0)}"
