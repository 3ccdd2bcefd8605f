"""Disposal rules: which choices each category offers and what they are worth."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Union

from ecoscan.core.exceptions import InvalidDisposalChoice
from ecoscan.modules.scans.models import DisposalChoice, ItemCategory

MIN_BASE_POINTS = 5
MAX_BASE_POINTS = 30
CREATIVE_BONUS = 5

MULTIPLIERS: Dict[ItemCategory, Dict[DisposalChoice, Decimal]] = {
    ItemCategory.CLOTHING: {
        DisposalChoice.DONATE: Decimal("2"),
        DisposalChoice.TRADE: Decimal("1.8"),
        DisposalChoice.DISCARD: Decimal("1"),
    },
    ItemCategory.ELECTRONICS: {
        DisposalChoice.TRADE: Decimal("2"),
        DisposalChoice.RECYCLE: Decimal("1.5"),
        DisposalChoice.DISCARD: Decimal("0.5"),
    },
    ItemCategory.COMPOST: {
        DisposalChoice.RECYCLE: Decimal("1.5"),
        DisposalChoice.DISCARD: Decimal("1"),
    },
    ItemCategory.RECYCLABLE: {
        DisposalChoice.TRADE: Decimal("1.5"),
        DisposalChoice.RECYCLE: Decimal("1.5"),
        DisposalChoice.DISCARD: Decimal("1"),
    },
    # No discard for hazardous waste.
    ItemCategory.HAZARDOUS: {
        DisposalChoice.SPECIAL: Decimal("2"),
    },
    ItemCategory.OTHER: {},
}

DEFAULT_SUGGESTIONS: Dict[ItemCategory, str] = {
    ItemCategory.CLOTHING: "Donate to charity or sell on second-hand platforms.",
    ItemCategory.ELECTRONICS: "Take to an e-waste recycling center or sell if still working.",
    ItemCategory.COMPOST: "Add to compost bin or green waste collection.",
    ItemCategory.RECYCLABLE: "Clean and place in recycling bin.",
    ItemCategory.HAZARDOUS: (
        "Take to a hazardous waste collection point. Do NOT put in regular bins!"
    ),
    ItemCategory.OTHER: "Place in general waste bin.",
}

REUSABLE_SUGGESTION = "This item is still usable! Consider selling or donating it."


def needs_choice(category: Union[ItemCategory, str]) -> bool:
    return bool(MULTIPLIERS[ItemCategory(category)])


def allowed_choices(category: Union[ItemCategory, str]) -> List[DisposalChoice]:
    return list(MULTIPLIERS[ItemCategory(category)])


def multiplier(
    category: Union[ItemCategory, str], choice: Union[DisposalChoice, str]
) -> Decimal:
    """Look up the multiplier, failing loudly for a choice the category does not offer."""
    category = ItemCategory(category)
    try:
        choice = DisposalChoice(choice)
        return MULTIPLIERS[category][choice]
    except (KeyError, ValueError):
        raise InvalidDisposalChoice(
            category.value,
            str(getattr(choice, "value", choice)),
            [c.value for c in allowed_choices(category)],
        ) from None


def final_points(
    base_points: int,
    category: Union[ItemCategory, str],
    choice: Optional[Union[DisposalChoice, str]],
) -> int:
    """round(base * multiplier) with halves rounded up; no choice means no multiplier."""
    if choice is None:
        return int(base_points)
    value = Decimal(int(base_points)) * multiplier(category, choice)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def clamp_base_points(points: Optional[float], *, creative: bool = False) -> int:
    """Bound classifier points to the accepted range, adding the creative bonus."""
    try:
        value = int(round(float(points))) if points is not None else 10
    except (TypeError, ValueError):
        value = 10
    if value == 0:
        value = 10
    value = max(MIN_BASE_POINTS, min(MAX_BASE_POINTS, value))
    if creative:
        value = min(MAX_BASE_POINTS, value + CREATIVE_BONUS)
    return value


def default_suggestion(category: Union[ItemCategory, str], can_trade: bool = False) -> str:
    if can_trade:
        return REUSABLE_SUGGESTION
    return DEFAULT_SUGGESTIONS[ItemCategory(category)]


__all__ = [
    "CREATIVE_BONUS",
    "DEFAULT_SUGGESTIONS",
    "MAX_BASE_POINTS",
    "MIN_BASE_POINTS",
    "MULTIPLIERS",
    "allowed_choices",
    "clamp_base_points",
    "default_suggestion",
    "final_points",
    "multiplier",
    "needs_choice",
]
