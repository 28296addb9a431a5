"""
Lead-to-property matching.

Scores every available property against one lead's stated preferences
with a fixed additive point table, drops properties that match nothing
and ranks the rest: within-budget properties first, then by score.
The function is pure; nothing is persisted and results are recomputed
on every call.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

# A property priced up to 10% over the lead's budget still counts as within budget.
BUDGET_TOLERANCE = 1.1

BUDGET_POINTS = 40
TYPE_POINTS = 15
LOCATION_POINTS = 15
BEDROOMS_POINTS = 10
BATHROOMS_POINTS = 10
AREA_POINTS = 5
AMENITIES_POINTS = 5

REASON_BUDGET = "Within Budget"
REASON_TYPE = "Property Type"
REASON_LOCATION = "Location"
REASON_BEDROOMS = "Bedrooms"
REASON_BATHROOMS = "Bathrooms"
REASON_AREA = "Area"
REASON_AMENITIES = "Amenities"

EXCLUDED_TYPES = frozenset({"Land", "Plot"})

PREFERENCE_FIELDS = (
    "preferred_location",
    "preferred_property_type",
    "budget",
    "preferred_bedrooms",
    "preferred_bathrooms",
    "preferred_area",
)


@dataclass
class ScoredProperty:
    property: Any
    match_score: int = 0
    match_reasons: list[str] = field(default_factory=list)
    is_within_budget: bool = False

    def to_dict(self, record: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Property fields merged with the match annotations, camelCase like the UI expects."""
        if record is None:
            record = self.property if isinstance(self.property, Mapping) else {}
        data = dict(record)
        data["matchScore"] = self.match_score
        data["matchReasons"] = list(self.match_reasons)
        data["isWithinBudget"] = self.is_within_budget
        return data


def _get(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _contains(haystack: Any, needle: Any) -> bool:
    if not needle or not isinstance(needle, str) or not isinstance(haystack, str):
        return False
    return needle.lower() in haystack.lower()


def _amenity_tokens(value: str) -> set[str]:
    return {token.strip() for token in value.split(",") if token.strip()}


def _amenities_overlap(preferred: Any, offered: Any) -> bool:
    if not isinstance(preferred, str) or not isinstance(offered, str):
        return False
    return bool(_amenity_tokens(preferred) & _amenity_tokens(offered))


def _same(preferred: Any, actual: Any) -> bool:
    if preferred is None or preferred == "":
        return False
    return preferred == actual


def is_excluded(prop: Any, lead: Any) -> bool:
    """Land and plots only show up for leads that asked for them."""
    return _get(prop, "type") in EXCLUDED_TYPES and _get(lead, "preferred_property_type") not in EXCLUDED_TYPES


def is_within_budget(prop: Any, lead: Any) -> bool:
    budget = _get(lead, "budget")
    price = _get(prop, "current_price")
    if not budget or price is None:
        return False
    return price <= budget * BUDGET_TOLERANCE


def score_property(prop: Any, lead: Any) -> ScoredProperty:
    scored = ScoredProperty(property=prop)

    if is_within_budget(prop, lead):
        scored.is_within_budget = True
        scored.match_score += BUDGET_POINTS
        scored.match_reasons.append(REASON_BUDGET)

    if _same(_get(lead, "preferred_property_type"), _get(prop, "type")):
        scored.match_score += TYPE_POINTS
        scored.match_reasons.append(REASON_TYPE)

    if _contains(_get(prop, "location"), _get(lead, "preferred_location")):
        scored.match_score += LOCATION_POINTS
        scored.match_reasons.append(REASON_LOCATION)

    if _same(_get(lead, "preferred_bedrooms"), _get(prop, "bedrooms")):
        scored.match_score += BEDROOMS_POINTS
        scored.match_reasons.append(REASON_BEDROOMS)

    if _same(_get(lead, "preferred_bathrooms"), _get(prop, "bathrooms")):
        scored.match_score += BATHROOMS_POINTS
        scored.match_reasons.append(REASON_BATHROOMS)

    if _contains(_get(prop, "area"), _get(lead, "preferred_area")):
        scored.match_score += AREA_POINTS
        scored.match_reasons.append(REASON_AREA)

    if _amenities_overlap(_get(lead, "preferred_amenities"), _get(prop, "amenities")):
        scored.match_score += AMENITIES_POINTS
        scored.match_reasons.append(REASON_AMENITIES)

    return scored


def match_properties_to_lead(properties: Iterable[Any], lead: Any) -> list[ScoredProperty]:
    if lead is None:
        return []

    ranked = [
        scored
        for scored in (score_property(prop, lead) for prop in properties if not is_excluded(prop, lead))
        if scored.match_score > 0
    ]
    # list.sort is stable, so equal keys keep their input order.
    ranked.sort(key=lambda s: (not s.is_within_budget, -s.match_score))
    return ranked


def preferences_empty(lead: Any) -> bool:
    if lead is None:
        return True
    return not any(_get(lead, name) for name in PREFERENCE_FIELDS)
