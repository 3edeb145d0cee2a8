"""
Prospect / property matching

Scores every (prospect, property) pair against the prospect's stated
preferences. Pure functions over the serialized dicts returned by the
prospect and property services, so they are usable without a database.
"""
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional
import logging
import math

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchWeights:
    """Points awarded per satisfied criterion; the defaults sum to 100."""
    price: int = 40
    property_type: int = 30
    location: int = 20
    bedrooms: int = 10


@dataclass
class Match:
    prospect: Dict[str, Any]
    property: Dict[str, Any]
    score: int
    breakdown: Dict[str, int] = field(default_factory=dict)

    @property
    def id(self) -> str:
        return f"{self.prospect['id']}-{self.property['id']}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "prospect": self.prospect,
            "property": self.property,
            "score": self.score,
            "breakdown": self.breakdown,
        }


DEFAULT_WEIGHTS = MatchWeights()


def _preferences(prospect: Dict[str, Any]) -> Dict[str, Any]:
    return prospect.get("preferences") or {}


def score_breakdown(
    prospect: Dict[str, Any],
    prop: Dict[str, Any],
    weights: MatchWeights = DEFAULT_WEIGHTS
) -> Dict[str, int]:
    """Points per criterion for one pair"""
    prefs = _preferences(prospect)
    budget = prefs.get("budget") or {}

    # 0 / missing bounds mean "no bound"
    budget_min = budget.get("min") or 0
    budget_max = budget.get("max") or math.inf
    price = prop.get("price") or 0

    desired_types = prefs.get("property_types") or []
    desired_locations = [loc for loc in (prefs.get("locations") or []) if loc]
    location = (prop.get("location") or "").lower()

    return {
        "price": weights.price if budget_min <= price <= budget_max else 0,
        "property_type": weights.property_type if prop.get("type") in desired_types else 0,
        "location": weights.location if any(loc.lower() in location for loc in desired_locations) else 0,
        "bedrooms": weights.bedrooms if (prop.get("bedrooms") or 0) >= (prefs.get("bedrooms") or 0) else 0,
    }


def score_match(
    prospect: Dict[str, Any],
    prop: Dict[str, Any],
    weights: MatchWeights = DEFAULT_WEIGHTS
) -> int:
    """Total score (0-100 with default weights)"""
    return sum(score_breakdown(prospect, prop, weights).values())


def find_matches(
    prospects: List[Dict[str, Any]],
    properties: List[Dict[str, Any]],
    threshold: int = 50,
    weights: MatchWeights = DEFAULT_WEIGHTS
) -> List[Match]:
    """
    Every pair scoring at least threshold, best first.
    Ties keep prospect-then-property input order.
    """
    matches = []
    for prospect in prospects:
        for prop in properties:
            breakdown = score_breakdown(prospect, prop, weights)
            score = sum(breakdown.values())
            if score >= threshold:
                matches.append(Match(prospect=prospect, property=prop, score=score, breakdown=breakdown))

    matches.sort(key=lambda m: m.score, reverse=True)
    logger.debug(f"Matched {len(matches)} pair(s) from {len(prospects)} prospect(s) x {len(properties)} propert(ies)")
    return matches


def matches_for_prospect(matches: List[Match], prospect_id: str) -> List[Match]:
    """Matches of one prospect, still best first"""
    return [m for m in matches if m.prospect["id"] == prospect_id]


def best_match(matches: List[Match], prospect_id: str) -> Optional[Match]:
    own = matches_for_prospect(matches, prospect_id)
    return own[0] if own else None
