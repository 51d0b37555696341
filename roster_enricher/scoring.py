"""Commercial relevance scoring for contact records and paid-search candidates."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import ContactRecord, PaidCandidate
from .regions import RegionLike, get_focus_region

# Ordered by commercial priority. Each group is an independent substring test,
# so a title matching several groups collects every bonus.
TITLE_TIERS: Tuple[Tuple[str, float, Tuple[str, ...]], ...] = (
    ("regional_export", 10.0, ("export", "dach", "emea", "international")),
    ("country_manager", 9.0, ("country manager", "region manager", "regional manager", "area manager")),
    ("sales_director", 8.0, ("sales director", "commercial director", "director of sales", "head of sales", "vp sales")),
    ("business_development", 7.0, ("business development", "key account")),
    ("sales_manager", 6.0, ("sales manager", "regional")),
    ("sales", 5.0, ("sales", "commercial", "account", "vertrieb")),
    ("marketing", 4.0, ("marketing", "partnership")),
    ("executive", 3.0, ("ceo", "founder", "owner", "director", "vp", "head of", "president", "geschäftsführer")),
)

LOCATION_BONUS: Dict[str, float] = {
    "primary": 30.0,
    "secondary": 20.0,
    "broad": 10.0,
}


@dataclass(frozen=True)
class RelevanceScorer:
    """Pure, additive relevance score. Same input, same output, no side effects."""

    title_tiers: Tuple[Tuple[str, float, Tuple[str, ...]], ...] = TITLE_TIERS
    location_bonus: Dict[str, float] = field(default_factory=lambda: dict(LOCATION_BONUS))
    linkedin_bonus: float = 2.0
    floor: float = 1.0

    def score(self, record: ContactRecord, focus_region: RegionLike = None) -> float:
        region = get_focus_region(focus_region)
        total = 0.0
        total += self.location_score(record.location, region)
        total += self.title_score(record.title, region)
        if record.linkedin_url:
            total += self.linkedin_bonus
        if total <= 0:
            total = self.floor
        return total

    def location_score(self, location: Optional[str], focus_region: RegionLike = None) -> float:
        region = get_focus_region(focus_region)
        tier = region.location_tier(location)
        if tier is None:
            return 0.0
        return self.location_bonus.get(tier, 0.0)

    def title_score(self, title: Optional[str], focus_region: RegionLike = None) -> float:
        if not title:
            return 0.0
        region = get_focus_region(focus_region)
        lowered = title.lower()
        total = 0.0
        for index, (_, bonus, keywords) in enumerate(self.title_tiers):
            if index == 0:
                keywords = keywords + region.primary_names()
            if any(keyword in lowered for keyword in keywords):
                total += bonus
        return total

    def rank(self, records: Iterable[ContactRecord], focus_region: RegionLike = None) -> List[ContactRecord]:
        """Stable sort, best first."""

        region = get_focus_region(focus_region)
        scored = [(self.score(record, region), record) for record in records]
        scored.sort(key=lambda item: item[0], reverse=True)
        return [record for _, record in scored]

    def rank_candidates(
        self,
        candidates: Sequence[PaidCandidate],
        focus_region: RegionLike = None,
    ) -> List[PaidCandidate]:
        """Order masked paid-search candidates before the user picks what to reveal."""

        region = get_focus_region(focus_region)
        scored = [(self.score(candidate.to_contact(0.0), region), candidate) for candidate in candidates]
        scored.sort(key=lambda item: item[0], reverse=True)
        return [candidate for _, candidate in scored]


DEFAULT_SCORER = RelevanceScorer()


def score_contact(record: ContactRecord, focus_region: RegionLike = None) -> float:
    return DEFAULT_SCORER.score(record, focus_region)


__all__ = ["RelevanceScorer", "DEFAULT_SCORER", "score_contact", "TITLE_TIERS", "LOCATION_BONUS"]
