"""Deduplicate, rank and cap contact rosters."""
from __future__ import annotations

from typing import Iterable, List, Optional, Protocol, Sequence

from .models import ContactRecord
from .regions import FocusRegion
from .scoring import DEFAULT_SCORER, RelevanceScorer

DEFAULT_MAX_ROSTER_SIZE = 5


class ContactMatcher(Protocol):
    """Decides whether two records describe the same person or mailbox."""

    def same_contact(self, left: ContactRecord, right: ContactRecord) -> bool:  # pragma: no cover - protocol
        ...


class EmailOrNameMatcher:
    """Same contact when emails match, or when names match, case-insensitively.

    Records without either key can never be proven equal and stay distinct.
    """

    def same_contact(self, left: ContactRecord, right: ContactRecord) -> bool:
        if left.email and right.email and left.email.lower() == right.email.lower():
            return True
        if left.name and right.name and left.name.casefold() == right.name.casefold():
            return True
        return False


DEFAULT_MATCHER = EmailOrNameMatcher()


def find_duplicate(
    candidate: ContactRecord,
    roster: Iterable[ContactRecord],
    matcher: ContactMatcher = DEFAULT_MATCHER,
) -> Optional[ContactRecord]:
    for existing in roster:
        if matcher.same_contact(existing, candidate):
            return existing
    return None


def new_contacts(
    existing: Sequence[ContactRecord],
    incoming: Iterable[ContactRecord],
    matcher: ContactMatcher = DEFAULT_MATCHER,
) -> List[ContactRecord]:
    """Incoming records that are neither on the roster nor repeated earlier in ``incoming``."""

    accepted: List[ContactRecord] = []
    for record in incoming:
        if record is None:
            continue
        if find_duplicate(record, existing, matcher) is not None:
            continue
        if find_duplicate(record, accepted, matcher) is not None:
            continue
        accepted.append(record)
    return accepted


def merge_contacts(
    existing: Sequence[ContactRecord],
    incoming: Iterable[ContactRecord],
    *,
    focus_region: FocusRegion | str | None = None,
    automated: bool = True,
    max_roster_size: int = DEFAULT_MAX_ROSTER_SIZE,
    scorer: RelevanceScorer = DEFAULT_SCORER,
    matcher: ContactMatcher = DEFAULT_MATCHER,
) -> List[ContactRecord]:
    """Return the next roster: ``existing`` plus new ``incoming`` records, ranked.

    The earlier record always wins a duplicate; the incoming copy is dropped
    wholesale. When nothing new survives, ``existing`` comes back unchanged.
    Automated merges are capped at ``max(max_roster_size, len(existing))``;
    manual additions are not capped.
    """

    roster = list(existing)
    additions = new_contacts(roster, incoming, matcher)
    if not additions:
        return roster

    ranked = scorer.rank(roster + additions, focus_region)
    if automated:
        cap = max(max_roster_size, len(roster))
        ranked = ranked[:cap]
    return ranked


def count_new_actionable(existing: Sequence[ContactRecord], merged: Iterable[ContactRecord]) -> int:
    """Number of actionable records in ``merged`` that were not already on the roster."""

    before = {id(record) for record in existing}
    return sum(1 for record in merged if id(record) not in before and record.is_actionable)


__all__ = [
    "ContactMatcher",
    "EmailOrNameMatcher",
    "DEFAULT_MATCHER",
    "DEFAULT_MAX_ROSTER_SIZE",
    "find_duplicate",
    "new_contacts",
    "merge_contacts",
    "count_new_actionable",
]
