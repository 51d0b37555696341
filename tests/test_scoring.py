import pytest

from roster_enricher.models import ContactRecord, PaidCandidate
from roster_enricher.regions import get_focus_region
from roster_enricher.scoring import DEFAULT_SCORER, RelevanceScorer


def test_location_bonus_is_monotonic_for_dach() -> None:
    scorer = RelevanceScorer()

    swiss = scorer.score(ContactRecord(location="Zurich, Switzerland"), "DACH")
    german = scorer.score(ContactRecord(location="Berlin, Germany"), "DACH")
    french = scorer.score(ContactRecord(location="Paris, France"), "DACH")
    unknown = scorer.score(ContactRecord(location=None), "DACH")

    assert swiss == 30
    assert german == 20
    assert french == 10
    assert unknown == scorer.floor
    assert swiss > german > french > unknown


def test_iso_code_segments_count_as_locations() -> None:
    assert DEFAULT_SCORER.location_score("Basel, CH", "DACH") == 30
    assert DEFAULT_SCORER.location_score("Chur", "DACH") == 0


def test_title_tiers_are_additive() -> None:
    assert DEFAULT_SCORER.title_score("Export Manager") == 10
    assert DEFAULT_SCORER.title_score("Head of Sales") == 8 + 5 + 3
    assert DEFAULT_SCORER.title_score("Office Assistant") == 0


def test_focus_region_country_name_in_title_counts_as_regional() -> None:
    assert DEFAULT_SCORER.title_score("Switzerland Representative", "CH") == 10
    assert DEFAULT_SCORER.title_score("Switzerland Representative", "FR") == 0


def test_linkedin_bonus_and_determinism() -> None:
    record = ContactRecord(title="Sales", linkedin_url="https://linkedin.com/in/anna", location="Vienna, Austria")

    first = DEFAULT_SCORER.score(record, "DACH")
    assert first == 20 + 5 + 2
    assert DEFAULT_SCORER.score(record, "DACH") == first


def test_all_region_has_no_geographic_bias() -> None:
    scorer = RelevanceScorer()
    assert scorer.score(ContactRecord(location="Zurich, Switzerland"), "ALL") == scorer.floor


def test_rank_is_stable_for_equal_scores() -> None:
    first = ContactRecord(name="First", title="Sales")
    second = ContactRecord(name="Second", title="Sales")
    best = ContactRecord(name="Best", title="Export Sales", location="Switzerland")

    ranked = DEFAULT_SCORER.rank([first, second, best], "DACH")
    assert [record.name for record in ranked] == ["Best", "First", "Second"]


def test_rank_candidates_orders_masked_results() -> None:
    candidates = [
        PaidCandidate(contact_id="1", full_name="Paris Person", job_title="Sales", country="France"),
        PaidCandidate(contact_id="2", full_name="Zurich Person", job_title="Sales", country="Switzerland"),
    ]

    ranked = DEFAULT_SCORER.rank_candidates(candidates, "DACH")
    assert [candidate.contact_id for candidate in ranked] == ["2", "1"]


def test_unknown_region_is_rejected() -> None:
    with pytest.raises(ValueError):
        get_focus_region("ATLANTIS")
