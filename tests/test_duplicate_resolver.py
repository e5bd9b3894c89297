import pytest

from lead_engine.dedupe import detect_duplicates
from lead_engine.dedupe.resolver import DuplicateResolver
from lead_engine.errors import InvalidStateError, NotFoundError
from lead_engine.models.schemas import (
    DuplicateGroup,
    DuplicateThresholds,
    GroupStatus,
    MatchField,
    SimilarityAnalysis,
)


@pytest.fixture
def resolver():
    return DuplicateResolver()


@pytest.fixture
def john_pair(make_lead):
    return [
        make_lead("a", email="john.smith@acme.com", first_name="John",
                  last_name="Smith", company_name="Acme"),
        make_lead("b", email="John.Smith@ACME.com", first_name="John",
                  last_name="Smith", company_name="Acme"),
    ]


@pytest.fixture
def make_group(now):
    def _make(lead_ids=("a", "b"), status=GroupStatus.PENDING, **fields):
        return DuplicateGroup(
            id="group-1",
            lead_ids=list(lead_ids),
            similarity_score=fields.pop("similarity_score", 85),
            ai_confidence=fields.pop("ai_confidence", 0.9),
            status=status,
            created_at=now,
            **fields,
        )
    return _make


def _threshold(overall, auto_merge=95):
    return DuplicateThresholds(overall_threshold=overall, auto_merge_threshold=auto_merge)


# =============================================================================
# Detection
# =============================================================================

def test_fewer_than_two_leads(resolver, make_lead, now):
    assert resolver.detect([], now=now) == []
    assert resolver.detect([make_lead("a")], now=now) == []


def test_only_true_duplicates_are_grouped(resolver, john_pair, make_lead, now):
    leads = john_pair + [
        make_lead("c", email="maria@initech.com", first_name="Maria", last_name="Garcia"),
        make_lead("d", email="wei@hooli.com", first_name="Wei", last_name="Chen"),
    ]
    groups = resolver.detect(leads, now=now)

    assert len(groups) == 1
    group = groups[0]
    assert group.lead_ids == ["a", "b"]
    assert group.similarity_score == pytest.approx(85.0)
    assert group.matching_fields == [MatchField.EMAIL, MatchField.NAME, MatchField.COMPANY]
    assert group.created_at == now
    assert group.id.startswith("group-")


def test_high_confidence_group_is_marked_reviewed(resolver, john_pair, now):
    group = resolver.detect(john_pair, now=now)[0]

    # 0.85 + email + name boosts, clamped
    assert group.ai_confidence == pytest.approx(0.99)
    assert group.status == GroupStatus.REVIEWED


def test_weaker_group_stays_pending(resolver, make_lead, now):
    leads = [
        make_lead("a", email="jsmith@acme.com", first_name="John", last_name="Smith"),
        make_lead("b", email="jsmith@acme.com", first_name="Jon", last_name="Smith"),
    ]
    groups = resolver.detect(leads, thresholds=_threshold(60), now=now)

    assert len(groups) == 1
    # 40 (email) + 0.3 * 90 (name)
    assert groups[0].similarity_score == pytest.approx(67.0)
    # 0.67 + 0.20 email - 0.15 weak similarity
    assert groups[0].ai_confidence == pytest.approx(0.72)
    assert groups[0].status == GroupStatus.PENDING
    assert groups[0].matching_fields == [MatchField.EMAIL]


def test_threshold_is_inclusive_and_respected(resolver, make_lead, now):
    leads = [
        make_lead("a", email="shared@example.com", first_name="Alice", last_name="Jones"),
        make_lead("b", email="shared@example.com", first_name="Bob", last_name="Brown"),
    ]
    overall = resolver.similarity(*leads).overall

    assert resolver.detect(leads, now=now) == []
    assert len(resolver.detect(leads, thresholds=_threshold(40), now=now)) == 1
    assert len(resolver.detect(leads, thresholds=_threshold(overall), now=now)) == 1


def test_no_transitive_chaining(resolver, make_lead, now):
    anchor = make_lead("a", email="john@acme.com", first_name="John", last_name="Smith",
                       company_name="Acme", phone="555-010-2000")
    same_email = make_lead("b", email="john@acme.com", first_name="John", last_name="Smith",
                           company_name="Acme")
    same_phone = make_lead("c", email="john@other.com", first_name="John", last_name="Smith",
                           company_name="Acme", phone="555-010-2000")

    assert resolver.similarity(anchor, same_email).overall == pytest.approx(85.0)
    assert resolver.similarity(anchor, same_phone).overall == pytest.approx(60.0)
    assert resolver.similarity(same_email, same_phone).overall == pytest.approx(45.0)

    groups = resolver.detect([anchor, same_email, same_phone], thresholds=_threshold(55), now=now)

    assert [g.lead_ids for g in groups] == [["a", "b"]]


def test_each_lead_joins_at_most_one_group(resolver, make_lead, now):
    leads = [
        make_lead(lead_id, email="dup@acme.com", first_name="Dana", last_name="Lee",
                  company_name="Acme", phone="555-010-2000")
        for lead_id in ("a", "b", "c", "d")
    ]
    groups = resolver.detect(leads, now=now)

    assert len(groups) == 1
    assert groups[0].lead_ids == ["a", "b", "c", "d"]
    assert groups[0].similarity_score == pytest.approx(100.0)
    # large-group penalty applies, still clamped to the ceiling
    assert groups[0].ai_confidence == pytest.approx(0.99)


def test_ignored_pairs_are_suppressed(resolver, john_pair, make_group, now):
    ignored = make_group(status=GroupStatus.IGNORED)
    pending = make_group(status=GroupStatus.PENDING)

    assert resolver.detect(john_pair, ignored_groups=[ignored], now=now) == []
    assert len(resolver.detect(john_pair, ignored_groups=[pending], now=now)) == 1


def test_module_level_detect(john_pair):
    assert len(detect_duplicates(john_pair)) == 1


# =============================================================================
# Confidence
# =============================================================================

def test_confidence_penalties(resolver):
    pairs = [SimilarityAnalysis(overall=50)]
    assert resolver.calculate_ai_confidence(4, pairs) == pytest.approx(0.25)


def test_confidence_floor(resolver):
    pairs = [SimilarityAnalysis(overall=0)]
    assert resolver.calculate_ai_confidence(2, pairs) == pytest.approx(0.10)


def test_confidence_uses_any_pair_for_boosts(resolver):
    pairs = [
        SimilarityAnalysis(overall=90, phone=100),
        SimilarityAnalysis(overall=80, name=95),
    ]
    # 0.85 + 0.15 phone + 0.10 name
    assert resolver.calculate_ai_confidence(3, pairs) == pytest.approx(0.99)


def test_matching_fields_need_two_values(resolver, make_lead):
    leads = [
        make_lead("a", phone="+1 555 010 2000", company_name="Acme"),
        make_lead("b", phone="555-010-2000"),
    ]
    fields = resolver.get_matching_fields(leads)

    assert MatchField.PHONE in fields
    assert MatchField.COMPANY not in fields


# =============================================================================
# Merge
# =============================================================================

@pytest.fixture
def merge_leads(make_lead):
    return [
        make_lead("a", custom_fields={"tags": ["webinar"], "budget": "50k", "region": "EMEA"},
                  ai_lead_score=62),
        make_lead("b", phone="555-010-2000", job_title="Director of IT",
                  custom_fields={"tags": ["trade-show"], "budget": "75k"}, ai_lead_score=71),
        make_lead("c", phone="555-999-0000", custom_fields={"tags": ["webinar", "ebook"]},
                  ai_lead_score=40),
    ]


def test_merge_reconciles_fields(resolver, merge_leads, make_group, now):
    group = make_group(lead_ids=("a", "b"))
    result = resolver.merge(group, merge_leads, "a", reviewed_by="jane", now=now)
    merged = result.merged_lead

    assert merged.id == "a"
    assert merged.phone == "555-010-2000"
    assert merged.job_title == "Director of IT"
    assert merged.ai_lead_score == 71
    assert merged.custom_fields == {
        "tags": ["webinar", "trade-show"],
        "budget": "75k",
        "region": "EMEA",
    }
    assert result.removed_lead_ids == ["b"]


def test_merge_updates_group(resolver, merge_leads, make_group, now):
    group = make_group(lead_ids=("a", "b"))
    result = resolver.merge(group, merge_leads, "a", reviewed_by="jane", now=now)

    assert result.group.status == GroupStatus.MERGED
    assert result.group.reviewed_by == "jane"
    assert result.group.reviewed_at == now
    decision = result.group.merge_decision
    assert decision.primary_lead_id == "a"
    assert decision.reason == "Manual merge decision"
    assert decision.merged_fields["id"] == "a"
    assert group.status == GroupStatus.PENDING


def test_merge_keeps_first_filled_value(resolver, merge_leads, make_group, now):
    group = make_group(lead_ids=("a", "b", "c"))
    merged = resolver.merge(group, merge_leads, "a", now=now).merged_lead

    assert merged.phone == "555-010-2000"
    assert merged.custom_fields["tags"] == ["webinar", "trade-show", "ebook"]


def test_merge_does_not_mutate_inputs(resolver, merge_leads, make_group, now):
    resolver.merge(make_group(lead_ids=("a", "b")), merge_leads, "a", now=now)

    assert merge_leads[0].custom_fields == {
        "tags": ["webinar"], "budget": "50k", "region": "EMEA",
    }
    assert merge_leads[0].phone is None


def test_merge_order_does_not_change_tags(resolver, merge_leads):
    primary, b, c = merge_leads
    first = resolver.merge_lead_data(primary, [b, c])
    second = resolver.merge_lead_data(primary, [c, b])

    assert set(first.custom_fields["tags"]) == set(second.custom_fields["tags"])
    assert first.ai_lead_score == second.ai_lead_score == 71


def test_merge_accepts_reviewed_group(resolver, merge_leads, make_group, now):
    group = make_group(status=GroupStatus.REVIEWED)
    result = resolver.merge(group, merge_leads, "b", reason="same person", now=now)

    assert result.removed_lead_ids == ["a"]
    assert result.group.merge_decision.reason == "same person"


@pytest.mark.parametrize("status", [GroupStatus.MERGED, GroupStatus.IGNORED])
def test_merge_rejects_closed_group(resolver, merge_leads, make_group, now, status):
    with pytest.raises(InvalidStateError) as exc_info:
        resolver.merge(make_group(status=status), merge_leads, "a", now=now)
    assert exc_info.value.context["group_id"] == "group-1"


def test_merge_rejects_unknown_primary(resolver, merge_leads, make_group, now):
    with pytest.raises(NotFoundError) as exc_info:
        resolver.merge(make_group(), merge_leads, "c", now=now)
    assert exc_info.value.context["lead_id"] == "c"


def test_merge_requires_all_members(resolver, merge_leads, make_group, now):
    with pytest.raises(NotFoundError) as exc_info:
        resolver.merge(make_group(lead_ids=("a", "zzz")), merge_leads, "a", now=now)
    assert exc_info.value.context["lead_id"] == "zzz"


# =============================================================================
# Ignore / reset / summary
# =============================================================================

def test_ignore_then_reset(resolver, make_group, now):
    ignored = resolver.ignore(make_group(), reviewed_by="sam", now=now)

    assert ignored.status == GroupStatus.IGNORED
    assert ignored.reviewed_by == "sam"

    reset = resolver.reset(ignored)
    assert reset.status == GroupStatus.PENDING
    assert reset.reviewed_at is None


def test_ignore_rejects_closed_group(resolver, make_group, now):
    with pytest.raises(InvalidStateError):
        resolver.ignore(make_group(status=GroupStatus.IGNORED), now=now)


def test_reset_requires_ignored_group(resolver, make_group):
    with pytest.raises(InvalidStateError):
        resolver.reset(make_group(status=GroupStatus.PENDING))


def test_summarize(resolver, make_group):
    groups = [
        make_group(status=GroupStatus.PENDING, ai_confidence=0.9),
        make_group(lead_ids=("c", "d", "e"), status=GroupStatus.PENDING, ai_confidence=0.8),
        make_group(status=GroupStatus.MERGED, ai_confidence=0.99),
    ]
    summary = resolver.summarize(groups)

    assert summary.total_groups == 3
    assert summary.pending_groups == 2
    assert summary.high_confidence_groups == 2
    assert summary.total_duplicates == 4
    assert summary.by_status == {"pending": 2, "reviewed": 0, "merged": 1, "ignored": 0}


# =============================================================================
# Membership changes
# =============================================================================

@pytest.fixture
def dana_trio(make_lead):
    return [
        make_lead(lead_id, email="dana@acme.com", first_name="Dana", last_name="Lee",
                  company_name="Acme")
        for lead_id in ("a", "b", "c")
    ]


def test_drop_lead_rebuilds_group(resolver, dana_trio, now):
    group = resolver.detect(dana_trio, now=now)[0]
    remaining = [lead for lead in dana_trio if lead.id != "c"]

    shrunk = resolver.drop_lead(group, "c", remaining)

    assert shrunk.id == group.id
    assert shrunk.created_at == group.created_at
    assert shrunk.lead_ids == ["a", "b"]
    assert shrunk.similarity_score == pytest.approx(85.0)
    assert group.lead_ids == ["a", "b", "c"]


def test_drop_lead_dissolves_pair(resolver, dana_trio, now):
    group = resolver.detect(dana_trio[:2], now=now)[0]
    assert resolver.drop_lead(group, "b", dana_trio[:1]) is None


def test_drop_lead_leaves_other_groups_alone(resolver, dana_trio, make_group):
    unrelated = make_group(lead_ids=("x", "y"))
    merged = make_group(status=GroupStatus.MERGED)

    assert resolver.drop_lead(unrelated, "a", dana_trio) is unrelated
    assert resolver.drop_lead(merged, "a", dana_trio) is merged
