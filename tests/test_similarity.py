import pytest

from lead_engine.dedupe.similarity import (
    calculate_similarity,
    fuzzy_match,
    levenshtein_distance,
    normalize_phone,
)


@pytest.mark.parametrize("a, b, expected", [
    ("smith", "smyth", 1),
    ("kitten", "sitting", 3),
    ("", "abc", 3),
    ("abc", "", 3),
    ("same", "same", 0),
    ("flaw", "lawn", 2),
])
def test_levenshtein_distance(a, b, expected):
    assert levenshtein_distance(a, b) == expected
    assert levenshtein_distance(b, a) == expected


def test_fuzzy_match():
    assert fuzzy_match("john smith", "john smyth") == pytest.approx(90.0)
    assert fuzzy_match("acme", "acme") == 100.0
    assert fuzzy_match("", "acme") == 0.0
    assert fuzzy_match("abc", "xyz") == 0.0


@pytest.mark.parametrize("raw", [
    "+1 (555) 010-2000",
    "555-010-2000",
    "1.555.010.2000",
    "5550102000",
])
def test_normalize_phone(raw):
    assert normalize_phone(raw) == "5550102000"


def test_normalize_phone_handles_missing_values():
    assert normalize_phone(None) == ""
    assert normalize_phone("ext.") == ""


def test_email_match_ignores_case_and_whitespace(make_lead):
    lead1 = make_lead("a", email="John.Smith@Globex.com")
    lead2 = make_lead("b", email=" john.smith@globex.com ")

    assert calculate_similarity(lead1, lead2).email == 100.0


def test_phone_match_ignores_formatting(make_lead):
    lead1 = make_lead("a", phone="+1 (555) 010-2000")
    lead2 = make_lead("b", phone="555.010.2000")

    assert calculate_similarity(lead1, lead2).phone == 100.0


def test_company_requires_both_values(make_lead):
    lead1 = make_lead("a", company_name="Globex")
    lead2 = make_lead("b")

    assert calculate_similarity(lead1, lead2).company == 0.0


def test_similar_names_score_high(make_lead):
    lead1 = make_lead("a", first_name="John", last_name="Smith")
    lead2 = make_lead("b", first_name="John", last_name="Smyth")

    assert calculate_similarity(lead1, lead2).name == pytest.approx(90.0)


def test_fully_populated_lead_matches_itself(make_lead):
    lead = make_lead("a", company_name="Globex", phone="555-010-2000")
    analysis = calculate_similarity(lead, lead)

    assert analysis.overall == 100.0
    assert analysis.email == analysis.name == analysis.company == analysis.phone == 100.0


def test_sparse_lead_cannot_fully_match_itself(make_lead):
    lead = make_lead("a")
    # no company or phone, so only email and name contribute
    assert calculate_similarity(lead, lead).overall == pytest.approx(70.0)


def test_email_only_match_carries_email_weight(make_lead):
    lead1 = make_lead("a", email="shared@example.com", first_name="Alice", last_name="Jones")
    lead2 = make_lead("b", email="shared@example.com", first_name="Bob", last_name="Brown")
    analysis = calculate_similarity(lead1, lead2)

    assert analysis.email == 100.0
    assert 40.0 <= analysis.overall < 75.0


@pytest.mark.parametrize("fields1, fields2", [
    ({"first_name": "John", "last_name": "Smith", "company_name": "Globex"},
     {"first_name": "Jon", "last_name": "Smyth", "company_name": "Globex Inc"}),
    ({"phone": "555-010-2000", "company_name": "Initech"},
     {"phone": "+1 555 010 2000"}),
    ({"email": "x@example.com"}, {"email": "y@example.com"}),
])
def test_similarity_is_symmetric(make_lead, fields1, fields2):
    lead1 = make_lead("a", **fields1)
    lead2 = make_lead("b", **fields2)

    assert calculate_similarity(lead1, lead2) == calculate_similarity(lead2, lead1)
