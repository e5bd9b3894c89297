"""
Text similarity and normalization helpers for duplicate detection.

Fuzzy matching uses normalized Levenshtein distance; detection thresholds
are calibrated against this exact metric.
"""

import re
from typing import Optional

from ..models.schemas import Lead, SimilarityAnalysis
from ..config.settings import SIMILARITY_WEIGHTS

NON_DIGITS = re.compile(r"\D")


def levenshtein_distance(str1: str, str2: str) -> int:
    """Classic edit distance with unit insert/delete/substitute costs"""
    if str1 == str2:
        return 0
    if not str1:
        return len(str2)
    if not str2:
        return len(str1)

    previous = list(range(len(str2) + 1))
    for i, char1 in enumerate(str1, start=1):
        current = [i]
        for j, char2 in enumerate(str2, start=1):
            if char1 == char2:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def fuzzy_match(str1: str, str2: str) -> float:
    """
    Similarity of two strings on a 0-100 scale.

    0 when either string is empty, 100 when identical, otherwise
    (max_len - distance) / max_len * 100.
    """
    if not str1 or not str2:
        return 0.0
    if str1 == str2:
        return 100.0

    max_len = max(len(str1), len(str2))
    return (max_len - levenshtein_distance(str1, str2)) * 100 / max_len


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def normalize_name(lead: Lead) -> str:
    return lead.full_name.lower().strip()


def normalize_company(company: Optional[str]) -> str:
    return (company or "").lower().strip()


def normalize_phone(phone: Optional[str]) -> str:
    """Digits only, with a single leading country code 1 removed"""
    digits = NON_DIGITS.sub("", phone or "")
    if digits.startswith("1"):
        digits = digits[1:]
    return digits


def calculate_similarity(lead1: Lead, lead2: Lead) -> SimilarityAnalysis:
    """
    Field-by-field similarity of two leads.

    Email and phone are exact-match fields (0 or 100); name and company
    are fuzzy. The overall score is a weighted sum with weights summing
    to 1.0.
    """
    email1, email2 = normalize_email(lead1.email), normalize_email(lead2.email)
    email = 100.0 if email1 and email1 == email2 else 0.0

    name = fuzzy_match(normalize_name(lead1), normalize_name(lead2))

    company = 0.0
    if lead1.company_name and lead2.company_name:
        company = fuzzy_match(
            normalize_company(lead1.company_name),
            normalize_company(lead2.company_name),
        )

    phone1, phone2 = normalize_phone(lead1.phone), normalize_phone(lead2.phone)
    phone = 100.0 if phone1 and phone1 == phone2 else 0.0

    overall = (
        email * SIMILARITY_WEIGHTS["email"]
        + name * SIMILARITY_WEIGHTS["name"]
        + company * SIMILARITY_WEIGHTS["company"]
        + phone * SIMILARITY_WEIGHTS["phone"]
    )

    return SimilarityAnalysis(
        overall=min(100.0, round(overall, 2)),
        email=email,
        name=name,
        company=company,
        phone=phone,
    )
