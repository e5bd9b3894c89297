"""
Stage 1: Factor Extraction
==========================
Turns raw lead attributes into weighted scoring factors.

A factor is only produced when its source attribute is populated, so
sparse leads carry less total weight into Stage 2.

Factors:
- Demographic: job title authority, lead source quality
- Firmographic: company size, industry, budget
- Behavioral: engagement, freshness, purchase timeline
"""

import math
import re
from datetime import datetime, timezone
from typing import Any, List, Optional

from ..models.schemas import Lead, ScoringFactor, FactorCategory, Impact
from ..config.settings import (
    FACTOR_WEIGHTS,
    FACTOR_CONFIDENCE,
    JOB_TITLE_RANKS,
    JOB_TITLE_DEFAULT,
    COMPANY_SIZE_SCORES,
    COMPANY_SIZE_DEFAULT,
    INDUSTRY_SCORES,
    INDUSTRY_DEFAULT,
    SOURCE_SCORES,
    SOURCE_DEFAULT,
    TIMELINE_SCORES,
    TIMELINE_DEFAULT,
    BUDGET_TIERS,
    BUDGET_DEFAULT,
    FRESHNESS_AGE_DEDUCTIONS,
    FRESHNESS_NO_CONTACT_DEDUCTION,
    FRESHNESS_OVERCONTACT_DEDUCTION,
    MAX_CONTACT_ATTEMPTS,
)

BUDGET_PATTERN = re.compile(r"\$?(\d+(?:,\d{3})*(?:\.\d+)?)\s*([kK])?")

JOB_TITLE_PATTERNS = [
    (re.compile(pattern, re.IGNORECASE), score) for pattern, score in JOB_TITLE_RANKS
]

SECONDS_PER_DAY = 24 * 60 * 60


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def calculate_lead_age(created_at: datetime, now: datetime) -> int:
    """Whole days elapsed between ``created_at`` and ``now``"""
    delta = _as_utc(now) - _as_utc(created_at)
    return math.floor(delta.total_seconds() / SECONDS_PER_DAY)


def parse_budget(budget: Any) -> Optional[float]:
    """
    Parse a monetary amount from free text.

    "$75,000" -> 75000, "50k" -> 50000. Returns None when nothing usable
    is found.
    """
    if isinstance(budget, bool):
        return None
    if isinstance(budget, (int, float)):
        return float(budget) if budget > 0 else None
    if not isinstance(budget, str):
        return None

    match = BUDGET_PATTERN.search(budget)
    if not match:
        return None

    value = float(match.group(1).replace(",", ""))
    if match.group(2):
        value *= 1000
    return value if value > 0 else None


class FactorExtractionStage:
    """
    Stage 1: Build the list of scoring factors for a lead.
    """

    def process(self, lead: Lead, now: datetime) -> List[ScoringFactor]:
        """
        Extract all applicable factors.

        Args:
            lead: Lead to analyze
            now: Reference time for age calculations

        Returns:
            Factors in a stable order
        """
        factors = []

        # Demographic
        if lead.job_title and lead.job_title.strip():
            factors.append(self._job_title_factor(lead.job_title))

        # Firmographic
        if lead.company_size:
            factors.append(self._company_size_factor(lead.company_size.value))
        if lead.industry and lead.industry.strip():
            factors.append(self._industry_factor(lead.industry))

        # Behavioral
        factors.append(self._engagement_factor(lead.engagement_score))
        age = calculate_lead_age(lead.created_at, now)
        factors.append(self._freshness_factor(age, lead.contact_attempts))

        # Source quality
        if lead.lead_source and lead.lead_source.strip():
            factors.append(self._source_factor(lead.lead_source))

        # Budget and timeline from custom fields
        budget = lead.custom_fields.get("budget")
        budget_value = parse_budget(budget)
        if budget_value is not None:
            factors.append(self._budget_factor(budget, budget_value))

        timeline = lead.custom_fields.get("timeline")
        if isinstance(timeline, str) and timeline.strip():
            factors.append(self._timeline_factor(timeline.strip()))

        return factors

    # =========================================================================
    # Factor builders
    # =========================================================================

    def _job_title_factor(self, job_title: str) -> ScoringFactor:
        score = self.score_job_title(job_title)
        return self._build(
            "job-title",
            name="Job Title Authority",
            category=FactorCategory.DEMOGRAPHIC,
            value=score,
            impact=Impact.POSITIVE if score > 60 else Impact.NEUTRAL,
            description=(
                f"{job_title} indicates {'high' if score > 60 else 'moderate'} "
                f"decision-making authority"
            ),
        )

    def _company_size_factor(self, size: str) -> ScoringFactor:
        score = COMPANY_SIZE_SCORES.get(size, COMPANY_SIZE_DEFAULT)
        return self._build(
            "company-size",
            name="Company Size Fit",
            category=FactorCategory.FIRMOGRAPHIC,
            value=score,
            impact=Impact.POSITIVE if score > 70 else Impact.NEUTRAL,
            description=(
                f"Company size ({size}) "
                f"{'matches' if score > 70 else 'partially matches'} ideal customer profile"
            ),
        )

    def _industry_factor(self, industry: str) -> ScoringFactor:
        score = INDUSTRY_SCORES.get(industry, INDUSTRY_DEFAULT)
        return self._build(
            "industry-fit",
            name="Industry Alignment",
            category=FactorCategory.FIRMOGRAPHIC,
            value=score,
            impact=Impact.POSITIVE if score > 70 else Impact.NEUTRAL,
            description=(
                f"{industry} industry shows {'strong' if score > 70 else 'moderate'} "
                f"alignment with our solutions"
            ),
        )

    def _engagement_factor(self, engagement: float) -> ScoringFactor:
        if engagement > 60:
            impact = Impact.POSITIVE
        elif engagement < 30:
            impact = Impact.NEGATIVE
        else:
            impact = Impact.NEUTRAL
        return self._build(
            "engagement",
            name="Engagement Level",
            category=FactorCategory.BEHAVIORAL,
            value=engagement,
            impact=impact,
            description=(
                f"{engagement:g}% engagement indicates "
                f"{'high' if engagement > 60 else 'low'} interest level"
            ),
        )

    def _freshness_factor(self, age_days: int, contact_attempts: int) -> ScoringFactor:
        score = self.score_freshness(age_days, contact_attempts)
        if score > 70:
            impact = Impact.POSITIVE
        elif score < 40:
            impact = Impact.NEGATIVE
        else:
            impact = Impact.NEUTRAL
        return self._build(
            "timing",
            name="Lead Freshness",
            category=FactorCategory.BEHAVIORAL,
            value=score,
            impact=impact,
            description=(
                f"Lead is {age_days} days old with {contact_attempts} contact attempts"
            ),
        )

    def _source_factor(self, source: str) -> ScoringFactor:
        score = SOURCE_SCORES.get(source, SOURCE_DEFAULT)
        return self._build(
            "source-quality",
            name="Lead Source Quality",
            category=FactorCategory.DEMOGRAPHIC,
            value=score,
            impact=Impact.POSITIVE if score > 70 else Impact.NEUTRAL,
            description=(
                f"{source} is a {'high' if score > 70 else 'moderate'} quality lead source"
            ),
        )

    def _budget_factor(self, budget: Any, budget_value: float) -> ScoringFactor:
        score = self.score_budget(budget_value)
        if score > 70:
            impact = Impact.POSITIVE
        elif score < 40:
            impact = Impact.NEGATIVE
        else:
            impact = Impact.NEUTRAL
        return self._build(
            "budget-fit",
            name="Budget Alignment",
            category=FactorCategory.FIRMOGRAPHIC,
            value=score,
            impact=impact,
            description=(
                f"Budget range ({budget}) "
                f"{'aligns well' if score > 70 else 'partially aligns'} with our pricing"
            ),
        )

    def _timeline_factor(self, timeline: str) -> ScoringFactor:
        score = TIMELINE_SCORES.get(timeline, TIMELINE_DEFAULT)
        return self._build(
            "timeline-urgency",
            name="Purchase Timeline",
            category=FactorCategory.BEHAVIORAL,
            value=score,
            impact=Impact.POSITIVE if score > 70 else Impact.NEUTRAL,
            description=(
                f"Purchase timeline ({timeline}) indicates "
                f"{'urgent' if score > 70 else 'moderate'} need"
            ),
        )

    def _build(self, factor_id: str, **fields) -> ScoringFactor:
        return ScoringFactor(
            id=factor_id,
            weight=FACTOR_WEIGHTS[factor_id],
            confidence=FACTOR_CONFIDENCE[factor_id],
            **fields,
        )

    # =========================================================================
    # Sub-scoring functions
    # =========================================================================

    @staticmethod
    def score_job_title(job_title: str) -> int:
        """Rank decision-making authority by title keywords"""
        for pattern, score in JOB_TITLE_PATTERNS:
            if pattern.search(job_title):
                return score
        return JOB_TITLE_DEFAULT

    @staticmethod
    def score_freshness(age_days: int, contact_attempts: int) -> int:
        score = 100
        for min_age, deduction in FRESHNESS_AGE_DEDUCTIONS:
            if age_days > min_age:
                score -= deduction
                break

        if contact_attempts == 0:
            score -= FRESHNESS_NO_CONTACT_DEDUCTION
        elif contact_attempts > MAX_CONTACT_ATTEMPTS:
            score -= FRESHNESS_OVERCONTACT_DEDUCTION

        return max(0, score)

    @staticmethod
    def score_budget(budget_value: float) -> int:
        for minimum, score in BUDGET_TIERS:
            if budget_value >= minimum:
                return score
        return BUDGET_DEFAULT
