"""
Stage 2: Weighted Scoring
=========================
Deterministic aggregation of Stage 1 factors.

Outputs:
- Overall score: sum of value x weight (weights are not normalized)
- Conversion probability: normalized score with industry and age adjustments
- Estimated deal value: base value scaled by size, industry, budget and score
"""

from datetime import datetime
from typing import Dict, Any, List, Optional

from ..models.schemas import Lead, ScoringFactor
from ..config.settings import (
    CONVERSION_INDUSTRY_MULTIPLIERS,
    CONVERSION_AGE_PENALTIES,
    PROBABILITY_BOUNDS,
    BASE_DEAL_VALUE,
    DEAL_SIZE_MULTIPLIERS,
    DEAL_INDUSTRY_MULTIPLIERS,
    BUDGET_CAP_MULTIPLIER,
)
from .stage1_factors import calculate_lead_age, parse_budget


class WeightedScoringStage:
    """
    Stage 2: Calculate overall score, conversion probability and deal value.
    """

    def process(
        self,
        lead: Lead,
        factors: List[ScoringFactor],
        now: datetime,
    ) -> Dict[str, Any]:
        """
        Aggregate factors into the headline numbers.

        Args:
            lead: Lead being scored
            factors: Factors from Stage 1
            now: Reference time for age calculations

        Returns:
            Dict with overall_score, conversion_probability, estimated_deal_value
        """
        age = calculate_lead_age(lead.created_at, now)

        overall = self.calculate_overall_score(factors)
        probability = self.calculate_conversion_probability(factors, lead.industry, age)
        deal_value = self.estimate_deal_value(lead, overall)

        return {
            "overall_score": overall,
            "conversion_probability": probability,
            "estimated_deal_value": deal_value,
        }

    def calculate_overall_score(self, factors: List[ScoringFactor]) -> int:
        weighted = sum(f.value * f.weight for f in factors)
        return round(max(0, min(100, weighted)))

    def calculate_conversion_probability(
        self,
        factors: List[ScoringFactor],
        industry: Optional[str],
        age_days: int,
    ) -> float:
        low, high = PROBABILITY_BOUNDS
        total_weight = sum(f.weight for f in factors)
        if total_weight == 0:
            return low

        weighted = sum(f.value * f.weight for f in factors)
        normalized = weighted / (total_weight * 100)

        industry_multiplier = CONVERSION_INDUSTRY_MULTIPLIERS.get(industry or "", 1.0)

        age_penalty = 1.0
        for min_age, penalty in CONVERSION_AGE_PENALTIES:
            if age_days > min_age:
                age_penalty = penalty
                break

        return min(high, max(low, normalized * industry_multiplier * age_penalty))

    def estimate_deal_value(self, lead: Lead, overall_score: int) -> int:
        value = float(BASE_DEAL_VALUE)

        if lead.company_size:
            value *= DEAL_SIZE_MULTIPLIERS.get(lead.company_size.value, 1.0)

        if lead.industry:
            value *= DEAL_INDUSTRY_MULTIPLIERS.get(lead.industry, 1.0)

        # Cap at 120% of the stated budget
        budget_value = parse_budget(lead.custom_fields.get("budget"))
        if budget_value is not None:
            value = min(value, budget_value * BUDGET_CAP_MULTIPLIER)

        value *= 0.5 + overall_score / 100
        return max(0, round(value))
