"""
Lead Scoring Engine - Main Orchestrator
=======================================
Orchestrates the three-stage scoring pipeline:
  Stage 1: Factor Extraction → Stage 2: Weighted Scoring →
  Stage 3: Insight Generation

Scoring is deterministic: the reference time is injected, so identical
(lead, now) pairs always produce identical results.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from .errors import ValidationError
from .models.schemas import Lead, ScoringResult, BatchScoreResult
from .stages.stage1_factors import FactorExtractionStage
from .stages.stage2_scoring import WeightedScoringStage
from .stages.stage3_insights import InsightGenerationStage

logger = logging.getLogger(__name__)


class LeadScoringEngine:
    """
    Main scoring engine that orchestrates all three stages.
    """

    def __init__(self):
        self.stage1 = FactorExtractionStage()
        self.stage2 = WeightedScoringStage()
        self.stage3 = InsightGenerationStage()

        # Track statistics
        self.stats = {
            "total_processed": 0,
            "total_rejected": 0,
            "total_score": 0,
        }

    def score(self, lead: Lead, now: Optional[datetime] = None) -> ScoringResult:
        """
        Score a single lead.

        Args:
            lead: Lead to score
            now: Reference time for age calculations (defaults to current UTC)

        Returns:
            ScoringResult with factors, headline numbers and insights

        Raises:
            ValidationError: if the lead has no id
        """
        self._validate(lead)
        now = now or datetime.now(timezone.utc)

        factors = self.stage1.process(lead, now)
        numbers = self.stage2.process(lead, factors, now)
        findings = self.stage3.process(lead, factors, now)

        self.stats["total_processed"] += 1
        self.stats["total_score"] += numbers["overall_score"]

        logger.debug(
            "Scored lead %s: score=%s probability=%.2f deal=%s factors=%d",
            lead.id,
            numbers["overall_score"],
            numbers["conversion_probability"],
            numbers["estimated_deal_value"],
            len(factors),
        )

        return ScoringResult(
            lead_id=lead.id,
            factors=factors,
            scored_at=now,
            **numbers,
            **findings,
        )

    def score_batch(
        self,
        leads: List[Lead],
        now: Optional[datetime] = None,
    ) -> BatchScoreResult:
        """
        Score multiple leads against the same reference time.

        Leads that fail validation are reported in ``errors`` and do not
        stop the batch. Results are sorted by score, best first.
        """
        now = now or datetime.now(timezone.utc)
        results = []
        errors = {}

        for position, lead in enumerate(leads):
            try:
                results.append(self.score(lead, now))
            except ValidationError as e:
                errors[lead.id or f"#{position}"] = e.message

        results.sort(key=lambda r: r.overall_score, reverse=True)

        logger.info(
            "Scored batch of %d leads (%d failed)", len(leads), len(errors)
        )

        return BatchScoreResult(
            processed=len(results),
            failed=len(errors),
            results=results,
            errors=errors,
        )

    def apply_scores(self, lead: Lead, result: ScoringResult) -> Lead:
        """Return a copy of ``lead`` with the derived AI fields written"""
        if result.lead_id != lead.id:
            raise ValidationError(
                "Scoring result belongs to a different lead",
                lead_id=lead.id,
                field="lead_id",
            )
        return lead.model_copy(update={
            "ai_lead_score": result.overall_score,
            "ai_conversion_probability": result.conversion_probability,
            "ai_estimated_deal_value": result.estimated_deal_value,
        })

    def get_stats(self) -> Dict[str, Any]:
        """Get engine statistics"""
        stats = self.stats.copy()
        if stats["total_processed"] > 0:
            stats["avg_score"] = round(
                stats["total_score"] / stats["total_processed"], 1
            )
        return stats

    def reset_stats(self):
        """Reset engine statistics"""
        self.stats = {
            "total_processed": 0,
            "total_rejected": 0,
            "total_score": 0,
        }

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _validate(self, lead: Lead):
        if not lead.id or not lead.id.strip():
            self.stats["total_rejected"] += 1
            logger.warning("Rejected lead without id (email=%s)", lead.email)
            raise ValidationError("Lead id is required for scoring", lead_id=lead.id, field="id")


# =============================================================================
# Convenience Functions
# =============================================================================

_default_engine = LeadScoringEngine()


def score(lead: Lead, now: Optional[datetime] = None) -> ScoringResult:
    """
    Score a single lead with a shared default engine.

    Args:
        lead: Lead to score
        now: Reference time for age calculations

    Returns:
        ScoringResult
    """
    return _default_engine.score(lead, now)


def quick_score(lead_data: Dict[str, Any], now: Optional[datetime] = None) -> ScoringResult:
    """Score a lead given as a plain dictionary"""
    return score(Lead(**lead_data), now)
