"""
Stage 3: Insight Generation
===========================
Rule-based recommendations derived from factors and lead state.

Produces:
- AI insights (next action, buying signal, risk factor, opportunity)
- Buying signal summary
- Risk factor summary
- Personality profile
"""

import copy
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models.schemas import (
    Lead,
    ScoringFactor,
    AIInsight,
    InsightType,
    InsightPriority,
    PersonalityProfile,
)
from ..config.settings import (
    MAX_CONTACT_ATTEMPTS,
    PERSONALITY_DEFAULTS,
    PERSONALITY_TITLE_RULES,
    PERSONALITY_ENGAGED_MIN,
    PERSONALITY_ENGAGED_STYLE,
    PERSONALITY_ENGAGED_TRAITS,
)
from .stage1_factors import calculate_lead_age

PERSONALITY_TITLE_PATTERNS = [
    (re.compile(pattern, re.IGNORECASE), style, traits)
    for pattern, style, traits in PERSONALITY_TITLE_RULES
]


def _find_factor(factors: List[ScoringFactor], factor_id: str) -> Optional[ScoringFactor]:
    for factor in factors:
        if factor.id == factor_id:
            return factor
    return None


class InsightGenerationStage:
    """
    Stage 3: Generate insights, buying signals, risk factors and a
    personality profile.
    """

    def process(
        self,
        lead: Lead,
        factors: List[ScoringFactor],
        now: datetime,
    ) -> Dict[str, Any]:
        """
        Run all insight rules.

        Returns:
            Dict with insights, buying_signals, risk_factors and
            personality_profile
        """
        return {
            "insights": self.generate_insights(lead, factors),
            "buying_signals": self.detect_buying_signals(lead, factors),
            "risk_factors": self.identify_risk_factors(lead, factors, now),
            "personality_profile": self.build_personality_profile(lead),
        }

    def generate_insights(self, lead: Lead, factors: List[ScoringFactor]) -> List[AIInsight]:
        insights = []

        engagement = _find_factor(factors, "engagement")
        if engagement and engagement.value < 30:
            insights.append(AIInsight(
                id="low-engagement",
                type=InsightType.NEXT_ACTION,
                title="Re-engage with personalized content",
                description="Low engagement score suggests need for more targeted communication",
                confidence=0.85,
                priority=InsightPriority.HIGH,
                suggested_action="Send personalized email with industry-specific case study",
                timing="Within 24 hours",
                channel="Email",
            ))

        timeline = lead.custom_fields.get("timeline")
        if isinstance(timeline, str) and "Q1" in timeline:
            insights.append(AIInsight(
                id="urgent-timeline",
                type=InsightType.BUYING_SIGNAL,
                title="Urgent purchase timeline detected",
                description="Lead has indicated Q1 timeline, suggesting active buying process",
                confidence=0.90,
                priority=InsightPriority.HIGH,
                suggested_action="Schedule demo call within 3 days",
                timing="Immediate",
                channel="Phone",
            ))

        if self._has_unanswered_attempts(lead):
            insights.append(AIInsight(
                id="high-contact-attempts",
                type=InsightType.RISK_FACTOR,
                title="Multiple unsuccessful contact attempts",
                description="High contact attempts without response may indicate disinterest",
                confidence=0.75,
                priority=InsightPriority.MEDIUM,
                suggested_action="Try alternative contact method or pause outreach",
                timing="Next business day",
                channel="LinkedIn",
            ))

        budget = _find_factor(factors, "budget-fit")
        if budget and budget.value > 80:
            insights.append(AIInsight(
                id="budget-opportunity",
                type=InsightType.OPPORTUNITY,
                title="Strong budget alignment detected",
                description="Lead's budget range aligns with our premium offerings",
                confidence=0.88,
                priority=InsightPriority.HIGH,
                suggested_action="Present premium solution package",
                timing="During next interaction",
                channel="Demo",
            ))

        return insights

    def detect_buying_signals(self, lead: Lead, factors: List[ScoringFactor]) -> List[str]:
        signals = []

        timeline = lead.custom_fields.get("timeline")
        if timeline:
            signals.append(f"Active timeline: {timeline}")

        budget = lead.custom_fields.get("budget")
        if budget:
            signals.append(f"Budget defined: {budget}")

        if lead.engagement_score > 70:
            signals.append("High engagement level")

        if lead.contact_attempts > 0 and lead.last_contact_date:
            signals.append("Responsive to outreach")

        job_title = _find_factor(factors, "job-title")
        if job_title and job_title.value > 70:
            signals.append("Decision-maker authority")

        return signals

    def identify_risk_factors(
        self,
        lead: Lead,
        factors: List[ScoringFactor],
        now: datetime,
    ) -> List[str]:
        risks = []

        if self._has_unanswered_attempts(lead):
            risks.append("Multiple unsuccessful contact attempts")

        if calculate_lead_age(lead.created_at, now) > 30:
            risks.append("Lead is aging without progression")

        if lead.engagement_score < 30:
            risks.append("Low engagement score")

        budget = _find_factor(factors, "budget-fit")
        if budget and budget.value < 40:
            risks.append("Budget misalignment")

        return risks

    def build_personality_profile(self, lead: Lead) -> PersonalityProfile:
        """Infer communication preferences from job title and engagement"""
        profile = PersonalityProfile(**copy.deepcopy(PERSONALITY_DEFAULTS))
        traits = []

        if lead.job_title:
            for pattern, style, title_traits in PERSONALITY_TITLE_PATTERNS:
                if pattern.search(lead.job_title):
                    profile.decision_making_style = style
                    traits.extend(title_traits)
                    break

        if lead.engagement_score > PERSONALITY_ENGAGED_MIN:
            profile.communication_style = PERSONALITY_ENGAGED_STYLE
            traits.extend(PERSONALITY_ENGAGED_TRAITS)

        profile.personality_traits = traits
        return profile

    def _has_unanswered_attempts(self, lead: Lead) -> bool:
        return lead.contact_attempts > MAX_CONTACT_ATTEMPTS and not lead.last_contact_date
