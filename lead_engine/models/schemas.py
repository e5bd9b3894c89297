"""
Pydantic schemas for the Lead Quality Engine
"""

from enum import Enum
from typing import List, Dict, Optional, Any
from pydantic import BaseModel, Field
from datetime import datetime


# =============================================================================
# ENUMS
# =============================================================================

class LeadStatus(str, Enum):
    """Pipeline status of a lead"""
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    UNQUALIFIED = "unqualified"
    CONVERTED = "converted"
    LOST = "lost"


class LeadRating(str, Enum):
    """Sales temperature of a lead"""
    HOT = "hot"
    WARM = "warm"
    COLD = "cold"


class LeadPriority(str, Enum):
    """Follow-up priority of a lead"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CompanySize(str, Enum):
    """Employee-count bucket"""
    MICRO = "1-10"
    SMALL = "11-50"
    MEDIUM = "51-200"
    LARGE = "201-1000"
    ENTERPRISE = "1000+"


class FactorCategory(str, Enum):
    DEMOGRAPHIC = "demographic"
    BEHAVIORAL = "behavioral"
    ENGAGEMENT = "engagement"
    FIRMOGRAPHIC = "firmographic"


class Impact(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class InsightType(str, Enum):
    NEXT_ACTION = "next_action"
    BUYING_SIGNAL = "buying_signal"
    RISK_FACTOR = "risk_factor"
    OPPORTUNITY = "opportunity"


class InsightPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class GroupStatus(str, Enum):
    """Review status of a duplicate group"""
    PENDING = "pending"
    REVIEWED = "reviewed"
    MERGED = "merged"
    IGNORED = "ignored"


class MatchField(str, Enum):
    """Fields compared during duplicate detection"""
    EMAIL = "email"
    NAME = "name"
    COMPANY = "company"
    PHONE = "phone"


ACTIVE_GROUP_STATUSES = (GroupStatus.PENDING, GroupStatus.REVIEWED)


# =============================================================================
# LEAD
# =============================================================================

class Lead(BaseModel):
    """A prospective customer record"""
    id: str
    email: str
    first_name: str = ""
    last_name: str = ""
    phone: Optional[str] = None
    company_name: Optional[str] = None
    job_title: Optional[str] = None

    lead_source: Optional[str] = None
    industry: Optional[str] = None
    company_size: Optional[CompanySize] = None
    annual_revenue: Optional[float] = Field(None, ge=0)

    lead_status: LeadStatus = LeadStatus.NEW
    lead_rating: LeadRating = LeadRating.WARM
    lead_priority: LeadPriority = LeadPriority.MEDIUM

    engagement_score: float = Field(0, ge=0, le=100)
    contact_attempts: int = Field(0, ge=0)
    created_at: datetime
    last_contact_date: Optional[datetime] = None

    custom_fields: Dict[str, Any] = Field(default_factory=dict)

    # Derived fields, written only by the scoring engine
    ai_lead_score: int = Field(0, ge=0, le=100)
    ai_conversion_probability: float = Field(0.0, ge=0, le=1)
    ai_estimated_deal_value: float = Field(0.0, ge=0)

    class Config:
        extra = "allow"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


# =============================================================================
# SCORING SCHEMAS
# =============================================================================

class ScoringFactor(BaseModel):
    """One weighted input to the overall score"""
    id: str
    name: str
    category: FactorCategory
    weight: float = Field(..., ge=0, le=1)
    value: float = Field(..., ge=0, le=100)
    impact: Impact
    confidence: float = Field(..., ge=0, le=1)
    description: str


class AIInsight(BaseModel):
    """Recommendation derived from scoring factors and lead state"""
    id: str
    type: InsightType
    title: str
    description: str
    priority: InsightPriority
    confidence: float = Field(..., ge=0, le=1)
    suggested_action: str
    timing: Optional[str] = None
    channel: Optional[str] = None


class PersonalityProfile(BaseModel):
    """Communication hints inferred from job title and engagement"""
    communication_style: str = "Professional"
    decision_making_style: str = "Analytical"
    risk_tolerance: str = "Moderate"
    preferred_channels: List[str] = Field(default_factory=list)
    best_contact_times: List[str] = Field(default_factory=list)
    personality_traits: List[str] = Field(default_factory=list)


class ScoringResult(BaseModel):
    """Complete scoring output for one lead"""
    lead_id: str
    factors: List[ScoringFactor] = Field(default_factory=list)
    overall_score: int
    conversion_probability: float
    estimated_deal_value: int
    insights: List[AIInsight] = Field(default_factory=list)
    buying_signals: List[str] = Field(default_factory=list)
    risk_factors: List[str] = Field(default_factory=list)
    personality_profile: PersonalityProfile = Field(default_factory=PersonalityProfile)
    scored_at: datetime

    def get_factor(self, factor_id: str) -> Optional[ScoringFactor]:
        for factor in self.factors:
            if factor.id == factor_id:
                return factor
        return None


class BatchScoreResult(BaseModel):
    """Result from batch scoring"""
    processed: int
    failed: int
    results: List[ScoringResult]
    errors: Dict[str, str] = Field(default_factory=dict)


# =============================================================================
# DUPLICATE DETECTION SCHEMAS
# =============================================================================

class SimilarityAnalysis(BaseModel):
    """Pairwise similarity, every component on a 0-100 scale"""
    overall: float = 0
    email: float = 0
    name: float = 0
    company: float = 0
    phone: float = 0


class DuplicateThresholds(BaseModel):
    """Detection thresholds, expressed as percentages"""
    overall_threshold: float = Field(75, ge=0, le=100)
    auto_merge_threshold: float = Field(95, ge=0, le=100)


class MergeDecision(BaseModel):
    primary_lead_id: str
    merged_fields: Dict[str, Any] = Field(default_factory=dict)
    reason: str


class DuplicateGroup(BaseModel):
    """A cluster of leads judged to be the same contact"""
    id: str
    lead_ids: List[str] = Field(..., min_length=2)
    similarity_score: float = Field(..., ge=0, le=100)
    matching_fields: List[MatchField] = Field(default_factory=list)
    status: GroupStatus = GroupStatus.PENDING
    ai_confidence: float = Field(..., ge=0, le=1)
    created_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    merge_decision: Optional[MergeDecision] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_GROUP_STATUSES


class MergeResult(BaseModel):
    """Outcome of merging a duplicate group"""
    group: DuplicateGroup
    merged_lead: Lead
    removed_lead_ids: List[str]


class DuplicateSummary(BaseModel):
    """Dashboard statistics over duplicate groups"""
    total_groups: int = 0
    pending_groups: int = 0
    high_confidence_groups: int = 0
    total_duplicates: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)


# =============================================================================
# API REQUEST SCHEMAS
# =============================================================================

class MergeRequest(BaseModel):
    """Request to merge a duplicate group"""
    primary_lead_id: str
    reviewed_by: Optional[str] = None
    reason: Optional[str] = None


class ReviewRequest(BaseModel):
    """Request to ignore or reset a duplicate group"""
    reviewed_by: Optional[str] = None
