"""
Configuration settings for the Lead Quality Engine
"""

from typing import Dict, List, Tuple
import os

# =============================================================================
# SERVICE CONFIGURATION
# =============================================================================

SERVICE_CONFIG = {
    "name": "Lead Quality Engine",
    "version": "1.0.0",
    "host": os.getenv("LEAD_ENGINE_HOST", "0.0.0.0"),
    "port": int(os.getenv("LEAD_ENGINE_PORT", "8000")),
}

# Directory for the JSON value store; in-memory store when empty
STORE_PATH = os.getenv("LEAD_ENGINE_STORE_PATH", "")

LOG_LEVEL = os.getenv("LEAD_ENGINE_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Store keys used by the hosting application
STORE_KEYS = {
    "leads": "leads",
    "duplicate_groups": "duplicate-groups",
    "duplicate_settings": "duplicate-detection-settings",
}

# =============================================================================
# SCORING FACTOR WEIGHTS
# =============================================================================
# Not normalized: leads with fewer populated attributes score lower.

FACTOR_WEIGHTS = {
    "job-title": 0.15,
    "company-size": 0.12,
    "industry-fit": 0.10,
    "engagement": 0.20,
    "timing": 0.08,
    "source-quality": 0.10,
    "budget-fit": 0.15,
    "timeline-urgency": 0.10,
}

FACTOR_CONFIDENCE = {
    "job-title": 0.85,
    "company-size": 0.90,
    "industry-fit": 0.80,
    "engagement": 0.95,
    "timing": 0.75,
    "source-quality": 0.85,
    "budget-fit": 0.80,
    "timeline-urgency": 0.75,
}

# =============================================================================
# FACTOR LOOKUP TABLES
# =============================================================================

# Checked in order, first pattern hit wins. Whole words only, so that
# "director" does not match "cto".
JOB_TITLE_RANKS: List[Tuple[str, int]] = [
    (r"\b(ceo|founder|(?<!vice[- ])president)\b", 95),
    (r"\b(cto|cmo|cfo)\b", 90),
    (r"\b([se]?vp|vice[- ]president)\b", 85),
    (r"\bdirector\b", 75),
    (r"\bmanager\b", 60),
    (r"\bsenior\b", 50),
]
JOB_TITLE_DEFAULT = 30

COMPANY_SIZE_SCORES = {
    "1-10": 40,
    "11-50": 70,
    "51-200": 85,
    "201-1000": 95,
    "1000+": 100,
}
COMPANY_SIZE_DEFAULT = 50

INDUSTRY_SCORES = {
    "Technology": 95,
    "Finance": 90,
    "Healthcare": 85,
    "Manufacturing": 75,
    "Retail": 70,
    "Education": 65,
}
INDUSTRY_DEFAULT = 60

SOURCE_SCORES = {
    "Referral": 95,
    "Website": 85,
    "LinkedIn": 80,
    "Trade Show": 75,
    "Email Campaign": 70,
    "Social Media": 60,
    "Cold Call": 45,
}
SOURCE_DEFAULT = 50

TIMELINE_SCORES = {
    "Immediate": 100,
    "ASAP": 100,
    "Q1 2024": 95,
    "Q2 2024": 85,
    "Q3 2024": 70,
    "Q4 2024": 60,
    "2024": 50,
}
TIMELINE_DEFAULT = 40

# (minimum budget, score), checked top-down
BUDGET_TIERS = [
    (100_000, 95),
    (50_000, 85),
    (25_000, 70),
    (10_000, 55),
]
BUDGET_DEFAULT = 30

# Lead freshness deductions: (min age in days exclusive, deduction)
FRESHNESS_AGE_DEDUCTIONS = [
    (30, 40),
    (14, 20),
    (7, 10),
]
FRESHNESS_NO_CONTACT_DEDUCTION = 30
FRESHNESS_OVERCONTACT_DEDUCTION = 20
MAX_CONTACT_ATTEMPTS = 5

# =============================================================================
# PERSONALITY PROFILE
# =============================================================================

PERSONALITY_DEFAULTS = {
    "communication_style": "Professional",
    "decision_making_style": "Analytical",
    "risk_tolerance": "Moderate",
    "preferred_channels": ["Email", "Phone"],
    "best_contact_times": ["9-11 AM", "2-4 PM"],
}

# (title pattern, decision-making style, traits); first hit wins
PERSONALITY_TITLE_RULES: List[Tuple[str, str, List[str]]] = [
    (r"\b(cto|technical)\b", "Technical", ["Detail-oriented", "Technical", "Cautious"]),
    (r"\b(ceo|founder)\b", "Quick", ["Decisive", "Strategic", "Results-driven"]),
]

PERSONALITY_ENGAGED_MIN = 70
PERSONALITY_ENGAGED_STYLE = "Active"
PERSONALITY_ENGAGED_TRAITS = ["Engaged", "Responsive"]

# =============================================================================
# CONVERSION PROBABILITY & DEAL VALUE
# =============================================================================

CONVERSION_INDUSTRY_MULTIPLIERS = {
    "Technology": 1.2,
    "Healthcare": 1.1,
    "Finance": 1.15,
}

CONVERSION_AGE_PENALTIES = [
    (30, 0.90),
    (14, 0.95),
]

PROBABILITY_BOUNDS = (0.05, 0.95)

BASE_DEAL_VALUE = 50_000

DEAL_SIZE_MULTIPLIERS = {
    "1-10": 0.5,
    "11-50": 0.8,
    "51-200": 1.2,
    "201-1000": 2.0,
    "1000+": 3.5,
}

DEAL_INDUSTRY_MULTIPLIERS = {
    "Technology": 1.5,
    "Finance": 2.0,
    "Healthcare": 1.8,
    "Manufacturing": 1.3,
    "Retail": 1.0,
}

# Deal value is capped at this multiple of a stated budget
BUDGET_CAP_MULTIPLIER = 1.2

# =============================================================================
# DUPLICATE DETECTION
# =============================================================================

SIMILARITY_WEIGHTS: Dict[str, float] = {
    "email": 0.40,
    "name": 0.30,
    "company": 0.15,
    "phone": 0.15,
}

DEFAULT_DUPLICATE_THRESHOLDS = {
    "overall_threshold": 75,
    "auto_merge_threshold": 95,
}

CONFIDENCE_ADJUSTMENTS = {
    "email_match": 0.20,
    "phone_match": 0.15,
    "name_match": 0.10,
    "name_match_min": 90,
    "large_group": -0.10,
    "large_group_size": 3,
    "low_similarity": -0.15,
    "low_similarity_max": 80,
}

CONFIDENCE_BOUNDS = (0.10, 0.99)

HIGH_CONFIDENCE_THRESHOLD = 0.8

DEFAULT_MERGE_REASON = "Manual merge decision"
