"""
Lead Quality Engine - Usage Examples
====================================
This file demonstrates how to use the scoring engine and the duplicate
resolver programmatically and via the API.
"""

from datetime import datetime, timedelta, timezone

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# EXAMPLE 1: Scoring a Lead
# =============================================================================

def example_scoring():
    """Score one lead and print the explanation"""
    from lead_engine.engine import LeadScoringEngine
    from lead_engine.models.schemas import Lead

    engine = LeadScoringEngine()

    lead = Lead(
        id="lead-001",
        email="jane.doe@acme.io",
        first_name="Jane",
        last_name="Doe",
        company_name="Acme Analytics",
        job_title="VP of Engineering",
        lead_source="Referral",
        industry="Technology",
        company_size="51-200",
        engagement_score=78,
        contact_attempts=2,
        created_at=NOW - timedelta(days=5),
        last_contact_date=NOW - timedelta(days=1),
        custom_fields={"budget": "$120,000", "timeline": "Q1 2024"},
    )

    result = engine.score(lead, now=NOW)

    print("=" * 60)
    print(f"SCORING LEAD: {lead.full_name} ({lead.company_name})")
    print("=" * 60)

    print(f"\nOverall Score: {result.overall_score}/100")
    print(f"Conversion Probability: {result.conversion_probability:.0%}")
    print(f"Estimated Deal Value: ${result.estimated_deal_value:,}")

    print("\n--- Factors ---")
    for factor in result.factors:
        print(
            f"  {factor.name:<22} value={factor.value:>5.1f} "
            f"weight={factor.weight:.2f} impact={factor.impact.value}"
        )

    print("\n--- Insights ---")
    for insight in result.insights:
        print(f"  [{insight.priority.value}] {insight.title} -> {insight.suggested_action}")

    print("\n--- Buying Signals ---")
    for signal in result.buying_signals:
        print(f"  + {signal}")

    print("\n--- Risks ---")
    for risk in result.risk_factors or ["None"]:
        print(f"  - {risk}")

    # Write the derived fields back onto the lead
    scored = engine.apply_scores(lead, result)
    print(f"\nStored ai_lead_score: {scored.ai_lead_score}")


# =============================================================================
# EXAMPLE 2: Detecting and Merging Duplicates
# =============================================================================

def example_duplicates():
    """Find duplicate leads and merge the first group"""
    from lead_engine.dedupe.resolver import DuplicateResolver
    from lead_engine.models.schemas import DuplicateThresholds, Lead

    leads = [
        Lead(
            id="a", email="John.Smith@Globex.com", first_name="John", last_name="Smith",
            company_name="Globex", phone="+1 (555) 010-2000", created_at=NOW,
            custom_fields={"tags": ["webinar"]}, ai_lead_score=62,
        ),
        Lead(
            id="b", email="john.smith@globex.com", first_name="John", last_name="Smyth",
            company_name="Globex Inc", job_title="Director of IT", created_at=NOW,
            custom_fields={"tags": ["trade-show"], "budget": "50k"}, ai_lead_score=71,
        ),
        Lead(
            id="c", email="maria@initech.com", first_name="Maria", last_name="Garcia",
            company_name="Initech", created_at=NOW,
        ),
    ]

    resolver = DuplicateResolver(DuplicateThresholds(overall_threshold=75, auto_merge_threshold=95))
    groups = resolver.detect(leads, now=NOW)

    print("=" * 60)
    print(f"DUPLICATE SCAN: {len(leads)} leads, {len(groups)} groups")
    print("=" * 60)

    for group in groups:
        fields = ", ".join(f.value for f in group.matching_fields)
        print(
            f"  {group.id}: {group.lead_ids} similarity={group.similarity_score:.1f} "
            f"confidence={group.ai_confidence:.2f} status={group.status.value} "
            f"matching=[{fields}]"
        )

    if groups:
        result = resolver.merge(groups[0], leads, primary_lead_id="a", reviewed_by="demo", now=NOW)
        merged = result.merged_lead
        print("\n--- Merge Result ---")
        print(f"  Primary: {merged.id} ({merged.full_name})")
        print(f"  Removed: {result.removed_lead_ids}")
        print(f"  Job title: {merged.job_title}")
        print(f"  Tags: {merged.custom_fields.get('tags')}")
        print(f"  AI score: {merged.ai_lead_score}")
        print(f"  Group status: {result.group.status.value}")


# =============================================================================
# EXAMPLE 3: API Usage
# =============================================================================

def example_api_usage():
    """Show the HTTP calls for the same workflow"""
    BASE_URL = "http://localhost:8000"

    payload = {
        "id": "lead-001",
        "email": "jane.doe@acme.io",
        "first_name": "Jane",
        "last_name": "Doe",
        "job_title": "VP of Engineering",
        "lead_source": "Referral",
        "industry": "Technology",
        "company_size": "51-200",
        "engagement_score": 78,
        "contact_attempts": 2,
        "created_at": "2024-01-10T12:00:00Z",
        "custom_fields": {"budget": "$120,000", "timeline": "Q1 2024"},
    }

    print("Request payloads:")
    print(f"  POST {BASE_URL}/api/leads")
    print(f"  {payload}")
    print(f"  POST {BASE_URL}/api/duplicates/scan")
    print(f"  POST {BASE_URL}/api/duplicates/<group_id>/merge")
    print("  {'primary_lead_id': 'lead-001', 'reviewed_by': 'jane'}")

    # Uncomment to actually make the requests:
    # import httpx
    # response = httpx.post(f"{BASE_URL}/api/leads", json=payload)
    # print(f"\nResponse: {response.json()}")


# =============================================================================
# MAIN
# =============================================================================

if __name__ == "__main__":
    print("\n" + "=" * 60)
    print("LEAD QUALITY ENGINE - USAGE EXAMPLES")
    print("=" * 60 + "\n")

    print("\n[Example 1: Scoring]")
    example_scoring()

    print("\n" + "-" * 60)
    print("\n[Example 2: Duplicates]")
    example_duplicates()

    print("\n" + "-" * 60)
    print("\n[Example 3: API Usage]")
    example_api_usage()

    print("\n" + "=" * 60)
    print("EXAMPLES COMPLETE")
    print("=" * 60)
