"""
Duplicate Resolver
==================
Finds probable duplicate leads with fuzzy similarity, clusters them, and
reconciles a cluster into one canonical record.

Detection is a greedy single pass in input order (O(n^2) comparisons).
A lead joins an anchor's group only when it matches every member already
in the group, so unrelated leads are never chained through one shared
member.
"""

import copy
import logging
import uuid
from datetime import datetime, timezone
from itertools import combinations
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple

from ..errors import InvalidStateError, NotFoundError
from ..models.schemas import (
    ACTIVE_GROUP_STATUSES,
    DuplicateGroup,
    DuplicateSummary,
    DuplicateThresholds,
    GroupStatus,
    Lead,
    MatchField,
    MergeDecision,
    MergeResult,
    SimilarityAnalysis,
)
from ..config.settings import (
    CONFIDENCE_ADJUSTMENTS,
    CONFIDENCE_BOUNDS,
    DEFAULT_DUPLICATE_THRESHOLDS,
    DEFAULT_MERGE_REASON,
    HIGH_CONFIDENCE_THRESHOLD,
)
from .similarity import (
    calculate_similarity,
    normalize_company,
    normalize_email,
    normalize_name,
    normalize_phone,
)

logger = logging.getLogger(__name__)


class DuplicateResolver:
    """
    Detects, merges and dismisses duplicate lead groups.
    """

    def __init__(self, thresholds: Optional[DuplicateThresholds] = None):
        self.thresholds = thresholds or DuplicateThresholds(**DEFAULT_DUPLICATE_THRESHOLDS)

    def similarity(self, lead1: Lead, lead2: Lead) -> SimilarityAnalysis:
        return calculate_similarity(lead1, lead2)

    # =========================================================================
    # Detection
    # =========================================================================

    def detect(
        self,
        leads: Sequence[Lead],
        thresholds: Optional[DuplicateThresholds] = None,
        ignored_groups: Iterable[DuplicateGroup] = (),
        now: Optional[datetime] = None,
    ) -> List[DuplicateGroup]:
        """
        Scan a lead set for duplicate groups.

        A pair matches when its overall similarity is at or above
        ``overall_threshold``; the boundary is inclusive.

        Args:
            leads: Leads in scan order
            thresholds: Overrides the resolver's thresholds
            ignored_groups: Previously ignored groups; their member pairs
                are never treated as matches
            now: Creation time stamped on new groups

        Returns:
            New groups, each with at least two members
        """
        if len(leads) < 2:
            return []

        thresholds = thresholds or self.thresholds
        now = now or datetime.now(timezone.utc)
        suppressed = self._suppressed_pairs(ignored_groups)

        similarities: Dict[Tuple[int, int], SimilarityAnalysis] = {}

        def pair_similarity(i: int, j: int) -> SimilarityAnalysis:
            key = (min(i, j), max(i, j))
            if key not in similarities:
                similarities[key] = calculate_similarity(leads[key[0]], leads[key[1]])
            return similarities[key]

        def is_match(i: int, j: int) -> bool:
            if frozenset((leads[i].id, leads[j].id)) in suppressed:
                return False
            return pair_similarity(i, j).overall >= thresholds.overall_threshold

        processed: Set[str] = set()
        groups = []

        for i, lead in enumerate(leads):
            if lead.id in processed:
                continue
            processed.add(lead.id)

            members = [i]
            for j in range(i + 1, len(leads)):
                if leads[j].id in processed:
                    continue
                if all(is_match(m, j) for m in members):
                    members.append(j)
                    processed.add(leads[j].id)

            if len(members) < 2:
                continue

            pairs = [pair_similarity(a, b) for a, b in combinations(members, 2)]
            group = self._build_group([leads[m] for m in members], pairs, thresholds, now)
            logger.debug(
                "Duplicate group %s: leads=%s similarity=%.2f confidence=%.2f",
                group.id,
                group.lead_ids,
                group.similarity_score,
                group.ai_confidence,
            )
            groups.append(group)

        logger.info("Duplicate scan over %d leads found %d groups", len(leads), len(groups))
        return groups

    def calculate_ai_confidence(
        self,
        member_count: int,
        pairs: Sequence[SimilarityAnalysis],
    ) -> float:
        """
        Confidence that a group is a true duplicate.

        Starts from the mean overall similarity, boosted by exact email or
        phone matches and near-identical names, reduced for large or weak
        groups.
        """
        adjust = CONFIDENCE_ADJUSTMENTS
        overall = sum(p.overall for p in pairs) / len(pairs)
        confidence = overall / 100

        if any(p.email == 100 for p in pairs):
            confidence += adjust["email_match"]
        if any(p.phone == 100 for p in pairs):
            confidence += adjust["phone_match"]
        if any(p.name > adjust["name_match_min"] for p in pairs):
            confidence += adjust["name_match"]

        if member_count > adjust["large_group_size"]:
            confidence += adjust["large_group"]
        if overall < adjust["low_similarity_max"]:
            confidence += adjust["low_similarity"]

        low, high = CONFIDENCE_BOUNDS
        return min(high, max(low, confidence))

    def get_matching_fields(self, leads: Sequence[Lead]) -> List[MatchField]:
        """Fields whose normalized value is identical across all members"""
        extractors = [
            (MatchField.EMAIL, lambda l: normalize_email(l.email)),
            (MatchField.NAME, normalize_name),
            (MatchField.COMPANY, lambda l: normalize_company(l.company_name)),
            (MatchField.PHONE, lambda l: normalize_phone(l.phone)),
        ]

        fields = []
        for field, extract in extractors:
            values = [v for v in (extract(lead) for lead in leads) if v]
            if len(values) > 1 and len(set(values)) == 1:
                fields.append(field)
        return fields

    # =========================================================================
    # Review actions
    # =========================================================================

    def merge(
        self,
        group: DuplicateGroup,
        leads: Iterable[Lead],
        primary_lead_id: str,
        reviewed_by: Optional[str] = None,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> MergeResult:
        """
        Merge a group into its primary lead.

        Args:
            group: Group to merge (pending or reviewed)
            leads: Lead records; must include every group member
            primary_lead_id: Member that survives the merge
            reviewed_by: Who made the decision
            reason: Free-text reason for the audit record
            now: Review timestamp

        Returns:
            MergeResult with the merged lead, removed ids and merged group

        Raises:
            InvalidStateError: group is not pending or reviewed
            NotFoundError: primary id is not a member, or a member is missing
        """
        self._require_active(group, "merge")

        if primary_lead_id not in group.lead_ids:
            raise NotFoundError(
                f"Lead {primary_lead_id} is not a member of group {group.id}",
                group_id=group.id,
                lead_id=primary_lead_id,
                field="primary_lead_id",
            )

        by_id = {lead.id: lead for lead in leads}
        missing = [lead_id for lead_id in group.lead_ids if lead_id not in by_id]
        if missing:
            raise NotFoundError(
                f"Group {group.id} references unknown leads: {', '.join(missing)}",
                group_id=group.id,
                lead_id=missing[0],
            )

        primary = by_id[primary_lead_id]
        duplicates = [by_id[lead_id] for lead_id in group.lead_ids if lead_id != primary_lead_id]
        merged_lead = self.merge_lead_data(primary, duplicates)

        merged_group = group.model_copy(update={
            "status": GroupStatus.MERGED,
            "reviewed_at": now or datetime.now(timezone.utc),
            "reviewed_by": reviewed_by,
            "merge_decision": MergeDecision(
                primary_lead_id=primary_lead_id,
                merged_fields=merged_lead.model_dump(mode="json"),
                reason=reason or DEFAULT_MERGE_REASON,
            ),
        })

        logger.info(
            "Merged group %s into lead %s (%d duplicates removed)",
            group.id,
            primary_lead_id,
            len(duplicates),
        )

        return MergeResult(
            group=merged_group,
            merged_lead=merged_lead,
            removed_lead_ids=[d.id for d in duplicates],
        )

    def merge_lead_data(self, primary: Lead, duplicates: Sequence[Lead]) -> Lead:
        """
        Reconcile duplicates into a copy of the primary lead.

        Custom fields are unioned with later duplicates winning on key
        collisions; tags are unioned; missing phone and job title are
        filled; the highest AI score is kept.
        """
        custom_fields = copy.deepcopy(primary.custom_fields)
        tags = _as_tags(custom_fields.get("tags"))
        phone = primary.phone
        job_title = primary.job_title
        ai_lead_score = primary.ai_lead_score

        for duplicate in duplicates:
            duplicate_fields = copy.deepcopy(duplicate.custom_fields)
            custom_fields.update(duplicate_fields)

            if not phone and duplicate.phone:
                phone = duplicate.phone
            if not job_title and duplicate.job_title:
                job_title = duplicate.job_title

            for tag in _as_tags(duplicate_fields.get("tags")):
                if tag not in tags:
                    tags.append(tag)

            ai_lead_score = max(ai_lead_score, duplicate.ai_lead_score)

        if tags:
            custom_fields["tags"] = tags

        return primary.model_copy(update={
            "custom_fields": custom_fields,
            "phone": phone,
            "job_title": job_title,
            "ai_lead_score": ai_lead_score,
        })

    def ignore(
        self,
        group: DuplicateGroup,
        reviewed_by: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DuplicateGroup:
        """Dismiss a group; it stays out of future scans until reset"""
        self._require_active(group, "ignore")
        logger.info("Ignored duplicate group %s", group.id)
        return group.model_copy(update={
            "status": GroupStatus.IGNORED,
            "reviewed_at": now or datetime.now(timezone.utc),
            "reviewed_by": reviewed_by,
        })

    def reset(self, group: DuplicateGroup) -> DuplicateGroup:
        """Return an ignored group to pending review"""
        if group.status != GroupStatus.IGNORED:
            raise InvalidStateError(
                f"Cannot reset group {group.id} with status {group.status.value}",
                group_id=group.id,
                status=group.status.value,
            )
        logger.info("Reset duplicate group %s", group.id)
        return group.model_copy(update={
            "status": GroupStatus.PENDING,
            "reviewed_at": None,
            "reviewed_by": None,
        })

    def drop_lead(
        self,
        group: DuplicateGroup,
        lead_id: str,
        leads: Iterable[Lead],
        thresholds: Optional[DuplicateThresholds] = None,
    ) -> Optional[DuplicateGroup]:
        """
        Remove a lead from an active group and recompute its statistics.

        Returns the group unchanged when it is closed or does not contain
        the lead, and None when fewer than two known members remain.
        """
        if not group.is_active or lead_id not in group.lead_ids:
            return group

        by_id = {lead.id: lead for lead in leads}
        members = [by_id[i] for i in group.lead_ids if i != lead_id and i in by_id]
        if len(members) < 2:
            logger.info("Dissolved duplicate group %s after removing lead %s", group.id, lead_id)
            return None

        pairs = [calculate_similarity(a, b) for a, b in combinations(members, 2)]
        rebuilt = self._build_group(members, pairs, thresholds or self.thresholds, group.created_at)
        logger.info("Removed lead %s from duplicate group %s", lead_id, group.id)
        return rebuilt.model_copy(update={"id": group.id})

    def summarize(self, groups: Iterable[DuplicateGroup]) -> DuplicateSummary:
        """Counts for the review dashboard"""
        groups = list(groups)
        by_status = {status.value: 0 for status in GroupStatus}
        for group in groups:
            by_status[group.status.value] += 1

        return DuplicateSummary(
            total_groups=len(groups),
            pending_groups=by_status[GroupStatus.PENDING.value],
            high_confidence_groups=sum(
                1 for g in groups if g.ai_confidence > HIGH_CONFIDENCE_THRESHOLD
            ),
            total_duplicates=sum(len(g.lead_ids) - 1 for g in groups),
            by_status=by_status,
        )

    # =========================================================================
    # Helper Methods
    # =========================================================================

    def _build_group(
        self,
        members: List[Lead],
        pairs: List[SimilarityAnalysis],
        thresholds: DuplicateThresholds,
        now: datetime,
    ) -> DuplicateGroup:
        similarity_score = sum(p.overall for p in pairs) / len(pairs)
        confidence = self.calculate_ai_confidence(len(members), pairs)
        auto_merge = confidence >= thresholds.auto_merge_threshold / 100

        return DuplicateGroup(
            id=f"group-{uuid.uuid4().hex[:12]}",
            lead_ids=[lead.id for lead in members],
            similarity_score=round(similarity_score, 2),
            matching_fields=self.get_matching_fields(members),
            status=GroupStatus.REVIEWED if auto_merge else GroupStatus.PENDING,
            ai_confidence=confidence,
            created_at=now,
        )

    def _suppressed_pairs(self, groups: Iterable[DuplicateGroup]) -> Set[FrozenSet[str]]:
        pairs = set()
        for group in groups:
            if group.status != GroupStatus.IGNORED:
                continue
            for a, b in combinations(group.lead_ids, 2):
                pairs.add(frozenset((a, b)))
        return pairs

    def _require_active(self, group: DuplicateGroup, action: str):
        if group.status not in ACTIVE_GROUP_STATUSES:
            raise InvalidStateError(
                f"Cannot {action} group {group.id} with status {group.status.value}",
                group_id=group.id,
                status=group.status.value,
            )


def _as_tags(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple, set)):
        tags = []
        for tag in value:
            if tag not in tags:
                tags.append(tag)
        return tags
    return [value]


# =============================================================================
# Convenience Functions
# =============================================================================

_default_resolver = DuplicateResolver()


def detect_duplicates(
    leads: Sequence[Lead],
    thresholds: Optional[DuplicateThresholds] = None,
) -> List[DuplicateGroup]:
    """Detect duplicate groups with the default resolver"""
    return _default_resolver.detect(leads, thresholds)


def merge_group(
    group: DuplicateGroup,
    leads: Iterable[Lead],
    primary_lead_id: str,
) -> MergeResult:
    """Merge a group with the default resolver"""
    return _default_resolver.merge(group, leads, primary_lead_id)
