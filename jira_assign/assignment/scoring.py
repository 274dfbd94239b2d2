"""Per-candidate weighted scoring with a full evidence trail.

``score_candidate`` is pure and total: malformed or missing inputs degrade to
zero contributions instead of raising. Every positive contribution is
recorded in the returned ``Evidence`` so the recommendation can be explained.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from jira_assign.core.config import PROFILE_EXAMPLE_LIMIT, SECONDS_PER_HOUR, UNKNOWN_DISPLAY_NAME
from jira_assign.core.mappers import metadata_key
from jira_assign.core.models import CandidateProfile, IssueProfile, WorkloadSnapshot

from .types import (
    DEFAULT_WEIGHTS,
    CandidateScore,
    Criteria,
    Evidence,
    Interaction,
    MetadataMatch,
    ProfileExample,
    ProfileSummary,
    ScoringWeights,
    resolve_criteria,
)

logger = logging.getLogger(__name__)


def coerce_count(value: Any) -> float:
    """Numeric value of ``value``; anything non-numeric, negative or non-finite is 0."""
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def _attr(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def _as_mapping(value: Any) -> Mapping:
    return value if isinstance(value, Mapping) else {}


def _reference_key(value: Any) -> str | None:
    """Key of an epic/parent reference (plain key or ``{"key": ...}``)."""
    if isinstance(value, str):
        return value or None
    key = _attr(value, "key") if value is not None else None
    return key if isinstance(key, str) and key else None


def _find_contributor(entries: Any, account_id: str):
    return next((e for e in _as_list(entries) if _attr(e, "account_id") == account_id), None)


def _match_metadata(
    keys: list[str | None],
    counts: Mapping,
    weight: float,
    out: list[MetadataMatch],
) -> float:
    total = 0.0
    for key in keys:
        if not key:
            continue
        count = coerce_count(counts.get(key))
        if count > 0:
            contribution = weight * math.log1p(count)
            total += contribution
            out.append(MetadataMatch(key=key, count=count, contribution=contribution))
    return total


def calculate_workload_penalty(
    workload: WorkloadSnapshot | Mapping | None,
    criteria: Criteria | None = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> tuple[float, dict[str, float]]:
    """Return ``(penalty, breakdown)``; zero for a missing or malformed snapshot."""
    criteria = criteria or Criteria()
    if not isinstance(workload, (WorkloadSnapshot, Mapping)):
        return 0.0, {}
    breakdown: dict[str, float] = {}
    if criteria.workload_open_issues:
        open_issues = coerce_count(_attr(workload, "total_open_issues"))
        breakdown["open_issues"] = weights.workload_open_issues * open_issues
    if criteria.workload_estimate_hours:
        hours = coerce_count(_attr(workload, "total_estimate_seconds")) / SECONDS_PER_HOUR
        breakdown["estimate_hours"] = weights.workload_estimate_hours * hours
    return sum(breakdown.values()), breakdown


def build_profile_summary(
    profile: CandidateProfile | None,
    issue_lookup: Mapping[str, IssueProfile] | None,
) -> ProfileSummary:
    assigned = _as_list(_attr(profile, "assigned_issues"))
    lookup = _as_mapping(issue_lookup)
    examples: list[ProfileExample] = []
    for key in assigned[:PROFILE_EXAMPLE_LIMIT]:
        issue = lookup.get(key) if isinstance(key, str) else None
        if issue is None:
            continue
        examples.append(
            ProfileExample(
                key=_attr(issue, "key") or key,
                summary=_attr(issue, "summary") or "",
                issue_type=metadata_key(_attr(issue, "issue_type")),
            )
        )
    return ProfileSummary(
        total_assigned_issues=len(assigned),
        total_worklog_issues=len(_as_list(_attr(profile, "worklog_issues"))),
        total_comment_issues=len(_as_list(_attr(profile, "commented_issues"))),
        examples=examples,
    )


def score_candidate(
    issue: IssueProfile,
    account_id: str,
    display_name: str | None = None,
    profile: CandidateProfile | None = None,
    workload: WorkloadSnapshot | None = None,
    issue_lookup: Mapping[str, IssueProfile] | None = None,
    criteria: Criteria | Mapping[str, Any] | None = None,
    weights: ScoringWeights = DEFAULT_WEIGHTS,
) -> CandidateScore:
    """Score one candidate for ``issue``.

    Parameters
    ----------
    issue : IssueProfile
        Normalized issue being assigned.
    account_id : str
        Candidate account id.
    display_name : str, optional
        Caller-supplied name; falls back to the profile name, then "Unknown".
    profile, workload : optional
        Candidate history and current load; absent means zero signal / zero penalty.
    issue_lookup : mapping, optional
        Issue key to profile map used for the profile summary examples.
    criteria : Criteria or mapping, optional
        Enabled signals; all enabled when omitted.
    weights : ScoringWeights
        Signal weights.
    """
    enabled = resolve_criteria(criteria)
    evidence = Evidence()
    raw = 0.0

    if enabled.labels:
        keys = [metadata_key(v) for v in _as_list(_attr(issue, "labels"))]
        raw += _match_metadata(keys, _as_mapping(_attr(profile, "labels")), weights.label, evidence.labels)
    if enabled.components:
        keys = [metadata_key(v) for v in _as_list(_attr(issue, "components"))]
        raw += _match_metadata(
            keys, _as_mapping(_attr(profile, "components")), weights.component, evidence.components
        )
    if enabled.issue_type:
        raw += _match_metadata(
            [metadata_key(_attr(issue, "issue_type"))],
            _as_mapping(_attr(profile, "issue_types")),
            weights.issue_type,
            evidence.issue_types,
        )
    if enabled.epic:
        raw += _match_metadata(
            [_reference_key(_attr(issue, "epic"))],
            _as_mapping(_attr(profile, "epics")),
            weights.epic,
            evidence.epics,
        )
    if enabled.parent:
        raw += _match_metadata(
            [_reference_key(_attr(issue, "parent"))],
            _as_mapping(_attr(profile, "parents")),
            weights.parent,
            evidence.parents,
        )

    # Direct interactions with this issue
    if enabled.previous_assignee:
        match = _find_contributor(_attr(issue, "historical_assignees"), account_id)
        if match is not None:
            raw += weights.historical_exact
            evidence.interactions.append(
                Interaction(
                    type="historical-assignee",
                    contribution=weights.historical_exact,
                    count=1,
                    occurred_at=_attr(match, "occurred_at"),
                )
            )
    if enabled.worklogs:
        entry = _find_contributor(_attr(issue, "worklog_contributors"), account_id)
        if entry is not None:
            hours = coerce_count(_attr(entry, "time_spent_seconds")) / SECONDS_PER_HOUR
            logs = coerce_count(_attr(entry, "log_count"))
            if hours + logs > 0:
                contribution = weights.direct_worklog * math.log1p(hours + logs)
                raw += contribution
                evidence.interactions.append(
                    Interaction(type="worklog", contribution=contribution, hours=hours, logs=logs)
                )
    if enabled.comments:
        entry = _find_contributor(_attr(issue, "comment_contributors"), account_id)
        count = coerce_count(_attr(entry, "comment_count")) if entry is not None else 0.0
        if count > 0:
            contribution = weights.direct_comment * math.log1p(count)
            raw += contribution
            evidence.interactions.append(Interaction(type="comment", contribution=contribution, count=count))

    # General track record
    for flag, list_name, weight, kind in (
        (enabled.overall_assignments, "assigned_issues", weights.general_assignments, "assigned-issue-count"),
        (enabled.overall_worklogs, "worklog_issues", weights.general_worklogs, "worklog-issue-count"),
        (enabled.overall_comments, "commented_issues", weights.general_comments, "comment-issue-count"),
    ):
        if not flag:
            continue
        count = len(_as_list(_attr(profile, list_name)))
        if count > 0:
            contribution = weight * math.log1p(count)
            raw += contribution
            evidence.interactions.append(Interaction(type=kind, contribution=contribution, count=count))

    penalty, breakdown = calculate_workload_penalty(workload, enabled, weights)
    evidence.penalties = {"workload": penalty, **breakdown}

    name = display_name or _attr(profile, "display_name") or UNKNOWN_DISPLAY_NAME
    result = CandidateScore(
        account_id=account_id,
        display_name=name if isinstance(name, str) else str(name),
        raw_score=raw,
        workload_penalty=penalty,
        evidence=evidence,
        profile_summary=build_profile_summary(profile, issue_lookup),
    )
    logger.debug(
        "Scored %s for %s: raw=%.3f penalty=%.3f final=%.3f",
        account_id,
        _attr(issue, "key"),
        result.raw_score,
        result.workload_penalty,
        result.final_score,
    )
    return result
