"""Value types shared by the scorer, ranker, state store, and engine."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any

from jira_assign.core.config import DEFAULT_WEIGHT_VALUES
from jira_assign.core.mappers import parse_dt

logger = logging.getLogger(__name__)


# ------------------ Configuration Values ------------------
@dataclass(frozen=True, slots=True)
class ScoringWeights:
    label: float = DEFAULT_WEIGHT_VALUES["label"]
    component: float = DEFAULT_WEIGHT_VALUES["component"]
    issue_type: float = DEFAULT_WEIGHT_VALUES["issue_type"]
    epic: float = DEFAULT_WEIGHT_VALUES["epic"]
    parent: float = DEFAULT_WEIGHT_VALUES["parent"]
    historical_exact: float = DEFAULT_WEIGHT_VALUES["historical_exact"]
    direct_worklog: float = DEFAULT_WEIGHT_VALUES["direct_worklog"]
    direct_comment: float = DEFAULT_WEIGHT_VALUES["direct_comment"]
    general_assignments: float = DEFAULT_WEIGHT_VALUES["general_assignments"]
    general_worklogs: float = DEFAULT_WEIGHT_VALUES["general_worklogs"]
    general_comments: float = DEFAULT_WEIGHT_VALUES["general_comments"]
    workload_open_issues: float = DEFAULT_WEIGHT_VALUES["workload_open_issues"]
    workload_estimate_hours: float = DEFAULT_WEIGHT_VALUES["workload_estimate_hours"]


DEFAULT_WEIGHTS = ScoringWeights()

_CRITERIA_ALIASES: dict[str, str] = {
    "issueType": "issue_type",
    "previousAssignee": "previous_assignee",
    "overallAssignments": "overall_assignments",
    "overallWorklogs": "overall_worklogs",
    "overallComments": "overall_comments",
    "workloadOpenIssues": "workload_open_issues",
    "workloadEstimateHours": "workload_estimate_hours",
}


@dataclass(frozen=True, slots=True)
class Criteria:
    """One switch per scoring signal; everything is enabled by default."""

    labels: bool = True
    components: bool = True
    issue_type: bool = True
    epic: bool = True
    parent: bool = True
    previous_assignee: bool = True
    worklogs: bool = True
    comments: bool = True
    overall_assignments: bool = True
    overall_worklogs: bool = True
    overall_comments: bool = True
    workload_open_issues: bool = True
    workload_estimate_hours: bool = True

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any] | None) -> Criteria:
        """Build criteria from a snake_case or camelCase mapping.

        Keys that name no criterion are ignored (and logged); missing keys keep
        their enabled default.
        """
        if mapping is None:
            return cls()
        known = {f.name for f in fields(cls)}
        values: dict[str, bool] = {}
        for raw_key, value in mapping.items():
            name = _CRITERIA_ALIASES.get(raw_key, raw_key)
            if name not in known:
                logger.warning("Ignoring unknown scoring criterion %r", raw_key)
                continue
            values[name] = bool(value)
        return cls(**values)


def resolve_criteria(criteria: Criteria | Mapping[str, Any] | None) -> Criteria:
    if isinstance(criteria, Criteria):
        return criteria
    return Criteria.from_mapping(criteria)


# ------------------ Score & Evidence ------------------
@dataclass(slots=True)
class MetadataMatch:
    key: str
    count: float
    contribution: float


@dataclass(slots=True)
class Interaction:
    type: str
    contribution: float
    count: float | None = None
    hours: float | None = None
    logs: float | None = None
    occurred_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type, "contribution": self.contribution}
        for name in ("count", "hours", "logs"):
            value = getattr(self, name)
            if value is not None:
                out[name] = value
        if self.type == "historical-assignee":
            out["occurred_at"] = self.occurred_at.isoformat() if self.occurred_at else None
        return out


@dataclass(slots=True)
class Evidence:
    labels: list[MetadataMatch] = field(default_factory=list)
    components: list[MetadataMatch] = field(default_factory=list)
    issue_types: list[MetadataMatch] = field(default_factory=list)
    epics: list[MetadataMatch] = field(default_factory=list)
    parents: list[MetadataMatch] = field(default_factory=list)
    interactions: list[Interaction] = field(default_factory=list)
    penalties: dict[str, float] = field(default_factory=dict)

    def find_interaction(self, kind: str) -> Interaction | None:
        return next((i for i in self.interactions if i.type == kind), None)

    def to_dict(self) -> dict[str, Any]:
        def _matches(items: list[MetadataMatch]) -> list[dict[str, Any]]:
            return [{"key": m.key, "count": m.count, "contribution": m.contribution} for m in items]

        return {
            "labels": _matches(self.labels),
            "components": _matches(self.components),
            "issue_types": _matches(self.issue_types),
            "epics": _matches(self.epics),
            "parents": _matches(self.parents),
            "interactions": [i.to_dict() for i in self.interactions],
            "penalties": dict(self.penalties),
        }


@dataclass(slots=True)
class ProfileExample:
    key: str
    summary: str
    issue_type: str | None = None


@dataclass(slots=True)
class ProfileSummary:
    total_assigned_issues: int = 0
    total_worklog_issues: int = 0
    total_comment_issues: int = 0
    examples: list[ProfileExample] = field(default_factory=list)


@dataclass(slots=True)
class CandidateScore:
    account_id: str
    display_name: str
    raw_score: float
    workload_penalty: float
    evidence: Evidence = field(default_factory=Evidence)
    profile_summary: ProfileSummary = field(default_factory=ProfileSummary)

    @property
    def final_score(self) -> float:
        return self.raw_score - self.workload_penalty

    def to_dict(self) -> dict[str, Any]:
        summary = self.profile_summary
        return {
            "account_id": self.account_id,
            "display_name": self.display_name,
            "raw_score": self.raw_score,
            "workload_penalty": self.workload_penalty,
            "final_score": self.final_score,
            "evidence": self.evidence.to_dict(),
            "profile_summary": {
                "total_assigned_issues": summary.total_assigned_issues,
                "total_worklog_issues": summary.total_worklog_issues,
                "total_comment_issues": summary.total_comment_issues,
                "examples": [
                    {"key": e.key, "summary": e.summary, "issue_type": e.issue_type} for e in summary.examples
                ],
            },
        }


# ------------------ Persisted State ------------------
def _ordered_ids(values: Iterable[Any] | None) -> tuple[str, ...]:
    if values is None or isinstance(values, (str, bytes, Mapping)):
        return ()
    try:
        return tuple(dict.fromkeys(v for v in values if isinstance(v, str) and v))
    except TypeError:
        return ()


@dataclass(frozen=True, slots=True)
class AssignmentState:
    """Per-issue recommendation state.

    ``declined_account_ids`` is an insertion-ordered set: entries are only
    ever appended, and it serializes to a list in that order.
    """

    current_account_id: str | None = None
    declined_account_ids: tuple[str, ...] = ()
    last_updated: datetime | None = None

    def __post_init__(self):
        object.__setattr__(self, "declined_account_ids", _ordered_ids(self.declined_account_ids))

    def is_declined(self, account_id: str) -> bool:
        return account_id in self.declined_account_ids

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_account_id": self.current_account_id,
            "declined_account_ids": list(self.declined_account_ids),
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> AssignmentState:
        if not isinstance(data, Mapping):
            return cls()
        current = data.get("current_account_id")
        return cls(
            current_account_id=current if isinstance(current, str) and current else None,
            declined_account_ids=_ordered_ids(data.get("declined_account_ids")),
            last_updated=parse_dt(data.get("last_updated")),
        )


# ------------------ Results ------------------
class AssignmentStatus(str, Enum):
    DECLINED_EXHAUSTED = "declined-exhausted"
    NO_CANDIDATE_FOUND = "no-candidate-found"
    ASSIGNMENT_FAILED = "assignment-failed"
    RECOMMENDATION_ONLY = "recommendation-only"
    ASSIGNED = "assigned"


@dataclass(slots=True)
class AttemptError:
    account_id: str
    message: str


@dataclass(slots=True)
class FallbackOutcome:
    success: bool
    assignee: CandidateScore | None = None
    remaining: list[CandidateScore] = field(default_factory=list)
    errors: list[AttemptError] = field(default_factory=list)


@dataclass(slots=True)
class AssignmentResult:
    success: bool
    status: AssignmentStatus
    issue_key: str
    message: str = ""
    assignee: CandidateScore | None = None
    alternatives: list[CandidateScore] = field(default_factory=list)
    declined: list[str] = field(default_factory=list)
    attempt_errors: list[AttemptError] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)
    summary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "status": self.status.value,
            "issue_key": self.issue_key,
            "message": self.message,
            "assignee": self.assignee.to_dict() if self.assignee else None,
            "alternatives": [c.to_dict() for c in self.alternatives],
            "declined": list(self.declined),
            "attempt_errors": [{"account_id": e.account_id, "message": e.message} for e in self.attempt_errors],
            "meta": dict(self.meta),
            "summary": self.summary,
        }


class BulkMode(str, Enum):
    EPIC = "epic"
    LABEL = "label"
    TASK = "task"


@dataclass(slots=True)
class BulkAssignmentReport:
    """Tallies of one bulk run; ``failed`` issues are also counted as skipped."""

    total_processed: int = 0
    total_assigned: int = 0
    total_skipped: int = 0
    assigned: list[dict[str, str]] = field(default_factory=list)
    skipped: list[dict[str, str]] = field(default_factory=list)
    failed: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_processed": self.total_processed,
            "total_assigned": self.total_assigned,
            "total_skipped": self.total_skipped,
            "assigned": [dict(e) for e in self.assigned],
            "skipped": [dict(e) for e in self.skipped],
            "failed": [dict(e) for e in self.failed],
        }
