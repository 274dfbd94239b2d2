"""Assignee recommendation engine."""

from jira_assign.assignment.engine import AssignmentEngine, derive_project_key
from jira_assign.assignment.ranking import CandidateRanker, sort_candidates
from jira_assign.assignment.scoring import calculate_workload_penalty, score_candidate
from jira_assign.assignment.state import AssignmentStateStore
from jira_assign.assignment.summary import generate_assignment_summary
from jira_assign.assignment.types import (
    DEFAULT_WEIGHTS,
    AssignmentResult,
    AssignmentState,
    AssignmentStatus,
    BulkAssignmentReport,
    BulkMode,
    CandidateScore,
    Criteria,
    ScoringWeights,
)

__all__ = [
    "DEFAULT_WEIGHTS",
    "AssignmentEngine",
    "AssignmentResult",
    "AssignmentState",
    "AssignmentStateStore",
    "AssignmentStatus",
    "BulkAssignmentReport",
    "BulkMode",
    "CandidateRanker",
    "CandidateScore",
    "Criteria",
    "ScoringWeights",
    "calculate_workload_penalty",
    "derive_project_key",
    "generate_assignment_summary",
    "score_candidate",
    "sort_candidates",
]
