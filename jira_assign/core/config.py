"""Central configuration, constants, and tuning knobs for the assignment engine."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

# =============================================================================
# Jira Connection Settings
# =============================================================================
TIMEZONE = "UTC"

# Page size for the assignable-user search endpoint
ASSIGNABLE_PAGE_SIZE: int = 1000

# =============================================================================
# Scoring Weights (defaults)
# Domain expertise (labels, issue type) dominates; historic interaction is
# rewarded and heavy workloads are penalised.
# =============================================================================
DEFAULT_WEIGHT_VALUES: dict[str, float] = {
    "label": 3.2,
    "component": 2.4,
    "issue_type": 2.8,
    "epic": 1.4,
    "parent": 1.6,
    "historical_exact": 5.0,
    "direct_worklog": 2.5,
    "direct_comment": 1.2,
    "general_assignments": 0.9,
    "general_worklogs": 0.7,
    "general_comments": 0.5,
    "workload_open_issues": 0.85,
    "workload_estimate_hours": 0.12,
}

# =============================================================================
# Recommendation Output
# =============================================================================
ALTERNATIVE_LIMIT: int = 3  # Alternatives named in the assignment comment
PROFILE_EXAMPLE_LIMIT: int = 5  # Example past issues in a profile summary
SUMMARY_REASON_LIMIT: int = 2  # Reasons kept in the one-line assignment summary
SIGNIFICANT_WORKLOG_HOURS: float = 5.0
UNKNOWN_DISPLAY_NAME = "Unknown"
SECONDS_PER_HOUR = 3600

# =============================================================================
# Jira Fetch Fields
# =============================================================================
ISSUE_FETCH_FIELDS: Sequence[str] = (
    "summary",
    "created",
    "updated",
    "assignee",
    "reporter",
    "priority",
    "status",
    "resolutiondate",
    "issuetype",
    "labels",
    "components",
    "parent",
    "timeestimate",
    "timeoriginalestimate",
    "timespent",
)

# Fields needed to compute the open workload of a user
WORKLOAD_FIELDS: Sequence[str] = ("status", "priority", "timeestimate")

# Issue types treated as epics when they appear as a parent
EPIC_ISSUE_TYPES: frozenset[str] = frozenset({"epic"})

# =============================================================================
# Bulk Assignment
# Unassigned issues under an epic or carrying a label, oldest first.
# =============================================================================
BULK_JQL: dict[str, str] = {
    "epic": "parent = {key} AND assignee is EMPTY ORDER BY created ASC",
    "label": 'labels = "{key}" AND assignee is EMPTY ORDER BY created ASC',
}
BULK_SEARCH_LIMIT: int = 100
BULK_FIELDS: Sequence[str] = ("summary",)


@dataclass(slots=True)
class AppSettings:
    weights_file: str = "weights.yaml"


SETTINGS = AppSettings()
