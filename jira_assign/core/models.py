"""Domain data models for issue profiles, candidate profiles, and workloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(slots=True)
class HistoricalAssignee:
    account_id: str | None
    display_name: str | None = None
    occurred_at: datetime | None = None


@dataclass(slots=True)
class WorklogContributor:
    account_id: str | None
    display_name: str | None = None
    time_spent_seconds: float = 0
    log_count: int = 0


@dataclass(slots=True)
class CommentContributor:
    account_id: str | None
    display_name: str | None = None
    comment_count: int = 0


@dataclass(slots=True)
class IssueProfile:
    """Normalized snapshot of a Jira issue as consumed by the scorer."""

    key: str
    summary: str | None = None
    issue_type: Any = None
    status: str | None = None
    assignee_account_id: str | None = None
    assignee_display_name: str | None = None
    epic: str | None = None
    parent: str | None = None
    created: datetime | None = None
    updated: datetime | None = None
    labels: list[Any] = field(default_factory=list)
    components: list[Any] = field(default_factory=list)
    historical_assignees: list[HistoricalAssignee] = field(default_factory=list)
    worklog_contributors: list[WorklogContributor] = field(default_factory=list)
    comment_contributors: list[CommentContributor] = field(default_factory=list)


@dataclass(slots=True)
class CandidateProfile:
    """Per-user aggregate of historical activity."""

    account_id: str
    display_name: str | None = None
    labels: dict[str, Any] = field(default_factory=dict)
    components: dict[str, Any] = field(default_factory=dict)
    issue_types: dict[str, Any] = field(default_factory=dict)
    epics: dict[str, Any] = field(default_factory=dict)
    parents: dict[str, Any] = field(default_factory=dict)
    assigned_issues: list[str] = field(default_factory=list)
    worklog_issues: list[str] = field(default_factory=list)
    commented_issues: list[str] = field(default_factory=list)
    historical_issues: list[str] = field(default_factory=list)
    total_time_spent: float = 0
    total_comments: int = 0


@dataclass(slots=True)
class WorkloadSnapshot:
    total_open_issues: Any = 0
    total_estimate_seconds: Any = 0
    status_breakdown: dict[str, int] = field(default_factory=dict)
    priority_breakdown: dict[str, int] = field(default_factory=dict)
    last_updated: datetime | None = None


@dataclass(slots=True)
class RosterEntry:
    account_id: str
    display_name: str | None = None
    email_address: str | None = None
    active: bool = True
