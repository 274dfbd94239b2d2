"""Mapping raw Jira issue JSON into IssueProfile and CandidateProfile data."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pandas as pd

from .config import EPIC_ISSUE_TYPES, UNKNOWN_DISPLAY_NAME
from .models import (
    CandidateProfile,
    CommentContributor,
    HistoricalAssignee,
    IssueProfile,
    RosterEntry,
    WorklogContributor,
)


def metadata_key(value: Any) -> str | None:
    """Stringify a label/component/type/epic value for profile lookups.

    Jira returns some metadata as objects (``{"name": "Backend"}``) and some as
    plain strings; both must resolve to the same key.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        for attr in ("name", "key", "value"):
            inner = value.get(attr)
            if isinstance(inner, str) and inner:
                return inner
    return str(value)


def parse_dt(val):
    if not val:
        return None
    ts = pd.to_datetime(val, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts.to_pydatetime()


def _author(entry: Any) -> tuple[str | None, str]:
    author = entry.get("author") if isinstance(entry, dict) else None
    if not isinstance(author, dict):
        return None, UNKNOWN_DISPLAY_NAME
    return author.get("accountId") or None, author.get("displayName") or UNKNOWN_DISPLAY_NAME


def aggregate_worklogs(worklogs: Iterable[dict[str, Any]] | None) -> list[WorklogContributor]:
    contributors: dict[str, WorklogContributor] = {}
    for log in worklogs or []:
        account_id, display_name = _author(log)
        if not account_id:
            continue
        entry = contributors.setdefault(account_id, WorklogContributor(account_id, display_name))
        seconds = pd.to_numeric(log.get("timeSpentSeconds"), errors="coerce")
        entry.time_spent_seconds += 0 if pd.isna(seconds) else float(seconds)
        entry.log_count += 1
    return list(contributors.values())


def aggregate_comments(comments: Iterable[dict[str, Any]] | None) -> list[CommentContributor]:
    commenters: dict[str, CommentContributor] = {}
    for comment in comments or []:
        account_id, display_name = _author(comment)
        if not account_id:
            continue
        entry = commenters.setdefault(account_id, CommentContributor(account_id, display_name))
        entry.comment_count += 1
    return list(commenters.values())


def extract_historical_assignees(changelog: Any) -> list[HistoricalAssignee]:
    if isinstance(changelog, list):
        histories = changelog
    elif isinstance(changelog, dict):
        histories = changelog.get("histories") or []
    else:
        histories = []
    out: list[HistoricalAssignee] = []
    for history in histories:
        if not isinstance(history, dict):
            continue
        for item in history.get("items") or []:
            if isinstance(item, dict) and item.get("field") == "assignee":
                out.append(
                    HistoricalAssignee(
                        account_id=item.get("to") or None,
                        display_name=item.get("toString") or None,
                        occurred_at=parse_dt(history.get("created")),
                    )
                )
    return out


def _split_parent(fields: dict[str, Any]) -> tuple[str | None, str | None]:
    """Return ``(epic_key, parent_key)`` from the parent/epic fields."""
    parent = fields.get("parent") or None
    parent_key = parent.get("key") if isinstance(parent, dict) else metadata_key(parent)
    epic_key = None
    epic = fields.get("epic")
    if isinstance(epic, dict) and epic.get("key"):
        epic_key = epic["key"]
    elif isinstance(parent, dict):
        parent_type = ((parent.get("fields") or {}).get("issuetype") or {}).get("name")
        if isinstance(parent_type, str) and parent_type.casefold() in EPIC_ISSUE_TYPES:
            epic_key = parent_key
    return epic_key, parent_key


def map_issue_profile(
    raw: dict[str, Any],
    worklogs: Iterable[dict[str, Any]] | None = None,
    comments: Iterable[dict[str, Any]] | None = None,
) -> IssueProfile:
    fields = raw.get("fields") or {}
    epic_key, parent_key = _split_parent(fields)
    assignee = fields.get("assignee") or {}
    components = [metadata_key(c) for c in fields.get("components") or []]
    return IssueProfile(
        key=raw.get("key"),
        summary=fields.get("summary"),
        issue_type=metadata_key(fields.get("issuetype")),
        status=metadata_key(fields.get("status")),
        assignee_account_id=assignee.get("accountId"),
        assignee_display_name=assignee.get("displayName"),
        epic=epic_key,
        parent=parent_key,
        created=parse_dt(fields.get("created")),
        updated=parse_dt(fields.get("updated")),
        labels=list(fields.get("labels") or []),
        components=[c for c in components if c],
        historical_assignees=extract_historical_assignees(raw.get("changelog")),
        worklog_contributors=aggregate_worklogs(worklogs),
        comment_contributors=aggregate_comments(comments),
    )


def map_roster(users: Iterable[dict[str, Any]] | None) -> list[RosterEntry]:
    roster: list[RosterEntry] = []
    for user in users or []:
        if not isinstance(user, dict) or not user.get("accountId"):
            continue
        roster.append(
            RosterEntry(
                account_id=user["accountId"],
                display_name=user.get("displayName"),
                email_address=user.get("emailAddress"),
                active=bool(user.get("active", True)),
            )
        )
    return roster


# ------------------ Candidate Profile Folding ------------------
_INTERACTION_LISTS = {
    "assigned": "assigned_issues",
    "worklogs": "worklog_issues",
    "comments": "commented_issues",
    "historical": "historical_issues",
}


def _bump(counts: dict[str, Any], key: str | None) -> None:
    if not key:
        return
    current = pd.to_numeric(counts.get(key, 0), errors="coerce")
    counts[key] = (0 if pd.isna(current) else int(current)) + 1


def fold_issue_into_profile(
    profile: CandidateProfile,
    issue: IssueProfile,
    interaction: str,
    value: float = 0,
) -> bool:
    """Record one interaction of ``profile``'s user with ``issue`` (in-place).

    Metadata counts are bumped only the first time the issue is attributed to
    the user, so re-ingesting an issue never inflates the profile. Returns
    True when the profile changed.
    """
    list_name = _INTERACTION_LISTS.get(interaction)
    if list_name is None:
        raise ValueError(f"Unknown interaction type: {interaction!r}")
    seen_before = any(issue.key in getattr(profile, name) for name in _INTERACTION_LISTS.values())
    bucket: list[str] = getattr(profile, list_name)
    if issue.key in bucket:
        return False
    bucket.append(issue.key)
    if interaction == "worklogs":
        profile.total_time_spent += value
    elif interaction == "comments":
        profile.total_comments += int(value)

    if not seen_before:
        for label in issue.labels or []:
            _bump(profile.labels, metadata_key(label))
        for component in issue.components or []:
            _bump(profile.components, metadata_key(component))
        _bump(profile.issue_types, metadata_key(issue.issue_type))
        _bump(profile.epics, issue.epic)
        _bump(profile.parents, issue.parent)
    return True
