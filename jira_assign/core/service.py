"""IngestionService: fetches Jira data, maps it, and keeps the cache current."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

import pandas as pd
import pytz

from .cache import DataCache
from .config import TIMEZONE, WORKLOAD_FIELDS
from .jira_client import JiraAPI
from .mappers import fold_issue_into_profile, map_issue_profile, map_roster
from .models import CandidateProfile, IssueProfile, RosterEntry, WorkloadSnapshot

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int | None, int | None], None]


class IngestionService:
    def __init__(self, api: JiraAPI, cache: DataCache):
        self.api = api
        self.cache = cache
        self._tz = pytz.timezone(TIMEZONE)

    # ------------------ Reads ------------------
    def get_issue_profile(self, issue_key: str) -> IssueProfile | None:
        return self.cache.get_issue(issue_key)

    def issue_lookup(self) -> dict[str, IssueProfile]:
        return self.cache.all_issues()

    def get_candidate_profile(self, account_id: str) -> CandidateProfile | None:
        return self.cache.get_user_profile(account_id)

    def get_workload(self, account_id: str) -> WorkloadSnapshot | None:
        return self.cache.get_workload(account_id)

    def get_assignable_roster(self, project_key: str) -> list[RosterEntry]:
        if not project_key:
            return []
        try:
            users = self.api.assignable_users(project_key)
        except RuntimeError as exc:
            logger.warning("Failed to read assignable users for %s: %s", project_key, exc)
            return []
        return map_roster(users)

    # ------------------ Single Issue Refresh ------------------
    def refresh_issue(self, issue_key: str) -> bool:
        """Re-ingest one issue and fold it into its contributors' profiles.

        Failures are logged and reported through the return value; the caller
        decides whether a stale (or missing) cached profile is acceptable.
        """
        try:
            raw = self.api.fetch_issue_raw(issue_key)
            if not raw:
                logger.warning("Issue %s returned no data", issue_key)
                return False
            worklogs = self.api.fetch_worklogs(issue_key)
            comments = self.api.fetch_comments(issue_key)
        except Exception as exc:
            logger.warning("Failed to refresh issue %s: %s", issue_key, exc)
            return False
        issue = map_issue_profile(raw, worklogs, comments)
        if not issue.key:
            issue.key = issue_key
        self.cache.put_issue(issue)
        self._update_profiles(issue)
        logger.info("Issue %s refreshed", issue_key)
        return True

    def _update_profiles(self, issue: IssueProfile) -> None:
        touches: list[tuple[str, str | None, str, float]] = []
        if issue.assignee_account_id:
            touches.append((issue.assignee_account_id, issue.assignee_display_name, "assigned", 0))
        for w in issue.worklog_contributors:
            touches.append((w.account_id, w.display_name, "worklogs", w.time_spent_seconds))
        for c in issue.comment_contributors:
            touches.append((c.account_id, c.display_name, "comments", c.comment_count))
        for h in issue.historical_assignees:
            touches.append((h.account_id, h.display_name, "historical", 0))

        for account_id, display_name, interaction, value in touches:
            if not account_id:
                continue
            profile = self.cache.get_user_profile(account_id) or CandidateProfile(
                account_id=account_id, display_name=display_name
            )
            if not profile.display_name and display_name:
                profile.display_name = display_name
            fold_issue_into_profile(profile, issue, interaction, value)
            self.cache.put_user_profile(profile)

    # ------------------ Workloads ------------------
    def compute_workload(self, account_id: str, project_key: str | None = None) -> WorkloadSnapshot:
        jql = f'assignee = "{account_id}" AND resolution = Unresolved'
        if project_key:
            jql += f" AND project = {project_key}"
        raw = self.api.search_enhanced(jql, fields=list(WORKLOAD_FIELDS))
        now = datetime.now(self._tz)
        if not raw:
            return WorkloadSnapshot(last_updated=now)
        rows: list[dict[str, Any]] = []
        for issue in raw:
            fields = issue.get("fields") or {}
            rows.append(
                {
                    "key": issue.get("key"),
                    "status": (fields.get("status") or {}).get("name") or "Unknown",
                    "priority": (fields.get("priority") or {}).get("name") or "Unknown",
                    "timeestimate": fields.get("timeestimate"),
                }
            )
        df = pd.DataFrame(rows)
        estimate = pd.to_numeric(df["timeestimate"], errors="coerce").fillna(0).sum()
        return WorkloadSnapshot(
            total_open_issues=int(df["key"].nunique()),
            total_estimate_seconds=float(estimate),
            status_breakdown={str(k): int(v) for k, v in df["status"].value_counts().items()},
            priority_breakdown={str(k): int(v) for k, v in df["priority"].value_counts().items()},
            last_updated=now,
        )

    def refresh_workloads(
        self,
        project_key: str,
        *,
        progress: ProgressCallback | None = None,
    ) -> dict[str, Any]:
        """Recompute and cache the open workload of every assignable user."""
        if hasattr(self.api, "clear_cache"):
            self.api.clear_cache()
        roster = self.get_assignable_roster(project_key)
        updated = 0
        errors: list[dict[str, str]] = []
        for idx, user in enumerate(roster, start=1):
            try:
                self.cache.put_workload(user.account_id, self.compute_workload(user.account_id, project_key))
                updated += 1
            except Exception as exc:
                logger.warning("Failed to update workload for %s: %s", user.account_id, exc)
                errors.append({"accountId": user.account_id, "error": str(exc)})
            if progress:
                progress("Updating user workloads", idx, len(roster))
        logger.info("Updated workloads for %s/%s users in %s", updated, len(roster), project_key)
        return {"total_users": len(roster), "updated": updated, "errors": errors}
