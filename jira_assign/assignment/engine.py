"""AssignmentEngine: the public entry point for assignee recommendations.

A call to :meth:`AssignmentEngine.recommend` registers an optional decline,
refreshes the issue, ranks the project's assignable users, optionally writes
the assignment (falling back down the ranking on rejections), persists the
per-issue state and reduces everything to one ``AssignmentStatus``.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping, Sequence
from typing import Any

from jira_assign.core import weights_config
from jira_assign.core.cache import DataCache
from jira_assign.core.config import ALTERNATIVE_LIMIT, BULK_FIELDS, BULK_JQL, BULK_SEARCH_LIMIT
from jira_assign.core.errors import (
    AssignmentCancelled,
    AssignmentRejected,
    IssueUnavailableError,
    raise_if_cancelled,
)
from jira_assign.core.jira_client import JiraAPI
from jira_assign.core.models import IssueProfile
from jira_assign.core.service import IngestionService

from .fallback import attempt_assignment_with_fallback
from .ranking import CandidateRanker
from .state import AssignmentStateStore, utc_now
from .summary import assignment_comment, decline_comment, generate_assignment_summary
from .types import (
    DEFAULT_WEIGHTS,
    AssignmentResult,
    AssignmentState,
    AssignmentStatus,
    BulkAssignmentReport,
    BulkMode,
    Criteria,
    ScoringWeights,
    resolve_criteria,
)

logger = logging.getLogger(__name__)


def validate_issue_key(issue_key: Any) -> str:
    if not isinstance(issue_key, str) or not issue_key.strip():
        raise ValueError("issue_key is required for recommendation")
    return issue_key.strip()


def derive_project_key(issue_key: str) -> str:
    """Project namespace of an issue key ("OBS-123" -> "OBS")."""
    project_key, sep, _ = issue_key.partition("-")
    if not sep or not project_key:
        raise ValueError(f"Cannot derive a project key from issue key {issue_key!r}")
    return project_key


class AssignmentEngine:
    def __init__(
        self,
        api: JiraAPI,
        cache: DataCache,
        service: IngestionService | None = None,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
    ):
        self.api = api
        self.cache = cache
        self.service = service or IngestionService(api, cache)
        self.ranker = CandidateRanker(self.service, weights)
        self.store = AssignmentStateStore(cache)

    @classmethod
    def connect(
        cls,
        server: str,
        email: str,
        token: str,
        *,
        cache: DataCache | None = None,
        weights_path: str | None = None,
    ) -> AssignmentEngine:
        """Build an engine backed by a live Jira connection and YAML weights."""
        weights = weights_config.load_weights(weights_path)
        return cls(JiraAPI(server, email, token), cache or DataCache(), weights=weights)

    # ------------------ Public API ------------------
    def recommend(
        self,
        issue_key: str,
        *,
        declined_account_id: str | None = None,
        skip_assignment: bool = False,
        comment_on_assignment: bool = True,
        comment_on_decline: bool = True,
        actor_display_name: str | None = None,
        criteria: Criteria | Mapping[str, Any] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> AssignmentResult:
        """Recommend, and unless ``skip_assignment`` apply, the best assignee.

        Raises
        ------
        ValueError
            For a missing or malformed issue key.
        IssueUnavailableError
            When no issue profile exists even after a targeted refresh.
        AssignmentCancelled
            When ``cancel_event`` is set between two external calls.
        """
        issue_key = validate_issue_key(issue_key)
        project_key = derive_project_key(issue_key)
        enabled = resolve_criteria(criteria)

        with self.store.lock(issue_key):
            raise_if_cancelled(cancel_event, "loading state")
            state = self.store.load(issue_key)

            if declined_account_id:
                state = self.store.register_decline(state, declined_account_id)
                logger.info("Registered decline of %s for %s", declined_account_id, issue_key)
                if comment_on_decline:
                    self._notify(issue_key, decline_comment(declined_account_id, actor_display_name))

            if not skip_assignment:
                raise_if_cancelled(cancel_event, "refreshing issue data")
                if not self.service.refresh_issue(issue_key):
                    logger.warning("Refresh of %s failed; falling back to cached data", issue_key)

            issue = self._ensure_issue_profile(issue_key, cancel_event)

            raise_if_cancelled(cancel_event, "reading the assignable roster")
            roster = self.service.get_assignable_roster(project_key)
            declined = state.declined_account_ids
            ranked = self.ranker.rank(issue, roster, declined, enabled)

            if not ranked:
                return self._empty_result(issue_key, roster, state)

            chosen = ranked[0]
            alternatives = ranked[1:]
            attempt_errors = []
            if not skip_assignment:
                outcome = attempt_assignment_with_fallback(
                    self.api,
                    self.ranker,
                    issue,
                    project_key,
                    ranked,
                    declined,
                    criteria=enabled,
                    cancel_event=cancel_event,
                )
                attempt_errors = outcome.errors
                if not outcome.success:
                    return AssignmentResult(
                        success=False,
                        status=AssignmentStatus.ASSIGNMENT_FAILED,
                        issue_key=issue_key,
                        message="Unable to assign the issue. All candidates were rejected by Jira.",
                        declined=list(declined),
                        attempt_errors=attempt_errors,
                    )
                chosen = outcome.assignee
                alternatives = outcome.remaining

            self.store.persist(
                issue_key,
                AssignmentState(
                    current_account_id=chosen.account_id,
                    declined_account_ids=declined,
                    last_updated=utc_now(),
                ),
            )

            summary = generate_assignment_summary(chosen)
            if skip_assignment:
                status = AssignmentStatus.RECOMMENDATION_ONLY
                message = f"{chosen.display_name} is the recommended assignee."
            else:
                status = AssignmentStatus.ASSIGNED
                message = f"{issue_key} assigned to {chosen.display_name}."
                self.cache.put_summary(issue_key, summary)
                if comment_on_assignment:
                    self._notify(
                        issue_key,
                        assignment_comment(
                            chosen, alternatives[:ALTERNATIVE_LIMIT], declined, actor_display_name
                        ),
                    )

            logger.info("Recommendation for %s finished with status %s", issue_key, status.value)
            return AssignmentResult(
                success=True,
                status=status,
                issue_key=issue_key,
                message=message,
                assignee=chosen,
                alternatives=list(alternatives),
                declined=list(declined),
                attempt_errors=attempt_errors,
                summary=summary,
            )

    def decline(
        self,
        issue_key: str,
        account_id: str,
        *,
        actor_display_name: str | None = None,
        criteria: Criteria | Mapping[str, Any] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> AssignmentResult:
        """Unassign ``account_id`` and recommend (without applying) the next best candidate."""
        issue_key = validate_issue_key(issue_key)
        if not isinstance(account_id, str) or not account_id:
            raise ValueError("account_id is required to decline a recommendation")
        try:
            self.api.assign_issue(issue_key, None)
        except AssignmentRejected as exc:
            logger.warning("Could not unassign %s after decline: %s", issue_key, exc)
        return self.recommend(
            issue_key,
            declined_account_id=account_id,
            skip_assignment=True,
            comment_on_assignment=False,
            comment_on_decline=True,
            actor_display_name=actor_display_name,
            criteria=criteria,
            cancel_event=cancel_event,
        )

    def assign_many(
        self,
        mode: BulkMode | str,
        keys: Sequence[str],
        *,
        criteria: Criteria | Mapping[str, Any] | None = None,
        actor_display_name: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> BulkAssignmentReport:
        """Auto-assign every unassigned issue selected by ``mode``.

        ``mode`` is ``"epic"`` (issues whose parent is each key), ``"label"``
        (issues carrying each label) or ``"task"`` (the keys are issue keys).
        Per-issue failures are collected in the report instead of raised; a
        search that fails for one epic or label skips only that key.

        Raises
        ------
        ValueError
            For an unknown mode or an empty selection.
        AssignmentCancelled
            When ``cancel_event`` is set.
        """
        try:
            mode = BulkMode(mode)
        except ValueError:
            raise ValueError(f"Unknown bulk assignment mode: {mode!r}") from None
        selected = [k for k in keys or [] if isinstance(k, str) and k.strip()]
        if not selected:
            raise ValueError("No items selected")
        enabled = resolve_criteria(criteria)
        if mode is not BulkMode.TASK and hasattr(self.api, "clear_cache"):
            self.api.clear_cache()

        report = BulkAssignmentReport()
        for key in selected:
            raise_if_cancelled(cancel_event, f"collecting issues for {mode.value} {key}")
            issues = self._bulk_targets(mode, key.strip())
            for issue_key, summary in issues:
                report.total_processed += 1
                try:
                    result = self.recommend(
                        issue_key,
                        comment_on_decline=False,
                        actor_display_name=actor_display_name,
                        criteria=enabled,
                        cancel_event=cancel_event,
                    )
                except AssignmentCancelled:
                    raise
                except Exception as exc:
                    logger.warning("Bulk assignment of %s failed: %s", issue_key, exc)
                    report.failed.append({"key": issue_key, "summary": summary, "error": str(exc)})
                    report.total_skipped += 1
                    continue
                if result.success and result.assignee is not None:
                    report.total_assigned += 1
                    report.assigned.append(
                        {"key": issue_key, "summary": summary, "assignee": result.assignee.display_name}
                    )
                else:
                    report.total_skipped += 1
                    reason = result.message or "No suitable candidate found"
                    report.skipped.append({"key": issue_key, "summary": summary, "reason": reason})
        logger.info(
            "Bulk %s assignment: %s processed, %s assigned, %s skipped",
            mode.value,
            report.total_processed,
            report.total_assigned,
            report.total_skipped,
        )
        return report

    def get_state(self, issue_key: str) -> AssignmentState | None:
        if not isinstance(issue_key, str) or not issue_key:
            return None
        return self.store.get(issue_key)

    def clear_state(self, issue_key: str) -> None:
        if not isinstance(issue_key, str) or not issue_key:
            return
        with self.store.lock(issue_key):
            self.store.clear(issue_key)

    # ------------------ Internal Helpers ------------------
    def _ensure_issue_profile(self, issue_key: str, cancel_event: threading.Event | None) -> IssueProfile:
        issue = self.service.get_issue_profile(issue_key)
        if issue is not None:
            return issue
        raise_if_cancelled(cancel_event, "re-ingesting the issue")
        self.service.refresh_issue(issue_key)
        issue = self.service.get_issue_profile(issue_key)
        if issue is None:
            raise IssueUnavailableError(f"processed data for issue {issue_key} is not available")
        return issue

    def _bulk_targets(self, mode: BulkMode, key: str) -> list[tuple[str, str]]:
        """``(issue_key, summary)`` pairs to process for one selected key."""
        if mode is BulkMode.TASK:
            return [(key, "")]
        jql = BULK_JQL[mode.value].format(key=key)
        try:
            raw = self.api.search_enhanced(jql, fields=list(BULK_FIELDS), page_size=BULK_SEARCH_LIMIT)
        except Exception as exc:
            logger.warning("Failed to fetch issues for %s %s: %s", mode.value, key, exc)
            return []
        out: list[tuple[str, str]] = []
        for issue in raw[:BULK_SEARCH_LIMIT]:
            issue_key = issue.get("key") if isinstance(issue, dict) else None
            if issue_key:
                out.append((issue_key, (issue.get("fields") or {}).get("summary") or ""))
        logger.info("Found %s unassigned issues in %s %s", len(out), mode.value, key)
        return out

    def _empty_result(self, issue_key: str, roster, state: AssignmentState) -> AssignmentResult:
        total_assignable = len({entry.account_id for entry in roster if entry.account_id})
        declined = list(state.declined_account_ids)
        if total_assignable > 0 and len(declined) >= total_assignable:
            logger.info("All %s assignable users declined for %s", total_assignable, issue_key)
            return AssignmentResult(
                success=False,
                status=AssignmentStatus.DECLINED_EXHAUSTED,
                issue_key=issue_key,
                message="All assignable users have been declined. Reset declines to continue.",
                declined=declined,
                meta={"total_assignable": total_assignable, "declined_count": len(declined)},
            )
        self.store.clear(issue_key)
        logger.info("No assignable candidate found for %s", issue_key)
        return AssignmentResult(
            success=False,
            status=AssignmentStatus.NO_CANDIDATE_FOUND,
            issue_key=issue_key,
            message="No assignable users were suitable for this issue.",
            declined=declined,
        )

    def _notify(self, issue_key: str, message: str) -> dict[str, Any] | None:
        try:
            return self.api.add_comment(issue_key, message)
        except Exception as exc:
            logger.warning("Failed to post comment on %s: %s", issue_key, exc)
            return None
