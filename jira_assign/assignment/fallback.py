"""Apply a ranked candidate, falling back down the list on write rejections."""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Collection, Mapping
from typing import Any

from jira_assign.core.errors import AssignmentRejected, raise_if_cancelled
from jira_assign.core.jira_client import JiraAPI
from jira_assign.core.models import IssueProfile

from .ranking import CandidateRanker
from .types import AttemptError, CandidateScore, Criteria, FallbackOutcome

logger = logging.getLogger(__name__)


def attempt_assignment_with_fallback(
    api: JiraAPI,
    ranker: CandidateRanker,
    issue: IssueProfile,
    project_key: str,
    candidates: list[CandidateScore],
    baseline_declines: Collection[str] = (),
    *,
    criteria: Criteria | Mapping[str, Any] | None = None,
    cancel_event: threading.Event | None = None,
) -> FallbackOutcome:
    """Write the head of the queue until Jira accepts one candidate.

    A rejected candidate joins a call-scoped exclusion set, the roster is
    re-read (it may have changed meanwhile) and the queue is rebuilt from a
    fresh ranking without baseline declines and rejected candidates. The
    exclusion set only grows and each rebuilt queue omits all of it, so every
    candidate is tried at most once.
    """
    issue_key = issue.key
    errors: list[AttemptError] = []
    baseline = set(baseline_declines or ())
    rejected: set[str] = set()
    queue = deque(candidates)

    while queue:
        candidate = queue.popleft()
        raise_if_cancelled(cancel_event, f"assigning {issue_key} to {candidate.account_id}")
        try:
            api.assign_issue(issue_key, candidate.account_id)
        except AssignmentRejected as exc:
            logger.warning("Jira rejected %s for %s: %s", candidate.account_id, issue_key, exc)
            errors.append(AttemptError(account_id=candidate.account_id, message=str(exc)))
            rejected.add(candidate.account_id)
            raise_if_cancelled(cancel_event, f"re-ranking {issue_key}")
            roster = ranker.service.get_assignable_roster(project_key)
            queue = deque(ranker.rank(issue, roster, baseline | rejected, criteria))
            continue

        logger.info("Assigned %s to %s (%s)", issue_key, candidate.account_id, candidate.display_name)
        if not ranker.service.refresh_issue(issue_key):
            logger.warning("Post-assignment refresh of %s failed; cached profile may be stale", issue_key)
        return FallbackOutcome(success=True, assignee=candidate, remaining=list(queue), errors=errors)

    logger.warning("Every candidate for %s was rejected (%s attempts)", issue_key, len(errors))
    return FallbackOutcome(success=False, errors=errors)
