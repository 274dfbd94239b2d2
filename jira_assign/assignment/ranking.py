"""Candidate ranking: score every eligible roster member and order them."""

from __future__ import annotations

import locale
import logging
from collections.abc import Collection, Iterable, Mapping
from typing import Any

from jira_assign.core.models import IssueProfile, RosterEntry
from jira_assign.core.service import IngestionService

from .scoring import score_candidate
from .types import DEFAULT_WEIGHTS, CandidateScore, Criteria, ScoringWeights, resolve_criteria

logger = logging.getLogger(__name__)


def _ranking_key(candidate: CandidateScore):
    return (-candidate.final_score, -candidate.raw_score, locale.strxfrm(candidate.display_name or ""))


def sort_candidates(candidates: Iterable[CandidateScore]) -> list[CandidateScore]:
    """Descending final score, then descending raw score, then display name.

    Names compare case-sensitively under the process LC_COLLATE locale (plain
    code point order in the default C locale).
    """
    return sorted(candidates, key=_ranking_key)


class CandidateRanker:
    def __init__(self, service: IngestionService, weights: ScoringWeights = DEFAULT_WEIGHTS):
        self.service = service
        self.weights = weights

    def rank(
        self,
        issue: IssueProfile,
        roster: Iterable[RosterEntry],
        excluded: Collection[str] = (),
        criteria: Criteria | Mapping[str, Any] | None = None,
    ) -> list[CandidateScore]:
        enabled = resolve_criteria(criteria)
        eligible: dict[str, RosterEntry] = {}
        for entry in roster or []:
            account_id = getattr(entry, "account_id", None)
            if not account_id or account_id in excluded:
                continue
            eligible[account_id] = entry
        if not eligible:
            return []

        lookup = self.service.issue_lookup()
        scored = [
            score_candidate(
                issue,
                account_id,
                display_name=entry.display_name,
                profile=self.service.get_candidate_profile(account_id),
                workload=self.service.get_workload(account_id),
                issue_lookup=lookup,
                criteria=enabled,
                weights=self.weights,
            )
            for account_id, entry in eligible.items()
        ]
        ranked = sort_candidates(scored)
        logger.debug("Ranked %s candidates for %s", len(ranked), issue.key)
        return ranked
