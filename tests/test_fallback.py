import threading

import pytest

from jira_assign.assignment.fallback import attempt_assignment_with_fallback
from jira_assign.assignment.ranking import CandidateRanker
from jira_assign.core.cache import DataCache
from jira_assign.core.errors import AssignmentCancelled, AssignmentRejected
from jira_assign.core.jira_client import JiraAPI
from jira_assign.core.models import CandidateProfile, IssueProfile
from jira_assign.core.service import IngestionService


class DummyAPI(JiraAPI):
    def __init__(self, roster, rejects=()):
        self.server = "https://example.atlassian.net"
        self.roster = list(roster)
        self.rejects = set(rejects)
        self.attempts = []

    def assignable_users(self, project_key):
        return [{"accountId": a, "displayName": n} for a, n in self.roster]

    def assign_issue(self, issue_key, account_id):
        self.attempts.append(account_id)
        if account_id in self.rejects:
            raise AssignmentRejected(issue_key, account_id, 400, "User cannot be assigned")


class DummyService(IngestionService):
    def __init__(self, api, cache):
        super().__init__(api, cache)
        self.refreshed = []

    def refresh_issue(self, issue_key):
        self.refreshed.append(issue_key)
        return True


ISSUE = IssueProfile(key="APP-5", labels=["db"])


def _setup(roster, rejects=()):
    cache = DataCache()
    for weight, (account_id, _) in enumerate(reversed(roster), start=1):
        cache.put_user_profile(CandidateProfile(account_id=account_id, labels={"db": weight}))
    api = DummyAPI(roster, rejects)
    service = DummyService(api, cache)
    ranker = CandidateRanker(service)
    return api, service, ranker


ROSTER = [("acc-a", "Ann"), ("acc-b", "Bob"), ("acc-c", "Cid")]


def test_first_candidate_accepted():
    api, service, ranker = _setup(ROSTER)
    ranked = ranker.rank(ISSUE, service.get_assignable_roster("APP"))
    outcome = attempt_assignment_with_fallback(api, ranker, ISSUE, "APP", ranked)
    assert outcome.success
    assert outcome.assignee.account_id == "acc-a"
    assert [c.account_id for c in outcome.remaining] == ["acc-b", "acc-c"]
    assert outcome.errors == []
    assert service.refreshed == ["APP-5"]


def test_rejection_falls_back_to_next_candidate():
    api, service, ranker = _setup(ROSTER, rejects={"acc-a"})
    ranked = ranker.rank(ISSUE, service.get_assignable_roster("APP"))
    outcome = attempt_assignment_with_fallback(api, ranker, ISSUE, "APP", ranked)
    assert outcome.success
    assert outcome.assignee.account_id == "acc-b"
    assert [c.account_id for c in outcome.remaining] == ["acc-c"]
    assert len(outcome.errors) == 1
    assert outcome.errors[0].account_id == "acc-a"
    assert "400" in outcome.errors[0].message


def test_all_rejected_fails_and_each_candidate_tried_once():
    api, service, ranker = _setup(ROSTER, rejects={"acc-a", "acc-b", "acc-c"})
    ranked = ranker.rank(ISSUE, service.get_assignable_roster("APP"))
    outcome = attempt_assignment_with_fallback(api, ranker, ISSUE, "APP", ranked)
    assert not outcome.success
    assert api.attempts == ["acc-a", "acc-b", "acc-c"]
    assert [e.account_id for e in outcome.errors] == ["acc-a", "acc-b", "acc-c"]
    assert service.refreshed == []


def test_baseline_declines_stay_excluded_after_rerank():
    api, service, ranker = _setup(ROSTER, rejects={"acc-b"})
    ranked = ranker.rank(ISSUE, service.get_assignable_roster("APP"), excluded={"acc-a"})
    outcome = attempt_assignment_with_fallback(api, ranker, ISSUE, "APP", ranked, {"acc-a"})
    assert outcome.success
    assert api.attempts == ["acc-b", "acc-c"]


def test_rerank_picks_up_roster_changes():
    api, service, ranker = _setup(ROSTER, rejects={"acc-a"})
    ranked = ranker.rank(ISSUE, service.get_assignable_roster("APP"))
    api.roster = [("acc-a", "Ann"), ("acc-d", "Dee")]
    outcome = attempt_assignment_with_fallback(api, ranker, ISSUE, "APP", ranked)
    assert outcome.assignee.account_id == "acc-d"
    assert outcome.remaining == []


def test_empty_queue_fails_without_attempts():
    api, _, ranker = _setup(ROSTER)
    outcome = attempt_assignment_with_fallback(api, ranker, ISSUE, "APP", [])
    assert not outcome.success
    assert api.attempts == []


def test_cancelled_before_write():
    api, service, ranker = _setup(ROSTER)
    ranked = ranker.rank(ISSUE, service.get_assignable_roster("APP"))
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(AssignmentCancelled):
        attempt_assignment_with_fallback(api, ranker, ISSUE, "APP", ranked, cancel_event=cancel)
    assert api.attempts == []
