import math

from jira_assign.assignment import ranking

from jira_assign.assignment.ranking import CandidateRanker, sort_candidates
from jira_assign.assignment.types import CandidateScore
from jira_assign.core.cache import DataCache
from jira_assign.core.models import CandidateProfile, IssueProfile, RosterEntry, WorkloadSnapshot
from jira_assign.core.service import IngestionService


def _score(name, raw, penalty, account_id=None):
    return CandidateScore(account_id=account_id or name.lower(), display_name=name, raw_score=raw, workload_penalty=penalty)


def _ranker():
    cache = DataCache()
    cache.put_user_profile(CandidateProfile(account_id="acc-a", labels={"api": 3}))
    cache.put_user_profile(CandidateProfile(account_id="acc-b", labels={"api": 1}))
    cache.put_workload("acc-a", WorkloadSnapshot(total_open_issues=1))
    return CandidateRanker(IngestionService(None, cache))


ROSTER = [
    RosterEntry("acc-a", "Ann"),
    RosterEntry("acc-b", "Bob"),
    RosterEntry("acc-c", "Cid"),
]


def test_ties_on_final_score_prefer_higher_raw_score():
    a = _score("A", 22, 2)
    b = _score("B", 25, 5)
    assert [c.display_name for c in sort_candidates([a, b])] == ["B", "A"]


def test_remaining_ties_sort_by_display_name_case_sensitive():
    ranked = sort_candidates([_score("bob", 1, 0), _score("Bob", 1, 0), _score("Alice", 1, 0)])
    assert [c.display_name for c in ranked] == ["Alice", "Bob", "bob"]


def test_sort_is_descending_by_final_score():
    ranked = sort_candidates([_score("Low", 3, 0), _score("High", 10, 1), _score("Mid", 6, 0)])
    assert [c.display_name for c in ranked] == ["High", "Mid", "Low"]


def test_rank_scores_every_candidate_and_orders_them():
    issue = IssueProfile(key="SRV-1", labels=["api"])
    ranked = _ranker().rank(issue, ROSTER)
    assert [c.account_id for c in ranked] == ["acc-a", "acc-b", "acc-c"]
    assert ranked[0].raw_score == 3.2 * math.log1p(3)
    assert ranked[0].workload_penalty == 0.85
    assert ranked[2].raw_score == 0
    assert ranked[2].display_name == "Cid"


def test_rank_skips_excluded_candidates():
    issue = IssueProfile(key="SRV-1", labels=["api"])
    ranked = _ranker().rank(issue, ROSTER, excluded={"acc-a"})
    assert [c.account_id for c in ranked] == ["acc-b", "acc-c"]


def test_rank_empty_when_everyone_excluded_or_no_roster():
    issue = IssueProfile(key="SRV-1")
    ranker = _ranker()
    assert ranker.rank(issue, []) == []
    assert ranker.rank(issue, ROSTER, excluded=("acc-a", "acc-b", "acc-c")) == []


def test_rank_passes_criteria_through():
    issue = IssueProfile(key="SRV-1", labels=["api"])
    ranked = _ranker().rank(issue, ROSTER, criteria={"labels": False, "workloadOpenIssues": False})
    assert all(c.final_score == 0 for c in ranked)
    assert [c.display_name for c in ranked] == ["Ann", "Bob", "Cid"]


def test_name_tie_break_uses_locale_collation(monkeypatch):
    # Reverse collation: "Zed" sorts before "Amy"
    monkeypatch.setattr(ranking.locale, "strxfrm", lambda name: "".join(chr(0x10FFFF - ord(c)) for c in name))
    ranked = sort_candidates([_score("Amy", 1, 0), _score("Zed", 1, 0)])
    assert [c.display_name for c in ranked] == ["Zed", "Amy"]
