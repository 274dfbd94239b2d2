import pytest

from jira_assign.core.mappers import (
    aggregate_comments,
    aggregate_worklogs,
    extract_historical_assignees,
    fold_issue_into_profile,
    map_issue_profile,
    map_roster,
    metadata_key,
)
from jira_assign.core.models import CandidateProfile, IssueProfile


def _raw_issue():
    return {
        "key": "OPS-3",
        "fields": {
            "summary": "Rotate certificates",
            "created": "2024-09-01T10:00:00.000+0000",
            "updated": "2024-09-02T10:00:00.000+0000",
            "assignee": {"accountId": "acc-a", "displayName": "Ann"},
            "status": {"name": "In Progress"},
            "issuetype": {"name": "Task"},
            "labels": ["security", "infra"],
            "components": [{"id": "1", "name": "Gateway"}],
            "parent": {"key": "OPS-1", "fields": {"issuetype": {"name": "Epic"}}},
        },
        "changelog": {
            "histories": [
                {
                    "created": "2024-09-01T12:00:00.000+0000",
                    "items": [{"field": "assignee", "to": "acc-b", "toString": "Bob"}],
                },
                {"created": "2024-09-01T13:00:00.000+0000", "items": [{"field": "status", "to": "3"}]},
            ]
        },
    }


def test_metadata_key():
    assert metadata_key("UI") == "UI"
    assert metadata_key({"name": "Gateway"}) == "Gateway"
    assert metadata_key({"key": "OPS-1"}) == "OPS-1"
    assert metadata_key(7) == "7"
    assert metadata_key(None) is None


def test_map_issue_profile():
    worklogs = [
        {"author": {"accountId": "acc-c", "displayName": "Cid"}, "timeSpentSeconds": 3600},
        {"author": {"accountId": "acc-c", "displayName": "Cid"}, "timeSpentSeconds": "1800"},
        {"author": {}, "timeSpentSeconds": 60},
    ]
    comments = [{"author": {"accountId": "acc-b"}}, {"author": {"accountId": "acc-b"}}, {"body": "anon"}]
    issue = map_issue_profile(_raw_issue(), worklogs, comments)
    assert issue.key == "OPS-3"
    assert issue.issue_type == "Task"
    assert issue.components == ["Gateway"]
    assert issue.epic == "OPS-1"
    assert issue.parent == "OPS-1"
    assert issue.assignee_account_id == "acc-a"
    assert [h.account_id for h in issue.historical_assignees] == ["acc-b"]
    assert issue.historical_assignees[0].occurred_at.year == 2024
    (worklog,) = issue.worklog_contributors
    assert worklog.time_spent_seconds == 5400
    assert worklog.log_count == 2
    (commenter,) = issue.comment_contributors
    assert commenter.comment_count == 2
    assert commenter.display_name == "Unknown"


def test_parent_that_is_not_an_epic():
    raw = {"key": "OPS-4", "fields": {"parent": {"key": "OPS-3", "fields": {"issuetype": {"name": "Story"}}}}}
    issue = map_issue_profile(raw)
    assert issue.parent == "OPS-3"
    assert issue.epic is None


def test_changelog_shapes():
    assert extract_historical_assignees(None) == []
    history = [{"items": [{"field": "assignee", "to": None}]}]
    assert extract_historical_assignees(history)[0].account_id is None


def test_aggregate_helpers_ignore_missing_authors():
    assert aggregate_worklogs(None) == []
    assert aggregate_comments([{"author": "nobody"}]) == []


def test_map_roster_skips_entries_without_account():
    roster = map_roster([{"accountId": "acc-a", "displayName": "Ann", "active": False}, {"displayName": "Ghost"}, "x"])
    assert len(roster) == 1
    assert roster[0].account_id == "acc-a"
    assert roster[0].active is False


def test_fold_issue_counts_metadata_once_per_issue():
    issue = IssueProfile(key="OPS-3", labels=["security"], components=["Gateway"], issue_type="Task", epic="OPS-1")
    profile = CandidateProfile(account_id="acc-a")
    assert fold_issue_into_profile(profile, issue, "assigned")
    assert fold_issue_into_profile(profile, issue, "comments", 2)
    assert not fold_issue_into_profile(profile, issue, "comments", 2)
    assert profile.labels == {"security": 1}
    assert profile.issue_types == {"Task": 1}
    assert profile.epics == {"OPS-1": 1}
    assert profile.parents == {}
    assert profile.assigned_issues == ["OPS-3"]
    assert profile.commented_issues == ["OPS-3"]
    assert profile.total_comments == 2


def test_fold_rejects_unknown_interaction():
    with pytest.raises(ValueError):
        fold_issue_into_profile(CandidateProfile(account_id="acc-a"), IssueProfile(key="X-1"), "watched")
