"""Exceptions raised by the Jira client and the assignment engine."""

from __future__ import annotations


class IssueUnavailableError(RuntimeError):
    """The issue profile could not be resolved, even after a targeted refresh."""


class AssignmentRejected(RuntimeError):
    """Jira refused to set the assignee."""

    def __init__(self, issue_key: str, account_id: str | None, status_code: int | None, body: str = ""):
        self.issue_key = issue_key
        self.account_id = account_id
        self.status_code = status_code
        self.body = body
        super().__init__(f"failed to assign {issue_key} to {account_id}: {status_code} {body}".rstrip())


class AssignmentCancelled(RuntimeError):
    """The caller cancelled the recommendation between two external calls."""


def raise_if_cancelled(cancel_event, step: str) -> None:
    """Raise AssignmentCancelled when ``cancel_event`` (a threading.Event) is set."""
    if cancel_event is not None and cancel_event.is_set():
        raise AssignmentCancelled(f"cancelled before {step}")
