"""In-memory key-value cache for ingested issues, profiles, workloads, and state."""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any

from .models import CandidateProfile, IssueProfile, WorkloadSnapshot

logger = logging.getLogger(__name__)

NAMESPACES = ("issues", "users", "summaries", "assignment_states", "workloads")


class DataCache:
    """Namespaced store shared by the ingestion service and the engine.

    Assignment states are stored in their serialized (dict) form so that the
    engine always goes through an explicit load/save round trip.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._data: dict[str, dict[str, Any]] = {name: {} for name in NAMESPACES}

    def _get(self, namespace: str, key: str):
        with self._lock:
            return self._data[namespace].get(key)

    def _set(self, namespace: str, key: str, value: Any) -> None:
        with self._lock:
            self._data[namespace][key] = value

    def _delete(self, namespace: str, key: str) -> None:
        with self._lock:
            self._data[namespace].pop(key, None)

    # ------------------ Issues & Profiles ------------------
    def put_issue(self, issue: IssueProfile) -> None:
        self._set("issues", issue.key, issue)
        logger.debug("Issue %s cached", issue.key)

    def get_issue(self, issue_key: str) -> IssueProfile | None:
        return self._get("issues", issue_key)

    def all_issues(self) -> dict[str, IssueProfile]:
        with self._lock:
            return dict(self._data["issues"])

    def put_user_profile(self, profile: CandidateProfile) -> None:
        self._set("users", profile.account_id, profile)

    def get_user_profile(self, account_id: str) -> CandidateProfile | None:
        return self._get("users", account_id)

    def all_user_profiles(self) -> dict[str, CandidateProfile]:
        with self._lock:
            return dict(self._data["users"])

    def put_workload(self, account_id: str, workload: WorkloadSnapshot) -> None:
        self._set("workloads", account_id, workload)

    def get_workload(self, account_id: str) -> WorkloadSnapshot | None:
        return self._get("workloads", account_id)

    def put_summary(self, issue_key: str, summary: str) -> None:
        self._set("summaries", issue_key, summary)

    def get_summary(self, issue_key: str) -> str | None:
        return self._get("summaries", issue_key)

    # ------------------ Assignment State ------------------
    def load_state(self, issue_key: str) -> dict[str, Any] | None:
        stored = self._get("assignment_states", issue_key)
        return copy.deepcopy(stored) if stored is not None else None

    def save_state(self, issue_key: str, state: dict[str, Any]) -> None:
        self._set("assignment_states", issue_key, copy.deepcopy(state))
        logger.debug("Assignment state for %s cached", issue_key)

    def delete_state(self, issue_key: str) -> None:
        self._delete("assignment_states", issue_key)
        logger.debug("Assignment state for %s deleted", issue_key)

    # ------------------ Maintenance ------------------
    def uncache_issue(self, issue_key: str) -> None:
        with self._lock:
            for namespace in ("issues", "summaries", "assignment_states"):
                self._data[namespace].pop(issue_key, None)
        logger.info("Issue %s removed from cache", issue_key)

    def reset(self) -> None:
        with self._lock:
            for namespace in NAMESPACES:
                self._data[namespace].clear()
        logger.info("Cache reset")
