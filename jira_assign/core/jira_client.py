"""Jira API client wrapper (REST v3 reads, assignee writes, comments)."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import Any

import requests
from jira import JIRA, JIRAError

from .config import ASSIGNABLE_PAGE_SIZE, ISSUE_FETCH_FIELDS
from .errors import AssignmentRejected

logger = logging.getLogger(__name__)


def adf_paragraph(message: str) -> dict[str, Any]:
    """Wrap plain text in the Atlassian Document Format expected by REST v3."""
    return {
        "type": "doc",
        "version": 1,
        "content": [{"type": "paragraph", "content": [{"type": "text", "text": message or ""}]}],
    }


class JiraAPI:
    def __init__(self, server: str, email: str, token: str):
        self.server = server.rstrip("/")
        self.client = JIRA(
            basic_auth=(email, token), options={"server": self.server, "rest_api_version": "3"}
        )
        # Simple in-memory cache: {(hash): (timestamp, data)}
        self._cache: dict[str, tuple[float, list]] = {}
        self._cache_ttl = 300.0  # seconds

    def clear_cache(self) -> None:
        """Reset the in-memory search cache."""
        cache = getattr(self, "_cache", None)
        if isinstance(cache, dict):
            cache.clear()

    def _session(self):
        session = getattr(self.client, "_session", None)
        if session is None:
            raise RuntimeError("JIRA session unavailable")
        return session

    def _cache_key(self, jql: str, fields, page_size: int) -> str:
        payload = {"jql": jql, "fields": fields, "page_size": page_size}
        return hashlib.sha256(json.dumps(payload, sort_keys=True).encode()).hexdigest()

    # ------------------ Reads ------------------
    def search_enhanced(
        self,
        jql: str,
        fields: list[str] | None = None,
        page_size: int = 1000,
    ) -> list[dict[str, Any]]:
        session = self._session()
        url = f"{self.server}/rest/api/3/search/jql"
        key = self._cache_key(jql, fields, page_size)
        now = time.time()
        cached = self._cache.get(key)
        if cached and (now - cached[0]) < self._cache_ttl:
            return cached[1]
        params = {"jql": jql, "maxResults": page_size}
        if fields:
            params["fields"] = ",".join(fields)
        out: list[dict[str, Any]] = []
        token = None
        while True:
            qp = dict(params)
            if token:
                qp["nextPageToken"] = token
            resp = session.get(url, params=qp)
            if resp.status_code >= 400:
                raise RuntimeError(f"Enhanced search failed {resp.status_code}: {resp.text[:200]}")
            data = resp.json()
            out.extend(data.get("issues", []))
            token = data.get("nextPageToken")
            if not token or data.get("isLast") is True:
                break
        self._cache[key] = (now, out)
        return out

    def fetch_issue_raw(self, issue_key: str) -> dict[str, Any]:
        try:
            issue = self.client.issue(issue_key, fields=",".join(ISSUE_FETCH_FIELDS), expand="changelog")
        except JIRAError as exc:  # pragma: no cover - network error path
            raise RuntimeError(f"Failed to fetch issue {issue_key}: {exc}") from exc
        if hasattr(issue, "raw"):
            return issue.raw
        if isinstance(issue, dict):
            return issue
        raise RuntimeError(f"Unexpected issue payload type for {issue_key}: {type(issue)!r}")

    def fetch_worklogs(self, issue_key: str) -> list[dict[str, Any]]:
        try:
            worklogs = self.client.worklogs(issue_key)
        except JIRAError as exc:  # pragma: no cover - network error path
            raise RuntimeError(f"Failed to fetch worklogs for {issue_key}: {exc}") from exc
        return [getattr(w, "raw", w) for w in worklogs]

    def fetch_comments(self, issue_key: str) -> list[dict[str, Any]]:
        try:
            comments = self.client.comments(issue_key)
        except JIRAError as exc:  # pragma: no cover - network error path
            raise RuntimeError(f"Failed to fetch comments for {issue_key}: {exc}") from exc
        return [getattr(c, "raw", c) for c in comments]

    def assignable_users(self, project_key: str) -> list[dict[str, Any]]:
        """Users who may be assigned issues in ``project_key``."""
        try:
            resp = self._session().get(
                f"{self.server}/rest/api/3/user/assignable/search",
                params={"project": project_key, "maxResults": ASSIGNABLE_PAGE_SIZE},
            )
        except requests.exceptions.RequestException as exc:
            raise RuntimeError(f"Assignable user search failed: {exc}") from exc
        if resp.status_code >= 400:
            raise RuntimeError(f"Assignable user search failed {resp.status_code}: {resp.text[:200]}")
        data = resp.json()
        return data if isinstance(data, list) else []

    # ------------------ Writes ------------------
    def assign_issue(self, issue_key: str, account_id: str | None) -> None:
        """Set (or with ``None`` clear) the assignee; raises AssignmentRejected."""
        url = f"{self.server}/rest/api/3/issue/{issue_key}/assignee"
        try:
            resp = self._session().put(url, data=json.dumps({"accountId": account_id}))
        except JIRAError as exc:
            raise AssignmentRejected(issue_key, account_id, exc.status_code, exc.text or "") from exc
        except requests.exceptions.RequestException as exc:
            raise AssignmentRejected(issue_key, account_id, None, str(exc)) from exc
        if resp.status_code >= 400:
            raise AssignmentRejected(issue_key, account_id, resp.status_code, resp.text[:200])
        logger.debug("Assignee of %s set to %s", issue_key, account_id)

    def add_comment(self, issue_key: str, message: str) -> dict[str, Any]:
        url = f"{self.server}/rest/api/3/issue/{issue_key}/comment"
        try:
            resp = self._session().post(url, data=json.dumps({"body": adf_paragraph(message)}))
        except JIRAError as exc:
            raise RuntimeError(f"Failed to comment on {issue_key}: {exc}") from exc
        if resp.status_code >= 400:
            raise RuntimeError(f"Comment on {issue_key} failed {resp.status_code}: {resp.text[:200]}")
        return resp.json()
