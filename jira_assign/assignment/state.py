"""Persisted per-issue assignment state (current pick and decline history)."""

from __future__ import annotations

import dataclasses
import logging
import threading
import weakref
from datetime import datetime

import pytz

from jira_assign.core.cache import DataCache

from .types import AssignmentState

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(pytz.UTC)


class AssignmentStateStore:
    """Load/merge/save/clear of ``AssignmentState`` records, keyed by issue.

    Writers for the same issue key are serialized through :meth:`lock`; the
    engine holds it across a whole load → mutate → persist sequence.
    """

    def __init__(self, cache: DataCache):
        self.cache = cache
        # Entries disappear once no caller holds the lock
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._registry_lock = threading.Lock()

    def lock(self, issue_key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(issue_key)
            if lock is None:
                lock = threading.Lock()
                self._locks[issue_key] = lock
            return lock

    def get(self, issue_key: str) -> AssignmentState | None:
        stored = self.cache.load_state(issue_key)
        if stored is None:
            return None
        return AssignmentState.from_dict(stored)

    def load(self, issue_key: str) -> AssignmentState:
        return self.get(issue_key) or AssignmentState()

    @staticmethod
    def register_decline(state: AssignmentState, account_id: str | None) -> AssignmentState:
        """Return a copy of ``state`` with ``account_id`` added to the declines.

        The current pick is reset; prior declines are always kept.
        """
        declined = state.declined_account_ids
        if account_id and account_id not in declined:
            declined = (*declined, account_id)
        return dataclasses.replace(
            state, current_account_id=None, declined_account_ids=declined, last_updated=utc_now()
        )

    def persist(self, issue_key: str, state: AssignmentState) -> AssignmentState:
        if state.last_updated is None:
            state = dataclasses.replace(state, last_updated=utc_now())
        self.cache.save_state(issue_key, state.to_dict())
        logger.debug("Persisted assignment state for %s: %s", issue_key, state.current_account_id)
        return state

    def clear(self, issue_key: str) -> None:
        self.cache.delete_state(issue_key)
        logger.info("Cleared assignment state for %s", issue_key)
