import gc
from datetime import UTC, datetime

from jira_assign.assignment.state import AssignmentStateStore
from jira_assign.assignment.types import AssignmentState
from jira_assign.core.cache import DataCache


def test_load_defaults_when_nothing_persisted():
    store = AssignmentStateStore(DataCache())
    state = store.load("OPS-1")
    assert state == AssignmentState()
    assert store.get("OPS-1") is None


def test_register_decline_adds_and_resets_current():
    state = AssignmentState(current_account_id="acc-a", declined_account_ids=("acc-z",))
    updated = AssignmentStateStore.register_decline(state, "acc-a")
    assert updated.current_account_id is None
    assert updated.declined_account_ids == ("acc-z", "acc-a")
    assert updated.last_updated is not None
    assert state.declined_account_ids == ("acc-z",)


def test_register_decline_is_idempotent():
    state = AssignmentStateStore.register_decline(AssignmentState(), "acc-a")
    again = AssignmentStateStore.register_decline(state, "acc-a")
    assert again.declined_account_ids == ("acc-a",)


def test_persist_and_load_round_trip():
    cache = DataCache()
    store = AssignmentStateStore(cache)
    when = datetime(2025, 3, 4, 5, 6, 7, tzinfo=UTC)
    store.persist("OPS-1", AssignmentState("acc-b", ("acc-a", "acc-c"), when))
    assert cache.load_state("OPS-1") == {
        "current_account_id": "acc-b",
        "declined_account_ids": ["acc-a", "acc-c"],
        "last_updated": "2025-03-04T05:06:07+00:00",
    }
    loaded = store.load("OPS-1")
    assert loaded.current_account_id == "acc-b"
    assert loaded.declined_account_ids == ("acc-a", "acc-c")
    assert loaded.last_updated == when


def test_persist_stamps_missing_timestamp():
    store = AssignmentStateStore(DataCache())
    saved = store.persist("OPS-1", AssignmentState("acc-b"))
    assert saved.last_updated is not None
    assert store.load("OPS-1").last_updated is not None


def test_clear_removes_state():
    store = AssignmentStateStore(DataCache())
    store.persist("OPS-1", AssignmentState("acc-b", ("acc-a",)))
    store.clear("OPS-1")
    assert store.get("OPS-1") is None


def test_from_dict_tolerates_malformed_data():
    state = AssignmentState.from_dict(
        {"current_account_id": 5, "declined_account_ids": ["a", "a", None, "", "b"], "last_updated": "nope"}
    )
    assert state.current_account_id is None
    assert state.declined_account_ids == ("a", "b")
    assert state.last_updated is None
    assert AssignmentState.from_dict({"declined_account_ids": "acc-a"}).declined_account_ids == ()
    assert AssignmentState.from_dict(None) == AssignmentState()


def test_lock_is_shared_per_issue_key():
    store = AssignmentStateStore(DataCache())
    assert store.lock("OPS-1") is store.lock("OPS-1")
    assert store.lock("OPS-1") is not store.lock("OPS-2")


def test_locks_are_released_when_unused():
    store = AssignmentStateStore(DataCache())
    lock = store.lock("OPS-1")
    with lock:
        assert store.lock("OPS-1") is lock
    del lock
    gc.collect()
    assert "OPS-1" not in store._locks
    assert len(store._locks) == 0
