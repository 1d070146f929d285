"""Tests for the action journal."""

import json
from unittest.mock import patch

from plan_orchestrator.orchestrator import (
    ActionJournal,
    GeneratePlanFailure,
    GeneratePlanStart,
    GeneratePlanStream,
    PlanStore,
    load_actions,
    load_journal,
    replay,
    state_to_dict,
)


def _stream(store, count):
    store.dispatch(GeneratePlanStart())
    for i in range(count):
        store.dispatch(GeneratePlanStream(explanations_chunk=f"chunk {i} "))


def test_stream_chunks_are_batched(tmp_path):
    store = PlanStore()
    journal = ActionJournal(tmp_path / "plan.json", flush_every=50)
    journal.attach(store)

    with patch.object(ActionJournal, "save", autospec=True, side_effect=ActionJournal.save) as save:
        _stream(store, 500)
        store.dispatch(GeneratePlanFailure(error="provider went away"))

    # START, ten full batches of stream chunks and the failure
    assert save.call_count == 12
    assert len(journal.data["actions"]) == 502


def test_status_change_is_written_immediately(tmp_path):
    store = PlanStore()
    journal = ActionJournal(tmp_path / "plan.json")
    journal.attach(store)

    _stream(store, 3)
    on_disk = load_journal(journal.path)
    assert on_disk["status"] == "generating"
    assert [entry["type"] for entry in on_disk["actions"]] == ["GENERATE_PLAN_START"]

    store.dispatch(GeneratePlanFailure(error="boom"))
    on_disk = load_journal(journal.path)
    assert on_disk["status"] == "failed"
    assert len(on_disk["actions"]) == 5


def test_finalize_writes_unflushed_chunks(tmp_path):
    store = PlanStore()
    journal = ActionJournal(tmp_path / "plan.json")
    journal.attach(store)
    _stream(store, 7)

    journal.finalize()

    on_disk = load_journal(journal.path)
    assert on_disk["end_time"] is not None
    assert len(on_disk["actions"]) == 8
    assert on_disk["final_state"] == json.loads(json.dumps(state_to_dict(store.state)))
    assert replay(load_actions(journal.path)) == store.state


def test_detached_after_finalize(tmp_path):
    store = PlanStore()
    journal = ActionJournal(tmp_path / "plan.json")
    journal.attach(store)
    journal.finalize()

    store.dispatch(GeneratePlanStart())
    assert journal.data["actions"] == []
