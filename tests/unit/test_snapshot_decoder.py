from __future__ import annotations

import copy

from chat_client.services.snapshot_decoder import decode_snapshot


def test_missing_snapshot_decodes_to_empty_list():
    assert decode_snapshot(None) == []
    assert decode_snapshot({}) == []


def test_entries_carry_their_key_as_id():
    entries = decode_snapshot({"k1": {"text": "hi", "createdAt": 5}})
    assert entries == [{"text": "hi", "createdAt": 5, "id": "k1"}]


def test_key_wins_over_embedded_id():
    entries = decode_snapshot({"real": {"id": "stale", "createdAt": 1}})
    assert entries[0]["id"] == "real"


def test_ordered_by_created_at_then_key():
    snapshot = {
        "b": {"createdAt": 2},
        "a": {"createdAt": 2},
        "c": {"createdAt": 1},
    }
    assert [e["id"] for e in decode_snapshot(snapshot)] == ["c", "a", "b"]


def test_missing_or_garbage_created_at_sorts_first():
    snapshot = {
        "late": {"createdAt": 10},
        "none": {},
        "text": {"createdAt": "yesterday"},
    }
    assert [e["id"] for e in decode_snapshot(snapshot)] == ["none", "text", "late"]


def test_non_record_payloads_are_dropped():
    snapshot = {"ok": {"createdAt": 1}, "scalar": 42, "list": [1, 2]}
    assert [e["id"] for e in decode_snapshot(snapshot)] == ["ok"]


def test_input_is_not_mutated_and_output_is_stable():
    snapshot = {"x": {"createdAt": 3}, "y": {"createdAt": 1}}
    before = copy.deepcopy(snapshot)
    first = decode_snapshot(snapshot)
    second = decode_snapshot(snapshot)
    assert snapshot == before
    assert first == second
    assert "id" not in snapshot["x"]
