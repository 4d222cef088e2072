"""Tests for the in-memory Firestore stand-in."""

import pytest

from candle.services.firebase import field_of, run_transaction, snapshot_data
from candle.services.local_store import LocalStore
from candle.utils.exceptions import FirestoreError


@pytest.fixture
def scores(store):
    collection = store.collection("scores")
    for doc_id, user, score in [("a", "alice", 10), ("b", "bob", 30), ("c", "alice", 20), ("d", "bob", None)]:
        data = {"userId": user}
        if score is not None:
            data["score"] = score
        collection.document(doc_id).set(data)
    return collection


def test_set_and_get(store):
    store.collection("users").document("u1").set({"name": "Alice"})

    snapshot = store.collection("users").document("u1").get()
    assert snapshot.exists
    assert snapshot.to_dict() == {"name": "Alice", "id": "u1"}
    assert not store.collection("users").document("u2").get().exists


def test_snapshot_helpers(store):
    store.collection("users").document("u1").set({"name": "Alice"})
    snapshot = store.collection("users").document("u1").get()
    missing = store.collection("users").document("nope").get()

    assert field_of(snapshot, "name") == "Alice"
    assert field_of(snapshot, "age", 0) == 0
    assert field_of(missing, "name") is None
    assert snapshot_data(snapshot)["id"] == "u1"
    assert snapshot_data(missing) is None


def test_returned_data_is_a_copy(store):
    ref = store.collection("users").document("u1")
    ref.set({"tags": ["a"]})
    ref.get().to_dict()["tags"].append("b")
    assert ref.get().to_dict()["tags"] == ["a"]


def test_where_and_order(scores):
    alice = scores.where("userId", "==", "alice").order_by("score", direction="DESCENDING").get()
    assert [doc.id for doc in alice] == ["c", "a"]

    assert [doc.id for doc in scores.where("score", ">=", 20).get()] == ["b", "c"]
    assert [doc.id for doc in scores.where("userId", "in", ["bob"]).get()] == ["b", "d"]


def test_missing_values_sort_last(scores):
    ordered = scores.order_by("score", direction="DESCENDING").get()
    assert [doc.id for doc in ordered] == ["b", "c", "a", "d"]

    ascending = scores.order_by("score").get()
    assert [doc.id for doc in ascending] == ["a", "c", "b", "d"]


def test_limit_and_start_after(scores):
    ordered = scores.order_by("score")
    first = ordered.limit(2).get()
    assert [doc.id for doc in first] == ["a", "c"]
    assert [doc.id for doc in ordered.start_after(first[-1]).get()] == ["b", "d"]


def test_merge_set_and_update(store):
    ref = store.collection("users").document("u1")
    ref.set({"name": "Alice", "age": 30})
    ref.set({"age": 31}, merge=True)
    ref.update({"city": "Leeds"})

    assert ref.get().to_dict() == {"name": "Alice", "age": 31, "city": "Leeds", "id": "u1"}


def test_update_missing_document(store):
    with pytest.raises(FirestoreError) as excinfo:
        store.collection("users").document("ghost").update({"name": "x"})
    assert excinfo.value.code == "not-found"


def test_batch_applies_on_commit(store):
    users = store.collection("users")
    users.document("u1").set({"name": "Alice"})

    batch = store.batch()
    batch.update(users.document("u1"), {"name": "Alicia"})
    batch.set(users.document("u2"), {"name": "Bob"})
    batch.delete(users.document("u1"))
    assert users.document("u1").get().to_dict()["name"] == "Alice"

    batch.commit()
    assert not users.document("u1").get().exists
    assert users.document("u2").get().exists


def test_transaction_commits_writes(store):
    ref = store.collection("counters").document("c")
    ref.set({"value": 1})

    def increment(transaction):
        snapshot = ref.get(transaction=transaction)
        transaction.update(ref, {"value": field_of(snapshot, "value") + 1})
        return "done"

    assert run_transaction(store, increment) == "done"
    assert ref.get().to_dict()["value"] == 2


def test_failed_transaction_writes_nothing(store):
    ref = store.collection("counters").document("c")
    ref.set({"value": 1})

    def explode(transaction):
        transaction.update(ref, {"value": 99})
        raise RuntimeError("abort")

    with pytest.raises(RuntimeError):
        run_transaction(store, explode)
    assert ref.get().to_dict()["value"] == 1


def test_persistence_round_trip(tmp_path):
    LocalStore(str(tmp_path)).collection("users").document("u1").set({"name": "Alice"})

    reloaded = LocalStore(str(tmp_path))

    assert reloaded.collection("users").document("u1").get().to_dict()["name"] == "Alice"
    assert (tmp_path / "users.json").exists()


def test_reset_clears_everything(store):
    store.collection("users").document("u1").set({"name": "Alice"})
    store.reset()
    assert store.collection("users").get() == []
