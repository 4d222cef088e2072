"""Tests for pairing, partnership lookup, and unpairing."""

import pytest

from candle.models.partnership import PartnershipStatus
from candle.utils.exceptions import FirestoreError, ValidationError

from tests.conftest import NOW


def _status(store, partnership_id):
    return store.collection("partnerships").document(partnership_id).get().to_dict()["status"]


def test_accept_activates_and_links_users(partnerships, store, make_user):
    make_user("alice")
    make_user("bob")
    invite = partnerships.create("alice", NOW)

    joined = partnerships.accept_invite(invite.invite_code, "bob", NOW)

    assert joined.status == PartnershipStatus.ACTIVE.value
    assert joined.user_id2 == "bob"
    assert store.collection("users").document("bob").get().to_dict()["partnerId"] == "alice"
    assert store.collection("users").document("alice").get().to_dict()["partnerId"] == "bob"


def test_accept_own_invite_rejected(partnerships):
    invite = partnerships.create("alice", NOW)
    with pytest.raises(ValidationError):
        partnerships.accept_invite(invite.invite_code, "alice", NOW)


def test_accept_drops_joiners_pending_invite(partnerships, store):
    alice_invite = partnerships.create("alice", NOW)
    bob_invite = partnerships.create("bob", NOW)

    partnerships.accept_invite(alice_invite.invite_code, "bob", NOW)

    assert not store.collection("partnerships").document(bob_invite.id).get().exists
    assert partnerships.get_for_user("bob").id == alice_invite.id
    assert [p.id for p in partnerships.list_for_user("bob")] == [alice_invite.id]


def test_active_user_cannot_join_another(partnerships, make_partnership):
    make_partnership()
    invite = partnerships.create("carol", NOW)

    with pytest.raises(FirestoreError) as excinfo:
        partnerships.accept_invite(invite.invite_code, "bob", NOW)

    assert excinfo.value.status_code == 409
    assert _status(partnerships.db, invite.id) == PartnershipStatus.PENDING.value


def test_get_for_user_prefers_active_over_pending_and_paused(partnerships, make_partnership):
    make_partnership("active", "alice", "bob")
    partnerships.update("active", {"status": PartnershipStatus.PAUSED.value}, NOW)
    pending = partnerships.create("alice", NOW)

    assert partnerships.get_for_user("alice").id == pending.id

    make_partnership("current", "carol", "alice")
    assert partnerships.get_for_user("alice").id == "current"


def test_unpair_pauses_and_clears_partner_ids(partnerships, store, make_partnership, make_user):
    make_user("alice", partnerId="bob")
    make_user("bob", partnerId="alice")
    make_partnership(typing_users=["alice"])

    paused = partnerships.unpair("p1", NOW)

    assert paused.status == PartnershipStatus.PAUSED.value
    assert paused.typing_users == []
    for user_id in ("alice", "bob"):
        assert store.collection("users").document(user_id).get().to_dict()["partnerId"] is None


def test_unpaired_user_can_invite_again(partnerships, make_partnership):
    make_partnership()
    partnerships.unpair("p1", NOW)

    invite = partnerships.create("alice", NOW)

    assert partnerships.get_for_user("alice").id == invite.id


def test_unpair_unknown_partnership(partnerships):
    with pytest.raises(FirestoreError) as excinfo:
        partnerships.unpair("missing", NOW)
    assert excinfo.value.status_code == 404
