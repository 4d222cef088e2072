"""Tests for referral codes, completion, and rewards."""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from candle.services.partnerships import PartnershipService
from candle.services.referrals import (
    CODE_ALPHABET,
    CODE_LENGTH,
    REWARD_MESSAGE,
    ReferralService,
    generate_referral_code,
    normalize_referral_code,
)
from candle.services.users import UserService
from candle.utils.exceptions import FirestoreError, ValidationError

from tests.conftest import NOW


class RecordingNotifications:
    def __init__(self):
        self.sent = []

    def send_referral_notification(self, user_id, body):
        self.sent.append((user_id, body))
        return True


@pytest.fixture
def notifications():
    return RecordingNotifications()


@pytest.fixture
def referrals(store, notifications):
    return ReferralService(store, notifications)


@pytest.fixture
def alice_code(referrals, make_user):
    make_user("alice", "Alice")
    return referrals.create("alice", NOW).referral_code


def _free_months(store, user_id):
    rewards = store.collection("users").document(user_id).get().to_dict().get("referralRewards") or {}
    return rewards.get("freeMonths", 0)


def test_code_shape():
    code = generate_referral_code("alice123")
    assert len(code) == CODE_LENGTH
    assert code.startswith("ALIC")
    assert all(c in CODE_ALPHABET for c in code[4:])


def test_normalize():
    assert normalize_referral_code("alic-ab12") == "ALICAB12"


def test_create_records_code_on_user(referrals, store, alice_code):
    assert store.collection("users").document("alice").get().to_dict()["referralCode"] == alice_code


def test_create_reuses_existing_code(referrals, alice_code):
    first = referrals.get_by_code(alice_code)
    again = referrals.create("alice", NOW)
    assert again.referral_code == alice_code
    assert again.id == first.id


def test_create_for_unknown_user(referrals):
    with pytest.raises(FirestoreError) as excinfo:
        referrals.create("ghost", NOW)
    assert excinfo.value.code == "not-found"


def test_lookup_is_case_and_dash_insensitive(referrals, alice_code):
    messy = f"{alice_code[:4].lower()}-{alice_code[4:].lower()}"
    assert referrals.get_by_code(messy).referrer_id == "alice"


def test_lookup_falls_back_to_user_code(referrals, make_user):
    make_user("erin", referralCode="ERINABCD")
    referral = referrals.get_by_code("ERINABCD", NOW)
    assert referral.referrer_id == "erin"
    assert referral.status == "pending"


def test_validate(referrals, alice_code):
    assert referrals.validate(alice_code, NOW)
    assert not referrals.validate("SHORT", NOW)
    assert not referrals.validate("ZZZZ2345", NOW)
    assert not referrals.validate(alice_code, NOW + timedelta(days=31))


def test_completion_rewards_referrer(referrals, store, notifications, alice_code):
    usage = referrals.mark_completed(alice_code, "frank", NOW)

    assert usage.referred_user_id == "frank"
    assert usage.status == "completed"
    assert usage.reward_granted
    assert usage.reward_type == "free_month"
    assert _free_months(store, "alice") == 1
    assert notifications.sent == [("alice", REWARD_MESSAGE)]


def test_same_user_cannot_complete_twice(referrals, store, alice_code):
    referrals.mark_completed(alice_code, "frank", NOW)
    assert referrals.mark_completed(alice_code, "frank", NOW) is None
    assert _free_months(store, "alice") == 1


def test_code_is_reusable_by_different_users(referrals, store, alice_code):
    referrals.mark_completed(alice_code, "frank", NOW)
    referrals.mark_completed(alice_code, "gina", NOW + timedelta(minutes=1))

    assert _free_months(store, "alice") == 2
    assert [r.referred_user_id for r in referrals.get_user_referrals("alice")] == ["gina", "frank"]

    stats = referrals.get_stats("alice")
    assert stats.total_referrals == 2
    assert stats.completed_referrals == 2
    assert stats.pending_referrals == 0
    assert stats.total_rewards_earned == 2
    assert stats.current_reward == "2 free months"


def test_self_referral_rejected(referrals, alice_code):
    with pytest.raises(ValidationError):
        referrals.mark_completed(alice_code, "alice", NOW)


def test_expired_code_rejected(referrals, alice_code):
    with pytest.raises(FirestoreError) as excinfo:
        referrals.mark_completed(alice_code, "frank", NOW + timedelta(days=31))
    assert excinfo.value.code == "failed-precondition"


def test_unknown_code_rejected(referrals):
    with pytest.raises(FirestoreError) as excinfo:
        referrals.mark_completed("NOPE2345", "frank", NOW)
    assert excinfo.value.code == "not-found"


def test_grant_reward_is_idempotent(referrals, store, notifications, alice_code):
    usage = referrals.mark_completed(alice_code, "frank", NOW)
    referrals.grant_reward(usage.id)
    assert _free_months(store, "alice") == 1
    assert len(notifications.sent) == 1


def test_concurrent_grants_reward_once(referrals, store, notifications, alice_code):
    usage = referrals.mark_completed(alice_code, "frank", NOW)
    store.collection("referrals").document(usage.id).update({"rewardGranted": False})

    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(lambda _: referrals.grant_reward(usage.id), range(8)))

    assert _free_months(store, "alice") == 2
    assert len(notifications.sent) == 2


def test_grant_reward_for_missing_referrer(referrals, store, alice_code):
    usage = referrals.mark_completed(alice_code, "frank", NOW)
    store.collection("referrals").document(usage.id).update({"rewardGranted": False})
    store.collection("users").document("alice").delete()

    with pytest.raises(FirestoreError) as excinfo:
        referrals.grant_reward(usage.id)

    assert excinfo.value.code == "not-found"
    assert store.collection("referrals").document(usage.id).get().to_dict()["rewardGranted"] is False


def test_grant_reward_needs_completed_referral(referrals, alice_code):
    ownership = referrals.get_by_code(alice_code)
    with pytest.raises(FirestoreError) as excinfo:
        referrals.grant_reward(ownership.id)
    assert excinfo.value.code == "failed-precondition"


def test_apply_reward(referrals, store, alice_code):
    referrals.mark_completed(alice_code, "frank", NOW)

    assert referrals.apply_reward("alice").free_months == 0
    assert _free_months(store, "alice") == 0

    with pytest.raises(FirestoreError) as excinfo:
        referrals.apply_reward("alice")
    assert excinfo.value.code == "failed-precondition"

    with pytest.raises(ValidationError):
        referrals.apply_reward("alice", "gold_star")


def test_stats_without_referrals(referrals, alice_code):
    stats = referrals.get_stats("alice")
    assert stats.total_referrals == 0
    assert stats.current_reward is None


def test_signup_keeps_valid_code(referrals, store, alice_code):
    users = UserService(store, referrals)

    referred = users.create("frank", "frank@example.com", "Frank", alice_code, NOW)
    plain = users.create("gina", "gina@example.com", "Gina", "BOGUS123", NOW)

    assert referred.referral_id == alice_code
    assert plain.referral_id is None


def test_pairing_completes_pending_referral(store, referrals, make_user):
    """Uses the real clock: pairing checks expiry against the current time."""
    make_user("alice", "Alice")
    code = referrals.create("alice").referral_code

    users = UserService(store, referrals)
    users.create("bob", "bob@example.com", "Bob", code)
    users.create("carol", "carol@example.com", "Carol")

    partnerships = PartnershipService(store, referrals)
    invite = partnerships.create("carol")
    partnership = partnerships.accept_invite(invite.invite_code, "bob")

    assert partnership.status == "active"
    assert partnership.user_id2 == "bob"
    assert _free_months(store, "alice") == 1

    bob = users.get("bob")
    assert bob.referral_id is None
    assert bob.partner_id == "carol"
    assert users.get("carol").partner_id == "bob"
