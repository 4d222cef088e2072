"""Tests for thumb kiss tap pairing."""

from datetime import timedelta

import pytest

from candle.services.thumb_kisses import ThumbKissService, is_synchronized
from candle.utils.timeutils import to_iso

from tests.conftest import NOW


@pytest.fixture
def kisses(store):
    return ThumbKissService(store)


def ms(value):
    return timedelta(milliseconds=value)


def test_sync_window_is_strict():
    assert is_synchronized(NOW, NOW + ms(499))
    assert is_synchronized(to_iso(NOW + ms(250)), to_iso(NOW))
    assert not is_synchronized(NOW, NOW + ms(500))
    assert is_synchronized(1000, 1200, window_ms=300)


def test_first_tap_waits_for_partner(kisses):
    result = kisses.record_tap("p1", "alice", "bob", NOW)
    assert result["synced"] is False
    assert result["haptic"] is False
    assert result["partnerTap"] is None
    assert result["tap"]["userId"] == "alice"


def test_taps_inside_window_pair_up(kisses, store):
    first = kisses.record_tap("p1", "alice", "bob", NOW)
    second = kisses.record_tap("p1", "bob", "alice", NOW + ms(300))

    assert second["synced"] is True
    assert second["haptic"] is True
    assert second["partnerTap"]["id"] == first["tap"]["id"]
    assert second["tap"]["consumed"] is True

    taps = store.collection("thumbKisses").get()
    assert all(tap.to_dict()["consumed"] for tap in taps)


def test_consumed_tap_cannot_pair_again(kisses):
    kisses.record_tap("p1", "alice", "bob", NOW)
    kisses.record_tap("p1", "bob", "alice", NOW + ms(100))

    third = kisses.record_tap("p1", "alice", "bob", NOW + ms(200))

    assert third["synced"] is False
    assert third["partnerTap"] is None


def test_taps_outside_window_stay_apart(kisses):
    kisses.record_tap("p1", "alice", "bob", NOW)
    result = kisses.record_tap("p1", "bob", "alice", NOW + ms(600))

    assert result["synced"] is False
    assert result["partnerTap"]["userId"] == "alice"


def test_pairs_with_latest_partner_tap(kisses):
    kisses.record_tap("p1", "alice", "bob", NOW)
    latest = kisses.record_tap("p1", "alice", "bob", NOW + ms(1000))

    result = kisses.record_tap("p1", "bob", "alice", NOW + ms(1200))

    assert result["synced"] is True
    assert result["partnerTap"]["id"] == latest["tap"]["id"]


def test_other_partnerships_are_ignored(kisses):
    kisses.record_tap("p2", "alice", "bob", NOW)
    result = kisses.record_tap("p1", "bob", "alice", NOW + ms(50))
    assert result["synced"] is False


def test_custom_window(store):
    kisses = ThumbKissService(store, window_ms=1000)
    kisses.record_tap("p1", "alice", "bob", NOW)
    assert kisses.record_tap("p1", "bob", "alice", NOW + ms(800))["synced"] is True


def test_cleanup_removes_old_taps(kisses, store):
    kisses.record_tap("p1", "alice", "bob", NOW - timedelta(minutes=10))
    kisses.record_tap("p1", "bob", "alice", NOW - timedelta(minutes=1))
    kisses.record_tap("p2", "carol", "dave", NOW - timedelta(minutes=10))

    assert kisses.cleanup_old_taps("p1", NOW) == 1

    remaining = {tap.to_dict()["partnershipId"] for tap in store.collection("thumbKisses").get()}
    assert remaining == {"p1", "p2"}
    assert kisses.cleanup_old_taps("p1", NOW) == 0


def test_first_tapper_sees_the_kiss_on_next_poll(kisses):
    first = kisses.record_tap("p1", "alice", "bob", NOW)
    second = kisses.record_tap("p1", "bob", "alice", NOW + ms(100))
    assert first["synced"] is False
    assert second["synced"] is True

    seen_by_alice = kisses.latest_partner_tap("p1", "bob")
    assert seen_by_alice is not None
    assert seen_by_alice.id == second["tap"]["id"]
    assert seen_by_alice.paired_with == first["tap"]["id"]
    assert seen_by_alice.kissed_at == to_iso(NOW + ms(100))

    seen_by_bob = kisses.latest_partner_tap("p1", "alice")
    assert seen_by_bob.paired_with == second["tap"]["id"]


def test_unpaired_only_skips_paired_taps(kisses):
    kisses.record_tap("p1", "alice", "bob", NOW)
    kisses.record_tap("p1", "bob", "alice", NOW + ms(100))

    assert kisses.latest_partner_tap("p1", "bob", unpaired_only=True) is None
    assert kisses.latest_partner_tap("p1", "bob").consumed is True
