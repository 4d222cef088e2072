"""Tests for daily photo prompts."""

import base64
from datetime import date, timedelta

import pytest

from candle.services.photo_prompts import PROMPTS, PhotoPromptService, daily_prompt_text
from candle.services.storage import LOCAL_MEDIA_URL_PREFIX, StorageService
from candle.utils.exceptions import FirestoreError, ValidationError

from tests.conftest import NOW

PHOTO = base64.b64encode(b"\xff\xd8\xff\xe0 jpeg bytes").decode()


class RecordingNotifications:
    def __init__(self):
        self.sent = []

    def user_name(self, user_id, fallback):
        return user_id.title()

    def send_photo_shared_notification(self, partner_id, sender_name, prompt_id, partnership_id):
        self.sent.append((partner_id, sender_name, prompt_id, partnership_id))
        return True


@pytest.fixture
def notifications():
    return RecordingNotifications()


@pytest.fixture
def photo_prompts(store, partnerships, make_partnership, notifications, tmp_path):
    make_partnership()
    return PhotoPromptService(store, partnerships, StorageService(local_dir=str(tmp_path)), notifications)


@pytest.mark.parametrize("day, index", [
    (date(2025, 1, 1), 0),
    (date(2025, 1, 2), 1),
    (date(2025, 1, 16), 0),
    (date(2025, 6, 15), 0),
    (date(2025, 12, 31), 364 % 15),
])
def test_prompt_rotates_by_day_of_year(day, index):
    assert daily_prompt_text(day) == PROMPTS[index]


def test_daily_prompt_is_created_once_per_day(photo_prompts):
    first = photo_prompts.get_daily_prompt("p1", now=NOW)
    again = photo_prompts.get_daily_prompt("p1", "Ignored custom text", now=NOW + timedelta(hours=3))

    assert again.id == first.id
    assert first.prompt_date == "2025-06-15"
    assert first.prompt_text == daily_prompt_text(NOW.date())


def test_custom_text_used_for_a_new_day(photo_prompts):
    prompt = photo_prompts.get_daily_prompt("p1", "Your breakfast", now=NOW)
    assert prompt.prompt_text == "Your breakfast"


def test_history_newest_first(photo_prompts):
    days = [NOW - timedelta(days=2), NOW, NOW - timedelta(days=1)]
    for day in days:
        photo_prompts.get_daily_prompt("p1", now=day)
    photo_prompts.get_daily_prompt("p2", now=NOW)

    history = photo_prompts.history("p1")

    assert [p.prompt_date for p in history] == ["2025-06-15", "2025-06-14", "2025-06-13"]


def test_unknown_prompt(photo_prompts):
    with pytest.raises(FirestoreError) as excinfo:
        photo_prompts.get("missing")
    assert excinfo.value.status_code == 404


def test_upload_fills_the_uploader_slot(photo_prompts, notifications, tmp_path):
    prompt = photo_prompts.get_daily_prompt("p1", now=NOW)

    updated = photo_prompts.upload_photo(prompt.id, "bob", PHOTO, now=NOW)

    assert updated.user1_photo_url is None
    assert updated.user2_photo_url.startswith(f"{LOCAL_MEDIA_URL_PREFIX}/partnerships/p1/photos/{prompt.id}/bob/")
    assert updated.user2_uploaded_at == "2025-06-15T12:00:00+00:00"
    assert not updated.both_uploaded
    stored = tmp_path / updated.user2_photo_url[len(LOCAL_MEDIA_URL_PREFIX) + 1:]
    assert stored.read_bytes() == base64.b64decode(PHOTO)
    assert notifications.sent == [("alice", "Bob", prompt.id, "p1")]


def test_both_uploaded_after_each_partner_shares(photo_prompts):
    prompt = photo_prompts.get_daily_prompt("p1", now=NOW)

    photo_prompts.upload_photo(prompt.id, "alice", PHOTO, now=NOW)
    updated = photo_prompts.upload_photo(prompt.id, "bob", PHOTO, now=NOW + timedelta(minutes=5))

    assert updated.user1_photo_url and updated.user2_photo_url
    assert updated.both_uploaded


def test_upload_rejects_non_base64(photo_prompts):
    prompt = photo_prompts.get_daily_prompt("p1", now=NOW)
    with pytest.raises(ValidationError):
        photo_prompts.upload_photo(prompt.id, "alice", "not base64!", now=NOW)


def test_notification_failure_keeps_the_upload(store, partnerships, make_partnership, tmp_path):
    class BrokenNotifications(RecordingNotifications):
        def send_photo_shared_notification(self, *args):
            raise RuntimeError("fcm down")

    make_partnership()
    service = PhotoPromptService(store, partnerships, StorageService(local_dir=str(tmp_path)), BrokenNotifications())
    prompt = service.get_daily_prompt("p1", now=NOW)

    assert service.upload_photo(prompt.id, "alice", PHOTO, now=NOW).user1_photo_url
