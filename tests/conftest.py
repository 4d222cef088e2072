"""
Pytest configuration for Candle tests

Runs everything against the in-memory LocalStore with short debounce delays.
"""

import os
import tempfile
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

os.environ["FIREBASE_CREDENTIALS_PATH"] = ""
os.environ["STORAGE_BUCKET"] = ""
os.environ["LOCAL_DATA_DIR"] = ""
os.environ.setdefault("LOCAL_MEDIA_DIR", tempfile.mkdtemp(prefix="candle-media-"))
os.environ["CANVAS_DEBOUNCE_MS"] = "50"
os.environ["GAME_STATE_DEBOUNCE_MS"] = "50"
os.environ["DEBUG"] = "false"

from candle import dependencies  # noqa: E402
from candle.models.partnership import Partnership, PartnershipStatus  # noqa: E402
from candle.services.local_store import LocalStore, get_local_store  # noqa: E402
from candle.services.partnerships import PartnershipService  # noqa: E402
from candle.utils.timeutils import to_iso  # noqa: E402

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_state():
    """Fresh accounts, services and shared store for every test."""
    dependencies.reset_state()
    get_local_store().reset()
    yield
    dependencies.reset_state()
    get_local_store().reset()


@pytest.fixture
def store():
    return LocalStore()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def partnerships(store):
    return PartnershipService(store)


@pytest.fixture
def make_partnership(store):
    """Write an active partnership document with the given field overrides."""

    def _make(partnership_id="p1", user_id1="alice", user_id2="bob", **fields):
        partnership = Partnership(
            id=partnership_id,
            user_id1=user_id1,
            user_id2=user_id2,
            status=PartnershipStatus.ACTIVE,
            created_at=to_iso(NOW),
            updated_at=to_iso(NOW),
            **fields,
        )
        store.collection("partnerships").document(partnership_id).set(partnership.to_dict())
        return partnership

    return _make


@pytest.fixture
def make_user(store):
    def _make(user_id, name="", **fields):
        data = {"id": user_id, "email": f"{user_id}@example.com", "name": name,
                "createdAt": to_iso(NOW), "updatedAt": to_iso(NOW)}
        data.update(fields)
        store.collection("users").document(user_id).set(data)
        return data

    return _make


# ── API fixtures ─────────────────────────────────────────────────

@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from candle.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def api_store():
    """The store the running app reads and writes."""
    return get_local_store()


@pytest.fixture
def signup(client):
    """Create a local account; returns its uid and auth headers."""

    def _signup(email, name="", referral_code=None):
        body = {"email": email, "password": "secret123", "name": name}
        if referral_code:
            body["referralCode"] = referral_code
        response = client.post("/api/v1/auth/signup", json=body)
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return SimpleNamespace(uid=data["uid"], headers={"Authorization": f"Bearer {data['token']}"})

    return _signup


@pytest.fixture
def make_couple(client, signup):
    """Sign up two users and pair them through an invite code."""

    def _make(first_email, second_email, first=None, second=None):
        first = first or signup(first_email, first_email.split("@")[0].title())
        second = second or signup(second_email, second_email.split("@")[0].title())
        invite = client.post("/api/v1/partnerships", headers=first.headers)
        assert invite.status_code == 201, invite.text
        invite_data = invite.json()["data"]
        accepted = client.post(
            "/api/v1/partnerships/accept",
            json={"inviteCode": invite_data["inviteCode"]},
            headers=second.headers,
        )
        assert accepted.status_code == 200, accepted.text
        return SimpleNamespace(first=first, second=second, partnership_id=invite_data["id"])

    return _make


@pytest.fixture
def couple(make_couple):
    pair = make_couple("alice@example.com", "bob@example.com")
    return SimpleNamespace(alice=pair.first, bob=pair.second, partnership_id=pair.partnership_id)
