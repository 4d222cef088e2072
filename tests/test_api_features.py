"""API tests: canvas, games, messages, date ideas, countdowns, referrals."""

import base64
import json
import time

import pytest

API = "/api/v1"

STROKES = json.dumps([{"path": "M 10 10 L 120 140", "color": "#FFFFFF", "strokeWidth": 4}])


@pytest.fixture
def other_couple(make_couple):
    return make_couple("carol@example.com", "dave@example.com")


class TestCanvas:
    def test_sync_waits_for_the_write(self, client, couple):
        response = client.post(
            f"{API}/canvas/sync",
            json={"drawingData": STROKES, "backgroundColor": "beige", "canvasWidth": 300, "canvasHeight": 300},
            headers=couple.alice.headers,
        )

        assert response.status_code == 200
        drawing = response.json()["data"]
        assert drawing["drawingData"] == STROKES
        assert drawing["isCurrent"] is True
        assert drawing["thumbnail"].startswith("data:image/png;base64,")

        current = client.get(f"{API}/canvas/current", headers=couple.bob.headers).json()["data"]
        assert current["id"] == drawing["id"]

    def test_cancel_without_pending_sync(self, client, couple):
        response = client.delete(f"{API}/canvas/sync", headers=couple.alice.headers)
        assert response.json()["data"] == {"cancelled": False}

    def test_save_history_download_delete(self, client, couple):
        first = client.post(f"{API}/canvas", json={"drawingData": "[]"}, headers=couple.alice.headers)
        assert first.status_code == 201
        second = client.post(f"{API}/canvas", json={"drawingData": STROKES}, headers=couple.bob.headers).json()["data"]

        history = client.get(f"{API}/canvas/history", headers=couple.alice.headers).json()["data"]
        assert len(history) == 2
        assert [d["isCurrent"] for d in history if d["id"] == second["id"]] == [True]

        download = client.get(f"{API}/canvas/{second['id']}/download", headers=couple.alice.headers)
        assert download.headers["content-type"].startswith("application/json")
        assert "attachment" in download.headers["content-disposition"]
        assert json.loads(download.text)[0]["path"] == "M 10 10 L 120 140"

        assert client.delete(f"{API}/canvas/{second['id']}", headers=couple.alice.headers).status_code == 200
        assert client.get(f"{API}/canvas/{second['id']}", headers=couple.alice.headers).status_code == 404

    def test_rejects_unknown_background(self, client, couple):
        response = client.post(
            f"{API}/canvas", json={"drawingData": "[]", "backgroundColor": "pink"}, headers=couple.alice.headers
        )
        assert response.status_code == 422

    def test_other_couple_cannot_read_drawing(self, client, couple, other_couple):
        drawing = client.post(f"{API}/canvas", json={"drawingData": "[]"}, headers=couple.alice.headers).json()["data"]
        response = client.get(f"{API}/canvas/{drawing['id']}", headers=other_couple.first.headers)
        assert response.status_code == 403


class TestGames:
    def _start(self, client, couple, game_type="anagrams", state=None):
        response = client.post(
            f"{API}/games/sessions",
            json={"gameType": game_type, "initialState": state or {"round": 1}},
            headers=couple.alice.headers,
        )
        assert response.status_code == 201
        return response.json()["data"]

    def test_merge_and_debounced_updates(self, client, couple):
        game = self._start(client, couple)
        url = f"{API}/games/sessions/{game['id']}"

        merged = client.put(url, json={"state": {"letters": "xyz"}, "merge": True}, headers=couple.bob.headers)
        assert merged.json()["data"]["state"] == {"round": 1, "letters": "xyz"}

        for move in (1, 2, 3):
            queued = client.put(url, json={"state": {"move": move}}, headers=couple.alice.headers)
            assert queued.json()["data"] == {"queued": True}

        time.sleep(0.4)
        assert client.get(url, headers=couple.bob.headers).json()["data"]["state"] == {"move": 3}

    def test_active_sessions_and_end(self, client, couple):
        game = self._start(client, couple)
        self._start(client, couple, "draw_duel")

        active = client.get(f"{API}/games/sessions?gameType=anagrams", headers=couple.bob.headers).json()["data"]
        assert [g["id"] for g in active] == [game["id"]]

        ended = client.post(
            f"{API}/games/sessions/{game['id']}/end", json={"winnerId": couple.bob.uid}, headers=couple.alice.headers
        ).json()["data"]
        assert ended["isActive"] is False
        assert ended["winnerId"] == couple.bob.uid
        assert len(client.get(f"{API}/games/sessions", headers=couple.bob.headers).json()["data"]) == 1

    def test_winner_must_be_member(self, client, couple):
        game = self._start(client, couple)
        response = client.post(
            f"{API}/games/sessions/{game['id']}/end", json={"winnerId": "stranger"}, headers=couple.alice.headers
        )
        assert response.status_code == 403

    def test_unknown_game_type(self, client, couple):
        response = client.post(f"{API}/games/sessions", json={"gameType": "chess"}, headers=couple.alice.headers)
        assert response.status_code == 422

    def test_scores_and_stats(self, client, couple):
        for account, score in ((couple.alice, 12), (couple.alice, 30), (couple.bob, 20)):
            saved = client.post(
                f"{API}/games/scores", json={"gameType": "anagrams", "score": score}, headers=account.headers
            )
            assert saved.status_code == 201

        board = client.get(f"{API}/games/scores/leaderboard?gameType=anagrams", headers=couple.bob.headers)
        assert [s["score"] for s in board.json()["data"]] == [30, 20, 12]

        stats = client.get(f"{API}/games/scores/stats?gameType=anagrams", headers=couple.alice.headers).json()["data"]
        assert stats == {"bestScore": 30, "totalGames": 2, "averageScore": 21, "wins": 1, "losses": 1}

        assert len(client.get(f"{API}/games/scores", headers=couple.alice.headers).json()["data"]) == 3


class TestMessages:
    def test_send_list_and_paginate(self, client, couple):
        sent = [
            client.post(f"{API}/messages", json={"content": f"#{i}"}, headers=couple.alice.headers).json()["data"]
            for i in range(3)
        ]
        assert sent[0]["type"] == "text"

        page = client.get(f"{API}/messages?limit=2", headers=couple.bob.headers).json()["data"]
        assert [m["content"] for m in page] == ["#0", "#1"]

        rest = client.get(f"{API}/messages?after={page[-1]['id']}", headers=couple.bob.headers).json()["data"]
        assert [m["content"] for m in rest] == ["#2"]

    def test_empty_text_rejected(self, client, couple):
        response = client.post(f"{API}/messages", json={"content": "  "}, headers=couple.alice.headers)
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_photo_upload_then_send(self, client, couple):
        upload = client.post(
            f"{API}/messages/media",
            json={"type": "photo", "data": base64.b64encode(b"jpeg bytes").decode()},
            headers=couple.alice.headers,
        )
        assert upload.status_code == 201
        media = upload.json()["data"]
        assert media["mediaUrl"].startswith(f"/media/partnerships/{couple.partnership_id}/messages/{media['messageId']}/")

        assert client.get(media["mediaUrl"]).content == b"jpeg bytes"

        message = client.post(
            f"{API}/messages", json={"type": "photo", "mediaUrl": media["mediaUrl"]}, headers=couple.alice.headers
        )
        assert message.status_code == 201

    def test_reactions_read_and_delete(self, client, couple):
        message = client.post(f"{API}/messages", json={"content": "Hi"}, headers=couple.alice.headers).json()["data"]
        url = f"{API}/messages/{message['id']}"

        reacted = client.post(f"{url}/reactions", json={"emoji": "❤️"}, headers=couple.bob.headers).json()["data"]
        assert reacted["reactions"][0]["userId"] == couple.bob.uid
        cleared = client.delete(f"{url}/reactions", headers=couple.bob.headers).json()["data"]
        assert cleared["reactions"] == []

        read = client.post(f"{url}/read", headers=couple.bob.headers).json()["data"]
        assert couple.bob.uid in read["readReceipts"]

        assert client.delete(url, headers=couple.bob.headers).status_code == 403
        assert client.delete(url, headers=couple.alice.headers).status_code == 200

    def test_other_couple_cannot_react(self, client, couple, other_couple):
        message = client.post(f"{API}/messages", json={"content": "Hi"}, headers=couple.alice.headers).json()["data"]
        response = client.post(
            f"{API}/messages/{message['id']}/reactions", json={"emoji": "👀"}, headers=other_couple.first.headers
        )
        assert response.status_code == 403


class TestDateIdeas:
    @pytest.fixture(autouse=True)
    def ideas(self, api_store):
        for idea_id, lat, lon, category in (
            ("picnic", 51.5073, -0.1657, "Outdoors"),
            ("pasta", 51.5145, -0.0983, "Food"),
            ("bistro", 48.8566, 2.3522, "Food"),
        ):
            api_store.collection("dateIdeas").document(idea_id).set({
                "id": idea_id,
                "title": idea_id.title(),
                "category": category,
                "location": {"latitude": lat, "longitude": lon},
            })

    def test_nearby_ideas(self, client, couple):
        response = client.get(
            f"{API}/date-ideas?latitude=51.5074&longitude=-0.1278&radiusKm=25", headers=couple.alice.headers
        )
        assert {idea["id"] for idea in response.json()["data"]} == {"picnic", "pasta"}

        food = client.get(f"{API}/date-ideas?category=Food", headers=couple.alice.headers).json()["data"]
        assert {idea["id"] for idea in food} == {"pasta", "bistro"}

    def test_mutual_swipe_matches(self, client, couple):
        first = client.post(f"{API}/date-ideas/pasta/swipe", json={"direction": "right"}, headers=couple.alice.headers)
        assert first.json()["message"] == "Swipe recorded"

        second = client.post(f"{API}/date-ideas/pasta/swipe", json={"direction": "right"}, headers=couple.bob.headers)
        assert second.json()["message"] == "It's a match!"
        match = second.json()["data"]["match"]
        assert match["status"] == "new"

        matches = client.get(f"{API}/date-ideas/matches", headers=couple.alice.headers).json()["data"]
        assert matches[0]["dateIdea"]["title"] == "Pasta"

        viewed = client.put(
            f"{API}/date-ideas/matches/{match['id']}", json={"status": "viewed"}, headers=couple.alice.headers
        )
        assert viewed.json()["data"]["status"] == "viewed"

        back = client.put(f"{API}/date-ideas/matches/{match['id']}", json={"status": "new"}, headers=couple.alice.headers)
        assert back.status_code == 422

        swipes = client.get(f"{API}/date-ideas/swipes", headers=couple.bob.headers).json()["data"]
        assert [(s["dateIdeaId"], s["direction"]) for s in swipes] == [("pasta", "right")]

    def test_swipe_unknown_idea(self, client, couple):
        response = client.post(f"{API}/date-ideas/nope/swipe", json={"direction": "left"}, headers=couple.alice.headers)
        assert response.status_code == 404

    def test_other_couple_cannot_update_match(self, client, couple, other_couple):
        for account in (couple.alice, couple.bob):
            client.post(f"{API}/date-ideas/picnic/swipe", json={"direction": "right"}, headers=account.headers)
        response = client.put(
            f"{API}/date-ideas/matches/{couple.partnership_id}_picnic",
            json={"status": "completed"},
            headers=other_couple.first.headers,
        )
        assert response.status_code == 403


class TestCountdowns:
    def test_crud(self, client, couple):
        created = client.post(
            f"{API}/countdowns", json={"title": "Trip", "targetDate": "2030-08-01"}, headers=couple.alice.headers
        )
        assert created.status_code == 201
        countdown = created.json()["data"]
        assert countdown["targetDate"] == "2030-08-01T00:00:00+00:00"
        url = f"{API}/countdowns/{countdown['id']}"

        updated = client.put(url, json={"title": "Big trip"}, headers=couple.bob.headers).json()["data"]
        assert updated["title"] == "Big trip"

        listed = client.get(f"{API}/countdowns", headers=couple.bob.headers).json()["data"]
        assert [c["id"] for c in listed] == [countdown["id"]]

        assert client.delete(url, headers=couple.alice.headers).status_code == 200
        assert client.get(f"{API}/countdowns", headers=couple.bob.headers).json()["data"] == []

    def test_invalid_date(self, client, couple):
        response = client.post(
            f"{API}/countdowns", json={"title": "Trip", "targetDate": "soon"}, headers=couple.alice.headers
        )
        assert response.status_code == 422

    def test_other_couple_cannot_delete(self, client, couple, other_couple):
        countdown = client.post(
            f"{API}/countdowns", json={"title": "Trip", "targetDate": "2030-08-01"}, headers=couple.alice.headers
        ).json()["data"]
        response = client.delete(f"{API}/countdowns/{countdown['id']}", headers=other_couple.first.headers)
        assert response.status_code == 403


class TestReferrals:
    def test_referral_rewarded_when_friend_pairs(self, client, signup, make_couple):
        alice = signup("alice@example.com", "Alice")
        code = client.post(f"{API}/referrals", headers=alice.headers).json()["data"]["referralCode"]

        assert client.get(f"{API}/referrals/validate/{code}").json()["data"] == {"valid": True}
        assert client.get(f"{API}/referrals/validate/NOPE2345").json()["data"] == {"valid": False}

        frank = signup("frank@example.com", "Frank", referral_code=code)
        make_couple("gina@example.com", None, second=frank)

        stats = client.get(f"{API}/referrals/stats", headers=alice.headers).json()["data"]
        assert stats["totalReferrals"] == 1
        assert stats["currentReward"] == "1 free month"

        mine = client.get(f"{API}/referrals/me", headers=alice.headers).json()["data"]
        assert mine[0]["referredUserId"] == frank.uid

        applied = client.post(f"{API}/referrals/rewards/apply", json={}, headers=alice.headers)
        assert applied.json()["data"]["freeMonths"] == 0
        assert client.post(f"{API}/referrals/rewards/apply", json={}, headers=alice.headers).status_code == 412

    def test_code_lookup(self, client, signup):
        alice = signup("alice@example.com")
        code = client.post(f"{API}/referrals", headers=alice.headers).json()["data"]["referralCode"]

        found = client.get(f"{API}/referrals/code/{code.lower()}", headers=alice.headers).json()["data"]
        assert found["referrerId"] == alice.uid
        assert client.get(f"{API}/referrals/code/NOPE2345", headers=alice.headers).status_code == 404


PHOTO = base64.b64encode(b"\xff\xd8\xff\xe0 jpeg bytes").decode()


class TestPhotoPrompts:
    def test_both_partners_share_todays_photo(self, client, couple):
        today = client.get(f"{API}/photo-prompts/today", headers=couple.alice.headers).json()["data"]
        assert today["partnershipId"] == couple.partnership_id
        assert today["bothUploaded"] is False
        assert client.get(f"{API}/photo-prompts/today", headers=couple.bob.headers).json()["data"]["id"] == today["id"]

        first = client.post(
            f"{API}/photo-prompts/{today['id']}/photo", json={"data": PHOTO}, headers=couple.alice.headers
        )
        assert first.status_code == 200
        assert first.json()["data"]["user1PhotoUrl"].startswith("/media/partnerships/")
        second = client.post(
            f"{API}/photo-prompts/{today['id']}/photo", json={"data": PHOTO}, headers=couple.bob.headers
        ).json()["data"]
        assert second["bothUploaded"] is True

        history = client.get(f"{API}/photo-prompts/history", headers=couple.bob.headers).json()["data"]
        assert [p["id"] for p in history] == [today["id"]]
        fetched = client.get(f"{API}/photo-prompts/{today['id']}", headers=couple.bob.headers).json()["data"]
        assert fetched["user2PhotoUrl"] == second["user2PhotoUrl"]

    def test_custom_prompt_text(self, client, couple):
        created = client.post(
            f"{API}/photo-prompts/today", json={"promptText": "Your lunch"}, headers=couple.alice.headers
        ).json()["data"]
        assert created["promptText"] == "Your lunch"

    def test_other_couple_cannot_upload(self, client, couple, other_couple):
        today = client.get(f"{API}/photo-prompts/today", headers=couple.alice.headers).json()["data"]

        response = client.post(
            f"{API}/photo-prompts/{today['id']}/photo", json={"data": PHOTO}, headers=other_couple.first.headers
        )

        assert response.status_code == 403
        assert client.get(f"{API}/photo-prompts/{today['id']}", headers=other_couple.first.headers).status_code == 403

    def test_bad_photo_data(self, client, couple):
        today = client.get(f"{API}/photo-prompts/today", headers=couple.alice.headers).json()["data"]
        response = client.post(
            f"{API}/photo-prompts/{today['id']}/photo", json={"data": "%%%"}, headers=couple.alice.headers
        )
        assert response.status_code == 422

    def test_requires_partnership(self, client, signup):
        solo = signup("solo@example.com")
        assert client.get(f"{API}/photo-prompts/today", headers=solo.headers).status_code == 404


class TestPrivacy:
    def test_notification_settings(self, client, signup, api_store):
        alice = signup("alice@example.com", "Alice")
        client.put(f"{API}/users/me/fcm-token", json={"token": "device-1"}, headers=alice.headers)

        defaults = client.get(f"{API}/users/me/notification-settings", headers=alice.headers).json()["data"]
        assert defaults["pushEnabled"] is False
        assert defaults["preferredNotificationTime"] == "09:00"

        updated = client.put(
            f"{API}/users/me/notification-settings",
            json={"streakReminder": True, "preferredNotificationTime": "21:15"},
            headers=alice.headers,
        ).json()["data"]
        assert updated["streakReminder"] is True
        assert updated["preferredNotificationTime"] == "21:15"

        bad = client.put(
            f"{API}/users/me/notification-settings", json={"preferredNotificationTime": "9pm"}, headers=alice.headers
        )
        assert bad.status_code == 422

        client.put(f"{API}/users/me/notification-settings", json={"pushEnabled": False}, headers=alice.headers)
        assert api_store.collection("users").document(alice.uid).get().to_dict()["fcmToken"] is None

    def test_export(self, client, couple):
        client.post(
            f"{API}/messages", json={"content": "hello", "type": "text"}, headers=couple.alice.headers
        )

        export = client.get(f"{API}/users/me/export", headers=couple.alice.headers).json()["data"]

        assert export["userId"] == couple.alice.uid
        assert export["user"]["email"] == "alice@example.com"
        assert [p["id"] for p in export["partnerships"]] == [couple.partnership_id]
        assert [m["content"] for m in export["messages"]] == ["hello"]

    def test_delete_account(self, client, couple, api_store):
        response = client.delete(f"{API}/users/me", headers=couple.alice.headers)

        assert response.status_code == 200
        assert client.get(f"{API}/users/me", headers=couple.alice.headers).status_code == 401
        partnership = client.get(f"{API}/partnerships/me", headers=couple.bob.headers).json()["data"]
        assert partnership["status"] == "paused"
        assert not api_store.collection("users").document(couple.alice.uid).get().exists

    def test_unpair(self, client, couple, signup):
        response = client.post(f"{API}/partnerships/{couple.partnership_id}/unpair", headers=couple.bob.headers)

        assert response.status_code == 200
        assert response.json()["data"]["status"] == "paused"
        me = client.get(f"{API}/users/me", headers=couple.alice.headers).json()["data"]
        assert me.get("partnerId") is None
        assert client.post(f"{API}/partnerships", headers=couple.alice.headers).status_code == 201

        outsider = signup("eve@example.com")
        denied = client.post(f"{API}/partnerships/{couple.partnership_id}/unpair", headers=outsider.headers)
        assert denied.status_code == 403
