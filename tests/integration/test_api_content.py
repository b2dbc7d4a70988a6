"""
Integration tests for the signed-in content API and public endpoints

Google token verification is replaced by the `client` fixture; everything
below the route (services, repositories, SQLite) is real.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from mindweave.api.middleware.user_auth import AuthenticatedUser, get_current_user


class TestPublicEndpoints:
    def test_health(self, anon_client):
        response = anon_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["llm"]["ready"] is False
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_health_reports_llm_credentials(self, anon_client, monkeypatch):
        monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "demo")
        llm = anon_client.get("/health").json()["llm"]
        assert llm == {"ready": True, "google_api_key": False, "google_cloud_project": True}

    def test_database_health_and_stats(self, anon_client, user, make_content):
        make_content(user.id, "note")

        assert anon_client.get("/health/db").json()["status"] == "healthy"
        stats = anon_client.get("/debug/stats").json()
        assert stats["content"] == {"total": 1, "by_type": {"note": 1}}
        assert stats["users"] == 1

    def test_root_lists_endpoints(self, anon_client):
        body = anon_client.get("/").json()
        assert body["service"] == "Mindweave API"
        assert body["endpoints"]["v1"] == "/api/v1/content"

    def test_signed_in_routes_need_a_token(self, anon_client):
        response = anon_client.get("/api/content")
        assert response.status_code == 401
        assert response.json()["detail"] == "Missing authorization header"
        assert response.headers["WWW-Authenticate"] == "Bearer"

        response = anon_client.get("/api/content", headers={"Authorization": "Basic abc"})
        assert response.status_code == 401


class TestContentLifecycle:
    def test_create_read_update_delete(self, client):
        created = client.post(
            "/api/content",
            json={"type": "note", "title": "  Meeting notes ", "tags": ["work", " work "]},
        ).json()
        assert created["success"] is True
        content_id = created["data"]["id"]

        item = client.get(f"/api/content/{content_id}").json()["data"]
        assert item["title"] == "Meeting notes"
        assert item["tags"] == ["work"]

        updated = client.patch(f"/api/content/{content_id}", json={"body": "Agenda"}).json()
        assert updated["data"]["body"] == "Agenda"

        assert client.delete(f"/api/content/{content_id}").json()["success"] is True
        assert client.get(f"/api/content/{content_id}").status_code == 404

    def test_create_validation_failure(self, client):
        result = client.post(
            "/api/content", json={"type": "link", "title": "FTP", "url": "ftp://files.example.com"}
        ).json()
        assert result["success"] is False
        assert result["message"] == "Validation failed. Please check your input."
        assert result["errors"] == ["Invalid URL"]

    def test_malformed_body_is_sanitized(self, client):
        response = client.post("/api/content", json={"title": "missing type"})

        assert response.status_code == 422
        body = response.json()
        assert body["invalid_fields"] == ["type"]
        assert "Invalid request format" in body["detail"]

    def test_foreign_content_is_hidden(self, client, other_user, make_content):
        theirs = make_content(other_user.id, "Private")
        assert client.get(f"/api/content/{theirs.id}").status_code == 404
        assert client.delete(f"/api/content/{theirs.id}").json() == {
            "success": False,
            "message": "Content not found",
        }

    def test_list_filters_and_paging(self, client, user, make_content):
        now = datetime.now(UTC)
        for i in range(3):
            make_content(user.id, f"note {i}", created_at=now - timedelta(minutes=i))
        make_content(user.id, "a link", "link", url="https://example.com", tags=["ref"])

        notes = client.get("/api/content", params={"type": "note", "limit": 2}).json()["data"]
        assert notes["total"] == 3
        assert [i["title"] for i in notes["items"]] == ["note 0", "note 1"]

        tagged = client.get("/api/content", params={"tag": "ref"}).json()["data"]
        assert [i["title"] for i in tagged["items"]] == ["a link"]

        assert client.get("/api/content", params={"type": "video"}).status_code == 400
        assert client.get("/api/content", params={"sort": "size"}).status_code == 400

    def test_favorites(self, client, user, make_content):
        item = make_content(user.id, "Keep")

        result = client.post(f"/api/content/{item.id}/favorite").json()
        assert result["data"] == {"isFavorite": True}

        favorites = client.get("/api/content", params={"favorites": True}).json()["data"]
        assert [i["id"] for i in favorites["items"]] == [item.id]

    def test_bulk_actions(self, client, user, make_content):
        items = [make_content(user.id, f"item {i}", tags=["old"]) for i in range(3)]
        ids = [i.id for i in items]

        tagged = client.post("/api/content/bulk/tags", json={"contentIds": ids, "tags": [" new "]})
        assert tagged.json()["data"] == {"updated": 3}
        assert client.get(f"/api/content/{ids[0]}").json()["data"]["tags"] == ["old", "new"]

        deleted = client.post("/api/content/bulk/delete", json={"contentIds": ids[:2]})
        assert deleted.json()["data"] == {"deleted": 2}
        assert client.get("/api/content").json()["data"]["total"] == 1


class TestSharing:
    def test_share_and_public_view(self, client, anon_client, user, make_content):
        item = make_content(user.id, "Essay", body="Public words")

        shared = client.post(f"/api/content/{item.id}/share").json()["data"]
        assert shared["shareUrl"].endswith(f"/share/{shared['shareId']}")
        again = client.post(f"/api/content/{item.id}/share").json()["data"]
        assert again["shareId"] == shared["shareId"]

        public = anon_client.get(f"/api/share/{shared['shareId']}").json()["data"]
        assert public["body"] == "Public words"
        assert "isFavorite" not in public
        assert "metadata" not in public

        client.delete(f"/api/content/{item.id}/share")
        assert anon_client.get(f"/api/share/{shared['shareId']}").status_code == 404


class TestAIRoutes:
    def test_summary_without_llm(self, client, user, make_content):
        item = make_content(user.id, "Essay")
        result = client.post(f"/api/content/{item.id}/summary").json()
        assert result == {"success": False, "message": "AI features are not configured"}

    def test_summary_and_auto_tags(self, client, fake_llm):
        fake_llm.responses["summary"] = "A short summary."
        fake_llm.responses["tags"] = "Reading, essays"

        content_id = client.post(
            "/api/content", json={"type": "note", "title": "Essay", "body": "Long text"}
        ).json()["data"]["id"]

        summary = client.post(f"/api/content/{content_id}/summary").json()
        assert summary["data"] == {"summary": "A short summary."}
        item = client.get(f"/api/content/{content_id}").json()["data"]
        assert item["summary"] == "A short summary."
        assert item["autoTags"] == ["reading", "essays"]

    def test_keyword_search_route(self, client, user, make_content):
        make_content(user.id, "Python tips")

        body = client.get("/api/search", params={"q": "python"}).json()
        assert body["count"] == 1
        assert client.get("/api/search", params={"q": " "}).status_code == 400
        assert client.get("/api/search/recent").json()["searches"] == ["python"]

    def test_ask_without_llm(self, client):
        response = client.post("/api/search/ask", json={"question": "anything?"})
        assert response.status_code == 503


class TestCollectionsRoutes:
    def test_collection_flow(self, client, user, make_content):
        item = make_content(user.id, "Dune")

        collection = client.post("/api/collections", json={"name": "Sci-fi"}).json()["collection"]
        added = client.post(
            f"/api/collections/{collection['id']}/items", json={"contentId": item.id}
        ).json()
        assert added["success"] is True

        listed = client.get("/api/collections").json()["collections"]
        assert listed[0]["contentCount"] == 1
        assert client.get(f"/api/content/{item.id}/collections").json()["collectionIds"] == [
            collection["id"]
        ]

        client.delete(f"/api/collections/{collection['id']}/items/{item.id}")
        assert client.get("/api/collections").json()["collections"][0]["contentCount"] == 0

    def test_sharing_flow(self, app, client, user, other_user):
        shelf = client.post("/api/collections", json={"name": "Team reading"}).json()[
            "collection"
        ]
        invited = client.post(
            f"/api/collections/{shelf['id']}/invitations",
            json={"email": other_user.email, "role": "editor"},
        ).json()
        assert invited["success"] is True

        async def as_other_user() -> AuthenticatedUser:
            return AuthenticatedUser(
                id=other_user.id, email=other_user.email, name=other_user.name
            )

        app.dependency_overrides[get_current_user] = as_other_user

        pending = client.get("/api/invitations").json()["invitations"]
        assert [(i["collectionName"], i["inviterName"]) for i in pending] == [
            ("Team reading", user.name)
        ]
        accepted = client.post("/api/invitations/accept", json={"token": invited["token"]})
        assert accepted.json()["message"] == "You have joined the collection"

        members = client.get(f"/api/collections/{shelf['id']}/members").json()["members"]
        assert [(m["email"], m["role"]) for m in members] == [
            (user.email, "owner"),
            (other_user.email, "editor"),
        ]


class TestRemindersAndViewsRoutes:
    def test_reminder_lifecycle(self, client, user, make_content):
        item = make_content(user.id, "Flashcards")

        created = client.post("/api/reminders", json={"contentId": item.id, "interval": "3d"})
        assert created.json()["message"] == "Reminder set successfully"
        reminder_id = created.json()["id"]

        snoozed = client.post(f"/api/reminders/{reminder_id}/snooze", json={"duration": "1d"})
        assert snoozed.json() == {"success": True, "message": "Reminder snoozed"}
        assert client.get("/api/reminders").json()["reminders"][0]["interval"] == "3d"

        client.post(f"/api/reminders/{reminder_id}/dismiss")
        assert client.get("/api/reminders").json()["reminders"] == []

    def test_views(self, client, user, make_content):
        item = make_content(user.id, "Long read")

        assert client.post("/api/views", json={"contentId": item.id}).json() == {"success": True}

        recent = client.get("/api/views/recent", params={"limit": 5}).json()["items"]
        assert [r["title"] for r in recent] == ["Long read"]
        assert client.get("/api/views/ids").json()["contentIds"] == [item.id]
        since = (datetime.now(UTC) + timedelta(hours=1)).isoformat()
        assert client.get("/api/views/ids", params={"since": since}).json()["contentIds"] == []
