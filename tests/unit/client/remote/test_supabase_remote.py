"""
Unit Tests for the Hosted Backend Adapter.

Requests are served by httpx.MockTransport; nothing leaves the process.
"""

import json
from unittest.mock import MagicMock

import httpx
import pytest

from modules.client.core.exceptions import MediaFailureError, RemoteFailureError
from modules.client.remote.supabase import (
    SupabaseClient,
    SupabaseMediaUploader,
    SupabaseRemote,
)
from modules.client.schemas.note import NoteDraft

BASE_URL = "https://project.example.co"


def _client(handler, access_token: str | None = "token-1", **kwargs) -> SupabaseClient:
    return SupabaseClient(
        base_url=BASE_URL,
        anon_key="anon-1",
        access_token=access_token,
        retry_wait_min=0,
        retry_wait_max=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def _row(note_id, created_at="2024-05-01T10:00:00+00:00", **fields):
    return {
        "id": note_id,
        "user_id": "user-1",
        "title": fields.get("title", ""),
        "content": fields.get("content"),
        "media_url": fields.get("media_url"),
        "created_at": created_at,
    }


class TestClient:
    """Tests for the HTTP client and its error mapping."""

    @pytest.mark.asyncio
    async def test_sends_key_and_bearer_headers(self):
        seen = {}

        def handler(request):
            seen.update(request.headers)
            return httpx.Response(200, json={})

        client = _client(handler)
        await client.request("GET", "/rest/v1/notes")
        await client.close()

        assert seen["apikey"] == "anon-1"
        assert seen["authorization"] == "Bearer token-1"

    @pytest.mark.asyncio
    async def test_server_error_becomes_remote_failure(self):
        client = _client(lambda request: httpx.Response(503, json={"message": "maintenance"}))

        with pytest.raises(RemoteFailureError, match="maintenance") as exc_info:
            await client.request("GET", "/rest/v1/notes")

        assert exc_info.value.status_code == 503
        await client.close()

    @pytest.mark.asyncio
    async def test_transport_error_is_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json=[])

        client = _client(handler, retry_attempts=3)
        response = await client.request("GET", "/rest/v1/notes")
        await client.close()

        assert response.status_code == 200
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_transport_error_after_retries(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = _client(handler, retry_attempts=2)

        with pytest.raises(RemoteFailureError, match="Network error"):
            await client.request("GET", "/rest/v1/notes")
        await client.close()

    @pytest.mark.asyncio
    async def test_client_errors_are_returned(self):
        client = _client(lambda request: httpx.Response(400, json={"message": "bad filter"}))

        response = await client.request("GET", "/rest/v1/notes")

        assert response.status_code == 400
        with pytest.raises(RemoteFailureError, match="bad filter"):
            client.raise_for_status(response)
        await client.close()


class TestRemote:
    """Tests for the notes table and auth endpoints."""

    @pytest.mark.asyncio
    async def test_current_user(self):
        def handler(request):
            assert request.url.path == "/auth/v1/user"
            return httpx.Response(200, json={"id": "user-1", "email": "a@b.c"})

        remote = SupabaseRemote(_client(handler))

        user = await remote.get_current_user()

        assert user.id == "user-1"

    @pytest.mark.asyncio
    async def test_no_token_means_signed_out(self):
        handler = MagicMock()
        remote = SupabaseRemote(_client(handler, access_token=None))

        assert await remote.get_current_user() is None
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_rejected_session_means_signed_out(self):
        remote = SupabaseRemote(_client(lambda request: httpx.Response(401, json={"msg": "expired"})))

        assert await remote.get_current_user() is None

    @pytest.mark.asyncio
    async def test_list_notes_filters_by_owner(self):
        captured = {}

        def handler(request):
            captured["params"] = dict(request.url.params)
            return httpx.Response(200, json=[_row(7, title="Grocery"), _row(8, media_url="")])

        remote = SupabaseRemote(_client(handler))

        notes = await remote.list_notes("user-1")

        assert captured["params"]["user_id"] == "eq.user-1"
        assert captured["params"]["order"] == "created_at.desc"
        assert [n.id for n in notes] == ["7", "8"]
        assert notes[0].content == ""
        assert notes[1].media_url is None

    @pytest.mark.asyncio
    async def test_insert_posts_row_and_publishes(self):
        captured = {}

        def handler(request):
            captured["method"] = request.method
            captured["body"] = json.loads(request.content)
            return httpx.Response(201)

        remote = SupabaseRemote(_client(handler))
        callback = MagicMock()
        remote.subscribe_to_changes("user-1", callback)

        await remote.insert_note("user-1", NoteDraft(title="t", content="c"))

        assert captured["method"] == "POST"
        assert captured["body"] == [
            {"title": "t", "content": "c", "media_url": None, "user_id": "user-1"},
        ]
        callback.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_update_patches_by_id(self):
        captured = {}

        def handler(request):
            captured["method"] = request.method
            captured["id"] = request.url.params["id"]
            return httpx.Response(204)

        remote = SupabaseRemote(_client(handler))

        await remote.update_note("42", NoteDraft(title="new"))

        assert captured == {"method": "PATCH", "id": "eq.42"}

    @pytest.mark.asyncio
    async def test_delete_sends_single_request(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(204)

        remote = SupabaseRemote(_client(handler))

        await remote.delete_notes({"3", "1", "2"})

        assert len(requests) == 1
        assert requests[0].method == "DELETE"
        assert requests[0].url.params["id"] == "in.(1,2,3)"

    @pytest.mark.asyncio
    async def test_write_rejection_raises(self):
        remote = SupabaseRemote(_client(lambda request: httpx.Response(403, json={"message": "RLS"})))
        callback = MagicMock()
        remote.subscribe_to_changes("user-1", callback)

        with pytest.raises(RemoteFailureError, match="RLS"):
            await remote.insert_note("user-1", NoteDraft())

        callback.assert_not_called()


class TestMediaUploader:
    """Tests for storage uploads."""

    @pytest.mark.asyncio
    async def test_upload_returns_public_url(self, tmp_path):
        clip = tmp_path / "clip.mp4"
        clip.write_bytes(b"frames")
        captured = {}

        def handler(request):
            captured["path"] = request.url.path
            captured["type"] = request.headers["content-type"]
            captured["body"] = request.content
            return httpx.Response(200, json={"Key": "notes-media/private/1.mp4"})

        uploader = SupabaseMediaUploader(_client(handler), bucket="notes-media")

        url = await uploader.upload(str(clip), "private/1.mp4", "video/mp4")

        assert url == f"{BASE_URL}/storage/v1/object/public/notes-media/private/1.mp4"
        assert captured == {
            "path": "/storage/v1/object/notes-media/private/1.mp4",
            "type": "video/mp4",
            "body": b"frames",
        }

    @pytest.mark.asyncio
    async def test_rejected_upload_is_media_failure(self, tmp_path):
        photo = tmp_path / "photo.jpg"
        photo.write_bytes(b"jpeg")
        uploader = SupabaseMediaUploader(
            _client(lambda request: httpx.Response(413, json={"message": "Payload too large"})),
        )

        with pytest.raises(MediaFailureError, match="Payload too large"):
            await uploader.upload(str(photo), "private/1.jpg", "image/jpeg")
