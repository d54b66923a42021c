"""Tests for JotBirdClient."""

import asyncio
import json

import httpx
import pytest

from jotbird_publisher.api.client import JotBirdClient
from jotbird_publisher.api.errors import ApiError, ErrorKind, classify_status
from jotbird_publisher.config import PublisherConfig

CONFIG = PublisherConfig(
    api_base_url="https://api.test",
    site_url="https://site.test",
    user_agent="jotbird-publisher/test",
)

PUBLISHED = {
    "slug": "abc123",
    "url": "https://share.jotbird.com/abc123",
    "title": "Title",
    "expiresAt": "2026-11-17T08:00:00.000Z",
    "ttlDays": 30,
    "created": True,
}


def call(handler, method, *args):
    """Run one client method against a mock transport."""
    async def run():
        async with JotBirdClient(CONFIG, transport=httpx.MockTransport(handler)) as client:
            return await getattr(client, method)(*args)
    return asyncio.run(run())


class Recorder:
    """Mock transport handler that remembers requests."""

    def __init__(self, status=200, body=None, text=None):
        self.requests = []
        self.status = status
        self.body = body
        self.text = text

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.text is not None:
            return httpx.Response(self.status, text=self.text)
        return httpx.Response(self.status, json=self.body)

    @property
    def last_json(self):
        return json.loads(self.requests[-1].content)


class TestPublishEndpoints:
    """Tests for publish and delete requests."""

    def test_publish_sends_auth_and_slug(self):
        handler = Recorder(body=PUBLISHED)

        result = call(handler, "publish", "jb_key", "# md", "Title", "abc123")

        request = handler.requests[0]
        assert request.url == "https://api.test/cli/publish"
        assert request.headers["authorization"] == "Bearer jb_key"
        assert request.headers["user-agent"] == "jotbird-publisher/test"
        assert handler.last_json == {"markdown": "# md", "title": "Title", "slug": "abc123"}
        assert result.slug == "abc123"
        assert result.ttl_days == 30
        assert result.edit_token is None

    def test_publish_without_slug(self):
        handler = Recorder(body=PUBLISHED)
        call(handler, "publish", "jb_key", "# md", "Title")
        assert handler.last_json == {"markdown": "# md", "title": "Title"}

    def test_trial_publish_uses_fingerprint(self):
        handler = Recorder(body=dict(PUBLISHED, editToken="tok"))

        result = call(handler, "trial_publish", "device-1", "# md", "Title", "abc123", "tok")

        request = handler.requests[0]
        assert request.url == "https://api.test/trial/publish"
        assert request.headers["x-device-fingerprint"] == "device-1"
        assert "authorization" not in request.headers
        assert handler.last_json == {"markdown": "# md", "title": "Title", "slug": "abc123", "editToken": "tok"}
        assert result.edit_token == "tok"

    def test_delete_document(self):
        handler = Recorder(body={"ok": True})
        assert call(handler, "delete_document", "jb_key", "abc123") is True
        assert handler.requests[0].url == "https://api.test/cli/documents/delete"
        assert handler.last_json == {"slug": "abc123"}

    def test_trial_delete_document(self):
        handler = Recorder(body={"ok": True})
        assert call(handler, "trial_delete_document", "abc123", "tok", "device-1") is True
        assert handler.requests[0].url == "https://api.test/trial/documents/delete"
        assert handler.last_json == {"slug": "abc123", "editToken": "tok"}


class TestAccountEndpoints:
    """Tests for list, claim, upload and portal requests."""

    def test_list_documents(self):
        handler = Recorder(body={
            "documents": [{
                "slug": "a",
                "title": "A",
                "url": "https://share.jotbird.com/a",
                "source": "obsidian",
                "updatedAt": "2026-10-01T00:00:00Z",
                "expiresAt": "2026-12-30T00:00:00Z",
            }],
            "isPro": True,
        })

        result = call(handler, "list_documents", "jb_key")

        assert result.is_pro is True
        assert [d.slug for d in result.documents] == ["a"]
        assert result.documents[0].updated_at == "2026-10-01T00:00:00Z"

    def test_list_documents_requires_key(self):
        handler = Recorder(body={})

        with pytest.raises(ApiError) as excinfo:
            call(handler, "list_documents", "")

        assert excinfo.value.kind is ErrorKind.VALIDATION
        assert handler.requests == []

    def test_claim_document(self):
        handler = Recorder(body={
            "ok": True,
            "slug": "new",
            "url": "https://share.jotbird.com/new",
            "expiresAt": None,
            "ttlDays": None,
        })

        result = call(handler, "claim_document", "jb_key", "old", "tok")

        assert handler.last_json == {"slug": "old", "editToken": "tok"}
        assert result.slug == "new"
        assert result.ttl_days is None

    def test_upload_image_multipart(self):
        handler = Recorder(body={"url": "https://share.jotbird.com/images/x.png"})

        url = call(handler, "upload_image", "jb_key", b"\x89PNG", "x.png", "image/png")

        request = handler.requests[0]
        assert url == "https://share.jotbird.com/images/x.png"
        assert request.url == "https://api.test/preview/upload-image"
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert b'filename="x.png"' in request.content
        assert b"Content-Type: image/png" in request.content
        assert b"\x89PNG" in request.content

    def test_portal_url(self):
        handler = Recorder(body={"url": "https://billing.test/session"})
        assert call(handler, "get_portal_url", "jb_key") == "https://billing.test/session"
        assert handler.requests[0].url == "https://site.test/api/stripe/portal-key"
        assert handler.last_json == {"apiKey": "jb_key"}

    def test_portal_url_missing(self):
        handler = Recorder(body={})
        with pytest.raises(ApiError, match="No portal URL returned"):
            call(handler, "get_portal_url", "jb_key")


class TestErrors:
    """Tests for error mapping."""

    def test_not_found_json(self):
        handler = Recorder(status=404, body={"error": "Document not found"})

        with pytest.raises(ApiError) as excinfo:
            call(handler, "publish", "jb_key", "# md", "Title", "gone")

        err = excinfo.value
        assert err.kind is ErrorKind.NOT_FOUND
        assert err.status == 404
        assert str(err) == "Publish: Document not found"

    def test_plain_text_body(self):
        handler = Recorder(status=404, text="Not found")

        with pytest.raises(ApiError) as excinfo:
            call(handler, "trial_publish", "device-1", "# md", "Title", "gone")

        assert excinfo.value.message == "Not found"
        assert excinfo.value.is_not_found

    def test_rate_limit(self):
        handler = Recorder(status=429, body={"error": "Too many requests"})
        with pytest.raises(ApiError) as excinfo:
            call(handler, "publish", "jb_key", "# md", "Title")
        assert excinfo.value.kind is ErrorKind.RATE_LIMIT

    def test_payload_too_large(self):
        handler = Recorder(status=413, body={"error": "Too large"})
        with pytest.raises(ApiError) as excinfo:
            call(handler, "upload_image", "jb_key", b"x", "x.png", "image/png")
        assert excinfo.value.kind is ErrorKind.PAYLOAD_TOO_LARGE
        assert str(excinfo.value) == "Image upload: Too large"

    def test_empty_server_error(self):
        handler = Recorder(status=500, text="")
        with pytest.raises(ApiError) as excinfo:
            call(handler, "delete_document", "jb_key", "abc")
        assert excinfo.value.kind is ErrorKind.SERVER
        assert excinfo.value.message == "Request failed with status 500"

    def test_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ApiError) as excinfo:
            call(handler, "claim_document", "jb_key", "a", "tok")

        assert excinfo.value.kind is ErrorKind.NETWORK
        assert excinfo.value.context == "Claim"

    def test_malformed_success_body(self):
        handler = Recorder(body={"url": "https://x"})
        with pytest.raises(ApiError, match="Malformed response"):
            call(handler, "publish", "jb_key", "# md", "Title")

    @pytest.mark.parametrize("status,message,kind", [
        (404, "", ErrorKind.NOT_FOUND),
        (400, "Page not found", ErrorKind.NOT_FOUND),
        (401, "", ErrorKind.AUTH),
        (403, "", ErrorKind.AUTH),
        (400, "bad", ErrorKind.VALIDATION),
        (503, "", ErrorKind.SERVER),
        (418, "", ErrorKind.UNKNOWN),
    ])
    def test_classify_status(self, status, message, kind):
        assert classify_status(status, message) is kind
