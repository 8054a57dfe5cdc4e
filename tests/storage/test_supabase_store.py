"""Supabase storage backend over a mocked httpx client."""
from unittest.mock import MagicMock, patch

import httpx
import pytest

from studio.storage.base import ArtifactStoreError
from studio.storage.supabase import SupabaseArtifactStore


@pytest.fixture(autouse=True)
def fresh_breakers():
    with patch.dict("studio.services.circuit_breaker._breakers", clear=True):
        yield


@pytest.fixture
def store():
    s = SupabaseArtifactStore("https://proj.supabase.co/", "service-key", "studio")
    s._client = MagicMock()
    return s


def _response(status_code=200, payload=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload or {}
    return resp


class TestPut:
    def test_upload_with_upsert(self, store):
        store.client.post.return_value = _response()
        store.put("studios/u1/packets/full/producer.zip", b"zip", "application/zip")

        url = store.client.post.call_args.args[0]
        kwargs = store.client.post.call_args.kwargs
        assert url == "https://proj.supabase.co/storage/v1/object/studio/studios/u1/packets/full/producer.zip"
        assert kwargs["content"] == b"zip"
        assert kwargs["headers"]["x-upsert"] == "true"
        assert kwargs["headers"]["Content-Type"] == "application/zip"

    def test_http_error_status(self, store):
        store.client.post.return_value = _response(500)
        with pytest.raises(ArtifactStoreError, match="HTTP 500"):
            store.put("a.zip", b"zip", "application/zip")

    def test_network_error(self, store):
        store.client.post.side_effect = httpx.ConnectError("boom")
        with pytest.raises(ArtifactStoreError, match="ConnectError"):
            store.put("a.zip", b"zip", "application/zip")


class TestSignedUrl:
    def test_relative_signed_url_is_prefixed(self, store):
        store.client.post.return_value = _response(
            payload={"signedURL": "/object/sign/studio/a.zip?token=abc"}
        )
        url = store.signed_url("a.zip", 600)
        assert url == "https://proj.supabase.co/storage/v1/object/sign/studio/a.zip?token=abc"
        assert store.client.post.call_args.kwargs["json"] == {"expiresIn": 600}
        assert store.client.post.call_args.args[0].endswith("/storage/v1/object/sign/studio/a.zip")

    def test_absolute_signed_url_kept(self, store):
        store.client.post.return_value = _response(payload={"signedURL": "https://cdn.test/a.zip?token=abc"})
        assert store.signed_url("a.zip", 600) == "https://cdn.test/a.zip?token=abc"

    def test_empty_signed_url(self, store):
        store.client.post.return_value = _response(payload={})
        with pytest.raises(ArtifactStoreError, match="empty signedURL"):
            store.signed_url("a.zip", 600)


def test_client_carries_service_key():
    s = SupabaseArtifactStore("https://proj.supabase.co", "service-key", "studio")
    assert s.client.headers["apikey"] == "service-key"
    assert s.client.headers["authorization"] == "Bearer service-key"
