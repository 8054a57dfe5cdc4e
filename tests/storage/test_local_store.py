"""
LocalArtifactStore: атомарная запись, подписанные ссылки, защита от path traversal.
"""
import unittest
import tempfile
from pathlib import Path
from urllib.parse import parse_qs, urlparse

from studio.core.signing import OVERRIDE_TOKEN_SALT, dumps_with_ttl, timed_serializer
from studio.storage.base import ArtifactStoreError, packet_path, page_path
from studio.storage.local import LocalArtifactStore

SECRET = "test-artifact-signing-secret"


class TestPaths(unittest.TestCase):
    def test_packet_path(self):
        self.assertEqual(packet_path("u1", "full", "producer", False), "studios/u1/packets/full/producer.zip")
        self.assertEqual(
            packet_path("u1", "preview", "packaging", True), "studios/u1/packets/preview/packaging.vault.zip"
        )

    def test_page_path(self):
        self.assertEqual(page_path("u1", "full", "logline"), "studios/u1/pages/full/logline.html")


class TestLocalArtifactStore(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(self._tmp.name)
        self.store = LocalArtifactStore(str(self.base), "http://testserver/api/studio/artifacts/", SECRET)

    def tearDown(self):
        self._tmp.cleanup()

    def test_put_overwrites(self):
        path = "studios/u1/packets/full/producer.zip"
        self.store.put(path, b"first", "application/zip")
        self.store.put(path, b"second", "application/zip")
        self.assertEqual((self.base / path).read_bytes(), b"second")
        leftovers = [p.name for p in (self.base / "studios/u1/packets/full").iterdir()]
        self.assertEqual(leftovers, ["producer.zip"])

    def test_signed_url_verifies(self):
        path = "studios/u1/packets/full/producer.zip"
        self.store.put(path, b"zip", "application/zip")
        url = self.store.signed_url(path, 600, now=1_000_000)

        parsed = urlparse(url)
        self.assertEqual(parsed.path, f"/api/studio/artifacts/{path}")
        token = parse_qs(parsed.query)["token"][0]

        self.assertTrue(self.store.verify_signature(path, token, now=1_000_100))
        self.assertTrue(self.store.verify_signature(path, token, now=1_000_600))
        self.assertFalse(self.store.verify_signature(path, token, now=1_000_601))
        self.assertFalse(self.store.verify_signature("studios/u2/packets/full/producer.zip", token, now=1_000_100))
        payload, _, sig = token.rpartition(".")
        forged = f"{payload}.{'B' if sig[0] == 'A' else 'A'}{sig[1:]}"
        self.assertFalse(self.store.verify_signature(path, forged, now=1_000_100))
        self.assertFalse(self.store.verify_signature(path, "", now=1_000_100))

    def test_other_store_secret_rejected(self):
        path = "studios/u1/packets/full/producer.zip"
        self.store.put(path, b"zip", "application/zip")
        other = LocalArtifactStore(str(self.base), "http://testserver/api/studio/artifacts/", "another-signing-secret")
        token = parse_qs(urlparse(other.signed_url(path, 600, now=1_000_000)).query)["token"][0]
        self.assertFalse(self.store.verify_signature(path, token, now=1_000_100))

    def test_override_token_is_not_a_download_link(self):
        path = "studios/u1/packets/full/producer.zip"
        serializer = timed_serializer(SECRET, OVERRIDE_TOKEN_SALT, now=1_000_000)
        token = dumps_with_ttl(serializer, {"path": path}, 600)
        self.assertFalse(self.store.verify_signature(path, token, now=1_000_100))

    def test_signing_missing_artifact_fails(self):
        with self.assertRaises(ArtifactStoreError):
            self.store.signed_url("studios/u1/packets/full/none.zip", 600)

    def test_traversal_rejected(self):
        for path in ("../outside.zip", "studios/../../etc/passwd"):
            with self.assertRaises(ArtifactStoreError):
                self.store.resolve(path)
        with self.assertRaises(ArtifactStoreError):
            self.store.put("../escape.zip", b"x", "application/zip")
