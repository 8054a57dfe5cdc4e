"""
Unit-тесты override token: подпись, срок, привязка к universe/пользователю.
"""
import unittest
from datetime import timedelta

from studio.access.tiers import AccessTier
from studio.access.tokens import issue_override_token, verify_override_token
from studio.core.config import settings
from studio.core.signing import ARTIFACT_URL_SALT, OVERRIDE_TOKEN_SALT, dumps_with_ttl, timed_serializer

from conftest import NOW


class TestOverrideTokens(unittest.TestCase):
    def test_issue_and_verify(self):
        token = issue_override_token("u1", "producer", 600, now=NOW)
        claims = verify_override_token(token, collection_id="u1", user_id="anyone", now=NOW)
        self.assertIsNotNone(claims)
        self.assertEqual(claims.tier, AccessTier.PRODUCER)
        self.assertEqual(claims.collection_id, "u1")
        self.assertIsNone(claims.sub)

    def test_expired(self):
        token = issue_override_token("u1", "producer", 600, now=NOW)
        later = NOW + timedelta(seconds=601)
        self.assertIsNone(verify_override_token(token, collection_id="u1", user_id=None, now=later))

    def test_foreign_collection(self):
        token = issue_override_token("u1", "producer", 600, now=NOW)
        self.assertIsNone(verify_override_token(token, collection_id="u2", user_id=None, now=NOW))

    def test_bound_to_user(self):
        token = issue_override_token("u1", "producer", 600, user_id="user-1", now=NOW)
        self.assertIsNotNone(verify_override_token(token, collection_id="u1", user_id="user-1", now=NOW))
        self.assertIsNone(verify_override_token(token, collection_id="u1", user_id="user-2", now=NOW))

    def test_tampered_signature(self):
        token = issue_override_token("u1", "producer", 600, now=NOW)
        body, _, sig = token.rpartition(".")
        forged = f"{body}.{'A' * len(sig)}"
        self.assertIsNone(verify_override_token(forged, collection_id="u1", user_id=None, now=NOW))

    def test_other_secret(self):
        token = issue_override_token("u1", "producer", 600, now=NOW, secret="another-secret-value-123")
        self.assertIsNone(verify_override_token(token, collection_id="u1", user_id=None, now=NOW))

    def test_malformed_and_empty(self):
        for token in (None, "", "no-dot", ".sig", "body."):
            self.assertIsNone(verify_override_token(token, collection_id="u1", user_id=None, now=NOW))

    def test_ttl_capped(self):
        token = issue_override_token("u1", "producer", 10**9, now=NOW)
        claims = verify_override_token(token, collection_id="u1", user_id=None, now=NOW)
        self.assertEqual(claims.ttl, settings.override_token_max_ttl_seconds)
        at_cap = NOW + timedelta(seconds=settings.override_token_max_ttl_seconds + 1)
        self.assertIsNone(verify_override_token(token, collection_id="u1", user_id=None, now=at_cap))

    def test_unknown_tier_issued_as_public(self):
        token = issue_override_token("u1", "gold", 600, now=NOW)
        claims = verify_override_token(token, collection_id="u1", user_id=None, now=NOW)
        self.assertEqual(claims.tier, AccessTier.PUBLIC)

    def test_invalid_arguments(self):
        with self.assertRaises(ValueError):
            issue_override_token("", "producer", 600)
        with self.assertRaises(ValueError):
            issue_override_token("u1", "producer", 0)

    def test_still_valid_until_ttl(self):
        token = issue_override_token("u1", "producer", 600, now=NOW)
        almost = NOW + timedelta(seconds=600)
        self.assertIsNotNone(verify_override_token(token, collection_id="u1", user_id=None, now=almost))

    def test_artifact_url_token_is_not_an_override(self):
        # другой salt: подписанная ссылка на файл не даёт tier
        serializer = timed_serializer(settings.override_token_secret, ARTIFACT_URL_SALT, now=NOW.timestamp())
        token = dumps_with_ttl(
            serializer, {"collection_id": "u1", "tier": "packaging", "jti": "x", "sub": None}, 600
        )
        self.assertIsNone(verify_override_token(token, collection_id="u1", user_id=None, now=NOW))

    def test_signed_garbage_claims(self):
        serializer = timed_serializer(settings.override_token_secret, OVERRIDE_TOKEN_SALT, now=NOW.timestamp())
        for payload in (["not", "a", "dict"], {"collection_id": "u1"}):
            token = serializer.dumps(payload)
            self.assertIsNone(verify_override_token(token, collection_id="u1", user_id=None, now=NOW))
