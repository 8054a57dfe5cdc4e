"""
Override tokens: подписанные ad-hoc гранты tier-а на universe.

itsdangerous URLSafeTimedSerializer с salt "override-token"; подпись содержит время выпуска,
срок жизни лежит в claims (ttl). Claims: collection_id, tier, ttl, sub (опционально,
привязка к пользователю), jti.
Невалидный/просроченный/чужой токен не ошибка: он просто игнорируется.
"""
from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone

from itsdangerous import BadSignature, SignatureExpired
from pydantic import BaseModel, ValidationError

from studio.access.tiers import AccessTier, normalize_tier
from studio.core.config import settings
from studio.core.signing import OVERRIDE_TOKEN_SALT, dumps_with_ttl, loads_with_ttl, timed_serializer

logger = logging.getLogger(__name__)


class OverrideClaims(BaseModel):
    collection_id: str
    tier: AccessTier
    ttl: int
    sub: str | None = None
    jti: str

    model_config = {"frozen": True, "extra": "ignore"}


def _serializer(secret: str | None, now: datetime | None):
    return timed_serializer(
        secret or settings.override_token_secret,
        OVERRIDE_TOKEN_SALT,
        now=now.timestamp() if now is not None else None,
    )


def issue_override_token(
    collection_id: str,
    tier: AccessTier | str,
    ttl_seconds: int,
    *,
    user_id: str | None = None,
    now: datetime | None = None,
    secret: str | None = None,
) -> str:
    """Выпустить токен. ttl ограничен override_token_max_ttl_seconds."""
    collection_id = str(collection_id or "").strip()
    if not collection_id:
        raise ValueError("collection_id is required")
    if ttl_seconds <= 0:
        raise ValueError("ttl_seconds must be positive")
    ttl_seconds = min(ttl_seconds, settings.override_token_max_ttl_seconds)

    claims = {
        "collection_id": collection_id,
        "tier": normalize_tier(tier).value,
        "sub": user_id,
        "jti": secrets.token_hex(8),
    }
    return dumps_with_ttl(_serializer(secret, now or datetime.now(timezone.utc)), claims, ttl_seconds)


def verify_override_token(
    token: str | None,
    *,
    collection_id: str,
    user_id: str | None,
    now: datetime | None = None,
    secret: str | None = None,
) -> OverrideClaims | None:
    """Claims валидного токена для этой universe/пользователя, иначе None."""
    token = (token or "").strip()
    if not token:
        return None

    try:
        payload = loads_with_ttl(_serializer(secret, now), token)
        claims = OverrideClaims.model_validate(payload)
    except SignatureExpired:
        logger.info("override_token_expired", extra={"collection_id": collection_id})
        return None
    except BadSignature:
        logger.warning("override_token_bad_signature", extra={"collection_id": collection_id})
        return None
    except ValidationError:
        logger.warning("override_token_bad_claims", extra={"collection_id": collection_id})
        return None

    if claims.collection_id != collection_id:
        logger.warning("override_token_foreign_collection", extra={"collection_id": collection_id})
        return None
    if claims.sub is not None and claims.sub != user_id:
        logger.warning("override_token_foreign_user", extra={"collection_id": collection_id, "user_id": user_id})
        return None
    return claims
