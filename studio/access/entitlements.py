"""
Entitlement resolver: эффективный tier пользователя для universe.

effective = max(rank) по активным entitlement-ам (status == active и срок не истёк),
плюс валидный override token (тоже по максимуму). Нет активных — public; это нормальное
состояние «нет доступа», не ошибка. Результат не кешируется дольше одного запроса:
entitlement-ы истекают, и tier может только падать со временем.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Protocol

from studio.access.models import EntitlementGrant, ViewerAccess
from studio.access.tiers import AccessTier, PreviewTier, max_tier, normalize_tier
from studio.access.tokens import OverrideClaims, verify_override_token

logger = logging.getLogger(__name__)


class EntitlementSource(Protocol):
    def list_for(self, user_id: str, collection_id: str) -> list[EntitlementGrant]:
        ...


TokenVerifier = Callable[..., "OverrideClaims | None"]


def effective_tier(
    grants: Iterable[EntitlementGrant],
    now: datetime,
    override: OverrideClaims | None = None,
) -> AccessTier:
    """Pure: maximum rank among active grants (and a verified override), else public."""
    tiers = [normalize_tier(g.tier) for g in grants if g.is_active(now)]
    if override is not None:
        tiers.append(override.tier)
    return max_tier(tiers)


class EntitlementResolver:
    def __init__(
        self,
        source: EntitlementSource,
        *,
        token_verifier: TokenVerifier = verify_override_token,
    ) -> None:
        self.source = source
        self._verify_token = token_verifier

    def effective_tier(
        self,
        user_id: str,
        collection_id: str,
        now: datetime | None = None,
        override_token: str | None = None,
    ) -> AccessTier:
        return self.resolve(user_id, collection_id, now=now, override_token=override_token).viewer_tier

    def resolve(
        self,
        user_id: str,
        collection_id: str,
        *,
        now: datetime | None = None,
        override_token: str | None = None,
        preview: object = None,
    ) -> ViewerAccess:
        """
        Viewer tier (для доступа) и preview tier (для UI) — два разных значения.
        preview берётся из запроса как есть и никогда не поднимает viewer_tier.
        """
        current = now or datetime.now(timezone.utc)
        grants = self.source.list_for(user_id, collection_id)
        claims = None
        if override_token:
            claims = self._verify_token(
                override_token,
                collection_id=collection_id,
                user_id=user_id,
                now=current,
            )
        viewer_tier = effective_tier(grants, current, claims)
        logger.info(
            "entitlement_resolved",
            extra={
                "user_id": user_id,
                "collection_id": collection_id,
                "viewer_tier": viewer_tier.value,
            },
        )
        return ViewerAccess(
            viewer_tier=viewer_tier,
            preview_tier=PreviewTier.from_query(preview, default=viewer_tier),
            override_token_id=claims.jti if claims else None,
        )
