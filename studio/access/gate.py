"""
Access gate — только решение, без I/O.

can_access / cap_packet_tier / vault_allowed — чистые тотальные функции.
PreviewTier сюда не проходит: rank() бросает TypeError, так что UI-превью
не может случайно стать реальным доступом.
"""
from __future__ import annotations

from studio.access.classifier import is_vault, required_tier_of
from studio.access.models import AccessDecision, ContentPage
from studio.access.tiers import AccessTier, min_tier, normalize_tier, rank


def can_access(effective: AccessTier | str, required: AccessTier | str) -> bool:
    return rank(effective) >= rank(required)


def cap_packet_tier(effective: AccessTier | str, requested: AccessTier | str) -> AccessTier:
    """Tier used for filtering: never above what the viewer holds or what they asked for."""
    return min_tier(effective, requested)


def vault_allowed(effective: AccessTier | str) -> bool:
    return can_access(effective, AccessTier.PACKAGING)


def decide_packet_access(viewer_tier: AccessTier, requested_tier: AccessTier | str) -> AccessDecision:
    """Может ли viewer получить пакет уровня requested_tier."""
    requested = normalize_tier(requested_tier)
    if not can_access(viewer_tier, requested):
        return AccessDecision(
            allowed=False,
            reason="tier_insufficient",
            viewer_tier=viewer_tier,
            required_tier=requested,
        )
    return AccessDecision(
        allowed=True,
        reason="granted",
        viewer_tier=viewer_tier,
        required_tier=requested,
        capped_tier=cap_packet_tier(viewer_tier, requested),
    )


def decide_page_access(viewer_tier: AccessTier, page: ContentPage) -> AccessDecision:
    """Доступ к одной странице: required tier страницы, для vault ещё и vault_allowed."""
    required = required_tier_of(page)
    if is_vault(page) and not vault_allowed(viewer_tier):
        return AccessDecision(
            allowed=False,
            reason="vault_locked",
            viewer_tier=viewer_tier,
            required_tier=required,
        )
    if not can_access(viewer_tier, required):
        return AccessDecision(
            allowed=False,
            reason="tier_insufficient",
            viewer_tier=viewer_tier,
            required_tier=required,
        )
    return AccessDecision(
        allowed=True,
        reason="granted",
        viewer_tier=viewer_tier,
        required_tier=required,
    )
