"""
Display layer: что показать пользователю на странице universe.

locked считается только от viewer_tier. preview_locked — как страница выглядела бы при
выбранном в UI preview tier; это подсказка для витрины, доступ он не даёт.
Vault-страницы без права на vault отдаются только счётчиком, без заголовков.
"""
from __future__ import annotations

from typing import Iterable

from studio.access.classifier import is_vault, required_tier_of
from studio.access.gate import can_access, vault_allowed
from studio.access.models import ContentPage, ViewerAccess
from studio.access.tiers import TIER_RANK
from studio.packets.selection import page_sort_key
from studio.schemas.studio import AccessOverviewOut, PageAccessOut


def build_access_overview(
    collection_id: str,
    access: ViewerAccess,
    pages: Iterable[ContentPage],
) -> AccessOverviewOut:
    viewer_tier = access.viewer_tier
    preview_rank = TIER_RANK[access.preview_tier.tier]
    allow_vault = vault_allowed(viewer_tier)

    items: list[PageAccessOut] = []
    vault_locked = 0
    for page in sorted((p for p in pages if p.is_published), key=page_sort_key):
        if is_vault(page) and not allow_vault:
            vault_locked += 1
            continue
        required = required_tier_of(page)
        items.append(
            PageAccessOut(
                id=page.id,
                title=page.title,
                page_type=page.page_type,
                required_tier=required.value,
                locked=not can_access(viewer_tier, required),
                preview_locked=preview_rank < TIER_RANK[required],
            )
        )

    return AccessOverviewOut(
        collection_id=collection_id,
        viewer_tier=viewer_tier.value,
        preview_tier=access.preview_tier.value,
        vault_allowed=allow_vault,
        vault_locked_count=vault_locked,
        pages=items,
    )
