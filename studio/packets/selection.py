"""
Отбор страниц для пакета: published -> vault gate -> tier gate -> стабильная сортировка.
Детерминированный порядок обязателен: от него зависят имена файлов в архиве.
"""
from __future__ import annotations

from typing import Iterable

from studio.access.classifier import is_vault, required_tier_of
from studio.access.gate import can_access, vault_allowed
from studio.access.models import ContentPage, as_utc
from studio.access.tiers import AccessTier

MISSING_SORT_ORDER = 9999


def page_sort_key(page: ContentPage) -> tuple[int, float, str]:
    """sort_order asc, updated_at desc, title asc."""
    order = page.sort_order if page.sort_order is not None else MISSING_SORT_ORDER
    updated = as_utc(page.updated_at)
    updated_ts = updated.timestamp() if updated else 0.0
    return (order, -updated_ts, (page.title or "").strip())


def select_pages(
    pages: Iterable[ContentPage],
    capped_tier: AccessTier,
    include_vault: bool = False,
) -> list[ContentPage]:
    allow_vault = include_vault and vault_allowed(capped_tier)
    selected = []
    for page in pages:
        if not page.is_published:
            continue
        if is_vault(page) and not allow_vault:
            continue
        if not can_access(capped_tier, required_tier_of(page)):
            continue
        selected.append(page)
    return sorted(selected, key=page_sort_key)
