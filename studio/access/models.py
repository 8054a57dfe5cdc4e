"""
DTO доступа: снимки страниц/вложений/entitlement-ов (вход чистой логики) и решения гейта.
ORM-строки конвертируются сюда в репозиториях; логика доступа не видит SQLAlchemy.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

from studio.access.tiers import AccessTier, PreviewTier


def as_utc(value: datetime | None) -> datetime | None:
    """Naive datetimes from the store are treated as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ----- Контент -----


class Attachment(BaseModel):
    """Typed media reference attached to a page."""

    kind: str  # image / video / audio / document / link
    url: str
    title: str = ""
    thumbnail_url: str | None = None
    tags: tuple[str, ...] = ()
    duration_seconds: float | None = None
    bpm: int | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    model_config = {"frozen": True}


class ContentPage(BaseModel):
    """Read-only snapshot of a studio page as the packet core sees it."""

    id: str
    collection_id: str
    page_type: str = ""
    title: str = ""
    status: str = "draft"
    sort_order: int | None = None
    updated_at: datetime | None = None
    # Сырые значения из metadata; интерпретирует только classifier
    visibility: str | None = None
    access_tier: str | None = None
    content_html: str | None = None
    content_md: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    attachments: tuple[Attachment, ...] = ()

    model_config = {"frozen": True}

    @field_validator("visibility", "access_tier", mode="before")
    @classmethod
    def stringify_raw(cls, v: Any) -> str | None:
        """Числа, bool и прочее из JSON становятся строкой; classifier их не узнает."""
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @property
    def is_published(self) -> bool:
        return (self.status or "").strip().lower() == "published"


# ----- Entitlements -----


class EntitlementGrant(BaseModel):
    """One stored entitlement row for (user, collection)."""

    tier: str
    status: str = "active"
    expires_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"frozen": True}

    def is_active(self, now: datetime) -> bool:
        if (self.status or "").strip().lower() != "active":
            return False
        expires_at = as_utc(self.expires_at)
        return expires_at is None or expires_at > as_utc(now)


class ViewerAccess(BaseModel):
    """
    Итог резолва для запроса: viewer_tier — единственный источник истины для доступа,
    preview_tier — только для UI.
    """

    viewer_tier: AccessTier
    preview_tier: PreviewTier
    override_token_id: str | None = None

    model_config = {"frozen": True}


# ----- Запрос пакета и решения гейта -----


class PacketRequest(BaseModel):
    """Parameters of one packet build."""

    collection_id: str
    tier: AccessTier = AccessTier.PRODUCER
    mode: str = "full"
    include_vault: bool = False

    model_config = {"frozen": True}


class AccessDecision(BaseModel):
    """Результат гейта: allowed + причина. capped_tier заполнен только для пакетов."""

    allowed: bool
    reason: str = Field(..., description="granted / tier_insufficient / vault_locked")
    viewer_tier: AccessTier
    required_tier: AccessTier
    capped_tier: AccessTier | None = None

    model_config = {"frozen": True}
