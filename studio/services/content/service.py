"""
Чтение опубликованного контента universe. ORM-строки -> ContentPage снимки.
visibility и access_tier живут в metadata страницы (как их пишет админка).
"""
import json
import logging
from typing import Any

from sqlalchemy.orm import Session

from studio.access.models import Attachment, ContentPage
from studio.models.content import StudioMedia, StudioPage, Universe

logger = logging.getLogger(__name__)

PUBLISHED = "published"


def _tags(value: Any) -> tuple[str, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(str(t).strip() for t in value if str(t).strip())
    if isinstance(value, str):
        return tuple(t.strip() for t in value.split(",") if t.strip())
    return ()


def to_attachment(media: StudioMedia) -> Attachment:
    return Attachment(
        kind=(media.kind or "link").strip().lower(),
        url=media.url,
        title=media.title or "",
        thumbnail_url=media.thumbnail_url,
        tags=_tags(media.tags),
        duration_seconds=media.duration_seconds,
        bpm=media.bpm,
        extra=dict(media.extra or {}),
    )


def _metadata(row: StudioPage) -> dict[str, Any]:
    """metadata как dict; старые строки админки хранят его JSON-строкой."""
    raw = row.page_metadata
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("studio_page_metadata_invalid", extra={"page_id": row.id, "collection_id": row.universe_id})
            return {}
    return raw if isinstance(raw, dict) else {}


def to_content_page(row: StudioPage) -> ContentPage:
    md = _metadata(row)
    return ContentPage(
        id=row.id,
        collection_id=row.universe_id,
        page_type=row.page_type or "",
        title=row.title or "",
        status=row.status or "draft",
        sort_order=row.sort_order,
        updated_at=row.updated_at,
        visibility=md.get("visibility"),
        access_tier=md.get("access_tier"),
        content_html=row.content_html,
        content_md=row.content_md,
        metadata=dict(md),
        attachments=tuple(to_attachment(m) for m in (row.media or [])),
    )


class ContentRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def exists(self, collection_id: str) -> bool:
        return self.db.query(Universe.id).filter(Universe.id == collection_id).first() is not None

    def list_published(self, collection_id: str) -> list[ContentPage]:
        rows = (
            self.db.query(StudioPage)
            .filter(StudioPage.universe_id == collection_id, StudioPage.status == PUBLISHED)
            .all()
        )
        return [to_content_page(row) for row in rows]

    def get_published_page(self, collection_id: str, page_type: str) -> ContentPage | None:
        row = (
            self.db.query(StudioPage)
            .filter(
                StudioPage.universe_id == collection_id,
                StudioPage.page_type == page_type,
                StudioPage.status == PUBLISHED,
            )
            .order_by(StudioPage.updated_at.desc())
            .first()
        )
        return to_content_page(row) if row else None
