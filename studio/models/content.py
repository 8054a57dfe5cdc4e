"""
Content models — universes (коллекции), studio pages и их медиа-вложения.
Создаются админкой; ядро пакетов только читает опубликованные страницы.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from studio.db.base import Base


class Universe(Base):
    __tablename__ = "studio_universes"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    slug = Column(String, unique=True, nullable=False)
    title = Column(String, nullable=False, default="")
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )


class StudioPage(Base):
    __tablename__ = "studio_pages"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    universe_id = Column(String, ForeignKey("studio_universes.id"), nullable=False, index=True)
    page_type = Column(String, nullable=False)                # logline / series_bible / ...
    title = Column(String, nullable=False, default="")
    status = Column(String, nullable=False, default="draft")  # draft / published
    sort_order = Column(Integer, nullable=True)
    content_md = Column(Text, nullable=True)
    content_html = Column(Text, nullable=True)
    # visibility (public / vault), access_tier (явный override), запасные поля тела
    page_metadata = Column("metadata", JSONB, nullable=False, default=dict)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    media = relationship(
        "StudioMedia",
        order_by="StudioMedia.sort_order",
        lazy="selectin",
    )


class StudioMedia(Base):
    __tablename__ = "studio_media"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    page_id = Column(String, ForeignKey("studio_pages.id"), nullable=False, index=True)
    kind = Column(String, nullable=False)  # image / video / audio / document / link
    title = Column(String, nullable=False, default="")
    url = Column(String, nullable=False)
    thumbnail_url = Column(String, nullable=True)
    tags = Column(JSONB, nullable=False, default=list)
    duration_seconds = Column(Float, nullable=True)  # video / audio
    bpm = Column(Integer, nullable=True)             # audio
    extra = Column(JSONB, nullable=False, default=dict)
    sort_order = Column(Integer, nullable=False, default=0)
