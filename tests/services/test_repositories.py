"""Tests for DB-backed repositories and the download log writer (MagicMock sessions)."""
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from studio.access.audit import AuditRecord
from studio.access.classifier import is_vault, required_tier_of
from studio.access.tiers import AccessTier
from studio.models.download_log import DownloadLog
from studio.services.audit.service import DownloadLogService
from studio.services.content.service import ContentRepository, to_content_page
from studio.services.entitlements.service import EntitlementRepository


def _media(**kwargs):
    m = MagicMock()
    m.kind = kwargs.get("kind", "Audio ")
    m.url = kwargs.get("url", "https://cdn.test/theme.mp3")
    m.title = kwargs.get("title", "Main theme")
    m.thumbnail_url = kwargs.get("thumbnail_url", None)
    m.tags = kwargs.get("tags", "hero, villain")
    m.duration_seconds = kwargs.get("duration_seconds", 92.5)
    m.bpm = kwargs.get("bpm", 120)
    m.extra = kwargs.get("extra", None)
    return m


def _page_row(**kwargs):
    row = MagicMock()
    row.id = kwargs.get("id", "p1")
    row.universe_id = kwargs.get("universe_id", "u1")
    row.page_type = kwargs.get("page_type", "themes_main_hero_villain")
    row.title = kwargs.get("title", "Themes")
    row.status = kwargs.get("status", "published")
    row.sort_order = kwargs.get("sort_order", 3)
    row.updated_at = kwargs.get("updated_at", datetime(2025, 5, 1, tzinfo=timezone.utc))
    row.content_md = kwargs.get("content_md", "Body")
    row.content_html = kwargs.get("content_html", None)
    row.page_metadata = kwargs.get("page_metadata", {"visibility": "vault", "access_tier": "producer"})
    row.media = kwargs.get("media", [_media()])
    return row


def _grant_row(**kwargs):
    row = MagicMock()
    row.tier = kwargs.get("tier", "producer")
    row.status = kwargs.get("status", "active")
    row.expires_at = kwargs.get("expires_at", None)
    row.updated_at = kwargs.get("updated_at", None)
    return row


class TestContentRepository:
    def test_to_content_page_reads_metadata(self):
        page = to_content_page(_page_row())
        assert page.collection_id == "u1"
        assert page.visibility == "vault"
        assert page.access_tier == "producer"
        assert page.is_published
        attachment = page.attachments[0]
        assert attachment.kind == "audio"
        assert attachment.tags == ("hero", "villain")
        assert attachment.bpm == 120
        assert attachment.extra == {}

    def test_non_dict_metadata_tolerated(self):
        page = to_content_page(_page_row(page_metadata=None, media=None))
        assert page.visibility is None
        assert page.metadata == {}
        assert page.attachments == ()

    def test_json_string_metadata_is_parsed(self):
        row = _page_row(
            page_type="mystery_page",
            page_metadata='{"visibility": "vault", "access_tier": "packaging"}',
        )
        page = to_content_page(row)
        assert page.visibility == "vault"
        assert is_vault(page)
        assert required_tier_of(page) == AccessTier.PACKAGING
        assert page.metadata == {"visibility": "vault", "access_tier": "packaging"}

    def test_unparseable_or_non_object_string_metadata(self):
        for raw in ("{not json", '["vault"]', '"vault"'):
            page = to_content_page(_page_row(page_metadata=raw))
            assert page.visibility is None
            assert page.metadata == {}

    def test_non_string_metadata_values_do_not_break_the_page(self):
        row = _page_row(page_type="mystery_page", page_metadata={"access_tier": 3, "visibility": True})
        page = to_content_page(row)
        assert page.access_tier == "3"
        assert page.visibility == "True"
        assert not is_vault(page)
        assert required_tier_of(page) == AccessTier.PUBLIC

    def test_list_published_survives_odd_metadata(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.all.return_value = [
            _page_row(),
            _page_row(id="p2", page_metadata={"access_tier": 3, "visibility": True}),
            _page_row(id="p3", page_metadata='{"visibility": "vault"}'),
        ]
        pages = ContentRepository(db).list_published("u1")
        assert [p.id for p in pages] == ["p1", "p2", "p3"]
        assert is_vault(pages[2])


    def test_list_published(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.all.return_value = [_page_row(), _page_row(id="p2")]
        pages = ContentRepository(db).list_published("u1")
        assert [p.id for p in pages] == ["p1", "p2"]

    def test_get_published_page_missing(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.order_by.return_value.first.return_value = None
        assert ContentRepository(db).get_published_page("u1", "logline") is None

    def test_exists(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.first.return_value = ("u1",)
        assert ContentRepository(db).exists("u1") is True
        db.query.return_value.filter.return_value.first.return_value = None
        assert ContentRepository(db).exists("u2") is False


class TestEntitlementRepository:
    def test_list_for_maps_rows(self):
        db = MagicMock()
        db.query.return_value.filter.return_value.order_by.return_value.all.return_value = [
            _grant_row(),
            _grant_row(tier=None, status=None),
        ]
        grants = EntitlementRepository(db).list_for("user-1", "u1")
        assert grants[0].tier == "producer"
        assert grants[0].status == "active"
        assert grants[1].tier == "public"
        assert grants[1].status == ""


class TestDownloadLogService:
    def _record(self):
        return AuditRecord(
            collection_id="u1",
            user_id="user-1",
            viewer_tier=AccessTier.PRIORITY,
            required_tier=AccessTier.PRODUCER,
            packet_tier=AccessTier.PRODUCER,
            is_locked=True,
            status_code=403,
            share_token="packet:producer",
        )

    def test_append_maps_record(self):
        db = MagicMock()
        entry = DownloadLogService(db).append(self._record())
        db.add.assert_called_once()
        db.commit.assert_called_once()
        assert isinstance(entry, DownloadLog)
        assert entry.universe_id == "u1"
        assert entry.viewer_tier == "priority"
        assert entry.packet_tier == "producer"
        assert entry.is_locked is True
        assert entry.download_kind == "packet_zip"

    def test_append_rolls_back_and_raises(self):
        db = MagicMock()
        db.commit.side_effect = RuntimeError("db down")
        with pytest.raises(RuntimeError):
            DownloadLogService(db)(self._record())
        db.rollback.assert_called_once()
