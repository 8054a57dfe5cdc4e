"""
Packet assembler: (pages, capped tier, mode) -> zip bytes.

Ничего не знает про HTTP, auth и storage. Пустой/битый документ — ошибка с именем файла,
не молчаливый пропуск; ноль документов в архиве — тоже ошибка.
Все записи архива получают фиксированный timestamp: одинаковый вход => одинаковые байты.
"""
from __future__ import annotations

import io
import json
import logging
import zipfile
from dataclasses import dataclass
from typing import Iterable

from studio.access.classifier import required_tier_of, visibility_of
from studio.access.gate import vault_allowed
from studio.access.models import ContentPage
from studio.access.tiers import AccessTier
from studio.errors import ArchiveBuildError, EmptySelection, NotFound
from studio.packets.render import DocumentRenderer, document_name
from studio.packets.selection import select_pages

logger = logging.getLogger(__name__)

ZIP_ENTRY_TIMESTAMP = (1980, 1, 1, 0, 0, 0)
MANIFEST_NAME = "manifest.json"


@dataclass(frozen=True)
class PacketArchive:
    content: bytes
    file_names: tuple[str, ...]
    page_ids: tuple[str, ...]
    vault_included: bool

    @property
    def size(self) -> int:
        return len(self.content)


def _attachment_entry(attachment) -> dict:
    return {
        "kind": attachment.kind,
        "title": attachment.title,
        "url": attachment.url,
        "thumbnail_url": attachment.thumbnail_url,
        "tags": list(attachment.tags),
        "duration_seconds": attachment.duration_seconds,
        "bpm": attachment.bpm,
        "extra": attachment.extra,
    }


def _zip_entry(name: str) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(name, date_time=ZIP_ENTRY_TIMESTAMP)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    return info


class PacketAssembler:
    def __init__(self, renderer: DocumentRenderer, *, min_document_bytes: int = 100) -> None:
        self.renderer = renderer
        self.min_document_bytes = min_document_bytes

    def render_document(self, page: ContentPage, mode: str, name: str) -> bytes:
        try:
            document = self.renderer.render(page, mode)
        except Exception as e:
            raise ArchiveBuildError(f'render failed for "{name}": {e}') from e
        if not document or len(document) < self.min_document_bytes:
            raise ArchiveBuildError(
                f'render returned empty/invalid document for "{name}" (bytes={len(document or b"")})'
            )
        return document

    def build(
        self,
        pages: Iterable[ContentPage],
        *,
        tier: AccessTier,
        mode: str,
        include_vault: bool = False,
        collection_id: str | None = None,
    ) -> PacketArchive:
        """tier — уже capped tier (min(viewer, requested))."""
        pages = list(pages)
        if not any(p.is_published for p in pages):
            raise NotFound("No pages available")

        selected = select_pages(pages, tier, include_vault)
        if not selected:
            logger.info(
                "packet_empty_selection",
                extra={"collection_id": collection_id, "capped_tier": tier.value, "pages": len(pages)},
            )
            raise EmptySelection("No pages available")

        vault_included = include_vault and vault_allowed(tier)
        manifest_pages = []
        file_names = []
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
            for index, page in enumerate(selected, start=1):
                name = document_name(index, page)
                archive.writestr(_zip_entry(name), self.render_document(page, mode, name))
                file_names.append(name)
                manifest_pages.append({
                    "file": name,
                    "id": page.id,
                    "title": page.title,
                    "page_type": page.page_type,
                    "required_tier": required_tier_of(page).value,
                    "visibility": visibility_of(page).value,
                    "attachments": [_attachment_entry(a) for a in page.attachments],
                })

            if not file_names:
                raise ArchiveBuildError("No documents were added to the archive")

            manifest = {
                "collection_id": collection_id,
                "packet_tier": tier.value,
                "mode": mode,
                "vault_included": vault_included,
                "pages": manifest_pages,
            }
            archive.writestr(
                _zip_entry(MANIFEST_NAME),
                json.dumps(manifest, ensure_ascii=False, indent=2, sort_keys=True, default=str),
            )

        content = buffer.getvalue()
        logger.info(
            "packet_zip_built",
            extra={"collection_id": collection_id, "capped_tier": tier.value, "mode": mode,
                   "pages": len(file_names), "bytes": len(content)},
        )
        return PacketArchive(
            content=content,
            file_names=tuple(file_names),
            page_ids=tuple(p.id for p in selected),
            vault_included=vault_included,
        )
