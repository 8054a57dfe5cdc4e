"""
Аудит скачиваний: одна запись на каждую попытку (granted или denied).
Запись best-effort: падение sink-а логируется warning-ом и никогда не валит запрос.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Literal

from pydantic import BaseModel, Field

from studio.access.tiers import AccessTier
from studio.utils.metrics import audit_write_failures_total

logger = logging.getLogger(__name__)

DownloadKind = Literal["packet_zip", "page_document"]


class AuditRecord(BaseModel):
    collection_id: str | None = None
    user_id: str | None = None
    download_kind: DownloadKind = "packet_zip"
    page_id: str | None = None
    viewer_tier: AccessTier = AccessTier.PUBLIC
    required_tier: AccessTier = AccessTier.PUBLIC
    packet_tier: AccessTier | None = None
    is_locked: bool = False
    share_token: str | None = None
    file_path: str | None = None
    file_size_bytes: int | None = None
    status_code: int | None = None
    ip: str | None = None
    user_agent: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": True}


AuditSink = Callable[[AuditRecord], object]


def record_download(sink: AuditSink, record: AuditRecord) -> bool:
    """Записать попытку скачивания. False — если sink упал (запрос при этом продолжается)."""
    logger.info(
        "studio_download",
        extra={
            "collection_id": record.collection_id,
            "user_id": record.user_id,
            "page_id": record.page_id,
            "viewer_tier": record.viewer_tier.value,
            "packet_tier": record.packet_tier.value if record.packet_tier else None,
            "status_code": record.status_code,
            "bytes": record.file_size_bytes,
        },
    )
    try:
        sink(record)
        return True
    except Exception as e:
        audit_write_failures_total.inc()
        logger.warning(
            "studio_download_log_failed",
            extra={"collection_id": record.collection_id, "error": str(e)},
        )
        return False


class AttemptAuditor:
    """
    Ровно одна запись аудита на попытку: первая запись выигрывает, остальные игнорируются.
    Нужен, когда пайплайн дорабатывает в фоне после таймаута.
    """

    def __init__(self, sink: AuditSink) -> None:
        self._sink = sink
        self._lock = threading.Lock()
        self._written: AuditRecord | None = None

    @property
    def written(self) -> AuditRecord | None:
        return self._written

    def write(self, record: AuditRecord) -> bool:
        """True if this call claimed the attempt's audit slot."""
        with self._lock:
            if self._written is not None:
                return False
            self._written = record
        record_download(self._sink, record)
        return True
