from sqlalchemy.orm import Session

from studio.access.audit import AuditRecord
from studio.models.download_log import DownloadLog


class DownloadLogService:
    """Insert-only writer for studio_download_logs. Errors propagate; callers decide."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def append(self, record: AuditRecord) -> DownloadLog:
        entry = DownloadLog(
            universe_id=record.collection_id,
            user_id=record.user_id,
            download_kind=record.download_kind,
            page_id=record.page_id,
            viewer_tier=record.viewer_tier.value,
            required_tier=record.required_tier.value,
            packet_tier=record.packet_tier.value if record.packet_tier else None,
            is_locked=record.is_locked,
            share_token=record.share_token,
            file_path=record.file_path,
            file_size_bytes=record.file_size_bytes,
            status_code=record.status_code,
            ip=record.ip,
            user_agent=record.user_agent,
            created_at=record.created_at,
        )
        try:
            self.db.add(entry)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return entry

    __call__ = append
