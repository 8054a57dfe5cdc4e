from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Integer, String

from studio.db.base import Base


class DownloadLog(Base):
    """Append-only: one row per download attempt, granted or denied."""

    __tablename__ = "studio_download_logs"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    universe_id = Column(String, nullable=True, index=True)
    user_id = Column(String, nullable=True)
    download_kind = Column(String, nullable=False)  # packet_zip / page_document
    page_id = Column(String, nullable=True)
    viewer_tier = Column(String, nullable=False)
    required_tier = Column(String, nullable=False)
    packet_tier = Column(String, nullable=True)
    is_locked = Column(Boolean, nullable=False, default=False)
    share_token = Column(String, nullable=True)
    file_path = Column(String, nullable=True)
    file_size_bytes = Column(BigInteger, nullable=True)
    status_code = Column(Integer, nullable=True)
    ip = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
