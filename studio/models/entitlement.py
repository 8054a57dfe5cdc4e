"""
Entitlement model — купленный доступ пользователя к universe на уровне tier.
Несколько строк на (user, universe) допустимы; эффективный tier — максимум по активным.
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, String

from studio.db.base import Base


class Entitlement(Base):
    __tablename__ = "studio_entitlements"
    __table_args__ = (Index("ix_studio_entitlements_user_universe", "user_id", "universe_id"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String, nullable=False)
    universe_id = Column(String, nullable=False)
    tier = Column(String, nullable=False, default="public")   # public / priority / producer / packaging
    status = Column(String, nullable=False, default="active")  # active / canceled / refunded
    expires_at = Column(DateTime(timezone=True), nullable=True)
    source = Column(String, nullable=True)                      # checkout session id и т.п.
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
