from sqlalchemy.orm import Session

from studio.access.models import EntitlementGrant
from studio.models.entitlement import Entitlement


class EntitlementRepository:
    """All entitlement rows for (user, universe); activity is decided by the resolver."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def list_for(self, user_id: str, collection_id: str) -> list[EntitlementGrant]:
        rows = (
            self.db.query(Entitlement)
            .filter(
                Entitlement.user_id == user_id,
                Entitlement.universe_id == collection_id,
            )
            .order_by(Entitlement.updated_at.desc())
            .all()
        )
        return [
            EntitlementGrant(
                tier=row.tier or "public",
                status=row.status or "",
                expires_at=row.expires_at,
                updated_at=row.updated_at,
            )
            for row in rows
        ]
