"""
Доступ к контенту studio (внутренняя библиотека).
Decision (tiers / classifier / gate) отделён от I/O; entitlement-ы приходят через EntitlementSource.
"""
from studio.access.audit import AttemptAuditor, AuditRecord, record_download
from studio.access.classifier import (
    PAGE_TYPE_DEFAULT_TIER,
    Visibility,
    is_vault,
    required_tier_of,
    visibility_of,
)
from studio.access.entitlements import EntitlementResolver, effective_tier
from studio.access.gate import (
    can_access,
    cap_packet_tier,
    decide_packet_access,
    decide_page_access,
    vault_allowed,
)
from studio.access.models import (
    AccessDecision,
    Attachment,
    ContentPage,
    EntitlementGrant,
    PacketRequest,
    ViewerAccess,
)
from studio.access.tiers import AccessTier, PreviewTier, at_least, normalize_tier, rank
from studio.access.tokens import OverrideClaims, issue_override_token, verify_override_token

__all__ = [
    "AccessDecision",
    "AccessTier",
    "Attachment",
    "AttemptAuditor",
    "AuditRecord",
    "ContentPage",
    "EntitlementGrant",
    "EntitlementResolver",
    "OverrideClaims",
    "PAGE_TYPE_DEFAULT_TIER",
    "PacketRequest",
    "PreviewTier",
    "ViewerAccess",
    "Visibility",
    "at_least",
    "can_access",
    "cap_packet_tier",
    "decide_packet_access",
    "decide_page_access",
    "effective_tier",
    "is_vault",
    "issue_override_token",
    "normalize_tier",
    "rank",
    "record_download",
    "required_tier_of",
    "vault_allowed",
    "verify_override_token",
]
