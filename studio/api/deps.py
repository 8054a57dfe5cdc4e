"""
Wiring of studio routes to their collaborators.
Everything here is a FastAPI dependency so tests can swap it via app.dependency_overrides.
"""
from contextlib import contextmanager
from functools import lru_cache
from typing import Callable, Iterator

from fastapi import Request

from studio.access.audit import AuditRecord
from studio.core.config import settings
from studio.db.session import session_scope
from studio.packets.assembler import PacketAssembler
from studio.packets.handler import ClientInfo, PacketRequestHandler, Repositories
from studio.packets.render import DocumentRenderer
from studio.services.audit.service import DownloadLogService
from studio.services.content.service import ContentRepository
from studio.services.entitlements.service import EntitlementRepository
from studio.services.identity.client import IdentityClient
from studio.storage.base import ArtifactStore
from studio.storage.factory import get_artifact_store


def get_client_ip(request: Request) -> str:
    """Client IP (X-Forwarded-For is honoured only from a trusted proxy in production)."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and settings.app_env == "production":
        trusted = settings.trusted_proxy_ips_set
        if trusted and request.client and request.client.host in trusted:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "127.0.0.1"


def get_client_info(request: Request) -> ClientInfo:
    return ClientInfo(ip=get_client_ip(request), user_agent=request.headers.get("User-Agent"))


@contextmanager
def db_repositories() -> Iterator[Repositories]:
    """Own session per pipeline: it may outlive the request after a hard timeout."""
    with session_scope() as db:
        yield Repositories(entitlements=EntitlementRepository(db), content=ContentRepository(db))


def db_audit_sink(record: AuditRecord) -> None:
    with session_scope() as db:
        DownloadLogService(db).append(record)


@lru_cache(maxsize=1)
def get_identity_client() -> IdentityClient:
    return IdentityClient()


def get_identity() -> Callable[[str], str]:
    return get_identity_client().verify


def get_store() -> ArtifactStore:
    return get_artifact_store()


@lru_cache(maxsize=1)
def get_packet_handler() -> PacketRequestHandler:
    # один на процесс: держит ссылки на пайплайны, пережившие дедлайн
    assembler = PacketAssembler(
        DocumentRenderer(settings.packet_brand),
        min_document_bytes=settings.packet_min_document_bytes,
    )
    return PacketRequestHandler(
        identity=get_identity(),
        repositories=db_repositories,
        store=get_artifact_store(),
        audit_sink=db_audit_sink,
        assembler=assembler,
        hard_timeout_seconds=settings.packet_hard_timeout_seconds,
        audit_timeout_seconds=settings.packet_audit_timeout_seconds,
        url_ttl_seconds=settings.artifact_url_ttl_seconds,
        min_archive_bytes=settings.packet_min_archive_bytes,
        modes=frozenset(settings.packet_modes_set),
        default_tier=settings.packet_default_tier,
        default_mode=settings.packet_default_mode,
    )
