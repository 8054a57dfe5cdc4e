"""
Orchestration of studio downloads (packet zip and single page).

Start -> Authenticated -> EntitlementResolved -> AccessChecked
      -> Denied | PagesFiltered -> PacketBuilt -> PacketStored -> URLSigned -> Logged

Один жёсткий дедлайн на весь пайплайн. После таймаута клиент получает 504, а пайплайн
может доработать в фоне (upload по детерминированному пути безопасен), но второй ответ
и вторая запись аудита уже невозможны: ResponseSlot и AttemptAuditor — first writer wins.
"""
from __future__ import annotations

import asyncio
import logging
import threading
import time
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol

from pydantic import ValidationError

from studio.access.audit import AttemptAuditor, AuditRecord, AuditSink, DownloadKind
from studio.access.entitlements import EntitlementResolver, EntitlementSource
from studio.access.gate import decide_packet_access, decide_page_access
from studio.access.models import ContentPage, PacketRequest
from studio.access.tiers import AccessTier, normalize_tier
from studio.errors import (
    ArchiveBuildError,
    BadRequest,
    Forbidden,
    InternalError,
    NotFound,
    PacketTimeout,
    StudioError,
    Unauthorized,
)
from studio.packets.assembler import PacketAssembler
from studio.packets.render import document_name, slugify
from studio.schemas.studio import PacketDownloadIn, PageDownloadIn
from studio.services.identity.client import IdentityRejected, bearer_token
from studio.storage.base import ArtifactStore, packet_path, page_path
from studio.utils.metrics import (
    access_decisions_total,
    download_requests_total,
    packet_build_duration_seconds,
    packet_size_bytes,
)

logger = logging.getLogger(__name__)

ZIP_CONTENT_TYPE = "application/zip"
HTML_CONTENT_TYPE = "text/html; charset=utf-8"


class ContentSource(Protocol):
    def list_published(self, collection_id: str) -> list[ContentPage]:
        ...

    def get_published_page(self, collection_id: str, page_type: str) -> ContentPage | None:
        ...


@dataclass
class Repositories:
    entitlements: EntitlementSource
    content: ContentSource


@dataclass(frozen=True)
class ClientInfo:
    ip: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class HandlerResponse:
    status_code: int
    payload: dict[str, Any]


class ResponseSlot:
    """Holds the one response of an attempt; later writers are rejected and counted."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._response: HandlerResponse | None = None
        self.rejected = 0

    @property
    def sent(self) -> bool:
        return self._response is not None

    @property
    def response(self) -> HandlerResponse | None:
        return self._response

    def send(self, status_code: int, payload: dict[str, Any]) -> bool:
        with self._lock:
            if self._response is not None:
                self.rejected += 1
                return False
            self._response = HandlerResponse(status_code=status_code, payload=payload)
            return True


@dataclass
class _Attempt:
    kind: DownloadKind
    client: ClientInfo
    slot: ResponseSlot
    auditor: AttemptAuditor
    user_id: str | None = None
    collection_id: str | None = None
    page_id: str | None = None
    viewer_tier: AccessTier = AccessTier.PUBLIC
    required_tier: AccessTier = AccessTier.PUBLIC
    packet_tier: AccessTier | None = None
    share_token: str | None = None
    started_at: float = field(default_factory=time.monotonic)

    def record(
        self,
        *,
        status_code: int,
        is_locked: bool = False,
        file_path: str | None = None,
        file_size_bytes: int | None = None,
    ) -> AuditRecord:
        return AuditRecord(
            collection_id=self.collection_id,
            user_id=self.user_id,
            download_kind=self.kind,
            page_id=self.page_id,
            viewer_tier=self.viewer_tier,
            required_tier=self.required_tier,
            packet_tier=self.packet_tier,
            is_locked=is_locked,
            share_token=self.share_token,
            file_path=file_path,
            file_size_bytes=file_size_bytes,
            status_code=status_code,
            ip=self.client.ip,
            user_agent=self.client.user_agent,
        )


class PacketRequestHandler:
    def __init__(
        self,
        *,
        identity: Callable[[str], str],
        repositories: Callable[[], AbstractContextManager[Repositories]],
        store: ArtifactStore,
        audit_sink: AuditSink,
        assembler: PacketAssembler,
        hard_timeout_seconds: float = 55.0,
        audit_timeout_seconds: float = 5.0,
        url_ttl_seconds: int = 600,
        min_archive_bytes: int = 50,
        modes: frozenset[str] = frozenset({"full", "preview"}),
        default_tier: str = "producer",
        default_mode: str = "full",
    ) -> None:
        self.identity = identity
        self.repositories = repositories
        self.store = store
        self.audit_sink = audit_sink
        self.assembler = assembler
        self.hard_timeout_seconds = hard_timeout_seconds
        self.audit_timeout_seconds = audit_timeout_seconds
        self.url_ttl_seconds = url_ttl_seconds
        self.min_archive_bytes = min_archive_bytes
        self.modes = frozenset(modes)
        self.default_tier = default_tier
        self.default_mode = default_mode
        # pipelines that outlived their deadline; strong refs until they finish
        self._background: set[asyncio.Task] = set()

    # ----- public entry points -----

    async def download_packet(
        self,
        *,
        authorization: str | None,
        body: dict[str, Any] | None,
        client: ClientInfo,
        slot: ResponseSlot | None = None,
    ) -> HandlerResponse:
        attempt = self._new_attempt("packet_zip", client, slot)
        return await self._respond_within_deadline(
            attempt, lambda: self._packet_pipeline(attempt, authorization, body or {})
        )

    async def download_page(
        self,
        *,
        authorization: str | None,
        body: dict[str, Any] | None,
        client: ClientInfo,
        slot: ResponseSlot | None = None,
    ) -> HandlerResponse:
        attempt = self._new_attempt("page_document", client, slot)
        return await self._respond_within_deadline(
            attempt, lambda: self._page_pipeline(attempt, authorization, body or {})
        )

    # ----- deadline / response / audit plumbing -----

    def _new_attempt(self, kind: DownloadKind, client: ClientInfo, slot: ResponseSlot | None) -> _Attempt:
        return _Attempt(
            kind=kind,
            client=client,
            slot=slot or ResponseSlot(),
            auditor=AttemptAuditor(self.audit_sink),
        )

    async def _respond_within_deadline(
        self,
        attempt: _Attempt,
        pipeline: Callable[[], Awaitable[dict[str, Any]]],
    ) -> HandlerResponse:
        task = asyncio.ensure_future(self._run(attempt, pipeline))
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=self.hard_timeout_seconds)
        except asyncio.TimeoutError:
            self._background.add(task)
            task.add_done_callback(self._background.discard)
            logger.error(
                "studio_download_hard_timeout",
                extra={"collection_id": attempt.collection_id, "user_id": attempt.user_id},
            )
            await self._fail(attempt, PacketTimeout())

        response = attempt.slot.response
        download_requests_total.labels(kind=attempt.kind, status=str(response.status_code)).inc()
        logger.info(
            "studio_download_finished",
            extra={
                "collection_id": attempt.collection_id,
                "user_id": attempt.user_id,
                "status_code": response.status_code,
                "latency_ms": int((time.monotonic() - attempt.started_at) * 1000),
            },
        )
        return response

    async def _run(self, attempt: _Attempt, pipeline: Callable[[], Awaitable[dict[str, Any]]]) -> None:
        try:
            payload = await pipeline()
        except StudioError as e:
            await self._fail(attempt, e)
        except Exception as e:
            logger.exception(
                "studio_download_error",
                extra={"collection_id": attempt.collection_id, "user_id": attempt.user_id, "error": str(e)},
            )
            await self._fail(attempt, InternalError())
        else:
            if not attempt.slot.send(200, payload):
                logger.warning(
                    "studio_download_completed_after_response",
                    extra={"collection_id": attempt.collection_id, "user_id": attempt.user_id},
                )

    async def _fail(self, attempt: _Attempt, error: StudioError) -> None:
        # аудит до ответа, но не дольше audit_timeout_seconds; denial (403): всегда is_locked
        record = attempt.record(status_code=error.status_code, is_locked=isinstance(error, Forbidden))
        try:
            await asyncio.wait_for(
                asyncio.to_thread(attempt.auditor.write, record),
                timeout=self.audit_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "studio_download_log_slow",
                extra={"collection_id": attempt.collection_id, "status_code": error.status_code},
            )
        attempt.slot.send(error.status_code, error.to_payload())

    # ----- pipeline steps -----

    async def _authenticate(self, attempt: _Attempt, authorization: str | None) -> str:
        token = bearer_token(authorization)
        if not token:
            raise Unauthorized("Missing auth token")
        try:
            user_id = await asyncio.to_thread(self.identity, token)
        except IdentityRejected as e:
            raise Unauthorized() from e
        attempt.user_id = user_id
        return user_id

    def _mode(self, raw: str | None) -> str:
        mode = str(raw or self.default_mode).strip().lower()
        if mode not in self.modes:
            raise BadRequest("Unknown mode")
        return mode

    async def _packet_pipeline(
        self,
        attempt: _Attempt,
        authorization: str | None,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        user_id = await self._authenticate(attempt, authorization)
        try:
            req = PacketDownloadIn.model_validate(body)
        except ValidationError as e:
            raise BadRequest("Malformed request") from e

        collection_id = (req.collection_id or "").strip()
        if not collection_id:
            raise BadRequest("Missing collection_id")
        attempt.collection_id = collection_id
        packet = PacketRequest(
            collection_id=collection_id,
            tier=normalize_tier(req.tier or self.default_tier),
            mode=self._mode(req.mode),
            include_vault=req.include_vault,
        )
        packet_tier, mode = packet.tier, packet.mode
        attempt.packet_tier = attempt.required_tier = packet_tier
        attempt.share_token = f"packet:{packet_tier.value}"

        with self.repositories() as repos:
            access = await asyncio.to_thread(
                EntitlementResolver(repos.entitlements).resolve,
                user_id,
                collection_id,
                override_token=req.override_token,
            )
            attempt.viewer_tier = access.viewer_tier
            if access.override_token_id:
                attempt.share_token = access.override_token_id

            decision = decide_packet_access(access.viewer_tier, packet_tier)
            access_decisions_total.labels(kind="packet", result=decision.reason).inc()
            if not decision.allowed:
                logger.info(
                    "packet_access_denied",
                    extra={
                        "collection_id": collection_id,
                        "user_id": user_id,
                        "viewer_tier": access.viewer_tier.value,
                        "packet_tier": packet_tier.value,
                    },
                )
                raise Forbidden("No access to this packet")

            pages = await asyncio.to_thread(repos.content.list_published, collection_id)

        capped = decision.capped_tier
        logger.info(
            "packet_building_zip",
            extra={
                "collection_id": collection_id,
                "pages": len(pages),
                "viewer_tier": access.viewer_tier.value,
                "packet_tier": packet_tier.value,
                "capped_tier": capped.value,
                "mode": mode,
            },
        )
        with packet_build_duration_seconds.labels(mode=mode).time():
            archive = await asyncio.to_thread(
                self.assembler.build,
                pages,
                tier=capped,
                mode=mode,
                include_vault=packet.include_vault,
                collection_id=collection_id,
            )
        if archive.size < self.min_archive_bytes:
            raise ArchiveBuildError(f"ZIP build failed (empty buffer, bytes={archive.size})")
        packet_size_bytes.observe(archive.size)

        path = packet_path(collection_id, mode, capped.value, archive.vault_included)
        await asyncio.to_thread(self.store.put, path, archive.content, ZIP_CONTENT_TYPE)
        url = await asyncio.to_thread(self.store.signed_url, path, self.url_ttl_seconds)

        await asyncio.to_thread(
            attempt.auditor.write,
            attempt.record(status_code=200, file_path=path, file_size_bytes=archive.size),
        )
        return {"url": url}

    async def _page_pipeline(
        self,
        attempt: _Attempt,
        authorization: str | None,
        body: dict[str, Any],
    ) -> dict[str, Any]:
        user_id = await self._authenticate(attempt, authorization)
        try:
            req = PageDownloadIn.model_validate(body)
        except ValidationError as e:
            raise BadRequest("Malformed request") from e

        collection_id = (req.collection_id or "").strip()
        page_type = (req.page_type or "").strip()
        if not collection_id or not page_type:
            raise BadRequest("Missing parameters")
        attempt.collection_id = collection_id
        mode = self._mode(req.mode)

        with self.repositories() as repos:
            access = await asyncio.to_thread(
                EntitlementResolver(repos.entitlements).resolve,
                user_id,
                collection_id,
                override_token=req.override_token,
            )
            attempt.viewer_tier = access.viewer_tier
            attempt.share_token = access.override_token_id

            page = await asyncio.to_thread(repos.content.get_published_page, collection_id, page_type)
            if page is None:
                raise NotFound("Page not found")
            attempt.page_id = page.id

        decision = decide_page_access(access.viewer_tier, page)
        attempt.required_tier = decision.required_tier
        access_decisions_total.labels(kind="page", result=decision.reason).inc()
        if not decision.allowed:
            logger.info(
                "page_access_denied",
                extra={
                    "collection_id": collection_id,
                    "user_id": user_id,
                    "page_id": page.id,
                    "viewer_tier": access.viewer_tier.value,
                },
            )
            raise Forbidden("No access to this page")

        path = page_path(collection_id, mode, slugify(page.page_type))
        document = await asyncio.to_thread(
            self.assembler.render_document, page, mode, document_name(1, page)
        )
        await asyncio.to_thread(self.store.put, path, document, HTML_CONTENT_TYPE)
        url = await asyncio.to_thread(self.store.signed_url, path, self.url_ttl_seconds)

        await asyncio.to_thread(
            attempt.auditor.write,
            attempt.record(status_code=200, file_path=path, file_size_bytes=len(document)),
        )
        return {"url": url}
