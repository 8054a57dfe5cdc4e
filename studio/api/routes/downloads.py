import logging
from typing import Any, Callable

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import FileResponse, JSONResponse
from sqlalchemy.orm import Session

from studio.access.entitlements import EntitlementResolver
from studio.access.overview import build_access_overview
from studio.api.deps import get_client_info, get_identity, get_packet_handler, get_store
from studio.db.session import get_db
from studio.errors import Forbidden, InternalError, NotFound, StudioError, Unauthorized
from studio.packets.handler import ClientInfo, PacketRequestHandler
from studio.schemas.studio import AccessOverviewOut, ErrorOut, SignedUrlOut
from studio.services.content.service import ContentRepository
from studio.services.entitlements.service import EntitlementRepository
from studio.services.identity.client import IdentityRejected, bearer_token
from studio.storage.base import ArtifactStore, ArtifactStoreError
from studio.storage.local import LocalArtifactStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/studio", tags=["studio"])

NO_STORE = {"Cache-Control": "no-store"}

DOWNLOAD_RESPONSES = {
    400: {"model": ErrorOut},
    401: {"model": ErrorOut},
    403: {"model": ErrorOut},
    404: {"model": ErrorOut},
    500: {"model": ErrorOut},
    504: {"model": ErrorOut},
}

ARTIFACT_MEDIA_TYPES = {
    ".zip": "application/zip",
    ".html": "text/html; charset=utf-8",
}


async def _json_body(request: Request) -> Any:
    # тело читаем сами: валидация идёт после auth, чтобы 401 всегда был раньше 400
    try:
        return await request.json()
    except ValueError:
        return None


@router.post("/download-packet", response_model=SignedUrlOut, responses=DOWNLOAD_RESPONSES)
async def download_packet(
    request: Request,
    authorization: str | None = Header(default=None),
    client: ClientInfo = Depends(get_client_info),
    handler: PacketRequestHandler = Depends(get_packet_handler),
) -> JSONResponse:
    result = await handler.download_packet(
        authorization=authorization,
        body=await _json_body(request),
        client=client,
    )
    return JSONResponse(result.payload, status_code=result.status_code, headers=NO_STORE)


@router.post("/download-page", response_model=SignedUrlOut, responses=DOWNLOAD_RESPONSES)
async def download_page(
    request: Request,
    authorization: str | None = Header(default=None),
    client: ClientInfo = Depends(get_client_info),
    handler: PacketRequestHandler = Depends(get_packet_handler),
) -> JSONResponse:
    result = await handler.download_page(
        authorization=authorization,
        body=await _json_body(request),
        client=client,
    )
    return JSONResponse(result.payload, status_code=result.status_code, headers=NO_STORE)


@router.get("/collections/{collection_id}/access", response_model=AccessOverviewOut)
def access_overview(
    collection_id: str,
    preview: str | None = None,
    authorization: str | None = Header(default=None),
    identity: Callable[[str], str] = Depends(get_identity),
    db: Session = Depends(get_db),
) -> AccessOverviewOut:
    """Locked/unlocked map of the universe for the viewer; ?preview= only changes preview_locked."""
    token = bearer_token(authorization)
    if not token:
        raise Unauthorized("Missing auth token")
    try:
        user_id = identity(token)
        content = ContentRepository(db)
        if not content.exists(collection_id):
            raise NotFound("Collection not found")
        access = EntitlementResolver(EntitlementRepository(db)).resolve(user_id, collection_id, preview=preview)
        return build_access_overview(collection_id, access, content.list_published(collection_id))
    except IdentityRejected as e:
        raise Unauthorized() from e
    except StudioError:
        raise
    except Exception as e:
        # identity недоступен, breaker открыт, упала БД: текст ошибки клиенту не уходит
        logger.exception(
            "studio_access_overview_error",
            extra={"collection_id": collection_id, "error": str(e)},
        )
        raise InternalError() from e


@router.get("/artifacts/{path:path}")
def get_artifact(
    path: str,
    token: str = "",
    store: ArtifactStore = Depends(get_store),
) -> FileResponse:
    """Serves local-backend artifacts behind the signed, expiring ?token= query."""
    if not isinstance(store, LocalArtifactStore):
        raise NotFound("Artifact not found")
    if not store.verify_signature(path, token):
        raise Forbidden("Link expired or invalid")
    try:
        target = store.resolve(path)
    except ArtifactStoreError as e:
        raise NotFound("Artifact not found") from e
    if not target.is_file():
        raise NotFound("Artifact not found")
    return FileResponse(
        target,
        media_type=ARTIFACT_MEDIA_TYPES.get(target.suffix, "application/octet-stream"),
        filename=target.name,
        headers=NO_STORE,
    )
