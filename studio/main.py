"""
Main FastAPI application for Studio downloads.
Serves health, studio packet/page downloads, access overview, local artifacts and metrics.
"""
import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studio.api.routes import downloads, health
from studio.core.config import settings
from studio.core.logging import configure_logging, request_id_var
from studio.errors import InternalError, StudioError
from studio.utils.metrics import router as metrics_router


configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Studio Packets API",
    description="Tier-gated studio packets and page downloads",
    version="1.0.0",
)

# CORS
origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get(settings.request_id_header) or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers[settings.request_id_header] = request_id
    return response


@app.exception_handler(StudioError)
async def studio_error_handler(request: Request, exc: StudioError) -> JSONResponse:
    logger.info(
        "studio_request_failed",
        extra={"path": request.url.path, "method": request.method, "status_code": exc.status_code},
    )
    return JSONResponse(exc.to_payload(), status_code=exc.status_code, headers={"Cache-Control": "no-store"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "studio_unhandled_error",
        extra={"path": request.url.path, "method": request.method, "error": str(exc)},
        exc_info=exc,
    )
    error = InternalError()
    return JSONResponse(error.to_payload(), status_code=error.status_code, headers={"Cache-Control": "no-store"})


# Routers
app.include_router(health.router, tags=["health"])
app.include_router(downloads.router)
app.include_router(metrics_router)
