"""
Supabase Storage backend over its REST API (httpx sync client).
Upload uses x-upsert so a rebuilt packet overwrites the previous object at the same path.
"""
import logging

import httpx

from studio.services.circuit_breaker import ARTIFACT_STORE_BREAKER, with_circuit_breaker
from studio.storage.base import ArtifactStore, ArtifactStoreError

logger = logging.getLogger(__name__)


class SupabaseArtifactStore(ArtifactStore):
    def __init__(self, service_url: str, service_key: str, bucket: str, timeout: float = 30.0) -> None:
        self.service_url = service_url.rstrip("/")
        self.bucket = bucket
        self.timeout = timeout
        self._headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of httpx client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout, headers=self._headers)
        return self._client

    def _object_url(self, *parts: str) -> str:
        return "/".join([f"{self.service_url}/storage/v1/object", *parts])

    @with_circuit_breaker(ARTIFACT_STORE_BREAKER)
    def put(self, path: str, content: bytes, content_type: str) -> None:
        try:
            resp = self.client.post(
                self._object_url(self.bucket, path),
                content=content,
                headers={"Content-Type": content_type, "x-upsert": "true"},
            )
        except httpx.HTTPError as e:
            raise ArtifactStoreError(f"upload failed for {path}: {type(e).__name__}") from e
        if resp.status_code >= 400:
            raise ArtifactStoreError(f"upload failed for {path}: HTTP {resp.status_code}")
        logger.info("artifact_stored", extra={"path": path, "bytes": len(content)})

    @with_circuit_breaker(ARTIFACT_STORE_BREAKER)
    def signed_url(self, path: str, ttl_seconds: int) -> str:
        try:
            resp = self.client.post(
                self._object_url("sign", self.bucket, path),
                json={"expiresIn": ttl_seconds},
            )
        except httpx.HTTPError as e:
            raise ArtifactStoreError(f"signing failed for {path}: {type(e).__name__}") from e
        if resp.status_code >= 400:
            raise ArtifactStoreError(f"signing failed for {path}: HTTP {resp.status_code}")
        signed = (resp.json() or {}).get("signedURL") or ""
        if not signed:
            raise ArtifactStoreError(f"signing failed for {path}: empty signedURL")
        if signed.startswith("http"):
            return signed
        return f"{self.service_url}/storage/v1{signed}"
