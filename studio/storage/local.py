"""
Filesystem artifact store with signed, expiring retrieval URLs.
Files are served back only through /api/studio/artifacts after verify_signature().
"""
import logging
import os
import tempfile
from pathlib import Path
from urllib.parse import urlencode

from itsdangerous import BadSignature, SignatureExpired

from studio.core.signing import ARTIFACT_URL_SALT, dumps_with_ttl, loads_with_ttl, timed_serializer
from studio.storage.base import ArtifactStore, ArtifactStoreError

logger = logging.getLogger(__name__)


class LocalArtifactStore(ArtifactStore):
    def __init__(self, base_path: str, public_base_url: str, signing_secret: str) -> None:
        self.base_path = Path(base_path)
        self.public_base_url = public_base_url.rstrip("/")
        self._secret = signing_secret

    def resolve(self, path: str) -> Path:
        """Absolute file path for a store key; keys may not escape base_path."""
        base = self.base_path.resolve()
        target = (base / path.lstrip("/")).resolve()
        if base != target and base not in target.parents:
            raise ArtifactStoreError(f"invalid artifact path: {path}")
        return target

    def put(self, path: str, content: bytes, content_type: str) -> None:
        target = self.resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            # write + rename: concurrent builds of the same key never leave a torn file
            fd, tmp_path = tempfile.mkstemp(dir=target.parent, prefix=".upload-")
            with os.fdopen(fd, "wb") as f:
                f.write(content)
            os.replace(tmp_path, target)
        except OSError as e:
            raise ArtifactStoreError(f"upload failed for {path}: {e}") from e
        logger.info("artifact_stored", extra={"path": path, "bytes": len(content)})

    def signed_url(self, path: str, ttl_seconds: int, now: float | None = None) -> str:
        if not self.resolve(path).is_file():
            raise ArtifactStoreError(f"artifact not found: {path}")
        serializer = timed_serializer(self._secret, ARTIFACT_URL_SALT, now=now)
        query = urlencode({"token": dumps_with_ttl(serializer, {"path": path}, ttl_seconds)})
        return f"{self.public_base_url}/{path}?{query}"

    def verify_signature(self, path: str, token: str, now: float | None = None) -> bool:
        """True only for an unexpired token signed for exactly this path."""
        if not token:
            return False
        try:
            payload = loads_with_ttl(timed_serializer(self._secret, ARTIFACT_URL_SALT, now=now), token)
        except SignatureExpired:
            logger.info("artifact_url_expired", extra={"path": path})
            return False
        except BadSignature:
            logger.warning("artifact_url_bad_signature", extra={"path": path})
            return False
        return payload.get("path") == path
