from functools import lru_cache

from studio.core.config import settings
from studio.storage.base import ArtifactStore
from studio.storage.local import LocalArtifactStore
from studio.storage.supabase import SupabaseArtifactStore


@lru_cache(maxsize=1)
def get_artifact_store() -> ArtifactStore:
    """Process-wide store selected by settings.artifact_backend."""
    if settings.artifact_backend == "supabase":
        return SupabaseArtifactStore(
            service_url=settings.artifact_service_url,
            service_key=settings.artifact_service_key,
            bucket=settings.artifact_bucket,
            timeout=settings.artifact_timeout,
        )
    return LocalArtifactStore(
        base_path=settings.artifact_base_path,
        public_base_url=settings.artifact_public_base_url,
        signing_secret=settings.artifact_signing_secret,
    )
