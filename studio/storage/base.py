from abc import ABC, abstractmethod


class ArtifactStoreError(RuntimeError):
    """Upload or URL signing failed."""


class ArtifactStore(ABC):
    """Built archives keyed by deterministic path; put() overwrites (last write wins)."""

    @abstractmethod
    def put(self, path: str, content: bytes, content_type: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def signed_url(self, path: str, ttl_seconds: int) -> str:
        """Short-lived retrieval URL for an already stored artifact."""
        raise NotImplementedError


def packet_path(collection_id: str, mode: str, tier: str, vault_included: bool) -> str:
    """studios/{collection}/packets/{mode}/{tier}[.vault].zip"""
    suffix = ".vault" if vault_included else ""
    return f"studios/{collection_id}/packets/{mode}/{tier}{suffix}.zip"


def page_path(collection_id: str, mode: str, page_type: str) -> str:
    return f"studios/{collection_id}/pages/{mode}/{page_type}.html"
