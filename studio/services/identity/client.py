"""
Identity service client: verified bearer token -> user id.
Uses httpx sync client; called from a worker thread by the request handler.
"""
import logging

import httpx

from studio.core.config import settings
from studio.services.circuit_breaker import IDENTITY_BREAKER, get_circuit_breaker


logger = logging.getLogger(__name__)


class IdentityError(RuntimeError):
    """Identity service unreachable or answered with an unexpected status."""


class IdentityRejected(Exception):
    """Token is missing, invalid or expired. Not an outage: excluded from the breaker."""


def bearer_token(authorization: str | None) -> str:
    """Token from an Authorization header; empty string if absent."""
    value = (authorization or "").strip()
    if value[:7].lower() == "bearer ":
        return value[7:].strip()
    return ""


class IdentityClient:
    def __init__(
        self,
        base_url: str | None = None,
        user_path: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.identity_service_url).rstrip("/")
        self.user_path = user_path or settings.identity_user_path
        self.api_key = settings.identity_api_key if api_key is None else api_key
        self.timeout = timeout or settings.identity_timeout
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Lazy initialization of httpx client."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def verify(self, token: str) -> str:
        """Return the user id for a bearer token; IdentityRejected if it is not valid."""
        if not token:
            raise IdentityRejected("Missing auth token")
        breaker = get_circuit_breaker(IDENTITY_BREAKER, exclude=[IdentityRejected])
        return breaker.call(self._fetch_user_id, token)

    def _fetch_user_id(self, token: str) -> str:
        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key
        try:
            resp = self.client.get(f"{self.base_url}{self.user_path}", headers=headers)
        except httpx.HTTPError as e:
            raise IdentityError(f"identity service unreachable: {type(e).__name__}") from e

        if resp.status_code in (401, 403):
            raise IdentityRejected("Unauthorized")
        if resp.status_code >= 400:
            raise IdentityError(f"identity service returned HTTP {resp.status_code}")

        payload = resp.json() or {}
        user = payload.get("user") if isinstance(payload.get("user"), dict) else payload
        user_id = str(user.get("id") or "").strip()
        if not user_id:
            logger.warning("identity_user_without_id")
            raise IdentityRejected("Unauthorized")
        return user_id
