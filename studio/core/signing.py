"""
Signed, expiring payloads on itsdangerous (same serializer as session state).
Each payload carries its own ttl; one salt per use so tokens never cross over.
"""
import time
from typing import Any, Callable

from itsdangerous import BadSignature, TimestampSigner, URLSafeTimedSerializer

OVERRIDE_TOKEN_SALT = "override-token"
ARTIFACT_URL_SALT = "artifact-url"


class ClockSigner(TimestampSigner):
    """TimestampSigner with an injectable clock (tests pin `now`)."""

    def __init__(self, *args: Any, clock: Callable[[], float] = time.time, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._clock = clock

    def get_timestamp(self) -> int:
        return int(self._clock())


def timed_serializer(secret: str, salt: str, now: float | None = None) -> URLSafeTimedSerializer:
    clock = (lambda: now) if now is not None else time.time
    return URLSafeTimedSerializer(secret, salt=salt, signer=ClockSigner, signer_kwargs={"clock": clock})


def dumps_with_ttl(serializer: URLSafeTimedSerializer, payload: dict[str, Any], ttl_seconds: int) -> str:
    return serializer.dumps({**payload, "ttl": int(ttl_seconds)})


def loads_with_ttl(serializer: URLSafeTimedSerializer, token: str) -> dict[str, Any]:
    """
    Verify signature, then age against the payload's own ttl.
    Raises BadSignature / SignatureExpired (a BadSignature subclass).
    """
    payload = serializer.loads(token)
    if not isinstance(payload, dict) or not isinstance(payload.get("ttl"), int):
        raise BadSignature("payload has no ttl")
    serializer.loads(token, max_age=payload["ttl"])
    return payload
