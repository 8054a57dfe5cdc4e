"""
Circuit breakers (pybreaker) around remote collaborators: identity service, artifact store.
State lives in Redis so all workers share it; cb_backend=memory keeps it in-process (dev/tests).
"""
import functools
import logging
from typing import Any, Callable

import pybreaker
import redis

from studio.core.config import settings
from studio.utils.metrics import circuit_breaker_state


logger = logging.getLogger("circuit_breaker")

IDENTITY_BREAKER = "identity"
ARTIFACT_STORE_BREAKER = "artifact_store"


class CircuitBreakerListener(pybreaker.CircuitBreakerListener):
    """Listener for circuit breaker events (logging/metrics)."""

    def __init__(self, name: str) -> None:
        self.name = name

    def state_change(self, cb: pybreaker.CircuitBreaker, old_state, new_state) -> None:
        old_name = getattr(old_state, "name", old_state)
        new_name = getattr(new_state, "name", new_state)
        circuit_breaker_state.labels(name=self.name).set(1 if new_name == pybreaker.STATE_OPEN else 0)
        logger.warning(
            "circuit_breaker_state_change",
            extra={"breaker_name": self.name, "old_state": old_name, "new_state": new_name},
        )

    def failure(self, cb: pybreaker.CircuitBreaker, exc: BaseException) -> None:
        logger.warning(
            "circuit_breaker_failure",
            extra={"breaker_name": self.name, "error": type(exc).__name__},
        )


_breakers: dict[str, pybreaker.CircuitBreaker] = {}


def _make_storage(name: str) -> pybreaker.CircuitBreakerStorage:
    if settings.cb_backend == "memory":
        return pybreaker.CircuitMemoryStorage(pybreaker.STATE_CLOSED)
    # CircuitRedisStorage expects a client without decode_responses
    client = redis.Redis.from_url(settings.redis_url)
    return pybreaker.CircuitRedisStorage(pybreaker.STATE_CLOSED, client, namespace=f"studio:cb:{name}")


def get_circuit_breaker(name: str, exclude: list | None = None) -> pybreaker.CircuitBreaker:
    """Get or create a circuit breaker by name. exclude: errors that are answers, not outages."""
    if name not in _breakers:
        _breakers[name] = pybreaker.CircuitBreaker(
            fail_max=settings.cb_failure_threshold,
            reset_timeout=settings.cb_open_seconds,
            state_storage=_make_storage(name),
            listeners=[CircuitBreakerListener(name)],
            exclude=exclude or [],
            name=name,
        )
    return _breakers[name]


def with_circuit_breaker(name: str) -> Callable:
    """Decorator: run the function through the named breaker (resolved lazily)."""
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return get_circuit_breaker(name).call(func, *args, **kwargs)
        return wrapper
    return decorator
