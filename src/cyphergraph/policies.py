"""Resilience policies around query execution: retry, timeout, circuit breaker
and idempotency.

All state lives in explicit objects (:class:`CircuitBreakerRegistry`,
:class:`IdempotencyCache`) that callers create and pass in; clocks and sleep
functions are injectable so behaviour can be driven deterministically.
"""

from __future__ import annotations

import logging
import time
import typing
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Type, TypeVar

from .dsl.compile import CompileResult
from .errors import CircuitOpenError, QueryTimeoutError

logger = logging.getLogger(__name__)

A = TypeVar("A")
Executor = Callable[[Any, CompileResult], A]
BreakerState = typing.Literal["closed", "open", "half-open"]


@dataclass(frozen=True)
class RetrySchedule:
    kind: typing.Literal["exponential", "fixed", "fibonacci"]
    base_delay_ms: float
    max_retries: int

    @classmethod
    def exponential(cls, max_retries: int = 3, base_delay_ms: float = 100) -> "RetrySchedule":
        return cls("exponential", base_delay_ms, max_retries)

    @classmethod
    def fixed(cls, delay_ms: float = 1000, max_retries: int = 3) -> "RetrySchedule":
        return cls("fixed", delay_ms, max_retries)

    @classmethod
    def fibonacci(cls, max_retries: int = 5, base_delay_ms: float = 100) -> "RetrySchedule":
        return cls("fibonacci", base_delay_ms, max_retries)

    def delays_ms(self) -> List[float]:
        """Delay before each retry, one entry per allowed retry."""
        if self.kind == "fixed":
            return [self.base_delay_ms] * self.max_retries
        if self.kind == "exponential":
            return [self.base_delay_ms * (2**attempt) for attempt in range(self.max_retries)]
        delays: List[float] = []
        prev, cur = 0.0, self.base_delay_ms
        for _ in range(self.max_retries):
            delays.append(cur)
            prev, cur = cur, prev + cur
        return delays


class CircuitBreaker:
    """Opens after ``threshold`` consecutive failures.

    An open breaker turns half-open once ``reset_timeout_ms`` has passed; the
    next success closes it and the next failure opens it again.
    """

    def __init__(
        self,
        threshold: int = 5,
        reset_timeout_ms: float = 60_000,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.threshold = max(1, threshold)
        self.reset_timeout_ms = reset_timeout_ms
        self._clock = clock
        self._failures = 0
        self._last_failure = 0.0
        self._state: BreakerState = "closed"

    @property
    def state(self) -> BreakerState:
        return self._state

    @property
    def failures(self) -> int:
        return self._failures

    def is_open(self) -> bool:
        if self._state == "open":
            if (self._clock() - self._last_failure) * 1000 >= self.reset_timeout_ms:
                self._state = "half-open"
                return False
            return True
        return False

    def record_success(self) -> None:
        self._failures = 0
        self._state = "closed"

    def record_failure(self) -> None:
        self._failures += 1
        self._last_failure = self._clock()
        if self._state == "half-open" or self._failures >= self.threshold:
            self._state = "open"


class CircuitBreakerRegistry:
    def __init__(self, **breaker_options: Any) -> None:
        self._options = breaker_options
        self._breakers: Dict[str, CircuitBreaker] = {}

    def get(self, name: str) -> CircuitBreaker:
        breaker = self._breakers.get(name)
        if breaker is None:
            breaker = CircuitBreaker(**self._options)
            self._breakers[name] = breaker
        return breaker

    def __contains__(self, name: object) -> bool:
        return name in self._breakers


_MISSING = object()


class IdempotencyCache:
    """Results keyed by idempotency key, valid for ``ttl_ms``."""

    def __init__(self, ttl_ms: float = 300_000, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def get(self, key: str, default: Any = _MISSING) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        stored_at, value = entry
        if (self._clock() - stored_at) * 1000 >= self.ttl_ms:
            del self._entries[key]
            return default
        return value

    def put(self, key: str, value: Any) -> None:
        now = self._clock()
        self._prune(now)
        self._entries[key] = (now, value)

    def _prune(self, now: float) -> None:
        expired = [key for key, (stored_at, _) in self._entries.items() if (now - stored_at) * 1000 >= self.ttl_ms]
        for key in expired:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not _MISSING


@dataclass(frozen=True)
class QueryPolicyConfig:
    timeout_ms: Optional[float] = None
    retry: Optional[RetrySchedule] = None
    circuit_breaker_name: Optional[str] = None
    idempotency_key: Optional[str] = None
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)


def _attempt(executor: Executor[A], session: Any, compiled: CompileResult, timeout_ms: Optional[float]) -> A:
    if timeout_ms is None:
        return executor(session, compiled)
    # the worker thread is not interrupted on timeout; the driver call finishes in the background
    pool = ThreadPoolExecutor(max_workers=1)
    try:
        future = pool.submit(executor, session, compiled)
        try:
            return future.result(timeout=timeout_ms / 1000)
        except FuturesTimeoutError:
            raise QueryTimeoutError(timeout_ms, compiled.text) from None
    finally:
        pool.shutdown(wait=False, cancel_futures=True)


def execute_with_policies(
    session: Any,
    compiled: CompileResult,
    executor: Executor[A],
    config: Optional[QueryPolicyConfig] = None,
    *,
    breakers: Optional[CircuitBreakerRegistry] = None,
    idempotency: Optional[IdempotencyCache] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> A:
    """Run ``executor(session, compiled)`` under the policies in ``config``.

    Order of application: an idempotency hit short-circuits everything; the
    circuit breaker is consulted before every attempt; each attempt is bounded
    by ``timeout_ms``; failures matching ``retry_on`` are retried following
    ``retry``. :class:`CircuitOpenError` is never retried.
    """
    config = config or QueryPolicyConfig()

    if config.idempotency_key and idempotency is not None:
        cached = idempotency.get(config.idempotency_key)
        if cached is not _MISSING:
            logger.debug("Idempotency hit key=%s", config.idempotency_key)
            return cached

    breaker: Optional[CircuitBreaker] = None
    if config.circuit_breaker_name:
        breaker = (breakers or CircuitBreakerRegistry()).get(config.circuit_breaker_name)

    delays = config.retry.delays_ms() if config.retry else []
    attempt = 0
    while True:
        if breaker is not None and breaker.is_open():
            raise CircuitOpenError(config.circuit_breaker_name or "")
        try:
            result = _attempt(executor, session, compiled, config.timeout_ms)
        except CircuitOpenError:
            raise
        except config.retry_on as exc:
            if breaker is not None:
                breaker.record_failure()
            if attempt >= len(delays):
                raise
            delay_ms = delays[attempt]
            attempt += 1
            logger.warning(
                "Query attempt %d failed (%s); retrying in %.0f ms",
                attempt,
                exc,
                delay_ms,
            )
            sleep(delay_ms / 1000)
            continue
        if breaker is not None:
            breaker.record_success()
        if config.idempotency_key and idempotency is not None:
            idempotency.put(config.idempotency_key, result)
        return result


__all__ = [
    "RetrySchedule",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "IdempotencyCache",
    "QueryPolicyConfig",
    "execute_with_policies",
]
