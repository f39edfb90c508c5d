"""
Rate-limited request dispatcher.

Every outbound LLM call goes through one dispatcher instance, which
keeps the estimated token spend of the last 60 seconds under a budget
and retries calls the remote API rejected for rate limiting.
"""

from __future__ import annotations

import asyncio
import math
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, List, Tuple, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from nutridecode.domain.shared.errors import ServiceError, ValidationError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

WINDOW_SECONDS = 60.0
IMAGE_TOKEN_COST = 765


def estimate_tokens(text: str) -> int:
    """
    Rough token estimate: one token per four characters, rounded up.

    Example:
        >>> estimate_tokens("abcde")
        2
    """
    return math.ceil(len(text) / 4)


def estimate_message_tokens(messages: List[Dict[str, Any]]) -> int:
    """
    Estimate the prompt cost of a chat message list.

    Text parts count by length; image parts count a fixed amount since
    their base64 payload says little about the billed cost.
    """
    total = 0
    for message in messages:
        content = message.get("content")
        if isinstance(content, str):
            total += estimate_tokens(content)
            continue
        for part in content or []:
            if part.get("type") == "image_url":
                total += IMAGE_TOKEN_COST
            else:
                total += estimate_tokens(str(part.get("text", "")))
    return total


def _is_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, ServiceError) and exc.is_rate_limit


class RateLimitedDispatcher:
    """
    Token-budget throttle with rate-limit retries.

    Keeps a ledger of (deadline, cost) spends. Before each attempt the
    spends older than the window are dropped and, if the new cost does
    not fit, the caller is suspended until enough spends expire. The
    estimated spend inside any rolling 60 s window therefore never
    exceeds `tokens_per_minute`.

    This is a local, best-effort throttle based on estimates; the remote
    API keeps its own accounting.

    Example:
        >>> dispatcher = RateLimitedDispatcher(tokens_per_minute=30000)
        >>> reply = await dispatcher.dispatch(lambda: call_api(), 1200)
    """

    def __init__(
        self,
        tokens_per_minute: int = 30000,
        max_retries: int = 3,
        base_delay_s: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """
        Initialize dispatcher.

        Args:
            tokens_per_minute: Estimated-token budget per rolling minute
            max_retries: Retries after a RATE_LIMIT failure
            base_delay_s: First retry delay; doubled on each further retry
            clock: Monotonic time source (injectable for tests)
            sleep: Async sleep (injectable for tests)
        """
        if tokens_per_minute <= 0:
            raise ValueError("tokens_per_minute must be positive")
        self.tokens_per_minute = tokens_per_minute
        self.max_retries = max_retries
        self.base_delay_s = base_delay_s
        self._clock = clock
        self._sleep = sleep

        self._spends: Deque[Tuple[float, int]] = deque()
        self._request_count = 0
        self._lock = asyncio.Lock()

    def _expire(self, now: float) -> None:
        # Ledger entries are (deadline, cost); a spend leaves the window at its deadline
        while self._spends and self._spends[0][0] <= now:
            self._spends.popleft()

    def _used(self) -> int:
        return sum(cost for _, cost in self._spends)

    async def _acquire(self, cost: int) -> None:
        """Block until `cost` fits in the window, then record the spend."""
        async with self._lock:
            while True:
                now = self._clock()
                self._expire(now)
                used = self._used()
                if used + cost <= self.tokens_per_minute:
                    self._spends.append((now + WINDOW_SECONDS, cost))
                    self._request_count += 1
                    return

                # Wait for the oldest spends that must expire to make room
                needed = used + cost - self.tokens_per_minute
                freed = 0
                wake_at = now
                for deadline, spent in self._spends:
                    freed += spent
                    wake_at = deadline
                    if freed >= needed:
                        break
                wait_time = max(wake_at - now, 0.0)
                logger.info(
                    "token_budget_wait",
                    wait_seconds=round(wait_time, 3),
                    tokens_used=used,
                    cost=cost,
                )
                await self._sleep(wait_time)
                # The clock may read a hair before wake_at after the sleep
                self._expire(max(self._clock(), wake_at))

    def _log_retry(self, state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        logger.warning(
            "rate_limited_retry",
            attempt=state.attempt_number,
            max_retries=self.max_retries,
            error=str(exc),
        )

    async def dispatch(self, operation: Callable[[], Awaitable[T]], estimated_tokens: int) -> T:
        """
        Run an outbound call under the token budget.

        Args:
            operation: Zero-argument coroutine factory; called once per attempt
            estimated_tokens: Estimated cost charged to the budget per attempt

        Returns:
            The operation's result

        Raises:
            ValidationError: If the estimate alone exceeds the whole budget
            ServiceError: RATE_LIMIT after retries are exhausted, or any
                other kind immediately
        """
        cost = max(int(estimated_tokens), 0)
        if cost > self.tokens_per_minute:
            raise ValidationError(
                f"Request estimate of {cost} tokens exceeds the budget of "
                f"{self.tokens_per_minute} tokens per minute"
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=self.base_delay_s, exp_base=2, min=0),
            retry=retry_if_exception(_is_rate_limited),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                await self._acquire(cost)
                return await operation()
        raise AssertionError("unreachable")  # pragma: no cover

    def stats(self) -> Dict[str, Any]:
        """
        Current budget usage.

        Returns:
            Dict with tokens_per_minute, tokens_used (current window) and
            requests (total admitted attempts)
        """
        self._expire(self._clock())
        return {
            "tokens_per_minute": self.tokens_per_minute,
            "tokens_used": self._used(),
            "requests": self._request_count,
        }
