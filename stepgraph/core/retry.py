# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Retry policies for node bodies.

A node may carry one retry policy:

    NoRetry                                   - fail on the first error
    FixedDelay(delay_ms, max_retries)         - constant pause between tries
    ExponentialBackoff(initial_delay_ms,
                       max_delay_ms,
                       max_retries)           - doubling pause, capped

``max_retries`` counts *additional* attempts, so ``FixedDelay(100, 3)``
allows up to four calls in total. ``RetryExecutor`` drives one callable
under a policy; sleeps go through ``asyncio.sleep`` and therefore take
part in cancellation.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar

from stepgraph.core.errors import WorkflowError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryContext:
    """Tracks the state of one retriable operation.

    ``attempt`` is the number of attempts started so far (1 during the
    first call).
    """

    attempt: int = 0
    start_time: float = field(default_factory=time.time)
    last_exception: Optional[Exception] = None
    exceptions: list[Exception] = field(default_factory=list)
    total_delay: float = 0.0

    @property
    def elapsed(self) -> float:
        """Time elapsed since first attempt."""
        return time.time() - self.start_time

    @property
    def retries(self) -> int:
        return max(0, self.attempt - 1)

    def record_exception(self, exc: Exception) -> None:
        self.last_exception = exc
        self.exceptions.append(exc)

    def record_delay(self, delay: float) -> None:
        self.total_delay += delay


class RetryPolicy(ABC):
    """Base class for retry policies.

    Engine errors (``WorkflowError`` subclasses) are never retried: they
    describe a mistake in the graph or in channel access, which another
    attempt cannot fix.
    """

    max_retries: int = 0
    non_retryable: tuple[Type[BaseException], ...] = (WorkflowError,)

    def should_retry(self, context: RetryContext) -> bool:
        """Determine if another attempt should be made.

        Args:
            context: Current retry context with attempt info

        Returns:
            True if should retry, False to give up
        """
        if context.attempt > self.max_retries:
            return False
        if context.last_exception is not None and isinstance(
            context.last_exception, self.non_retryable
        ):
            return False
        return True

    @abstractmethod
    def get_delay(self, context: RetryContext) -> float:
        """Seconds to wait before the next attempt."""


@dataclass(frozen=True)
class NoRetry(RetryPolicy):
    """Fail immediately on the first error."""

    max_retries: int = 0

    def should_retry(self, context: RetryContext) -> bool:
        return False

    def get_delay(self, context: RetryContext) -> float:
        return 0.0


@dataclass(frozen=True)
class FixedDelay(RetryPolicy):
    """Sleep ``delay_ms`` between attempts, up to ``max_retries`` retries."""

    delay_ms: int
    max_retries: int

    def __post_init__(self) -> None:
        if self.delay_ms < 0 or self.max_retries < 0:
            raise ValueError("delay_ms and max_retries must be non-negative")

    def get_delay(self, context: RetryContext) -> float:
        return self.delay_ms / 1000.0


@dataclass(frozen=True)
class ExponentialBackoff(RetryPolicy):
    """Exponential backoff capped at ``max_delay_ms``.

    Delay before retry n (1-based): min(max_delay, initial * multiplier^(n-1))
    """

    initial_delay_ms: int
    max_delay_ms: int
    max_retries: int
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.initial_delay_ms < 0 or self.max_delay_ms < 0 or self.max_retries < 0:
            raise ValueError("delays and max_retries must be non-negative")
        if self.multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")

    def get_delay(self, context: RetryContext) -> float:
        delay_ms = self.initial_delay_ms * (self.multiplier ** max(0, context.attempt - 1))
        return min(delay_ms, self.max_delay_ms) / 1000.0


NO_RETRY = NoRetry()


@dataclass
class RetryResult:
    """Result of a retry operation."""

    success: bool
    result: Any = None
    exception: Optional[Exception] = None
    context: RetryContext = field(default_factory=RetryContext)

    @property
    def attempts(self) -> int:
        return self.context.attempt

    @property
    def total_time(self) -> float:
        return self.context.elapsed


class RetryExecutor:
    """Executes an async operation under a retry policy.

    The operation receives the live ``RetryContext`` so it can report the
    attempt number to whoever it calls.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        *,
        on_retry: Optional[Callable[[RetryContext, float], None]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize executor.

        Args:
            policy: Retry policy to apply (default: NoRetry)
            on_retry: Called with (context, delay) before each pause
            sleep: Awaitable sleep function, replaceable in tests
        """
        self.policy = policy or NO_RETRY
        self._on_retry = on_retry
        self._sleep = sleep

    async def execute_async(
        self,
        func: Callable[[RetryContext], Awaitable[T]],
    ) -> RetryResult:
        """Run ``func`` until it succeeds or the policy gives up.

        Args:
            func: Async callable taking the retry context

        Returns:
            RetryResult with success status, result, and context
        """
        context = RetryContext()

        while True:
            context.attempt += 1

            try:
                result = await func(context)
                return RetryResult(success=True, result=result, context=context)
            except Exception as e:
                context.record_exception(e)

                if not self.policy.should_retry(context):
                    return RetryResult(success=False, exception=e, context=context)

                delay = self.policy.get_delay(context)
                context.record_delay(delay)
                logger.debug(
                    f"Retry attempt {context.attempt + 1}/{self.policy.max_retries + 1} "
                    f"in {delay:.3f}s after {type(e).__name__}: {e}"
                )
                if self._on_retry is not None:
                    self._on_retry(context, delay)
                if delay > 0:
                    await self._sleep(delay)


__all__ = [
    "RetryContext",
    "RetryPolicy",
    "NoRetry",
    "FixedDelay",
    "ExponentialBackoff",
    "NO_RETRY",
    "RetryResult",
    "RetryExecutor",
]
