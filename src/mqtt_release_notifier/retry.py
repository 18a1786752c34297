"""Publish orchestrator: bounded, sequential retries with exponential backoff."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import PublishAttemptError
from .models import Attempt, AttemptResult, PublisherConfig
from .mqtt import PublishAttempt


logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_EXHAUSTED = 1

PublishFunc = Callable[[Attempt], AttemptResult]


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and exponential backoff schedule."""

    max_attempts: int
    base_delay_ms: int

    def __post_init__(self):
        """Validate the policy."""
        if self.max_attempts < 1:
            raise ValueError(f"Attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay_ms < 0:
            raise ValueError(f"Base delay must be non-negative, got {self.base_delay_ms}")

    @classmethod
    def from_config(cls, config: PublisherConfig) -> "RetryPolicy":
        return cls(max_attempts=config.max_attempts, base_delay_ms=config.retry_delay_ms)

    def delay_ms(self, attempt: int) -> int:
        """
        Wait after a failed attempt, before the next one starts.

        Args:
            attempt: 1-based number of the attempt that just failed

        Returns:
            Delay in milliseconds: base_delay_ms * 2^(attempt - 1)
        """
        return self.base_delay_ms * 2 ** (attempt - 1)


class PublishOrchestrator:
    """
    Runs publish attempts one after another until one succeeds.

    Every failure is retried the same way: log, back off, try again, until
    the attempt budget is spent.
    """

    def __init__(
        self,
        config: PublisherConfig,
        publish: Optional[PublishFunc] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Publisher configuration
            publish: Runs a single attempt, defaults to PublishAttempt
            sleep: Used for the backoff wait (seconds)
            clock: Monotonic clock used to compute attempt deadlines
        """
        self.config = config
        self.policy = RetryPolicy.from_config(config)
        self._publish = publish or PublishAttempt(config, clock=clock).run
        self._sleep = sleep
        self._clock = clock

    def _new_attempt(self, number: int) -> Attempt:
        return Attempt(
            number=number,
            total=self.policy.max_attempts,
            deadline=self._clock() + self.config.deadline_seconds,
        )

    def _run_attempt(self, attempt: Attempt) -> AttemptResult:
        try:
            return self._publish(attempt)
        except PublishAttemptError as e:
            return AttemptResult.failure(e)
        except Exception as e:
            logger.debug("Unexpected error during attempt", exc_info=True)
            return AttemptResult.failure(PublishAttemptError(f"{type(e).__name__}: {e}"))

    def run(self) -> int:
        """
        Publish with retries.

        Returns:
            EXIT_SUCCESS on the first successful attempt, EXIT_EXHAUSTED when
            every attempt failed
        """
        for number in range(1, self.policy.max_attempts + 1):
            attempt = self._new_attempt(number)
            logger.info(f"Attempt {attempt}")

            result = self._run_attempt(attempt)
            if result.ok:
                logger.info("Done - exiting success.")
                return EXIT_SUCCESS

            logger.error(f"Attempt {number} failed: {result.error}")

            if not attempt.is_last:
                backoff = self.policy.delay_ms(number)
                logger.info(f"Waiting {backoff}ms before retrying...")
                self._sleep(backoff / 1000.0)

        logger.error("All attempts failed - exiting with error.")
        return EXIT_EXHAUSTED
