"""One-shot settlement guard for a publish attempt."""

import logging
from typing import Optional

from ..errors import PublishAttemptError


logger = logging.getLogger(__name__)


class Settlement:
    """
    Records the first outcome of an attempt and ignores every later one.

    Connect, publish, error and deadline events all race to settle the
    attempt. Only the first call to ``succeed`` or ``fail`` has effect.
    """

    def __init__(self):
        self._settled = False
        self._error: Optional[PublishAttemptError] = None

    @property
    def settled(self) -> bool:
        return self._settled

    @property
    def ok(self) -> bool:
        return self._settled and self._error is None

    @property
    def error(self) -> Optional[PublishAttemptError]:
        return self._error

    def succeed(self) -> bool:
        """
        Settle the attempt as successful.

        Returns:
            True if this call settled the attempt, False if it was already settled
        """
        if self._settled:
            logger.debug("Ignoring success, attempt already settled")
            return False
        self._settled = True
        return True

    def fail(self, error: PublishAttemptError) -> bool:
        """
        Settle the attempt as failed.

        Args:
            error: Reason for the failure

        Returns:
            True if this call settled the attempt, False if it was already settled
        """
        if self._settled:
            logger.debug(f"Ignoring failure, attempt already settled: {error}")
            return False
        self._settled = True
        self._error = error
        return True
