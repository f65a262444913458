"""Run external commands under a retry policy"""

import logging
import subprocess
import time
from typing import Callable, Collection, Optional, Sequence

from steadfast.domain.config import BackoffSpec, RetryPolicy
from steadfast.infrastructure.retry import execute, retry_always

logger = logging.getLogger(__name__)


class CommandFailed(Exception):
    """A command exited with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int):
        self.command = list(command)
        self.returncode = returncode
        super().__init__(f"{' '.join(self.command)} exited with status {returncode}")


class CommandService:
    """Runs a command until it succeeds or the backoff schedule runs out"""

    def __init__(
        self,
        backoff: BackoffSpec,
        retry_on: Collection[int] = (),
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """Initialize command service

        Args:
            backoff: Delay schedule between attempts
            retry_on: Exit statuses worth retrying (empty = any failure)
            sleep: Blocking wait between attempts (defaults to time.sleep)
        """
        self.backoff = backoff
        self.retry_on = frozenset(retry_on)
        self.sleep = sleep
        self.attempts = 0

    def _classify(self, state, error: BaseException):
        if isinstance(error, OSError):
            return False, error
        if not self.retry_on:
            return retry_always(state, error)
        return getattr(error, "returncode", None) in self.retry_on, error

    def _attempt(self, command: Sequence[str]) -> int:
        self.attempts += 1
        logger.info(f"Running {' '.join(command)} (attempt {self.attempts})")
        completed = subprocess.run(list(command), check=False)
        if completed.returncode != 0:
            raise CommandFailed(command, completed.returncode)
        return 0

    def run(self, command: Sequence[str]) -> int:
        """Run ``command`` with retries

        Args:
            command: Program and arguments

        Returns:
            Exit status of the last attempt

        Raises:
            OSError: If the command cannot be started
        """
        self.attempts = 0
        policy = RetryPolicy(
            delays=self.backoff,
            classify=self._classify,
            sleep=self.sleep or time.sleep,
        )
        try:
            return execute(self._attempt, policy, command)
        except CommandFailed as e:
            logger.error(f"Giving up after {self.attempts} attempt(s): {e}")
            return e.returncode
