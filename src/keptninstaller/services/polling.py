"""Retry loop shared by the convergence waits."""

import threading
from typing import Callable, Optional, TypeVar

from keptninstaller.errors import ConvergenceError
from keptninstaller.models import PollPolicy

T = TypeVar("T")


class Poller:
    """Calls an attempt function until it yields a value, the policy runs out, or a cancel is signalled."""

    def __init__(self, policy: PollPolicy, logger, cancel_event: Optional[threading.Event] = None):
        self.policy = policy
        self.logger = logger
        self.cancel_event = cancel_event or threading.Event()

    def _wait(self, attempt: int, description: str):
        if self.cancel_event.wait(self.policy.delay_for(attempt)):
            raise ConvergenceError(f"Cancelled while waiting for {description}.")

    def until(
        self,
        attempt_fn: Callable[[], Optional[T]],
        description: str,
        on_miss: Optional[Callable[[int], None]] = None,
        wait_first: bool = False,
    ) -> T:
        attempt = 0
        while True:
            attempt += 1
            if wait_first:
                self._wait(attempt, description)

            result = attempt_fn()
            if result is not None:
                return result

            if on_miss:
                on_miss(attempt)

            max_attempts = self.policy.max_attempts
            if max_attempts and attempt >= max_attempts:
                raise ConvergenceError(
                    f"Gave up waiting for {description} after {attempt} attempts."
                )
            self.logger.debug("%s not ready (attempt %s)", description, attempt)

            if not wait_first:
                self._wait(attempt, description)
