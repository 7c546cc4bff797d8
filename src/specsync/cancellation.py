"""Cooperative cancellation and compensating actions for a processing run."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Awaitable, Callable, Iterator

from specsync.exceptions import ShutdownRequested

logger = logging.getLogger(__name__)


class CancellationToken:
    """Shutdown flag polled by the processor between steps.

    Inside ``shield()`` checkpoints never raise, so once the first remote
    write has happened the run either completes or compensates.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._shield_depth = 0

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def shielded(self) -> bool:
        return self._shield_depth > 0

    def checkpoint(self) -> None:
        """Raise ``ShutdownRequested`` if cancelled outside a shielded region."""
        if self._cancelled and not self.shielded:
            raise ShutdownRequested("Shutdown requested")

    @contextmanager
    def shield(self) -> Iterator[None]:
        self._shield_depth += 1
        try:
            yield
        finally:
            self._shield_depth -= 1


CompensationAction = Callable[[], Awaitable[None]]


class Compensations:
    """Stack of undo actions registered as remote writes succeed."""

    def __init__(self) -> None:
        self._actions: list[tuple[str, CompensationAction]] = []

    def register(self, description: str, action: CompensationAction) -> None:
        self._actions.append((description, action))

    def __len__(self) -> int:
        return len(self._actions)

    async def run(self) -> bool:
        """Run every registered action, most recent first.

        Failures are logged and do not stop the remaining actions.

        Returns:
            True if every action succeeded.
        """
        ok = True
        while self._actions:
            description, action = self._actions.pop()
            logger.warning("Compensating: %s", description)
            try:
                await action()
            except Exception as exc:
                ok = False
                logger.error("Compensation '%s' failed: %s", description, exc)
        return ok
