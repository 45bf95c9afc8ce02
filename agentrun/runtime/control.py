"""
Cooperative cancellation for runs.
"""

import asyncio


class CancellationToken:
    """
    Cancellation signal for graceful stopping of a run.

    Based on asyncio.Event, supports:
    - Synchronous status check at loop checkpoints
    - Async wait for the signal
    - Recording the cancellation reason

    Cancelling never interrupts work already in flight; the engine only
    checks the token before starting new model or tool calls.

    Examples:
        >>> token = CancellationToken()
        >>> handle = session.run("Summarize my tabs", token=token)
        >>>
        >>> # Elsewhere, e.g. a "stop" button handler
        >>> token.cancel("User pressed stop")
    """

    def __init__(self):
        self._event = asyncio.Event()
        self._reason: str | None = None

    def cancel(self, reason: str = "Run cancelled") -> None:
        """Trigger cancellation. The first reason wins."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        """Async wait for the cancellation signal."""
        await self._event.wait()

    @property
    def reason(self) -> str | None:
        return self._reason

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.is_cancelled}, reason={self._reason!r})"


__all__ = ["CancellationToken"]
