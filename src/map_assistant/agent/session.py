"""One active invocation per session, with cooperative cancellation."""

import asyncio
import logging

from map_assistant.agent.state import QueryOutcome, SessionContext
from map_assistant.exceptions import InvocationCancelled

logger = logging.getLogger(__name__)


class CancellationToken:
    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise InvocationCancelled("superseded by a newer query")


class TurnManager:
    """Run user turns through an assistant, one at a time.

    Submitting a new turn cancels the one still in flight. The cancelled turn
    resolves to an outcome flagged ``cancelled`` and renders nothing.
    """

    def __init__(self, assistant):
        self.assistant = assistant
        self._task: asyncio.Task | None = None
        self._token: CancellationToken | None = None
        # Superseded turns still unwinding.
        self._pending: set[asyncio.Task] = set()

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def _interrupt(self) -> list[asyncio.Task]:
        """Cancel the in-flight turn without yielding to the event loop."""
        if self._token is not None:
            self._token.cancel()
        if self.busy:
            logger.info("Cancelling in-flight query")
            self._task.cancel()
        return list(self._pending)

    async def cancel(self) -> None:
        previous = self._interrupt()
        if previous:
            await asyncio.wait(previous)

    async def _run(self, previous: list[asyncio.Task], user_text: str, **kwargs) -> QueryOutcome:
        # Superseded turns unwind before this one starts.
        if previous:
            await asyncio.wait(previous)
        return await self.assistant.handle(user_text, **kwargs)

    async def submit(
        self,
        user_text: str,
        ai_text: str | None = None,
        session: SessionContext | None = None,
        renderer=None,
    ) -> QueryOutcome:
        previous = self._interrupt()
        token = CancellationToken()
        task = asyncio.create_task(
            self._run(
                previous,
                user_text,
                ai_text=ai_text,
                session=session,
                cancellation=token,
                renderer=renderer,
            )
        )
        self._token, self._task = token, task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

        try:
            return await task
        except asyncio.CancelledError:
            if not token.cancelled:
                raise
            logger.info("Query superseded: %s", user_text)
            return QueryOutcome(cancelled=True)
