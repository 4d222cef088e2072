"""Per-key debouncing on the running asyncio loop."""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Union

logger = logging.getLogger(__name__)

Action = Callable[[str, Any], Union[Any, Awaitable[Any]]]


@dataclass
class _Pending:
    payload: Any
    future: asyncio.Future
    timer: asyncio.Task


class KeyedDebouncer:
    """Collapse bursts of submissions per key into one call with the latest payload.

    Every submission made while a key is pending shares one future, which
    resolves with the action's result (or exception) once the key has been
    quiet for ``delay_ms``. Cancelling a key resolves its future with None.
    """

    def __init__(self, delay_ms: int, action: Action):
        self.delay = delay_ms / 1000
        self.action = action
        self._pending: Dict[str, _Pending] = {}

    def schedule(self, key: str, payload: Any) -> asyncio.Future:
        loop = asyncio.get_running_loop()
        pending = self._pending.get(key)
        if pending is not None:
            pending.timer.cancel()
            future = pending.future
        else:
            future = loop.create_future()
        timer = loop.create_task(self._fire(key))
        self._pending[key] = _Pending(payload, future, timer)
        return future

    async def submit(self, key: str, payload: Any) -> Any:
        """Schedule and wait for the write that absorbs this payload."""
        return await asyncio.shield(self.schedule(key, payload))

    def cancel(self, key: str) -> bool:
        pending = self._pending.pop(key, None)
        if pending is None:
            return False
        pending.timer.cancel()
        if not pending.future.done():
            pending.future.set_result(None)
        return True

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    def latest_payload(self, key: str) -> Optional[Any]:
        pending = self._pending.get(key)
        return pending.payload if pending else None

    async def _fire(self, key: str) -> None:
        await asyncio.sleep(self.delay)
        pending = self._pending.pop(key, None)
        if pending is None:
            return
        try:
            result = self.action(key, pending.payload)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.error(f"Debounced action failed for {key}: {e}")
            if not pending.future.done():
                pending.future.set_exception(e)
            return
        if not pending.future.done():
            pending.future.set_result(result)
