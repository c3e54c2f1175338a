from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..core.config import settings
from ..domain.interfaces import Listener
from ..domain.models import ChangeEvent, IlluminationBand

logger = logging.getLogger(__name__)


def _is_coroutine_listener(listener: Listener) -> bool:
    return inspect.iscoroutinefunction(listener) or inspect.iscoroutinefunction(
        getattr(listener, "__call__", None)
    )


def _listener_name(listener: Listener) -> str:
    return getattr(listener, "__qualname__", None) or type(listener).__name__


@dataclass(eq=False)
class Subscription:
    listener: Listener
    queue: asyncio.Queue
    bands: Optional[frozenset[IlluminationBand]] = None
    task: Optional[asyncio.Task] = None
    delivered: int = 0
    dropped: int = 0
    active: bool = field(default=True)

    def wants(self, event: ChangeEvent) -> bool:
        return self.bands is None or event.band in self.bands


class ChangeNotifier:
    """Explicit subscription list for band change events.

    ``publish`` never runs listener code: each subscription has its own
    bounded queue drained by a delivery task, so a slow listener only
    delays itself. Coroutine listeners are awaited in that task, plain
    callables run in the default executor. When a subscription's queue is
    full the new event is dropped for that subscription and a warning is
    logged.
    """

    def __init__(self, queue_size: Optional[int] = None) -> None:
        self._queue_size = settings.notifier_queue_size if queue_size is None else queue_size
        self._subs: list[Subscription] = []

    @property
    def subscriptions(self) -> list[Subscription]:
        return list(self._subs)

    def subscribe(
        self,
        listener: Listener,
        bands: Optional[Iterable[IlluminationBand]] = None,
    ) -> Subscription:
        sub = Subscription(
            listener=listener,
            queue=asyncio.Queue(maxsize=self._queue_size),
            bands=frozenset(bands) if bands is not None else None,
        )
        sub.task = asyncio.create_task(
            self._deliver(sub), name=f"notifier:{_listener_name(listener)}"
        )
        self._subs.append(sub)
        logger.debug("Subscribed %s (bands=%s)", _listener_name(listener), sub.bands)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if not sub.active:
            return
        sub.active = False
        if sub in self._subs:
            self._subs.remove(sub)
        if sub.task is not None:
            sub.task.cancel()
        logger.debug("Unsubscribed %s", _listener_name(sub.listener))

    def publish(self, event: ChangeEvent) -> int:
        """Queue the event for every interested subscriber, return how many."""
        queued = 0
        for sub in list(self._subs):
            if not sub.wants(event):
                continue
            try:
                sub.queue.put_nowait(event)
                queued += 1
            except asyncio.QueueFull:
                sub.dropped += 1
                logger.warning(
                    "Listener %s is behind, dropped %s event (total dropped=%d)",
                    _listener_name(sub.listener), event.band.value, sub.dropped,
                )
        return queued

    async def join(self) -> None:
        """Wait until every queued event has been handled."""
        await asyncio.gather(*(sub.queue.join() for sub in list(self._subs)))

    async def aclose(self) -> None:
        subs = list(self._subs)
        for sub in subs:
            self.unsubscribe(sub)
        await asyncio.gather(*(s.task for s in subs if s.task is not None), return_exceptions=True)

    async def _deliver(self, sub: Subscription) -> None:
        loop = asyncio.get_running_loop()
        is_coro = _is_coroutine_listener(sub.listener)

        while True:
            event = await sub.queue.get()
            try:
                if is_coro:
                    await sub.listener(event)
                else:
                    await loop.run_in_executor(None, sub.listener, event)
                sub.delivered += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("Listener %s failed on %s: %s", _listener_name(sub.listener), event.band.value, e)
            finally:
                sub.queue.task_done()
