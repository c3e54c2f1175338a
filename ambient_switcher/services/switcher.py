from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from ..core.config import settings
from ..core.timeutil import now_utc
from ..domain.classifier import MAX_CLASSIFIED, MIN_CLASSIFIED, classify
from ..domain.models import ChangeEvent, IlluminationBand
from ..sensors.base import Sensor
from ..sensors.errors import SensorError, SensorReadFailed, SensorUnavailable
from .notifier import ChangeNotifier


logger = logging.getLogger(__name__)


class LoopState(Enum):
    STOPPED = "stopped"
    RUNNING = "running"
    STOPPING = "stopping"


class LoopAlreadyRunning(RuntimeError):
    pass


@dataclass
class LiveState:
    loop_state: LoopState = LoopState.STOPPED
    band: IlluminationBand = IlluminationBand.SUN
    interval_s: Optional[float] = None
    last_raw: Optional[int] = None
    last_read_utc: Optional[datetime] = None
    last_error_kind: Optional[str] = None
    last_error: Optional[str] = None
    last_change_utc: Optional[datetime] = None
    cycles: int = 0
    failures: int = 0
    events: int = 0


class SwitcherService:
    """Polls the light sensor and publishes a ChangeEvent on every band change.

    One asyncio task runs the cycles; each read happens in the default
    executor so the event loop never blocks on the device. Only this class
    mutates the current band, listeners see it through event payloads.
    """

    def __init__(
        self,
        sensor: Sensor,
        notifier: ChangeNotifier,
        initial_band: IlluminationBand = IlluminationBand.SUN,
        normalize: Optional[bool] = None,
        stop_timeout_s: Optional[float] = None,
    ) -> None:
        self._sensor = sensor
        self._notifier = notifier
        self._band = initial_band
        self._normalize = settings.normalize if normalize is None else normalize
        self._stop_timeout_s = settings.stop_timeout_s if stop_timeout_s is None else stop_timeout_s

        self._state = LoopState.STOPPED
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._inflight: Optional[asyncio.Future] = None
        self._stop = asyncio.Event()
        self._cycle_lock = asyncio.Lock()

        self.live = LiveState(band=initial_band)

    @property
    def band(self) -> IlluminationBand:
        return self._band

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def sensor(self) -> Sensor:
        return self._sensor

    def _bind_loop(self) -> None:
        # asyncio primitives belong to the loop that first awaits them
        loop = asyncio.get_running_loop()
        if self._loop is not loop:
            self._loop = loop
            self._stop = asyncio.Event()
            self._cycle_lock = asyncio.Lock()
            self._inflight = None

    def _set_state(self, state: LoopState) -> None:
        self._state = state
        self.live.loop_state = state

    async def start(self, interval_s: Optional[float] = None) -> asyncio.Task:
        if self._state is not LoopState.STOPPED:
            raise LoopAlreadyRunning(f"Switcher loop is {self._state.value}")

        interval = settings.sample_seconds if interval_s is None else float(interval_s)
        if interval <= 0:
            raise ValueError(f"interval_s must be positive, got {interval}")

        self._bind_loop()
        self._stop.clear()
        self.live.interval_s = interval
        self._set_state(LoopState.RUNNING)
        self._task = asyncio.create_task(self._run(interval), name="switcher_loop")
        return self._task

    async def stop(self) -> None:
        task = self._task
        if task is None:
            return

        self._set_state(LoopState.STOPPING)
        self._stop.set()
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=self._stop_timeout_s)
        except asyncio.TimeoutError:
            logger.warning(
                "Switcher loop still reading after %ss, cancelling (result will be discarded)",
                self._stop_timeout_s,
            )
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None
            self._set_state(LoopState.STOPPED)

    async def _run(self, interval_s: float) -> None:
        logger.info(
            "Switcher loop started (interval=%ss sensor=%s normalize=%s band=%s)",
            interval_s, self._sensor.sensor_id, self._normalize, self._band.value,
        )

        while not self._stop.is_set():
            try:
                await self.poll_once()
            except Exception as e:
                logger.exception("Switcher cycle error: %s", e)

            # sleep with cancellation awareness
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=interval_s)
            except asyncio.TimeoutError:
                pass

        logger.info("Switcher loop stopped")

    def _record_failure(self, kind: str, error: Exception) -> None:
        self.live.failures += 1
        self.live.last_error_kind = kind
        self.live.last_error = str(error)

    async def _drain_inflight(self) -> None:
        """Wait out a read orphaned by a cancelled cycle and discard its result."""
        fut = self._inflight
        if fut is None or fut.done():
            return
        logger.info("Waiting for orphaned sensor read to finish before the next one")
        try:
            await asyncio.shield(fut)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug("Discarded orphaned read error: %s", e)

    async def poll_once(self) -> Optional[ChangeEvent]:
        """Run one read/classify/compare cycle, return the event if one fired."""
        self._bind_loop()
        async with self._cycle_lock:
            self.live.cycles += 1
            await self._drain_inflight()
            loop = asyncio.get_running_loop()

            try:
                # a cancelled cycle leaves the read running; keep the future to drain it
                self._inflight = loop.run_in_executor(None, self._sensor.read_raw, self._normalize)
                raw = await asyncio.shield(self._inflight)
            except SensorUnavailable as e:
                self._record_failure("unavailable", e)
                logger.warning("Sensor unavailable (%s): %s", self._sensor.sensor_id, e)
                return None
            except SensorReadFailed as e:
                self._record_failure("read_failed", e)
                logger.warning("Sensor read failed (%s): %s", self._sensor.sensor_id, e)
                return None
            except SensorError as e:
                self._record_failure("sensor_error", e)
                logger.warning("Sensor error (%s): %s", self._sensor.sensor_id, e)
                return None
            except Exception as e:
                self._record_failure("unexpected", e)
                logger.exception("Sensor read raised unexpectedly: %s", e)
                return None

            if self._state is LoopState.STOPPING:
                logger.debug("Discarding reading %d, stop requested", raw)
                return None

            self.live.last_raw = raw
            self.live.last_read_utc = now_utc()
            self.live.last_error_kind = None
            self.live.last_error = None

            band = classify(raw)
            if band is None:
                logger.warning(
                    "Reading %d outside [%d, %d], keeping band %s",
                    raw, MIN_CLASSIFIED, MAX_CLASSIFIED, self._band.value,
                )
                return None

            if band is self._band:
                logger.debug("Reading %d still %s", raw, band.value)
                return None

            event = ChangeEvent(band=band, previous=self._band, raw=raw, ts_utc=now_utc())
            self._band = band
            self.live.band = band
            self.live.events += 1
            self.live.last_change_utc = event.ts_utc
            logger.info("Band changed %s -> %s (raw=%d)", event.previous.value, band.value, raw)

            self._notifier.publish(event)
            return event
