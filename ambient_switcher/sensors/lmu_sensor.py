from __future__ import annotations

import ctypes
import ctypes.util
import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional

from .base import Sensor
from .errors import SensorReadFailed, SensorUnavailable

logger = logging.getLogger(__name__)

KERN_SUCCESS = 0
MASTER_PORT_DEFAULT = 0  # MACH_PORT_NULL selects the default master port


class LMUSensor(Sensor):
    """Ambient light sensor behind the Apple LMU controller (macOS, IOKit).

    Not supported on MacBook Pro models with a Touch Bar: the service
    exists there but the read call fails.
    """

    SERVICE_NAME = b"AppleLMUController"
    SELECTOR = 0
    OUTPUT_WORDS = 2

    def __init__(
        self,
        sensor_id: str = "lmu",
        iokit: Optional[ctypes.CDLL] = None,
        task_port: Optional[int] = None,
    ) -> None:
        self._sensor_id = sensor_id
        self._iokit = iokit
        self._task_port = task_port

    @property
    def sensor_id(self) -> str:
        return self._sensor_id

    def _load(self) -> tuple[ctypes.CDLL, int]:
        if self._iokit is not None and self._task_port is not None:
            return self._iokit, self._task_port

        if sys.platform != "darwin":
            raise SensorUnavailable(f"LMU controller requires macOS (platform={sys.platform})")

        iokit_path = ctypes.util.find_library("IOKit")
        libc_path = ctypes.util.find_library("c")
        if not iokit_path or not libc_path:
            raise SensorUnavailable("IOKit framework not found")

        try:
            iokit = ctypes.cdll.LoadLibrary(iokit_path)
            libc = ctypes.CDLL(libc_path)
            task_port = ctypes.c_uint32.in_dll(libc, "mach_task_self_").value
        except (OSError, ValueError) as e:
            raise SensorUnavailable(f"Can't load IOKit: {e}") from e

        iokit.IOServiceMatching.argtypes = [ctypes.c_char_p]
        iokit.IOServiceMatching.restype = ctypes.c_void_p
        iokit.IOServiceGetMatchingService.argtypes = [ctypes.c_uint32, ctypes.c_void_p]
        iokit.IOServiceGetMatchingService.restype = ctypes.c_uint32
        iokit.IOServiceOpen.argtypes = [
            ctypes.c_uint32, ctypes.c_uint32, ctypes.c_uint32, ctypes.POINTER(ctypes.c_uint32),
        ]
        iokit.IOServiceOpen.restype = ctypes.c_int
        iokit.IOConnectCallMethod.argtypes = [
            ctypes.c_uint32, ctypes.c_uint32,
            ctypes.POINTER(ctypes.c_uint64), ctypes.c_uint32,
            ctypes.c_void_p, ctypes.c_size_t,
            ctypes.POINTER(ctypes.c_uint64), ctypes.POINTER(ctypes.c_uint32),
            ctypes.c_void_p, ctypes.POINTER(ctypes.c_size_t),
        ]
        iokit.IOConnectCallMethod.restype = ctypes.c_int
        iokit.IOServiceClose.argtypes = [ctypes.c_uint32]
        iokit.IOObjectRelease.argtypes = [ctypes.c_uint32]

        self._iokit = iokit
        self._task_port = task_port
        return iokit, task_port

    @contextmanager
    def _connection(self) -> Iterator[tuple[ctypes.CDLL, int]]:
        iokit, task_port = self._load()

        matching = iokit.IOServiceMatching(self.SERVICE_NAME)
        if not matching:
            raise SensorUnavailable("Can't get LMU controller")

        # IOServiceGetMatchingService consumes the matching dictionary
        service = iokit.IOServiceGetMatchingService(MASTER_PORT_DEFAULT, matching)
        if not service:
            raise SensorUnavailable("LMU controller service not found")

        try:
            connect = ctypes.c_uint32(0)
            kr = iokit.IOServiceOpen(service, task_port, 0, ctypes.byref(connect))
            if kr != KERN_SUCCESS:
                raise SensorUnavailable(f"Can't open LMU controller (kern_return={kr})")
            try:
                yield iokit, connect.value
            finally:
                iokit.IOServiceClose(connect.value)
        finally:
            iokit.IOObjectRelease(service)

    def _read_counts(self) -> int:
        with self._connection() as (iokit, connect):
            outputs = (ctypes.c_uint64 * self.OUTPUT_WORDS)()
            count = ctypes.c_uint32(self.OUTPUT_WORDS)
            kr = iokit.IOConnectCallMethod(
                connect, self.SELECTOR,
                None, 0,
                None, 0,
                outputs, ctypes.byref(count),
                None, None,
            )
            if kr != KERN_SUCCESS:
                raise SensorReadFailed(f"Can't read data from LMU controller (kern_return={kr})")
            if not 1 <= count.value <= self.OUTPUT_WORDS:
                raise SensorReadFailed(f"LMU controller returned {count.value} words")

            raw = int(outputs[0])

        logger.debug("LMU read: raw=%d", raw)
        return raw
