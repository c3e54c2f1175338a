from __future__ import annotations

from dataclasses import dataclass
import logging

from .base import Sensor
from .errors import SensorReadFailed, SensorUnavailable
from ..drivers.rs485_modbus import ModbusConnectError, ModbusReadError, RS485ModbusRTU

logger = logging.getLogger(__name__)


@dataclass
class LuxRegisterSpec:
    functioncode: int = 3  # 3=holding, 4=input
    address: int = 0
    count: int = 2         # raw = (hi<<16)|lo


class RS485LuxSensor(Sensor):
    def __init__(
        self,
        driver: RS485ModbusRTU,
        spec: LuxRegisterSpec = LuxRegisterSpec(),
        sensor_id: str = "lux_rs485",
    ):
        if spec.functioncode not in (3, 4):
            raise ValueError(f"Unsupported functioncode: {spec.functioncode}")
        self._driver = driver
        self._spec = spec
        self._sensor_id = sensor_id

    @property
    def sensor_id(self) -> str:
        return self._sensor_id

    def _read_counts(self) -> int:
        try:
            with self._driver.session() as session:
                if self._spec.functioncode == 3:
                    regs = session.read_holding_registers(self._spec.address, self._spec.count)
                else:
                    regs = session.read_input_registers(self._spec.address, self._spec.count)
        except ModbusConnectError as e:
            raise SensorUnavailable(str(e)) from e
        except ModbusReadError as e:
            raise SensorReadFailed(str(e)) from e

        if len(regs) != self._spec.count:
            raise SensorReadFailed(f"Expected {self._spec.count} registers, got {len(regs)}")

        logger.debug(
            "RS485 read: fc=%d addr=%d count=%d regs=%s",
            self._spec.functioncode, self._spec.address, self._spec.count, regs,
        )

        # Combine registers into a single value (big-endian, hi word first)
        raw = 0
        for r in regs:
            raw = (raw << 16) | (r & 0xFFFF)
        return raw
