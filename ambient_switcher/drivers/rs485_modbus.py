from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from pymodbus.client import ModbusSerialClient
from pymodbus.exceptions import ModbusException

logger = logging.getLogger(__name__)


class ModbusConnectError(RuntimeError):
    pass


class ModbusReadError(RuntimeError):
    pass


@dataclass
class ModbusRtuConfig:
    port: str = "/dev/ttyUSB0"      # Windows example: "COM3"
    baudrate: int = 9600
    bytesize: int = 8
    parity: str = "N"               # "N", "E", "O"
    stopbits: int = 1
    timeout_s: float = 1.0
    slave_id: int = 1


class RS485ModbusRTU:
    """
    Modbus RTU over serial/USB driver.
    Responsible for: scoped port sessions, raw register reads.
    """

    def __init__(self, cfg: ModbusRtuConfig):
        self.cfg = cfg

    def _make_client(self) -> ModbusSerialClient:
        return ModbusSerialClient(
            port=self.cfg.port,
            baudrate=self.cfg.baudrate,
            bytesize=self.cfg.bytesize,
            parity=self.cfg.parity,
            stopbits=self.cfg.stopbits,
            timeout=self.cfg.timeout_s,
        )

    @contextmanager
    def session(self) -> Iterator["RS485Session"]:
        """Open the port, yield a session, always close the port."""
        client = self._make_client()
        try:
            if not client.connect():
                raise ModbusConnectError(f"Unable to connect Modbus RTU on {self.cfg.port}")
            logger.debug("Modbus RTU connected on %s (baud=%s)", self.cfg.port, self.cfg.baudrate)
            yield RS485Session(client, self.cfg.slave_id)
        finally:
            client.close()


class RS485Session:
    def __init__(self, client: ModbusSerialClient, slave_id: int) -> None:
        self._client = client
        self._slave_id = slave_id

    def read_holding_registers(self, address: int, count: int) -> list[int]:
        """
        Function code 3. Returns list of 16-bit register values.
        """
        try:
            rr = self._client.read_holding_registers(address=address, count=count, device_id=self._slave_id)
        except ModbusException as e:
            raise ModbusReadError(f"Modbus read_holding_registers failed: {e}") from e
        if rr.isError():
            raise ModbusReadError(f"Modbus read_holding_registers error: {rr}")
        return list(rr.registers)

    def read_input_registers(self, address: int, count: int) -> list[int]:
        """
        Function code 4. Returns list of 16-bit register values.
        """
        try:
            rr = self._client.read_input_registers(address=address, count=count, device_id=self._slave_id)
        except ModbusException as e:
            raise ModbusReadError(f"Modbus read_input_registers failed: {e}") from e
        if rr.isError():
            raise ModbusReadError(f"Modbus read_input_registers error: {rr}")
        return list(rr.registers)
