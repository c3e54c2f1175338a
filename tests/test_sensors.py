from __future__ import annotations

import pytest

from ambient_switcher.drivers import rs485_modbus
from ambient_switcher.drivers.rs485_modbus import ModbusRtuConfig, RS485ModbusRTU
from ambient_switcher.sensors.errors import SensorError, SensorReadFailed, SensorUnavailable
from ambient_switcher.sensors.iio_sensor import IIOSensor
from ambient_switcher.sensors.lmu_sensor import LMUSensor
from ambient_switcher.sensors.rs485_lux_sensor import LuxRegisterSpec, RS485LuxSensor
from ambient_switcher.sensors.simulated_lux_sensor import PatternConfig, SimulatedLuxSensor, pattern_counts


def test_errors_share_base():
    assert issubclass(SensorUnavailable, SensorError)
    assert issubclass(SensorReadFailed, SensorError)


def test_normalization_truncates(scripted_sensor):
    sensor = scripted_sensor([1234])
    assert sensor.read_raw(normalize=True) == 123
    assert sensor.read_raw(normalize=False) == 1234


def test_negative_counts_are_a_read_failure(scripted_sensor):
    with pytest.raises(SensorReadFailed):
        scripted_sensor([-5]).read_raw()


# --- simulated ---

def test_pattern_counts_follow_the_configured_shape():
    step = PatternConfig(type="step", step_low=1_000, step_high=900_000, step_period_s=100, noise=0)
    assert pattern_counts(step, 10) == 900_000
    assert pattern_counts(step, 60) == 1_000

    ramp = PatternConfig(type="ramp", ramp_min=0, ramp_max=1_000, ramp_period_s=10, noise=0)
    assert pattern_counts(ramp, 5) == 500

    sine = PatternConfig(type="sine", baseline=100, amplitude=500, period_s=4, noise=0)
    assert pattern_counts(sine, 3) == 0


def test_simulated_pattern_mode():
    sim = SimulatedLuxSensor()
    sim.set_pattern(PatternConfig(type="random", baseline=50_000, amplitude=1_000, noise=0))
    assert 49_000 <= sim.read_raw(normalize=False) <= 51_000
    assert sim.status()["mode"] == "pattern"


def test_simulated_manual_and_failures():
    sim = SimulatedLuxSensor(manual_raw=1234)
    assert sim.read_raw() == 123

    sim.fail_next(2)
    for _ in range(2):
        with pytest.raises(SensorReadFailed):
            sim.read_raw()
    assert sim.read_raw(normalize=False) == 1234

    sim.disable()
    with pytest.raises(SensorUnavailable):
        sim.read_raw()
    sim.enable()
    sim.set_manual(90_000)
    assert sim.read_raw() == 9000
    assert sim.status()["manual_raw"] == 90_000


# --- Apple LMU ---

class FakeIOKit:
    def __init__(self, value=1234, service=11, open_kr=0, call_kr=0):
        self.value = value
        self.service = service
        self.open_kr = open_kr
        self.call_kr = call_kr
        self.closed = []
        self.released = []

    def IOServiceMatching(self, name):
        assert name == b"AppleLMUController"
        return 1

    def IOServiceGetMatchingService(self, port, matching):
        return self.service

    def IOServiceOpen(self, service, task, kind, connect_ref):
        connect_ref._obj.value = 42
        return self.open_kr

    def IOConnectCallMethod(self, connect, selector, inp, inp_cnt, inp_struct, inp_struct_cnt,
                            outputs, count_ref, out_struct, out_struct_cnt):
        assert connect == 42
        assert len(outputs) == 2
        if self.call_kr:
            return self.call_kr
        outputs[0] = self.value
        outputs[1] = self.value
        count_ref._obj.value = 2
        return 0

    def IOServiceClose(self, connect):
        self.closed.append(connect)

    def IOObjectRelease(self, obj):
        self.released.append(obj)


def test_lmu_reads_first_word_and_releases():
    iokit = FakeIOKit(value=1234)
    sensor = LMUSensor(iokit=iokit, task_port=1)

    assert sensor.read_raw(normalize=True) == 123
    assert sensor.read_raw(normalize=False) == 1234
    assert iokit.closed == [42, 42]
    assert iokit.released == [11, 11]


def test_lmu_read_failure_still_releases():
    iokit = FakeIOKit(call_kr=0xE00002C7)
    sensor = LMUSensor(iokit=iokit, task_port=1)

    with pytest.raises(SensorReadFailed):
        sensor.read_raw()
    assert iokit.closed == [42]
    assert iokit.released == [11]


def test_lmu_open_failure_is_unavailable():
    iokit = FakeIOKit(open_kr=0xE00002C2)
    sensor = LMUSensor(iokit=iokit, task_port=1)

    with pytest.raises(SensorUnavailable):
        sensor.read_raw()
    assert iokit.closed == []
    assert iokit.released == [11]


def test_lmu_missing_service_is_unavailable():
    sensor = LMUSensor(iokit=FakeIOKit(service=0), task_port=1)
    with pytest.raises(SensorUnavailable):
        sensor.read_raw()


def test_lmu_requires_macos(monkeypatch):
    monkeypatch.setattr("ambient_switcher.sensors.lmu_sensor.sys.platform", "linux")
    with pytest.raises(SensorUnavailable):
        LMUSensor().read_raw()


def test_lmu_library_load_failure_is_unavailable(monkeypatch):
    monkeypatch.setattr("ambient_switcher.sensors.lmu_sensor.sys.platform", "darwin")
    monkeypatch.setattr(
        "ambient_switcher.sensors.lmu_sensor.ctypes.util.find_library",
        lambda name: f"/nonexistent/{name}",
    )
    with pytest.raises(SensorUnavailable):
        LMUSensor().read_raw()


# --- Linux IIO ---

def test_iio_reads_scaled_channel(tmp_path):
    dev = tmp_path / "iio:device0"
    dev.mkdir()
    (dev / "in_illuminance_raw").write_text("2500\n")
    (dev / "in_illuminance_scale").write_text("2.0\n")

    sensor = IIOSensor(device_glob=str(tmp_path / "iio:device*"))
    assert sensor.read_raw(normalize=False) == 5000
    assert sensor.read_raw() == 500


def test_iio_missing_device_is_unavailable(tmp_path):
    sensor = IIOSensor(device_glob=str(tmp_path / "iio:device*"))
    with pytest.raises(SensorUnavailable):
        sensor.read_raw()


def test_iio_garbage_is_read_failure(tmp_path):
    dev = tmp_path / "iio:device0"
    dev.mkdir()
    (dev / "in_illuminance_input").write_text("n/a\n")

    sensor = IIOSensor(device_glob=str(tmp_path / "iio:device*"))
    with pytest.raises(SensorReadFailed):
        sensor.read_raw()


# --- RS485 ---

class FakeResponse:
    def __init__(self, registers, error=False):
        self.registers = registers
        self._error = error

    def isError(self):
        return self._error


class FakeModbusClient:
    instances = []
    connect_ok = True
    response = FakeResponse([0x0001, 0x0002])

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.closed = False
        FakeModbusClient.instances.append(self)

    def connect(self):
        return self.connect_ok

    def close(self):
        self.closed = True

    def read_holding_registers(self, address, count, device_id):
        return self.response

    def read_input_registers(self, address, count, device_id):
        return self.response


@pytest.fixture
def fake_modbus(monkeypatch):
    FakeModbusClient.instances = []
    FakeModbusClient.connect_ok = True
    FakeModbusClient.response = FakeResponse([0x0001, 0x0002])
    monkeypatch.setattr(rs485_modbus, "ModbusSerialClient", FakeModbusClient)
    return FakeModbusClient


def _rs485_sensor(functioncode=3):
    driver = RS485ModbusRTU(ModbusRtuConfig(port="/dev/null"))
    return RS485LuxSensor(driver=driver, spec=LuxRegisterSpec(functioncode=functioncode, count=2))


def test_rs485_combines_two_words(fake_modbus):
    assert _rs485_sensor().read_raw(normalize=False) == (1 << 16) | 2
    assert fake_modbus.instances[-1].closed


def test_rs485_connect_failure_is_unavailable(fake_modbus):
    fake_modbus.connect_ok = False
    with pytest.raises(SensorUnavailable):
        _rs485_sensor().read_raw()
    assert fake_modbus.instances[-1].closed


def test_rs485_error_response_is_read_failure(fake_modbus):
    fake_modbus.response = FakeResponse([], error=True)
    with pytest.raises(SensorReadFailed):
        _rs485_sensor(functioncode=4).read_raw()
    assert fake_modbus.instances[-1].closed


def test_rs485_rejects_unknown_functioncode():
    with pytest.raises(ValueError):
        _rs485_sensor(functioncode=6)
