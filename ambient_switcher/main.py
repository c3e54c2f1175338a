from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from .core.config import settings
from .core.log import configure_logging

from .api.routes import router as api_router
import ambient_switcher.api.routes as routes_module

from .domain.interfaces import ThemeActuator
from .domain.models import ThemeMode
from .domain.theme import ThemeController
from .drivers.rs485_modbus import RS485ModbusRTU, ModbusRtuConfig
from .drivers.theme_macos import MacOSThemeActuator
from .drivers.theme_sim import SimulatedThemeActuator
from .services.notifier import ChangeNotifier
from .services.switcher import SwitcherService
from .services.theme_listener import ThemeListener

from .sensors.base import Sensor
from .sensors.iio_sensor import IIOSensor
from .sensors.lmu_sensor import LMUSensor
from .sensors.rs485_lux_sensor import RS485LuxSensor, LuxRegisterSpec
from .sensors.simulated_lux_sensor import SimulatedLuxSensor


logger = logging.getLogger(__name__)


sim_sensor: SimulatedLuxSensor | None = None


def build_sensor() -> Sensor:
    global sim_sensor

    mode = settings.sensor_mode.lower()
    if mode == "lmu":
        return LMUSensor()

    if mode == "iio":
        return IIOSensor(device_glob=settings.iio_device_glob)

    if mode == "rs485":
        driver = RS485ModbusRTU(
            ModbusRtuConfig(
                port=settings.rs485_port,
                baudrate=settings.rs485_baudrate,
                slave_id=settings.rs485_slave_id,
            )
        )
        spec = LuxRegisterSpec(
            functioncode=settings.lux_functioncode,
            address=settings.lux_register_address,
            count=settings.lux_register_count,
        )
        return RS485LuxSensor(driver=driver, spec=spec)

    if mode != "sim":
        logger.warning("Unknown sensor_mode=%r, falling back to simulated sensor", settings.sensor_mode)

    sim_sensor = SimulatedLuxSensor()
    return sim_sensor


def build_theme_actuator() -> ThemeActuator:
    if settings.theme_actuator.lower() == "macos":
        return MacOSThemeActuator()
    return SimulatedThemeActuator()


# --- Singletons ---
sensor = build_sensor()
notifier = ChangeNotifier()
switcher = SwitcherService(sensor=sensor, notifier=notifier)
theme_listener = ThemeListener(ThemeController(), build_theme_actuator())


def get_switcher() -> SwitcherService:
    return switcher


def get_theme_listener() -> ThemeListener:
    return theme_listener


def get_sim_sensor() -> SimulatedLuxSensor:
    if sim_sensor is None:
        raise HTTPException(status_code=404, detail="Sim sensor not available (sensor_mode is not 'sim').")
    return sim_sensor


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("Starting %s (sensor_mode=%s theme=%s)", settings.app_name, settings.sensor_mode, settings.theme_mode)

    notifier.subscribe(theme_listener)
    await theme_listener.set_mode(ThemeMode(settings.theme_mode.lower()))

    await switcher.start()

    try:
        yield
    finally:
        await switcher.stop()
        await notifier.aclose()
        logger.info("Shutdown complete")


app = FastAPI(title=settings.app_name, lifespan=lifespan)

# Make the dependency functions in routes resolve to the real ones
app.dependency_overrides[routes_module.get_switcher] = get_switcher
app.dependency_overrides[routes_module.get_theme_listener] = get_theme_listener
app.dependency_overrides[routes_module.get_sim_sensor] = get_sim_sensor

app.include_router(api_router, prefix="/api")
