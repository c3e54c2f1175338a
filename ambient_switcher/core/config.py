from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Ambient Switcher"

    # Sampling
    sample_seconds: float = 1.0
    normalize: bool = True          # raw // 10 before classification
    stop_timeout_s: float = 2.0     # max wait for an in-flight read on stop

    # Notifier: per-subscriber queue bound, newest events dropped when full
    notifier_queue_size: int = 64

    # Sensor mode: "sim", "lmu" (macOS), "iio" (Linux sysfs) or "rs485"
    sensor_mode: str = Field(default="sim")

    # Linux IIO
    iio_device_glob: str = "/sys/bus/iio/devices/iio:device*"

    # RS485 / Modbus RTU
    rs485_port: str = "/dev/ttyUSB0"      # Windows example: "COM3"
    rs485_baudrate: int = 9600
    rs485_slave_id: int = 1

    # Lux register definition (two words, hi first)
    lux_functioncode: int = 3             # 3=holding, 4=input
    lux_register_address: int = 0
    lux_register_count: int = 2

    # Theme: "auto", "light" or "dark"; actuator "sim" or "macos"
    theme_mode: str = "auto"
    theme_actuator: str = "sim"

    # Logging
    log_level: str = "INFO"
    log_file: str = Field(default="ambient_switcher.log")


settings = Settings()
