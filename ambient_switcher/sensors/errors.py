"""Errors raised by sensor backends."""


class SensorError(Exception):
    """Base error for sensor access"""
    pass


class SensorUnavailable(SensorError):
    """The sensor device or service cannot be located or opened"""
    pass


class SensorReadFailed(SensorError):
    """The sensor was opened but the read did not complete"""
    pass
