from __future__ import annotations
from typing import Awaitable, Callable, Protocol, Union, runtime_checkable

from .models import ChangeEvent, Theme


Listener = Callable[[ChangeEvent], Union[None, Awaitable[None]]]


@runtime_checkable
class ThemeActuator(Protocol):
    actuator_id: str

    async def get_state(self) -> Theme:
        ...

    async def set_state(self, theme: Theme, reason: str) -> None:
        ...
