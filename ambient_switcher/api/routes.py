from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ..core.config import settings
from ..core.timeutil import now_utc
from ..domain.models import ChangeEvent, ThemeMode
from ..sensors.simulated_lux_sensor import PatternConfig, SimulatedLuxSensor
from ..services.switcher import LoopAlreadyRunning, SwitcherService
from ..services.theme_listener import ThemeListener
from .schemas import (
    SimFailRequest,
    SimManualRequest,
    SimPatternRequest,
    StartRequest,
    ThemeModeRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Dependency getters ---
# Placeholders; main.py points them at the real singletons via app.dependency_overrides.
def get_switcher() -> SwitcherService:  # overridden in main
    raise RuntimeError("Switcher dependency not configured")

def get_theme_listener() -> ThemeListener:  # overridden in main
    raise RuntimeError("Theme listener dependency not configured")

def get_sim_sensor() -> SimulatedLuxSensor:  # overridden in main
    raise RuntimeError("Simulated sensor dependency not configured")


def _ts(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def _event_out(event: Optional[ChangeEvent]) -> Optional[dict]:
    if event is None:
        return None
    return {
        "band": event.band.value,
        "previous": event.previous.value if event.previous else None,
        "raw": event.raw,
        "ts_utc": _ts(event.ts_utc),
    }


@router.get("/live")
async def get_live(
    svc: SwitcherService = Depends(get_switcher),
    themes: ThemeListener = Depends(get_theme_listener),
):
    live = svc.live
    return {
        "app": settings.app_name,
        "now_utc": now_utc().isoformat(),
        "sensor": {
            "mode": settings.sensor_mode,
            "sensor_id": svc.sensor.sensor_id,
            "unit": svc.sensor.unit,
        },
        "switcher": {
            "state": live.loop_state.value,
            "interval_s": live.interval_s,
            "band": live.band.value,
            "last_raw": live.last_raw,
            "last_read_utc": _ts(live.last_read_utc),
            "last_change_utc": _ts(live.last_change_utc),
            "last_error_kind": live.last_error_kind,
            "last_error": live.last_error,
            "cycles": live.cycles,
            "failures": live.failures,
            "events": live.events,
        },
        "theme": {
            "mode": themes.controller.mode.value,
            "current": (await themes.actuator.get_state()).value,
        },
    }


@router.post("/switcher/start")
async def switcher_start(
    req: Optional[StartRequest] = None,
    svc: SwitcherService = Depends(get_switcher),
):
    interval = req.interval_s if req else None
    try:
        await svc.start(interval)
    except LoopAlreadyRunning as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"ok": True, "state": svc.state.value, "interval_s": svc.live.interval_s}


@router.post("/switcher/stop")
async def switcher_stop(svc: SwitcherService = Depends(get_switcher)):
    await svc.stop()
    return {"ok": True, "state": svc.state.value}


@router.post("/switcher/poll")
async def switcher_poll(svc: SwitcherService = Depends(get_switcher)):
    event = await svc.poll_once()
    return {
        "band": svc.band.value,
        "last_raw": svc.live.last_raw,
        "last_error_kind": svc.live.last_error_kind,
        "event": _event_out(event),
    }


@router.get("/theme")
async def get_theme(themes: ThemeListener = Depends(get_theme_listener)):
    return {
        "mode": themes.controller.mode.value,
        "current": (await themes.actuator.get_state()).value,
    }


@router.put("/theme")
async def set_theme(
    req: ThemeModeRequest,
    themes: ThemeListener = Depends(get_theme_listener),
    svc: SwitcherService = Depends(get_switcher),
):
    applied = await themes.set_mode(ThemeMode(req.mode), svc.band)
    return {
        "ok": True,
        "mode": themes.controller.mode.value,
        "applied": applied.value if applied else None,
    }


# --- Simulated sensor controls ---

@router.get("/sim/status")
async def sim_status(sim: SimulatedLuxSensor = Depends(get_sim_sensor)):
    return sim.status()


@router.post("/sim/manual")
async def sim_manual(req: SimManualRequest, sim: SimulatedLuxSensor = Depends(get_sim_sensor)):
    sim.set_manual(req.raw)
    return {"ok": True, "status": sim.status()}


@router.post("/sim/pattern")
async def sim_pattern(req: SimPatternRequest, sim: SimulatedLuxSensor = Depends(get_sim_sensor)):
    sim.set_pattern(PatternConfig(**req.model_dump()))
    return {"ok": True, "status": sim.status()}


@router.post("/sim/enable")
async def sim_enable(sim: SimulatedLuxSensor = Depends(get_sim_sensor)):
    sim.enable()
    return {"ok": True, "enabled": True}


@router.post("/sim/disable")
async def sim_disable(sim: SimulatedLuxSensor = Depends(get_sim_sensor)):
    sim.disable()
    return {"ok": True, "enabled": False}


@router.post("/sim/fail")
async def sim_fail(req: SimFailRequest, sim: SimulatedLuxSensor = Depends(get_sim_sensor)):
    sim.fail_next(req.count)
    return {"ok": True, "fail_next": req.count}
