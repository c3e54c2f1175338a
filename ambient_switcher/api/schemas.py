from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Optional, Literal


class StartRequest(BaseModel):
    interval_s: Optional[float] = Field(default=None, gt=0, le=3600)


class ThemeModeRequest(BaseModel):
    mode: Literal["light", "dark", "auto"]


class SimManualRequest(BaseModel):
    raw: int = Field(ge=0)


class SimFailRequest(BaseModel):
    count: int = Field(default=1, ge=0, le=1000)


class SimPatternRequest(BaseModel):
    type: Literal["sine", "step", "ramp", "random"]
    baseline: int = 400_000
    amplitude: int = 390_000
    period_s: float = Field(default=600, gt=0)
    noise: int = 500
    step_low: int = 50_000
    step_high: int = 800_000
    step_period_s: float = Field(default=120, gt=0)
    ramp_min: int = 0
    ramp_max: int = 1_000_000
    ramp_period_s: float = Field(default=600, gt=0)
