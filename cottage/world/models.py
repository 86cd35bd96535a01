from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..farm.models import FarmPlot


class TimeOverrideRecord(BaseModel):
    year: int
    season: str
    day: int
    hour: int


class WeatherRecord(BaseModel):
    current: str = "clear"
    next_check_at: int = 0
    automatic_mode: bool = True


class WorldSnapshot(BaseModel):
    """Everything a save file holds for one player's world"""
    current_map_id: str
    plots: List[FarmPlot] = Field(default_factory=list)
    weather: WeatherRecord = Field(default_factory=WeatherRecord)
    time_override: Optional[TimeOverrideRecord] = None
    backpack: Dict[str, int] = Field(default_factory=dict)
    saved_at: int = 0
