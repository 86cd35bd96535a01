from enum import Enum
from typing import Dict, Tuple

from pydantic import BaseModel

from ..clock.models import Season


class WeatherType(str, Enum):
    CLEAR = "clear"
    RAIN = "rain"
    SNOW = "snow"
    FOG = "fog"
    MIST = "mist"
    STORM = "storm"
    CHERRY_BLOSSOMS = "cherry_blossoms"


class Zone(str, Enum):
    DEFAULT = "default"
    FOREST = "forest"
    CAVE = "cave"
    INDOOR = "indoor"


# Weather that waters outdoor crops
WET_WEATHER = (WeatherType.RAIN, WeatherType.STORM)
OUTDOOR_ZONES = (Zone.DEFAULT, Zone.FOREST)


class WeatherState(BaseModel):
    current: WeatherType = WeatherType.CLEAR
    next_check_at: int = 0
    automatic_mode: bool = True
    manual_override: bool = False

    def to_snapshot(self) -> dict:
        """manual_override is a session-only debug switch and is not persisted"""
        return self.model_dump(mode="json", exclude={"manual_override"})


# ========== 季节天气概率 ==========
# Weights per season; each row sums to 100.

WEATHER_PROBABILITIES: Dict[Season, Dict[WeatherType, int]] = {
    Season.SPRING: {
        WeatherType.CLEAR: 40, WeatherType.RAIN: 30, WeatherType.SNOW: 0, WeatherType.FOG: 10,
        WeatherType.MIST: 10, WeatherType.STORM: 5, WeatherType.CHERRY_BLOSSOMS: 5,
    },
    Season.SUMMER: {
        WeatherType.CLEAR: 60, WeatherType.RAIN: 20, WeatherType.SNOW: 0, WeatherType.FOG: 5,
        WeatherType.MIST: 5, WeatherType.STORM: 10, WeatherType.CHERRY_BLOSSOMS: 0,
    },
    Season.AUTUMN: {
        WeatherType.CLEAR: 30, WeatherType.RAIN: 40, WeatherType.SNOW: 0, WeatherType.FOG: 15,
        WeatherType.MIST: 10, WeatherType.STORM: 5, WeatherType.CHERRY_BLOSSOMS: 0,
    },
    Season.WINTER: {
        WeatherType.CLEAR: 20, WeatherType.RAIN: 10, WeatherType.SNOW: 50, WeatherType.FOG: 10,
        WeatherType.MIST: 5, WeatherType.STORM: 5, WeatherType.CHERRY_BLOSSOMS: 0,
    },
}

# Duration of each weather type, in game hours (min, max)
WEATHER_DURATIONS: Dict[WeatherType, Tuple[float, float]] = {
    WeatherType.CLEAR: (4, 12),
    WeatherType.RAIN: (2, 6),
    WeatherType.SNOW: (3, 8),
    WeatherType.FOG: (1, 4),
    WeatherType.MIST: (1, 3),
    WeatherType.STORM: (1, 2),
    WeatherType.CHERRY_BLOSSOMS: (6, 12),
}


def effective_weather(zone: Zone, weather: WeatherType) -> WeatherType:
    """
    The weather a map in `zone` shows while the world's weather is `weather`.

    Indoors is always clear; underground only fog and mist get in, as mist;
    blossoms never reach under the forest canopy, which sees mist instead.
    """
    if zone == Zone.INDOOR:
        return WeatherType.CLEAR
    if zone == Zone.CAVE:
        return WeatherType.MIST if weather in (WeatherType.FOG, WeatherType.MIST) else WeatherType.CLEAR
    if zone == Zone.FOREST and weather == WeatherType.CHERRY_BLOSSOMS:
        return WeatherType.MIST
    return weather
