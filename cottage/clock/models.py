from enum import Enum
from typing import Dict, List

from pydantic import BaseModel


class Season(str, Enum):
    SPRING = "Spring"
    SUMMER = "Summer"
    AUTUMN = "Autumn"
    WINTER = "Winter"


class TimeOfDay(str, Enum):
    DAWN = "Dawn"
    DAY = "Day"
    DUSK = "Dusk"
    NIGHT = "Night"


SEASON_ORDER: List[Season] = [Season.SPRING, Season.SUMMER, Season.AUTUMN, Season.WINTER]


class DaylightWindow(BaseModel):
    """Hours (0-23) bounding dawn, daylight and dusk for one season"""
    dawn_hour: int
    sunrise_hour: int
    sunset_hour: int
    dusk_hour: int

    def time_of_day(self, hour: int) -> TimeOfDay:
        if self.sunrise_hour <= hour < self.sunset_hour:
            return TimeOfDay.DAY
        if self.dawn_hour <= hour < self.sunrise_hour:
            return TimeOfDay.DAWN
        if self.sunset_hour <= hour < self.dusk_hour:
            return TimeOfDay.DUSK
        return TimeOfDay.NIGHT


# ========== 季节昼夜 ==========

DAYLIGHT_WINDOWS: Dict[Season, DaylightWindow] = {
    Season.SPRING: DaylightWindow(dawn_hour=5, sunrise_hour=6, sunset_hour=19, dusk_hour=20),
    Season.SUMMER: DaylightWindow(dawn_hour=4, sunrise_hour=5, sunset_hour=21, dusk_hour=22),
    Season.AUTUMN: DaylightWindow(dawn_hour=6, sunrise_hour=7, sunset_hour=18, dusk_hour=19),
    Season.WINTER: DaylightWindow(dawn_hour=7, sunrise_hour=8, sunset_hour=16, dusk_hour=17),
}


class GameTime(BaseModel):
    """
    A resolved game calendar instant.

    Recomputed on every call to GameClock.now(); never stored except as an
    operator time override.
    """
    year: int
    season: Season
    day: int              # 1..days_per_season
    total_days: int
    hour: int             # 0..23
    total_hours: int
    time_of_day: TimeOfDay
    daylight: DaylightWindow

    @property
    def is_day_side(self) -> bool:
        """Dawn and Day count as the light half of the day"""
        return self.time_of_day in (TimeOfDay.DAWN, TimeOfDay.DAY)
