"""
游戏时钟 - the single source of truth for game time.

1 real month (30 days) = 1 game year (4 seasons x 7 days), so one real day is
a little under one game day. Game time is a pure function of wall-clock
milliseconds; the only state kept here is an optional operator override.
"""
import logging
import math
import time
from typing import Callable, Optional, Dict, Any

from ..common.config_manager import ConfigManager
from .models import GameTime, Season, SEASON_ORDER, DAYLIGHT_WINDOWS

logger = logging.getLogger(__name__)


def _wall_clock_ms() -> int:
    return int(time.time() * 1000)


class GameClock:
    def __init__(self, config: Optional[ConfigManager] = None,
                 time_source: Callable[[], int] = _wall_clock_ms):
        self.config = config or ConfigManager()
        self.time_source = time_source
        self.game_start_ms = self.config.game_start_ms
        self.days_per_season = self.config.days_per_season
        self.days_per_year = self.config.days_per_year
        self.ms_per_game_day = self.config.ms_per_game_day
        self.ms_per_game_hour = self.ms_per_game_day / 24
        self._override: Optional[GameTime] = None

    def timestamp(self) -> int:
        """Current wall-clock time in epoch milliseconds"""
        return int(self.time_source())

    def now(self, at_ms: Optional[int] = None) -> GameTime:
        """
        Resolve the game calendar.

        Args:
            at_ms: wall-clock epoch ms to resolve; defaults to the time source

        Returns:
            the override if one is set, otherwise the wall-clock derivation
        """
        if self._override is not None:
            return self._override.model_copy()
        if at_ms is None:
            at_ms = self.timestamp()
        return self._derive(at_ms)

    def _derive(self, at_ms: int) -> GameTime:
        elapsed = at_ms - self.game_start_ms
        total_days = math.floor(elapsed / self.ms_per_game_day)
        year = total_days // self.days_per_year
        day_in_year = total_days % self.days_per_year
        season = SEASON_ORDER[day_in_year // self.days_per_season]
        day = day_in_year % self.days_per_season + 1
        total_hours = math.floor(elapsed / self.ms_per_game_hour)
        hour = total_hours % 24
        return self._build(year, season, day, total_days, hour, total_hours)

    def _build(self, year: int, season: Season, day: int, total_days: int,
               hour: int, total_hours: int) -> GameTime:
        daylight = DAYLIGHT_WINDOWS[season]
        return GameTime(
            year=year,
            season=season,
            day=day,
            total_days=total_days,
            hour=hour,
            total_hours=total_hours,
            time_of_day=daylight.time_of_day(hour),
            daylight=daylight,
        )

    # ========== 时间覆盖 (dev/testing) ==========

    def set_override(self, season: Optional[Season] = None, day: Optional[int] = None,
                     hour: Optional[int] = None, year: Optional[int] = None) -> GameTime:
        """
        Pin the clock to a fixed instant.

        Missing fields are taken from the currently resolved time (override or
        real); every derived field is recomputed from the merged values.
        """
        current = self.now()
        season = Season(season) if season is not None else current.season
        day = day if day is not None else current.day
        hour = hour if hour is not None else current.hour
        year = year if year is not None else current.year

        if not 1 <= day <= self.days_per_season:
            raise ValueError(f"day must be between 1 and {self.days_per_season}, got {day}")
        if not 0 <= hour <= 23:
            raise ValueError(f"hour must be between 0 and 23, got {hour}")
        if year < 0:
            raise ValueError(f"year must not be negative, got {year}")

        day_in_year = SEASON_ORDER.index(season) * self.days_per_season + (day - 1)
        total_days = year * self.days_per_year + day_in_year
        total_hours = total_days * 24 + hour

        self._override = self._build(year, season, day, total_days, hour, total_hours)
        logger.info("Time override set: %s", self.formatted_date())
        return self._override.model_copy()

    def clear_override(self) -> None:
        self._override = None
        logger.info("Time override cleared, using real-world time")

    def has_override(self) -> bool:
        return self._override is not None

    def override_snapshot(self) -> Optional[Dict[str, Any]]:
        """The override as a plain dict, or None when running on real time"""
        if self._override is None:
            return None
        return {
            "year": self._override.year,
            "season": self._override.season.value,
            "day": self._override.day,
            "hour": self._override.hour,
        }

    def restore_override(self, data: Optional[Dict[str, Any]]) -> None:
        if not data:
            self._override = None
            return
        self.set_override(season=Season(data["season"]), day=data["day"],
                          hour=data["hour"], year=data["year"])

    # ========== 辅助 ==========

    def formatted_date(self, at_ms: Optional[int] = None) -> str:
        t = self.now(at_ms)
        return f"{t.season.value} {t.day}, Year {t.year}"

    def short_formatted_date(self, at_ms: Optional[int] = None) -> str:
        t = self.now(at_ms)
        return f"{t.season.value} {t.day}"

    def ms_until_next_day(self, at_ms: Optional[int] = None) -> int:
        if at_ms is None:
            at_ms = self.timestamp()
        into_day = (at_ms - self.game_start_ms) % self.ms_per_game_day
        return math.ceil(self.ms_per_game_day - into_day)

    def season_for_day(self, total_days: int) -> Season:
        day_in_year = total_days % self.days_per_year
        return SEASON_ORDER[day_in_year // self.days_per_season]

    def is_current_season(self, season: Season) -> bool:
        return self.now().season == season

    def game_hours_to_ms(self, hours: float) -> int:
        """Convert a duration in game hours to wall-clock milliseconds"""
        return round(hours * self.ms_per_game_hour)
