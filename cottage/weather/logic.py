import logging
import random
from typing import Optional

from ..clock.logic import GameClock
from .models import WeatherState, WeatherType, WEATHER_DURATIONS, WEATHER_PROBABILITIES, effective_weather
from .zones import ZoneClassifier


class WeatherScheduler:
    """
    Owns the world's weather and the wall-clock time of the next re-roll.

    Nothing runs on its own: the host calls poll() every few seconds and the
    scheduler re-rolls when the timer has expired. There is one weather for the
    whole world; what a particular map shows is worked out on read by
    effective(). Debug tools and in-game effects may set the weather directly
    at any time.
    """

    def __init__(self, clock: GameClock, zones: ZoneClassifier,
                 state: Optional[WeatherState] = None, rng: Optional[random.Random] = None,
                 day_night_reroll_chance: float = 0.5):
        self.clock = clock
        self.zones = zones
        self.state = state or WeatherState()
        self.rng = rng or random.Random()
        self.day_night_reroll_chance = day_night_reroll_chance
        self.logger = logging.getLogger(__name__)
        self._last_day_side: Optional[bool] = None

    @property
    def current(self) -> WeatherType:
        """The world's weather, before any zone applies"""
        return self.state.current

    def effective(self, map_id: str) -> WeatherType:
        """The weather as seen on `map_id`"""
        return effective_weather(self.zones.zone_for(map_id), self.state.current)

    def poll(self, now: Optional[int] = None) -> bool:
        """Re-roll if due. Returns True when a re-roll happened."""
        if not self.state.automatic_mode or self.state.manual_override:
            return False
        if now is None:
            now = self.clock.timestamp()

        day_side = self.clock.now(now).is_day_side
        crossed = self._last_day_side is not None and self._last_day_side != day_side
        self._last_day_side = day_side

        if now >= self.state.next_check_at:
            self.reroll(now)
            return True
        if crossed and self.rng.random() < self.day_night_reroll_chance:
            self.logger.debug("Day/night boundary crossed, re-rolling early")
            self.reroll(now)
            return True
        return False

    def force_reroll(self, now: Optional[int] = None) -> WeatherType:
        """Re-roll immediately regardless of mode or override"""
        if now is None:
            now = self.clock.timestamp()
        return self.reroll(now)

    def reroll(self, now: int) -> WeatherType:
        season = self.clock.now(now).season
        weights = WEATHER_PROBABILITIES[season]
        choices = list(weights.keys())
        probs = list(weights.values())
        weather = self.rng.choices(choices, weights=probs, k=1)[0]

        lo, hi = WEATHER_DURATIONS[weather]
        hours = self.rng.uniform(lo, hi)
        self.state.next_check_at = now + self.clock.game_hours_to_ms(hours)

        if weather != self.state.current:
            self.logger.info("Weather %s -> %s (season %s)",
                             self.state.current.value, weather.value, season.value)
        self.state.current = weather
        return weather

    # ========== 手动控制 ==========

    def set_current(self, weather: WeatherType):
        self.state.current = WeatherType(weather)
        self.logger.info("Weather set to %s", self.state.current.value)

    def set_manual_override(self, enabled: bool):
        self.state.manual_override = bool(enabled)
        self.logger.info("Manual weather override: %s", enabled)

    def set_automatic(self, enabled: bool):
        self.state.automatic_mode = bool(enabled)

    def time_until_next_check(self, now: Optional[int] = None) -> int:
        if now is None:
            now = self.clock.timestamp()
        return max(0, self.state.next_check_at - now)

    # ========== 存档 ==========

    def to_snapshot(self) -> dict:
        return self.state.to_snapshot()

    def load_snapshot(self, data: Optional[dict]):
        manual = self.state.manual_override
        self.state = WeatherState.model_validate(data or {})
        self.state.manual_override = manual
        self._last_day_side = None
