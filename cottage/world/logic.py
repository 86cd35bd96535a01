"""
世界 - one player's whole simulation: clock, farm plots, weather and backpack.

Worlds share nothing, so any number of them (one per player, or one per test)
can live side by side. The world is also the host's entry point: tick() is the
periodic poll, and the operator helpers back the admin commands.
"""
import logging
import random
from typing import Any, Callable, Dict, Optional

from ..clock.logic import GameClock
from ..clock.models import GameTime, Season
from ..common.config_manager import ConfigManager
from ..farm.crops import CropTable
from ..farm.inventory import Backpack, Inventory
from ..farm.logic import PlotSimulator
from ..weather.logic import WeatherScheduler
from ..weather.models import WeatherState, WeatherType, WET_WEATHER, OUTDOOR_ZONES
from ..weather.zones import MapZones, ZoneClassifier
from .models import WorldSnapshot

logger = logging.getLogger(__name__)


class CottageWorld:
    def __init__(self, config: Optional[ConfigManager] = None,
                 time_source: Optional[Callable[[], int]] = None,
                 crops: Optional[CropTable] = None,
                 inventory: Optional[Inventory] = None,
                 zones: Optional[ZoneClassifier] = None,
                 rng: Optional[random.Random] = None):
        self.config = config or ConfigManager()
        if time_source is None:
            self.clock = GameClock(self.config)
        else:
            self.clock = GameClock(self.config, time_source=time_source)

        if crops is None:
            crops = CropTable.from_json(self.config.crops_file) if self.config.crops_file else CropTable()
        self.crops = crops
        self.inventory = inventory if inventory is not None else Backpack(self.config.starter_seeds)
        self.zones = zones or MapZones(self.config.map_zones)
        rng = rng or random.Random()

        self.plots = PlotSimulator(self.clock, self.crops, self.inventory,
                                   fertiliser_item_id=self.config.fertiliser_item_id, rng=rng)
        self.weather = WeatherScheduler(self.clock, self.zones,
                                        state=WeatherState(automatic_mode=self.config.automatic_weather),
                                        rng=rng,
                                        day_night_reroll_chance=self.config.day_night_reroll_chance)
        self.current_map_id = self.config.default_map_id

    def now(self) -> GameTime:
        return self.clock.now()

    def current_weather(self) -> WeatherType:
        """What the player sees where they stand"""
        return self.weather.effective(self.current_map_id)

    # ========== 主循环 ==========

    def tick(self, now: Optional[int] = None) -> Dict[str, Any]:
        """One host poll: weather first, then plots, then rain watering"""
        if now is None:
            now = self.clock.timestamp()
        rerolled = self.weather.poll(now)
        updated = self.plots.poll(now)

        # rain falls on every outdoor map, wherever the player happens to be
        watered = 0
        if self.weather.current in WET_WEATHER:
            outdoor = [m for m in self.plots.map_ids() if self.zones.zone_for(m) in OUTDOOR_ZONES]
            watered = self.plots.water_all(outdoor, now)
            if watered:
                logger.debug("Rain watered %d crops on outdoor maps", watered)

        return {
            "weather": self.current_weather().value,
            "global_weather": self.weather.current.value,
            "weather_rerolled": rerolled,
            "plots_updated": updated,
            "rain_watered": watered,
        }

    def travel(self, map_id: str) -> WeatherType:
        """Move the player to another map and return the weather there"""
        self.current_map_id = map_id
        return self.current_weather()

    # ========== 调试 / 管理 ==========

    def set_time(self, season: Optional[Season] = None, day: Optional[int] = None,
                 hour: Optional[int] = None, year: Optional[int] = None) -> GameTime:
        return self.clock.set_override(season=season, day=day, hour=hour, year=year)

    def clear_time(self):
        self.clock.clear_override()

    def force_weather(self, now: Optional[int] = None) -> WeatherType:
        """Re-roll the world's weather now; returns what the player sees"""
        self.weather.force_reroll(now)
        return self.current_weather()

    def fast_forward(self, ms: int, now: Optional[int] = None) -> int:
        """Age every crop by `ms` of wall-clock time"""
        if ms < 0:
            raise ValueError("cannot fast-forward by a negative duration")
        return self.plots.rewind(ms, now)

    def load_plots(self, records, now: Optional[int] = None) -> int:
        count = self.plots.load_plots(records)
        self.plots.poll(now)
        return count

    def reset_map(self, map_id: Optional[str] = None) -> int:
        return self.plots.reset_map(map_id or self.current_map_id)

    # ========== 存档 ==========

    def snapshot(self) -> Dict[str, Any]:
        backpack = self.inventory.to_dict() if isinstance(self.inventory, Backpack) else {}
        snap = WorldSnapshot(
            current_map_id=self.current_map_id,
            plots=self.plots.all_plots(),
            weather=self.weather.to_snapshot(),
            time_override=self.clock.override_snapshot(),
            backpack=backpack,
            saved_at=self.clock.timestamp(),
        )
        return snap.model_dump(mode="json")

    def restore(self, data: Dict[str, Any], now: Optional[int] = None):
        """Replace all state from a snapshot, then bring plots up to date"""
        snap = WorldSnapshot.model_validate(data)
        self.current_map_id = snap.current_map_id
        self.clock.restore_override(snap.time_override.model_dump() if snap.time_override else None)
        self.weather.load_snapshot(snap.weather.model_dump())
        if isinstance(self.inventory, Backpack):
            self.inventory.items = dict(snap.backpack)
        self.plots.load_plots(snap.plots)
        self.plots.poll(now)
        logger.info("World restored: %d plots, weather %s", len(snap.plots), self.weather.current.value)
