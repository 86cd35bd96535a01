"""
配置管理器 - 读取和管理农场模拟配置

Configuration is the flat dict AstrBot passes to the plugin.
Every world and plugin owns its own instance; nothing here is global.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class ConfigManager:
    """
    Flat configuration store.

    The host (AstrBot) hands us a flat dict: {"key": value, ...}.
    Missing keys fall back to DEFAULT_CONFIG.
    """

    DEFAULT_CONFIG = {
        # Calendar
        "game_start": "2025-10-17T00:00:00+00:00",
        "days_per_season": 7,
        "real_days_per_game_year": 30,
        # Host loop
        "poll_interval_seconds": 10,
        "autosave_every_polls": 6,
        # Weather
        "automatic_weather": True,
        "day_night_reroll_chance": 0.5,
        # Farming
        "fertiliser_item_id": "fertiliser",
        "default_map_id": "farm_area",
        "starter_seeds": {"seed_radish": 3},
        "crops_file": "",
        # Zones: map id -> default/forest/cave/indoor
        "map_zones": {
            "farm_area": "default",
            "village": "default",
            "forest": "forest",
            "deep_forest": "forest",
            "mine": "cave",
            "cottage_interior": "indoor",
            "shop": "indoor",
        },
    }

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self._config: Dict[str, Any] = dict(self.DEFAULT_CONFIG)
        self._admins: list = []
        if config:
            self.load_config(config)

    def load_config(self, config: Dict[str, Any]) -> None:
        """
        加载配置

        Args:
            config: host-supplied flat dict, merged over the current values
        """
        if config:
            self._config.update(config)

    def get(self, key: str, default: Any = None) -> Any:
        return self._config.get(key, default)

    def is_admin(self, user_id: str) -> bool:
        return str(user_id) in [str(a) for a in self._admins]

    def set_admins(self, admins: list) -> None:
        self._admins = [str(a) for a in admins if str(a).isdigit()]

    @property
    def game_start_ms(self) -> int:
        """Game start as epoch milliseconds"""
        start = datetime.fromisoformat(self._config.get("game_start", self.DEFAULT_CONFIG["game_start"]))
        if start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        return int(start.timestamp() * 1000)

    @property
    def days_per_season(self) -> int:
        return int(self._config.get("days_per_season", 7))

    @property
    def days_per_year(self) -> int:
        return self.days_per_season * 4

    @property
    def ms_per_game_day(self) -> float:
        # One real month of `real_days_per_game_year` days is one game year.
        real_days = self._config.get("real_days_per_game_year", 30)
        return (real_days * 24 * 60 * 60 * 1000) / self.days_per_year

    @property
    def poll_interval_seconds(self) -> float:
        return float(self._config.get("poll_interval_seconds", 10))

    @property
    def autosave_every_polls(self) -> int:
        return max(1, int(self._config.get("autosave_every_polls", 6)))

    @property
    def automatic_weather(self) -> bool:
        return bool(self._config.get("automatic_weather", True))

    @property
    def day_night_reroll_chance(self) -> float:
        return float(self._config.get("day_night_reroll_chance", 0.5))

    @property
    def fertiliser_item_id(self) -> str:
        return self._config.get("fertiliser_item_id", "fertiliser")

    @property
    def default_map_id(self) -> str:
        return self._config.get("default_map_id", "farm_area")

    @property
    def starter_seeds(self) -> Dict[str, int]:
        return dict(self._config.get("starter_seeds") or {})

    @property
    def crops_file(self) -> str:
        return self._config.get("crops_file") or ""

    @property
    def map_zones(self) -> Dict[str, str]:
        return dict(self._config.get("map_zones") or {})
