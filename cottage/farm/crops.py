"""
作物表 - crop definitions for the farming system.

All times are wall-clock milliseconds so they can be compared directly with
plot timestamps. Growth runs in real minutes; watering needs run in game days.
"""
import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from ..clock.models import Season
from .models import CropDefinition, CropQuality, QUALITY_MULTIPLIERS

MINUTE = 60 * 1000
# 30 real days per 28-day game year
GAME_DAY = (30 * 24 * 60 * MINUTE) // 28

_SPRING = [Season.SPRING]
_SPRING_SUMMER = [Season.SPRING, Season.SUMMER]


def _crop(id, name, seasons, growth, watered, yield_, price, drop, cost, rarity, source, description):
    return CropDefinition(
        id=id,
        display_name=name,
        plant_seasons=seasons,
        growth_time=int(growth * MINUTE),
        growth_time_watered=int(watered * MINUTE),
        water_needed_interval=GAME_DAY,
        wilting_grace_period=GAME_DAY // 2,
        death_grace_period=GAME_DAY // 2,
        harvest_yield=yield_,
        sell_price=price,
        seed_drop_min=drop[0],
        seed_drop_max=drop[1],
        seed_cost=cost,
        rarity=rarity,
        seed_source=source,
        description=description,
    )


DEFAULT_CROPS: List[CropDefinition] = [
    # Shop seeds
    _crop('radish', 'Radish', _SPRING_SUMMER, 2, 1.5, 1, 10, (1, 3), 5, 'common', 'shop',
          'Quick-growing root vegetable. Great for beginners!'),
    _crop('potato', 'Potato', _SPRING, 8, 6, 4, 20, (1, 3), 5, 'common', 'shop',
          'Hearty tubers, planted in spring.'),
    _crop('melon', 'Melon', _SPRING, 12, 9, 1, 80, (1, 2), 30, 'uncommon', 'shop',
          'Sweet and juicy, worth the wait.'),
    _crop('pumpkin', 'Pumpkin', _SPRING, 20, 14, 1, 150, (1, 3), 50, 'rare', 'shop',
          'A prize-winning giant if you are patient.'),
    _crop('chili', 'Chili Pepper', _SPRING_SUMMER, 10, 7, 5, 15, (2, 4), 15, 'uncommon', 'shop',
          'Small but fiery.'),
    _crop('spinach', 'Spinach', _SPRING_SUMMER, 4, 3, 3, 12, (1, 3), 8, 'common', 'shop',
          'Leafy greens that grow quickly.'),
    _crop('broccoli', 'Broccoli', _SPRING, 10, 7, 2, 35, (1, 2), 20, 'uncommon', 'shop',
          'Tiny green trees.'),
    _crop('cauliflower', 'Cauliflower', _SPRING, 12, 9, 1, 45, (1, 2), 25, 'uncommon', 'shop',
          'A pale, crumbly head.'),
    _crop('salad', 'Salad Greens', _SPRING_SUMMER, 10, 7, 5, 15, (1, 3), 10, 'uncommon', 'shop',
          'A mix of tender leaves.'),
    _crop('corn', 'Corn', _SPRING_SUMMER, 15, 10, 4, 40, (1, 3), 25, 'rare', 'shop',
          'Sweet corn. Takes time but very profitable.'),
    # Friendship gifts
    _crop('sunflower', 'Sunflower', _SPRING, 8, 6, 1, 50, (3, 6), 0, 'uncommon', 'friendship',
          'Follows the sun across the sky.'),
    _crop('tomato', 'Tomato', _SPRING, 5, 3.5, 3, 25, (1, 3), 0, 'common', 'friendship',
          'Ripe red fruit, perfect for cooking.'),
    _crop('onion', 'Onion', [Season.AUTUMN], 10, 7, 3, 20, (1, 2), 0, 'uncommon', 'friendship',
          'The only crop that takes to autumn soil.'),
    _crop('pea', 'Peas', _SPRING, 6, 4, 8, 8, (2, 4), 0, 'common', 'friendship',
          'Plenty of pods from a single plant.'),
    _crop('cucumber', 'Cucumber', _SPRING, 7, 5, 2, 18, (1, 3), 0, 'common', 'friendship',
          'Cool and crisp.'),
    _crop('carrot', 'Carrot', _SPRING_SUMMER, 6, 4.5, 3, 15, (1, 3), 0, 'common', 'friendship',
          'A garden favourite.'),
    # Foraged
    _crop('strawberry', 'Strawberry', _SPRING, 8, 6, 5, 30, (1, 2), 0, 'rare', 'forage',
          'Wild berries found in sunny clearings.'),
    _crop('fairy_bluebell', 'Fairy Bluebell', list(Season), 10, 7, 0, 0, (0, 0), 0, 'very_rare', 'forage',
          'A magical flower from the fairy realm. Blooms at night, attracting fairies.'),
]


class CropTable:
    """Read-only lookup of crop definitions by id"""

    def __init__(self, crops: Optional[Iterable[CropDefinition]] = None):
        source = DEFAULT_CROPS if crops is None else crops
        self._crops: Dict[str, CropDefinition] = {c.id: c for c in source}

    @classmethod
    def from_json(cls, path: Union[str, Path], extend_defaults: bool = True) -> "CropTable":
        """
        Load crops from a JSON file shaped like {"crops": [{...}, ...]}.

        With extend_defaults the file entries are layered over the default table
        (same id replaces); otherwise the file is the whole table.
        """
        data = json.loads(Path(path).read_text(encoding='utf-8'))
        loaded = [CropDefinition.model_validate(c) for c in data.get('crops', [])]
        if not extend_defaults:
            return cls(loaded)
        table = cls()
        for crop in loaded:
            table._crops[crop.id] = crop
        return table

    def get(self, crop_id: Optional[str]) -> Optional[CropDefinition]:
        if not crop_id:
            return None
        return self._crops.get(crop_id)

    def __contains__(self, crop_id) -> bool:
        return crop_id in self._crops

    def __len__(self) -> int:
        return len(self._crops)

    def all(self) -> List[CropDefinition]:
        return list(self._crops.values())

    def plantable_in(self, season: Season) -> List[CropDefinition]:
        """当季可种植的作物"""
        return [c for c in self._crops.values() if c.can_plant_in(season)]

    def sell_value(self, crop_id: str, quality: CropQuality = CropQuality.NORMAL, quantity: int = 1) -> int:
        crop = self.get(crop_id)
        if not crop:
            return 0
        return int(crop.sell_price * QUALITY_MULTIPLIERS[CropQuality(quality)] * quantity)
