import json
import random

import pytest
from pydantic import ValidationError

from cottage.clock.logic import GameClock
from cottage.clock.models import Season
from cottage.common.config_manager import ConfigManager
from cottage.farm.crops import CropTable, GAME_DAY, MINUTE
from cottage.farm.inventory import Backpack
from cottage.farm.logic import PlotSimulator
from cottage.farm.models import CropDefinition, CropQuality, PlotState


def _farm(items, seed=1, crops=None):
    config = ConfigManager()
    clock = GameClock(config, time_source=lambda: config.game_start_ms)
    backpack = Backpack(items)
    return PlotSimulator(clock, crops or CropTable(), backpack, rng=random.Random(seed)), backpack, clock


def test_radish_from_seed_to_basket():
    farm, backpack, clock = _farm({'seed_radish': 1})
    t0 = clock.game_start_ms + 1000
    pos = (3.4, 7.9)

    assert farm.till('farm_area', pos, now=t0)
    assert farm.plant('farm_area', pos, 'radish', now=t0)
    assert backpack.count('seed_radish') == 0
    assert farm.water('farm_area', pos, now=t0 + 10)

    farm.poll(t0 + 60_000)
    assert farm.get_plot('farm_area', pos).state == PlotState.WATERED
    farm.poll(t0 + 90_000)
    assert farm.get_plot('farm_area', pos).state == PlotState.READY

    res = farm.harvest('farm_area', pos, now=t0 + 95_000)
    assert res.crop_id == 'radish'
    assert backpack.count('crop_radish') == 1
    assert backpack.count('seed_radish') == res.seeds_dropped
    assert farm.get_plot('farm_area', (3, 7)).state == PlotState.FALLOW

    # the same soil can be worked again
    assert farm.till('farm_area', pos, now=t0 + 96_000)


def test_fertilised_crop_keeps_quality_until_harvest():
    farm, backpack, clock = _farm({'seed_potato': 1, 'fertiliser': 2})
    t0 = clock.game_start_ms
    farm.till('farm_area', (0, 0), now=t0)
    farm.plant('farm_area', (0, 0), 'potato', now=t0)
    assert farm.apply_fertiliser('farm_area', (0, 0))

    farm.poll(t0 + 6 * MINUTE)
    res = farm.harvest('farm_area', (0, 0), now=t0 + 6 * MINUTE)
    assert res.quality == CropQuality.GOOD
    assert res.yield_ == 4
    assert backpack.count('crop_potato') == 4
    assert backpack.count('fertiliser') == 1


def test_forgotten_crop_dies_and_can_be_cleared():
    farm, backpack, clock = _farm({'seed_carrot': 1})
    t0 = clock.game_start_ms
    farm.till('farm_area', (1, 1), now=t0)
    farm.plant('farm_area', (1, 1), 'carrot', now=t0)

    wilt_at = t0 + GAME_DAY + GAME_DAY // 2
    # first poll long after planting: the thirst check wins over ripening
    farm.poll(wilt_at)
    assert farm.get_plot('farm_area', (1, 1)).state == PlotState.WILTING
    farm.poll(wilt_at + GAME_DAY // 2)
    assert farm.get_plot('farm_area', (1, 1)).state == PlotState.DEAD

    assert farm.harvest('farm_area', (1, 1), now=wilt_at + GAME_DAY) is None
    assert farm.clear_dead('farm_area', (1, 1), now=wilt_at + GAME_DAY)
    assert backpack.count('crop_carrot') == 0


def test_fairy_bluebell_grows_all_year_but_drops_nothing():
    farm, backpack, clock = _farm({'seed_fairy_bluebell': 1})
    clock.set_override(season=Season.WINTER, day=3, hour=12)
    t0 = clock.game_start_ms
    farm.till('forest', (2, 2), now=t0)
    assert farm.plant('forest', (2, 2), 'fairy_bluebell', now=t0)
    farm.poll(t0 + 10 * MINUTE)
    res = farm.harvest('forest', (2, 2), now=t0 + 10 * MINUTE)
    assert res.yield_ == 0
    assert res.seeds_dropped == 0
    assert backpack.to_dict() == {}


# ========== 作物表 ==========

def test_default_table_by_season():
    crops = CropTable()
    assert len(crops) == 18
    assert 'radish' in crops
    spring = {c.id for c in crops.plantable_in(Season.SPRING)}
    autumn = {c.id for c in crops.plantable_in(Season.AUTUMN)}
    winter = {c.id for c in crops.plantable_in(Season.WINTER)}
    assert {'radish', 'potato', 'strawberry'} <= spring
    assert 'onion' not in spring
    assert autumn == {'onion', 'fairy_bluebell'}
    assert winter == {'fairy_bluebell'}


def test_every_default_crop_is_consistent():
    for crop in CropTable().all():
        assert crop.growth_time_watered <= crop.growth_time
        assert crop.seed_drop_min <= crop.seed_drop_max
        assert crop.water_needed_interval == GAME_DAY


def test_crop_file_extends_defaults(tmp_path):
    path = tmp_path / 'crops.json'
    path.write_text(json.dumps({'crops': [
        {'id': 'radish', 'display_name': 'Giant Radish', 'plant_seasons': ['Spring'],
         'growth_time': 1000, 'growth_time_watered': 500, 'water_needed_interval': 100,
         'wilting_grace_period': 100, 'death_grace_period': 100},
        {'id': 'glowcap', 'display_name': 'Glowcap', 'plant_seasons': ['Autumn', 'Winter'],
         'growth_time': 1000, 'growth_time_watered': 1000, 'water_needed_interval': 100,
         'wilting_grace_period': 100, 'death_grace_period': 100, 'sell_price': 7},
    ]}), encoding='utf-8')

    table = CropTable.from_json(path)
    assert len(table) == 19
    assert table.get('radish').display_name == 'Giant Radish'
    assert table.get('glowcap').can_plant_in(Season.WINTER)

    only = CropTable.from_json(path, extend_defaults=False)
    assert len(only) == 2
    assert only.get('potato') is None


def test_crop_definition_rejects_bad_timing():
    with pytest.raises(ValidationError):
        CropDefinition(id='bad', display_name='Bad', plant_seasons=['Spring'],
                       growth_time=100, growth_time_watered=200, water_needed_interval=1,
                       wilting_grace_period=1, death_grace_period=1)
    with pytest.raises(ValidationError):
        CropDefinition(id='bad', display_name='Bad', plant_seasons=['Spring'],
                       growth_time=100, growth_time_watered=50, water_needed_interval=1,
                       wilting_grace_period=1, death_grace_period=1,
                       seed_drop_min=3, seed_drop_max=1)


def test_sell_value_scales_with_quality():
    crops = CropTable()
    assert crops.sell_value('radish') == 10
    assert crops.sell_value('radish', CropQuality.GOOD, 2) == 30
    assert crops.sell_value('radish', 'excellent') == 20
    assert crops.sell_value('nothing') == 0
