import asyncio
import json
import random

import pytest

from cottage.clock.models import Season
from cottage.common.config_manager import ConfigManager
from cottage.common.data_manager import DataManager
from cottage.farm.models import PlotState
from cottage.weather.models import WeatherType
from cottage.world.logic import CottageWorld

START = 1760659200000  # 2025-10-17T00:00Z


def _world(now=START, config=None, seed=0):
    return CottageWorld(config=config, time_source=lambda: now, rng=random.Random(seed))


def _plant_radish(world, map_id, pos, now=START):
    assert world.plots.till(map_id, pos, now=now)
    assert world.plots.plant(map_id, pos, 'radish', now=now)


# ========== 配置 ==========

def test_default_config():
    config = ConfigManager()
    assert config.game_start_ms == START
    assert config.days_per_year == 28
    assert config.ms_per_game_day == 30 * 24 * 3600 * 1000 / 28
    assert config.map_zones['mine'] == 'cave'
    assert config.autosave_every_polls == 6


def test_config_overrides_shape_the_world():
    config = ConfigManager({'starter_seeds': {'seed_carrot': 2}, 'default_map_id': 'village',
                            'automatic_weather': False, 'days_per_season': 14})
    world = _world(config=config)
    assert world.inventory.count('seed_carrot') == 2
    assert world.inventory.count('seed_radish') == 0
    assert world.current_map_id == 'village'
    assert world.clock.ms_per_game_day == config.ms_per_game_day
    assert world.tick()['weather_rerolled'] is False


def test_admins():
    config = ConfigManager()
    config.set_admins(['123', 'abc', 456])
    assert config.is_admin(456)
    assert config.is_admin('123')
    assert not config.is_admin('abc')


# ========== 主循环 ==========

def test_first_tick_rolls_weather():
    world = _world()
    result = world.tick(START)
    assert result['weather_rerolled'] is True
    assert result['weather'] == world.weather.current.value
    assert world.weather.state.next_check_at > START
    assert world.tick(START + 1)['weather_rerolled'] is False


def test_rain_waters_outdoor_plots_only():
    world = _world()
    world.inventory.add_item('seed_radish', 3)
    _plant_radish(world, 'farm_area', (0, 0))
    _plant_radish(world, 'forest', (0, 0))
    _plant_radish(world, 'cottage_interior', (0, 0))
    world.weather.set_current(WeatherType.RAIN)
    world.weather.set_manual_override(True)

    result = world.tick(START + 5000)
    assert result['rain_watered'] == 2
    assert world.plots.get_plot('farm_area', (0, 0)).state == PlotState.WATERED
    assert world.plots.get_plot('forest', (0, 0)).last_watered_at == START + 5000
    assert world.plots.get_plot('cottage_interior', (0, 0)).state == PlotState.PLANTED


def test_travel_leaves_the_weather_schedule_alone():
    world = _world()
    world.tick(START)
    weather = world.weather.current
    next_check = world.weather.state.next_check_at

    for _ in range(20):
        assert world.travel('shop') == WeatherType.CLEAR
        world.travel('farm_area')
        assert world.weather.current == weather
        assert world.weather.state.next_check_at == next_check
    assert world.current_weather() == weather


def test_storm_keeps_watering_the_farm_while_player_is_indoors():
    world = _world()
    _plant_radish(world, 'farm_area', (0, 0))
    world.weather.set_current(WeatherType.STORM)
    world.weather.set_manual_override(True)

    assert world.travel('cottage_interior') == WeatherType.CLEAR
    result = world.tick(START + 10)
    assert result['weather'] == 'clear'
    assert result['global_weather'] == 'storm'
    assert result['rain_watered'] == 1
    plot = world.plots.get_plot('farm_area', (0, 0))
    assert plot.state == PlotState.WATERED
    assert plot.last_watered_at == START + 10


def test_dry_weather_waters_nothing():
    world = _world()
    _plant_radish(world, 'farm_area', (0, 0))
    world.weather.set_current(WeatherType.SNOW)
    world.weather.set_manual_override(True)
    assert world.tick(START + 10)['rain_watered'] == 0
    assert world.plots.get_plot('farm_area', (0, 0)).state == PlotState.PLANTED


def test_each_map_sees_its_own_side_of_the_weather():
    world = _world()
    world.weather.set_current(WeatherType.FOG)
    assert world.travel('mine') == WeatherType.MIST
    assert world.travel('forest') == WeatherType.FOG
    assert world.travel('shop') == WeatherType.CLEAR
    assert world.weather.current == WeatherType.FOG


def test_worlds_are_independent():
    a, b = _world(), _world()
    _plant_radish(a, 'farm_area', (1, 1))
    a.set_time(Season.WINTER, 1, 12)
    assert not b.plots.has_plot('farm_area', (1, 1))
    assert b.now().season == Season.SPRING
    assert b.inventory.count('seed_radish') == 3


# ========== 调试 ==========

def test_fast_forward():
    world = _world()
    _plant_radish(world, 'farm_area', (0, 0))
    with pytest.raises(ValueError):
        world.fast_forward(-1)
    assert world.fast_forward(90_000, now=START) == 1
    assert world.plots.get_plot('farm_area', (0, 0)).state == PlotState.READY


def test_set_and_clear_time():
    world = _world()
    t = world.set_time(Season.AUTUMN, 3, 18, 2)
    assert world.now() == t
    world.clear_time()
    assert world.now().season == Season.SPRING
    assert world.now().year == 0


def test_set_time_keeps_fields_left_out():
    world = _world()
    world.set_time(Season.AUTUMN, 3, 18, 2)
    t = world.set_time(Season.WINTER, 5, 9)
    assert (t.season, t.day, t.hour, t.year) == (Season.WINTER, 5, 9, 2)
    assert world.set_time(hour=20).year == 2


def test_force_weather_ignores_override():
    world = _world()
    world.travel('mine')
    world.weather.set_current(WeatherType.STORM)
    world.weather.set_manual_override(True)
    assert world.force_weather(now=START) in (WeatherType.CLEAR, WeatherType.MIST)
    assert world.weather.state.next_check_at > START


def test_load_plots_brings_state_up_to_date():
    world = _world(now=START + 200_000)
    count = world.load_plots([
        {'map_id': 'farm_area', 'x': 2, 'y': 3, 'state': 'planted', 'crop_id': 'radish',
         'planted_at': START, 'last_watered_at': START, 'state_changed_at': START},
    ])
    assert count == 1
    assert world.plots.get_plot('farm_area', (2, 3)).state == PlotState.READY


def test_reset_map_defaults_to_current():
    world = _world()
    world.plots.till('farm_area', (0, 0), now=START)
    world.plots.till('forest', (0, 0), now=START)
    assert world.reset_map() == 1
    assert world.plots.map_ids() == ['forest']
    assert world.reset_map('forest') == 1


# ========== 存档 ==========

def test_snapshot_round_trip_through_disk(tmp_path):
    dm = DataManager(base_path=tmp_path)
    world = _world()
    _plant_radish(world, 'farm_area', (4, 5))
    world.plots.till('forest', (1, 2), now=START)
    world.travel('forest')
    world.set_time(Season.SUMMER, 2, 14, 1)
    dm.save_snapshot('42', world.snapshot())

    assert dm.list_worlds() == ['42']
    raw = json.loads((tmp_path / 'worlds' / '42.json').read_text(encoding='utf-8'))
    assert raw['time_override'] == {'year': 1, 'season': 'Summer', 'day': 2, 'hour': 14}
    assert 'manual_override' not in raw['weather']

    loaded = _world()
    loaded.restore(dm.load_snapshot('42'), now=START + 10)
    assert loaded.current_map_id == 'forest'
    assert loaded.now() == world.now()
    assert loaded.inventory.to_dict() == world.inventory.to_dict()
    assert loaded.weather.current == world.weather.current
    assert loaded.weather.state.next_check_at == world.weather.state.next_check_at
    assert sorted(p.key for p in loaded.plots.all_plots()) == \
        [('farm_area', 4, 5), ('forest', 1, 2)]
    assert loaded.plots.get_plot('farm_area', (4, 5)) == world.plots.get_plot('farm_area', (4, 5))


def test_restore_catches_up_on_time_away(tmp_path):
    dm = DataManager(base_path=tmp_path)
    world = _world()
    _plant_radish(world, 'farm_area', (0, 0))
    dm.save_snapshot('7', world.snapshot())

    later = _world(now=START + 120_000)
    later.restore(dm.load_snapshot('7'))
    assert later.plots.get_plot('farm_area', (0, 0)).state == PlotState.READY


def test_missing_and_corrupt_snapshots(tmp_path):
    dm = DataManager(base_path=tmp_path)
    assert dm.load_snapshot('nobody') is None
    assert dm.delete_snapshot('nobody') is False

    (tmp_path / 'worlds' / 'broken.json').write_text('{not json', encoding='utf-8')
    with pytest.raises(RuntimeError):
        dm.load_snapshot('broken')
    with pytest.raises(RuntimeError):
        asyncio.run(dm.async_load_snapshot('broken'))
    assert dm.delete_snapshot('broken') is True
    assert dm.list_worlds() == []


def test_async_save_and_load(tmp_path):
    dm = DataManager(base_path=tmp_path)
    world = _world()
    _plant_radish(world, 'farm_area', (0, 0))
    snap = world.snapshot()

    asyncio.run(dm.async_save_snapshot('9', snap))
    assert asyncio.run(dm.async_load_snapshot('9')) == snap
    assert asyncio.run(dm.async_load_snapshot('10')) is None
