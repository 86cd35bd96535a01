"""
地块模拟 - the only place that owns and mutates farm plots.

Plots are keyed by (map_id, x, y). Callers never get a live plot back, only
copies, so the "crop fields present iff a crop is in the ground" rule is
enforced here and nowhere else.
"""
import logging
import math
import random
from typing import Dict, Iterable, List, Optional, Tuple

from ..clock.logic import GameClock
from .crops import CropTable
from .inventory import Inventory
from .models import (
    ActionResult, CropDefinition, CropQuality, FailureReason, FarmPlot, HarvestResult,
    PlotState, GROWING_STATES, QUALITY_PROGRESSION,
)

Position = Tuple[float, float]
PlotKey = Tuple[str, int, int]

WATERABLE_STATES = GROWING_STATES + (PlotState.READY,)


class PlotSimulator:
    def __init__(self, clock: GameClock, crops: CropTable, inventory: Inventory,
                 fertiliser_item_id: str = "fertiliser", rng: Optional[random.Random] = None):
        self.clock = clock
        self.crops = crops
        self.inventory = inventory
        self.fertiliser_item_id = fertiliser_item_id
        self.rng = rng or random.Random()
        self.logger = logging.getLogger(__name__)
        self._plots: Dict[PlotKey, FarmPlot] = {}

    @staticmethod
    def _key(map_id: str, pos: Position) -> PlotKey:
        return (map_id, math.floor(pos[0]), math.floor(pos[1]))

    def _now(self, now: Optional[int]) -> int:
        return self.clock.timestamp() if now is None else int(now)

    # ========== 查询 ==========

    def get_plot(self, map_id: str, pos: Position) -> Optional[FarmPlot]:
        plot = self._plots.get(self._key(map_id, pos))
        return plot.model_copy() if plot else None

    def has_plot(self, map_id: str, pos: Position) -> bool:
        return self._key(map_id, pos) in self._plots

    def plots_for_map(self, map_id: str) -> List[FarmPlot]:
        return [p.model_copy() for p in self._plots.values() if p.map_id == map_id]

    def all_plots(self) -> List[FarmPlot]:
        return [p.model_copy() for p in self._plots.values()]

    def map_ids(self) -> List[str]:
        return sorted({p.map_id for p in self._plots.values()})

    # ========== 注册 / 载入 ==========

    def register_plot(self, plot: FarmPlot) -> None:
        """Insert or overwrite a plot at its identity"""
        plot = plot.model_copy()
        if plot.state in (PlotState.FALLOW, PlotState.TILLED):
            plot.clear_crop(plot.state, plot.state_changed_at)
        self._plots[plot.key] = plot

    def load_plots(self, plots: Iterable) -> int:
        """Replace the whole collection from FarmPlot objects or plain records"""
        loaded = [p if isinstance(p, FarmPlot) else FarmPlot.model_validate(p) for p in plots]
        self._plots.clear()
        for plot in loaded:
            self.register_plot(plot)
        self.logger.info("Loaded %d plots", len(self._plots))
        return len(self._plots)

    def reset_map(self, map_id: str) -> int:
        """Forget every plot on one map"""
        keys = [k for k in self._plots if k[0] == map_id]
        for k in keys:
            del self._plots[k]
        self.logger.info("Reset %d plots on %s", len(keys), map_id)
        return len(keys)

    def to_records(self) -> List[dict]:
        return [p.model_dump(mode="json") for p in self._plots.values()]

    # ========== 玩家操作 ==========

    def till(self, map_id: str, pos: Position, now: Optional[int] = None) -> bool:
        key = self._key(map_id, pos)
        existing = self._plots.get(key)
        if existing and existing.state != PlotState.FALLOW:
            return False
        now = self._now(now)
        self._plots[key] = FarmPlot(map_id=map_id, x=key[1], y=key[2],
                                    state=PlotState.TILLED, state_changed_at=now)
        self.logger.debug("Tilled soil at %s", key)
        return True

    def plant(self, map_id: str, pos: Position, crop_id: str, now: Optional[int] = None) -> ActionResult:
        key = self._key(map_id, pos)
        plot = self._plots.get(key)
        if not plot or plot.state != PlotState.TILLED:
            return ActionResult.fail(FailureReason.PRECONDITION_NOT_MET)

        crop = self.crops.get(crop_id)
        if not crop:
            self.logger.warning("Unknown crop: %s", crop_id)
            return ActionResult.fail(FailureReason.UNKNOWN_CROP)

        now = self._now(now)
        if not crop.can_plant_in(self.clock.now(now).season):
            return ActionResult.fail(FailureReason.OUT_OF_SEASON)

        if not self.inventory.has_item(crop.seed_item_id, 1):
            return ActionResult.fail(FailureReason.RESOURCE_UNAVAILABLE)
        if not self.inventory.remove_item(crop.seed_item_id, 1):
            return ActionResult.fail(FailureReason.RESOURCE_UNAVAILABLE)

        plot.state = PlotState.PLANTED
        plot.crop_id = crop.id
        # planting counts as the first watering
        plot.planted_at = now
        plot.last_watered_at = now
        plot.state_changed_at = now
        plot.quality = CropQuality.NORMAL
        plot.fertiliser_applied = False
        self.logger.info("Planted %s at %s", crop.id, key)
        return ActionResult.ok()

    def water(self, map_id: str, pos: Position, now: Optional[int] = None) -> bool:
        plot = self._plots.get(self._key(map_id, pos))
        if not plot or plot.state not in WATERABLE_STATES:
            return False
        now = self._now(now)
        self._water(plot, now)
        return True

    def _water(self, plot: FarmPlot, now: int):
        plot.last_watered_at = now
        if plot.state != PlotState.READY:
            plot.state = PlotState.WATERED
            plot.state_changed_at = now

    def water_all(self, map_ids: Iterable[str], now: Optional[int] = None) -> int:
        """Water every waterable plot on the given maps (rain)"""
        now = self._now(now)
        wanted = set(map_ids)
        count = 0
        for plot in self._plots.values():
            if plot.map_id in wanted and plot.state in WATERABLE_STATES:
                self._water(plot, now)
                count += 1
        return count

    def apply_fertiliser(self, map_id: str, pos: Position, now: Optional[int] = None) -> ActionResult:
        plot = self._plots.get(self._key(map_id, pos))
        if not plot or plot.state not in GROWING_STATES or plot.fertiliser_applied:
            return ActionResult.fail(FailureReason.PRECONDITION_NOT_MET)
        if not self.inventory.remove_item(self.fertiliser_item_id, 1):
            return ActionResult.fail(FailureReason.RESOURCE_UNAVAILABLE)

        plot.fertiliser_applied = True
        plot.quality = QUALITY_PROGRESSION[plot.quality]
        self.logger.info("Fertilised %s, quality now %s", plot.key, plot.quality.value)
        return ActionResult.ok()

    def harvest(self, map_id: str, pos: Position, now: Optional[int] = None) -> Optional[HarvestResult]:
        plot = self._plots.get(self._key(map_id, pos))
        if not plot or plot.state != PlotState.READY:
            return None
        crop = self.crops.get(plot.crop_id)
        if not crop:
            self.logger.warning("Cannot harvest unknown crop %s at %s", plot.crop_id, plot.key)
            return None

        seeds = self.rng.randint(crop.seed_drop_min, crop.seed_drop_max)
        result = HarvestResult(crop_id=crop.id, yield_=crop.harvest_yield,
                               seeds_dropped=seeds, quality=plot.quality)
        self.inventory.add_item(crop.crop_item_id, crop.harvest_yield)
        self.inventory.add_item(crop.seed_item_id, seeds)

        plot.clear_crop(PlotState.FALLOW, self._now(now))
        self.logger.info("Harvested %dx %s (+%d seeds) at %s",
                         crop.harvest_yield, crop.display_name, seeds, plot.key)
        return result

    def clear_dead(self, map_id: str, pos: Position, now: Optional[int] = None) -> bool:
        plot = self._plots.get(self._key(map_id, pos))
        if not plot or plot.state != PlotState.DEAD:
            return False
        plot.clear_crop(PlotState.FALLOW, self._now(now))
        self.logger.info("Cleared dead crop at %s", plot.key)
        return True

    # ========== 时间推进 ==========

    def poll(self, now: Optional[int] = None) -> int:
        """Advance every plot to the state its timestamps imply. Returns the number changed."""
        now = self._now(now)
        updated = 0
        for plot in self._plots.values():
            new_state = self.next_state(plot, now)
            if new_state is not None:
                self.logger.debug("Plot %s: %s -> %s", plot.key, plot.state.value, new_state.value)
                plot.state = new_state
                plot.state_changed_at = now
                updated += 1
        if updated:
            self.logger.info("Updated %d plots", updated)
        return updated

    def next_state(self, plot: FarmPlot, now: int) -> Optional[PlotState]:
        """
        The single transition a plot should take at `now`, or None.

        Order matters: death of an already-wilting crop is checked first, then
        wilting of a thirsty crop, then ripening.
        """
        if plot.state not in GROWING_STATES:
            return None

        crop = self._crop_for(plot)
        if crop is None:
            return None

        since_watered = math.inf if plot.last_watered_at is None else now - plot.last_watered_at
        since_planted = 0 if plot.planted_at is None else now - plot.planted_at

        if plot.state == PlotState.WILTING:
            if now - plot.state_changed_at >= crop.death_grace_period:
                return PlotState.DEAD
        elif since_watered > crop.water_needed_interval:
            if since_watered - crop.water_needed_interval >= crop.wilting_grace_period:
                return PlotState.WILTING

        watered = since_watered < crop.water_needed_interval
        required = crop.growth_time_watered if watered else crop.growth_time
        if since_planted >= required:
            return PlotState.READY
        return None

    def _crop_for(self, plot: FarmPlot) -> Optional[CropDefinition]:
        if not plot.crop_id:
            self.logger.warning("Plot %s is %s but has no crop", plot.key, plot.state.value)
            return None
        crop = self.crops.get(plot.crop_id)
        if not crop:
            self.logger.warning("Unknown crop %s at %s, plot will not advance", plot.crop_id, plot.key)
        return crop

    def rewind(self, ms: int, now: Optional[int] = None) -> int:
        """
        Fast-forward growth by shifting every plot timestamp `ms` into the past,
        then poll. Returns the number of plots changed by the poll.
        """
        for plot in self._plots.values():
            if plot.planted_at is not None:
                plot.planted_at -= ms
            if plot.last_watered_at is not None:
                plot.last_watered_at -= ms
            plot.state_changed_at -= ms
        self.logger.info("Rewound %d plots by %d ms", len(self._plots), ms)
        return self.poll(now)
