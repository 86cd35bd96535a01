from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from ..clock.models import Season


class PlotState(str, Enum):
    FALLOW = "fallow"      # untilled ground
    TILLED = "tilled"      # ready for seeds
    PLANTED = "planted"
    WATERED = "watered"    # grows faster
    WILTING = "wilting"    # needs water now
    READY = "ready"
    DEAD = "dead"


# States in which a crop is still growing
GROWING_STATES = (PlotState.PLANTED, PlotState.WATERED, PlotState.WILTING)


class CropQuality(str, Enum):
    NORMAL = "normal"
    GOOD = "good"
    EXCELLENT = "excellent"


QUALITY_MULTIPLIERS = {
    CropQuality.NORMAL: 1.0,
    CropQuality.GOOD: 1.5,
    CropQuality.EXCELLENT: 2.0,
}

QUALITY_PROGRESSION = {
    CropQuality.NORMAL: CropQuality.GOOD,
    CropQuality.GOOD: CropQuality.EXCELLENT,
    CropQuality.EXCELLENT: CropQuality.EXCELLENT,
}


class FailureReason(str, Enum):
    PRECONDITION_NOT_MET = "precondition_not_met"
    OUT_OF_SEASON = "out_of_season"
    RESOURCE_UNAVAILABLE = "resource_unavailable"
    UNKNOWN_CROP = "unknown_crop"


# ========== 作物定义 ==========

class CropDefinition(BaseModel):
    """Static crop configuration. All durations are wall-clock milliseconds."""
    id: str
    display_name: str
    plant_seasons: List[Season]
    growth_time: int
    growth_time_watered: int
    water_needed_interval: int
    wilting_grace_period: int
    death_grace_period: int
    harvest_yield: int = 1
    sell_price: int = 0
    seed_drop_min: int = 1
    seed_drop_max: int = 1
    seed_cost: int = 0
    rarity: str = "common"
    seed_source: str = "shop"      # shop / friendship / forage
    description: str = ""

    @model_validator(mode="after")
    def _check_ranges(self):
        durations = (self.growth_time, self.growth_time_watered, self.water_needed_interval,
                     self.wilting_grace_period, self.death_grace_period)
        if any(d < 0 for d in durations):
            raise ValueError(f"crop {self.id}: durations must not be negative")
        if self.growth_time_watered > self.growth_time:
            raise ValueError(f"crop {self.id}: watered growth cannot be slower than unwatered")
        if self.harvest_yield < 0 or self.seed_drop_min < 0:
            raise ValueError(f"crop {self.id}: yields must not be negative")
        if self.seed_drop_min > self.seed_drop_max:
            raise ValueError(f"crop {self.id}: seed_drop_min exceeds seed_drop_max")
        return self

    @property
    def seed_item_id(self) -> str:
        return f"seed_{self.id}"

    @property
    def crop_item_id(self) -> str:
        return f"crop_{self.id}"

    def can_plant_in(self, season: Season) -> bool:
        return season in self.plant_seasons


# ========== 地块 ==========

class FarmPlot(BaseModel):
    map_id: str
    x: int
    y: int
    state: PlotState = PlotState.FALLOW
    crop_id: Optional[str] = None
    planted_at: Optional[int] = None
    last_watered_at: Optional[int] = None
    state_changed_at: int = 0
    quality: CropQuality = CropQuality.NORMAL
    fertiliser_applied: bool = False

    @property
    def key(self) -> Tuple[str, int, int]:
        return (self.map_id, self.x, self.y)

    def clear_crop(self, state: PlotState, now: int):
        """Drop every crop-related field and move to `state` (fallow or tilled)"""
        self.state = state
        self.crop_id = None
        self.planted_at = None
        self.last_watered_at = None
        self.quality = CropQuality.NORMAL
        self.fertiliser_applied = False
        self.state_changed_at = now


class ActionResult(BaseModel):
    success: bool
    reason: Optional[FailureReason] = None

    @classmethod
    def ok(cls) -> "ActionResult":
        return cls(success=True)

    @classmethod
    def fail(cls, reason: FailureReason) -> "ActionResult":
        return cls(success=False, reason=reason)

    def __bool__(self):
        return self.success


class HarvestResult(BaseModel):
    crop_id: str
    yield_: int = Field(alias="yield")
    seeds_dropped: int
    quality: CropQuality

    model_config = {"populate_by_name": True}
