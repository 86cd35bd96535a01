from pathlib import Path

from astrbot.api import logger
from astrbot.api.event import filter, AstrMessageEvent
from astrbot.api.star import Context, Star, register
from astrbot.core.utils.astrbot_path import get_astrbot_data_path

from .cottage.clock.models import Season
from .cottage.common.config_manager import ConfigManager
from .cottage.common.data_manager import DataManager, PLUGIN_NAME
from .cottage.farm.crops import CropTable
from .cottage.farm.models import FailureReason
from .cottage.farm.render import FarmRenderer, format_duration
from .cottage.weather.models import WeatherType
from .cottage.world.host import WorldHost
from .cottage.world.logic import CottageWorld

FAILURE_MESSAGES = {
    FailureReason.PRECONDITION_NOT_MET: "这块地现在不能这样做。",
    FailureReason.OUT_OF_SEASON: "这个季节不能种这种作物。",
    FailureReason.RESOURCE_UNAVAILABLE: "背包里没有需要的物品。",
    FailureReason.UNKNOWN_CROP: "没有这种作物。",
}


@register("astrbot_plugin_cottage", "shskjw",
          "田园小屋插件 - 耕地/播种/浇水/施肥/收获，随季节与天气变化的农场模拟", "1.0.0")
class CottagePlugin(Star):
    def __init__(self, context: Context, config=None):
        try:
            super().__init__(context, config)
        except TypeError:
            super().__init__(context)

        self.config_manager = ConfigManager(config or {})
        if config and "admins_id" in config:
            self.config_manager.set_admins(config["admins_id"])

        data_manager = DataManager(Path(get_astrbot_data_path()) / "plugin_data" / PLUGIN_NAME)
        crops = CropTable.from_json(self.config_manager.crops_file) \
            if self.config_manager.crops_file else CropTable()
        self.host = WorldHost(self.config_manager, data_manager, crops)
        self.renderer = FarmRenderer()

    # ========== 世界加载 / 保存 ==========

    async def _get_world(self, user_id: str) -> CottageWorld:
        # the poll task can only be created once the event loop is running
        self.host.ensure_polling()
        return await self.host.get_world(user_id)

    async def _save_world(self, user_id: str):
        try:
            await self.host.save_world(user_id)
        except RuntimeError as e:
            logger.error(f"[cottage] {e}")

    async def terminate(self):
        await self.host.stop()

    def _is_admin(self, event: AstrMessageEvent) -> bool:
        return self.config_manager.is_admin(event.get_sender_id())

    # ========== 农场 ==========

    @filter.command("农场")
    async def cmd_farm(self, event: AstrMessageEvent):
        """查看农场状态"""
        world = await self._get_world(event.get_sender_id())
        world.tick()
        t = world.now()
        text = self.renderer.farm_status(
            date=world.clock.formatted_date(),
            time_of_day=t.time_of_day.value,
            weather=world.current_weather().value,
            map_id=world.current_map_id,
            plots=world.plots.plots_for_map(world.current_map_id),
            crops=world.crops,
            items=world.inventory.to_dict(),
            next_day_in=None if world.clock.has_override() else world.clock.ms_until_next_day(),
        )
        yield event.plain_result(text)

    @filter.command("地块")
    async def cmd_plot(self, event: AstrMessageEvent, x: int, y: int):
        world = await self._get_world(event.get_sender_id())
        plot = world.plots.get_plot(world.current_map_id, (x, y))
        if not plot:
            yield event.plain_result("这里还没有开垦。")
            return
        yield event.plain_result(self.renderer.plot_info(plot, world.crops, world.clock.timestamp()))

    @filter.command("耕地")
    async def cmd_till(self, event: AstrMessageEvent, x: int, y: int):
        user_id = event.get_sender_id()
        world = await self._get_world(user_id)
        if world.plots.till(world.current_map_id, (x, y)):
            await self._save_world(user_id)
            yield event.plain_result(f"🪓 已翻耕 ({x},{y})")
        else:
            yield event.plain_result(FAILURE_MESSAGES[FailureReason.PRECONDITION_NOT_MET])

    @filter.command("播种")
    async def cmd_plant(self, event: AstrMessageEvent, x: int, y: int, crop_id: str):
        user_id = event.get_sender_id()
        world = await self._get_world(user_id)
        res = world.plots.plant(world.current_map_id, (x, y), crop_id)
        if res.success:
            await self._save_world(user_id)
            crop = world.crops.get(crop_id)
            yield event.plain_result(f"🌱 在 ({x},{y}) 种下了 {crop.display_name}")
        else:
            yield event.plain_result(FAILURE_MESSAGES[res.reason])

    @filter.command("浇水")
    async def cmd_water(self, event: AstrMessageEvent, x: int, y: int):
        user_id = event.get_sender_id()
        world = await self._get_world(user_id)
        if world.plots.water(world.current_map_id, (x, y)):
            await self._save_world(user_id)
            yield event.plain_result(f"💧 已给 ({x},{y}) 浇水")
        else:
            yield event.plain_result(FAILURE_MESSAGES[FailureReason.PRECONDITION_NOT_MET])

    @filter.command("施肥")
    async def cmd_fertilise(self, event: AstrMessageEvent, x: int, y: int):
        user_id = event.get_sender_id()
        world = await self._get_world(user_id)
        res = world.plots.apply_fertiliser(world.current_map_id, (x, y))
        if res.success:
            await self._save_world(user_id)
            plot = world.plots.get_plot(world.current_map_id, (x, y))
            yield event.plain_result(f"✨ 施肥成功，品质提升为 {plot.quality.value}")
        else:
            yield event.plain_result(FAILURE_MESSAGES[res.reason])

    @filter.command("收获")
    async def cmd_harvest(self, event: AstrMessageEvent, x: int, y: int):
        user_id = event.get_sender_id()
        world = await self._get_world(user_id)
        world.tick()
        res = world.plots.harvest(world.current_map_id, (x, y))
        if not res:
            yield event.plain_result("作物尚未成熟。")
            return
        await self._save_world(user_id)
        crop = world.crops.get(res.crop_id)
        yield event.plain_result(
            f"🧺 收获了 {res.yield_} 个 {crop.display_name} ({res.quality.value})，"
            f"并得到 {res.seeds_dropped} 颗种子")

    @filter.command("清理")
    async def cmd_clear(self, event: AstrMessageEvent, x: int, y: int):
        user_id = event.get_sender_id()
        world = await self._get_world(user_id)
        if world.plots.clear_dead(world.current_map_id, (x, y)):
            await self._save_world(user_id)
            yield event.plain_result(f"🧹 清理了 ({x},{y}) 的枯萎作物")
        else:
            yield event.plain_result("这里没有枯死的作物。")

    @filter.command("当季种子")
    async def cmd_seasonal(self, event: AstrMessageEvent):
        world = await self._get_world(event.get_sender_id())
        season = world.now().season
        crops = world.crops.plantable_in(season)
        lines = [f"{world.clock.short_formatted_date()} 可种植:"]
        lines += [f"  {c.id} - {c.display_name} ({c.seed_source})" for c in crops]
        yield event.plain_result("\n".join(lines))

    @filter.command("前往")
    async def cmd_travel(self, event: AstrMessageEvent, map_id: str):
        user_id = event.get_sender_id()
        world = await self._get_world(user_id)
        weather = world.travel(map_id)
        await self._save_world(user_id)
        yield event.plain_result(f"🚶 来到了 {map_id}，天气: {weather.value}")

    # ========== 管理员调试 ==========

    @filter.command("设置时间")
    async def cmd_set_time(self, event: AstrMessageEvent, season: str, day: int, hour: int, year: int = None):
        """设置时间 季节 日 时 [年]，省略年份则保持当前年份"""
        if not self._is_admin(event):
            yield event.plain_result("只有管理员可以使用此命令。")
            return
        user_id = event.get_sender_id()
        world = await self._get_world(user_id)
        try:
            t = world.set_time(Season(season.capitalize()), day, hour, year)
        except ValueError as e:
            yield event.plain_result(f"设置失败: {e}")
            return
        await self._save_world(user_id)
        yield event.plain_result(f"⏰ 时间已固定为 {t.season.value} {t.day}, Year {t.year} {t.hour}:00 ({t.time_of_day.value})")

    @filter.command("恢复时间")
    async def cmd_clear_time(self, event: AstrMessageEvent):
        if not self._is_admin(event):
            yield event.plain_result("只有管理员可以使用此命令。")
            return
        user_id = event.get_sender_id()
        world = await self._get_world(user_id)
        world.clear_time()
        await self._save_world(user_id)
        yield event.plain_result(f"⏰ 已恢复真实时间: {world.clock.formatted_date()}")

    @filter.command("刷新天气")
    async def cmd_reroll_weather(self, event: AstrMessageEvent):
        if not self._is_admin(event):
            yield event.plain_result("只有管理员可以使用此命令。")
            return
        user_id = event.get_sender_id()
        world = await self._get_world(user_id)
        weather = world.force_weather()
        remaining = format_duration(world.weather.time_until_next_check())
        await self._save_world(user_id)
        yield event.plain_result(f"🌦 天气: {weather.value}，下次变化约 {remaining} 后")

    @filter.command("设置天气")
    async def cmd_set_weather(self, event: AstrMessageEvent, weather: str):
        if not self._is_admin(event):
            yield event.plain_result("只有管理员可以使用此命令。")
            return
        world = await self._get_world(event.get_sender_id())
        try:
            world.weather.set_current(WeatherType(weather.lower()))
        except ValueError:
            yield event.plain_result("可选天气: " + ", ".join(w.value for w in WeatherType))
            return
        world.weather.set_manual_override(True)
        yield event.plain_result(f"🌦 天气已锁定为 {weather.lower()}，使用 /自动天气 恢复")

    @filter.command("自动天气")
    async def cmd_auto_weather(self, event: AstrMessageEvent):
        if not self._is_admin(event):
            yield event.plain_result("只有管理员可以使用此命令。")
            return
        world = await self._get_world(event.get_sender_id())
        world.weather.set_manual_override(False)
        yield event.plain_result("🌦 天气恢复自动变化")

    @filter.command("快进")
    async def cmd_fast_forward(self, event: AstrMessageEvent, minutes: int):
        if not self._is_admin(event):
            yield event.plain_result("只有管理员可以使用此命令。")
            return
        user_id = event.get_sender_id()
        world = await self._get_world(user_id)
        try:
            changed = world.fast_forward(minutes * 60 * 1000)
        except ValueError as e:
            yield event.plain_result(f"快进失败: {e}")
            return
        await self._save_world(user_id)
        yield event.plain_result(f"⏩ 作物时间快进 {minutes} 分钟，{changed} 块地发生了变化")

    @filter.command("重置地图")
    async def cmd_reset_map(self, event: AstrMessageEvent, map_id: str = ""):
        if not self._is_admin(event):
            yield event.plain_result("只有管理员可以使用此命令。")
            return
        user_id = event.get_sender_id()
        world = await self._get_world(user_id)
        removed = world.reset_map(map_id or None)
        await self._save_world(user_id)
        yield event.plain_result(f"🗑 已清除 {removed} 块地")
