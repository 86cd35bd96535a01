"""
世界管理 - keeps one world per player for the chat plugin.

Worlds are loaded lazily on a player's first command and kept in memory. A
single background task polls all of them on a fixed cadence and saves them
every few polls. The task is started from inside the running event loop on
first use, never from a constructor.
"""
import asyncio
import logging
from typing import Dict, Optional

from ..common.config_manager import ConfigManager
from ..common.data_manager import DataManager
from ..farm.crops import CropTable
from .logic import CottageWorld

logger = logging.getLogger(__name__)


class WorldHost:
    def __init__(self, config: ConfigManager, data_manager: DataManager,
                 crops: Optional[CropTable] = None, time_source=None):
        self.config = config
        self.data_manager = data_manager
        self.crops = crops or CropTable()
        self.time_source = time_source
        self.worlds: Dict[str, CottageWorld] = {}
        self.polls = 0
        self._poll_task: Optional[asyncio.Task] = None

    # ========== 世界加载 / 保存 ==========

    async def get_world(self, player_id: str) -> CottageWorld:
        world = self.worlds.get(player_id)
        if world:
            return world
        world = CottageWorld(config=self.config, time_source=self.time_source, crops=self.crops)
        snap = await self.data_manager.async_load_snapshot(player_id)
        if snap:
            world.restore(snap)
        self.worlds[player_id] = world
        logger.info("Loaded world for %s (%s)", player_id, "saved" if snap else "new")
        return world

    async def save_world(self, player_id: str):
        world = self.worlds.get(player_id)
        if world:
            await self.data_manager.async_save_snapshot(player_id, world.snapshot())

    async def save_all(self):
        for player_id in list(self.worlds):
            try:
                await self.save_world(player_id)
            except RuntimeError as e:
                logger.error("Saving world %s failed: %s", player_id, e)

    # ========== 轮询 ==========

    async def poll_once(self, now: Optional[int] = None) -> int:
        """Tick every loaded world, autosaving every few polls. Returns worlds ticked."""
        self.polls += 1
        ticked = 0
        for player_id, world in list(self.worlds.items()):
            try:
                world.tick(now)
                ticked += 1
            except Exception:
                logger.exception("Updating world %s failed", player_id)
        if self.polls % self.config.autosave_every_polls == 0:
            await self.save_all()
        return ticked

    async def _poll_loop(self):
        interval = self.config.poll_interval_seconds
        while True:
            await asyncio.sleep(interval)
            await self.poll_once()

    def ensure_polling(self) -> asyncio.Task:
        """Start the poll task if it is not running. Must be called inside the event loop."""
        if self._poll_task is None or self._poll_task.done():
            self._poll_task = asyncio.create_task(self._poll_loop())
            logger.info("World polling started, every %ss", self.config.poll_interval_seconds)
        return self._poll_task

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def stop(self):
        """Cancel polling and save every world"""
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None
        await self.save_all()
