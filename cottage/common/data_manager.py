"""
数据管理器 - 世界快照使用 JSON 文件存储，异步读写防止事件循环卡死

Snapshots are the complete serialisable state of one player's world
(plots, weather, clock override, backpack). The simulation itself never
touches the disk; the host calls this layer around it.
"""
from pathlib import Path
import json
from typing import Optional, Dict, Any, List

import aiofiles

PLUGIN_NAME = "astrbot_plugin_cottage"


class DataManager:
    """
    数据管理器 - JSON 文件存储

    用法:
        dm = DataManager(base_path=tmp_path)
        dm.save_snapshot('123', world.snapshot())
        snap = dm.load_snapshot('123')

        # 异步方法（推荐，防止阻塞）
        snap = await dm.async_load_snapshot('123')
        await dm.async_save_snapshot('123', snap)
    """

    def __init__(self, base_path: Optional[Path] = None):
        if base_path:
            self.root = Path(base_path)
        else:
            # 回退到插件目录下的 data
            self.root = Path(__file__).resolve().parents[2] / "data"

        self.root.mkdir(parents=True, exist_ok=True)
        self.worlds_dir = self.root / "worlds"
        self.worlds_dir.mkdir(parents=True, exist_ok=True)

    def _world_file(self, player_id: str) -> Path:
        return self.worlds_dir / f"{player_id}.json"

    # ========== 同步方法 ==========
    def load_snapshot(self, player_id: str) -> Optional[Dict[str, Any]]:
        """同步加载世界快照, None if the player has no saved world"""
        p = self._world_file(player_id)
        if not p.exists():
            return None
        try:
            return json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise RuntimeError(f"读取世界快照失败 {p}: {e}") from e

    def save_snapshot(self, player_id: str, data: Dict[str, Any]):
        """同步保存世界快照"""
        p = self._world_file(player_id)
        try:
            p.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as e:
            raise RuntimeError(f"保存世界快照失败 {p}: {e}") from e

    def delete_snapshot(self, player_id: str) -> bool:
        p = self._world_file(player_id)
        if not p.exists():
            return False
        p.unlink()
        return True

    # ========== 异步方法 ==========
    async def async_load_snapshot(self, player_id: str) -> Optional[Dict[str, Any]]:
        """异步加载世界快照"""
        p = self._world_file(player_id)
        if not p.exists():
            return None
        try:
            async with aiofiles.open(p, 'r', encoding='utf-8') as f:
                content = await f.read()
            return json.loads(content)
        except (OSError, ValueError) as e:
            raise RuntimeError(f"读取世界快照失败 {p}: {e}") from e

    async def async_save_snapshot(self, player_id: str, data: Dict[str, Any]):
        """异步保存世界快照"""
        p = self._world_file(player_id)
        content = json.dumps(data, ensure_ascii=False, indent=2)
        try:
            async with aiofiles.open(p, 'w', encoding='utf-8') as f:
                await f.write(content)
        except OSError as e:
            raise RuntimeError(f"保存世界快照失败 {p}: {e}") from e

    def list_worlds(self) -> List[str]:
        """列出所有已保存世界的玩家ID"""
        return sorted(p.stem for p in self.worlds_dir.glob("*.json"))
