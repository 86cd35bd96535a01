from pathlib import Path
from typing import Dict, Iterable, Optional

from jinja2 import Environment, FileSystemLoader

from .crops import CropTable
from .models import FarmPlot


def format_duration(ms: int) -> str:
    """12345 ms -> '0m 12s'"""
    ms = max(0, int(ms))
    minutes = ms // 60000
    seconds = (ms % 60000) // 1000
    return f"{minutes}m {seconds}s"


class FarmRenderer:
    """Plain-text farm reports for chat replies"""

    def __init__(self, template_dir: Optional[Path] = None):
        # __file__ is .../cottage/farm/render.py -> parents[2] is the plugin root
        self.template_dir = Path(template_dir) if template_dir else \
            Path(__file__).resolve().parents[2] / "resources" / "text"
        self._env = Environment(loader=FileSystemLoader(str(self.template_dir)),
                                keep_trailing_newline=False)

    def render_template(self, template_name: str, **context) -> str:
        tpl = self._env.get_template(template_name)
        return tpl.render(**context).strip()

    def list_templates(self):
        return list(self._env.list_templates())

    def plot_info(self, plot: FarmPlot, crops: CropTable, now: int) -> str:
        crop = crops.get(plot.crop_id)
        age = format_duration(now - plot.planted_at) if plot.planted_at is not None else None
        since_watered = format_duration(now - plot.last_watered_at) if plot.last_watered_at is not None else None
        return self.render_template('plot_info.txt.j2', plot=plot, crop=crop,
                                    age=age, since_watered=since_watered)

    def farm_status(self, date: str, time_of_day: str, weather: str, map_id: str,
                    plots: Iterable[FarmPlot], crops: CropTable,
                    items: Optional[Dict[str, int]] = None,
                    next_day_in: Optional[int] = None) -> str:
        plots = sorted(plots, key=lambda p: (p.y, p.x))
        names = {c.id: c.display_name for c in crops.all()}
        return self.render_template('farm_status.txt.j2', date=date, time_of_day=time_of_day,
                                    weather=weather, map_id=map_id, plots=plots, names=names,
                                    items=sorted((items or {}).items()),
                                    next_day_in=format_duration(next_day_in) if next_day_in is not None else None)
