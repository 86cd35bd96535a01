from typing import Dict, Optional, Protocol

from .models import Zone


class ZoneClassifier(Protocol):
    def zone_for(self, map_id: str) -> Zone: ...


class MapZones:
    """Table-backed zone classifier; unknown maps are Zone.DEFAULT"""

    def __init__(self, zones: Optional[Dict[str, str]] = None):
        self.zones: Dict[str, Zone] = {m: Zone(z) for m, z in (zones or {}).items()}

    def zone_for(self, map_id: str) -> Zone:
        return self.zones.get(map_id, Zone.DEFAULT)
