from typing import Dict, Optional, Protocol


class Inventory(Protocol):
    """What the farm needs from the player's inventory"""

    def has_item(self, item_id: str, quantity: int = 1) -> bool: ...

    def remove_item(self, item_id: str, quantity: int = 1) -> bool: ...

    def add_item(self, item_id: str, quantity: int = 1) -> None: ...


class Backpack:
    """Simple in-memory item counter, persisted inside the world snapshot"""

    def __init__(self, items: Optional[Dict[str, int]] = None):
        self.items: Dict[str, int] = {k: int(v) for k, v in (items or {}).items() if int(v) > 0}

    def count(self, item_id: str) -> int:
        return self.items.get(item_id, 0)

    def has_item(self, item_id: str, quantity: int = 1) -> bool:
        return self.count(item_id) >= quantity

    def remove_item(self, item_id: str, quantity: int = 1) -> bool:
        if quantity <= 0 or not self.has_item(item_id, quantity):
            return False
        remaining = self.items[item_id] - quantity
        if remaining:
            self.items[item_id] = remaining
        else:
            del self.items[item_id]
        return True

    def add_item(self, item_id: str, quantity: int = 1) -> None:
        if quantity <= 0:
            return
        self.items[item_id] = self.items.get(item_id, 0) + quantity

    def to_dict(self) -> Dict[str, int]:
        return dict(self.items)
