# colorfest_analytics/adapters/__init__.py

from .dice import fetch_events as fetch_dice_events   # async def fetch_events() -> List[RawEvent]

REGISTRY = {
    "dice": fetch_dice_events,
}
