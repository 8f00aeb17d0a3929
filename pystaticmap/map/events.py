"""Progress notifications for a render."""
from typing import Callable, List
import logging

logger = logging.getLogger(__name__)

ZOOM_RESOLVED = 'zoom_resolved'
BASE_LAYER_READY = 'base_layer_ready'
OVERLAY_READY = 'overlay_ready'
COMPOSITED = 'composited'

MILESTONES = (ZOOM_RESOLVED, BASE_LAYER_READY, OVERLAY_READY, COMPOSITED)


class MapEvents:
    """
    Observer list for render milestones.

    Callbacks are called as ``callback(milestone, **payload)`` on the
    rendering thread, in subscription order.
    """

    def __init__(self):
        self._callbacks: List[Callable] = []

    def subscribe(self, callback: Callable) -> Callable:
        self._callbacks.append(callback)
        return callback

    def unsubscribe(self, callback: Callable) -> None:
        self._callbacks.remove(callback)

    def emit(self, milestone: str, **payload) -> None:
        if milestone not in MILESTONES:
            raise ValueError(f"Unknown milestone '{milestone}'")
        logger.debug("Render milestone: %s %s", milestone, payload)
        for callback in list(self._callbacks):
            callback(milestone, **payload)
