from typing import Iterable, Optional

import numpy as np

from ...models.wire_color import WireColor
from ...utils.events import EventChannel
from ...utils.logger.logger import Logger
from ..experiment.action_sink import ActionSink, report_action
from .connection_point import ConnectionPoint, nearest_acceptable_point


class Wire:
    """
    Draggable wire anchored at a source point.

    The free end follows the drag and, on release, snaps to the nearest
    compatible point in range; otherwise it springs back to the anchor.
    A successful connection reports ``completion_action_id`` to the sink.

    Events:
        on_drag_started(), on_drag_ended(), on_connected(point), on_disconnected()
    """

    def __init__(self, wire_id: str, color, source_point: ConnectionPoint,
                 completion_action_id: Optional[str] = None,
                 action_sink: Optional[ActionSink] = None,
                 snap_distance: float = 0.5):
        self.wire_id = wire_id
        self.color = WireColor.parse(color)
        self.source_point = source_point
        self.target_point: Optional[ConnectionPoint] = None
        self.completion_action_id = completion_action_id
        self.action_sink = action_sink
        self.snap_distance = snap_distance
        self.free_end = source_point.position.copy()
        self.is_dragging = False
        self.is_interactable = True

        self.on_drag_started = EventChannel("drag_started")
        self.on_drag_ended = EventChannel("drag_ended")
        self.on_connected = EventChannel("wire_connected")
        self.on_disconnected = EventChannel("wire_disconnected")

    @property
    def is_connected(self) -> bool:
        return self.target_point is not None

    # --- Interactable ---

    def set_interactable(self, interactable: bool):
        self.is_interactable = interactable

    def can_interact(self) -> bool:
        return self.is_interactable and not self.is_connected

    # --- Dragging ---

    def begin_drag(self) -> bool:
        if not self.can_interact():
            Logger.warning(f"Wire {self.wire_id}: drag refused")
            return False
        self.is_dragging = True
        self.on_drag_started.emit()
        return True

    def drag_to(self, position):
        if self.is_dragging:
            self.free_end = np.asarray(position, dtype=float)

    def end_drag(self, candidates: Iterable[ConnectionPoint]) -> bool:
        if not self.is_dragging:
            return False
        self.is_dragging = False
        self.on_drag_ended.emit()
        return self.release_at(self.free_end, candidates)

    def release_at(self, position, candidates: Iterable[ConnectionPoint]) -> bool:
        """
        Resolve a release at ``position`` against ``candidates``.

        One connection attempt is made on the nearest acceptable point within
        the snap distance. Returns True when the wire ends up connected.
        """
        if self.is_connected:
            return False
        target = nearest_acceptable_point(self.color, position, list(candidates), self.snap_distance)
        if target is not None and target.try_connect(self):
            return True

        Logger.warning(f"Wire {self.wire_id}: no compatible point in range, returning to source")
        self.reset_to_source()
        return False

    def connect_to(self, point: ConnectionPoint) -> bool:
        """Connect directly, without the proximity search."""
        return point.try_connect(self)

    def disconnect(self) -> bool:
        if not self.is_connected:
            return False
        return self.target_point.disconnect()

    def reset_to_source(self):
        self.free_end = self.source_point.position.copy()

    # --- Callbacks from ConnectionPoint ---

    def _on_point_attached(self, point: ConnectionPoint):
        self.free_end = point.position.copy()
        Logger.log(f"Wire {self.wire_id}: connected to {point.point_id}")
        self.on_connected.emit(point)
        report_action(self.action_sink, self.completion_action_id)

    def _on_point_detached(self, point: ConnectionPoint):
        self.reset_to_source()
        Logger.log(f"Wire {self.wire_id}: disconnected from {point.point_id}")
        self.on_disconnected.emit()

    def __repr__(self):
        target = self.target_point.point_id if self.is_connected else None
        return f"Wire({self.wire_id!r}, {self.color.value}, target={target!r})"
