from typing import Optional, Sequence

import numpy as np

from ...models.wire_color import WireColor
from ...utils.events import EventChannel
from ...utils.logger.logger import Logger


class ConnectionPoint:
    """
    Typed socket that holds at most one wire of its accepted color.

    Source points anchor wires and never accept a connection. The
    point <-> wire linkage is always set and cleared on both sides together.

    Events:
        on_wire_connected(point), on_wire_disconnected(point)
    """

    def __init__(self, point_id: str, accepted_color, position: Sequence[float] = (0.0, 0.0),
                 is_source: bool = False):
        self.point_id = point_id
        self.accepted_color = WireColor.parse(accepted_color)
        self.position = np.asarray(position, dtype=float)
        self.is_source = is_source
        self.connected_wire = None
        self.on_wire_connected = EventChannel("wire_connected")
        self.on_wire_disconnected = EventChannel("wire_disconnected")

    @property
    def is_connected(self) -> bool:
        return self.connected_wire is not None

    def can_accept(self, color) -> bool:
        """True iff this is a free, non-source point of the given color."""
        if self.is_source or self.is_connected:
            return False
        return WireColor.parse(color) is self.accepted_color

    def try_connect(self, wire) -> bool:
        """
        Attach ``wire`` to this point.

        Fails without mutation when the point is taken, is a source, the wire
        is already attached elsewhere or the colors differ.
        """
        if wire is None or self.is_source or self.is_connected:
            return False
        if wire.is_connected or wire.color is not self.accepted_color:
            return False

        self.connected_wire = wire
        wire.target_point = self
        Logger.log(f"ConnectionPoint {self.point_id}: wire {wire.wire_id} connected", Logger.LogPriority.INFO)

        self.on_wire_connected.emit(self)
        wire._on_point_attached(self)
        return True

    def disconnect(self) -> bool:
        """Detach the current wire; returns False when nothing was connected."""
        if not self.is_connected:
            return False

        wire = self.connected_wire
        self.connected_wire = None
        wire.target_point = None
        Logger.log(f"ConnectionPoint {self.point_id}: wire {wire.wire_id} disconnected", Logger.LogPriority.INFO)

        self.on_wire_disconnected.emit(self)
        wire._on_point_detached(self)
        return True

    def distance_to(self, position) -> float:
        return float(np.linalg.norm(self.position - np.asarray(position, dtype=float)))

    def __repr__(self):
        state = f"wire={self.connected_wire.wire_id}" if self.is_connected else "free"
        return f"ConnectionPoint({self.point_id!r}, {self.accepted_color.value}, {state})"


def nearest_acceptable_point(color, position, candidates, snap_distance: float) -> Optional[ConnectionPoint]:
    """
    Nearest point within ``snap_distance`` of ``position`` that accepts ``color``.

    Ties go to the candidate that comes first in ``candidates``.
    """
    eligible = [point for point in candidates if point.can_accept(color)]
    if not eligible:
        return None

    positions = np.array([point.position for point in eligible], dtype=float)
    distances = np.linalg.norm(positions - np.asarray(position, dtype=float), axis=1)
    distances = np.where(distances <= snap_distance, distances, np.inf)
    index = int(np.argmin(distances))
    if not np.isfinite(distances[index]):
        return None
    return eligible[index]
