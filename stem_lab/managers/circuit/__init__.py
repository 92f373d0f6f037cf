from .connection_point import ConnectionPoint, nearest_acceptable_point
from .wire import Wire
from .switch import Switch
from .circuit_manager import CircuitManager
from .indicators import Lamp, LED

__all__ = [
    "ConnectionPoint",
    "nearest_acceptable_point",
    "Wire",
    "Switch",
    "CircuitManager",
    "Lamp",
    "LED",
]
