from .power_supply import PowerSupply
from .controls import Knob, EquipmentButton
from .data_logger import DataLogger, DataLoggerState, MenuOption
from .voltage_sensor import VoltageSensor

__all__ = [
    "PowerSupply",
    "Knob",
    "EquipmentButton",
    "DataLogger",
    "DataLoggerState",
    "MenuOption",
    "VoltageSensor",
]
