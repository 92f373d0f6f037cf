"""
Capacitor state representation.

Units:
    - Voltage: V
    - Capacitance: F
    - Resistance: Ohm
    - Time: s
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class CapacitorMode(Enum):
    IDLE = "idle"
    CHARGING = "charging"
    DISCHARGING = "discharging"


@dataclass
class CapacitorState:
    """
    Mutable state of the simulated capacitor.

    Attributes:
        capacitance: Capacitance in F.
        resistance: Discharge resistance in Ohm.
        voltage: Current voltage across the capacitor (>= 0).
        mode: Idle, Charging or Discharging.
        target_voltage: Charging ceiling, taken from the supply when charging starts.
        discharge_start_time: Engine clock value when the current discharge began.
        initial_discharge_voltage: Voltage at the start of the current discharge.
    """
    capacitance: float
    resistance: float
    voltage: float = 0.0
    mode: CapacitorMode = CapacitorMode.IDLE
    target_voltage: float = 0.0
    discharge_start_time: float = 0.0
    initial_discharge_voltage: float = 0.0

    @property
    def time_constant(self) -> float:
        """tau = R * C in seconds."""
        return self.resistance * self.capacitance

    @property
    def is_charging(self) -> bool:
        return self.mode is CapacitorMode.CHARGING

    @property
    def is_discharging(self) -> bool:
        return self.mode is CapacitorMode.DISCHARGING


@dataclass(frozen=True)
class DischargeSample:
    """One (elapsed time, voltage) point of a discharge recording."""
    time_s: float
    voltage_v: float


def indicator_brightness(voltage: float, reference_max: Optional[float]) -> float:
    """Brightness in [0, 1] for an indicator driven by ``voltage``."""
    if not reference_max or reference_max <= 0:
        return 0.0
    return min(max(voltage / reference_max, 0.0), 1.0)
