import math
from typing import Optional

from ...utils.events import EventChannel
from ...utils.logger.logger import Logger
from ..experiment.action_sink import ActionSink, report_action


class PowerSupply:
    """
    Bench power supply with a stepped output voltage.

    The set voltage is kept while the supply is off; output_voltage is 0 then.
    Turning on re-announces the set voltage, turning off announces 0 V.

    Events:
        on_power_on(), on_power_off(), on_power_state_changed(is_on),
        on_voltage_changed(voltage)
    """

    VOLTS_PER_BATTERY = 1.5

    def __init__(self, voltage: float = 1.5, min_voltage: float = 0.0, max_voltage: float = 9.0,
                 voltage_step: float = 1.5, start_on: bool = False,
                 action_on_power_on: Optional[str] = None,
                 action_on_power_off: Optional[str] = None,
                 action_on_voltage_changed: Optional[str] = None,
                 action_sink: Optional[ActionSink] = None):
        self.min_voltage = min_voltage
        self.max_voltage = max_voltage
        self.voltage_step = voltage_step
        self.initial_voltage = min(max(voltage, min_voltage), max_voltage)
        self.current_voltage = self.initial_voltage
        self.is_powered_on = start_on
        self.action_on_power_on = action_on_power_on
        self.action_on_power_off = action_on_power_off
        self.action_on_voltage_changed = action_on_voltage_changed
        self.action_sink = action_sink
        self.is_interactable = True

        self.on_power_on = EventChannel("power_on")
        self.on_power_off = EventChannel("power_off")
        self.on_power_state_changed = EventChannel("power_state_changed")
        self.on_voltage_changed = EventChannel("supply_voltage_changed")

    @property
    def output_voltage(self) -> float:
        return self.current_voltage if self.is_powered_on else 0.0

    @property
    def battery_count(self) -> int:
        return int(round(self.current_voltage / self.VOLTS_PER_BATTERY))

    def set_interactable(self, interactable: bool):
        self.is_interactable = interactable

    def can_interact(self) -> bool:
        return self.is_interactable

    def toggle_power(self) -> bool:
        if not self.can_interact():
            Logger.warning("PowerSupply: power button ignored (not interactable)")
            return False
        if self.is_powered_on:
            self.turn_off()
        else:
            self.turn_on()
        return True

    def turn_on(self):
        if self.is_powered_on:
            return
        self.is_powered_on = True
        Logger.log(f"PowerSupply: ON at {self.current_voltage} V", Logger.LogPriority.INFO)
        self.on_power_on.emit()
        self.on_power_state_changed.emit(True)
        self.on_voltage_changed.emit(self.current_voltage)
        report_action(self.action_sink, self.action_on_power_on)

    def turn_off(self):
        if not self.is_powered_on:
            return
        self.is_powered_on = False
        Logger.log("PowerSupply: OFF", Logger.LogPriority.INFO)
        self.on_power_off.emit()
        self.on_power_state_changed.emit(False)
        self.on_voltage_changed.emit(0.0)
        report_action(self.action_sink, self.action_on_power_off)

    def increase_voltage(self) -> bool:
        if not self.can_interact():
            return False
        new_voltage = self.current_voltage + self.voltage_step
        if new_voltage > self.max_voltage + 1e-9:
            Logger.warning(f"PowerSupply: already at maximum {self.max_voltage} V")
            return False
        return self.set_voltage(new_voltage)

    def decrease_voltage(self) -> bool:
        if not self.can_interact():
            return False
        new_voltage = self.current_voltage - self.voltage_step
        if new_voltage < self.min_voltage - 1e-9:
            Logger.warning(f"PowerSupply: already at minimum {self.min_voltage} V")
            return False
        return self.set_voltage(new_voltage)

    def set_voltage(self, voltage: float) -> bool:
        """Clamp to [min, max]; a value equal to the current one changes nothing."""
        voltage = min(max(float(voltage), self.min_voltage), self.max_voltage)
        if math.isclose(voltage, self.current_voltage, abs_tol=1e-6):
            return False
        self.current_voltage = voltage
        Logger.log(f"PowerSupply: voltage set to {voltage} V")
        if self.is_powered_on:
            self.on_voltage_changed.emit(voltage)
        report_action(self.action_sink, self.action_on_voltage_changed)
        return True

    def reset(self):
        self.is_powered_on = False
        self.current_voltage = self.initial_voltage

    def __repr__(self):
        return f"PowerSupply({'on' if self.is_powered_on else 'off'}, {self.current_voltage} V)"
