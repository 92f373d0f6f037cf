import math
from typing import Optional

from ...models.capacitor_state import CapacitorMode, CapacitorState, indicator_brightness
from ...utils.events import EventChannel
from ...utils.logger.logger import Logger
from ..experiment.action_sink import ActionSink, report_action
from .discharge_recorder import DischargeRecorder


class CapacitorEngine:
    """
    Tick-driven capacitor charge/discharge simulation.

    Charging is linear at ``charge_rate`` V/s up to the supply voltage.
    Discharging follows V(t) = V0 * exp(-t / tau) with tau = R * C and ends at
    the first of two bounds: the voltage floor (t = tau * ln(V0 / floor)) or
    ``max_discharge_time``. The final voltage is stamped at that exact instant.

    Transitions come from outside:
        - power on with the circuit closed, or closing the circuit while powered: Charging
        - power off, or opening the circuit, above ``discharge_threshold``: Discharging
        - reaching the target, floor or time bound: Idle

    Events:
        on_charging_started(), on_capacitor_charged(voltage), on_discharge_started(V0),
        on_discharge_complete(voltage), on_voltage_changed(voltage),
        on_circuit_closed(), on_circuit_opened()
    """

    REFERENCE_MIN_VOLTAGE = 1.5
    _CHARGE_TOLERANCE = 1e-6

    # INITIALIZES THE CAPACITORENGINE
    def __init__(self, capacitance: float = 0.001, resistance: float = 5000.0,
                 charge_rate: float = 2.0, discharge_threshold: float = 0.1,
                 voltage_floor: float = 0.3, max_discharge_time: float = 40.0,
                 recorder: Optional[DischargeRecorder] = None,
                 action_on_circuit_closed: Optional[str] = None,
                 action_on_discharge_started: Optional[str] = None,
                 action_on_discharge_complete: Optional[str] = None,
                 action_sink: Optional[ActionSink] = None):
        Logger.log("start CapacitorEngine__init__")
        self.state = CapacitorState(capacitance=capacitance, resistance=resistance)
        self.charge_rate = charge_rate
        self.discharge_threshold = discharge_threshold
        self.voltage_floor = voltage_floor
        self.max_discharge_time = max_discharge_time
        self.recorder = recorder
        self.action_on_circuit_closed = action_on_circuit_closed
        self.action_on_discharge_started = action_on_discharge_started
        self.action_on_discharge_complete = action_on_discharge_complete
        self.action_sink = action_sink

        self.time = 0.0
        self.is_powered = False
        self.supply_voltage = 0.0
        self.circuit_closed = False
        self.has_reported_discharge_complete = False
        self._discharge_end_elapsed = 0.0
        self._subscriptions = []

        self.on_charging_started = EventChannel("charging_started")
        self.on_capacitor_charged = EventChannel("capacitor_charged")
        self.on_discharge_started = EventChannel("discharge_started")
        self.on_discharge_complete = EventChannel("discharge_complete")
        self.on_voltage_changed = EventChannel("voltage_changed")
        self.on_circuit_closed = EventChannel("circuit_closed")
        self.on_circuit_opened = EventChannel("circuit_opened")

        self._sync_recorder_time_constant()
        Logger.log(f"end CapacitorEngine__init__ (tau = {self.time_constant:.3f} s)")

    # --- Read-only state ---

    @property
    def voltage(self) -> float:
        return self.state.voltage

    @property
    def mode(self) -> CapacitorMode:
        return self.state.mode

    @property
    def is_charging(self) -> bool:
        return self.state.is_charging

    @property
    def is_discharging(self) -> bool:
        return self.state.is_discharging

    @property
    def time_constant(self) -> float:
        return self.state.time_constant

    @property
    def discharge_elapsed(self) -> float:
        if not self.is_discharging:
            return 0.0
        return self.time - self.state.discharge_start_time

    @property
    def brightness(self) -> float:
        """Indicator brightness in [0, 1]; dark at or below the discharge threshold."""
        if self.state.voltage <= self.discharge_threshold:
            return 0.0
        reference = max(self.state.target_voltage, self.state.initial_discharge_voltage,
                        self.REFERENCE_MIN_VOLTAGE)
        return indicator_brightness(self.state.voltage, reference)

    # --- External power / circuit events ---

    def power_on(self, voltage: Optional[float] = None):
        if voltage is not None:
            self.supply_voltage = max(0.0, float(voltage))
        self.is_powered = True
        Logger.log(f"CapacitorEngine: power on at {self.supply_voltage} V")
        if not self.circuit_closed:
            Logger.warning("CapacitorEngine: powered with the circuit open, not charging")
            return
        self._start_charging(self.supply_voltage)

    def power_off(self):
        if not self.is_powered:
            Logger.warning("CapacitorEngine: power_off() ignored, not powered")
            return
        self.is_powered = False
        Logger.log("CapacitorEngine: power off")
        if self.is_charging:
            self.state.mode = CapacitorMode.IDLE
        self._start_discharging()

    def set_supply_voltage(self, voltage: float):
        """
        Update the supply level.

        While powered with the circuit closed a positive level (re)starts
        charging toward it unless the capacitor already holds that level; a
        zero level discharges the capacitor.
        """
        voltage = max(0.0, float(voltage))
        if math.isclose(voltage, self.supply_voltage) and (
                self.is_charging or not self.is_powered or math.isclose(self.state.voltage, voltage)):
            return
        self.supply_voltage = voltage
        if not self.is_powered:
            return
        if not self.circuit_closed:
            Logger.warning("CapacitorEngine: supply changed with the circuit open, not charging")
            return
        if voltage > 0:
            self._start_charging(voltage)
        else:
            if self.is_charging:
                self.state.mode = CapacitorMode.IDLE
            self._start_discharging()

    def set_circuit_closed(self, closed: bool):
        closed = bool(closed)
        if closed == self.circuit_closed:
            return
        if closed:
            self.close_circuit()
        else:
            self.open_circuit()

    def close_circuit(self):
        if self.circuit_closed:
            return
        self.circuit_closed = True
        Logger.log("CapacitorEngine: circuit closed", Logger.LogPriority.INFO)
        self.on_circuit_closed.emit()
        report_action(self.action_sink, self.action_on_circuit_closed)
        if self.is_powered and self.supply_voltage > 0:
            self._start_charging(self.supply_voltage)

    def open_circuit(self):
        if not self.circuit_closed:
            return
        self.circuit_closed = False
        Logger.log("CapacitorEngine: circuit opened", Logger.LogPriority.INFO)
        self.on_circuit_opened.emit()
        if self.is_charging:
            self.state.mode = CapacitorMode.IDLE
        self._start_discharging()

    # --- Component values ---

    def set_capacitance(self, capacitance: float):
        self.state.capacitance = capacitance
        self._on_time_constant_changed()

    def set_resistance(self, resistance: float):
        self.state.resistance = resistance
        self._on_time_constant_changed()

    def _on_time_constant_changed(self):
        self._sync_recorder_time_constant()
        if self.is_discharging:
            self._discharge_end_elapsed = self._compute_discharge_end(self.state.initial_discharge_voltage)
        Logger.log(f"CapacitorEngine: tau = {self.time_constant:.3f} s")

    def _sync_recorder_time_constant(self):
        if self.recorder is not None:
            self.recorder.time_constant = self.time_constant

    # --- Mode transitions ---

    def _start_charging(self, target_voltage: float):
        if self.is_discharging:
            self._stop_discharging()
        self.state.target_voltage = target_voltage
        self.state.mode = CapacitorMode.CHARGING
        Logger.log(f"Charging started toward {target_voltage} V", Logger.LogPriority.INFO)
        self.on_charging_started.emit()

    def _start_discharging(self) -> bool:
        if self.is_discharging:
            return False
        if self.state.voltage <= self.discharge_threshold:
            Logger.log(f"CapacitorEngine: {self.state.voltage:.3f} V is below the discharge threshold")
            return False

        v0 = self.state.voltage
        self.state.mode = CapacitorMode.DISCHARGING
        self.state.discharge_start_time = self.time
        self.state.initial_discharge_voltage = v0
        self._discharge_end_elapsed = self._compute_discharge_end(v0)

        if self.recorder is not None:
            self.recorder.start_recording(v0)
        Logger.log(f"Discharge started from {v0:.3f} V (tau = {self.time_constant:.3f} s, "
                   f"ends after {self._discharge_end_elapsed:.3f} s)", Logger.LogPriority.INFO)
        self.on_discharge_started.emit(v0)
        report_action(self.action_sink, self.action_on_discharge_started)
        return True

    def _stop_discharging(self):
        """Interrupt a running discharge (e.g. charging resumed)."""
        elapsed = self.discharge_elapsed
        self.state.mode = CapacitorMode.IDLE
        if self.recorder is not None:
            self.recorder.stop_recording(elapsed, self.state.voltage)
        Logger.log("Discharge interrupted")

    def _compute_discharge_end(self, v0: float) -> float:
        """Elapsed time at which the discharge reaches its first bound."""
        tau = self.time_constant
        if tau <= 0 or v0 <= self.voltage_floor:
            return 0.0
        return min(self._floor_crossing_time(v0), self.max_discharge_time)

    def _floor_crossing_time(self, v0: float) -> float:
        return self.time_constant * math.log(v0 / self.voltage_floor)

    def _discharge_voltage_at(self, elapsed: float) -> float:
        tau = self.time_constant
        if tau <= 0:
            return 0.0
        return self.state.initial_discharge_voltage * math.exp(-elapsed / tau)

    # --- Simulation ---

    def tick(self, dt: float):
        """Advance the simulation clock by ``dt`` seconds."""
        if dt <= 0:
            if dt < 0:
                Logger.warning(f"CapacitorEngine: negative tick {dt} ignored")
            return
        self.time += dt
        if self.is_charging:
            self._update_charging(dt)
        elif self.is_discharging:
            self._update_discharging()

    def _update_charging(self, dt: float):
        target = self.state.target_voltage
        if self.state.voltage < target:
            self.state.voltage = min(self.state.voltage + self.charge_rate * dt, target)
        else:
            self.state.voltage = target
        self.on_voltage_changed.emit(self.state.voltage)

        if abs(self.state.voltage - target) <= self._CHARGE_TOLERANCE:
            self.state.voltage = target
            self.state.mode = CapacitorMode.IDLE
            Logger.log(f"Capacitor fully charged: {target} V", Logger.LogPriority.INFO)
            self.on_capacitor_charged.emit(target)

    def _update_discharging(self):
        elapsed = self.time - self.state.discharge_start_time
        if elapsed >= self._discharge_end_elapsed:
            self._finish_discharge(self._discharge_end_elapsed)
            return
        self.state.voltage = self._discharge_voltage_at(elapsed)
        self.on_voltage_changed.emit(self.state.voltage)
        if self.recorder is not None:
            self.recorder.record(elapsed, self.state.voltage)

    def _finish_discharge(self, end_elapsed: float):
        v0 = self.state.initial_discharge_voltage
        if v0 <= self.voltage_floor:
            final_voltage = v0
        elif self.time_constant <= 0 or self._floor_crossing_time(v0) <= self.max_discharge_time:
            final_voltage = self.voltage_floor
        else:
            final_voltage = max(self.voltage_floor, self._discharge_voltage_at(end_elapsed))

        self.state.voltage = final_voltage
        self.state.mode = CapacitorMode.IDLE
        self.on_voltage_changed.emit(final_voltage)
        if self.recorder is not None:
            self.recorder.stop_recording(end_elapsed, final_voltage)

        Logger.log(f"Discharge complete at {final_voltage:.3f} V after {end_elapsed:.3f} s",
                   Logger.LogPriority.INFO)
        self.on_discharge_complete.emit(final_voltage)
        if not self.has_reported_discharge_complete and self.action_on_discharge_complete:
            report_action(self.action_sink, self.action_on_discharge_complete)
            self.has_reported_discharge_complete = True

    def reset(self):
        """Back to 0 V and Idle with an empty recording; power and circuit state are kept."""
        Logger.log("start CapacitorEngine.reset()")
        self.state.voltage = 0.0
        self.state.mode = CapacitorMode.IDLE
        self.state.target_voltage = 0.0
        self.state.initial_discharge_voltage = 0.0
        self.state.discharge_start_time = 0.0
        self.has_reported_discharge_complete = False
        if self.recorder is not None:
            self.recorder.clear()
        self.on_voltage_changed.emit(0.0)
        Logger.log("end CapacitorEngine.reset()")

    # --- Bindings ---

    def bind_power_supply(self, power_supply):
        """Follow a PowerSupply's on/off and voltage notifications."""
        def on_power_on():
            self.power_on(power_supply.current_voltage)

        def on_voltage_changed(voltage):
            if power_supply.is_powered_on:
                self.set_supply_voltage(voltage)

        self.supply_voltage = power_supply.current_voltage
        self._subscribe(power_supply.on_power_on, on_power_on)
        self._subscribe(power_supply.on_power_off, self.power_off)
        self._subscribe(power_supply.on_voltage_changed, on_voltage_changed)

    def bind_switch(self, switch):
        """The switch position opens and closes the capacitor circuit."""
        self.circuit_closed = switch.is_on
        self._subscribe(switch.on_state_changed, self.set_circuit_closed)

    def bind_circuit(self, circuit):
        """A CircuitManager's active state opens and closes the capacitor circuit."""
        self.circuit_closed = circuit.is_active
        self._subscribe(circuit.on_circuit_active, self.close_circuit)
        self._subscribe(circuit.on_circuit_inactive, self.open_circuit)

    def _subscribe(self, channel, listener):
        channel.subscribe(listener)
        self._subscriptions.append((channel, listener))

    def dispose(self):
        for channel, listener in self._subscriptions:
            channel.unsubscribe(listener)
        self._subscriptions.clear()
