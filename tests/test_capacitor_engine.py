"""
Tests for the capacitor charge/discharge simulation.
"""

import math

import pytest

from stem_lab.managers.capacitor.capacitor_engine import CapacitorEngine
from stem_lab.managers.capacitor.discharge_recorder import DischargeRecorder
from stem_lab.managers.circuit.circuit_manager import CircuitManager
from stem_lab.managers.circuit.connection_point import ConnectionPoint
from stem_lab.managers.circuit.switch import Switch
from stem_lab.managers.circuit.wire import Wire
from stem_lab.managers.equipment.power_supply import PowerSupply
from stem_lab.models.capacitor_state import CapacitorMode


def make_engine(sink=None, recorder=None, **kwargs):
    """tau = 5 s engine with its circuit closed."""
    params = dict(capacitance=0.001, resistance=5000.0, charge_rate=2.0,
                  discharge_threshold=0.1, voltage_floor=0.3, max_discharge_time=40.0)
    params.update(kwargs)
    engine = CapacitorEngine(recorder=recorder,
                             action_on_circuit_closed="circuit_closed",
                             action_on_discharge_started="discharge_started",
                             action_on_discharge_complete="discharge_complete",
                             action_sink=sink, **params)
    engine.circuit_closed = True
    return engine


def charged_engine(sink=None, recorder=None, voltage=6.0, **kwargs):
    engine = make_engine(sink, recorder, **kwargs)
    engine.power_on(voltage)
    engine.tick(voltage / engine.charge_rate)
    return engine


class TestCharging:
    """Linear charging toward the supply voltage."""

    def test_linear_charge(self):
        engine = make_engine()
        engine.power_on(6.0)
        assert engine.mode is CapacitorMode.CHARGING

        engine.tick(1.0)
        engine.tick(1.0)

        assert engine.voltage == pytest.approx(4.0)
        assert engine.is_charging

    def test_charge_completes_at_target(self):
        engine = make_engine()
        charged = []
        engine.on_capacitor_charged.subscribe(charged.append)
        engine.power_on(6.0)

        engine.tick(2.0)
        engine.tick(1.0)

        assert engine.voltage == 6.0
        assert engine.mode is CapacitorMode.IDLE
        assert charged == [6.0]

    def test_charge_does_not_overshoot(self):
        engine = make_engine()
        engine.power_on(1.5)
        engine.tick(10.0)
        assert engine.voltage == 1.5

    def test_power_on_with_open_circuit_does_not_charge(self, memory_log):
        engine = make_engine()
        engine.circuit_closed = False

        engine.power_on(6.0)
        engine.tick(1.0)

        assert engine.voltage == 0.0
        assert engine.mode is CapacitorMode.IDLE
        assert any("circuit open" in m for m in memory_log.messages("WARNING"))

    def test_closing_circuit_while_powered_charges(self, sink):
        engine = make_engine(sink)
        engine.circuit_closed = False
        engine.power_on(3.0)

        engine.close_circuit()
        engine.tick(1.0)

        assert engine.voltage == pytest.approx(2.0)
        assert sink.actions == ["circuit_closed"]

    def test_raising_supply_restarts_charge(self):
        engine = charged_engine(voltage=3.0)
        engine.set_supply_voltage(6.0)
        assert engine.is_charging
        engine.tick(1.5)
        assert engine.voltage == pytest.approx(6.0)

    def test_same_supply_while_charging_is_noop(self):
        engine = make_engine()
        started = []
        engine.on_charging_started.subscribe(lambda: started.append(True))
        engine.power_on(6.0)

        engine.set_supply_voltage(6.0)

        assert started == [True]

    def test_same_supply_when_fully_charged_is_noop(self):
        engine = charged_engine(voltage=6.0)
        assert engine.mode is CapacitorMode.IDLE
        started, charged = [], []
        engine.on_charging_started.subscribe(lambda: started.append(True))
        engine.on_capacitor_charged.subscribe(charged.append)

        engine.set_supply_voltage(6.0)
        engine.tick(1.0)

        assert engine.mode is CapacitorMode.IDLE
        assert engine.voltage == pytest.approx(6.0)
        assert started == []
        assert charged == []

    def test_negative_tick_ignored(self, memory_log):
        engine = make_engine()
        engine.power_on(6.0)
        engine.tick(-1.0)
        engine.tick(0.0)
        assert engine.voltage == 0.0
        assert engine.time == 0.0
        assert any("negative tick" in m for m in memory_log.messages("WARNING"))


class TestDischarging:
    """Exponential discharge and its two termination bounds."""

    def test_time_constant(self):
        assert make_engine().time_constant == pytest.approx(5.0)

    def test_power_off_starts_discharge(self, sink):
        engine = charged_engine(sink)
        started = []
        engine.on_discharge_started.subscribe(started.append)

        engine.power_off()

        assert engine.is_discharging
        assert started == [6.0]
        assert sink.actions == ["discharge_started"]

    def test_exponential_decay(self):
        engine = charged_engine()
        engine.power_off()

        engine.tick(5.0)

        assert engine.voltage == pytest.approx(6.0 * math.exp(-1.0))
        assert engine.voltage == pytest.approx(2.207, abs=1e-3)

    def test_floor_termination_is_exact(self, sink):
        recorder = DischargeRecorder(sample_interval=0.1)
        engine = charged_engine(sink, recorder)
        completed = []
        engine.on_discharge_complete.subscribe(completed.append)
        engine.power_off()

        engine.tick(14.0)
        assert engine.is_discharging
        engine.tick(1.0)

        assert engine.mode is CapacitorMode.IDLE
        assert engine.voltage == 0.3
        assert completed == [0.3]
        assert recorder.duration == pytest.approx(5.0 * math.log(6.0 / 0.3))
        assert recorder.voltages[-1] == 0.3
        assert sink.actions == ["discharge_started", "discharge_complete"]

    def test_max_time_termination(self):
        engine = charged_engine(max_discharge_time=10.0)
        engine.power_off()

        engine.tick(12.0)

        assert engine.mode is CapacitorMode.IDLE
        assert engine.voltage == pytest.approx(6.0 * math.exp(-2.0))

    def test_small_ticks_track_the_curve(self):
        engine = charged_engine()
        engine.power_off()
        for _ in range(30):
            engine.tick(0.1)
        assert engine.voltage == pytest.approx(6.0 * math.exp(-3.0 / 5.0), rel=1e-6)

    def test_below_threshold_does_not_discharge(self):
        engine = charged_engine(voltage=6.0, discharge_threshold=0.1)
        engine.state.voltage = 0.05
        engine.power_off()
        assert not engine.is_discharging

    def test_starting_at_or_below_floor_ends_immediately(self):
        engine = make_engine(voltage_floor=1.0)
        engine.power_on(0.5)
        engine.tick(0.25)
        engine.power_off()

        engine.tick(0.1)

        assert engine.mode is CapacitorMode.IDLE
        assert engine.voltage == pytest.approx(0.5)

    def test_opening_circuit_discharges(self):
        engine = charged_engine()
        engine.open_circuit()
        assert engine.is_discharging

    def test_recharging_interrupts_discharge(self):
        recorder = DischargeRecorder()
        engine = charged_engine(recorder=recorder)
        engine.power_off()
        engine.tick(1.0)

        engine.power_on(6.0)

        assert engine.is_charging
        assert not recorder.is_recording

    def test_completion_action_reported_once(self, sink):
        engine = charged_engine(sink)
        engine.power_off()
        engine.tick(20.0)
        engine.power_on(6.0)
        engine.tick(3.0)
        engine.power_off()
        engine.tick(20.0)
        assert sink.actions.count("discharge_complete") == 1

    def test_supply_to_zero_discharges(self):
        engine = charged_engine()
        engine.set_supply_voltage(0.0)
        assert engine.is_discharging


class TestBrightness:
    """Indicator brightness derived from the voltage."""

    def test_dark_when_empty(self):
        assert make_engine().brightness == 0.0

    def test_full_when_charged(self):
        assert charged_engine().brightness == pytest.approx(1.0)

    def test_fades_during_discharge(self):
        engine = charged_engine()
        engine.power_off()
        engine.tick(5.0)
        assert engine.brightness == pytest.approx(math.exp(-1.0))

    def test_low_voltage_uses_minimum_reference(self):
        engine = charged_engine(voltage=0.75)
        assert engine.brightness == pytest.approx(0.5)


class TestResetAndBindings:
    """reset() and wiring to other components."""

    def test_reset_keeps_power_and_circuit(self):
        recorder = DischargeRecorder()
        engine = charged_engine(recorder=recorder)
        engine.power_off()
        engine.tick(1.0)
        engine.power_on(6.0)

        engine.reset()

        assert engine.voltage == 0.0
        assert engine.mode is CapacitorMode.IDLE
        assert engine.is_powered
        assert engine.circuit_closed
        assert recorder.sample_count == 0

    def test_bind_switch(self):
        engine = make_engine()
        switch = Switch("s1")
        engine.bind_switch(switch)
        assert not engine.circuit_closed

        switch.turn_on()
        assert engine.circuit_closed
        switch.turn_off()
        assert not engine.circuit_closed

    def test_circuit_reset_reopens_bound_switch(self, sink):
        engine = make_engine(sink)
        switch = Switch("s1")
        engine.bind_switch(switch)
        wire = Wire("red", "red", ConnectionPoint("red_source", "red", is_source=True))
        circuit = CircuitManager("board", required_wires=[wire], required_switches=[switch])
        engine.power_on(3.0)
        wire.connect_to(ConnectionPoint("terminal", "red", (3.0, 0.0)))
        switch.turn_on()
        engine.tick(1.0)

        circuit.reset()

        assert not switch.is_on
        assert not engine.circuit_closed
        assert not engine.is_charging

        switch.turn_on()
        assert engine.circuit_closed
        assert engine.is_charging
        assert sink.actions.count("circuit_closed") == 2

    def test_bind_power_supply(self):
        engine = make_engine()
        supply = PowerSupply(voltage=3.0)
        engine.bind_power_supply(supply)

        supply.turn_on()
        engine.tick(1.5)
        assert engine.voltage == pytest.approx(3.0)

        supply.turn_off()
        assert engine.is_discharging

    def test_supply_voltage_change_while_off_is_ignored(self):
        engine = make_engine()
        supply = PowerSupply(voltage=3.0)
        engine.bind_power_supply(supply)

        supply.set_voltage(6.0)

        assert not engine.is_charging

    def test_dispose_unbinds(self):
        engine = make_engine()
        supply = PowerSupply(voltage=3.0)
        engine.bind_power_supply(supply)
        engine.dispose()

        supply.turn_on()

        assert not engine.is_powered

    def test_changing_resistance_updates_recorder(self):
        recorder = DischargeRecorder()
        engine = make_engine(recorder=recorder)
        engine.set_resistance(10000.0)
        assert recorder.time_constant == pytest.approx(10.0)
