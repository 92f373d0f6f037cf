from pathlib import Path
from typing import Dict, Iterable, List, Optional

from stem_lab.config.experiment_config import (
    DATA_LOGGER_TARGET,
    POWER_SUPPLY_TARGET,
    ExperimentConfig,
    load_config,
)
from stem_lab.config.feature_flags import FeatureFlags
from stem_lab.managers.capacitor.capacitor_engine import CapacitorEngine
from stem_lab.managers.capacitor.discharge_recorder import DischargeRecorder
from stem_lab.managers.circuit.circuit_manager import CircuitManager
from stem_lab.managers.circuit.connection_point import ConnectionPoint
from stem_lab.managers.circuit.indicators import LED, Lamp
from stem_lab.managers.circuit.switch import Switch
from stem_lab.managers.circuit.wire import Wire
from stem_lab.managers.equipment.controls import EquipmentButton, Knob
from stem_lab.managers.equipment.data_logger import DataLogger
from stem_lab.managers.equipment.power_supply import PowerSupply
from stem_lab.managers.equipment.voltage_sensor import VoltageSensor
from stem_lab.managers.experiment.experiment_manager import ExperimentManager
from stem_lab.managers.experiment.interaction_gate import InteractionGate
from stem_lab.managers.export.export_manager import ExportManager
from stem_lab.models.experiment_step import ExperimentStep
from stem_lab.models.exceptions import ElementNotFoundError, StateTransitionError
from stem_lab.utils.logger.logger import Logger


class LabController:
    """
    Builds a complete lab from an ExperimentConfig and drives it.

    Every element receives the ExperimentManager as its action sink. The
    controller is the boundary of the lab: unknown element IDs raise
    ElementNotFoundError and operations on equipment the configuration does
    not define raise StateTransitionError. Everything below it absorbs
    invalid preconditions.
    """

    DATA_LOGGER_BUTTONS = ("power", "up", "down", "confirm", "cancel")

    def __init__(self, config: ExperimentConfig):
        """Initialize every configured component."""
        Logger.log("start LabController__init__(self, config)")
        self.config = config
        self.simulation_time = 0.0
        self.export_manager = ExportManager()

        self.experiment = ExperimentManager(
            ExperimentStep(
                step_id=step.id,
                required_action_ids=tuple(step.required_actions),
                show_next_button=step.show_next_button,
                instruction=step.instruction,
            )
            for step in config.experiment.steps
        )

        self.points: Dict[str, ConnectionPoint] = {}
        self.wires: Dict[str, Wire] = {}
        self.switches: Dict[str, Switch] = {}
        self.indicators: Dict[str, object] = {}
        self.circuits: Dict[str, CircuitManager] = {}
        self.knobs: Dict[str, Knob] = {}
        self.buttons: Dict[str, EquipmentButton] = {}
        self.gates: List[InteractionGate] = []
        self.power_supply: Optional[PowerSupply] = None
        self.recorder: Optional[DischargeRecorder] = None
        self.capacitor: Optional[CapacitorEngine] = None
        self.data_logger: Optional[DataLogger] = None
        self.sensor: Optional[VoltageSensor] = None

        self._build_circuit()
        self._build_equipment()
        self._build_gates()
        Logger.log(f"LabController initialized for '{config.experiment.title}' "
                   f"with flags {FeatureFlags.snapshot()}")
        Logger.log("end LabController__init__(self, config)")

    @classmethod
    def from_file(cls, path) -> "LabController":
        return cls(load_config(Path(path)))

    # --- Construction ---

    def _build_circuit(self):
        sink = self.experiment
        for point in self.config.points:
            self.points[point.id] = ConnectionPoint(point.id, point.color, point.position, point.is_source)

        for wire_cfg in self.config.wires:
            wire = Wire(wire_cfg.id, wire_cfg.color, self.points[wire_cfg.source],
                        completion_action_id=wire_cfg.completion_action,
                        snap_distance=wire_cfg.snap_distance)
            if wire_cfg.connected_to is not None:
                # Pre-wired connections are part of the setup, not learner actions.
                wire.connect_to(self.points[wire_cfg.connected_to])
            wire.action_sink = sink
            self.wires[wire.wire_id] = wire

        for switch_cfg in self.config.switches:
            self.switches[switch_cfg.id] = Switch(
                switch_cfg.id, start_on=switch_cfg.start_on,
                action_on_turn_on=switch_cfg.action_on_turn_on,
                action_on_turn_off=switch_cfg.action_on_turn_off,
                action_sink=sink,
            )

        for indicator_cfg in self.config.indicators:
            if indicator_cfg.kind == "led":
                self.indicators[indicator_cfg.id] = LED(indicator_cfg.id, color=indicator_cfg.color)
            else:
                self.indicators[indicator_cfg.id] = Lamp(indicator_cfg.id)

        for circuit_cfg in self.config.circuits:
            self.circuits[circuit_cfg.id] = CircuitManager(
                circuit_cfg.id,
                required_wires=[self.wires[w] for w in circuit_cfg.wires],
                required_switches=[self.switches[s] for s in circuit_cfg.switches],
                action_on_complete=circuit_cfg.action_on_complete,
                action_on_active=circuit_cfg.action_on_active,
                controlled_elements=[self.indicators[i] for i in circuit_cfg.controls],
                action_sink=sink,
            )

    def _build_equipment(self):
        sink = self.experiment
        cfg = self.config

        if cfg.power_supply is not None:
            ps = cfg.power_supply
            self.power_supply = PowerSupply(
                voltage=ps.voltage, min_voltage=ps.min_voltage, max_voltage=ps.max_voltage,
                voltage_step=ps.voltage_step, start_on=ps.start_on,
                action_on_power_on=ps.action_on_power_on,
                action_on_power_off=ps.action_on_power_off,
                action_on_voltage_changed=ps.action_on_voltage_changed,
                action_sink=sink,
            )

        if cfg.capacitor is not None:
            if cfg.recorder is not None:
                self.recorder = DischargeRecorder(
                    sample_interval=cfg.recorder.sample_interval,
                    action_on_recording_complete=cfg.recorder.action_on_recording_complete,
                    action_sink=sink,
                )
            cap = cfg.capacitor
            self.capacitor = CapacitorEngine(
                capacitance=cap.capacitance, resistance=cap.resistance,
                charge_rate=cap.charge_rate, discharge_threshold=cap.discharge_threshold,
                voltage_floor=cap.voltage_floor, max_discharge_time=cap.max_discharge_time,
                recorder=self.recorder,
                action_on_circuit_closed=cap.action_on_circuit_closed,
                action_on_discharge_started=cap.action_on_discharge_started,
                action_on_discharge_complete=cap.action_on_discharge_complete,
                action_sink=sink,
            )
            if cap.switch:
                self.capacitor.bind_switch(self.switches[cap.switch])
            elif cap.circuit:
                self.capacitor.bind_circuit(self.circuits[cap.circuit])
            else:
                # No switch or circuit in between: the capacitor sits directly on the supply.
                self.capacitor.circuit_closed = True
            if self.power_supply is not None:
                self.capacitor.bind_power_supply(self.power_supply)
                if self.power_supply.is_powered_on:
                    self.capacitor.power_on(self.power_supply.current_voltage)

        if cfg.data_logger is not None:
            self.data_logger = DataLogger(
                action_on_power_on=cfg.data_logger.action_on_power_on,
                action_on_meter_selected=cfg.data_logger.action_on_meter_selected,
                action_sink=sink,
            )

        if cfg.sensor is not None:
            sensor = cfg.sensor
            self.sensor = VoltageSensor(
                sensor.id,
                red_wire=self.wires[sensor.red_wire],
                black_wire=self.wires[sensor.black_wire],
                data_logger=self.data_logger,
                channel=sensor.channel,
                noise_amount=sensor.noise_amount,
                update_interval=sensor.update_interval,
                seed=sensor.seed,
                action_on_connected=sensor.action_on_connected,
                action_sink=sink,
            )

        for knob in cfg.knobs:
            self.knobs[knob.id] = Knob(
                knob.id, preset_angles=knob.preset_angles, preset_values=knob.preset_values,
                action_per_preset=knob.action_per_preset, starting_preset=knob.starting_preset,
                action_sink=sink,
            )

        for button in cfg.buttons:
            self.buttons[button.id] = EquipmentButton(button.id, action_on_press=button.action_on_press,
                                                      action_sink=sink)

    def _build_gates(self):
        for gate in self.config.gates:
            self.gates.append(InteractionGate(
                self.get_interactable(gate.target), self.experiment,
                active_on_steps=gate.active_on_steps, always_active=gate.always_active,
            ))

    # --- Lookup ---

    def _get(self, registry: dict, element_id: str, kind: str):
        element = registry.get(element_id)
        if element is None:
            Logger.log(f"ElementNotFoundError: unknown {kind} '{element_id}'", Logger.LogPriority.ERROR)
            raise ElementNotFoundError(f"Unknown {kind}: '{element_id}'")
        return element

    def get_interactable(self, element_id: str):
        if element_id == POWER_SUPPLY_TARGET and self.power_supply is not None:
            return self.power_supply
        if element_id == DATA_LOGGER_TARGET and self.data_logger is not None:
            return self.data_logger
        for registry in (self.wires, self.switches, self.knobs, self.buttons):
            if element_id in registry:
                return registry[element_id]
        Logger.log(f"ElementNotFoundError: unknown interactive element '{element_id}'", Logger.LogPriority.ERROR)
        raise ElementNotFoundError(f"Unknown interactive element: '{element_id}'")

    def _require(self, component, name: str):
        if component is None:
            Logger.log(f"StateTransitionError: no {name} in this lab", Logger.LogPriority.ERROR)
            raise StateTransitionError(f"This experiment has no {name}.")
        return component

    # --- Experiment progression ---

    def start(self):
        Logger.log("start controller start(self)")
        self.experiment.start()
        Logger.log("end controller start(self)")

    def advance(self):
        self.experiment.advance()

    def confirm_next(self) -> bool:
        return self.experiment.confirm_next()

    def jump_to(self, step_index: int) -> bool:
        return self.experiment.jump_to(step_index)

    def register_action(self, action_id: str):
        self.experiment.register_action(action_id)

    # --- Wiring ---

    def drag_wire(self, wire_id: str, x: float, y: float) -> bool:
        """Drag a wire's free end to (x, y) and release it there."""
        Logger.log(f"start drag_wire(self, {wire_id}, {x}, {y})")
        wire = self._get(self.wires, wire_id, "wire")
        if not wire.begin_drag():
            return False
        wire.drag_to((x, y))
        connected = wire.end_drag(self.points.values())
        Logger.log(f"end drag_wire: connected={connected}")
        return connected

    def disconnect_wire(self, wire_id: str) -> bool:
        return self._get(self.wires, wire_id, "wire").disconnect()

    def toggle_switch(self, switch_id: str) -> bool:
        return self._get(self.switches, switch_id, "switch").click()

    def set_switch(self, switch_id: str, on: bool) -> bool:
        switch = self._get(self.switches, switch_id, "switch")
        if not switch.can_interact():
            Logger.warning(f"Switch {switch_id}: not interactable")
            return False
        switch.set_state(on)
        return True

    # --- Equipment ---

    def power_on(self) -> bool:
        ps = self._require(self.power_supply, "power supply")
        if ps.is_powered_on:
            return False
        return ps.toggle_power()

    def power_off(self) -> bool:
        ps = self._require(self.power_supply, "power supply")
        if not ps.is_powered_on:
            return False
        return ps.toggle_power()

    def set_supply_voltage(self, voltage: float) -> bool:
        ps = self._require(self.power_supply, "power supply")
        if not ps.can_interact():
            Logger.warning("PowerSupply: not interactable")
            return False
        return ps.set_voltage(voltage)

    def set_knob(self, knob_id: str, preset_index: int) -> bool:
        knob = self._get(self.knobs, knob_id, "knob")
        if not knob.can_interact():
            Logger.warning(f"Knob {knob_id}: not interactable")
            return False
        return knob.set_preset(preset_index)

    def press_button(self, button_id: str) -> bool:
        return self._get(self.buttons, button_id, "button").click()

    def press_data_logger(self, button: str) -> bool:
        logger = self._require(self.data_logger, "data logger")
        if button not in self.DATA_LOGGER_BUTTONS:
            raise ElementNotFoundError(f"Unknown data logger button: '{button}'")
        return getattr(logger, f"press_{button}")()

    # --- Simulation ---

    def tick(self, dt: float):
        """One driver iteration: capacitor, then sensor, then indicators."""
        if dt <= 0:
            return
        self.simulation_time += dt

        if self.capacitor is not None:
            self.capacitor.tick(dt)

        if self.sensor is not None:
            if self.capacitor is not None and self.sensor.is_connected:
                self.sensor.set_voltage_source(self.capacitor.voltage)
            self.sensor.tick(dt)

        follows = {i.id for i in self.config.indicators if i.follows_capacitor}
        for indicator_id, indicator in self.indicators.items():
            if indicator_id in follows:
                indicator.set_brightness(self.capacitor.brightness)
            if isinstance(indicator, LED):
                indicator.tick(dt)

    def run(self, duration: float, dt: float = 0.1) -> int:
        """Tick for ``duration`` seconds in steps of ``dt``; returns the tick count."""
        if duration <= 0 or dt <= 0:
            return 0
        ticks = int(round(duration / dt))
        for _ in range(ticks):
            self.tick(dt)
        return ticks

    # --- Output ---

    def export(self, formats: Optional[Iterable[str]] = None, out_dir: Optional[str] = None) -> str:
        recorder = self._require(self.recorder, "discharge recorder")
        formats = list(formats) if formats else list(self.config.output.formats)
        out_dir = out_dir or self.config.output.out_dir
        meta_data = {
            "experiment": self.config.experiment.title,
            "sample_count": recorder.sample_count,
            "sample_interval_s": recorder.sample_interval,
            "initial_voltage_v": recorder.initial_voltage,
            "time_constant_s": recorder.time_constant,
        }
        if self.capacitor is not None:
            meta_data.update({
                "capacitance_f": self.capacitor.state.capacitance,
                "resistance_ohm": self.capacitor.state.resistance,
                "voltage_floor_v": self.capacitor.voltage_floor,
                "max_discharge_time_s": self.capacitor.max_discharge_time,
            })
        return self.export_manager.handle_export_request(recorder, formats, out_dir, meta_data)

    def status(self) -> dict:
        step = self.experiment.current_step
        status = {
            "title": self.config.experiment.title,
            "time_s": round(self.simulation_time, 6),
            "step_index": self.experiment.current_step_index,
            "step_id": step.step_id if step else None,
            "instruction": step.instruction if step else None,
            "pending_actions": self.experiment.pending_actions(),
            "show_next_button": bool(step and step.show_next_button),
            "finished": self.experiment.is_finished,
            "wires": {w.wire_id: (w.target_point.point_id if w.is_connected else None)
                      for w in self.wires.values()},
            "switches": {s.switch_id: s.is_on for s in self.switches.values()},
            "circuits": {c.circuit_id: {"complete": c.is_complete, "active": c.is_active}
                         for c in self.circuits.values()},
        }
        if self.power_supply is not None:
            status["power_supply"] = {"on": self.power_supply.is_powered_on,
                                      "voltage": self.power_supply.current_voltage}
        if self.capacitor is not None:
            status["capacitor"] = {"voltage": round(self.capacitor.voltage, 4),
                                   "mode": self.capacitor.mode.value}
        if self.recorder is not None:
            status["recorder"] = {"recording": self.recorder.is_recording,
                                  "samples": self.recorder.sample_count}
        if self.sensor is not None:
            status["sensor"] = {"connected": self.sensor.is_connected,
                                "reading": round(self.sensor.current_reading, 4)}
        if self.data_logger is not None:
            status["data_logger"] = self.data_logger.state.value
        return status

    def dispose(self):
        """Detach every listener the lab registered between its components."""
        for gate in self.gates:
            gate.dispose()
        for circuit in self.circuits.values():
            circuit.dispose()
        if self.capacitor is not None:
            self.capacitor.dispose()
        if self.sensor is not None:
            self.sensor.dispose()
