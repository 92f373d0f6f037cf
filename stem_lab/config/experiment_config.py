"""
Configuration loading and validation for lab experiments.

Loads a YAML experiment description and validates every section and the
cross references between them (wires name existing points, circuits name
existing wires and switches, gates name existing interactive elements...).
"""

import yaml
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional
from pathlib import Path

from ..models.exceptions import InvalidExperimentConfigError
from ..models.wire_color import WireColor


@dataclass
class StepConfig:
    """One instructional step."""
    id: str
    required_actions: List[str] = field(default_factory=list)
    show_next_button: bool = False
    instruction: str = ""

    def validate(self) -> tuple[bool, Optional[str]]:
        if not self.id:
            return False, "step id must be non-empty"
        if any(not isinstance(a, str) or not a for a in self.required_actions):
            return False, f"step '{self.id}': required_actions must be non-empty strings"
        return True, None


@dataclass
class ExperimentSection:
    """Title and ordered steps."""
    title: str = "Untitled experiment"
    auto_start: bool = True
    steps: List[StepConfig] = field(default_factory=list)

    def validate(self) -> tuple[bool, Optional[str]]:
        seen = set()
        for step in self.steps:
            is_valid, error = step.validate()
            if not is_valid:
                return False, error
            if step.id in seen:
                return False, f"duplicate step id '{step.id}'"
            seen.add(step.id)
        return True, None


@dataclass
class PointConfig:
    """Connection point placement."""
    id: str
    color: str
    position: List[float] = field(default_factory=lambda: [0.0, 0.0])
    is_source: bool = False

    def validate(self) -> tuple[bool, Optional[str]]:
        if not self.id:
            return False, "point id must be non-empty"
        try:
            WireColor.parse(self.color)
        except ValueError as e:
            return False, f"point '{self.id}': {e}"
        if len(self.position) != 2:
            return False, f"point '{self.id}': position must have 2 components"
        return True, None


@dataclass
class WireConfig:
    """Draggable wire anchored at a source point."""
    id: str
    color: str
    source: str
    completion_action: Optional[str] = None
    snap_distance: float = 0.5
    connected_to: Optional[str] = None

    def validate(self) -> tuple[bool, Optional[str]]:
        if not self.id:
            return False, "wire id must be non-empty"
        try:
            WireColor.parse(self.color)
        except ValueError as e:
            return False, f"wire '{self.id}': {e}"
        if self.snap_distance <= 0:
            return False, f"wire '{self.id}': snap_distance must be positive"
        return True, None


@dataclass
class SwitchConfig:
    id: str
    start_on: bool = False
    action_on_turn_on: Optional[str] = None
    action_on_turn_off: Optional[str] = None

    def validate(self) -> tuple[bool, Optional[str]]:
        if not self.id:
            return False, "switch id must be non-empty"
        return True, None


@dataclass
class CircuitConfig:
    """Required wires/switches aggregated into complete/active."""
    id: str
    wires: List[str] = field(default_factory=list)
    switches: List[str] = field(default_factory=list)
    action_on_complete: Optional[str] = None
    action_on_active: Optional[str] = None
    controls: List[str] = field(default_factory=list)

    def validate(self) -> tuple[bool, Optional[str]]:
        if not self.id:
            return False, "circuit id must be non-empty"
        return True, None


@dataclass
class IndicatorConfig:
    """Lamp or LED; ``follows_capacitor`` drives its brightness from the capacitor."""
    id: str
    kind: str = "lamp"
    color: str = "red"
    follows_capacitor: bool = False

    def validate(self) -> tuple[bool, Optional[str]]:
        if self.kind not in ("lamp", "led"):
            return False, f"indicator '{self.id}': unknown kind '{self.kind}'"
        return True, None


@dataclass
class PowerSupplyConfig:
    voltage: float = 1.5
    min_voltage: float = 0.0
    max_voltage: float = 9.0
    voltage_step: float = 1.5
    start_on: bool = False
    action_on_power_on: Optional[str] = None
    action_on_power_off: Optional[str] = None
    action_on_voltage_changed: Optional[str] = None

    def validate(self) -> tuple[bool, Optional[str]]:
        if self.min_voltage < 0:
            return False, "min_voltage must be non-negative"
        if self.max_voltage < self.min_voltage:
            return False, "max_voltage must be >= min_voltage"
        if self.voltage_step <= 0:
            return False, "voltage_step must be positive"
        return True, None


@dataclass
class CapacitorConfig:
    """RC values, simulation bounds and what closes the capacitor circuit."""
    capacitance: float = 0.001
    resistance: float = 5000.0
    charge_rate: float = 2.0
    discharge_threshold: float = 0.1
    voltage_floor: float = 0.3
    max_discharge_time: float = 40.0
    switch: Optional[str] = None
    circuit: Optional[str] = None
    action_on_circuit_closed: Optional[str] = None
    action_on_discharge_started: Optional[str] = None
    action_on_discharge_complete: Optional[str] = None

    def validate(self) -> tuple[bool, Optional[str]]:
        if self.capacitance <= 0:
            return False, "capacitance must be positive"
        if self.resistance <= 0:
            return False, "resistance must be positive"
        if self.charge_rate <= 0:
            return False, "charge_rate must be positive"
        if self.discharge_threshold < 0:
            return False, "discharge_threshold must be non-negative"
        if self.voltage_floor <= 0:
            return False, "voltage_floor must be positive"
        if self.max_discharge_time <= 0:
            return False, "max_discharge_time must be positive"
        if self.switch and self.circuit:
            return False, "set at most one of switch / circuit"
        return True, None

    @property
    def time_constant(self) -> float:
        return self.resistance * self.capacitance


@dataclass
class RecorderConfig:
    sample_interval: float = 0.1
    action_on_recording_complete: Optional[str] = None

    def validate(self) -> tuple[bool, Optional[str]]:
        if self.sample_interval <= 0:
            return False, "sample_interval must be positive"
        return True, None


@dataclass
class SensorConfig:
    id: str = "PTS101"
    red_wire: Optional[str] = None
    black_wire: Optional[str] = None
    channel: int = 1
    noise_amount: float = 0.01
    update_interval: float = 0.1
    seed: Optional[int] = 42
    action_on_connected: Optional[str] = None

    def validate(self) -> tuple[bool, Optional[str]]:
        if not 1 <= self.channel <= 4:
            return False, "channel must be in 1..4"
        if self.noise_amount < 0:
            return False, "noise_amount must be non-negative"
        if self.update_interval <= 0:
            return False, "update_interval must be positive"
        return True, None


@dataclass
class DataLoggerConfig:
    action_on_power_on: Optional[str] = None
    action_on_meter_selected: Optional[str] = None

    def validate(self) -> tuple[bool, Optional[str]]:
        return True, None


@dataclass
class KnobConfig:
    id: str
    preset_angles: List[float] = field(default_factory=lambda: [0.0, 45.0, 90.0, 135.0, 180.0])
    preset_values: Optional[List[float]] = None
    action_per_preset: List[Optional[str]] = field(default_factory=list)
    starting_preset: int = 0

    def validate(self) -> tuple[bool, Optional[str]]:
        if not self.preset_angles:
            return False, f"knob '{self.id}': preset_angles must be non-empty"
        if not 0 <= self.starting_preset < len(self.preset_angles):
            return False, f"knob '{self.id}': starting_preset out of range"
        return True, None


@dataclass
class ButtonConfig:
    id: str
    action_on_press: Optional[str] = None

    def validate(self) -> tuple[bool, Optional[str]]:
        if not self.id:
            return False, "button id must be non-empty"
        return True, None


@dataclass
class GateConfig:
    """Restricts an interactive element to the listed steps."""
    target: str
    active_on_steps: List[str] = field(default_factory=list)
    always_active: bool = False

    def validate(self) -> tuple[bool, Optional[str]]:
        if not self.target:
            return False, "gate target must be non-empty"
        return True, None


@dataclass
class OutputConfig:
    """Export configuration."""
    out_dir: str = "output"
    formats: List[str] = field(default_factory=lambda: ["csv"])

    def validate(self) -> tuple[bool, Optional[str]]:
        unknown = [f for f in self.formats if f not in ("csv", "excel", "png")]
        if unknown:
            return False, f"unknown export formats: {unknown}"
        return True, None


@dataclass
class LoggingConfig:
    enabled: bool = True
    file: Optional[str] = None

    def validate(self) -> tuple[bool, Optional[str]]:
        return True, None


# Element ids usable as gate targets besides wires, switches, knobs and buttons.
POWER_SUPPLY_TARGET = "power_supply"
DATA_LOGGER_TARGET = "data_logger"


@dataclass
class ExperimentConfig:
    """Complete experiment configuration."""
    experiment: ExperimentSection = field(default_factory=ExperimentSection)
    points: List[PointConfig] = field(default_factory=list)
    wires: List[WireConfig] = field(default_factory=list)
    switches: List[SwitchConfig] = field(default_factory=list)
    circuits: List[CircuitConfig] = field(default_factory=list)
    indicators: List[IndicatorConfig] = field(default_factory=list)
    power_supply: Optional[PowerSupplyConfig] = None
    capacitor: Optional[CapacitorConfig] = None
    recorder: Optional[RecorderConfig] = None
    sensor: Optional[SensorConfig] = None
    data_logger: Optional[DataLoggerConfig] = None
    knobs: List[KnobConfig] = field(default_factory=list)
    buttons: List[ButtonConfig] = field(default_factory=list)
    gates: List[GateConfig] = field(default_factory=list)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> tuple[bool, Optional[str]]:
        for section_name in ["experiment", "power_supply", "capacitor", "recorder", "sensor",
                             "data_logger", "output", "logging"]:
            section = getattr(self, section_name)
            if section is None:
                continue
            is_valid, error = section.validate()
            if not is_valid:
                return False, f"{section_name}: {error}"

        for section_name in ["points", "wires", "switches", "circuits", "indicators", "knobs",
                             "buttons", "gates"]:
            ids = set()
            for item in getattr(self, section_name):
                is_valid, error = item.validate()
                if not is_valid:
                    return False, f"{section_name}: {error}"
                item_id = getattr(item, "id", None)
                if item_id is not None:
                    if item_id in ids:
                        return False, f"{section_name}: duplicate id '{item_id}'"
                    ids.add(item_id)

        return self._validate_references()

    def _validate_references(self) -> tuple[bool, Optional[str]]:
        points = {p.id: p for p in self.points}
        wire_ids = {w.id for w in self.wires}
        switch_ids = {s.id for s in self.switches}
        circuit_ids = {c.id for c in self.circuits}
        indicator_ids = {i.id for i in self.indicators}
        step_ids = {s.id for s in self.experiment.steps}

        for wire in self.wires:
            source = points.get(wire.source)
            if source is None:
                return False, f"wires: '{wire.id}' references unknown source point '{wire.source}'"
            if not source.is_source:
                return False, f"wires: source point '{wire.source}' of '{wire.id}' is not a source"
            if wire.connected_to is not None:
                target = points.get(wire.connected_to)
                if target is None:
                    return False, f"wires: '{wire.id}' connected_to unknown point '{wire.connected_to}'"
                if target.is_source or WireColor.parse(target.color) is not WireColor.parse(wire.color):
                    return False, f"wires: '{wire.id}' cannot start connected to '{wire.connected_to}'"

        for circuit in self.circuits:
            for wire_id in circuit.wires:
                if wire_id not in wire_ids:
                    return False, f"circuits: '{circuit.id}' references unknown wire '{wire_id}'"
            for switch_id in circuit.switches:
                if switch_id not in switch_ids:
                    return False, f"circuits: '{circuit.id}' references unknown switch '{switch_id}'"
            for indicator_id in circuit.controls:
                if indicator_id not in indicator_ids:
                    return False, f"circuits: '{circuit.id}' controls unknown indicator '{indicator_id}'"

        if self.capacitor is not None:
            if self.capacitor.switch and self.capacitor.switch not in switch_ids:
                return False, f"capacitor: unknown switch '{self.capacitor.switch}'"
            if self.capacitor.circuit and self.capacitor.circuit not in circuit_ids:
                return False, f"capacitor: unknown circuit '{self.capacitor.circuit}'"
        elif self.recorder is not None:
            return False, "recorder: requires a capacitor section"

        if any(i.follows_capacitor for i in self.indicators) and self.capacitor is None:
            return False, "indicators: follows_capacitor requires a capacitor section"

        if self.sensor is not None:
            for probe in (self.sensor.red_wire, self.sensor.black_wire):
                if probe is None or probe not in wire_ids:
                    return False, f"sensor: probe wire '{probe}' is not a configured wire"

        targets = wire_ids | switch_ids | {k.id for k in self.knobs} | {b.id for b in self.buttons}
        if self.power_supply is not None:
            targets.add(POWER_SUPPLY_TARGET)
        if self.data_logger is not None:
            targets.add(DATA_LOGGER_TARGET)
        for gate in self.gates:
            if gate.target not in targets:
                return False, f"gates: unknown interactive element '{gate.target}'"
            for step_id in gate.active_on_steps:
                if step_id not in step_ids:
                    return False, f"gates: '{gate.target}' references unknown step '{step_id}'"

        return True, None


def _build(cls, raw: Any, where: str):
    """Instantiate a config dataclass from a mapping, rejecting unknown keys."""
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise InvalidExperimentConfigError(f"Invalid configuration: {where} must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise InvalidExperimentConfigError(f"Invalid configuration: {where}: unknown keys {unknown}")
    try:
        return cls(**raw)
    except TypeError as e:
        raise InvalidExperimentConfigError(f"Invalid configuration: {where}: {e}")


def _build_list(cls, raw: Any, where: str) -> list:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise InvalidExperimentConfigError(f"Invalid configuration: {where} must be a list")
    return [_build(cls, item, f"{where}[{i}]") for i, item in enumerate(raw)]


def _build_optional(cls, raw: Dict[str, Any], key: str):
    if key not in raw:
        return None
    return _build(cls, raw[key], key)


def config_from_dict(raw: Optional[Dict[str, Any]]) -> ExperimentConfig:
    """
    Build and validate an ExperimentConfig from an already-parsed mapping.

    Raises:
        InvalidExperimentConfigError: If the content is malformed or invalid.
    """
    raw = raw or {}
    if not isinstance(raw, dict):
        raise InvalidExperimentConfigError("Invalid configuration: top level must be a mapping")

    # Parse experiment
    exp_raw = dict(raw.get("experiment") or {})
    steps = _build_list(StepConfig, exp_raw.pop("steps", None), "experiment.steps")
    experiment = _build(ExperimentSection, exp_raw, "experiment")
    experiment.steps = steps

    config = ExperimentConfig(
        experiment=experiment,
        points=_build_list(PointConfig, raw.get("points"), "points"),
        wires=_build_list(WireConfig, raw.get("wires"), "wires"),
        switches=_build_list(SwitchConfig, raw.get("switches"), "switches"),
        circuits=_build_list(CircuitConfig, raw.get("circuits"), "circuits"),
        indicators=_build_list(IndicatorConfig, raw.get("indicators"), "indicators"),
        power_supply=_build_optional(PowerSupplyConfig, raw, "power_supply"),
        capacitor=_build_optional(CapacitorConfig, raw, "capacitor"),
        recorder=_build_optional(RecorderConfig, raw, "recorder"),
        sensor=_build_optional(SensorConfig, raw, "sensor"),
        data_logger=_build_optional(DataLoggerConfig, raw, "data_logger"),
        knobs=_build_list(KnobConfig, raw.get("knobs"), "knobs"),
        buttons=_build_list(ButtonConfig, raw.get("buttons"), "buttons"),
        gates=_build_list(GateConfig, raw.get("gates"), "gates"),
        output=_build(OutputConfig, raw.get("output"), "output"),
        logging=_build(LoggingConfig, raw.get("logging"), "logging"),
    )

    is_valid, error = config.validate()
    if not is_valid:
        raise InvalidExperimentConfigError(f"Invalid configuration: {error}")

    return config


def load_config(path: Path) -> ExperimentConfig:
    """
    Load and validate configuration from YAML file.

    Args:
        path: Path to YAML config file.

    Returns:
        Validated ExperimentConfig.

    Raises:
        InvalidExperimentConfigError: If config is invalid.
        FileNotFoundError: If file doesn't exist.
    """
    with open(path, 'r') as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise InvalidExperimentConfigError(f"Invalid configuration: {e}")

    return config_from_dict(raw)
