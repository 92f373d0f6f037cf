"""
End-to-end tests for LabController built from configuration.
"""

import os
from pathlib import Path

import pytest

from stem_lab.config.experiment_config import config_from_dict, load_config
from stem_lab.controllers.lab_controller import LabController
from stem_lab.managers.circuit.indicators import LED
from stem_lab.models.capacitor_state import CapacitorMode
from stem_lab.models.exceptions import ElementNotFoundError, StateTransitionError

EXAMPLE_CONFIG = Path(__file__).parent.parent / "examples" / "capacitor_discharge.yaml"


@pytest.fixture
def lab():
    controller = LabController(load_config(EXAMPLE_CONFIG))
    controller.start()
    yield controller
    controller.dispose()


def wire_up(lab):
    lab.confirm_next()
    assert lab.drag_wire("red_lead", 2.9, 0.1)
    assert lab.drag_wire("black_lead", 3.0, 1.2)


class TestCapacitorExperiment:
    """The bundled capacitor discharge experiment, step by step."""

    def test_starts_on_intro(self, lab):
        status = lab.status()
        assert status["step_id"] == "intro"
        assert status["show_next_button"]
        assert status["capacitor"]["mode"] == "idle"

    def test_wires_are_gated_until_their_step(self, lab):
        assert not lab.drag_wire("red_lead", 2.9, 0.1)
        assert not lab.wires["red_lead"].is_connected

    def test_wiring_step(self, lab):
        wire_up(lab)
        assert lab.experiment.current_step.step_id == "close_switch"
        assert lab.circuits["charge_circuit"].is_complete

    def test_wrong_drop_returns_to_source(self, lab):
        lab.confirm_next()
        assert not lab.drag_wire("red_lead", 3.0, 1.0)
        assert lab.experiment.pending_actions() == ["red_connected", "black_connected"]

    def test_full_run(self, lab):
        wire_up(lab)
        lab.set_switch("s1", True)
        assert lab.experiment.current_step.step_id == "power_on"

        assert lab.power_on()
        assert lab.experiment.current_step.step_id == "discharge"
        assert lab.capacitor.is_charging

        lab.run(2.0)
        assert lab.capacitor.voltage == pytest.approx(3.0)
        assert lab.indicators["lamp1"].is_on

        lab.set_switch("s1", False)
        assert lab.experiment.current_step.step_id == "record"
        assert lab.capacitor.is_discharging

        lab.run(15.0)
        assert lab.experiment.current_step.step_id == "finish"
        assert lab.capacitor.mode is CapacitorMode.IDLE
        assert lab.capacitor.voltage == 0.3
        assert not lab.indicators["lamp1"].is_on
        assert lab.recorder.sample_count > 100
        assert lab.recorder.duration == pytest.approx(5.0 * 2.302585, rel=1e-5)

        assert lab.confirm_next()
        assert lab.status()["finished"]

    def test_export_after_run(self, lab, tmp_path):
        wire_up(lab)
        lab.set_switch("s1", True)
        lab.power_on()
        lab.run(2.0)
        lab.set_switch("s1", False)
        lab.run(15.0)

        root = lab.export(["csv", "excel"], str(tmp_path))

        assert os.path.isfile(os.path.join(root, "data_export", "discharge_samples.csv"))
        assert os.path.isfile(os.path.join(root, "data_export", "discharge_samples.xlsx"))

    def test_jump(self, lab):
        assert lab.jump_to(3)
        assert lab.experiment.current_step.step_id == "power_on"
        assert lab.power_supply.can_interact()
        assert not lab.jump_to(99)

    def test_status_lists_elements(self, lab):
        status = lab.status()
        assert status["wires"] == {"red_lead": None, "black_lead": None}
        assert status["switches"] == {"s1": False}
        assert status["power_supply"] == {"on": False, "voltage": 3.0}
        assert status["recorder"] == {"recording": False, "samples": 0}


class TestLookupErrors:
    """Boundary errors raised by the controller."""

    def test_unknown_wire(self, lab):
        with pytest.raises(ElementNotFoundError):
            lab.drag_wire("purple_lead", 0.0, 0.0)

    def test_unknown_switch(self, lab):
        with pytest.raises(ElementNotFoundError):
            lab.toggle_switch("s9")

    def test_missing_data_logger(self, lab):
        with pytest.raises(StateTransitionError):
            lab.press_data_logger("power")

    def test_missing_knob(self, lab):
        with pytest.raises(ElementNotFoundError):
            lab.set_knob("range", 1)

    def test_export_without_recorder(self):
        lab = LabController(config_from_dict({}))
        with pytest.raises(StateTransitionError):
            lab.export(["csv"])

    def test_power_without_supply(self):
        lab = LabController(config_from_dict({}))
        with pytest.raises(StateTransitionError):
            lab.power_on()


def equipment_raw():
    return {
        "experiment": {"steps": [
            {"id": "logger_on", "required_actions": ["logger_on"]},
            {"id": "meter", "required_actions": ["meter"]},
            {"id": "measure", "show_next_button": True},
        ]},
        "points": [
            {"id": "rs", "color": "red", "is_source": True},
            {"id": "bs", "color": "black", "position": [0.0, 1.0], "is_source": True},
            {"id": "cap_pos", "color": "red", "position": [2.0, 0.0]},
            {"id": "cap_neg", "color": "black", "position": [2.0, 1.0]},
        ],
        "wires": [
            {"id": "probe_red", "color": "red", "source": "rs", "connected_to": "cap_pos",
             "completion_action": "red_connected"},
            {"id": "probe_black", "color": "black", "source": "bs", "connected_to": "cap_neg"},
        ],
        "indicators": [{"id": "led", "kind": "led", "follows_capacitor": True}],
        "power_supply": {"voltage": 4.5, "start_on": True},
        "capacitor": {"charge_rate": 3.0},
        "data_logger": {"action_on_power_on": "logger_on", "action_on_meter_selected": "meter"},
        "sensor": {"red_wire": "probe_red", "black_wire": "probe_black", "noise_amount": 0.0},
        "knobs": [{"id": "range", "preset_angles": [0, 90], "action_per_preset": [None, "range_set"]}],
        "buttons": [{"id": "reset", "action_on_press": "reset_pressed"}],
    }


class TestEquipmentLab:
    """Lab with a data logger, sensor and directly powered capacitor."""

    @pytest.fixture
    def equipment_lab(self):
        controller = LabController(config_from_dict(equipment_raw()))
        controller.start()
        yield controller
        controller.dispose()

    def test_prewired_connections_report_nothing(self, equipment_lab):
        assert equipment_lab.wires["probe_red"].is_connected
        assert equipment_lab.sensor.is_connected
        assert equipment_lab.experiment.completed_actions == frozenset()

    def test_supply_on_at_start_charges_capacitor(self, equipment_lab):
        assert equipment_lab.capacitor.circuit_closed
        assert equipment_lab.capacitor.is_charging
        equipment_lab.run(1.0)
        assert equipment_lab.capacitor.voltage == pytest.approx(3.0)

    def test_sensor_reads_capacitor_in_meter_mode(self, equipment_lab):
        equipment_lab.press_data_logger("power")
        assert equipment_lab.experiment.current_step.step_id == "meter"
        equipment_lab.press_data_logger("confirm")
        assert equipment_lab.experiment.current_step.step_id == "measure"

        equipment_lab.run(2.0)

        assert equipment_lab.data_logger.get_channel_value(1) == pytest.approx(4.5)
        assert equipment_lab.status()["sensor"]["reading"] == pytest.approx(4.5)

    def test_unknown_logger_button(self, equipment_lab):
        with pytest.raises(ElementNotFoundError):
            equipment_lab.press_data_logger("reboot")

    def test_led_follows_capacitor(self, equipment_lab):
        equipment_lab.run(2.0)
        led = equipment_lab.indicators["led"]
        assert isinstance(led, LED)
        assert led.brightness == pytest.approx(1.0)

    def test_knob_and_button(self, equipment_lab):
        assert equipment_lab.set_knob("range", 1)
        assert equipment_lab.press_button("reset")
        assert {"range_set", "reset_pressed"} <= equipment_lab.experiment.completed_actions

    def test_supply_voltage(self, equipment_lab):
        assert equipment_lab.set_supply_voltage(6.0)
        assert equipment_lab.capacitor.state.target_voltage == 6.0

    def test_power_off_discharges(self, equipment_lab):
        equipment_lab.run(2.0)
        assert equipment_lab.power_off()
        assert equipment_lab.capacitor.is_discharging
        assert not equipment_lab.power_off()
