from typing import Optional, Sequence

from ...utils.events import EventChannel
from ...utils.logger.logger import Logger
from ..experiment.action_sink import ActionSink, report_action


class Knob:
    """
    Rotary knob with a fixed set of preset angles.

    Each preset may carry a value (current_value falls back to the angle) and
    an action ID reported when the preset is selected.

    Events:
        on_preset_changed(index), on_angle_changed(angle), on_value_changed(value)
    """

    def __init__(self, knob_id: str, preset_angles: Sequence[float] = (0.0, 45.0, 90.0, 135.0, 180.0),
                 preset_values: Optional[Sequence[float]] = None,
                 action_per_preset: Optional[Sequence[Optional[str]]] = None,
                 starting_preset: int = 0,
                 action_sink: Optional[ActionSink] = None):
        self.knob_id = knob_id
        self.preset_angles = list(preset_angles) or [0.0]
        self.preset_values = list(preset_values) if preset_values is not None else None
        self.action_per_preset = list(action_per_preset or [])
        self.starting_preset = min(max(starting_preset, 0), len(self.preset_angles) - 1)
        self.current_preset = self.starting_preset
        self.action_sink = action_sink
        self.is_interactable = True

        self.on_preset_changed = EventChannel("preset_changed")
        self.on_angle_changed = EventChannel("angle_changed")
        self.on_value_changed = EventChannel("knob_value_changed")

    @property
    def current_angle(self) -> float:
        return self.preset_angles[self.current_preset]

    @property
    def current_value(self) -> float:
        if self.preset_values is None or self.current_preset >= len(self.preset_values):
            return self.current_angle
        return self.preset_values[self.current_preset]

    def set_interactable(self, interactable: bool):
        self.is_interactable = interactable

    def can_interact(self) -> bool:
        return self.is_interactable

    def click(self) -> bool:
        if not self.can_interact():
            Logger.warning(f"Knob {self.knob_id}: click ignored (not interactable)")
            return False
        self.rotate_next()
        return True

    def rotate_next(self):
        self.set_preset((self.current_preset + 1) % len(self.preset_angles))

    def rotate_previous(self):
        self.set_preset((self.current_preset - 1) % len(self.preset_angles))

    def set_preset(self, index: int) -> bool:
        if not 0 <= index < len(self.preset_angles):
            Logger.warning(f"Knob {self.knob_id}: preset {index} out of range")
            return False
        self.current_preset = index
        Logger.log(f"Knob {self.knob_id}: preset {index} (angle {self.current_angle})")
        self.on_preset_changed.emit(index)
        self.on_angle_changed.emit(self.current_angle)
        if self.preset_values is not None and index < len(self.preset_values):
            self.on_value_changed.emit(self.preset_values[index])
        if index < len(self.action_per_preset):
            report_action(self.action_sink, self.action_per_preset[index])
        return True

    def reset_to_start(self):
        self.set_preset(self.starting_preset)


class EquipmentButton:
    """
    Push button on a piece of equipment.

    Events:
        on_pressed(), on_released()
    """

    def __init__(self, button_id: str, action_on_press: Optional[str] = None,
                 action_sink: Optional[ActionSink] = None):
        self.button_id = button_id
        self.action_on_press = action_on_press
        self.action_sink = action_sink
        self.is_interactable = True
        self.is_pressed = False

        self.on_pressed = EventChannel("button_pressed")
        self.on_released = EventChannel("button_released")

    def set_interactable(self, interactable: bool):
        self.is_interactable = interactable
        if not interactable:
            self.is_pressed = False

    def can_interact(self) -> bool:
        return self.is_interactable

    def press(self) -> bool:
        if not self.can_interact():
            Logger.warning(f"Button {self.button_id}: press ignored (not interactable)")
            return False
        self.is_pressed = True
        Logger.log(f"Button {self.button_id}: pressed")
        self.on_pressed.emit()
        report_action(self.action_sink, self.action_on_press)
        return True

    def release(self) -> bool:
        if not self.is_pressed:
            return False
        self.is_pressed = False
        self.on_released.emit()
        return True

    def click(self) -> bool:
        """Press immediately followed by release."""
        if not self.press():
            return False
        self.release()
        return True
