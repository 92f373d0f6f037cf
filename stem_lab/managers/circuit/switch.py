from typing import Optional

from ...utils.events import EventChannel
from ...utils.logger.logger import Logger
from ..experiment.action_sink import ActionSink, report_action


class Switch:
    """
    Two-state switch.

    Setting the state it already has does nothing. Each real change reports
    the matching action and emits on_switch_on/on_switch_off followed by
    on_state_changed(is_on).
    """

    def __init__(self, switch_id: str, start_on: bool = False,
                 action_on_turn_on: Optional[str] = None,
                 action_on_turn_off: Optional[str] = None,
                 action_sink: Optional[ActionSink] = None):
        self.switch_id = switch_id
        self.start_on = start_on
        self.is_on = start_on
        self.action_on_turn_on = action_on_turn_on
        self.action_on_turn_off = action_on_turn_off
        self.action_sink = action_sink
        self.is_interactable = True

        self.on_switch_on = EventChannel("switch_on")
        self.on_switch_off = EventChannel("switch_off")
        self.on_state_changed = EventChannel("switch_state_changed")

    def set_interactable(self, interactable: bool):
        self.is_interactable = interactable

    def can_interact(self) -> bool:
        return self.is_interactable

    def click(self) -> bool:
        """User toggle; ignored while the switch is not interactable."""
        if not self.can_interact():
            Logger.warning(f"Switch {self.switch_id}: click ignored (not interactable)")
            return False
        self.toggle()
        return True

    def toggle(self):
        self.set_state(not self.is_on)

    def turn_on(self):
        self.set_state(True)

    def turn_off(self):
        self.set_state(False)

    def set_state(self, on: bool):
        on = bool(on)
        if self.is_on == on:
            return

        self.is_on = on
        Logger.log(f"Switch {self.switch_id}: {'ON' if on else 'OFF'}", Logger.LogPriority.INFO)
        report_action(self.action_sink, self.action_on_turn_on if on else self.action_on_turn_off)
        self._notify(on)

    def _notify(self, on: bool):
        if on:
            self.on_switch_on.emit()
        else:
            self.on_switch_off.emit()
        self.on_state_changed.emit(on)

    def reset(self):
        """Restore the start state. Listeners hear about a real change; no action is reported."""
        if self.is_on == self.start_on:
            return
        self.is_on = self.start_on
        Logger.log(f"Switch {self.switch_id}: reset to {'ON' if self.is_on else 'OFF'}")
        self._notify(self.is_on)

    def __repr__(self):
        return f"Switch({self.switch_id!r}, {'on' if self.is_on else 'off'})"
