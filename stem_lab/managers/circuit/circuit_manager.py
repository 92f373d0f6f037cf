from typing import Iterable, List, Optional

from ...utils.events import EventChannel
from ...utils.logger.logger import Logger
from ..experiment.action_sink import ActionSink, report_action
from .switch import Switch
from .wire import Wire


class CircuitManager:
    """
    Aggregates required wires and switches into two derived booleans.

    complete: every required wire is connected (true when there are none).
    active:   complete and every required switch is on.

    Both are re-evaluated synchronously on every child event. Notifications
    fire only on real edges; the configured actions are reported on the first
    rising edge only, until reset() clears the latches. Controlled elements
    (anything with set_state(bool)) follow every active edge.
    """

    # INITIALIZES THE CIRCUITMANAGER
    def __init__(self, circuit_id: str, required_wires: Iterable[Wire] = (),
                 required_switches: Iterable[Switch] = (),
                 action_on_complete: Optional[str] = None,
                 action_on_active: Optional[str] = None,
                 controlled_elements: Iterable = (),
                 action_sink: Optional[ActionSink] = None):
        Logger.log(f"start CircuitManager__init__ {circuit_id}")
        self.circuit_id = circuit_id
        self.required_wires: List[Wire] = list(required_wires)
        self.required_switches: List[Switch] = list(required_switches)
        self.action_on_complete = action_on_complete
        self.action_on_active = action_on_active
        self.controlled_elements = list(controlled_elements)
        self.action_sink = action_sink

        self.is_complete = False
        self.is_active = False
        self.has_registered_complete = False
        self.has_registered_active = False

        self.on_circuit_complete = EventChannel("circuit_complete")
        self.on_circuit_incomplete = EventChannel("circuit_incomplete")
        self.on_circuit_active = EventChannel("circuit_active")
        self.on_circuit_inactive = EventChannel("circuit_inactive")

        self._subscribe()
        self.check_circuit_state()
        Logger.log(f"end CircuitManager__init__ {circuit_id}")

    def _subscribe(self):
        for wire in self.required_wires:
            wire.on_connected.subscribe(self._on_wire_connected)
            wire.on_disconnected.subscribe(self._on_wire_disconnected)
        for switch in self.required_switches:
            switch.on_state_changed.subscribe(self._on_switch_state_changed)

    def dispose(self):
        """Unsubscribe from every child element."""
        for wire in self.required_wires:
            wire.on_connected.unsubscribe(self._on_wire_connected)
            wire.on_disconnected.unsubscribe(self._on_wire_disconnected)
        for switch in self.required_switches:
            switch.on_state_changed.unsubscribe(self._on_switch_state_changed)

    def _on_wire_connected(self, point):
        self.check_circuit_state()

    def _on_wire_disconnected(self):
        self.check_circuit_state()

    def _on_switch_state_changed(self, is_on: bool):
        self.check_circuit_state()

    def add_controlled_element(self, element):
        """Attach an element that follows the active state (set to the current state right away)."""
        self.controlled_elements.append(element)
        element.set_state(self.is_active)

    def check_circuit_state(self):
        previous_complete = self.is_complete
        self.is_complete = all(wire.is_connected for wire in self.required_wires)

        if self.is_complete and not previous_complete:
            Logger.log(f"Circuit {self.circuit_id}: complete", Logger.LogPriority.INFO)
            self.on_circuit_complete.emit()
            if not self.has_registered_complete and self.action_on_complete:
                report_action(self.action_sink, self.action_on_complete)
                self.has_registered_complete = True
        elif not self.is_complete and previous_complete:
            Logger.log(f"Circuit {self.circuit_id}: incomplete", Logger.LogPriority.INFO)
            self.on_circuit_incomplete.emit()

        previous_active = self.is_active
        self.is_active = self.is_complete and all(switch.is_on for switch in self.required_switches)

        if self.is_active and not previous_active:
            Logger.log(f"Circuit {self.circuit_id}: active", Logger.LogPriority.INFO)
            self.on_circuit_active.emit()
            self._set_controlled_elements(True)
            if not self.has_registered_active and self.action_on_active:
                report_action(self.action_sink, self.action_on_active)
                self.has_registered_active = True
        elif not self.is_active and previous_active:
            Logger.log(f"Circuit {self.circuit_id}: inactive", Logger.LogPriority.INFO)
            self.on_circuit_inactive.emit()
            self._set_controlled_elements(False)

    def _set_controlled_elements(self, active: bool):
        for element in self.controlled_elements:
            element.set_state(active)

    def reset(self):
        """Disconnect every required wire, reset switches and clear both latches."""
        Logger.log(f"start reset() circuit {self.circuit_id}")
        for wire in self.required_wires:
            wire.disconnect()
        for switch in self.required_switches:
            switch.reset()
        self.has_registered_complete = False
        self.has_registered_active = False
        self.check_circuit_state()
        Logger.log(f"end reset() circuit {self.circuit_id}")

    @property
    def completion_percentage(self) -> float:
        if not self.required_wires:
            return 1.0
        connected = sum(1 for wire in self.required_wires if wire.is_connected)
        return connected / len(self.required_wires)

    def __repr__(self):
        return f"CircuitManager({self.circuit_id!r}, complete={self.is_complete}, active={self.is_active})"
