from typing import Iterable, Optional

from ...utils.logger.logger import Logger
from ..interactable import Interactable
from .experiment_manager import ExperimentManager


class InteractionGate:
    """
    Enables an Interactable only during selected experiment steps.

    The gate re-evaluates whenever the experiment changes step or finishes;
    with ``always_active`` the target stays enabled regardless of the step.
    """

    def __init__(self, target: Interactable, experiment: Optional[ExperimentManager],
                 active_on_steps: Iterable[str] = (), always_active: bool = False):
        self.target = target
        self.experiment = experiment
        self.active_on_steps = list(dict.fromkeys(active_on_steps))
        self.always_active = always_active
        self.is_active = False
        if experiment is not None:
            experiment.on_step_changed.subscribe(self._on_step_changed)
            experiment.on_experiment_complete.subscribe(self._on_experiment_complete)
        self.update_active_state()

    def _on_step_changed(self, step_index: int):
        self.update_active_state()

    def _on_experiment_complete(self):
        self.update_active_state()

    def update_active_state(self):
        if self.always_active:
            self._set_active(True)
            return
        step = self.experiment.current_step if self.experiment is not None else None
        self._set_active(step is not None and step.step_id in self.active_on_steps)

    def _set_active(self, active: bool):
        if active != self.is_active:
            Logger.log(f"InteractionGate: {self.target!r} {'enabled' if active else 'disabled'}")
        self.is_active = active
        self.target.set_interactable(active)

    def add_active_step(self, step_id: str):
        if step_id not in self.active_on_steps:
            self.active_on_steps.append(step_id)
            self.update_active_state()

    def remove_active_step(self, step_id: str):
        if step_id in self.active_on_steps:
            self.active_on_steps.remove(step_id)
            self.update_active_state()

    def set_always_active(self, always: bool):
        self.always_active = always
        self.update_active_state()

    def dispose(self):
        if self.experiment is not None:
            self.experiment.on_step_changed.unsubscribe(self._on_step_changed)
            self.experiment.on_experiment_complete.unsubscribe(self._on_experiment_complete)
