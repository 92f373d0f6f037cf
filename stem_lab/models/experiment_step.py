"""
Experiment step definitions and the live run state of one experiment.
"""

from dataclasses import dataclass, field
from typing import Iterable, Set, Tuple

from ..utils.events import EventChannel


@dataclass
class ExperimentStep:
    """
    Static definition of one instructional step.

    Attributes:
        step_id: Unique step identifier.
        required_action_ids: Actions that must all be registered to complete the step.
            Duplicates are dropped; order carries no meaning.
        show_next_button: Whether the step offers manual confirmation.
        instruction: Text shown by the instruction panel.
        on_enter: Notified when the orchestrator enters the step.
        on_complete: Notified when the orchestrator leaves the step.
    """
    step_id: str
    required_action_ids: Tuple[str, ...] = ()
    show_next_button: bool = False
    instruction: str = ""
    on_enter: EventChannel = field(default_factory=lambda: EventChannel("step_enter"), repr=False, compare=False)
    on_complete: EventChannel = field(default_factory=lambda: EventChannel("step_complete"), repr=False, compare=False)

    def __post_init__(self):
        self.required_action_ids = tuple(dict.fromkeys(a for a in self.required_action_ids if a))

    @property
    def has_required_actions(self) -> bool:
        return len(self.required_action_ids) > 0

    def is_satisfied_by(self, completed_actions: Iterable[str]) -> bool:
        """True when every required action is in ``completed_actions``."""
        return set(self.required_action_ids).issubset(completed_actions)


@dataclass
class ExperimentRunState:
    """
    Progress of one experiment run.

    current_step_index is -1 before start, a valid index while a step is active,
    and >= the step count once the experiment is finished. completed_actions only
    ever describes the current step; every transition clears it.
    """
    current_step_index: int = -1
    completed_actions: Set[str] = field(default_factory=set)

    def reset(self) -> None:
        self.current_step_index = -1
        self.completed_actions.clear()

    def move_to(self, step_index: int) -> None:
        self.current_step_index = step_index
        self.completed_actions.clear()
