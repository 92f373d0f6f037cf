from typing import FrozenSet, Iterable, List, Optional

from ...config.feature_flags import FeatureFlags
from ...models.experiment_step import ExperimentRunState, ExperimentStep
from ...utils.events import EventChannel
from ...utils.logger.logger import Logger


class ExperimentManager:
    """
    Step-by-step orchestrator of one experiment.

    Gates progression through an ordered list of ExperimentSteps on the
    registration of named actions. Interactive elements receive this manager
    as their ActionSink and call register_action(); the UI layer subscribes to
    on_step_changed(index) and on_experiment_complete().

    Every operation on an absent current step is a logged no-op.
    """

    # INITIALIZES THE EXPERIMENTMANAGER
    def __init__(self, steps: Optional[Iterable[ExperimentStep]] = None):
        Logger.log("start ExperimentManager__init__")
        self.steps: List[ExperimentStep] = list(steps or [])
        self.run_state = ExperimentRunState()
        self.on_step_changed = EventChannel("step_changed")
        self.on_experiment_complete = EventChannel("experiment_complete")
        Logger.log(f"end ExperimentManager__init__ with {len(self.steps)} steps")

    # --- Read-only state ---

    @property
    def step_count(self) -> int:
        return len(self.steps)

    @property
    def current_step_index(self) -> int:
        return self.run_state.current_step_index

    @property
    def current_step(self) -> Optional[ExperimentStep]:
        index = self.run_state.current_step_index
        if 0 <= index < len(self.steps):
            return self.steps[index]
        return None

    @property
    def completed_actions(self) -> FrozenSet[str]:
        return frozenset(self.run_state.completed_actions)

    @property
    def is_started(self) -> bool:
        return self.run_state.current_step_index >= 0

    @property
    def is_finished(self) -> bool:
        return self.run_state.current_step_index >= len(self.steps)

    def index_of(self, step_id: str) -> int:
        """Index of the step with ``step_id``, or -1."""
        for index, step in enumerate(self.steps):
            if step.step_id == step_id:
                return index
        return -1

    # --- Control surface ---

    def start(self):
        """Reset the run and enter the first step (completes immediately when there are none)."""
        Logger.log("start start()")
        self.run_state.reset()
        self.advance()
        Logger.log("end start()")

    def restart(self):
        self.start()

    def advance(self):
        """
        Leave the current step and enter the next one.

        Calling this once the experiment is finished does nothing.
        """
        if self.is_finished:
            Logger.log("advance() ignored: experiment already finished")
            return
        self._transition_to(self.run_state.current_step_index + 1, self.current_step)

    def register_action(self, action_id: str):
        """
        Record a completed action for the current step, then check completion.

        Actions the current step does not require are still recorded.
        """
        if not action_id:
            Logger.warning("register_action() ignored: empty action id")
            return
        if self.current_step is None:
            Logger.warning(f"register_action('{action_id}') ignored: no active step")
            return
        if action_id in self.run_state.completed_actions:
            Logger.log(f"Action '{action_id}' already registered")
            return
        self.run_state.completed_actions.add(action_id)
        Logger.log(f"Action '{action_id}' registered on step '{self.current_step.step_id}'",
                   Logger.LogPriority.INFO)
        self._check_step_completion()

    def confirm_next(self) -> bool:
        """Manual confirmation; only steps with a next button and no required actions accept it."""
        step = self.current_step
        if step is None:
            Logger.warning("confirm_next() ignored: no active step")
            return False
        if not step.show_next_button or step.has_required_actions:
            Logger.warning(f"confirm_next() ignored: step '{step.step_id}' requires actions")
            return False
        self.advance()
        return True

    def jump_to(self, step_index: int) -> bool:
        """
        Move directly to ``step_index``.

        Out-of-range indices are rejected. With FeatureFlags.LEGACY_JUMP_CALLBACKS
        the run index is set to step_index - 1 and a single advance() follows, so
        on_complete fires for the step just before the target.
        """
        if not 0 <= step_index < len(self.steps):
            Logger.warning(f"jump_to({step_index}) ignored: index out of range")
            return False
        Logger.log(f"start jump_to({step_index})")
        if FeatureFlags.LEGACY_JUMP_CALLBACKS:
            self.run_state.current_step_index = step_index - 1
            self.advance()
        else:
            self._transition_to(step_index, self.current_step)
        Logger.log(f"end jump_to({step_index})")
        return True

    # --- Queries ---

    def is_step_active(self, step_index: int) -> bool:
        return self.current_step is not None and self.run_state.current_step_index == step_index

    def is_step_active_by_id(self, step_id: str) -> bool:
        step = self.current_step
        return step is not None and step.step_id == step_id

    def is_action_required(self, action_id: str) -> bool:
        step = self.current_step
        return step is not None and action_id in step.required_action_ids

    def is_action_completed(self, action_id: str) -> bool:
        return self.current_step is not None and action_id in self.run_state.completed_actions

    def pending_actions(self) -> List[str]:
        """Required actions of the current step that are still missing, in declared order."""
        step = self.current_step
        if step is None:
            return []
        return [a for a in step.required_action_ids if a not in self.run_state.completed_actions]

    # --- Transitions ---

    def _transition_to(self, new_index: int, exiting_step: Optional[ExperimentStep]):
        # The index moves before on_complete so that listeners act on the
        # incoming step and never re-enter the step being left.
        self.run_state.move_to(new_index)

        if exiting_step is not None:
            Logger.log(f"Leaving step '{exiting_step.step_id}'")
            exiting_step.on_complete.emit(exiting_step)
            if self.run_state.current_step_index != new_index:
                return

        if new_index >= len(self.steps):
            Logger.log("Experiment complete", Logger.LogPriority.INFO)
            self.on_experiment_complete.emit()
            return

        step = self.steps[new_index]
        Logger.log(f"Entering step {new_index} '{step.step_id}'", Logger.LogPriority.INFO)
        step.on_enter.emit(step)
        if self.run_state.current_step_index != new_index:
            # an on_enter listener already moved the run on
            return
        self.on_step_changed.emit(new_index)
        if self.run_state.current_step_index != new_index:
            return

        if not step.has_required_actions and not step.show_next_button:
            step.show_next_button = True

        self._check_step_completion()

    def _check_step_completion(self):
        step = self.current_step
        if step is None or not step.has_required_actions:
            return
        if step.is_satisfied_by(self.run_state.completed_actions):
            Logger.log(f"Step '{step.step_id}' satisfied")
            self.advance()
