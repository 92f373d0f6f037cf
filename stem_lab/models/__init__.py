from .exceptions import InvalidExperimentConfigError, ElementNotFoundError, StateTransitionError
from .wire_color import WireColor
from .experiment_step import ExperimentStep, ExperimentRunState
from .capacitor_state import CapacitorMode, CapacitorState, DischargeSample, indicator_brightness

__all__ = [
    "InvalidExperimentConfigError",
    "ElementNotFoundError",
    "StateTransitionError",
    "WireColor",
    "ExperimentStep",
    "ExperimentRunState",
    "CapacitorMode",
    "CapacitorState",
    "DischargeSample",
    "indicator_brightness",
]
