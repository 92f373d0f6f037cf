from .action_sink import ActionSink, report_action
from .experiment_manager import ExperimentManager
from .interaction_gate import InteractionGate

__all__ = ["ActionSink", "report_action", "ExperimentManager", "InteractionGate"]
