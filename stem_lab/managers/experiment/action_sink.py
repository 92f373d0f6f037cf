from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class ActionSink(Protocol):
    """Anything that accepts completed action IDs (normally the ExperimentManager)."""

    def register_action(self, action_id: str) -> None:
        ...


def report_action(sink: Optional[ActionSink], action_id: Optional[str]) -> bool:
    """
    Forward an action ID to an injected sink.

    Elements hold an optional sink and an optional action ID from configuration;
    either one missing means there is nothing to report.
    """
    if sink is None or not action_id:
        return False
    sink.register_action(action_id)
    return True
