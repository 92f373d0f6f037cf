from typing import Protocol, runtime_checkable


@runtime_checkable
class Interactable(Protocol):
    """
    Capability of elements the learner can operate (wires, switches, knobs, buttons...).

    A disabled element ignores user input; programmatic state changes still apply.
    """

    def set_interactable(self, interactable: bool) -> None:
        ...

    def can_interact(self) -> bool:
        ...
