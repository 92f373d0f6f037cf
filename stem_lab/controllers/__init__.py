from .lab_controller import LabController

__all__ = ["LabController"]
