from .capacitor_engine import CapacitorEngine
from .discharge_recorder import DischargeRecorder

__all__ = ["CapacitorEngine", "DischargeRecorder"]
