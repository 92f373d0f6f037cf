from typing import List, Optional

import numpy as np

from ...models.capacitor_state import DischargeSample
from ...utils.events import EventChannel
from ...utils.logger.logger import Logger
from ..experiment.action_sink import ActionSink, report_action


class DischargeRecorder:
    """
    Time-series recorder of one capacitor discharge.

    Purely observational: the capacitor engine feeds it (elapsed, voltage)
    pairs and it keeps one sample per ``sample_interval`` seconds, plus the
    initial sample at t = 0 and a final sample at the termination instant.
    Every new recording starts from an empty series.

    Events:
        on_recording_started(initial_voltage), on_recording_stopped(sample_count),
        on_sample_added(time_s, voltage_v)
    """

    # Absorbs floating point drift of accumulated tick times.
    _TIME_EPSILON = 1e-9

    def __init__(self, sample_interval: float = 0.1,
                 action_on_recording_complete: Optional[str] = None,
                 action_sink: Optional[ActionSink] = None):
        self.sample_interval = sample_interval
        self.action_on_recording_complete = action_on_recording_complete
        self.action_sink = action_sink
        self.time_constant: Optional[float] = None
        self.initial_voltage = 0.0
        self.is_recording = False
        self.is_paused = False
        self._times: List[float] = []
        self._voltages: List[float] = []

        self.on_recording_started = EventChannel("recording_started")
        self.on_recording_stopped = EventChannel("recording_stopped")
        self.on_sample_added = EventChannel("sample_added")

    def start_recording(self, initial_voltage: float) -> bool:
        if self.is_recording:
            Logger.warning("DischargeRecorder: start_recording() ignored, already recording")
            return False
        self.clear()
        self.initial_voltage = initial_voltage
        self._add_sample(0.0, initial_voltage)
        self.is_recording = True
        Logger.log(f"Recording started at {initial_voltage:.3f} V", Logger.LogPriority.INFO)
        self.on_recording_started.emit(initial_voltage)
        return True

    def record(self, elapsed: float, voltage: float) -> bool:
        """Offer a sample; it is kept once a full interval has passed since the last one."""
        if not self.is_recording or self.is_paused:
            return False
        if elapsed + self._TIME_EPSILON < self._times[-1] + self.sample_interval:
            return False
        self._add_sample(elapsed, voltage)
        return True

    def stop_recording(self, elapsed: Optional[float] = None, voltage: Optional[float] = None) -> bool:
        """
        End the recording, optionally stamping a final sample.

        A final sample at the same instant as the last one replaces its voltage.
        """
        if not self.is_recording:
            return False
        if elapsed is not None and voltage is not None:
            if abs(elapsed - self._times[-1]) <= self._TIME_EPSILON:
                self._voltages[-1] = voltage
            elif elapsed > self._times[-1]:
                self._add_sample(elapsed, voltage)

        self.is_recording = False
        self.is_paused = False
        Logger.log(f"Recording stopped with {len(self._times)} samples", Logger.LogPriority.INFO)
        self.on_recording_stopped.emit(len(self._times))
        report_action(self.action_sink, self.action_on_recording_complete)
        return True

    def pause_recording(self):
        if self.is_recording:
            self.is_paused = True

    def resume_recording(self):
        self.is_paused = False

    def clear(self):
        self._times.clear()
        self._voltages.clear()
        self.is_recording = False
        self.is_paused = False

    def _add_sample(self, elapsed: float, voltage: float):
        self._times.append(float(elapsed))
        self._voltages.append(float(voltage))
        self.on_sample_added.emit(float(elapsed), float(voltage))

    # --- Read access for plotting and export ---

    @property
    def sample_count(self) -> int:
        return len(self._times)

    @property
    def samples(self) -> List[DischargeSample]:
        return [DischargeSample(t, v) for t, v in zip(self._times, self._voltages)]

    @property
    def times(self) -> np.ndarray:
        return np.array(self._times, dtype=float)

    @property
    def voltages(self) -> np.ndarray:
        return np.array(self._voltages, dtype=float)

    def as_array(self) -> np.ndarray:
        """Series as an (n, 2) array of [time_s, voltage_v] rows."""
        return np.column_stack((self.times, self.voltages)) if self._times else np.empty((0, 2))

    @property
    def duration(self) -> float:
        return self._times[-1] if self._times else 0.0
