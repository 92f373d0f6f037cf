from typing import Optional

import numpy as np

from ...utils.events import EventChannel
from ...utils.logger.logger import Logger
from ..circuit.wire import Wire
from ..experiment.action_sink import ActionSink, report_action
from .data_logger import DataLogger


class VoltageSensor:
    """
    Two-probe voltage sensor (red and black wires).

    The sensor is connected while both probe wires are. Every
    ``update_interval`` seconds of ticks it takes a reading of the source
    voltage with uniform noise of +/- ``noise_amount`` (never below 0) and
    pushes it to its DataLogger channel when the logger is in Meter mode.

    Events:
        on_sensor_connected(), on_sensor_disconnected(), on_reading_changed(reading)
    """

    def __init__(self, sensor_id: str, red_wire: Optional[Wire] = None, black_wire: Optional[Wire] = None,
                 data_logger: Optional[DataLogger] = None, channel: int = 1,
                 noise_amount: float = 0.01, update_interval: float = 0.1, seed: Optional[int] = None,
                 action_on_connected: Optional[str] = None,
                 action_sink: Optional[ActionSink] = None):
        self.sensor_id = sensor_id
        self.red_wire = red_wire
        self.black_wire = black_wire
        self.data_logger = data_logger
        self.channel = min(max(channel, 1), 4)
        self.noise_amount = noise_amount
        self.update_interval = update_interval
        self.action_on_connected = action_on_connected
        self.action_sink = action_sink
        self.rng = np.random.default_rng(seed)

        self.is_connected = False
        self.source_voltage = 0.0
        self.current_reading = 0.0
        self._time_since_update = 0.0

        self.on_sensor_connected = EventChannel("sensor_connected")
        self.on_sensor_disconnected = EventChannel("sensor_disconnected")
        self.on_reading_changed = EventChannel("sensor_reading_changed")

        for wire in self._probe_wires():
            wire.on_connected.subscribe(self._on_probe_connected)
            wire.on_disconnected.subscribe(self._on_probe_disconnected)
        self.check_connection()

    def _probe_wires(self):
        return [wire for wire in (self.red_wire, self.black_wire) if wire is not None]

    def _on_probe_connected(self, point):
        self.check_connection()

    def _on_probe_disconnected(self):
        self.check_connection()

    def check_connection(self):
        was_connected = self.is_connected
        wires = self._probe_wires()
        self.is_connected = len(wires) == 2 and all(wire.is_connected for wire in wires)

        if self.is_connected and not was_connected:
            Logger.log(f"VoltageSensor {self.sensor_id}: connected", Logger.LogPriority.INFO)
            self._time_since_update = 0.0
            self.on_sensor_connected.emit()
            report_action(self.action_sink, self.action_on_connected)
        elif was_connected and not self.is_connected:
            Logger.log(f"VoltageSensor {self.sensor_id}: disconnected", Logger.LogPriority.INFO)
            self.on_sensor_disconnected.emit()
            self.set_reading(0.0)

    def set_voltage_source(self, voltage: float):
        self.source_voltage = voltage

    def set_reading(self, voltage: float):
        """Force a noise-free reading."""
        self.source_voltage = voltage
        self.current_reading = voltage
        self._publish()

    def set_channel(self, channel: int):
        self.channel = min(max(channel, 1), 4)

    def tick(self, dt: float):
        if not self.is_connected or dt <= 0:
            return
        self._time_since_update += dt
        if self._time_since_update + 1e-9 >= self.update_interval:
            self._time_since_update = 0.0
            self.update_reading()

    def update_reading(self) -> float:
        noise = self.rng.uniform(-self.noise_amount, self.noise_amount) if self.noise_amount > 0 else 0.0
        self.current_reading = max(0.0, self.source_voltage + noise)
        self._publish()
        return self.current_reading

    def _publish(self):
        if self.data_logger is not None and self.data_logger.is_in_meter_mode:
            self.data_logger.set_channel_value(self.channel, self.current_reading)
        self.on_reading_changed.emit(self.current_reading)

    def dispose(self):
        for wire in self._probe_wires():
            wire.on_connected.unsubscribe(self._on_probe_connected)
            wire.on_disconnected.unsubscribe(self._on_probe_disconnected)
