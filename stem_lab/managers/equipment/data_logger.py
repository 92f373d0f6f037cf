from enum import Enum
from typing import Optional

import numpy as np

from ...utils.events import EventChannel
from ...utils.logger.logger import Logger
from ..experiment.action_sink import ActionSink, report_action


class DataLoggerState(Enum):
    OFF = "off"
    MAIN_MENU = "main_menu"
    METER = "meter"


class MenuOption(Enum):
    EASY_LOG = 0
    METER = 1
    SNAPSHOT = 2


class DataLogger:
    """
    Four-channel DL120 data logger.

    Off -> MainMenu on power; confirm on the Meter option enters Meter mode,
    cancel returns to the menu. Channels are numbered 1-4; anything else is
    ignored on write and reads 0.

    Events:
        on_power_on(), on_power_off(), on_meter_mode_entered(),
        on_channel_value_changed(channel, value)
    """

    CHANNEL_COUNT = 4

    def __init__(self, action_on_power_on: Optional[str] = None,
                 action_on_meter_selected: Optional[str] = None,
                 action_sink: Optional[ActionSink] = None):
        self.state = DataLoggerState.OFF
        self.selected_option = MenuOption.METER
        self.channel_values = np.zeros(self.CHANNEL_COUNT)
        self.action_on_power_on = action_on_power_on
        self.action_on_meter_selected = action_on_meter_selected
        self.action_sink = action_sink
        self.is_interactable = True

        self.on_power_on = EventChannel("logger_power_on")
        self.on_power_off = EventChannel("logger_power_off")
        self.on_meter_mode_entered = EventChannel("meter_mode_entered")
        self.on_channel_value_changed = EventChannel("channel_value_changed")

    @property
    def is_powered_on(self) -> bool:
        return self.state is not DataLoggerState.OFF

    @property
    def is_in_meter_mode(self) -> bool:
        return self.state is DataLoggerState.METER

    def set_interactable(self, interactable: bool):
        self.is_interactable = interactable

    def can_interact(self) -> bool:
        return self.is_interactable

    # --- Buttons ---

    def press_power(self) -> bool:
        if not self.can_interact():
            return False
        if self.is_powered_on:
            self.power_off()
        else:
            self.power_on()
        return True

    def press_up(self) -> bool:
        return self._move_selection(-1)

    def press_down(self) -> bool:
        return self._move_selection(1)

    def press_confirm(self) -> bool:
        if not self.can_interact() or self.state is not DataLoggerState.MAIN_MENU:
            return False
        if self.selected_option is not MenuOption.METER:
            Logger.warning(f"DataLogger: {self.selected_option.name} is not available")
            return False
        self._enter_meter_mode()
        return True

    def press_cancel(self) -> bool:
        if not self.can_interact() or self.state is not DataLoggerState.METER:
            return False
        self.state = DataLoggerState.MAIN_MENU
        Logger.log("DataLogger: left Meter mode")
        return True

    def _move_selection(self, offset: int) -> bool:
        if not self.can_interact() or self.state is not DataLoggerState.MAIN_MENU:
            return False
        self.selected_option = MenuOption((self.selected_option.value + offset) % len(MenuOption))
        Logger.log(f"DataLogger: selected {self.selected_option.name}")
        return True

    # --- State changes ---

    def power_on(self):
        if self.is_powered_on:
            return
        self.state = DataLoggerState.MAIN_MENU
        self.selected_option = MenuOption.METER
        Logger.log("DataLogger: powered on", Logger.LogPriority.INFO)
        self.on_power_on.emit()
        report_action(self.action_sink, self.action_on_power_on)

    def power_off(self):
        if not self.is_powered_on:
            return
        self.state = DataLoggerState.OFF
        Logger.log("DataLogger: powered off", Logger.LogPriority.INFO)
        self.on_power_off.emit()

    def _enter_meter_mode(self):
        self.state = DataLoggerState.METER
        Logger.log("DataLogger: entered Meter mode", Logger.LogPriority.INFO)
        self.on_meter_mode_entered.emit()
        report_action(self.action_sink, self.action_on_meter_selected)

    # --- Channels ---

    def set_channel_value(self, channel: int, value: float) -> bool:
        if not 1 <= channel <= self.CHANNEL_COUNT:
            Logger.warning(f"DataLogger: channel {channel} out of range")
            return False
        self.channel_values[channel - 1] = value
        self.on_channel_value_changed.emit(channel, float(value))
        return True

    def get_channel_value(self, channel: int) -> float:
        if not 1 <= channel <= self.CHANNEL_COUNT:
            return 0.0
        return float(self.channel_values[channel - 1])

    def reset(self):
        self.state = DataLoggerState.OFF
        self.selected_option = MenuOption.METER
        self.channel_values = np.zeros(self.CHANNEL_COUNT)
