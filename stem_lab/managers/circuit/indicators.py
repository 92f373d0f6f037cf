"""
Indicator elements driven by circuits and the capacitor engine.

Both indicators accept set_state(bool), so a CircuitManager can use them as
controlled elements, and a brightness in [0, 1] for voltage-driven display.
"""

from ...utils.logger.logger import Logger


class Lamp:
    """Incandescent lamp: on/off, or on when brightness is above one half."""

    ON_THRESHOLD = 0.5

    def __init__(self, lamp_id: str, start_on: bool = False):
        self.lamp_id = lamp_id
        self.is_on = start_on
        self.brightness = 1.0 if start_on else 0.0

    def turn_on(self):
        self.set_state(True)

    def turn_off(self):
        self.set_state(False)

    def toggle(self):
        self.set_state(not self.is_on)

    def set_state(self, on: bool):
        self.is_on = bool(on)
        self.brightness = 1.0 if self.is_on else 0.0
        Logger.log(f"Lamp {self.lamp_id}: {'ON' if self.is_on else 'OFF'}")

    def set_brightness(self, brightness: float):
        self.brightness = min(max(float(brightness), 0.0), 1.0)
        self.is_on = self.brightness > self.ON_THRESHOLD

    def __repr__(self):
        return f"Lamp({self.lamp_id!r}, {'on' if self.is_on else 'off'})"


class LED:
    """
    Light-emitting diode whose displayed brightness eases toward a target.

    set_brightness() only moves the target; tick(dt) moves the displayed
    brightness toward it by at most ``change_speed * dt``.
    """

    ON_THRESHOLD = 0.01

    def __init__(self, led_id: str, color: str = "red", max_brightness: float = 1.0,
                 change_speed: float = 5.0):
        self.led_id = led_id
        self.color = color
        self.max_brightness = max_brightness
        self.change_speed = change_speed
        self.brightness = 0.0
        self.target_brightness = 0.0
        self.is_on = False

    def turn_on(self):
        self.set_brightness(self.max_brightness)

    def turn_off(self):
        self.set_brightness(0.0)

    def toggle(self):
        if self.is_on:
            self.turn_off()
        else:
            self.turn_on()

    def set_state(self, on: bool):
        if on:
            self.turn_on()
        else:
            self.turn_off()

    def set_brightness(self, brightness: float):
        self.target_brightness = min(max(float(brightness), 0.0), 1.0)
        self.is_on = self.target_brightness > self.ON_THRESHOLD

    def set_brightness_immediate(self, brightness: float):
        self.set_brightness(brightness)
        self.brightness = self.target_brightness

    def tick(self, dt: float):
        if dt <= 0 or self.brightness == self.target_brightness:
            return
        step = self.change_speed * dt
        delta = self.target_brightness - self.brightness
        if abs(delta) <= step:
            self.brightness = self.target_brightness
        else:
            self.brightness += step if delta > 0 else -step

    def __repr__(self):
        return f"LED({self.led_id!r}, brightness={self.brightness:.2f})"
