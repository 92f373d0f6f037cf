import io

import numpy as np
from PIL import Image, ImageDraw

from .export_strategy import ImageExportStrategy


class PngExportStrategy(ImageExportStrategy):
    """Line plot of the recorded discharge curve (and the ideal curve when tau is known)."""

    def __init__(self, width=800, height=500, padding=60):
        self.width = width
        self.height = height
        self.padding = padding

    def generate_export(self, recorder, meta_data: dict):
        """Create a PNG preview of the discharge curve."""
        img = self._create_plot_image(recorder.times, recorder.voltages, recorder.time_constant)
        buffer = io.BytesIO()
        img.save(buffer, format='PNG')
        return [("discharge_curve.png", buffer.getvalue())]

    def _create_plot_image(self, times, voltages, time_constant=None):
        img = Image.new("RGB", (self.width, self.height), "white")
        draw = ImageDraw.Draw(img)
        if len(times) == 0:
            return img

        max_t = max(float(times[-1]), 1e-9)
        max_v = max(float(np.max(voltages)), 1e-9)

        # Axes
        origin = (self.padding, self.height - self.padding)
        draw.line((origin, (self.width - self.padding, origin[1])), fill="black", width=2)
        draw.line((origin, (origin[0], self.padding)), fill="black", width=2)
        draw.text((self.width // 2 - 20, self.height - self.padding + 20), "Time (s)", fill="black")
        draw.text((10, self.padding - 30), "Voltage (V)", fill="black")
        draw.text((self.width - self.padding - 40, origin[1] + 5), f"{max_t:.1f}", fill="black")
        draw.text((5, self.padding - 5), f"{max_v:.2f}", fill="black")

        if time_constant and time_constant > 0 and len(times) > 1:
            ideal_t = np.linspace(0.0, max_t, 200)
            ideal_v = voltages[0] * np.exp(-ideal_t / time_constant)
            draw.line(self._to_pixels(ideal_t, ideal_v, max_t, max_v), fill=(180, 180, 180), width=1)

        if len(times) == 1:
            x, y = self._to_pixels(times, voltages, max_t, max_v)[0]
            draw.ellipse([x - 3, y - 3, x + 3, y + 3], fill="red")
        else:
            draw.line(self._to_pixels(times, voltages, max_t, max_v), fill="red", width=3)
        return img

    def _to_pixels(self, times, voltages, max_t, max_v):
        span_x = self.width - 2 * self.padding
        span_y = self.height - 2 * self.padding
        xs = self.padding + np.asarray(times, dtype=float) / max_t * span_x
        ys = self.height - (self.padding + np.asarray(voltages, dtype=float) / max_v * span_y)  # Invert Y
        return [(int(x), int(y)) for x, y in zip(xs, ys)]
