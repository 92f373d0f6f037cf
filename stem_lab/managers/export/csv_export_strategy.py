import io

import pandas as pd

from ...utils.logger.logger import Logger
from .export_strategy import DataExportStrategy


class CsvExportStrategy(DataExportStrategy):
    def generate_export(self, recorder, meta_data: dict):
        """One CSV file with columns time_s, voltage_v."""
        Logger.log(f"start CSV export of {recorder.sample_count} samples")
        df = pd.DataFrame({"time_s": recorder.times, "voltage_v": recorder.voltages})
        buffer = io.StringIO()
        df.to_csv(buffer, index=False)
        Logger.log("end CSV export")
        return [("discharge_samples.csv", buffer.getvalue().encode("utf-8"))]
