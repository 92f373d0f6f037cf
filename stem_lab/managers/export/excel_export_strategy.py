from io import BytesIO

import pandas as pd

from ...utils.logger.logger import Logger
from .export_strategy import DataExportStrategy


class ExcelExportStrategy(DataExportStrategy):
    def generate_export(self, recorder, meta_data: dict):
        """Workbook with a samples sheet and a metadata sheet."""
        Logger.log("Starting Excel export generation")

        samples_df = pd.DataFrame({"time_s": recorder.times, "voltage_v": recorder.voltages})
        Logger.log(f"Processed samples dataframe with {len(samples_df)} rows")

        meta_df = pd.DataFrame(list(meta_data.items()), columns=["meta_key", "meta_value"])
        Logger.log(f"Processed metadata dataframe with {len(meta_df)} rows")

        buffer = BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            samples_df.to_excel(writer, index=False, sheet_name="samples")
            meta_df.to_excel(writer, index=False, sheet_name="metadata")

        Logger.log("Excel export generation completed")
        return [("discharge_samples.xlsx", buffer.getvalue())]
