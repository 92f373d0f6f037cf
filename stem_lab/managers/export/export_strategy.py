class ExportStrategy():
    """Turns a discharge recording into files."""

    def generate_export(self, recorder, meta_data: dict):
        """Return a list[(filename, bytes)] for this export."""
        raise NotImplementedError


class DataExportStrategy(ExportStrategy):
    """Implemented by tabular exporters; saved under data_export/."""


class ImageExportStrategy(ExportStrategy):
    """Implemented by image exporters; saved under image_export/."""
