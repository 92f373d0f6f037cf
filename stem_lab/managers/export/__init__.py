from .export_manager import ExportManager
from .export_strategy import DataExportStrategy, ExportStrategy, ImageExportStrategy
from .csv_export_strategy import CsvExportStrategy
from .excel_export_strategy import ExcelExportStrategy
from .png_export_strategy import PngExportStrategy

__all__ = [
    "ExportManager",
    "ExportStrategy",
    "DataExportStrategy",
    "ImageExportStrategy",
    "CsvExportStrategy",
    "ExcelExportStrategy",
    "PngExportStrategy",
]
