import os
from datetime import datetime
from typing import Iterable, Optional

from ...utils.logger.logger import Logger
from .csv_export_strategy import CsvExportStrategy
from .excel_export_strategy import ExcelExportStrategy
from .png_export_strategy import PngExportStrategy


class ExportManager:
    """Run export strategies over a discharge recording and save their files."""

    VALID_DATA_STRATEGIES = {
        "csv": CsvExportStrategy,
        "excel": ExcelExportStrategy,
    }

    VALID_IMAGE_STRATEGIES = {
        "png": PngExportStrategy,
    }

    def parse_formats(self, formats: Iterable[str]):
        """Return (data strategies, image strategies) for the requested format names."""
        Logger.log(f"start parse_formats({list(formats)})")
        data_strategies, image_strategies = [], []
        for name in formats:
            key = name.strip().lower()
            if key in self.VALID_DATA_STRATEGIES:
                data_strategies.append(self.VALID_DATA_STRATEGIES[key]())
            elif key in self.VALID_IMAGE_STRATEGIES:
                image_strategies.append(self.VALID_IMAGE_STRATEGIES[key]())
            else:
                Logger.log(f"Invalid export format: {name}")
                raise ValueError(f"Invalid export format: '{name}'.")
        if not data_strategies and not image_strategies:
            raise ValueError("At least one export format must be provided.")
        return data_strategies, image_strategies

    def handle_export_request(self, recorder, formats: Iterable[str], folder_location: str,
                              meta_data: Optional[dict] = None) -> str:
        """Generate the requested formats and save them; returns the export folder."""
        try:
            data_strategies, image_strategies = self.parse_formats(list(formats))
            self._verify_folder(folder_location)
            meta_data = meta_data or {}

            data_export = []
            for strategy in data_strategies:
                data_export.extend(strategy.generate_export(recorder, meta_data))

            image_export = []
            for strategy in image_strategies:
                image_export.extend(strategy.generate_export(recorder, meta_data))

            return self._save_reports(data_export, image_export, folder_location)

        except Exception as ex:
            Logger.log(f"Error handling export request: {str(ex)}", Logger.LogPriority.ERROR)
            raise

    def _create_export_folders(self, base_folder_location):
        """Create timestamped root folder for this export."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        root_folder = os.path.join(base_folder_location, f"export_{timestamp}")
        os.makedirs(root_folder, exist_ok=True)
        Logger.log(f"Created root folder: {root_folder}")
        return root_folder

    def _save_reports(self, data_export, image_export, base_folder_location):
        """Save generated files into data/image subfolders."""
        root_folder = self._create_export_folders(base_folder_location)

        # Create subfolders only if there is content
        if data_export:
            self._create_and_save_files(data_export, os.path.join(root_folder, 'data_export'))

        if image_export:
            self._create_and_save_files(image_export, os.path.join(root_folder, 'image_export'))

        return root_folder

    def _create_and_save_files(self, files, folder_location):
        """Create folder and write each (filename, bytes)."""
        os.makedirs(folder_location, exist_ok=True)
        for filename, content in files:
            file_path = os.path.join(folder_location, filename)
            with open(file_path, 'wb') as f:
                f.write(content)
            Logger.log(f"Saved file: {file_path}")

    def _verify_folder(self, folder_path):
        """Ensure base folder exists and is a directory."""
        if not folder_path:
            raise ValueError("Folder location must be provided and cannot be empty.")
        if not os.path.exists(folder_path):
            os.makedirs(folder_path)
            Logger.log(f"Created folder: {folder_path}")
        elif not os.path.isdir(folder_path):
            Logger.log(f"{folder_path} exists but is not a directory.")
            raise ValueError(f"{folder_path} exists but is not a directory.")
        Logger.log(f"Folder verified: {folder_path}")
