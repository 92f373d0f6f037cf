"""
Tests for exporting discharge recordings.
"""

import io
import os

import pandas as pd
import pytest
from PIL import Image

from stem_lab.managers.capacitor.discharge_recorder import DischargeRecorder
from stem_lab.managers.export.csv_export_strategy import CsvExportStrategy
from stem_lab.managers.export.excel_export_strategy import ExcelExportStrategy
from stem_lab.managers.export.export_manager import ExportManager
from stem_lab.managers.export.export_strategy import ExportStrategy
from stem_lab.managers.export.png_export_strategy import PngExportStrategy


@pytest.fixture
def recorder():
    recorder = DischargeRecorder(sample_interval=1.0)
    recorder.time_constant = 5.0
    recorder.start_recording(6.0)
    recorder.record(1.0, 4.91)
    recorder.record(2.0, 4.02)
    recorder.stop_recording(2.5, 3.64)
    return recorder


class TestStrategies:
    """Each strategy returns (filename, bytes) pairs."""

    def test_csv(self, recorder):
        [(name, content)] = CsvExportStrategy().generate_export(recorder, {})

        assert name == "discharge_samples.csv"
        df = pd.read_csv(io.BytesIO(content))
        assert list(df.columns) == ["time_s", "voltage_v"]
        assert df["time_s"].tolist() == pytest.approx([0.0, 1.0, 2.0, 2.5])
        assert df["voltage_v"].iloc[0] == pytest.approx(6.0)

    def test_excel(self, recorder):
        [(name, content)] = ExcelExportStrategy().generate_export(recorder, {"experiment": "RC"})

        assert name == "discharge_samples.xlsx"
        sheets = pd.read_excel(io.BytesIO(content), sheet_name=None, engine="openpyxl")
        assert set(sheets) == {"samples", "metadata"}
        assert len(sheets["samples"]) == 4
        assert sheets["metadata"]["meta_value"].tolist() == ["RC"]

    def test_png(self, recorder):
        [(name, content)] = PngExportStrategy(width=400, height=300).generate_export(recorder, {})

        assert name == "discharge_curve.png"
        image = Image.open(io.BytesIO(content))
        assert image.size == (400, 300)

    def test_png_with_single_sample(self):
        recorder = DischargeRecorder()
        recorder.start_recording(2.0)
        [(_, content)] = PngExportStrategy().generate_export(recorder, {})
        assert Image.open(io.BytesIO(content)).format == "PNG"

    def test_base_strategy_is_abstract(self, recorder):
        with pytest.raises(NotImplementedError):
            ExportStrategy().generate_export(recorder, {})


class TestExportManager:
    """Format parsing and file layout."""

    def test_parse_formats(self):
        data, images = ExportManager().parse_formats(["CSV", "excel", "png"])
        assert [type(s) for s in data] == [CsvExportStrategy, ExcelExportStrategy]
        assert [type(s) for s in images] == [PngExportStrategy]

    def test_unknown_format(self):
        with pytest.raises(ValueError, match="pdf"):
            ExportManager().parse_formats(["pdf"])

    def test_no_formats(self):
        with pytest.raises(ValueError):
            ExportManager().parse_formats([])

    def test_export_layout(self, recorder, tmp_path):
        root = ExportManager().handle_export_request(recorder, ["csv", "png"], str(tmp_path), {"a": 1})

        assert os.path.basename(root).startswith("export_")
        assert os.path.isfile(os.path.join(root, "data_export", "discharge_samples.csv"))
        assert os.path.isfile(os.path.join(root, "image_export", "discharge_curve.png"))

    def test_data_only_export_has_no_image_folder(self, recorder, tmp_path):
        root = ExportManager().handle_export_request(recorder, ["csv"], str(tmp_path))
        assert not os.path.exists(os.path.join(root, "image_export"))

    def test_creates_missing_base_folder(self, recorder, tmp_path):
        base = tmp_path / "nested" / "out"
        root = ExportManager().handle_export_request(recorder, ["csv"], str(base))
        assert os.path.isdir(root)

    def test_base_path_is_a_file(self, recorder, tmp_path):
        path = tmp_path / "file.txt"
        path.write_text("x")
        with pytest.raises(ValueError, match="not a directory"):
            ExportManager().handle_export_request(recorder, ["csv"], str(path))

    def test_errors_are_logged(self, recorder, tmp_path, memory_log):
        with pytest.raises(ValueError):
            ExportManager().handle_export_request(recorder, ["gif"], str(tmp_path))
        assert any("Error handling export request" in m for m in memory_log.messages("ERROR"))
