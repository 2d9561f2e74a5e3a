"""Tests for the KTP command-line interface."""

import csv
import json
from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest
from PIL import Image

from ktp_ocr.cli import (
    EXIT_INVALID_IMAGE,
    EXIT_RECOGNITION_FAILED,
    _find_images,
    extract_single,
    format_table,
    main,
    process_folder,
)
from ktp_ocr.pipeline import ExtractionPipeline
from ktp_ocr.utils.config import load_config


def _make_test_image(path: Path) -> None:
    """Create a minimal card-like PNG at the given path."""
    image = np.full((60, 100, 3), 220, dtype=np.uint8)
    image[20:30, 10:90] = 20
    Image.fromarray(image).save(path, format="PNG")


@pytest.fixture
def components(stub_engine):
    with patch(
        "ktp_ocr.cli._build_components",
        return_value=(ExtractionPipeline(), stub_engine),
    ):
        yield stub_engine


class TestFindImages:
    """Tests for image discovery."""

    def test_finds_supported_images(self, tmp_path: Path) -> None:
        (tmp_path / "a.png").touch()
        (tmp_path / "b.JPG").touch()
        (tmp_path / "c.tiff").touch()
        (tmp_path / "notes.txt").touch()
        files = _find_images(tmp_path)
        assert [f.name for f in files] == ["a.png", "b.JPG", "c.tiff"]

    def test_no_images(self, tmp_path: Path) -> None:
        (tmp_path / "readme.md").touch()
        assert _find_images(tmp_path) == []


class TestExtractSingle:
    """Tests for single-card extraction."""

    def test_returns_fields(self, tmp_path: Path, components) -> None:
        path = tmp_path / "card.png"
        _make_test_image(path)
        result = extract_single(path)
        assert result["filename"] == "card.png"
        assert result["fields"]["nik"] == "3171234567890123"
        assert "raw_text" not in result
        assert components.released == 1

    def test_includes_raw_text(self, tmp_path: Path, components) -> None:
        path = tmp_path / "card.png"
        _make_test_image(path)
        result = extract_single(path, include_raw=True)
        assert result["raw_text"].startswith("PROVINSI DKI JAKARTA")


class TestProcessFolder:
    """Tests for batch processing to CSV."""

    def test_batch_writes_csv(self, tmp_path: Path, components) -> None:
        input_dir = tmp_path / "cards"
        input_dir.mkdir()
        _make_test_image(input_dir / "one.png")
        _make_test_image(input_dir / "two.png")
        (input_dir / "broken.png").write_bytes(b"not an image")
        output = tmp_path / "out" / "results.csv"

        summary = process_folder(input_dir, output)

        assert summary == {"total": 3, "successful": 2, "failed": 1}
        with open(output, newline="") as f:
            rows = {row["filename"]: row for row in csv.DictReader(f)}
        assert rows["one.png"]["status"] == "success"
        assert rows["one.png"]["nik"] == "3171234567890123"
        assert rows["one.png"]["rt"] == "005"
        assert rows["broken.png"]["status"] == "failed"
        assert "valid image" in rows["broken.png"]["error"]
        assert rows["broken.png"]["nik"] == ""

    def test_batch_continues_after_recognition_failure(
        self, tmp_path: Path, engine_factory
    ) -> None:
        _make_test_image(tmp_path / "card.png")
        engine = engine_factory(error=RuntimeError("tesseract crashed"))
        with patch(
            "ktp_ocr.cli._build_components",
            return_value=(ExtractionPipeline(), engine),
        ):
            summary = process_folder(tmp_path, tmp_path / "results.csv")
        assert summary["failed"] == 1
        assert engine.released == 1

    def test_empty_folder(self, tmp_path: Path) -> None:
        summary = process_folder(tmp_path, tmp_path / "results.csv")
        assert summary == {"total": 0, "successful": 0, "failed": 0}
        assert not (tmp_path / "results.csv").exists()


class TestFormatTable:
    """Tests for the human-readable table output."""

    def test_table_rows(self) -> None:
        table = format_table({"nik": "1234", "rt": "005", "rw": "003"})
        lines = table.splitlines()
        assert lines[0] == "NIK   : 1234"
        assert lines[1] == "RT/RW : 005/003"

    def test_empty(self) -> None:
        assert format_table({}) == "No fields extracted."


class TestMain:
    """Tests for argument parsing and exit codes."""

    def test_extract_prints_json(
        self, tmp_path: Path, components, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "card.png"
        _make_test_image(path)
        main(["extract", str(path)])
        data = json.loads(capsys.readouterr().out)
        assert data["fields"]["name"] == "BUDI SANTOSO"
        assert data["fields"]["nik"] == "3171234567890123"

    def test_extract_table_with_raw(
        self, tmp_path: Path, components, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "card.png"
        _make_test_image(path)
        main(["extract", str(path), "--table", "--raw"])
        out = capsys.readouterr().out
        assert "RT/RW" in out
        assert "005/003" in out
        assert "Raw OCR Text:" in out

    def test_extract_to_file(self, tmp_path: Path, components) -> None:
        path = tmp_path / "card.png"
        _make_test_image(path)
        output = tmp_path / "out.json"
        main(["extract", str(path), "-o", str(output)])
        assert json.loads(output.read_text())["fields"]["religion"] == "ISLAM"

    def test_extract_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main(["extract", str(tmp_path / "nope.png")])
        assert excinfo.value.code == 1

    def test_extract_invalid_image(
        self, tmp_path: Path, components, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "card.png"
        path.write_text("plain text")
        with pytest.raises(SystemExit) as excinfo:
            main(["extract", str(path)])
        assert excinfo.value.code == EXIT_INVALID_IMAGE
        assert "invalid image" in capsys.readouterr().err

    def test_extract_recognition_failed(
        self, tmp_path: Path, engine_factory, capsys: pytest.CaptureFixture[str]
    ) -> None:
        path = tmp_path / "card.png"
        _make_test_image(path)
        engine = engine_factory(error=RuntimeError("Tesseract process timeout"))
        with patch(
            "ktp_ocr.cli._build_components",
            return_value=(ExtractionPipeline(), engine),
        ):
            with pytest.raises(SystemExit) as excinfo:
                main(["extract", str(path)])
        assert excinfo.value.code == EXIT_RECOGNITION_FAILED
        assert "recognition did not complete" in capsys.readouterr().err

    def test_batch_not_a_directory(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main(["batch", str(tmp_path / "missing")])
        assert excinfo.value.code == 1

    def test_batch(self, tmp_path: Path, components) -> None:
        _make_test_image(tmp_path / "card.png")
        output = tmp_path / "results.csv"
        main(["batch", str(tmp_path), "-o", str(output)])
        assert output.exists()

    def test_config_file_loaded_once(self, tmp_path: Path, stub_engine) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("preprocessing:\n  threshold: 100\n")
        image_path = tmp_path / "card.png"
        _make_test_image(image_path)

        with (
            patch("ktp_ocr.cli.load_config", wraps=load_config) as mock_load,
            patch(
                "ktp_ocr.cli.TesseractEngine.from_config", return_value=stub_engine
            ),
        ):
            main(["-c", str(config_file), "extract", str(image_path)])

        mock_load.assert_called_once_with(config_file)
        assert stub_engine.opened == 1

    def test_no_command_prints_help(self) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main([])
        assert excinfo.value.code == 0
