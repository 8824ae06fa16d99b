"""
Tests for the OCR engine boundary.
"""

import pytest

from ecoinvoice.ocr_engine import OCRBackend, OCREngine, OCRResult, PlainTextBackend
from ecoinvoice.utils.exceptions import (
    InputFileNotFoundError,
    OCRBackendNotAvailableError,
    OCRProcessingError,
    UnsupportedFileTypeError,
)


class StaticBackend(OCRBackend):
    """Backend returning fixed text for image files."""

    name = "static"

    @property
    def supported_extensions(self):
        return [".png"]

    def extract(self, path):
        return OCRResult(text="Diesel 200 liter", source=str(path), backend=self.name)


class TestOCREngine:
    """Backend selection and file handling."""

    def test_plain_text_backend(self, tmp_path):
        """Text files are read as already recognized text"""
        path = tmp_path / "invoice.txt"
        path.write_text("ACME AS\nTotal 100", encoding="utf-8")

        result = OCREngine().extract(path)
        assert result.text == "ACME AS\nTotal 100"
        assert result.backend == "text"
        assert result.source == str(path)
        assert result.line_count == 2
        assert not result.is_empty

    def test_missing_file(self, tmp_path):
        """A missing file raises InputFileNotFoundError"""
        with pytest.raises(InputFileNotFoundError):
            OCREngine().extract(tmp_path / "missing.txt")

    def test_unsupported_type(self, tmp_path):
        """Files the backend cannot read are rejected"""
        path = tmp_path / "scan.pdf"
        path.write_bytes(b"%PDF-1.4")
        with pytest.raises(UnsupportedFileTypeError):
            OCREngine().extract(path)

    def test_undecodable_text(self, tmp_path):
        """Bytes that are not valid text raise OCRProcessingError"""
        path = tmp_path / "broken.txt"
        path.write_bytes(b"\xff\xfe\xfa\x00\xc3")
        with pytest.raises(OCRProcessingError):
            OCREngine().extract(path)

    def test_unknown_backend(self):
        """Asking for an unregistered backend fails early"""
        with pytest.raises(OCRBackendNotAvailableError):
            OCREngine(backend="tesseract")

    def test_register_backend(self, tmp_path):
        """A registered backend becomes active"""
        path = tmp_path / "scan.png"
        path.write_bytes(b"\x89PNG")
        engine = OCREngine()
        engine.register_backend(StaticBackend.name, StaticBackend())

        assert engine.backend_name == "static"
        assert engine.supports(path)
        assert engine.extract(path).text == "Diesel 200 liter"

    def test_iter_directory(self, tmp_path):
        """Only supported files are listed, in name order"""
        for name in ("b.txt", "a.TXT", "c.pdf"):
            (tmp_path / name).write_text("x", encoding="utf-8")
        (tmp_path / "sub.txt").mkdir()

        names = [p.name for p in OCREngine().iter_directory(tmp_path)]
        assert names == ["a.TXT", "b.txt"]

    def test_iter_missing_directory(self, tmp_path):
        """A missing directory raises InputFileNotFoundError"""
        with pytest.raises(InputFileNotFoundError):
            list(OCREngine().iter_directory(tmp_path / "nope"))

    def test_configured_extensions(self):
        """Text extensions come from configuration"""
        assert ".txt" in PlainTextBackend().supported_extensions
        assert PlainTextBackend(extensions=[".OCR"]).supported_extensions == [".ocr"]

    def test_empty_result(self):
        """Whitespace-only text counts as empty"""
        assert OCRResult(text="  \n ").is_empty
        assert OCRResult(text="").line_count == 0
