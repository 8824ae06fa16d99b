"""
Main OCR Engine Module.

This module provides the OCREngine class, the seam between the system
and the external OCR service. Image and PDF recognition is done by
that collaborator; the engine only defines the backend interface and
ships a plain-text backend that reads already recognized text.

Usage:
    from ecoinvoice.ocr_engine import OCREngine

    engine = OCREngine()
    result = engine.extract("invoices/fjordkraft.txt")
    print(result.text)

    # Plug in a remote service
    engine.register_backend("remote", MyServiceBackend())

Author: ML Engineering Team
"""

import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from config import get_config
from ecoinvoice.utils.logger import get_logger
from ecoinvoice.utils.helpers import get_file_extension
from ecoinvoice.utils.exceptions import (
    InputFileNotFoundError,
    OCRBackendNotAvailableError,
    OCRProcessingError,
    UnsupportedFileTypeError,
)
from .ocr_result import OCRResult

# Initialize module logger
logger = get_logger(__name__)


class OCRBackend(ABC):
    """
    Interface of an OCR backend.

    A backend turns one document into an OCRResult and declares which
    file extensions it accepts.
    """

    name = "base"

    @property
    @abstractmethod
    def supported_extensions(self) -> List[str]:
        """Lower-case extensions including the dot, e.g. ['.txt']."""

    @abstractmethod
    def extract(self, path: Path) -> OCRResult:
        """
        Recognize the text of one document.

        Raises:
            OCRProcessingError: If recognition fails.
        """


class PlainTextBackend(OCRBackend):
    """
    Backend for documents that are already text.

    Example:
        >>> backend = PlainTextBackend()
        >>> ".txt" in backend.supported_extensions
        True
    """

    name = "text"

    def __init__(self, encoding: Optional[str] = None, extensions: Optional[List[str]] = None) -> None:
        self.encoding = encoding or get_config("ocr.text.encoding", "utf-8")
        self._extensions = [
            e.lower() for e in (extensions or get_config("ocr.text.extensions", [".txt"]))
        ]

    @property
    def supported_extensions(self) -> List[str]:
        return list(self._extensions)

    def extract(self, path: Path) -> OCRResult:
        start = time.time()
        try:
            text = Path(path).read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise OCRProcessingError(str(path), str(e))

        return OCRResult(
            text=text,
            source=str(path),
            backend=self.name,
            page_count=max(1, text.count("\f") + 1),
            processing_time=time.time() - start,
            metadata={'encoding': self.encoding},
        )


class OCREngine:
    """
    Unified interface for text recognition.

    Backends are registered by name; the active one comes from the
    configuration (ocr.backend) unless given explicitly.

    Attributes:
        backend_name: Name of the active backend.
        backend: The active backend instance.

    Example:
        >>> engine = OCREngine()
        >>> engine.backend_name
        'text'
    """

    def __init__(self, backend: Optional[str] = None) -> None:
        """
        Initialize the OCR engine.

        Args:
            backend: Backend name. Defaults to configuration.

        Raises:
            OCRBackendNotAvailableError: If no backend has that name.
        """
        self._backends: Dict[str, OCRBackend] = {PlainTextBackend.name: PlainTextBackend()}
        self.backend_name = backend or get_config("ocr.backend", PlainTextBackend.name)
        self.backend = self._get_backend(self.backend_name)

        logger.info(f"OCR Engine initialized with backend: {self.backend_name}")

    def _get_backend(self, name: str) -> OCRBackend:
        if name not in self._backends:
            raise OCRBackendNotAvailableError(name)
        return self._backends[name]

    def register_backend(self, name: str, backend: OCRBackend, activate: bool = True) -> None:
        """
        Register a backend, optionally making it the active one.

        Args:
            name: Backend name.
            backend: Backend instance.
            activate: Switch to the new backend.
        """
        self._backends[name] = backend
        if activate:
            self.backend_name = name
            self.backend = backend
        logger.debug(f"Registered OCR backend '{name}'")

    def supports(self, path: Union[str, Path]) -> bool:
        """Check if the active backend accepts the file type."""
        return get_file_extension(path) in self.backend.supported_extensions

    def extract(self, path: Union[str, Path]) -> OCRResult:
        """
        Recognize the text of one document.

        Args:
            path: Path to the document.

        Returns:
            OCRResult.

        Raises:
            InputFileNotFoundError: If the file does not exist.
            UnsupportedFileTypeError: If the backend does not accept it.
            OCRProcessingError: If the backend fails.
        """
        path = Path(path)
        if not path.is_file():
            raise InputFileNotFoundError(str(path))
        if not self.supports(path):
            raise UnsupportedFileTypeError(get_file_extension(path), self.backend.supported_extensions)

        logger.debug(f"Extracting text from {path.name} using {self.backend_name} backend")
        result = self.backend.extract(path)
        if result.is_empty:
            logger.warning(f"No text recognized in {path.name}")
        return result

    def iter_directory(self, directory: Union[str, Path]) -> Iterator[Path]:
        """
        Yield supported files of a directory in name order.

        Raises:
            InputFileNotFoundError: If the directory does not exist.
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise InputFileNotFoundError(str(directory))
        for path in sorted(directory.iterdir()):
            if path.is_file() and self.supports(path):
                yield path
