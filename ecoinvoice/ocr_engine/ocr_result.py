"""
OCR Result Data Class.

Standardized output of an OCR backend: the recognized text of one
document plus metadata about how it was produced.

Author: ML Engineering Team
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class OCRResult:
    """
    Text recognized from one document.

    Attributes:
        text: Raw recognized text.
        source: Path or identifier of the document.
        backend: Name of the backend that produced the text.
        page_count: Pages contained in the text.
        processing_time: Seconds spent in the backend.
        metadata: Backend-specific details.

    Example:
        >>> result = OCRResult(text="ACME AS\\nTotal 100", source="a.txt", backend="text")
        >>> result.line_count
        2
    """
    text: str
    source: Optional[str] = None
    backend: Optional[str] = None
    page_count: int = 1
    processing_time: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        """True when the backend found no text."""
        return not self.text or not self.text.strip()

    @property
    def line_count(self) -> int:
        """Number of non-empty lines."""
        return sum(1 for line in self.text.splitlines() if line.strip())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source,
            'backend': self.backend,
            'page_count': self.page_count,
            'processing_time': self.processing_time,
            'line_count': self.line_count,
            'metadata': self.metadata,
        }
