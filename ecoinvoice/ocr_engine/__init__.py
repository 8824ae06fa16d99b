"""
OCR Engine Module for the Invoice Emissions System.

This module is the boundary to the OCR service:
    - OCRBackend interface for recognition services
    - PlainTextBackend for text that was recognized upstream
    - OCREngine selecting and running the active backend

Author: ML Engineering Team
"""

from .engine import OCREngine, OCRBackend, PlainTextBackend
from .ocr_result import OCRResult

__all__ = ['OCREngine', 'OCRBackend', 'PlainTextBackend', 'OCRResult']
