"""
Invoice Emissions System - Source Package.

This package turns OCR text of supplier invoices into structured
financial and environmental facts, and evaluates reduction projects
on top of them. Each sub-package has a single responsibility.

Modules:
    - ocr_engine: Boundary to the OCR service
    - postprocessor: Text, number and date normalization
    - extraction: Header fields, totals and line items
    - emissions: Rule tables, classification, units, CO2 calculation
    - finance: NPV, IRR, amortization, baselines, project metrics
    - pipeline: End-to-end processing of one document
    - utils: Logging, exceptions and helpers

Architecture:
    OCR text -> Normalizer -> Field Extractor + Total Resolver -> header
             -> Line Segmenter -> Classifier -> Units -> Emission Calculator
                                                              |
                                                  Financial Metrics Engine
"""

__version__ = "1.0.0"
__author__ = "ML Engineering Team"

__all__ = [
    'ocr_engine',
    'postprocessor',
    'extraction',
    'emissions',
    'finance',
    'pipeline',
    'utils'
]
