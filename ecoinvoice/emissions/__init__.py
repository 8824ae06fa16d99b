"""
Emissions Module for the Invoice Emissions System.

This module provides:
    - Category and unit rule tables loaded from YAML
    - Keyword classification of line items
    - Unit normalization and conversion
    - CO2-equivalent calculation with prioritized methods

Author: ML Engineering Team
"""

from .rules import Unit, EmissionFactor, CategoryRule, RuleTable, UnitTable
from .units import UnitConverter, NormalizedQuantity
from .classifier import Classifier
from .calculator import EmissionCalculator

__all__ = [
    'Unit',
    'EmissionFactor',
    'CategoryRule',
    'RuleTable',
    'UnitTable',
    'UnitConverter',
    'NormalizedQuantity',
    'Classifier',
    'EmissionCalculator'
]
