"""
Shared pytest fixtures for the invoice emissions test suite.
"""

import logging

import pytest

from config import ConfigurationManager
from ecoinvoice.utils.logger import ROOT_LOGGER_NAME


@pytest.fixture(autouse=True)
def fresh_config():
    """Reload the default settings for every test and drop CLI log handlers."""
    ConfigurationManager.reset()
    yield
    ConfigurationManager.reset()
    logging.getLogger(ROOT_LOGGER_NAME).handlers.clear()


@pytest.fixture
def diesel_invoice_text():
    """Minimal fuel invoice with a strongly labeled total."""
    return "Total beløp å betale: kr 12 450,00\nDiesel 200 liter"


@pytest.fixture
def electricity_invoice_text():
    """Utility invoice with header, bank details and a kWh line."""
    return "\n".join([
        "Fjordkraft AS",
        "Org.nr: 987 654 321",
        "Sandviksbodene 1, 5035 Bergen",
        "Fakturanr: 2024-10023",
        "Fakturadato: 15.03.2024",
        "Forfallsdato: 30.03.2024",
        "Kontonummer: 1234.56.78901",
        "Strøm mars 1 250 kWh 1 875,00",
        "Nettleie 312,50",
        "MVA 25% 546,88",
        "Å betale NOK 2 734,38",
    ])
