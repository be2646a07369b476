"""Shared fixtures for the XML row extractor tests."""

import os
from pathlib import Path

import pytest

from xml_row_extractor.config.config_manager import ENV_PREFIX, reset_config_manager


ITEMS_XML = b"<root><item><name>A</name></item><item><name>B</name><age>5</age></item></root>"


@pytest.fixture(autouse=True)
def clean_configuration(monkeypatch):
    """Isolate every test from XML_ROW_EXTRACTOR_* variables and the global ConfigManager."""
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name, raising=False)
    reset_config_manager()
    yield
    reset_config_manager()


@pytest.fixture
def items_xml():
    """The two-item document used throughout the extraction examples."""
    return ITEMS_XML


@pytest.fixture
def samples_dir():
    """Directory holding sample XML documents and job files."""
    return Path(__file__).resolve().parent.parent / "config" / "samples"
