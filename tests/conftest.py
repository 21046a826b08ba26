"""Shared pytest fixtures for alarmfilter tests."""

from datetime import datetime

import pytest

from alarmfilter.core.catalog import FilterCatalog
from alarmfilter.core.config import FilterSection
from alarmfilter.core.edit_model import EditModelStore
from alarmfilter.core.workspace import create_workspace, widget_configuration

NOW = datetime(2024, 5, 1, 12, 0, 0)


@pytest.fixture
def now():
    """Fixed clock used wherever the current time is seeded."""
    return lambda: NOW


@pytest.fixture
def catalog():
    """Catalog without translations or extra overrides."""
    return FilterCatalog()


@pytest.fixture
def sections():
    """Typical per-attribute settings: a few options of several attributes."""
    return {
        "AlarmState": FilterSection(visible=True, options={"HighState": True, "LowState": True}),
        "EventTime": FilterSection(visible=True, options={"FromEventTime": True, "ToEventTime": True}),
        "Group": FilterSection(visible=True, options={"Compressor": True, "Pump": True, "Hidden": False}),
        "Priority": FilterSection(visible=True, options={"Urgent": True, "High": True}),
        "Severity": FilterSection(visible=True, options={"Severity": True}),
    }


@pytest.fixture
def configuration(catalog, sections):
    """Filter configuration tree built from ``sections``."""
    return catalog.build_configuration(sections)


@pytest.fixture
def workspace(configuration):
    """Workspace root holding the widget configuration and components folder."""
    return create_workspace(configuration)


@pytest.fixture
def widget(workspace):
    """Widget configuration node of ``workspace``."""
    return widget_configuration(workspace)


@pytest.fixture
def store(widget, now):
    """Edit model store over ``widget``."""
    return EditModelStore(widget, now)

