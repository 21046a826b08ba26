"""Tests for the UI-facing filter controllers."""

import logging
from datetime import datetime

import pytest

from alarmfilter.core.catalog import FilterCatalog
from alarmfilter.core.controller import (
    AlarmFilterController,
    AlarmWidgetController,
    EditState,
)
from alarmfilter.core.query import MATCH_ALL
from alarmfilter.models.filter_def import FilterAttribute
from alarmfilter.models.node import ConfigurationError, make_alias, make_object

NOW = datetime(2024, 5, 1, 12, 0, 0)

PUMP = "RAAlarmData.AlarmGroup LIKE '%Pump%'"
COMPRESSOR = "RAAlarmData.AlarmGroup LIKE '%Compressor%'"


@pytest.fixture
def published():
    return []


@pytest.fixture
def panel(widget, now, published):
    """Filter editing panel over the test widget configuration."""
    return AlarmFilterController(widget, sink=published.append, now=now)


@pytest.fixture
def header(widget, now, published):
    """Alarm grid header over the test widget configuration."""
    return AlarmWidgetController(widget, sink=published.append, now=now)


class TestAlarmFilterControllerSetup:
    """Tests for building the editing panel."""

    def test_one_checkbox_per_option(self, panel):
        """Checkboxes mirror the boolean fields of the default model."""
        assert [f.name for f in panel.filter_set] == [
            "HighState", "LowState",
            "FromEventTime", "ToEventTime",
            "Compressor", "Pump",
            "Urgent", "High",
            "Severity",
        ]
        assert all(not f.checked for f in panel.filter_set)
        assert panel.state == EditState.IDLE

    def test_range_controls_start_at_defaults(self, panel):
        """Pickers start at now and severity text at 1 and 1000."""
        assert panel.data.event_time_pickers["FromEventTime"].value == NOW
        assert panel.data.event_time_pickers["ToEventTime"].value == NOW
        assert panel.data.text_boxes["FromSeverity"].text == "1"
        assert panel.data.text_boxes["ToSeverity"].text == "1000"

    def test_hidden_ranges_have_no_controls(self, widget, now):
        """No range controls are built for hidden gates."""
        widget.find("FiltersConfiguration/Severity").value = False
        widget.find("FiltersConfiguration/EventTime/ToEventTime").value = False

        panel = AlarmFilterController(widget, now=now)

        assert list(panel.data.event_time_pickers) == ["FromEventTime"]
        assert panel.data.text_boxes == {}

    def test_accordions_per_attribute(self, panel):
        """Each attribute gets a collapsed accordion."""
        assert set(panel.accordions) == {
            FilterAttribute.ALARM_STATE,
            FilterAttribute.EVENT_TIME,
            FilterAttribute.GROUP,
            FilterAttribute.PRIORITY,
            FilterAttribute.SEVERITY,
        }
        assert not any(a.expanded for a in panel.accordions.values())

    def test_custom_filters_panel_flags(self, widget, now):
        """The custom filters panel follows the widget configuration flags."""
        widget.get_child("CustomFiltersExpandedByDefault").value = True
        assert AlarmFilterController(widget, now=now).custom_filters_panel.expanded is True

        widget.get_child("CustomFiltersAvailableOnRuntime").value = False
        assert AlarmFilterController(widget, now=now).custom_filters_panel.visible is False

    def test_from_widget_follows_configuration_pointer(self, workspace, widget, now):
        """A widget reaches its configuration through the ConfigurationPointer alias."""
        alarm_widget = workspace.add_child(make_object("AlarmWidget"))
        alarm_widget.add_child(make_alias("ConfigurationPointer", widget))

        panel = AlarmFilterController.from_widget(alarm_widget, now=now)

        assert panel.widget_configuration is widget

    def test_missing_configuration_pointer_raises(self, workspace):
        """A widget without a configuration pointer is a configuration error."""
        alarm_widget = workspace.add_child(make_object("AlarmWidget"))

        with pytest.raises(ConfigurationError):
            AlarmFilterController.from_widget(alarm_widget)


class TestAlarmFilterControllerEditing:
    """Tests for the editing state machine."""

    def test_filter_recomposes_without_persisting(self, panel, store, published):
        """Checking a box recomposes the query but keeps the model untouched."""
        panel.set_checked("Pump")

        assert panel.filter("Pump") == PUMP
        assert panel.state == EditState.EDITING
        assert store.get().find("Group/Pump").value is False
        assert published[-1] == f"SELECT * FROM Model WHERE {PUMP}"

    def test_apply_persists(self, panel, store):
        """Apply writes the controls to the default model and returns to idle."""
        panel.set_checked("Pump")
        panel.set_checked("Compressor")

        predicate = panel.apply()

        assert predicate == f"({COMPRESSOR} OR {PUMP})"
        assert store.get().find("Group/Pump").value is True
        assert panel.state == EditState.IDLE

    def test_save_all_marks_applied(self, panel):
        """save_all leaves the panel in the applied state."""
        panel.set_checked("Pump")
        panel.save_all()

        assert panel.state == EditState.APPLIED

    def test_close_discards_edits(self, panel, store):
        """Close reloads the default model without saving."""
        panel.set_checked("Urgent")
        panel.apply()
        panel.set_checked("Urgent", False)
        panel.set_checked("Pump")

        predicate = panel.close()

        assert panel.filter_set.is_checked("Urgent")
        assert not panel.filter_set.is_checked("Pump")
        assert predicate == "(Severity >= 751 AND Severity <= 1000)"
        assert store.get().find("Group/Pump").value is False
        assert panel.state == EditState.IDLE

    def test_unknown_filter_warns(self, panel, caplog):
        """Unknown filter names are logged and ignored."""
        with caplog.at_level(logging.WARNING):
            assert panel.set_checked("Nope") is False
            assert panel.filter("Nope") == MATCH_ALL

        assert "Nope" in caplog.text
        assert panel.state == EditState.IDLE

    def test_event_time_bound(self, panel, store):
        """A checked EventTime bound uses the picker value and persists it."""
        when = datetime(2024, 5, 1, 8, 0, 0)
        panel.set_checked("FromEventTime")
        panel.set_event_time("FromEventTime", when)

        predicate = panel.apply()

        assert predicate == "EventTime >= '2024-05-01T08:00:00'"
        assert store.get().find("EventTime/FromEventTimeDateTime").value == when
        assert [c.text for c in panel.chips] == ["FromEventTime 2024-05-01 08:00:00"]

    def test_unknown_picker_warns(self, panel, caplog):
        """Setting a picker that does not exist is reported."""
        with caplog.at_level(logging.WARNING):
            assert panel.set_event_time("Sometime", NOW) is False

        assert "Sometime" in caplog.text

    def test_severity_text(self, panel, store):
        """Severity bounds come from the text boxes while the gate is checked."""
        panel.set_checked("Severity")
        panel.set_severity_text("100", "400")

        predicate = panel.apply()

        assert predicate == "(Severity >= 100 AND Severity <= 400)"
        assert store.get().find("Severity/FromSeverity").value == 100
        assert [c.text for c in panel.chips] == ["Severity: 100 - 400"]

    def test_invalid_severity_text_falls_back(self, panel, store, caplog):
        """Unparseable severity text falls back to the default bound."""
        panel.set_checked("Severity")
        panel.set_severity_text(from_text="abc")

        with caplog.at_level(logging.WARNING):
            predicate = panel.apply()

        assert predicate == "(Severity >= 1 AND Severity <= 1000)"
        assert store.get().find("Severity/FromSeverity").value == 1
        assert "FromSeverity" in caplog.text

    def test_clear_all(self, panel, store):
        """Clear all unchecks everything, resets ranges and persists."""
        panel.set_checked("Pump")
        panel.set_checked("Severity")
        panel.set_severity_text("5", "10")
        panel.set_event_time("ToEventTime", datetime(2023, 1, 1))
        panel.apply()

        predicate = panel.clear_all()

        assert predicate == MATCH_ALL
        assert panel.filter_set.checked() == []
        assert panel.data.text_boxes["FromSeverity"].text == "1"
        assert panel.data.event_time_pickers["ToEventTime"].value == NOW
        assert store.get().find("Group/Pump").value is False
        assert store.get().find("Severity/Severity").value is False
        assert panel.chips == []
        assert panel.state == EditState.IDLE

    def test_load_preset(self, panel, store, configuration):
        """Loading a preset copies it into the controls and the default model."""
        preset = store.create_preset(configuration)
        preset.find("Priority/Urgent").value = True
        preset.find("Severity/Severity").value = True
        preset.find("Severity/FromSeverity").value = 100

        predicate = panel.load_preset(preset.name)

        assert predicate == (
            "(Severity >= 751 AND Severity <= 1000) AND (Severity >= 100 AND Severity <= 1000)"
        )
        assert panel.data.text_boxes["FromSeverity"].text == "100"
        assert store.get().find("Priority/Urgent").value is True
        assert store.get().find("Severity/FromSeverity").value == 100
        assert panel.accordions[FilterAttribute.PRIORITY].expanded is True
        assert panel.accordions[FilterAttribute.GROUP].expanded is False

    def test_load_missing_preset_raises(self, panel):
        """Loading a preset that does not exist is a configuration error."""
        with pytest.raises(ConfigurationError, match="PresetFilters9"):
            panel.load_preset("PresetFilters9")

    def test_chips(self, panel):
        """Chips label checked filters by attribute and name."""
        panel.set_checked("Pump")
        panel.set_checked("HighState")
        panel.apply()

        assert [(c.name, c.text) for c in panel.chips] == [
            ("HighState", "AlarmState - HighState"),
            ("Pump", "Group - Pump"),
        ]


class TestAlarmWidgetController:
    """Tests for the toggle-backed grid header."""

    def test_start_creates_default_model(self, header, store, published):
        """Starting on a fresh widget creates CustomFilters and matches everything."""
        assert header.start() == MATCH_ALL
        assert store.names() == ["CustomFilters"]
        assert published == ["SELECT * FROM Model"]

    def test_start_reads_persisted_state(self, header, store, configuration):
        """The predicate reflects what the default model holds."""
        edit_model = store.create_default(configuration)
        edit_model.find("Group/Pump").value = True
        edit_model.find("Group/Compressor").value = True

        assert header.start() == f"({COMPRESSOR} OR {PUMP})"
        assert [c.text for c in header.chips] == ["Group - Compressor", "Group - Pump"]

    def test_filter_removes_and_persists(self, header, store, configuration):
        """Closing a chip unchecks the filter in the model."""
        edit_model = store.create_default(configuration)
        edit_model.find("Group/Pump").value = True
        edit_model.find("Group/Compressor").value = True

        predicate = header.filter("Pump")

        assert predicate == COMPRESSOR
        assert edit_model.find("Group/Pump").value is False

    def test_filter_unknown_name_warns(self, header, store, configuration, caplog):
        """Unknown names are logged; the query is still republished."""
        edit_model = store.create_default(configuration)
        edit_model.find("Group/Pump").value = True

        with caplog.at_level(logging.WARNING):
            predicate = header.filter("Nope")

        assert predicate == PUMP
        assert "Nope" in caplog.text

    def test_clear_all(self, header, store, configuration):
        """Clear all unchecks and persists every filter."""
        edit_model = store.create_default(configuration)
        edit_model.find("Group/Pump").value = True
        edit_model.find("Severity/Severity").value = True

        assert header.clear_all() == MATCH_ALL
        assert edit_model.find("Group/Pump").value is False
        assert edit_model.find("Severity/Severity").value is False

    def test_severity_chip(self, header, store, configuration):
        """The Severity chip shows both bounds."""
        edit_model = store.create_default(configuration)
        edit_model.find("Severity/Severity").value = True
        edit_model.find("Severity/ToSeverity").value = 250

        header.start()

        assert [c.text for c in header.chips] == ["Severity: 1 - 250"]

    def test_translated_chips(self, widget, store, configuration, now):
        """Chip labels use the catalog's translations."""
        edit_model = store.create_default(configuration)
        edit_model.find("Group/Pump").value = True
        catalog = FilterCatalog(translate={"Group": "Gruppe", "Pump": "Pumpe"}.get)

        header = AlarmWidgetController(widget, catalog=catalog, now=now)
        predicate = header.start()

        assert [c.text for c in header.chips] == ["Gruppe - Pumpe"]
        assert predicate == "RAAlarmData.AlarmGroup LIKE '%Pumpe%'"

    def test_missing_configuration_raises(self, widget, header):
        """Without FiltersConfiguration the header cannot start."""
        widget.remove_child(widget.get_child("FiltersConfiguration"))

        with pytest.raises(ConfigurationError, match="FiltersConfiguration"):
            header.start()
