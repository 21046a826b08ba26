"""Tests for edit model storage and generation."""

import pytest

from alarmfilter.core.edit_model import (
    EditModelStore,
    FilterModelGenerator,
    find_next_available_preset_name,
)
from alarmfilter.core.config import FilterSection
from alarmfilter.core.fields import load_filter_set
from alarmfilter.core.query import MATCH_ALL, QueryComposer
from alarmfilter.core.reconcile import field_paths
from alarmfilter.models.node import ConfigurationError, make_object


class TestFindNextAvailablePresetName:
    """Tests for preset name allocation."""

    @pytest.mark.parametrize("existing, expected", [
        ([], "PresetFilters1"),
        (None, "PresetFilters1"),
        (["PresetFilters1", "PresetFilters3"], "PresetFilters2"),
        (["PresetFilters", "PresetFilters1", "PresetFilters2"], "PresetFilters3"),
        (["PresetFiltersX", "PresetFilters1"], "PresetFilters2"),
        (["CustomFilters", "Other"], "PresetFilters1"),
    ])
    def test_gap_fill(self, existing, expected):
        """The smallest unused index >= 1 is returned."""
        assert find_next_available_preset_name(existing) == expected

    def test_custom_prefix(self):
        """Any prefix can be used."""
        assert find_next_available_preset_name(["Night1"], "Night") == "Night2"


class TestEditModelStore:
    """Tests for EditModelStore."""

    def test_schema_type_lives_in_components_folder(self, store, workspace, configuration):
        """The schema type is created in the aliased folder, named after the widget configuration."""
        store.create_default(configuration)

        schema_type = workspace.find("Components/AlarmWidgetConfiguration")
        assert schema_type is not None
        assert field_paths(schema_type) == field_paths(store.get())

    def test_create_default(self, store, configuration):
        """create_default builds CustomFilters from the schema type."""
        edit_model = store.create_default(configuration)

        assert edit_model.name == "CustomFilters"
        assert edit_model.type_definition is store.schema_type()
        assert edit_model.find("Group/Pump").value is False

    def test_create_is_idempotent(self, store, configuration):
        """Creating an existing model keeps it and its values."""
        edit_model = store.create_default(configuration)
        edit_model.find("Group/Pump").value = True

        again = store.create_default(configuration)

        assert again is edit_model
        assert again.find("Group/Pump").value is True

    def test_create_preset_allocates_names(self, store, configuration):
        """Presets are numbered, filling gaps."""
        first = store.create_preset(configuration)
        second = store.create_preset(configuration)
        store.delete(first.name)
        third = store.create_preset(configuration)

        assert second.name == "PresetFilters2"
        assert third.name == "PresetFilters1"

    def test_create_named_preset(self, store, configuration):
        """An explicit preset name is used as-is."""
        assert store.create_preset(configuration, "Night").name == "Night"

    def test_get_missing_raises(self, store):
        """Looking up a missing model raises ConfigurationError."""
        with pytest.raises(ConfigurationError, match="PresetFilters7"):
            store.get("PresetFilters7")

    def test_reserved_names_are_not_models(self, store, configuration):
        """The configuration root is never treated as an edit model."""
        store.create_default(configuration)

        assert store.find("FiltersConfiguration") is None
        assert store.delete("FiltersConfiguration") is False
        assert store.names() == ["CustomFilters"]

    @pytest.mark.parametrize("name", ["FiltersConfiguration", "AlarmWidgetGenerateDefaultFiltersToggle"])
    def test_create_reserved_name_raises(self, store, widget, configuration, name):
        """A reserved name cannot become an edit model and the configuration is left intact."""
        before = [c.name for c in configuration.children]

        with pytest.raises(ConfigurationError, match="reserved"):
            store.create_preset(configuration, name)

        assert [c.name for c in configuration.children] == before
        assert widget.get_child("AlarmWidgetGenerateDefaultFiltersToggle") is None

    def test_create_over_non_object_raises(self, store, widget, configuration):
        """A sibling that is not an object, such as the components alias, is not overwritten."""
        with pytest.raises(ConfigurationError, match="not an edit model"):
            store.create_preset(configuration, "AlarmWidgetComponents")

        assert store.find("AlarmWidgetComponents") is None
        assert store.components_folder() is not None

    def test_delete(self, store, configuration):
        """delete removes the model and reports whether it existed."""
        store.create_default(configuration)

        assert store.delete("CustomFilters") is True
        assert store.delete("CustomFilters") is False
        assert store.names() == []

    def test_update_all_reconciles_every_model(self, store, configuration):
        """A configuration change reaches every edit model."""
        custom = store.create_default(configuration)
        preset = store.create_preset(configuration)

        configuration.find("Group/Pump").value = False
        configuration.find("Priority/Low").value = True
        updated = store.update_all(configuration)

        assert [m.name for m in updated] == ["CustomFilters", "PresetFilters1"]
        for edit_model in (custom, preset):
            assert edit_model.find("Group/Pump") is None
            assert edit_model.find("Priority/Low").value is False
            assert field_paths(edit_model) == field_paths(store.schema_type())

    def test_update_all_drops_removed_option(self, store, catalog, sections, configuration, now):
        """A checked option removed from the configuration leaves every model and the query."""
        custom = store.create_default(configuration)
        custom.find("Group/Pump").value = True

        sections["Group"] = FilterSection(visible=True, options={"Compressor": True})
        rebuilt = catalog.build_configuration(sections)
        store.update_all(rebuilt)

        assert "Group/Pump" not in field_paths(store.schema_type())
        assert custom.find("Group/Pump") is None
        filter_set = load_filter_set(custom, catalog, now)
        assert QueryComposer().compose(filter_set, rebuilt) == MATCH_ALL

    def test_update_all_skips_reserved_names(self, store, widget, configuration):
        """Reserved siblings are left untouched even when passed explicitly."""
        store.create_default(configuration)
        generator_toggle = widget.add_child(make_object("AlarmWidgetGenerateDefaultFiltersToggle"))

        updated = store.update_all(configuration, [widget.get_child("FiltersConfiguration"), generator_toggle])

        assert updated == []
        assert generator_toggle.children == []

    def test_missing_components_alias_raises(self, widget, configuration):
        """Without the components alias no schema type can be found."""
        widget.remove_child(widget.get_child("AlarmWidgetComponents"))

        with pytest.raises(ConfigurationError):
            EditModelStore(widget).create_default(configuration)


class TestFilterModelGenerator:
    """Tests for the generator operations."""

    def test_generate_custom_filters_recreates(self, widget, now):
        """Generating the custom filters drops previous state."""
        generator = FilterModelGenerator(widget, now)
        edit_model = generator.generate_custom_filters()
        edit_model.find("Group/Pump").value = True

        regenerated = generator.generate_custom_filters()

        assert regenerated is not edit_model
        assert regenerated.find("Group/Pump").value is False

    def test_generate_preset_filters(self, widget, now):
        """Presets are allocated in order."""
        generator = FilterModelGenerator(widget, now)

        assert generator.generate_preset_filters().name == "PresetFilters1"
        assert generator.generate_preset_filters().name == "PresetFilters2"

    def test_update_custom_and_presets_filters(self, widget, now):
        """Every model is updated after a configuration change."""
        generator = FilterModelGenerator(widget, now)
        generator.generate_custom_filters()
        generator.generate_preset_filters()

        widget.find("FiltersConfiguration/Severity").value = False
        updated = generator.update_custom_and_presets_filters()

        assert len(updated) == 2
        assert all(m.get_child("Severity") is None for m in updated)

    def test_missing_configuration_raises(self, widget):
        """A widget configuration without FiltersConfiguration is an error."""
        widget.remove_child(widget.get_child("FiltersConfiguration"))

        with pytest.raises(ConfigurationError, match="FiltersConfiguration"):
            FilterModelGenerator(widget).generate_custom_filters()
