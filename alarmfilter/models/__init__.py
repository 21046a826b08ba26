"""Data models for alarmfilter."""

from alarmfilter.models.filter_def import (
    Accordion,
    CheckBoxControl,
    CheckBoxFilter,
    CheckBoxFilterData,
    DateTimePickerControl,
    Filter,
    FilterAttribute,
    FilterData,
    FilterSet,
    TextBoxControl,
    ToggleFilter,
    ToggleFilterData,
)
from alarmfilter.models.node import (
    ConfigurationError,
    Node,
    NodeKind,
    NodeSnapshot,
    ValueType,
    make_alias,
    make_folder,
    make_object,
    make_object_from_type,
    make_object_type,
    make_typed_leaf,
    resolve_alias,
)

__all__ = [
    "Accordion",
    "CheckBoxControl",
    "CheckBoxFilter",
    "CheckBoxFilterData",
    "ConfigurationError",
    "DateTimePickerControl",
    "Filter",
    "FilterAttribute",
    "FilterData",
    "FilterSet",
    "Node",
    "NodeKind",
    "NodeSnapshot",
    "TextBoxControl",
    "ToggleFilter",
    "ToggleFilterData",
    "ValueType",
    "make_alias",
    "make_folder",
    "make_object",
    "make_object_from_type",
    "make_object_type",
    "make_typed_leaf",
    "resolve_alias",
]
