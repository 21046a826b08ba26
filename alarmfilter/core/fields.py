"""Typed access to edit model fields.

Edit models are two levels deep: attribute fields holding one boolean per
option, plus the typed range fields of EventTime and Severity. ModelFields
resolves ``(attribute, field name)`` pairs against one edit model and logs a
warning instead of raising when a late-bound name is unknown.

load_filter_set() and save_filter_set() move a FilterSet in and out of an
edit model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional

from alarmfilter.core.catalog import FilterCatalog
from alarmfilter.core.reconcile import Clock
from alarmfilter.models.filter_def import (
    DEFAULT_FROM_SEVERITY,
    DEFAULT_TO_SEVERITY,
    FROM_EVENT_TIME,
    FROM_EVENT_TIME_DATETIME,
    FROM_SEVERITY,
    SEVERITY,
    TO_EVENT_TIME,
    TO_EVENT_TIME_DATETIME,
    TO_SEVERITY,
    FilterAttribute,
    FilterSet,
    ToggleFilter,
    ToggleFilterData,
)
from alarmfilter.models.node import Node, ValueType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RangeField:
    """A typed range value stored next to the gate that enables it.

    Attributes:
        attribute: Attribute field the value lives under.
        name: Field name in the edit model.
        gate: Name of the boolean filter gating the value.
        value_type: Stored data type.
        data_key: Matching attribute of FilterData.
    """

    attribute: FilterAttribute
    name: str
    gate: str
    value_type: ValueType
    data_key: str


RANGE_FIELDS: Mapping[str, RangeField] = MappingProxyType({
    FROM_EVENT_TIME_DATETIME: RangeField(
        FilterAttribute.EVENT_TIME, FROM_EVENT_TIME_DATETIME, FROM_EVENT_TIME,
        ValueType.DATETIME, "from_event_time",
    ),
    TO_EVENT_TIME_DATETIME: RangeField(
        FilterAttribute.EVENT_TIME, TO_EVENT_TIME_DATETIME, TO_EVENT_TIME,
        ValueType.DATETIME, "to_event_time",
    ),
    FROM_SEVERITY: RangeField(
        FilterAttribute.SEVERITY, FROM_SEVERITY, SEVERITY,
        ValueType.UINT16, "from_severity",
    ),
    TO_SEVERITY: RangeField(
        FilterAttribute.SEVERITY, TO_SEVERITY, SEVERITY,
        ValueType.UINT16, "to_severity",
    ),
})


def as_severity(value: Any, default: int, name: str) -> int:
    """Coerce a stored severity bound, falling back to ``default``."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        logger.warning('Severity bound "%s" should contain an integer value, got %r', name, value)
        return default


class ModelFields:
    """Field lookups against one edit model."""

    def __init__(self, edit_model: Node) -> None:
        self.edit_model = edit_model

    def variable(self, attribute: FilterAttribute, name: str) -> Optional[Node]:
        """Find the field ``name`` under ``attribute``.

        Returns:
            The field node, or None (with a warning) if the attribute or the
            field does not exist.
        """
        attribute_field = self.edit_model.variable(attribute.value)
        if attribute_field is None:
            logger.warning("FilterModel attribute: %s not found.", attribute.value)
            return None

        field = attribute_field.variable(name)
        if field is None:
            logger.warning("FilterModel variable: %s not found.", name)
        return field

    def get(self, attribute: FilterAttribute, name: str, default: Any = None) -> Any:
        field = self.variable(attribute, name)
        return field.value if field is not None else default

    def set(self, attribute: FilterAttribute, name: str, value: Any) -> bool:
        """Store a value; returns False if the field does not exist."""
        field = self.variable(attribute, name)
        if field is None:
            return False
        field.value = value
        return True

    def range_value(self, range_field: RangeField) -> Any:
        return self.get(range_field.attribute, range_field.name)


def load_filter_set(
    edit_model: Node,
    catalog: FilterCatalog,
    now: Optional[Clock] = None,
) -> FilterSet:
    """Build a toggle-backed FilterSet from an edit model's current values.

    Range values are only taken from the model when their gate is checked;
    otherwise they reset to the current time or the default severity bounds.

    Args:
        edit_model: Edit model to read.
        catalog: Catalog providing predicate fragments.
        now: Clock used for unchecked EventTime bounds.

    Returns:
        A new FilterSet.
    """
    clock = now or datetime.now
    filter_set = FilterSet(data=ToggleFilterData(from_event_time=clock(), to_event_time=clock()))

    for attribute_field in edit_model.children:
        attribute = FilterAttribute.parse(attribute_field.name)
        if attribute is None:
            logger.warning("Accordion %s browse name is not a valid FilterAttribute.", attribute_field.name)
            continue

        for field in attribute_field.children:
            if field.name in RANGE_FIELDS:
                continue
            if field.name in filter_set:
                logger.warning("Filter %s already loaded, skipping duplicate under %s", field.name, attribute.value)
                continue
            filter_set.add(ToggleFilter(
                attribute,
                field.name,
                bool(field.value),
                catalog.predicate_for(attribute, field.name),
            ))

    fields = ModelFields(edit_model)
    data = filter_set.data
    for range_field in RANGE_FIELDS.values():
        if not filter_set.is_checked(range_field.gate):
            continue
        value = fields.range_value(range_field)
        if value is None:
            continue
        if range_field.value_type == ValueType.DATETIME:
            setattr(data, range_field.data_key, value)
        else:
            default = DEFAULT_FROM_SEVERITY if range_field.name == FROM_SEVERITY else DEFAULT_TO_SEVERITY
            setattr(data, range_field.data_key, as_severity(value, default, range_field.name))

    return filter_set


def save_filter_set(filter_set: FilterSet, edit_model: Node) -> None:
    """Persist checked flags, and the range values of checked gates.

    Range values of unchecked gates are left untouched, so checking the gate
    again restores the last applied value.
    """
    fields = ModelFields(edit_model)

    for filt in filter_set:
        fields.set(filt.attribute, filt.name, filt.checked)

    for range_field in RANGE_FIELDS.values():
        if not filter_set.is_checked(range_field.gate):
            continue
        value = getattr(filter_set.data, range_field.data_key)
        if value is not None:
            fields.set(range_field.attribute, range_field.name, value)
