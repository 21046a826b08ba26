"""UI-facing filter operations for alarmfilter.

Two controllers expose the named operations the HMI wires to its gestures:

- AlarmWidgetController backs the alarm grid header. Its filters are
  toggle-backed: state is read from the default edit model on every gesture,
  and closing a filter chip unchecks and persists that filter.
- AlarmFilterController backs the filter editing panel. Its filters are
  checkbox-backed: edits live in the panel's controls until Apply persists
  them into the default edit model.

Both republish the composed query through a sink callback and regenerate the
filter chips after every recomposition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from alarmfilter.core.catalog import FILTERS_CONFIGURATION, FilterCatalog
from alarmfilter.core.edit_model import DEFAULT_EDIT_MODEL, EditModelStore
from alarmfilter.core.fields import RANGE_FIELDS, ModelFields, as_severity, load_filter_set, save_filter_set
from alarmfilter.core.query import QueryComposer
from alarmfilter.core.reconcile import EVENT_TIME_COMPANIONS, Clock, is_visible
from alarmfilter.models.filter_def import (
    DEFAULT_FROM_SEVERITY,
    DEFAULT_TO_SEVERITY,
    FROM_EVENT_TIME,
    FROM_SEVERITY,
    SEVERITY,
    TO_EVENT_TIME,
    TO_SEVERITY,
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
)
from alarmfilter.models.node import ConfigurationError, Node, resolve_alias

logger = logging.getLogger(__name__)

CONFIGURATION_POINTER = "ConfigurationPointer"
CUSTOM_FILTERS_AVAILABLE = "CustomFiltersAvailableOnRuntime"
CUSTOM_FILTERS_EXPANDED = "CustomFiltersExpandedByDefault"

QuerySink = Callable[[str], None]


class EditState(str, Enum):
    """Lifecycle of the filter editing panel."""

    IDLE = "idle"
    EDITING = "editing"
    APPLIED = "applied"


@dataclass(frozen=True)
class FilterChip:
    """Removable label shown for one active filter."""

    name: str
    text: str


def _format_time(value: Optional[datetime]) -> str:
    return value.isoformat(sep=" ", timespec="seconds") if value else ""


def chip_text(filt: Filter, data: FilterData, translate: Callable[[str], str]) -> str:
    """Label of the chip for a checked filter."""
    if filt.attribute == FilterAttribute.EVENT_TIME and filt.name == FROM_EVENT_TIME:
        return f"{translate(filt.name)} {_format_time(data.from_event_time)}"
    if filt.attribute == FilterAttribute.EVENT_TIME and filt.name == TO_EVENT_TIME:
        return f"{translate(filt.name)} {_format_time(data.to_event_time)}"
    if filt.attribute == FilterAttribute.SEVERITY and filt.name == SEVERITY:
        return f"{translate(filt.name)}: {data.from_severity} - {data.to_severity}"
    return f"{translate(filt.attribute.value)} - {translate(filt.name)}"


class FilterController:
    """Shared plumbing: edit model store, composition and publishing."""

    def __init__(
        self,
        widget_configuration: Node,
        catalog: Optional[FilterCatalog] = None,
        composer: Optional[QueryComposer] = None,
        sink: Optional[QuerySink] = None,
        now: Optional[Clock] = None,
    ) -> None:
        self.widget_configuration = widget_configuration
        self.catalog = catalog or FilterCatalog()
        self.composer = composer or QueryComposer()
        self.sink = sink
        self._now = now or datetime.now
        self.store = EditModelStore(widget_configuration, now)
        self.filter_set = FilterSet()
        self.predicate = ""
        self.query = ""
        self.chips: list[FilterChip] = []

    @classmethod
    def from_widget(cls, widget: Node, **kwargs):
        """Create a controller for the widget configuration a widget points at.

        Raises:
            ConfigurationError: If the ConfigurationPointer alias is missing
                or dangling.
        """
        return cls(resolve_alias(widget.variable(CONFIGURATION_POINTER)), **kwargs)

    @property
    def configuration(self) -> Node:
        """The filter configuration root.

        Raises:
            ConfigurationError: If the configuration object is missing.
        """
        configuration = self.widget_configuration.get_child(FILTERS_CONFIGURATION)
        if configuration is None:
            raise ConfigurationError(
                f"{FILTERS_CONFIGURATION} not found",
                node=self.widget_configuration.path,
            )
        return configuration

    def refresh(self) -> str:
        """Recompose the query, publish it and regenerate the chips.

        Returns:
            The composed predicate.
        """
        self.predicate = self.composer.compose(self.filter_set, self.configuration)
        self.query = self.composer.build_query(self.predicate)
        if self.sink is not None:
            self.sink(self.query)

        self.chips = [
            FilterChip(filt.name, chip_text(filt, self.filter_set.data, self.catalog.translate))
            for filt in self.filter_set.checked()
        ]
        return self.predicate


class AlarmWidgetController(FilterController):
    """Toggle-backed operations of the alarm grid header."""

    def load(self) -> FilterSet:
        """Reload the filters from a freshly reconciled default edit model."""
        self.store.create_default(self.configuration)
        self.filter_set = load_filter_set(self.store.get(DEFAULT_EDIT_MODEL), self.catalog, self._now)
        return self.filter_set

    def start(self) -> str:
        self.load()
        return self.refresh()

    def filter(self, name: str) -> str:
        """Remove one filter (chip close button) and persist the change."""
        self.load()

        filt = self.filter_set.get(name)
        if filt is None:
            logger.warning("FilterBrowseName '%s' not found in filters list.", name)
        else:
            filt.checked = False
            ModelFields(self.store.get(DEFAULT_EDIT_MODEL)).set(filt.attribute, filt.name, False)

        return self.refresh()

    def clear_all(self) -> str:
        self.load()
        self.filter_set.uncheck_all()
        save_filter_set(self.filter_set, self.store.get(DEFAULT_EDIT_MODEL))
        return self.refresh()


class AlarmFilterController(FilterController):
    """Checkbox-backed operations of the filter editing panel.

    State machine: Idle -> Editing (control changes) -> Applied (persisted,
    recomposed) -> Idle. Close discards edits by reloading the default edit
    model without persisting.
    """

    def __init__(
        self,
        widget_configuration: Node,
        catalog: Optional[FilterCatalog] = None,
        composer: Optional[QueryComposer] = None,
        sink: Optional[QuerySink] = None,
        now: Optional[Clock] = None,
    ) -> None:
        super().__init__(widget_configuration, catalog, composer, sink, now)
        self.state = EditState.IDLE
        self.data = CheckBoxFilterData()
        self.filter_set = FilterSet(data=self.data)
        self.accordions: dict[FilterAttribute, Accordion] = {}
        self.custom_filters_panel = self._custom_filters_panel()

        self.store.create_default(self.configuration)
        self._build_controls()
        self._initialize(DEFAULT_EDIT_MODEL)

    def _custom_filters_panel(self) -> Accordion:
        panel = Accordion(name=DEFAULT_EDIT_MODEL)
        available = self.widget_configuration.variable(CUSTOM_FILTERS_AVAILABLE)
        expanded = self.widget_configuration.variable(CUSTOM_FILTERS_EXPANDED)

        if available is None or not available.value:
            panel.visible = False
        elif expanded is not None:
            panel.expanded = bool(expanded.value)
        return panel

    def _build_controls(self) -> None:
        """Create one checkbox per option field and the range inputs."""
        for attribute_field in self.store.get(DEFAULT_EDIT_MODEL).children:
            attribute = FilterAttribute.parse(attribute_field.name)
            if attribute is None:
                logger.warning("Accordion %s browse name is not a valid FilterAttribute.", attribute_field.name)
                continue

            accordion = self.accordions.setdefault(attribute, Accordion(name=attribute.value))
            for field in attribute_field.children:
                if field.name in RANGE_FIELDS or field.name in self.filter_set:
                    continue
                self.filter_set.add(CheckBoxFilter(
                    CheckBoxControl(name=field.name),
                    attribute,
                    self.catalog.predicate_for(attribute, field.name),
                    accordion,
                ))

        for bound in EVENT_TIME_COMPANIONS:
            if self._range_visible(FilterAttribute.EVENT_TIME, bound):
                self.data.event_time_pickers[bound] = DateTimePickerControl(name=bound, value=self._now())

        if self._range_visible(FilterAttribute.SEVERITY, SEVERITY):
            self.data.text_boxes[FROM_SEVERITY] = TextBoxControl(name=FROM_SEVERITY, text=str(DEFAULT_FROM_SEVERITY))
            self.data.text_boxes[TO_SEVERITY] = TextBoxControl(name=TO_SEVERITY, text=str(DEFAULT_TO_SEVERITY))

    def _range_visible(self, attribute: FilterAttribute, gate: str) -> bool:
        attribute_config = self.configuration.get_child(attribute.value)
        if attribute_config is None or not is_visible(attribute_config):
            return False
        gate_config = attribute_config.get_child(gate)
        return gate_config is not None and is_visible(gate_config)

    def _initialize(self, edit_model_name: str) -> None:
        fields = ModelFields(self.store.get(edit_model_name))
        self._initialize_checkboxes(fields)
        self._initialize_date_time_pickers(fields)
        self._initialize_text_boxes(fields)
        self._expand_accordions()

    def _initialize_checkboxes(self, fields: ModelFields) -> None:
        for filt in self.filter_set:
            filt.checked = bool(fields.get(filt.attribute, filt.name, False))

    def _initialize_date_time_pickers(self, fields: Optional[ModelFields]) -> None:
        for bound, companion in EVENT_TIME_COMPANIONS.items():
            picker = self.data.event_time_pickers.get(bound)
            if picker is None:
                continue
            if fields is not None and self.filter_set.is_checked(bound):
                value = fields.get(FilterAttribute.EVENT_TIME, companion)
                if value is not None:
                    picker.value = value
            else:
                picker.value = self._now()

    def _initialize_text_boxes(self, fields: Optional[ModelFields]) -> None:
        if FROM_SEVERITY not in self.data.text_boxes:
            return

        if fields is not None and self.filter_set.is_checked(SEVERITY):
            for name, default in ((FROM_SEVERITY, DEFAULT_FROM_SEVERITY), (TO_SEVERITY, DEFAULT_TO_SEVERITY)):
                value = fields.get(FilterAttribute.SEVERITY, name)
                if value is not None:
                    self.data.text_boxes[name].text = str(as_severity(value, default, name))
        else:
            self.data.text_boxes[FROM_SEVERITY].text = str(DEFAULT_FROM_SEVERITY)
            self.data.text_boxes[TO_SEVERITY].text = str(DEFAULT_TO_SEVERITY)

    def _expand_accordions(self) -> None:
        for attribute, accordion in self.accordions.items():
            accordion.expanded = any(f.checked for f in self.filter_set.by_attribute(attribute))

    def set_checked(self, name: str, value: bool = True) -> bool:
        """Toggle a checkbox; returns False for an unknown filter."""
        filt = self.filter_set.get(name)
        if filt is None:
            logger.warning("Filter %s browse name not found", name)
            return False
        filt.checked = value
        self.state = EditState.EDITING
        return True

    def set_event_time(self, bound: str, value: datetime) -> bool:
        picker = self.data.event_time_pickers.get(bound)
        if picker is None:
            logger.warning("DateTimePicker %s not found", bound)
            return False
        picker.value = value
        self.state = EditState.EDITING
        return True

    def set_severity_text(self, from_text: Optional[str] = None, to_text: Optional[str] = None) -> bool:
        if FROM_SEVERITY not in self.data.text_boxes:
            logger.warning("Severity text boxes not found")
            return False
        if from_text is not None:
            self.data.text_boxes[FROM_SEVERITY].text = from_text
        if to_text is not None:
            self.data.text_boxes[TO_SEVERITY].text = to_text
        self.state = EditState.EDITING
        return True

    def filter(self, name: str) -> str:
        """Recompose after the checkbox ``name`` changed."""
        if name not in self.filter_set:
            logger.warning("Filter %s browse name not found", name)
        else:
            self.state = EditState.EDITING
        return self.refresh()

    def save_all(self) -> None:
        """Persist every control into the default edit model."""
        save_filter_set(self.filter_set, self.store.get(DEFAULT_EDIT_MODEL))
        self.state = EditState.APPLIED

    def apply(self) -> str:
        self.save_all()
        predicate = self.refresh()
        self.state = EditState.IDLE
        return predicate

    def load_preset(self, name: str) -> str:
        """Load a preset into the controls and apply it.

        Raises:
            ConfigurationError: If the preset does not exist.
        """
        self._initialize(name)
        return self.apply()

    def clear_all(self) -> str:
        self.filter_set.uncheck_all()
        self._initialize_date_time_pickers(None)
        self._initialize_text_boxes(None)
        self.state = EditState.EDITING
        return self.apply()

    def close(self) -> str:
        """Discard edits by reloading the default edit model."""
        self._initialize(DEFAULT_EDIT_MODEL)
        predicate = self.refresh()
        self.state = EditState.IDLE
        return predicate
