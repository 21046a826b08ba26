"""Filter data models for alarmfilter.

A Filter is one selectable alarm condition: an attribute category plus an
identifying name, a checked flag and the predicate fragment it contributes to
the alarm query. Two shapes exist:

- ToggleFilter keeps the checked flag itself (state lives in the edit model).
- CheckBoxFilter reads and writes the flag of a live CheckBoxControl.

Range bounds for EventTime and Severity travel next to the filters in a
FilterData object, again in a toggle-backed and a control-backed shape.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Iterable, Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

FROM_EVENT_TIME = "FromEventTime"
TO_EVENT_TIME = "ToEventTime"
FROM_EVENT_TIME_DATETIME = "FromEventTimeDateTime"
TO_EVENT_TIME_DATETIME = "ToEventTimeDateTime"
SEVERITY = "Severity"
FROM_SEVERITY = "FromSeverity"
TO_SEVERITY = "ToSeverity"

DEFAULT_FROM_SEVERITY = 1
DEFAULT_TO_SEVERITY = 1000


class FilterAttribute(str, Enum):
    """Alarm attribute a filter applies to."""

    ALARM_STATE = "AlarmState"
    NAME = "Name"
    CLASS = "Class"
    EVENT_TIME = "EventTime"
    GROUP = "Group"
    INHIBIT = "Inhibit"
    MESSAGE = "Message"
    PRIORITY = "Priority"
    SEVERITY = "Severity"
    ALARM_STATUS = "AlarmStatus"

    @classmethod
    def parse(cls, value: str) -> Optional[FilterAttribute]:
        """Return the attribute named ``value``, or None if there is none."""
        try:
            return cls(value)
        except ValueError:
            return None


AttributeLike = Union[FilterAttribute, str]


class CheckBoxControl(BaseModel):
    """A checkbox input owned by the host UI."""

    model_config = ConfigDict(frozen=False)

    name: str
    checked: bool = False


class TextBoxControl(BaseModel):
    """A free-text input owned by the host UI."""

    model_config = ConfigDict(frozen=False)

    name: str
    text: str = ""


class DateTimePickerControl(BaseModel):
    """A timestamp picker owned by the host UI."""

    model_config = ConfigDict(frozen=False)

    name: str
    value: datetime = Field(default_factory=datetime.now)


class Accordion(BaseModel):
    """Collapsible section grouping the filters of one attribute."""

    model_config = ConfigDict(frozen=False)

    name: str
    expanded: bool = False
    visible: bool = True


class Filter(ABC):
    """A selectable alarm condition.

    Attributes:
        attribute: Attribute category the filter belongs to.
        name: Identifier of the filter, unique within a FilterSet.
        predicate: Query fragment contributed when the filter is checked.
            Empty for structural filters (EventTime bounds, Severity gate).
    """

    def __init__(self, attribute: FilterAttribute, name: str, predicate: str = "") -> None:
        self._attribute = attribute
        self._name = name
        self.predicate = predicate

    @property
    def attribute(self) -> FilterAttribute:
        return self._attribute

    @property
    def name(self) -> str:
        return self._name

    @property
    @abstractmethod
    def checked(self) -> bool:
        """Whether the filter currently participates in the query."""

    @checked.setter
    @abstractmethod
    def checked(self, value: bool) -> None: ...

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.attribute.value!r}, {self.name!r}, "
            f"checked={self.checked})"
        )


class ToggleFilter(Filter):
    """Filter whose checked flag is held in memory."""

    def __init__(
        self,
        attribute: FilterAttribute,
        name: str,
        checked: bool = False,
        predicate: str = "",
    ) -> None:
        super().__init__(attribute, name, predicate)
        self._checked = bool(checked)

    @property
    def checked(self) -> bool:
        return self._checked

    @checked.setter
    def checked(self, value: bool) -> None:
        self._checked = bool(value)


class CheckBoxFilter(Filter):
    """Filter whose checked flag lives in a CheckBoxControl."""

    def __init__(
        self,
        control: CheckBoxControl,
        attribute: FilterAttribute,
        predicate: str = "",
        accordion: Optional[Accordion] = None,
    ) -> None:
        super().__init__(attribute, control.name, predicate)
        self.control = control
        self.accordion = accordion

    @property
    def checked(self) -> bool:
        return self.control.checked

    @checked.setter
    def checked(self, value: bool) -> None:
        self.control.checked = bool(value)


class ToggleFilterData(BaseModel):
    """Range bounds held in memory, loaded from an edit model."""

    model_config = ConfigDict(frozen=False)

    from_event_time: datetime = Field(default_factory=datetime.now)
    to_event_time: datetime = Field(default_factory=datetime.now)
    from_severity: int = DEFAULT_FROM_SEVERITY
    to_severity: int = DEFAULT_TO_SEVERITY


class CheckBoxFilterData:
    """Range bounds read from live picker and text box controls.

    Severity text that does not parse as an integer falls back to the
    default bound and logs a warning.
    """

    def __init__(self) -> None:
        self.event_time_pickers: dict[str, DateTimePickerControl] = {}
        self.text_boxes: dict[str, TextBoxControl] = {}

    @property
    def from_event_time(self) -> Optional[datetime]:
        picker = self.event_time_pickers.get(FROM_EVENT_TIME)
        return picker.value if picker else None

    @property
    def to_event_time(self) -> Optional[datetime]:
        picker = self.event_time_pickers.get(TO_EVENT_TIME)
        return picker.value if picker else None

    @property
    def from_severity(self) -> int:
        return self._parse_severity(FROM_SEVERITY, DEFAULT_FROM_SEVERITY)

    @property
    def to_severity(self) -> int:
        return self._parse_severity(TO_SEVERITY, DEFAULT_TO_SEVERITY)

    def _parse_severity(self, name: str, default: int) -> int:
        text_box = self.text_boxes.get(name)
        text = text_box.text if text_box else ""
        try:
            return int(text.strip())
        except ValueError:
            logger.warning('TextBox "%s" should contain an integer value, got %r', name, text)
            return default


FilterData = Union[ToggleFilterData, CheckBoxFilterData]


class FilterSet:
    """Ordered collection of filters keyed by name, plus their range data."""

    def __init__(self, filters: Iterable[Filter] = (), data: Optional[FilterData] = None) -> None:
        self._filters: dict[str, Filter] = {}
        self.data: FilterData = data if data is not None else ToggleFilterData()
        for filt in filters:
            self.add(filt)

    def add(self, filt: Filter) -> Filter:
        """Add a filter.

        Raises:
            ValueError: If a filter with the same name is already present.
        """
        if filt.name in self._filters:
            raise ValueError(f"Duplicate filter name: {filt.name}")
        self._filters[filt.name] = filt
        return filt

    def get(self, name: str) -> Optional[Filter]:
        return self._filters.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._filters

    def __iter__(self) -> Iterator[Filter]:
        return iter(list(self._filters.values()))

    def __len__(self) -> int:
        return len(self._filters)

    def checked(self) -> list[Filter]:
        return [f for f in self._filters.values() if f.checked]

    def attributes(self) -> list[FilterAttribute]:
        """Attributes present in the set, in order of first appearance."""
        seen: dict[FilterAttribute, None] = {}
        for filt in self._filters.values():
            seen.setdefault(filt.attribute, None)
        return list(seen)

    def by_attribute(self, attribute: FilterAttribute) -> list[Filter]:
        return [f for f in self._filters.values() if f.attribute == attribute]

    def is_checked(self, name: str) -> bool:
        filt = self._filters.get(name)
        return filt is not None and filt.checked

    def uncheck_all(self) -> None:
        for filt in self._filters.values():
            filt.checked = False
