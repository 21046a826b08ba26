"""Filter catalog for alarmfilter.

The catalog knows which filter attributes exist, which options each attribute
offers by default, and how a checked option turns into a predicate fragment of
the alarm query. Hand-authored fragments for well-known options live in an
immutable override table keyed by (attribute, option name); callers can inject
additional overrides, but the module-level table is never mutated.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Mapping, Optional

from alarmfilter.models.filter_def import (
    FROM_EVENT_TIME,
    SEVERITY,
    TO_EVENT_TIME,
    AttributeLike,
    FilterAttribute,
)
from alarmfilter.models.node import Node, ValueType, make_object, make_typed_leaf

if TYPE_CHECKING:
    from alarmfilter.core.config import FilterSection

logger = logging.getLogger(__name__)

FILTERS_CONFIGURATION = "FiltersConfiguration"

Translator = Callable[[str], Optional[str]]
PredicateKey = tuple[FilterAttribute, str]

PRESET_PREDICATES: Mapping[PredicateKey, str] = MappingProxyType({
    (FilterAttribute.PRIORITY, "Urgent"): "(Severity >= 751 AND Severity <= 1000)",
    (FilterAttribute.PRIORITY, "High"): "(Severity >= 501 AND Severity <= 750)",
    (FilterAttribute.PRIORITY, "Medium"): "(Severity >= 251 AND Severity <= 500)",
    (FilterAttribute.PRIORITY, "Low"): "(Severity >= 1 AND Severity <= 250)",
    (FilterAttribute.ALARM_STATUS, "NormalUnacked"): "(ActiveState.Id = 0 AND AckedState.Id = 0)",
    (FilterAttribute.ALARM_STATUS, "InAlarm"): "ActiveState.Id = 1",
    (FilterAttribute.ALARM_STATUS, "InAlarmAcked"): "(ActiveState.Id = 1 AND AckedState.Id = 1)",
    (FilterAttribute.ALARM_STATUS, "InAlarmUnacked"): "(ActiveState.Id = 1 AND AckedState.Id = 0)",
    (FilterAttribute.ALARM_STATUS, "InAlarmConfirmed"): "(ActiveState.Id = 1 AND ConfirmedState.Id = 1)",
    (FilterAttribute.ALARM_STATUS, "InAlarmUnconfirmed"): "(ActiveState.Id = 1 AND ConfirmedState.Id = 0)",
    (FilterAttribute.ALARM_STATUS, "Enabled"): "EnabledState.Id = 1",
    (FilterAttribute.ALARM_STATUS, "Disabled"): "EnabledState.Id = 0",
    (FilterAttribute.ALARM_STATUS, "Suppressed"): "SuppressedState.Id = 1",
    (FilterAttribute.ALARM_STATUS, "Unsuppressed"): "SuppressedState.Id = 0",
    # Structural: handled as ranges by the query composer
    (FilterAttribute.SEVERITY, SEVERITY): "",
    (FilterAttribute.EVENT_TIME, FROM_EVENT_TIME): "",
    (FilterAttribute.EVENT_TIME, TO_EVENT_TIME): "",
})

CATALOG_OPTIONS: Mapping[FilterAttribute, tuple[str, ...]] = MappingProxyType({
    FilterAttribute.ALARM_STATE: (
        "HighHighState",
        "HighState",
        "LowLowState",
        "LowState",
        "ActiveStateDigital",
        "InactiveState",
    ),
    FilterAttribute.NAME: (),
    FilterAttribute.CLASS: (),
    FilterAttribute.EVENT_TIME: (FROM_EVENT_TIME, TO_EVENT_TIME),
    FilterAttribute.GROUP: (),
    FilterAttribute.INHIBIT: ("Unshelved", "OneShotShelved", "TimedShelved"),
    FilterAttribute.MESSAGE: (),
    FilterAttribute.PRIORITY: ("Urgent", "High", "Medium", "Low"),
    FilterAttribute.SEVERITY: (SEVERITY,),
    FilterAttribute.ALARM_STATUS: (
        "NormalUnacked",
        "InAlarm",
        "InAlarmAcked",
        "InAlarmUnacked",
        "InAlarmConfirmed",
        "InAlarmUnconfirmed",
        "Enabled",
        "Disabled",
        "Suppressed",
        "Unsuppressed",
    ),
})

# Attributes whose options are project-specific names supplied by configuration
OPEN_ATTRIBUTES = frozenset({
    FilterAttribute.NAME,
    FilterAttribute.CLASS,
    FilterAttribute.GROUP,
    FilterAttribute.MESSAGE,
})

LIKE_COLUMNS: Mapping[FilterAttribute, str] = MappingProxyType({
    FilterAttribute.CLASS: "RAAlarmData.AlarmClass",
    FilterAttribute.GROUP: "RAAlarmData.AlarmGroup",
    FilterAttribute.NAME: "BrowseName",
})

# Alarm states overlap: a HighHigh alarm is reported as "HighHigh High", so
# each checkbox matches its pure state and the combined one.
ALARM_STATE_VARIANTS: Mapping[str, tuple[tuple[str, ...], ...]] = MappingProxyType({
    "HighHighState": (("HighHighState",), ("HighHighState", "HighState")),
    "HighState": (("HighState",), ("HighHighState", "HighState")),
    "LowLowState": (("LowLowState",), ("LowState", "LowLowState")),
    "LowState": (("LowState",), ("LowState", "LowLowState")),
    "ActiveStateDigital": (("ActiveState",),),
    "InactiveState": (("InactiveState",),),
})


def quote(text: str) -> str:
    """Render ``text`` as a single-quoted string literal."""
    return "'" + text.replace("'", "''") + "'"


def _like_pattern(text: str) -> str:
    return quote(f"%{text}%")


class FilterCatalog:
    """Supported filter attributes and the predicate fragment of each option.

    Example usage:
        catalog = FilterCatalog(translate={"HighState": "High"}.get)
        catalog.predicate_for(FilterAttribute.GROUP, "Compressor")
        # "RAAlarmData.AlarmGroup LIKE '%Compressor%'"
    """

    def __init__(
        self,
        translate: Optional[Translator] = None,
        overrides: Optional[Mapping[PredicateKey, str]] = None,
    ) -> None:
        """Initialize the catalog.

        Args:
            translate: Callable returning display text for an identifier, or
                None/empty when there is no translation.
            overrides: Extra hand-authored fragments, taking precedence over
                the built-in table.
        """
        self._translate = translate
        table = dict(PRESET_PREDICATES)
        if overrides:
            table.update(overrides)
        self._overrides: Mapping[PredicateKey, str] = MappingProxyType(table)

    @property
    def overrides(self) -> Mapping[PredicateKey, str]:
        return self._overrides

    def translate(self, identifier: str) -> str:
        """Translate an identifier, falling back to the identifier itself."""
        if self._translate is None:
            return identifier
        text = self._translate(identifier)
        return text if text else identifier

    def predicate_for(self, attribute: AttributeLike, identifier: str) -> str:
        """Build the predicate fragment for one checked option.

        Unknown attributes never raise: the attribute name is used as the
        column of a generic LIKE match.

        Args:
            attribute: Attribute the option belongs to.
            identifier: Option name (checkbox identifier).

        Returns:
            The fragment; empty for structural options handled elsewhere.
        """
        parsed = attribute if isinstance(attribute, FilterAttribute) else FilterAttribute.parse(attribute)

        if parsed is not None:
            override = self._overrides.get((parsed, identifier))
            if override is not None:
                return override
            if parsed == FilterAttribute.ALARM_STATE:
                return self.alarm_state_predicate(identifier)
            if parsed == FilterAttribute.INHIBIT:
                return f"ShelvingState.CurrentState = {quote(self.translate(identifier))}"
            column = LIKE_COLUMNS.get(parsed, parsed.value)
        else:
            column = str(attribute)

        return f"{column} LIKE {_like_pattern(self.translate(identifier))}"

    def alarm_state_predicate(self, identifier: str) -> str:
        """IN-disjunction over every display text the state can appear as.

        Returns an empty string for identifiers that are not alarm states.
        """
        variants = ALARM_STATE_VARIANTS.get(identifier)
        if variants is None:
            return ""

        texts = [
            " ".join(self.translate(part) for part in variant)
            for variant in variants
        ]
        return f"CurrentState IN ({','.join(quote(t) for t in texts)})"

    def options(self, attribute: FilterAttribute) -> tuple[str, ...]:
        """Default options the catalog offers for an attribute."""
        return CATALOG_OPTIONS.get(attribute, ())

    def is_open(self, attribute: FilterAttribute) -> bool:
        return attribute in OPEN_ATTRIBUTES

    def build_configuration(
        self,
        sections: Mapping[str, FilterSection],
        name: str = FILTERS_CONFIGURATION,
    ) -> Node:
        """Build the configuration tree from per-attribute settings.

        Every catalog attribute appears, in catalog order; attributes without
        a section are invisible. Closed attributes keep their catalog options
        and ignore unknown ones; open attributes take their options from the
        section.

        Args:
            sections: Mapping of attribute name to its FilterSection.
            name: Browse name of the configuration root.

        Returns:
            Configuration root object.
        """
        for attribute_name in sections:
            if FilterAttribute.parse(attribute_name) is None:
                logger.warning("Filter attribute '%s' is not a valid FilterAttribute", attribute_name)

        root = make_object(name)
        for attribute in FilterAttribute:
            section = sections.get(attribute.value)
            visible = bool(section.visible) if section else False
            flags = dict(section.options) if section else {}

            attribute_node = make_typed_leaf(attribute.value, ValueType.BOOLEAN, visible)
            root.add_child(attribute_node)

            if self.is_open(attribute):
                option_names = list(flags)
            else:
                option_names = list(self.options(attribute))
                for unknown in sorted(set(flags) - set(option_names)):
                    logger.warning("Option '%s' is not available for %s", unknown, attribute.value)

            for option in option_names:
                attribute_node.add_child(
                    make_typed_leaf(option, ValueType.BOOLEAN, bool(flags.get(option, False)))
                )

        return root
