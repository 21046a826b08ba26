"""Query composition for alarmfilter.

The composer turns the checked filters of a FilterSet into one predicate:

- fragments of the same attribute are ORed (more boxes, broader match);
- attribute groups are ANDed (more attributes, narrower match);
- EventTime and Severity contribute range comparisons for their checked
  gates instead of leaf fragments;
- an attribute with nothing checked contributes nothing, and an empty
  result is the match-all sentinel.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping, Optional

from alarmfilter.core.catalog import quote
from alarmfilter.core.reconcile import is_visible
from alarmfilter.models.filter_def import (
    FROM_EVENT_TIME,
    SEVERITY,
    TO_EVENT_TIME,
    FilterAttribute,
    FilterSet,
)
from alarmfilter.models.node import Node

logger = logging.getLogger(__name__)

MATCH_ALL = "1 = 1"
DEFAULT_BASE_QUERY = "SELECT * FROM Model"


@dataclass(frozen=True)
class RangeBound:
    """One side of a range attribute.

    Attributes:
        gate: Filter name that enables this bound.
        column: Queried column.
        operator: Comparison operator.
        data_key: FilterData attribute holding the bound value.
    """

    gate: str
    column: str
    operator: str
    data_key: str


RANGE_BOUNDS: Mapping[FilterAttribute, tuple[RangeBound, ...]] = MappingProxyType({
    FilterAttribute.EVENT_TIME: (
        RangeBound(FROM_EVENT_TIME, "EventTime", ">=", "from_event_time"),
        RangeBound(TO_EVENT_TIME, "EventTime", "<=", "to_event_time"),
    ),
    FilterAttribute.SEVERITY: (
        RangeBound(SEVERITY, "Severity", ">=", "from_severity"),
        RangeBound(SEVERITY, "Severity", "<=", "to_severity"),
    ),
})


def format_literal(value: Any) -> str:
    """Render a bound value as a query literal."""
    if isinstance(value, datetime):
        return quote(value.isoformat(timespec="seconds"))
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return quote(str(value))


def _group(fragments: list[str], operator: str) -> str:
    if len(fragments) == 1:
        return fragments[0]
    return "(" + f" {operator} ".join(fragments) + ")"


class QueryComposer:
    """Compose the alarm query predicate from a FilterSet.

    Example usage:
        composer = QueryComposer()
        predicate = composer.compose(filter_set, configuration)
        query = composer.build_query(predicate)
    """

    def __init__(self, base_query: str = DEFAULT_BASE_QUERY) -> None:
        self.base_query = base_query

    def compose(self, filter_set: FilterSet, configuration: Optional[Node] = None) -> str:
        """Compose the predicate for the checked filters.

        Args:
            filter_set: Filters and range data to compile.
            configuration: Filter configuration root. When given, range
                bounds whose attribute or gate is not visible are skipped.

        Returns:
            The predicate, or MATCH_ALL when nothing is checked.
        """
        groups: list[str] = []

        for attribute in filter_set.attributes():
            if attribute in RANGE_BOUNDS:
                fragments = self._range_fragments(attribute, filter_set, configuration)
                if fragments:
                    groups.append(_group(fragments, "AND"))
                continue

            fragments = [
                filt.predicate
                for filt in filter_set.by_attribute(attribute)
                if filt.checked and filt.predicate
            ]
            if fragments:
                groups.append(_group(fragments, "OR"))

        predicate = " AND ".join(groups) if groups else MATCH_ALL
        logger.debug("Composed predicate: %s", predicate)
        return predicate

    def build_query(self, predicate: str) -> str:
        """Wrap a predicate into the full record query."""
        if not predicate or predicate == MATCH_ALL:
            return self.base_query
        return f"{self.base_query} WHERE {predicate}"

    def _range_fragments(
        self,
        attribute: FilterAttribute,
        filter_set: FilterSet,
        configuration: Optional[Node],
    ) -> list[str]:
        attribute_config = None
        if configuration is not None:
            attribute_config = configuration.get_child(attribute.value)
            if attribute_config is None or not is_visible(attribute_config):
                return []

        fragments = []
        for bound in RANGE_BOUNDS[attribute]:
            if not filter_set.is_checked(bound.gate):
                continue
            if attribute_config is not None:
                gate_config = attribute_config.get_child(bound.gate)
                if gate_config is None or not is_visible(gate_config):
                    continue

            value = getattr(filter_set.data, bound.data_key)
            if value is None:
                continue
            fragments.append(f"{bound.column} {bound.operator} {format_literal(value)}")
        return fragments
