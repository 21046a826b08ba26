"""Schema reconciliation for alarmfilter edit models.

Two operations keep edit models in step with the filter configuration:

- update_type() diffs the schema type against the configuration tree, adding
  a field for every visible configuration path and removing the rest.
- reconcile_instance() makes an edit model's fields match the schema type at
  every depth, seeding new fields from the type.

Both are idempotent and are run unconditionally after every configuration
change; nothing here tracks what changed.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

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
)
from alarmfilter.models.node import Node, TypedTree, ValueType, make_typed_leaf

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Timestamp companion of each EventTime bound gate
EVENT_TIME_COMPANIONS = {
    FROM_EVENT_TIME: FROM_EVENT_TIME_DATETIME,
    TO_EVENT_TIME: TO_EVENT_TIME_DATETIME,
}

SEVERITY_BOUNDS = (
    (FROM_SEVERITY, DEFAULT_FROM_SEVERITY),
    (TO_SEVERITY, DEFAULT_TO_SEVERITY),
)

# Fields derived from a gate rather than mirrored from a configuration node
RANGE_COMPANIONS = frozenset({
    FROM_EVENT_TIME_DATETIME,
    TO_EVENT_TIME_DATETIME,
    FROM_SEVERITY,
    TO_SEVERITY,
})


def is_visible(node: Node) -> bool:
    """Whether a configuration node is enabled."""
    return bool(node.value)


def update_type(schema_type: Node, configuration: Node, now: Optional[Clock] = None) -> Node:
    """Bring the schema type in line with the configuration tree.

    Args:
        schema_type: Object type holding one field per attribute.
        configuration: Configuration root whose children are attributes.
        now: Clock used to seed new EventTime companions.

    Returns:
        The updated schema type.
    """
    clock = now or datetime.now

    for attribute in configuration.children:
        field = schema_type.get_child(attribute.name)

        if not is_visible(attribute):
            if field is not None:
                schema_type.remove_child(field)
            continue

        if field is None:
            field = schema_type.add_child(make_typed_leaf(attribute.name, ValueType.BASE))
        _update_attribute(field, attribute, clock)

    _remove_stale(schema_type, configuration)

    logger.debug("Updated schema type %s: %s", schema_type.name, [c.name for c in schema_type.children])
    return schema_type


def _update_attribute(field: Node, attribute: Node, clock: Clock) -> None:
    if attribute.name == FilterAttribute.EVENT_TIME.value:
        _update_event_time(field, attribute, clock)
    elif attribute.name == FilterAttribute.SEVERITY.value:
        _update_severity(field, attribute)
    else:
        _mirror_options(field, attribute)


def _remove_stale(field: Node, configuration: Node) -> None:
    """Drop fields whose configuration node no longer exists."""
    for child in field.children:
        if child.name in RANGE_COMPANIONS:
            continue
        if configuration.get_child(child.name) is None:
            logger.debug("Removing stale field %s", child.path)
            field.remove_child(child)


def _sync_flag(field: Node, option: Node) -> Optional[Node]:
    """Ensure a boolean field exists exactly while the option is visible."""
    setting = field.get_child(option.name)

    if not is_visible(option):
        if setting is not None:
            field.remove_child(setting)
        return None

    if setting is None:
        setting = field.add_child(make_typed_leaf(option.name, ValueType.BOOLEAN, False))
    return setting


def _mirror_options(field: Node, attribute: Node) -> None:
    _remove_stale(field, attribute)
    for option in attribute.children:
        setting = _sync_flag(field, option)
        if setting is not None and option.children:
            _mirror_options(setting, option)


def _update_event_time(field: Node, attribute: Node, clock: Clock) -> None:
    _remove_stale(field, attribute)
    for bound in attribute.children:
        _sync_flag(field, bound)

        companion_name = EVENT_TIME_COMPANIONS.get(bound.name)
        if companion_name is None:
            continue

        companion = field.get_child(companion_name)
        if not is_visible(bound):
            if companion is not None:
                field.remove_child(companion)
        elif companion is None:
            field.add_child(make_typed_leaf(companion_name, ValueType.DATETIME, clock()))


def _update_severity(field: Node, attribute: Node) -> None:
    _remove_stale(field, attribute)
    for option in attribute.children:
        _sync_flag(field, option)

        if option.name != SEVERITY:
            continue

        for bound_name, default in SEVERITY_BOUNDS:
            bound = field.get_child(bound_name)
            if not is_visible(option):
                if bound is not None:
                    field.remove_child(bound)
            elif bound is None:
                field.add_child(make_typed_leaf(bound_name, ValueType.UINT16, default))


def reconcile_instance(instance: TypedTree, schema_type: TypedTree) -> TypedTree:
    """Make an instance's fields match the schema type exactly.

    Fields missing from the type are pruned first (children before parents),
    then fields missing from the instance are grafted in with the type's
    current value and a prototype link back to the type field.
    """
    prune_fields(instance, schema_type)
    graft_fields(instance, schema_type)
    logger.debug("Reconciled %s against %s", instance.name, schema_type.name)
    return instance


def prune_fields(instance: TypedTree, schema_type: TypedTree) -> None:
    """Remove every instance field without a counterpart at the same path."""
    for child in instance.children:
        type_child = schema_type.get_child(child.name)
        if type_child is None:
            instance.remove_child(child)
        else:
            prune_fields(child, type_child)


def graft_fields(instance: TypedTree, schema_type: TypedTree) -> None:
    """Add every schema field missing from the instance."""
    for type_child in schema_type.children:
        child = instance.get_child(type_child.name)
        if child is None:
            child = make_typed_leaf(type_child.name, type_child.value_type, type_child.value)
            child.prototype = type_child
            instance.add_child(child)
        graft_fields(child, type_child)


def field_paths(tree: TypedTree, prefix: str = "") -> set[str]:
    """All field paths below ``tree``, used to compare shapes."""
    paths: set[str] = set()
    for child in tree.children:
        path = f"{prefix}{child.name}"
        paths.add(path)
        paths |= field_paths(child, path + "/")
    return paths
