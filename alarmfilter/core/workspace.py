"""Workspace scaffolding for the alarmfilter CLI.

A workspace is a small node tree standing in for the HMI project:

    Workspace
      AlarmWidgetConfiguration        widget configuration node
        FiltersConfiguration          filter configuration tree
        AlarmWidgetComponents         alias -> Workspace/Components
        CustomFiltersAvailableOnRuntime
        CustomFiltersExpandedByDefault
        CustomFilters, PresetFilters1 ...   edit models
      Components                      folder holding the schema type

It is persisted as a JSON NodeSnapshot between CLI invocations.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from alarmfilter.core.catalog import FILTERS_CONFIGURATION
from alarmfilter.core.controller import CUSTOM_FILTERS_AVAILABLE, CUSTOM_FILTERS_EXPANDED
from alarmfilter.core.edit_model import COMPONENTS_ALIAS
from alarmfilter.models.node import (
    ConfigurationError,
    Node,
    NodeSnapshot,
    ValueType,
    make_alias,
    make_folder,
    make_object,
    make_typed_leaf,
)

logger = logging.getLogger(__name__)

WORKSPACE_ROOT = "Workspace"
WIDGET_CONFIGURATION = "AlarmWidgetConfiguration"
COMPONENTS_FOLDER = "Components"


def create_workspace(
    configuration: Node,
    available_on_runtime: bool = True,
    expanded_by_default: bool = False,
) -> Node:
    """Build an empty workspace around a filter configuration tree.

    Returns:
        The workspace root.
    """
    root = make_object(WORKSPACE_ROOT)
    components = root.add_child(make_folder(COMPONENTS_FOLDER))

    widget = root.add_child(make_object(WIDGET_CONFIGURATION))
    configuration.name = FILTERS_CONFIGURATION
    widget.add_child(configuration)
    widget.add_child(make_alias(COMPONENTS_ALIAS, components))
    widget.add_child(make_typed_leaf(CUSTOM_FILTERS_AVAILABLE, ValueType.BOOLEAN, available_on_runtime))
    widget.add_child(make_typed_leaf(CUSTOM_FILTERS_EXPANDED, ValueType.BOOLEAN, expanded_by_default))
    return root


def widget_configuration(root: Node) -> Node:
    """The widget configuration node of a workspace.

    Raises:
        ConfigurationError: If the workspace has none.
    """
    node = root.get_child(WIDGET_CONFIGURATION)
    if node is None:
        raise ConfigurationError(f"{WIDGET_CONFIGURATION} not found", node=root.path)
    return node


def replace_configuration(root: Node, configuration: Node) -> Node:
    """Swap in a new filter configuration tree, keeping the edit models."""
    parent = widget_configuration(root)
    current = parent.get_child(FILTERS_CONFIGURATION)
    if current is not None:
        parent.remove_child(current)
    configuration.name = FILTERS_CONFIGURATION
    return parent.add_child(configuration)


def load_workspace(path: Path) -> Node:
    """Load a workspace snapshot.

    Raises:
        ConfigurationError: If the file is not a valid snapshot.
        FileNotFoundError: If the file does not exist.
    """
    try:
        snapshot = NodeSnapshot.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise ConfigurationError(f"invalid workspace snapshot: {e}", node=str(path)) from e
    logger.debug("Loaded workspace %s", path)
    return snapshot.to_node()


def save_workspace(root: Node, path: Path) -> None:
    data = NodeSnapshot.from_node(root).model_dump(mode="json")
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    logger.debug("Saved workspace %s", path)
