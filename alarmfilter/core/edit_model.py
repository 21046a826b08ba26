"""Edit model storage for alarmfilter.

Edit models are named objects under the widget configuration node: the
default model ``CustomFilters`` plus any number of ``PresetFilters{N}``
presets. All of them are instances of one schema type kept in the components
folder that the widget configuration points at through its
``AlarmWidgetComponents`` alias.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from alarmfilter.core.catalog import FILTERS_CONFIGURATION
from alarmfilter.core.reconcile import Clock, reconcile_instance, update_type
from alarmfilter.models.node import (
    ConfigurationError,
    Node,
    NodeKind,
    make_object_from_type,
    make_object_type,
    resolve_alias,
)

logger = logging.getLogger(__name__)

DEFAULT_EDIT_MODEL = "CustomFilters"
PRESET_PREFIX = "PresetFilters"
COMPONENTS_ALIAS = "AlarmWidgetComponents"
GENERATOR_NAME = "AlarmWidgetGenerateDefaultFiltersToggle"

# Siblings of the edit models that are never edit models themselves
RESERVED_NAMES = frozenset({FILTERS_CONFIGURATION, GENERATOR_NAME})


def find_next_available_preset_name(
    existing_names: Optional[Iterable[str]],
    prefix: str = PRESET_PREFIX,
) -> str:
    """Return the smallest unused ``<prefix><N>`` with N >= 1.

    The bare prefix counts as index 0, names with a non-numeric suffix are
    ignored, and gaps are filled before appending.

    Args:
        existing_names: Names already in use (None is treated as empty).
        prefix: Base preset name.

    Returns:
        The next available preset name.
    """
    used: set[int] = set()
    for name in existing_names or ():
        if not name.startswith(prefix):
            continue
        suffix = name[len(prefix):]
        if suffix == "":
            used.add(0)
        elif re.fullmatch(r"[+-]?\d+", suffix):
            used.add(int(suffix))

    counter = 1
    while counter in used:
        counter += 1
    return f"{prefix}{counter}"


class EditModelStore:
    """CRUD over the edit models of one widget configuration node.

    Example usage:
        store = EditModelStore(widget_configuration)
        store.create_default(configuration)
        preset = store.create_preset(configuration)
        store.update_all(configuration)
    """

    def __init__(self, parent: Node, now: Optional[Clock] = None) -> None:
        """Initialize the store.

        Args:
            parent: Widget configuration node that owns the edit models.
            now: Clock used to seed EventTime companions.
        """
        self.parent = parent
        self._now = now

    def components_folder(self) -> Node:
        """Resolve the folder holding the schema type.

        Raises:
            ConfigurationError: If the alias or its target is missing.
        """
        return resolve_alias(self.parent.variable(COMPONENTS_ALIAS))

    def schema_type(self) -> Node:
        """Find the schema type, creating an empty one on first use."""
        folder = self.components_folder()
        schema_type = folder.get_child(self.parent.name)
        if schema_type is None:
            schema_type = folder.add_child(make_object_type(self.parent.name))
            logger.debug("Created schema type %s", schema_type.path)
        return schema_type

    def rebuild_type(self, configuration: Node) -> Node:
        return update_type(self.schema_type(), configuration, self._now)

    def create(self, configuration: Node, name: str = DEFAULT_EDIT_MODEL) -> Node:
        """Ensure the named edit model exists and matches a fresh type.

        Args:
            configuration: Filter configuration root.
            name: Browse name of the edit model.

        Returns:
            The created or existing edit model.

        Raises:
            ConfigurationError: If ``name`` is reserved or names a sibling
                that is not an object.
        """
        if name in RESERVED_NAMES:
            raise ConfigurationError(f"{name} is reserved and cannot be an edit model", node=self.parent.path)

        edit_model = self.parent.get_child(name)
        if edit_model is not None and edit_model.kind != NodeKind.OBJECT:
            raise ConfigurationError(f"{name} is not an edit model", node=self.parent.path)

        schema_type = self.rebuild_type(configuration)
        if edit_model is None:
            edit_model = self.parent.add_child(make_object_from_type(name, schema_type))
            logger.debug("Created edit model %s", edit_model.path)

        return reconcile_instance(edit_model, schema_type)

    def create_default(self, configuration: Node) -> Node:
        return self.create(configuration, DEFAULT_EDIT_MODEL)

    def create_preset(self, configuration: Node, name: Optional[str] = None) -> Node:
        """Create a preset, allocating the next ``PresetFilters{N}`` name if none is given."""
        if name is None:
            existing = [node.name for node in self.parent.objects()]
            name = find_next_available_preset_name(existing, PRESET_PREFIX)
        return self.create(configuration, name)

    def find(self, name: str) -> Optional[Node]:
        edit_model = self.parent.get_child(name)
        if edit_model is None or name in RESERVED_NAMES or edit_model.kind != NodeKind.OBJECT:
            return None
        return edit_model

    def get(self, name: str = DEFAULT_EDIT_MODEL) -> Node:
        """Get an edit model by name.

        Raises:
            ConfigurationError: If the edit model does not exist.
        """
        edit_model = self.find(name)
        if edit_model is None:
            raise ConfigurationError(f"Edit model {name} filters not found", node=self.parent.path)
        return edit_model

    def delete(self, name: str = DEFAULT_EDIT_MODEL) -> bool:
        """Delete an edit model.

        Returns:
            True if an edit model was removed.
        """
        edit_model = self.find(name)
        if edit_model is None:
            return False
        self.parent.remove_child(edit_model)
        logger.debug("Deleted edit model %s/%s", self.parent.path, name)
        return True

    def names(self) -> list[str]:
        """Names of all edit models, default and presets."""
        return [node.name for node in self.parent.objects() if node.name not in RESERVED_NAMES]

    def update_all(self, configuration: Node, instances: Optional[Iterable[Node]] = None) -> list[Node]:
        """Rebuild the type once, then reconcile every edit model.

        Args:
            configuration: Filter configuration root.
            instances: Nodes to reconcile; defaults to every object child of
                the parent. Reserved names are always skipped.

        Returns:
            The reconciled edit models.
        """
        schema_type = self.rebuild_type(configuration)
        if instances is None:
            instances = self.parent.objects()

        updated = []
        for instance in instances:
            if instance.name in RESERVED_NAMES:
                continue
            updated.append(reconcile_instance(instance, schema_type))
        return updated


class FilterModelGenerator:
    """Operations behind the design-time "generate filters" buttons."""

    def __init__(self, widget_configuration: Node, now: Optional[Clock] = None) -> None:
        self.widget_configuration = widget_configuration
        self.store = EditModelStore(widget_configuration, now)

    @property
    def filters_configuration(self) -> Node:
        """The filter configuration root.

        Raises:
            ConfigurationError: If the configuration object is missing.
        """
        configuration = self.widget_configuration.get_child(FILTERS_CONFIGURATION)
        if configuration is None:
            raise ConfigurationError(
                f"Edit model {FILTERS_CONFIGURATION} filters not found",
                node=self.widget_configuration.path,
            )
        return configuration

    def generate_custom_filters(self) -> Node:
        """Drop and recreate the default edit model."""
        configuration = self.filters_configuration
        self.store.delete(DEFAULT_EDIT_MODEL)
        return self.store.create_default(configuration)

    def generate_preset_filters(self, name: Optional[str] = None) -> Node:
        return self.store.create_preset(self.filters_configuration, name)

    def update_custom_and_presets_filters(self) -> list[Node]:
        return self.store.update_all(self.filters_configuration)
