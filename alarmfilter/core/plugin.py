"""Plugin management for alarmfilter.

This module provides the PluginManager class that handles plugin discovery
via Python entry points, registration with pluggy, and the calls the filter
catalog needs: translation and predicate overrides.
"""

from __future__ import annotations

import logging
from importlib.metadata import entry_points
from typing import Mapping, Optional

import pluggy

from alarmfilter.core.catalog import FilterCatalog, PredicateKey
from alarmfilter.models.filter_def import FilterAttribute
from alarmfilter.plugin import AlarmFilterHookSpec, AlarmFilterPlugin

logger = logging.getLogger(__name__)

# Entry point group name for alarmfilter plugins
ENTRY_POINT_GROUP = "alarmfilter.plugins"


class PluginManager:
    """Manages plugin discovery and registration.

    Example:
        manager = PluginManager()
        manager.discover()
        manager.register(TranslationTablePlugin({"HighState": "High"}))

        catalog = manager.build_catalog()
    """

    def __init__(self) -> None:
        self.pm = pluggy.PluginManager("alarmfilter")
        self.pm.add_hookspecs(AlarmFilterHookSpec)
        self._plugins: dict[str, AlarmFilterPlugin] = {}

    def register(self, plugin: AlarmFilterPlugin) -> None:
        """Register a plugin instance, replacing one with the same name."""
        name = plugin.name
        if name in self._plugins:
            self.unregister(name)
        self._plugins[name] = plugin
        self.pm.register(plugin, name=name)

    def unregister(self, name: str) -> None:
        if name in self._plugins:
            plugin = self._plugins.pop(name)
            self.pm.unregister(plugin)

    def discover(self) -> list[str]:
        """Discover and register plugins from entry points.

        Scans the 'alarmfilter.plugins' entry point group. Plugins that fail
        to load are skipped with a warning.

        Returns:
            List of discovered plugin names.
        """
        discovered = []

        for ep in entry_points(group=ENTRY_POINT_GROUP):
            try:
                plugin_instance = ep.load()()
            except Exception as e:
                logger.warning("Failed to load plugin %s: %s", ep.name, e)
                continue
            self.register(plugin_instance)
            discovered.append(plugin_instance.name)

        return discovered

    def list_plugins(self) -> list[str]:
        return list(self._plugins.keys())

    def get_plugin(self, name: str) -> Optional[AlarmFilterPlugin]:
        return self._plugins.get(name)

    def get_plugin_info(self, name: str) -> Optional[dict[str, str]]:
        """Get information about a plugin.

        Returns:
            Dictionary with plugin info (name, version, description),
            or None if not found.
        """
        plugin = self._plugins.get(name)
        if plugin is None:
            return None

        return {
            "name": plugin.name,
            "version": getattr(plugin, "version", "0.0.0"),
            "description": getattr(plugin, "description", ""),
        }

    def translate(self, identifier: str) -> Optional[str]:
        return self.pm.hook.translate(identifier=identifier)

    def predicate_overrides(self) -> dict[PredicateKey, str]:
        """Merge the overrides of every plugin.

        Later registrations win. Keys naming an unknown attribute are
        skipped with a warning.
        """
        overrides: dict[PredicateKey, str] = {}

        # pluggy calls the most recently registered plugin first
        for result in reversed(self.pm.hook.get_predicate_overrides()):
            for (attribute_name, option), fragment in result.items():
                attribute = FilterAttribute.parse(attribute_name)
                if attribute is None:
                    logger.warning("Predicate override for '%s' is not a valid FilterAttribute", attribute_name)
                    continue
                overrides[(attribute, option)] = fragment

        return overrides

    def build_catalog(self, overrides: Optional[Mapping[PredicateKey, str]] = None) -> FilterCatalog:
        """Create a catalog wired to the registered plugins.

        Args:
            overrides: Extra overrides applied after the plugins' own.
        """
        merged = self.predicate_overrides()
        if overrides:
            merged.update(overrides)
        return FilterCatalog(translate=self.translate, overrides=merged)
