"""Plugin system for alarmfilter.

This module provides the plugin infrastructure using pluggy. Plugins implement
hooks defined in hookspec.py to plug host translations and site-specific
predicate fragments into the filter catalog.

Usage:
    from alarmfilter.plugin import AlarmFilterPlugin, hookimpl

    class MyPlugin(AlarmFilterPlugin):
        name = "my-plugin"

        @hookimpl
        def translate(self, identifier):
            return {"HighState": "Hoch"}.get(identifier)
"""

from __future__ import annotations

from typing import Mapping, Optional

import pluggy

from alarmfilter.plugin.hookspec import AlarmFilterHookSpec

hookimpl = pluggy.HookimplMarker("alarmfilter")

__all__ = ["AlarmFilterPlugin", "hookimpl", "AlarmFilterHookSpec"]


class AlarmFilterPlugin:
    """Base class for alarmfilter plugins.

    Subclasses must define:
        name: Unique identifier for the plugin (str)

    Optional attributes:
        version: Plugin version string (str)
        description: Human-readable description (str)
    """

    name: str = "base"
    version: str = "0.0.0"
    description: str = ""

    @hookimpl
    def translate(self, identifier: str) -> Optional[str]:
        """Default implementation: no translation."""
        return None

    @hookimpl
    def get_predicate_overrides(self) -> Mapping[tuple[str, str], str]:
        """Default implementation: no overrides."""
        return {}
