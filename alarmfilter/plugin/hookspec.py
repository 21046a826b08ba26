"""Hook specifications for alarmfilter plugins.

This module defines the pluggy hook specification host integrations implement.
Plugins use the @hookimpl decorator to register their implementations.
"""

from __future__ import annotations

from typing import Mapping, Optional

import pluggy

hookspec = pluggy.HookspecMarker("alarmfilter")


class AlarmFilterHookSpec:
    """Hook specification defining the plugin interface.

    Plugins supply display text for filter identifiers and extra predicate
    fragments. The application calls these hooks through the pluggy
    PluginManager.
    """

    @hookspec(firstresult=True)
    def translate(self, identifier: str) -> Optional[str]:
        """Translate a filter identifier into display text.

        The first plugin returning a non-None value wins. When no plugin
        answers, the identifier itself is used.

        Args:
            identifier: Attribute or option name, e.g. "HighState".

        Returns:
            Display text, or None if this plugin has no translation.
        """

    @hookspec
    def get_predicate_overrides(self) -> Mapping[tuple[str, str], str]:
        """Get hand-authored predicate fragments.

        Returns:
            Mapping of (attribute name, option name) to the fragment used
            instead of the generated one, e.g.
            {("Priority", "Urgent"): "(Severity >= 800 AND Severity <= 1000)"}
        """
