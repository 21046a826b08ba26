"""Translation table plugin for alarmfilter.

Serves display text from a static table, typically the ``[translations]``
section of the configuration file.
"""

from __future__ import annotations

from typing import Mapping, Optional

from alarmfilter.plugin import AlarmFilterPlugin, hookimpl


class TranslationTablePlugin(AlarmFilterPlugin):
    """Translate identifiers by table lookup.

    Attributes:
        name: Plugin identifier ("translations")
        version: Plugin version
        description: Human-readable description
    """

    name = "translations"
    version = "1.0.0"
    description = "Display text from the [translations] configuration table"

    def __init__(self, table: Optional[Mapping[str, str]] = None) -> None:
        self.table = dict(table or {})

    @hookimpl
    def translate(self, identifier: str) -> Optional[str]:
        """Look up ``identifier``; empty entries count as untranslated."""
        text = self.table.get(identifier)
        return text or None
