"""Core logic for alarmfilter.

This module provides the core functionality:
- FilterCatalog: Predicate fragments per filter attribute and option
- update_type / reconcile_instance: Schema reconciliation
- EditModelStore / FilterModelGenerator: Edit model CRUD and generation
- QueryComposer: Predicate composition
- AlarmFilterController / AlarmWidgetController: UI-facing operations
- ConfigLoader: Configuration file loading
- PluginManager: Plugin discovery and registration
"""

from alarmfilter.core.catalog import FilterCatalog
from alarmfilter.core.config import (
    Config,
    ConfigError,
    ConfigLoader,
    FilterSection,
    GeneralConfig,
)
from alarmfilter.core.controller import (
    AlarmFilterController,
    AlarmWidgetController,
    EditState,
    FilterChip,
)
from alarmfilter.core.edit_model import (
    EditModelStore,
    FilterModelGenerator,
    find_next_available_preset_name,
)
from alarmfilter.core.fields import ModelFields, load_filter_set, save_filter_set
from alarmfilter.core.plugin import PluginManager
from alarmfilter.core.query import MATCH_ALL, QueryComposer
from alarmfilter.core.reconcile import reconcile_instance, update_type

__all__ = [
    "AlarmFilterController",
    "AlarmWidgetController",
    "Config",
    "ConfigError",
    "ConfigLoader",
    "EditModelStore",
    "EditState",
    "FilterCatalog",
    "FilterChip",
    "FilterModelGenerator",
    "FilterSection",
    "GeneralConfig",
    "MATCH_ALL",
    "ModelFields",
    "PluginManager",
    "QueryComposer",
    "find_next_available_preset_name",
    "load_filter_set",
    "reconcile_instance",
    "save_filter_set",
    "update_type",
]
