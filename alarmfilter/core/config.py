"""Configuration loading and parsing for alarmfilter.

This module provides the ConfigLoader class for reading TOML configuration files
and the Config dataclass for storing configuration values. A Config knows how
to turn its ``[filters]`` tables into the filter configuration tree that edit
models are generated from.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import tomli

from alarmfilter.core.catalog import FILTERS_CONFIGURATION, FilterCatalog, PredicateKey
from alarmfilter.core.query import DEFAULT_BASE_QUERY
from alarmfilter.models.filter_def import FilterAttribute
from alarmfilter.models.node import ConfigurationError, Node

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "alarmfilter.toml"


class ConfigError(ConfigurationError):
    """Exception raised for configuration parsing errors.

    Attributes:
        message: Error description
        line: Line number where error occurred (if available)
        path: Path to the config file (if available)
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        path: Optional[Path] = None
    ):
        self.message = message
        self.line = line
        self.path = path

        parts = []
        if path:
            parts.append(f"Error in {path}")
        if line is not None:
            parts.append(f"at line {line}")
        if parts:
            full_message = f"{' '.join(parts)}: {message}"
        else:
            full_message = message

        super().__init__(full_message)


def _require_table(data, name: str) -> dict:
    if not isinstance(data, dict):
        raise ConfigError(f"[{name}] must be a table")
    return data


@dataclass
class GeneralConfig:
    """General configuration settings."""

    base_query: str = DEFAULT_BASE_QUERY
    custom_filters_available_on_runtime: bool = True
    custom_filters_expanded_by_default: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "GeneralConfig":
        """Create GeneralConfig from a dictionary."""
        return cls(
            base_query=data.get("base_query", DEFAULT_BASE_QUERY),
            custom_filters_available_on_runtime=data.get("custom_filters_available_on_runtime", True),
            custom_filters_expanded_by_default=data.get("custom_filters_expanded_by_default", False),
        )


@dataclass
class FilterSection:
    """Visibility of one filter attribute and of each of its options."""

    visible: bool = False
    options: dict[str, bool] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict, name: str = "filters") -> "FilterSection":
        """Create FilterSection from a dictionary.

        Raises:
            ConfigError: If ``visible`` or an option flag is not a boolean.
        """
        visible = data.get("visible", False)
        if not isinstance(visible, bool):
            raise ConfigError(f"[{name}] visible must be true or false")

        options = _require_table(data.get("options", {}), f"{name}.options")
        for option, flag in options.items():
            if not isinstance(flag, bool):
                raise ConfigError(f"[{name}] option '{option}' must be true or false")

        return cls(visible=visible, options=dict(options))


@dataclass
class Config:
    """Complete alarmfilter configuration.

    Attributes:
        general: General settings like the base query
        translations: Display text per identifier
        predicates: Predicate overrides per attribute and option
        filters: Visibility settings per attribute
    """

    general: GeneralConfig = field(default_factory=GeneralConfig)
    translations: dict[str, str] = field(default_factory=dict)
    predicates: dict[str, dict[str, str]] = field(default_factory=dict)
    filters: dict[str, FilterSection] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        """Create Config from a dictionary.

        Args:
            data: Dictionary parsed from TOML file

        Returns:
            Config instance with values from dictionary

        Raises:
            ConfigError: If a section has the wrong shape.
        """
        filters = _require_table(data.get("filters", {}), "filters")
        predicates = _require_table(data.get("predicates", {}), "predicates")

        return cls(
            general=GeneralConfig.from_dict(_require_table(data.get("general", {}), "general")),
            translations={
                str(key): str(value)
                for key, value in _require_table(data.get("translations", {}), "translations").items()
            },
            predicates={
                attribute: {
                    str(option): str(fragment)
                    for option, fragment in _require_table(table, f"predicates.{attribute}").items()
                }
                for attribute, table in predicates.items()
            },
            filters={
                attribute: FilterSection.from_dict(_require_table(section, f"filters.{attribute}"), f"filters.{attribute}")
                for attribute, section in filters.items()
            },
        )

    def predicate_overrides(self) -> dict[PredicateKey, str]:
        """Predicate overrides keyed by (attribute, option).

        Tables for unknown attributes are skipped with a warning.
        """
        overrides: dict[PredicateKey, str] = {}
        for attribute_name, table in self.predicates.items():
            attribute = FilterAttribute.parse(attribute_name)
            if attribute is None:
                logger.warning("Predicate table '%s' is not a valid FilterAttribute", attribute_name)
                continue
            for option, fragment in table.items():
                overrides[(attribute, option)] = fragment
        return overrides

    def build_configuration(
        self,
        catalog: Optional[FilterCatalog] = None,
        name: str = FILTERS_CONFIGURATION,
    ) -> Node:
        """Build the filter configuration tree from the ``[filters]`` tables."""
        catalog = catalog or FilterCatalog()
        return catalog.build_configuration(self.filters, name)


class ConfigLoader:
    """Loader for alarmfilter TOML configuration files.

    Example usage:
        loader = ConfigLoader()
        config = loader.load(Path("alarmfilter.toml"))

        # Or load defaults when no file exists
        config = loader.load(None)
    """

    def load(self, path: Optional[Path]) -> Config:
        """Load configuration from a TOML file.

        Args:
            path: Path to the TOML configuration file, or None to use defaults

        Returns:
            Config instance with values from file or defaults

        Raises:
            ConfigError: If the file exists but contains invalid TOML
            FileNotFoundError: If the path is specified but file doesn't exist
        """
        if path is None:
            return Config()

        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        data = self._read(path)
        try:
            return Config.from_dict(data)
        except ConfigError as e:
            raise ConfigError(e.message, path=path) from e

    def _read(self, path: Path) -> dict:
        try:
            return tomli.loads(path.read_text(encoding="utf-8"))
        except tomli.TOMLDecodeError as e:
            line = self._extract_line_number(str(e))
            raise ConfigError(str(e), line=line, path=path) from e

    def _extract_line_number(self, error_message: str) -> Optional[int]:
        """Extract line number from tomli error message.

        Args:
            error_message: The error message from tomli

        Returns:
            Line number if found, None otherwise
        """
        match = re.search(r"(?:at )?line (\d+)", error_message, re.IGNORECASE)
        if match:
            return int(match.group(1))
        return None

    def discover_configs(self, start_path: Optional[Path] = None) -> list[Path]:
        """Discover configuration files in order of precedence.

        Precedence order (lowest to highest):
        1. User config: ~/.config/alarmfilter/config.toml
        2. Local (start_path): <start_path>/alarmfilter.toml

        Args:
            start_path: Directory for the local config. If None, uses the
                current working directory.

        Returns:
            List of existing config file paths in precedence order (lowest first).
        """
        if start_path is None:
            start_path = Path.cwd()
        else:
            start_path = Path(start_path).resolve()

        configs: list[Path] = []

        user_config = Path(os.path.expanduser("~")) / ".config" / "alarmfilter" / "config.toml"
        if user_config.exists():
            configs.append(user_config)

        local_config = start_path / CONFIG_FILENAME
        if local_config.exists():
            if local_config.resolve() not in [c.resolve() for c in configs]:
                configs.append(local_config)

        return configs

    def load_merged(self, start_path: Optional[Path] = None) -> Config:
        """Load and merge configuration from all discovered config files.

        Later (higher precedence) files override values from earlier files.

        Args:
            start_path: Directory for config discovery. If None, uses the
                current working directory.

        Returns:
            Config instance with merged values from all sources.

        Raises:
            ConfigError: If any config file contains invalid TOML or a
                malformed section. The error names the offending file.
        """
        merged_data: dict = {}

        for config_path in self.discover_configs(start_path):
            logger.debug("Loading config %s", config_path)
            data = self._read(config_path)
            try:
                Config.from_dict(data)
            except ConfigError as e:
                raise ConfigError(e.message, path=config_path) from e
            merged_data = self._deep_merge(merged_data, data)

        return Config.from_dict(merged_data)

    def _deep_merge(self, base: dict, override: dict) -> dict:
        """Deep merge two dictionaries.

        Values from override take precedence over base. Nested dictionaries
        are merged recursively. Lists and other values are replaced entirely.
        """
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
