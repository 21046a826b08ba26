"""Entry point for alarmfilter CLI.

The CLI keeps a workspace snapshot (JSON) holding the widget configuration,
its edit models and the generated schema type. The filter configuration tree
is rebuilt from the TOML configuration on every run, so editing the TOML file
and running ``update`` resynchronizes every edit model.
"""

import functools
import logging
from pathlib import Path
from typing import Optional

import rich_click as click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from alarmfilter import __version__
from alarmfilter.core.config import Config, ConfigLoader
from alarmfilter.core.controller import AlarmFilterController, AlarmWidgetController
from alarmfilter.core.edit_model import DEFAULT_EDIT_MODEL, EditModelStore, FilterModelGenerator
from alarmfilter.core.fields import RANGE_FIELDS, ModelFields, load_filter_set
from alarmfilter.core.plugin import PluginManager
from alarmfilter.core.query import QueryComposer
from alarmfilter.core.workspace import (
    create_workspace,
    load_workspace,
    replace_configuration,
    save_workspace,
    widget_configuration,
)
from alarmfilter.models.node import ConfigurationError, Node
from alarmfilter.plugins.translations import TranslationTablePlugin

click.rich_click.TEXT_MARKUP = "rich"
click.rich_click.SHOW_ARGUMENTS = True

DEFAULT_STATE = "alarmfilter-state.json"

console = Console()


class Session:
    """Everything a command needs: configuration, plugins and the workspace."""

    def __init__(self, config: Config, state_path: Path) -> None:
        self.config = config
        self.state_path = state_path

        self.plugins = PluginManager()
        self.plugins.discover()
        self.plugins.register(TranslationTablePlugin(config.translations))
        self.catalog = self.plugins.build_catalog(config.predicate_overrides())
        self.composer = QueryComposer(config.general.base_query)

        self.root = self._load_root()

    def _load_root(self) -> Node:
        configuration = self.config.build_configuration(self.catalog)
        if not self.state_path.exists():
            return create_workspace(
                configuration,
                self.config.general.custom_filters_available_on_runtime,
                self.config.general.custom_filters_expanded_by_default,
            )

        root = load_workspace(self.state_path)
        replace_configuration(root, configuration)
        return root

    @property
    def widget_configuration(self) -> Node:
        return widget_configuration(self.root)

    @property
    def store(self) -> EditModelStore:
        return EditModelStore(self.widget_configuration)

    def generator(self) -> FilterModelGenerator:
        return FilterModelGenerator(self.widget_configuration)

    def save(self) -> None:
        save_workspace(self.root, self.state_path)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def handle_errors(func):
    """Report ConfigurationError as a red error line and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ConfigurationError as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}", soft_wrap=True)
            click.get_current_context().exit(1)

    return wrapper


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, prog_name="alarmfilter")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to a TOML configuration file (default: discover user and local configs)."
)
@click.option(
    "--state",
    "state_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_STATE,
    show_default=True,
    help="Workspace snapshot holding the edit models."
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
@handle_errors
def cli(ctx: click.Context, config_path: Optional[Path], state_path: Path, verbose: bool) -> None:
    """alarmfilter - keep alarm filter models in sync and compose alarm queries."""
    _setup_logging(verbose)

    loader = ConfigLoader()
    config = loader.load(config_path) if config_path else loader.load_merged()
    ctx.obj = Session(config, state_path)


@cli.command("generate-custom")
@click.pass_obj
@handle_errors
def generate_custom(session: Session) -> None:
    """Drop and regenerate the default edit model."""
    edit_model = session.generator().generate_custom_filters()
    session.save()
    console.print(f"Generated [cyan]{edit_model.name}[/cyan]")


@cli.command("generate-preset")
@click.option("--name", type=str, help="Preset name (default: next free PresetFilters{N}).")
@click.pass_obj
@handle_errors
def generate_preset(session: Session, name: Optional[str]) -> None:
    """Create a preset edit model."""
    edit_model = session.generator().generate_preset_filters(name)
    session.save()
    console.print(f"Generated [cyan]{edit_model.name}[/cyan]")


@cli.command("update")
@click.pass_obj
@handle_errors
def update(session: Session) -> None:
    """Resynchronize every edit model with the configuration."""
    updated = session.generator().update_custom_and_presets_filters()
    session.save()
    console.print(f"Updated {len(updated)} edit model(s)")


@cli.command("delete")
@click.argument("name")
@click.pass_obj
@handle_errors
def delete(session: Session, name: str) -> None:
    """Delete an edit model."""
    if not session.store.delete(name):
        raise ConfigurationError(f"Edit model {name} filters not found")
    session.save()
    console.print(f"Deleted [cyan]{name}[/cyan]")


@cli.command("list")
@click.pass_obj
@handle_errors
def list_models(session: Session) -> None:
    """List edit models and their checked filters."""
    store = session.store
    names = store.names()
    if not names:
        console.print("[yellow]No edit models found.[/yellow]")
        return

    table = Table(title="Edit Models")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Checked", justify="right")
    table.add_column("Filters")

    for name in names:
        filter_set = load_filter_set(store.get(name), session.catalog)
        checked = filter_set.checked()
        table.add_row(name, str(len(checked)), ", ".join(f.name for f in checked))

    console.print(table)


@cli.command("show")
@click.argument("name")
@click.pass_obj
@handle_errors
def show(session: Session, name: str) -> None:
    """Show the fields of an edit model."""
    edit_model = session.store.get(name)

    table = Table(title=name)
    table.add_column("Attribute", style="cyan")
    table.add_column("Field")
    table.add_column("Value")

    for attribute_field in edit_model.children:
        for field in attribute_field.children:
            if field.name in RANGE_FIELDS:
                value = str(field.value)
            else:
                value = "[green]✓[/green]" if field.value else "[dim]✗[/dim]"
            table.add_row(attribute_field.name, field.name, value)

    console.print(table)


@cli.command("toggle")
@click.argument("name")
@click.argument("filter_name", metavar="FILTER")
@click.option("--off", is_flag=True, help="Uncheck the filter instead of checking it.")
@click.pass_obj
@handle_errors
def toggle(session: Session, name: str, filter_name: str, off: bool) -> None:
    """Check (or uncheck) one filter of an edit model."""
    edit_model = session.store.get(name)
    filt = load_filter_set(edit_model, session.catalog).get(filter_name)
    if filt is None:
        raise ConfigurationError(f"Filter {filter_name} not found in {name}")

    ModelFields(edit_model).set(filt.attribute, filt.name, not off)
    session.save()
    state = "unchecked" if off else "checked"
    console.print(f"{name}: [cyan]{filter_name}[/cyan] {state}")


@cli.command("load-preset")
@click.argument("name")
@click.pass_obj
@handle_errors
def load_preset(session: Session, name: str) -> None:
    """Copy a preset into the default edit model and print the new query."""
    controller = AlarmFilterController(
        session.widget_configuration,
        catalog=session.catalog,
        composer=session.composer,
    )
    controller.load_preset(name)
    session.save()
    click.echo(controller.query)


@cli.command("clear")
@click.pass_obj
@handle_errors
def clear(session: Session) -> None:
    """Uncheck every filter of the default edit model."""
    controller = AlarmWidgetController(
        session.widget_configuration,
        catalog=session.catalog,
        composer=session.composer,
    )
    controller.clear_all()
    session.save()
    click.echo(controller.query)


@cli.command("query")
@click.option("--model", "model_name", default=DEFAULT_EDIT_MODEL, show_default=True, help="Edit model to compile.")
@click.option("--full", is_flag=True, help="Print the full query instead of the predicate.")
@click.option("--chips", is_flag=True, help="Also print the filter chip labels.")
@click.pass_obj
@handle_errors
def query(session: Session, model_name: str, full: bool, chips: bool) -> None:
    """Compose the query predicate of an edit model."""
    controller = AlarmWidgetController(
        session.widget_configuration,
        catalog=session.catalog,
        composer=session.composer,
    )
    if model_name == DEFAULT_EDIT_MODEL:
        controller.start()
    else:
        controller.filter_set = load_filter_set(session.store.get(model_name), session.catalog)
        controller.refresh()
    session.save()

    click.echo(controller.query if full else controller.predicate)
    if chips:
        for chip in controller.chips:
            click.echo(f"  {chip.text}")


@cli.command("plugins")
@click.pass_obj
def plugins(session: Session) -> None:
    """List registered plugins."""
    manager = session.plugins

    table = Table(title="Available Plugins")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Version", style="green")
    table.add_column("Description")

    for name in sorted(manager.list_plugins()):
        info = manager.get_plugin_info(name)
        if info:
            table.add_row(info["name"], info.get("version", "unknown"), info.get("description", ""))

    console.print(table)


if __name__ == "__main__":
    cli()
