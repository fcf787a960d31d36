"""CLI: courtney config show|set"""

import json

import click
from rich.console import Console
from rich.table import Table

from courtney_ai.config import CONFIG_FILE, WidgetConfig, load_config_file, save_config_file

console = Console()


@click.group()
def config():
    """Configuration commands."""


@config.command("show")
@click.option("--json-output", "--json", is_flag=True)
def config_show(json_output: bool):
    """Show the effective configuration (keys masked)."""
    view = WidgetConfig.load().public_view()
    if json_output:
        click.echo(json.dumps(view, indent=2))
        return
    table = Table(title=f"Configuration ({CONFIG_FILE})")
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in view.items():
        table.add_row(key, "" if value is None else str(value))
    console.print(table)


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str):
    """Store KEY=VALUE in the config file."""
    if key not in WidgetConfig.model_fields:
        raise click.BadParameter(f"Unknown key {key!r}", param_hint="KEY")
    cfg = load_config_file()
    cfg[key] = value
    save_config_file(cfg)
    console.print(f"[green]Saved {key} to {CONFIG_FILE}[/green]")
