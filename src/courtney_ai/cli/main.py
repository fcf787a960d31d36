"""
Courtney CLI — `courtney` command.

Commands:
  courtney chat              Text support session (REPL)
  courtney call              Voice support session
  courtney config <cmd>      Show or edit ~/.courtney/config.json
"""

import asyncio
import logging

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install courtney-ai[cli]")

from courtney_ai.config import WidgetConfig
from courtney_ai.errors import ConfigurationError
from courtney_ai.proxy import ChatProxy, ProxyTransport
from courtney_ai.widget import SessionController

console = Console()


def _get_controller() -> SessionController:
    """Build a controller from config; text traffic goes through an in-process
    proxy when the private key is available locally."""
    cfg = WidgetConfig.load()
    try:
        cfg.require_public()
    except ConfigurationError as e:
        console.print(f"[red]{e}. Run `courtney config set` or export the variables.[/red]")
        raise SystemExit(1)
    transport = None
    if cfg.private_key:
        transport = ProxyTransport(ChatProxy.from_config(cfg))
    return SessionController.from_config(cfg, chat_transport=transport)


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """Courtney CLI: AI customer support by chat or voice."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


# Register subcommands from separate modules
from courtney_ai.cli.session import call_cmd, chat_cmd
from courtney_ai.cli.config import config

main.add_command(chat_cmd)
main.add_command(call_cmd)
main.add_command(config)


if __name__ == "__main__":
    main()
