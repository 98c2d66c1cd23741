"""CLI: fuse config show|set-url"""

import click
from rich.console import Console

from fuse_pay.config import ClientConfig

console = Console()


def _load_config() -> dict:
    from fuse_pay.cli.main import _load_config
    return _load_config()


def _save_config(cfg: dict) -> None:
    from fuse_pay.cli.main import _save_config
    _save_config(cfg)


@click.group()
def config():
    """Local settings."""


@config.command("show")
def config_show():
    """Show saved settings."""
    cfg = _load_config()
    console.print(f"Base URL: {cfg.get('base_url') or ClientConfig.from_env().base_url}")
    console.print(f"Email:    {cfg.get('email', '[dim]not set[/dim]')}")


@config.command("set-url")
@click.argument("base_url")
def config_set_url(base_url: str):
    """Save the backend base URL."""
    try:
        url = ClientConfig(base_url=base_url).base_url
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="BASE_URL")
    _save_config({**_load_config(), "base_url": url})
    console.print(f"[green]Base URL set to {url}[/green]")
