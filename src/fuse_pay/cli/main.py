"""
Fuse Pay CLI: `fuse` command.

Commands:
  fuse cards                 Log in and list cards
  fuse bill <number>         Log in and show a bill
  fuse pay <number>          Log in, pick a card and pay a bill
  fuse config show|set-url   Local settings (never keys or tokens)
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

try:
    import click
    from rich.console import Console
except ImportError:
    raise SystemExit("CLI requires extras: pip install fuse-pay[cli]")

from fuse_pay.client import AsyncFusePay
from fuse_pay.config import ClientConfig

console = Console()
CONFIG_FILE = Path.home() / ".fuse" / "config.json"


def _load_config() -> dict:
    try:
        return json.loads(CONFIG_FILE.read_text())
    except (FileNotFoundError, json.JSONDecodeError):
        return {}


def _save_config(cfg: dict) -> None:
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(cfg, indent=2))


def _make_client(base_url: Optional[str]) -> AsyncFusePay:
    cfg = _load_config()
    env = ClientConfig.from_env()
    return AsyncFusePay(base_url=base_url or cfg.get("base_url") or env.base_url, timeout=env.timeout)


async def _login(client: AsyncFusePay) -> bool:
    """Prompt for credentials and log in. Prints the failure and returns False on error."""
    cfg = _load_config()
    email = click.prompt("Email", default=cfg.get("email") or None)
    with console.status("Negotiating session key..."):
        step1 = await client.login_flow.start(email)
    if not step1.ok:
        console.print(f"[red]{step1.message}[/red]")
        return False

    password = click.prompt("Password", hide_input=True)
    with console.status("Logging in..."):
        step2 = await client.login_flow.submit_password(password)
        if step2.ok:
            step2 = await client.browse.load_cards()
    if not step2.ok:
        console.print(f"[red]{step2.message}[/red]")
        return False

    _save_config({**cfg, "email": email})
    console.print(f"[green]Logged in as {email}[/green]")
    return True


def _run(coro: Any) -> Any:
    return asyncio.run(coro)


@click.group()
@click.version_option("0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Log protocol progress to stderr")
def main(verbose: bool):
    """Fuse Pay CLI: pay bills over an encrypted session."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


# Register subcommands from separate modules
from fuse_pay.cli.bills import bill_cmd, cards_cmd, pay_cmd
from fuse_pay.cli.config import config

main.add_command(cards_cmd)
main.add_command(bill_cmd)
main.add_command(pay_cmd)
main.add_command(config)


if __name__ == "__main__":
    main()
