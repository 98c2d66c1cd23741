"""CLI: fuse cards | fuse bill <number> | fuse pay <number>"""

from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from fuse_pay.client import AsyncFusePay
from fuse_pay.models.bill import Bill
from fuse_pay.models.card import Card
from fuse_pay.models.payment import PaymentStatus

console = Console()


def _make_client(base_url: Optional[str]) -> AsyncFusePay:
    from fuse_pay.cli.main import _make_client
    return _make_client(base_url)


async def _login(client: AsyncFusePay) -> bool:
    from fuse_pay.cli.main import _login
    return await _login(client)


def _run(coro):
    from fuse_pay.cli.main import _run
    return _run(coro)


def _print_cards(cards: list[Card], selected: Optional[Card] = None) -> None:
    table = Table(title=f"Cards ({len(cards)})")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Balance", justify="right")
    table.add_column("Expiry")
    for c in cards:
        marker = " *" if selected is not None and c.id == selected.id else ""
        table.add_row(f"{c.id}{marker}", c.card_name, f"${c.balance:,.2f}", c.expiry_date[:10])
    console.print(table)


def _print_bill(bill: Bill) -> None:
    console.print(f"[bold]Bill Number:[/bold] {bill.id}")
    console.print(f"[bold]Category:[/bold]    {bill.category}")
    console.print(f"[bold]Merchant:[/bold]    {bill.merchant_name}")
    console.print(f"[bold]Description:[/bold] {bill.details}")
    console.print(f"[bold]Amount:[/bold]      ${bill.amount:,.2f}")


async def _fetch_bill(client: AsyncFusePay, bill_number: str) -> Optional[Bill]:
    with console.status("Fetching bill..."):
        result = await client.bill(bill_number)
    if not result.ok:
        console.print(f"[red]{result.message}[/red]")
        return None
    _print_bill(result.value)
    return result.value


@click.command("cards")
@click.option("--base-url", default=None, help="Fuse backend base URL")
def cards_cmd(base_url: Optional[str]):
    """Log in and list your cards."""

    async def _cards() -> int:
        async with _make_client(base_url) as client:
            if not await _login(client):
                return 1
            _print_cards(client.browse.cards, client.browse.selected_card)
            return 0

    raise SystemExit(_run(_cards()))


@click.command("bill")
@click.argument("bill_number")
@click.option("--base-url", default=None, help="Fuse backend base URL")
def bill_cmd(bill_number: str, base_url: Optional[str]):
    """Log in and show a bill."""

    async def _bill() -> int:
        async with _make_client(base_url) as client:
            if not await _login(client):
                return 1
            return 0 if await _fetch_bill(client, bill_number) else 1

    raise SystemExit(_run(_bill()))


@click.command("pay")
@click.argument("bill_number")
@click.option("--card-id", default=None, help="Card to pay with (default: first card)")
@click.option("-y", "--yes", is_flag=True, help="Skip the confirmation prompt")
@click.option("--base-url", default=None, help="Fuse backend base URL")
def pay_cmd(bill_number: str, card_id: Optional[str], yes: bool, base_url: Optional[str]):
    """Log in, pick a card and pay a bill."""

    async def _pay() -> int:
        async with _make_client(base_url) as client:
            if not await _login(client):
                return 1
            if not client.browse.cards:
                console.print("[yellow]No cards on this account.[/yellow]")
                return 1
            if card_id is not None:
                try:
                    client.select_card(card_id)
                except KeyError:
                    console.print(f"[red]No card with id {card_id}.[/red]")
                    return 1
            _print_cards(client.browse.cards, client.browse.selected_card)

            if not await _fetch_bill(client, bill_number):
                return 1
            if not yes and not click.confirm("Pay this bill?"):
                return 0

            with console.status("Processing..."):
                await client.pay()
            if client.payment_status == PaymentStatus.SUCCESS:
                console.print("[green]Payment completed successfully.[/green]")
                return 0
            console.print("[red]An error occurred, please try again later.[/red]")
            return 1

    raise SystemExit(_run(_pay()))
