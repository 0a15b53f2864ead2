"""List all bills and regenerate their PDFs with the current template.

Usage:
    python -m rentflow.scripts.regenerate_pdfs
    python -m rentflow.scripts.regenerate_pdfs --dry-run
"""

from __future__ import annotations

import asyncio
import sys

from rich.console import Console
from rich.table import Table

from rentflow.constants import format_month
from rentflow.db import initialize_db
from rentflow.exceptions import PdfStorageError
from rentflow.logging import configure_logging, reconfigure
from rentflow.models.bill import Bill
from rentflow.notifications.templates import format_currency
from rentflow.repositories.base import BillRepository
from rentflow.repositories.factory import get_bill_repository
from rentflow.services.pdf_service import PdfService, build_pdf_service
from rentflow.settings import settings

console = Console()


def _bills_table(bills: list[Bill]) -> Table:
    table = Table(title="Bills")
    table.add_column("ID", style="dim")
    table.add_column("Tenant", style="bold")
    table.add_column("Room")
    table.add_column("Month")
    table.add_column("Total", justify="right")
    table.add_column("Status")
    table.add_column("PDF key", style="dim")

    for bill in bills:
        table.add_row(
            bill.id,
            bill.tenant.full_name if bill.tenant else "-",
            bill.room.number if bill.room else "-",
            format_month(bill.billing_month),
            format_currency(bill.total_amount, settings),
            bill.status.value,
            bill.pdf_key or "-",
        )
    return table


async def regenerate(bills: list[Bill], bill_repo: BillRepository, pdf_service: PdfService) -> int:
    """Regenerate every bill's PDF. Returns how many failed."""
    failures = 0
    for bill in bills:
        try:
            locator = await pdf_service.materialize(bill)
        except PdfStorageError as exc:
            failures += 1
            console.print(f"  [red]✗[/red] {bill.id} - {format_month(bill.billing_month)}: {exc}")
            continue
        bill_repo.update_pdf_locator(bill.id, locator.key, locator.url)
        where = locator.local_path or locator.url or locator.key
        console.print(f"  [green]✓[/green] {bill.id} - {format_month(bill.billing_month)} → {where}")
    return failures


def main() -> None:
    dry_run = "--dry-run" in sys.argv

    configure_logging()
    initialize_db()
    reconfigure()

    bill_repo = get_bill_repository()
    bills = bill_repo.list_all()

    if not bills:
        console.print("[yellow]No bills found.[/yellow]")
        return

    console.print(_bills_table(bills))
    console.print(f"\nTotal bills: [bold]{len(bills)}[/bold]")

    if dry_run:
        console.print("\n[yellow]--dry-run: no PDF was regenerated.[/yellow]")
        return

    console.print("\n[cyan]Regenerating PDFs...[/cyan]\n")
    failures = asyncio.run(regenerate(bills, bill_repo, build_pdf_service(settings)))

    if failures:
        console.print(f"\n[red bold]{failures} of {len(bills)} bill(s) failed.[/red bold]")
        sys.exit(1)
    console.print(f"\n[green bold]{len(bills)} bill(s) regenerated.[/green bold]")


if __name__ == "__main__":
    main()
