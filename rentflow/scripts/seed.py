"""Seed the database with demo data for local development.

Usage:
    python -m rentflow.scripts.seed
"""

from __future__ import annotations

import random
from datetime import date, datetime

from faker import Faker
from rich.console import Console
from rich.table import Table

from rentflow.constants import IST_TZ, format_month, month_start
from rentflow.db import initialize_db
from rentflow.logging import configure_logging, reconfigure
from rentflow.models.bill import Bill, Charge, Payment
from rentflow.models.tenant import Building, Room, Tenant
from rentflow.notifications.templates import format_currency
from rentflow.repositories.base import BillRepository, BuildingRepository, RoomRepository, TenantRepository
from rentflow.repositories.factory import (
    get_bill_repository,
    get_building_repository,
    get_room_repository,
    get_tenant_repository,
)
from rentflow.settings import settings

console = Console()
fake = Faker("en_IN")

NUM_MONTHS = 3
PAYMENT_METHODS = ["UPI", "Cash", "Bank Transfer"]

# (name, address, [(room number, rent in paise)])
BUILDINGS = [
    ("Sai Residency", "12 MG Road, Pune", [("101", 1200000), ("102", 1150000), ("201", 1400000)]),
    ("Green Park PG", "4th Cross, Koramangala, Bengaluru", [("A1", 850000), ("A2", 850000), ("B1", 950000)]),
]

EXTRA_CHARGES = [
    ("Electricity", 80000, 250000),
    ("Water", 20000, 60000),
    ("Maintenance", 50000, 50000),
]


def _months_back(count: int) -> list[date]:
    current = month_start(datetime.now(IST_TZ))
    months = []
    year, month = current.year, current.month
    for _ in range(count):
        months.append(date(year, month, 1))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(months))


def _charges_for(rent: int) -> list[Charge]:
    charges = [Charge(title="Rent", amount=rent)]
    for title, low, high in EXTRA_CHARGES:
        amount = random.randint(low // 100, high // 100) * 100
        charges.append(Charge(title=title, amount=amount))
    return charges


def seed(
    building_repo: BuildingRepository,
    room_repo: RoomRepository,
    tenant_repo: TenantRepository,
    bill_repo: BillRepository,
    months: int = NUM_MONTHS,
) -> list[Bill]:
    bills: list[Bill] = []
    tenant_number = 1
    billing_months = _months_back(months)

    for name, address, rooms in BUILDINGS:
        building = building_repo.create(Building(name=name, address=address))
        console.print(f"[cyan]Building:[/cyan] {building.name}")
        for number, rent in rooms:
            room = room_repo.create(Room(number=number, building_id=building.id))
            tenant = tenant_repo.create(
                Tenant(
                    tenant_code=f"T-{tenant_number:04d}",
                    full_name=fake.name(),
                    email=fake.email(),
                    phone=fake.msisdn()[:10],
                )
            )
            tenant_number += 1
            console.print(f"  Room {room.number}: {tenant.full_name} ({tenant.tenant_code})")

            for i, billing_month in enumerate(billing_months):
                charges = _charges_for(rent)
                bill = bill_repo.create(
                    Bill(
                        tenant_id=tenant.id,
                        room_id=room.id,
                        building_id=building.id,
                        billing_month=billing_month,
                        total_amount=sum(c.amount for c in charges),
                        charges=charges,
                    )
                )
                # Older months are always settled; the current one only sometimes.
                if i < len(billing_months) - 1 or random.random() < 0.3:
                    bill = bill_repo.mark_paid(
                        bill.id,
                        Payment(
                            method=random.choice(PAYMENT_METHODS),
                            reference=fake.bothify("TXN########"),
                            paid_at=datetime.now(IST_TZ),
                        ),
                    )
                bills.append(bill)
    return bills


def main() -> None:
    configure_logging()
    initialize_db()
    reconfigure()

    bills = seed(
        get_building_repository(),
        get_room_repository(),
        get_tenant_repository(),
        get_bill_repository(),
    )

    table = Table(title="Seeded bills")
    table.add_column("Tenant", style="bold")
    table.add_column("Room")
    table.add_column("Month")
    table.add_column("Total", justify="right")
    table.add_column("Status")
    for bill in bills:
        table.add_row(
            bill.tenant.full_name if bill.tenant else "-",
            bill.room.number if bill.room else "-",
            format_month(bill.billing_month),
            format_currency(bill.total_amount, settings),
            bill.status.value,
        )
    console.print(table)
    console.print(f"\n[green bold]{len(bills)} bill(s) seeded.[/green bold]")


if __name__ == "__main__":
    main()
