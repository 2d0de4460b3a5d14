import datetime
from collections.abc import Iterator
from dataclasses import dataclass, field
from decimal import Decimal

from mortsim.loan import ZERO, Amount, to_decimal


@dataclass
class ServiceCharge:
    name: str
    monthly_cost: Decimal
    finish_date: datetime.date | None = None

    def __post_init__(self) -> None:
        self.monthly_cost = to_decimal(self.monthly_cost)

    def is_active(self, payment_date: datetime.date) -> bool:
        # Active through the finish date inclusive, no proration.
        return self.finish_date is None or payment_date <= self.finish_date

    def validate(self) -> list[str]:
        if self.monthly_cost < 0:
            return ["Monthly cost cannot be negative"]
        return []


@dataclass
class ServiceChargeSet:
    charges: list[ServiceCharge] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.charges)

    def __iter__(self) -> Iterator[ServiceCharge]:
        return iter(self.charges)

    def add(self, name: str, monthly_cost: Amount, finish_date: datetime.date | None = None) -> ServiceCharge:
        charge = ServiceCharge(name=name, monthly_cost=to_decimal(monthly_cost), finish_date=finish_date)
        self.charges.append(charge)
        return charge

    def remove(self, index: int) -> ServiceCharge | None:
        if 0 <= index < len(self.charges):
            return self.charges.pop(index)
        return None

    def active_on(self, payment_date: datetime.date) -> list[ServiceCharge]:
        return [charge for charge in self.charges if charge.is_active(payment_date)]

    def total_for(self, payment_date: datetime.date) -> Decimal:
        total = ZERO
        for charge in self.active_on(payment_date):
            total += charge.monthly_cost
        return total

    def validate(self) -> list[str]:
        return [
            f"Service payment {i}: {message}"
            for i, charge in enumerate(self.charges, start=1)
            for message in charge.validate()
        ]
