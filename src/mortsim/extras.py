import datetime
import operator as op
from dataclasses import dataclass, field
from decimal import Decimal

from mortsim.loan import ZERO, Amount, to_decimal


def _penalty(amount: Decimal, percent: Decimal) -> Decimal:
    return amount * (percent / Decimal("100.00"))


@dataclass
class OneOffPayment:
    amount: Decimal
    date: datetime.date | None
    penalty: Decimal = ZERO

    def __post_init__(self) -> None:
        self.amount = to_decimal(self.amount)
        self.penalty = to_decimal(self.penalty)

    @property
    def penalty_amount(self) -> Decimal:
        return _penalty(self.amount, self.penalty)

    def falls_in(self, payment_date: datetime.date) -> bool:
        return (
            self.date is not None
            and self.date.year == payment_date.year
            and self.date.month == payment_date.month
        )

    def validate(self) -> list[str]:
        errors = []
        if self.amount <= 0:
            errors.append("Amount must be greater than 0")
        if self.penalty < 0:
            errors.append("Penalty cannot be negative")
        if self.date is None:
            errors.append("Date is required")
        return errors


@dataclass
class PeriodicPayment:
    amount: Decimal
    interval: int
    start_period: int
    end_period: int
    penalty: Decimal = ZERO

    def __post_init__(self) -> None:
        self.amount = to_decimal(self.amount)
        self.penalty = to_decimal(self.penalty)

    @property
    def penalty_amount(self) -> Decimal:
        return _penalty(self.amount, self.penalty)

    @property
    def occurrences(self) -> int:
        """Number of times the payment falls inside its window."""
        if self.interval <= 0 or self.end_period < self.start_period:
            return 0
        return (self.end_period - self.start_period) // self.interval + 1

    def applies_to(self, period: int) -> bool:
        return (
            self.start_period <= period <= self.end_period
            and (period - self.start_period) % self.interval == 0
        )

    def validate(self) -> list[str]:
        errors = []
        if self.amount <= 0:
            errors.append("Amount must be greater than 0")
        if self.interval <= 0:
            errors.append("Interval must be greater than 0")
        if self.start_period <= 0:
            errors.append("Start period must be greater than 0")
        if self.end_period <= self.start_period:
            errors.append("End period must be greater than start period")
        if self.penalty < 0:
            errors.append("Penalty cannot be negative")
        return errors


@dataclass
class ExtraPaymentSet:
    """One-off and periodic extra principal payments planned against a loan.

    Lookups are first-match: a calendar month gets at most one one-off payment
    (the earliest dated one) and a period gets at most one periodic payment
    (the first defined whose window and interval match).
    """

    one_off: list[OneOffPayment] = field(default_factory=list)
    periodic: list[PeriodicPayment] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.one_off or self.periodic)

    def add_one_off(self, amount: Amount, date: datetime.date | None, penalty: Amount = ZERO) -> OneOffPayment:
        payment = OneOffPayment(amount=to_decimal(amount), date=date, penalty=to_decimal(penalty))
        self.one_off.append(payment)
        return payment

    def add_periodic(
        self,
        amount: Amount,
        interval: int,
        start_period: int,
        end_period: int,
        penalty: Amount = ZERO,
    ) -> PeriodicPayment:
        payment = PeriodicPayment(
            amount=to_decimal(amount),
            interval=interval,
            start_period=start_period,
            end_period=end_period,
            penalty=to_decimal(penalty),
        )
        self.periodic.append(payment)
        return payment

    def remove_one_off(self, index: int) -> OneOffPayment | None:
        if 0 <= index < len(self.one_off):
            return self.one_off.pop(index)
        return None

    def remove_periodic(self, index: int) -> PeriodicPayment | None:
        if 0 <= index < len(self.periodic):
            return self.periodic.pop(index)
        return None

    def one_off_for_month(self, payment_date: datetime.date) -> OneOffPayment | None:
        dated = [payment for payment in self.one_off if payment.date is not None]
        for payment in sorted(dated, key=op.attrgetter("date")):
            if payment.falls_in(payment_date):
                return payment
        return None

    def periodic_for_period(self, period: int) -> PeriodicPayment | None:
        # TODO: revisit summing every matching schedule instead of taking the first one.
        for payment in self.periodic:
            if payment.applies_to(period):
                return payment
        return None

    def nominal_amount(self) -> Decimal:
        total = ZERO
        for one_off in self.one_off:
            total += one_off.amount
        for periodic in self.periodic:
            total += periodic.amount * periodic.occurrences
        return total

    def nominal_penalty(self) -> Decimal:
        total = ZERO
        for one_off in self.one_off:
            total += one_off.penalty_amount
        for periodic in self.periodic:
            total += periodic.penalty_amount * periodic.occurrences
        return total

    def copy(self) -> "ExtraPaymentSet":
        return ExtraPaymentSet(one_off=list(self.one_off), periodic=list(self.periodic))

    def validate(self) -> list[str]:
        errors = [
            f"One-off payment {i}: {message}"
            for i, payment in enumerate(self.one_off, start=1)
            for message in payment.validate()
        ]
        errors.extend(
            f"Periodic payment {i}: {message}"
            for i, payment in enumerate(self.periodic, start=1)
            for message in payment.validate()
        )
        return errors
