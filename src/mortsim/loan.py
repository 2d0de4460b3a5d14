import calendar
import datetime
from dataclasses import dataclass
from decimal import Decimal

type Amount = int | float | str | Decimal
type InterestRate = int | float | str | Decimal

ZERO = Decimal("0.00")


def to_decimal(value: Amount) -> Decimal:
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        result = Decimal(value)
    if not result.is_finite():
        raise ValueError(f"Amount must be a finite number, got {value!r}")
    return result


def add_months(dt: datetime.date, months: int) -> datetime.date:
    index = dt.month - 1 + months
    year, month = dt.year + index // 12, index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return datetime.date(year, month, day)


def annuity_payment(principal: Decimal, monthly_rate: Decimal, periods: int) -> Decimal:
    """Level monthly payment that amortizes ``principal`` over ``periods`` months.

    A zero rate falls back to straight-line repayment and a non-positive number
    of periods yields no payment at all.
    """
    if periods <= 0:
        return ZERO
    if monthly_rate == 0:
        return principal / periods
    factor = (1 + monthly_rate) ** periods
    return principal * monthly_rate * factor / (factor - 1)


@dataclass
class LoanParameters:
    principal: Decimal
    annual_rate: Decimal
    term_years: int
    start_date: datetime.date | None

    def __post_init__(self) -> None:
        self.principal = to_decimal(self.principal)
        self.annual_rate = to_decimal(self.annual_rate)

    def __str__(self) -> str:
        return f"{self.principal:,.2f} over {self.term_years} years at {self.annual_rate:.2f}% yearly interest rate"

    @property
    def periods(self) -> int:
        return self.term_years * 12

    @property
    def monthly_interest_rate(self) -> Decimal:
        return self.annual_rate / Decimal("100.00") / Decimal("12.00")

    @property
    def monthly_payment(self) -> Decimal:
        return annuity_payment(self.principal, self.monthly_interest_rate, self.periods)

    def validate(self) -> list[str]:
        errors = []
        if self.principal <= 0:
            errors.append("Loan amount must be greater than 0")
        if self.annual_rate < 0:
            errors.append("Interest rate cannot be negative")
        if self.term_years <= 0:
            errors.append("Loan term must be greater than 0")
        if self.start_date is None:
            errors.append("Start date is required")
        return errors
