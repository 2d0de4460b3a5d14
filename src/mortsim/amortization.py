import datetime
import enum
import logging
from collections.abc import Generator, Iterable
from dataclasses import dataclass
from decimal import Decimal

from mortsim.charges import ServiceChargeSet
from mortsim.extras import ExtraPaymentSet
from mortsim.loan import ZERO, LoanParameters, add_months
from mortsim.validation import ensure_valid

logger = logging.getLogger(__name__)

PAID_OFF_THRESHOLD = Decimal("0.01")


class Month(enum.IntEnum):
    January = 1
    February = 2
    March = 3
    April = 4
    May = 5
    June = 6
    July = 7
    August = 8
    September = 9
    October = 10
    November = 11
    December = 12


@dataclass(frozen=True)
class Balance:
    before: Decimal
    after: Decimal


@dataclass(frozen=True)
class RunningTotals:
    interest: Decimal
    extra_principal: Decimal
    penalties: Decimal
    service_charges: Decimal
    paid: Decimal


@dataclass(frozen=True)
class ScheduleRow:
    period: int
    payment_date: datetime.date
    scheduled_payment: Decimal
    interest: Decimal
    principal: Decimal
    extra_one_off: Decimal
    extra_periodic: Decimal
    one_off_penalty: Decimal
    periodic_penalty: Decimal
    service_charges: Decimal
    total_paid: Decimal
    balance: Balance
    totals: RunningTotals

    @property
    def month(self) -> Month:
        return Month(self.payment_date.month)

    @property
    def extra_principal(self) -> Decimal:
        return self.extra_one_off + self.extra_periodic

    @property
    def penalty(self) -> Decimal:
        return self.one_off_penalty + self.periodic_penalty

    def to_row(self) -> list[str]:
        return [
            str(self.period),
            f"{self.payment_date.year}/{self.month.name}",
            f"{self.scheduled_payment:,.2f}",
            f"{self.interest:,.2f}",
            f"{self.principal:,.2f}",
            f"{self.extra_principal:,.2f}",
            f"{self.penalty:,.2f}",
            f"{self.service_charges:,.2f}",
            f"{self.total_paid:,.2f}",
            f"{self.balance.after:,.2f}",
        ]


@dataclass(frozen=True)
class ScheduleSummary:
    principal: Decimal
    monthly_payment: Decimal
    total_interest: Decimal
    total_extra_principal: Decimal
    total_penalties: Decimal
    total_service_charges: Decimal
    total_paid: Decimal
    actual_months: int
    nominal_months: int

    @property
    def paid_off_early(self) -> bool:
        return self.actual_months < self.nominal_months

    @property
    def closed_form_interest(self) -> Decimal:
        """Interest of the plain annuity over the full nominal term."""
        return self.monthly_payment * self.nominal_months - self.principal


class AmortizationSchedule:
    def __init__(
        self,
        loan: LoanParameters,
        extra_payments: ExtraPaymentSet | None = None,
        service_charges: ServiceChargeSet | None = None,
    ) -> None:
        self.loan = loan
        self.extra_payments = extra_payments if extra_payments is not None else ExtraPaymentSet()
        self.service_charges = service_charges if service_charges is not None else ServiceChargeSet()

    def __str__(self) -> str:
        return str(self.loan)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(loan={self.loan!r}, extra_payments={self.extra_payments!r}, "
            f"service_charges={self.service_charges!r})"
        )

    @property
    def periods(self) -> int:
        return self.loan.periods

    @property
    def monthly_interest_rate(self) -> Decimal:
        return self.loan.monthly_interest_rate

    @property
    def monthly_payment(self) -> Decimal:
        return self.loan.monthly_payment

    def generate(self) -> Generator[ScheduleRow]:
        payment = self.monthly_payment
        rate = self.monthly_interest_rate
        balance = self.loan.principal
        total_interest = ZERO
        total_extra = ZERO
        total_penalties = ZERO
        total_service = ZERO
        total_paid = ZERO

        i = 0
        while i < self.periods and balance > PAID_OFF_THRESHOLD:
            period = i + 1
            payment_date = add_months(self.loan.start_date, i)
            interest = balance * rate
            principal = payment - interest

            extra_one_off = one_off_penalty = ZERO
            if one_off := self.extra_payments.one_off_for_month(payment_date):
                extra_one_off = one_off.amount
                one_off_penalty = one_off.penalty_amount

            extra_periodic = periodic_penalty = ZERO
            if periodic := self.extra_payments.periodic_for_period(period):
                extra_periodic = periodic.amount
                periodic_penalty = periodic.penalty_amount

            service = self.service_charges.total_for(payment_date)

            new_balance = max(ZERO, balance - (principal + extra_one_off + extra_periodic))
            if new_balance <= PAID_OFF_THRESHOLD:
                new_balance = ZERO
            # Overshooting extras are still counted in full as cash paid.
            month_paid = payment + extra_one_off + one_off_penalty + extra_periodic + periodic_penalty + service

            total_interest += interest
            total_extra += extra_one_off + extra_periodic
            total_penalties += one_off_penalty + periodic_penalty
            total_service += service
            total_paid += month_paid

            yield ScheduleRow(
                period=period,
                payment_date=payment_date,
                scheduled_payment=payment,
                interest=interest,
                principal=principal,
                extra_one_off=extra_one_off,
                extra_periodic=extra_periodic,
                one_off_penalty=one_off_penalty,
                periodic_penalty=periodic_penalty,
                service_charges=service,
                total_paid=month_paid,
                balance=Balance(before=balance, after=new_balance),
                totals=RunningTotals(
                    interest=total_interest,
                    extra_principal=total_extra,
                    penalties=total_penalties,
                    service_charges=total_service,
                    paid=total_paid,
                ),
            )

            balance = new_balance
            i += 1

    def summarize(self, rows: Iterable[ScheduleRow]) -> ScheduleSummary:
        rows = list(rows)
        last = rows[-1].totals if rows else RunningTotals(ZERO, ZERO, ZERO, ZERO, ZERO)
        return ScheduleSummary(
            principal=self.loan.principal,
            monthly_payment=self.monthly_payment,
            total_interest=last.interest,
            total_extra_principal=last.extra_principal,
            total_penalties=last.penalties,
            total_service_charges=last.service_charges,
            total_paid=last.paid,
            actual_months=len(rows),
            nominal_months=self.periods,
        )


def run(
    loan: LoanParameters,
    extra_payments: ExtraPaymentSet | None = None,
    service_charges: ServiceChargeSet | None = None,
) -> tuple[list[ScheduleRow], ScheduleSummary]:
    """Simulate the loan month by month and return its rows and totals.

    Raises ``ValidationError`` with every violation before simulating when any
    input is invalid; once the inputs are valid the simulation cannot fail.
    """
    ensure_valid(loan, extra_payments, service_charges)
    schedule = AmortizationSchedule(loan, extra_payments, service_charges)
    rows = list(schedule.generate())
    summary = schedule.summarize(rows)
    logger.debug(
        "Simulated %s: %d of %d months, total interest %.2f",
        loan,
        summary.actual_months,
        summary.nominal_months,
        summary.total_interest,
    )
    return rows, summary
