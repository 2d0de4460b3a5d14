from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from mortsim.amortization import ScheduleSummary, run
from mortsim.charges import ServiceChargeSet
from mortsim.extras import ExtraPaymentSet
from mortsim.loan import LoanParameters


@dataclass(frozen=True)
class Savings:
    interest: Decimal
    months: int
    total_paid: Decimal


@dataclass(frozen=True)
class ImpactReport:
    with_extras: ScheduleSummary
    baseline: ScheduleSummary
    savings: Savings


@dataclass(frozen=True)
class ComparisonRow:
    name: str
    loan: LoanParameters
    report: ImpactReport


def impact(
    loan: LoanParameters,
    service_charges: ServiceChargeSet | None,
    extra_payments: ExtraPaymentSet | None,
) -> ImpactReport:
    """Compare a loan with and without extra payments.

    Both runs share the loan and its service charges, so the savings isolate
    the effect of the extra payments alone.
    """
    _, baseline = run(loan, ExtraPaymentSet(), service_charges)
    _, with_extras = run(loan, extra_payments, service_charges)
    savings = Savings(
        interest=baseline.total_interest - with_extras.total_interest,
        months=baseline.actual_months - with_extras.actual_months,
        total_paid=baseline.total_paid - with_extras.total_paid,
    )
    return ImpactReport(with_extras=with_extras, baseline=baseline, savings=savings)


def compare(
    mortgages: Mapping[str, tuple[LoanParameters, ServiceChargeSet | None]],
    extra_payments: ExtraPaymentSet | None,
) -> list[ComparisonRow]:
    return [
        ComparisonRow(name=name, loan=loan, report=impact(loan, service_charges, extra_payments))
        for name, (loan, service_charges) in mortgages.items()
    ]
