import datetime
from decimal import Decimal

import pytest

from mortsim.amortization import AmortizationSchedule, run
from mortsim.charges import ServiceChargeSet
from mortsim.extras import ExtraPaymentSet
from mortsim.loan import LoanParameters
from mortsim.validation import ValidationError

START = datetime.date(2025, 1, 1)


def standard_loan() -> LoanParameters:
    return LoanParameters(principal=Decimal("300000"), annual_rate=Decimal("2.5"), term_years=25, start_date=START)


def test_zero_rate_loan() -> None:
    loan = LoanParameters(principal=Decimal("120000"), annual_rate=Decimal("0"), term_years=10, start_date=START)

    rows, summary = run(loan)

    assert summary.monthly_payment == Decimal("1000.00")
    assert summary.total_interest == 0
    assert summary.actual_months == 120
    assert summary.total_paid == Decimal("120000")
    assert rows[-1].balance.after == 0


def test_standard_loan_runs_full_term() -> None:
    rows, summary = run(standard_loan())

    assert summary.actual_months == 300
    assert not summary.paid_off_early
    assert rows[0].payment_date == START
    assert rows[-1].payment_date == datetime.date(2049, 12, 1)
    assert [row.period for row in rows] == list(range(1, 301))


def test_no_extras_matches_closed_form_interest() -> None:
    _, summary = run(standard_loan())

    assert abs(summary.total_interest - summary.closed_form_interest) < Decimal("0.01")
    assert abs(summary.total_paid - summary.monthly_payment * 300) < Decimal("0.01")
    assert round(summary.total_interest) == 103755


def test_balance_is_non_increasing_and_reaches_zero() -> None:
    extras = ExtraPaymentSet()
    extras.add_one_off(Decimal("20000"), datetime.date(2027, 6, 1))
    extras.add_periodic(Decimal("1000"), interval=12, start_period=12, end_period=240)

    rows, _ = run(standard_loan(), extras)

    balances = [row.balance.after for row in rows]
    assert all(later <= earlier for earlier, later in zip(balances, balances[1:]))
    assert balances[-1] == 0
    assert all(row.balance.after > 0 for row in rows[:-1])


def test_one_off_payment_shortens_term() -> None:
    _, baseline = run(standard_loan())
    extras = ExtraPaymentSet()
    extras.add_one_off(Decimal("50000"), datetime.date(2030, 1, 1))

    rows, summary = run(standard_loan(), extras)

    assert summary.actual_months < 300
    assert summary.total_interest < baseline.total_interest
    applied = [row for row in rows if row.extra_one_off]
    assert len(applied) == 1
    assert applied[0].payment_date == datetime.date(2030, 1, 1)
    assert summary.total_extra_principal == Decimal("50000")


def test_duplicate_month_one_off_payments_apply_earliest_only() -> None:
    extras = ExtraPaymentSet()
    extras.add_one_off(Decimal("1000"), datetime.date(2025, 3, 20))
    extras.add_one_off(Decimal("500"), datetime.date(2025, 3, 5))

    rows, summary = run(standard_loan(), extras)

    march = rows[2]
    assert march.payment_date == datetime.date(2025, 3, 1)
    assert march.extra_one_off == Decimal("500")
    assert summary.total_extra_principal == Decimal("500")


def test_periodic_payment_window_boundaries() -> None:
    loan = LoanParameters(principal=Decimal("100000"), annual_rate=Decimal("3"), term_years=10, start_date=START)
    extras = ExtraPaymentSet()
    extras.add_periodic(Decimal("100"), interval=6, start_period=12, end_period=24)

    rows, _ = run(loan, extras)

    assert [row.period for row in rows[:30] if row.extra_periodic > 0] == [12, 18, 24]


def test_first_matching_periodic_schedule_wins() -> None:
    extras = ExtraPaymentSet()
    extras.add_periodic(Decimal("100"), interval=1, start_period=1, end_period=10)
    extras.add_periodic(Decimal("200"), interval=2, start_period=2, end_period=10)

    rows, _ = run(standard_loan(), extras)

    assert rows[1].extra_periodic == Decimal("100")
    assert rows[10].extra_periodic == 0


def test_one_off_and_periodic_stack_in_same_month() -> None:
    extras = ExtraPaymentSet()
    extras.add_one_off(Decimal("2000"), datetime.date(2025, 2, 10))
    extras.add_periodic(Decimal("300"), interval=1, start_period=2, end_period=3)

    rows, _ = run(standard_loan(), extras)

    february = rows[1]
    assert february.extra_principal == Decimal("2300")
    expected = february.balance.before - february.principal - Decimal("2300")
    assert abs(february.balance.after - expected) < Decimal("1E-15")


def test_penalties_cost_cash_but_do_not_reduce_principal() -> None:
    plain = ExtraPaymentSet()
    plain.add_one_off(Decimal("10000"), datetime.date(2026, 1, 1))
    penalized = ExtraPaymentSet()
    penalized.add_one_off(Decimal("10000"), datetime.date(2026, 1, 1), penalty=Decimal("2"))

    plain_rows, plain_summary = run(standard_loan(), plain)
    penalized_rows, penalized_summary = run(standard_loan(), penalized)

    assert [r.balance.after for r in plain_rows] == [r.balance.after for r in penalized_rows]
    assert penalized_summary.total_penalties == Decimal("200")
    assert abs(penalized_summary.total_paid - plain_summary.total_paid - Decimal("200")) < Decimal("1E-10")


def test_overshooting_extra_clamps_balance_and_counts_full_cash() -> None:
    loan = LoanParameters(principal=Decimal("10000"), annual_rate=Decimal("0"), term_years=1, start_date=START)
    extras = ExtraPaymentSet()
    extras.add_one_off(Decimal("50000"), START, penalty=Decimal("2"))

    rows, summary = run(loan, extras)

    assert summary.actual_months == 1
    assert rows[0].balance.after == 0
    assert rows[0].one_off_penalty == Decimal("1000")
    assert summary.total_paid == loan.monthly_payment + Decimal("50000") + Decimal("1000")


def test_service_charges_are_added_to_cash_paid() -> None:
    loan = LoanParameters(principal=Decimal("120000"), annual_rate=Decimal("0"), term_years=10, start_date=START)
    charges = ServiceChargeSet()
    charges.add("Home insurance", Decimal("25"))
    charges.add("Life insurance", Decimal("15"), finish_date=datetime.date(2025, 12, 31))

    rows, summary = run(loan, service_charges=charges)

    assert rows[0].service_charges == Decimal("40")
    assert rows[12].service_charges == Decimal("25")
    assert summary.total_service_charges == Decimal("25") * 120 + Decimal("15") * 12
    assert summary.total_paid == Decimal("120000") + summary.total_service_charges


def test_running_totals_track_each_row() -> None:
    extras = ExtraPaymentSet()
    extras.add_periodic(Decimal("500"), interval=3, start_period=1, end_period=12, penalty=Decimal("1"))

    rows, summary = run(standard_loan(), extras)

    interest = paid = Decimal("0")
    for row in rows[:12]:
        interest += row.interest
        paid += row.total_paid
        assert row.totals.interest == interest
        assert row.totals.paid == paid
    assert rows[11].totals.extra_principal == Decimal("2000")
    assert rows[11].totals.penalties == Decimal("20")
    assert summary.total_interest == rows[-1].totals.interest


def test_run_is_idempotent() -> None:
    extras = ExtraPaymentSet()
    extras.add_one_off(Decimal("15000"), datetime.date(2028, 5, 1), penalty=Decimal("1"))
    charges = ServiceChargeSet()
    charges.add("Insurance", Decimal("30"), finish_date=datetime.date(2035, 1, 1))

    first = run(standard_loan(), extras, charges)
    second = run(standard_loan(), extras, charges)

    assert first == second


def test_invalid_inputs_fail_before_simulation() -> None:
    loan = LoanParameters(principal=Decimal("0"), annual_rate=Decimal("2"), term_years=0, start_date=START)
    extras = ExtraPaymentSet()
    extras.add_periodic(Decimal("100"), interval=0, start_period=5, end_period=5)

    with pytest.raises(ValidationError) as excinfo:
        run(loan, extras)

    assert excinfo.value.errors == [
        "Loan amount must be greater than 0",
        "Loan term must be greater than 0",
        "Periodic payment 1: Interval must be greater than 0",
        "Periodic payment 1: End period must be greater than start period",
    ]


def test_generate_yields_rows_lazily() -> None:
    schedule = AmortizationSchedule(standard_loan())

    first = next(schedule.generate())

    assert first.period == 1
    assert first.interest == Decimal("300000") * schedule.monthly_interest_rate
    assert first.to_row()[:2] == ["1", "2025/January"]
