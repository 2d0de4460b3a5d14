import datetime
from decimal import Decimal

from mortsim.extras import ExtraPaymentSet, OneOffPayment, PeriodicPayment


def test_one_off_lookup_scans_by_ascending_date() -> None:
    extras = ExtraPaymentSet()
    extras.add_one_off(Decimal("3000"), datetime.date(2026, 4, 28))
    extras.add_one_off(Decimal("1000"), datetime.date(2026, 4, 2))
    extras.add_one_off(Decimal("2000"), datetime.date(2026, 5, 1))

    found = extras.one_off_for_month(datetime.date(2026, 4, 15))

    assert found is not None
    assert found.amount == Decimal("1000")
    assert extras.one_off_for_month(datetime.date(2026, 6, 1)) is None


def test_one_off_lookup_matches_year_and_month() -> None:
    extras = ExtraPaymentSet()
    extras.add_one_off(Decimal("1000"), datetime.date(2027, 4, 2))

    assert extras.one_off_for_month(datetime.date(2026, 4, 2)) is None
    assert extras.one_off_for_month(datetime.date(2027, 4, 30)) is not None


def test_one_off_without_date_never_matches() -> None:
    extras = ExtraPaymentSet(one_off=[OneOffPayment(amount=Decimal("1000"), date=None)])

    assert extras.one_off_for_month(datetime.date(2026, 4, 1)) is None


def test_periodic_applies_on_interval_inside_window() -> None:
    payment = PeriodicPayment(amount=Decimal("100"), interval=6, start_period=12, end_period=24)

    assert [p for p in range(1, 31) if payment.applies_to(p)] == [12, 18, 24]
    assert payment.occurrences == 3


def test_periodic_lookup_returns_first_defined_match() -> None:
    extras = ExtraPaymentSet()
    first = extras.add_periodic(Decimal("100"), interval=2, start_period=1, end_period=9)
    second = extras.add_periodic(Decimal("250"), interval=1, start_period=1, end_period=12)

    assert extras.periodic_for_period(3) is first
    assert extras.periodic_for_period(4) is second
    assert extras.periodic_for_period(13) is None


def test_penalty_amount_is_percentage_of_amount() -> None:
    payment = OneOffPayment(amount=Decimal("20000"), date=datetime.date(2026, 1, 1), penalty=Decimal("1.5"))

    assert payment.penalty_amount == Decimal("300")


def test_nominal_totals_count_periodic_occurrences() -> None:
    extras = ExtraPaymentSet()
    extras.add_one_off(Decimal("1000"), datetime.date(2026, 1, 1), penalty=Decimal("1"))
    extras.add_periodic(Decimal("100"), interval=6, start_period=12, end_period=24, penalty=Decimal("2"))

    assert extras.nominal_amount() == Decimal("1300")
    assert extras.nominal_penalty() == Decimal("16")


def test_remove_and_copy() -> None:
    extras = ExtraPaymentSet()
    extras.add_one_off(Decimal("1000"), datetime.date(2026, 1, 1))
    extras.add_periodic(Decimal("100"), interval=1, start_period=1, end_period=12)
    copied = extras.copy()

    assert extras.remove_one_off(5) is None
    assert extras.remove_periodic(0) is not None
    assert not extras.periodic
    assert len(copied.periodic) == 1
    assert extras
    assert not ExtraPaymentSet()


def test_validation_numbers_each_payment() -> None:
    extras = ExtraPaymentSet()
    extras.add_one_off(Decimal("1000"), datetime.date(2026, 1, 1))
    extras.add_one_off(Decimal("0"), None, penalty=Decimal("-1"))
    extras.add_periodic(Decimal("100"), interval=1, start_period=0, end_period=12)

    assert extras.validate() == [
        "One-off payment 2: Amount must be greater than 0",
        "One-off payment 2: Penalty cannot be negative",
        "One-off payment 2: Date is required",
        "Periodic payment 1: Start period must be greater than 0",
    ]
