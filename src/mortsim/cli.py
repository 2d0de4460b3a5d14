import argparse
import datetime
import sys
from decimal import Decimal, InvalidOperation

from rich.console import Console
from rich.table import Table

from mortsim.amortization import ScheduleSummary, run
from mortsim.charges import ServiceChargeSet
from mortsim.config import Settings, configure_logging
from mortsim.extras import ExtraPaymentSet
from mortsim.impact import impact
from mortsim.loan import LoanParameters, to_decimal
from mortsim.validation import ValidationError


class Namespace(argparse.Namespace):
    rate: Decimal
    years: int
    amount: Decimal
    start_date: datetime.date
    one_off: list[str]
    periodic: list[str]
    service: list[str]
    compare: bool


def _decimal(value: str) -> Decimal:
    try:
        return to_decimal(value)
    except (InvalidOperation, ValueError) as exc:
        raise argparse.ArgumentTypeError(f"invalid amount: {value!r}") from exc


def _date(value: str) -> datetime.date:
    try:
        return datetime.date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date: {value!r}") from exc


def _int(value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from exc


def parse_one_off_arg(arg: str) -> tuple[datetime.date, Decimal, Decimal]:
    parts = arg.split(":")
    if len(parts) not in (2, 3):
        raise argparse.ArgumentTypeError("Expected format YYYY-MM-DD:amount[:penalty]")
    penalty = _decimal(parts[2]) if len(parts) == 3 else Decimal("0")
    return _date(parts[0]), _decimal(parts[1]), penalty


def parse_periodic_arg(arg: str) -> tuple[Decimal, int, int, int, Decimal]:
    parts = arg.split(":")
    if len(parts) not in (4, 5):
        raise argparse.ArgumentTypeError("Expected format amount:interval:start:end[:penalty]")
    penalty = _decimal(parts[4]) if len(parts) == 5 else Decimal("0")
    return _decimal(parts[0]), _int(parts[1]), _int(parts[2]), _int(parts[3]), penalty


def parse_service_arg(arg: str) -> tuple[str, Decimal, datetime.date | None]:
    parts = arg.split(":")
    if len(parts) not in (2, 3):
        raise argparse.ArgumentTypeError("Expected format name:monthly_cost[:YYYY-MM-DD]")
    finish_date = _date(parts[2]) if len(parts) == 3 and parts[2] else None
    return parts[0], _decimal(parts[1]), finish_date


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mortgage amortization simulator")

    parser.add_argument(
        "-r",
        "--rate",
        type=_decimal,
        required=True,
        help="Annual interest rate (as a percentage, e.g., 2.5 for 2.5%% not 0.025)",
    )

    parser.add_argument(
        "-y",
        "--years",
        type=int,
        required=True,
        help="Term in years",
    )

    parser.add_argument(
        "-s",
        "--start-date",
        type=_date,
        default=datetime.date.today(),
        help="Date of the first payment as YYYY-MM-DD (default: today)",
    )

    parser.add_argument("amount", type=_decimal, help="Loan amount")

    parser.add_argument(
        "--one-off",
        action="append",
        default=[],
        help="One-off extra payment as YYYY-MM-DD:amount[:penalty_percent]",
    )

    parser.add_argument(
        "--periodic",
        action="append",
        default=[],
        help="Periodic extra payment as amount:interval_months:start_period:end_period[:penalty_percent]",
    )

    parser.add_argument(
        "--service",
        action="append",
        default=[],
        help="Monthly service charge as name:monthly_cost[:finish YYYY-MM-DD]",
    )

    parser.add_argument(
        "--compare",
        action="store_true",
        help="Also show savings against the same loan without extra payments",
    )

    return parser


def _print_summary(console: Console, title: str, summary: ScheduleSummary) -> None:
    console.print(f"[bold]{title}[/bold]")
    console.print(f"  Monthly Payment: {summary.monthly_payment:,.2f}")
    console.print(f"  Total Interest Paid: {summary.total_interest:,.2f}")
    console.print(f"  Total Extra Principal Paid: {summary.total_extra_principal:,.2f}")
    console.print(f"  Total Penalties Paid: {summary.total_penalties:,.2f}")
    console.print(f"  Total Service Charges Paid: {summary.total_service_charges:,.2f}")
    console.print(f"  Total Amount Paid: {summary.total_paid:,.2f}")
    console.print(f"  Months to Payoff: {summary.actual_months} of {summary.nominal_months}")


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    configure_logging(Settings.from_env())
    parser = get_parser()
    args = parser.parse_args(argv, namespace=Namespace())

    loan = LoanParameters(
        principal=args.amount,
        annual_rate=args.rate,
        term_years=args.years,
        start_date=args.start_date,
    )
    extra_payments = ExtraPaymentSet()
    service_charges = ServiceChargeSet()
    try:
        for one_off_arg in args.one_off:
            dt, amount, penalty = parse_one_off_arg(one_off_arg)
            extra_payments.add_one_off(amount, dt, penalty)
        for periodic_arg in args.periodic:
            amount, interval, start, end, penalty = parse_periodic_arg(periodic_arg)
            extra_payments.add_periodic(amount, interval, start, end, penalty)
        for service_arg in args.service:
            name, cost, finish_date = parse_service_arg(service_arg)
            service_charges.add(name, cost, finish_date)
    except argparse.ArgumentTypeError as exc:
        parser.error(str(exc))

    console = Console()
    try:
        rows, summary = run(loan, extra_payments, service_charges)
    except ValidationError as exc:
        for error in exc.errors:
            console.print(f"[red]{error}[/red]")
        return 2

    table = Table(title=f"Amortization Schedule: {loan}")
    table.add_column("Period", justify="right", style="cyan", no_wrap=True)
    table.add_column("Year/Month", style="magenta")
    table.add_column("Payment", justify="right", style="yellow")
    table.add_column("Interest", justify="right", style="red")
    table.add_column("Principal", justify="right", style="green")
    table.add_column("Extra", justify="right", style="green")
    table.add_column("Penalty", justify="right", style="red")
    table.add_column("Services", justify="right", style="red")
    table.add_column("Total", justify="right", style="yellow")
    table.add_column("Balance", justify="right", style="blue")
    for row in rows:
        table.add_row(*row.to_row())
    console.print(table)

    if not args.compare:
        _print_summary(console, "Totals", summary)
        return 0

    report = impact(loan, service_charges, extra_payments)
    _print_summary(console, "With Extra Payments", report.with_extras)
    _print_summary(console, "Without Extra Payments", report.baseline)
    console.print("[bold]Savings[/bold]")
    console.print(f"  Interest Saved: {report.savings.interest:,.2f}")
    console.print(f"  Months Saved: {report.savings.months}")
    console.print(f"  Total Saved: {report.savings.total_paid:,.2f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
