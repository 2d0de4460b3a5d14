"""Record shapes exchanged with the scenario store and the HTTP API.

Persisted scenarios use the camelCase field names of the saved-simulation
format. Older saves kept every mortgage field at the top level of the record;
:func:`normalize_simulation` lifts those into the nested shape so nothing past
this module ever sees the legacy layout.
"""

import datetime
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

import orjson
from mashumaro.config import BaseConfig
from mashumaro.exceptions import InvalidFieldValue, MissingField
from mashumaro.mixins.orjson import DataClassORJSONMixin

from mortsim.charges import ServiceCharge, ServiceChargeSet
from mortsim.extras import ExtraPaymentSet, OneOffPayment, PeriodicPayment
from mortsim.loan import LoanParameters, to_decimal

LEGACY_MORTGAGE_FIELDS = ("loanAmount", "interestRate", "loanTerm", "startDate", "servicePayments")
LEGACY_AMORTIZATION_FIELDS = ("oneOffPayments", "amortizationPayments", "periodicPayments")


class MalformedRecordError(Exception):
    pass


def _decimal_serializer(value: Decimal) -> str:
    return f"{value:.2f}"


def _number_serializer(value: Decimal) -> int | float:
    return int(value) if value == value.to_integral_value() else float(value)


def _decimal_deserializer(value: Any) -> Decimal:
    return to_decimal(str(value))


def _drop_blank(d: dict[Any, Any], *keys: str) -> dict[Any, Any]:
    return {k: v for k, v in d.items() if not (k in keys and v in ("", None))}


class SchemaConfig(BaseConfig):
    serialization_strategy = {Decimal: {"serialize": _decimal_serializer, "deserialize": _decimal_deserializer}}


class RecordConfig(BaseConfig):
    serialization_strategy = {Decimal: {"serialize": _number_serializer, "deserialize": _decimal_deserializer}}
    serialize_by_alias = True
    allow_deserialization_not_by_alias = True
    omit_none = True


@dataclass
class ServiceChargeRecord(DataClassORJSONMixin):
    name: str
    monthly_cost: Decimal
    finish_date: Optional[datetime.date] = None

    class Config(RecordConfig):
        aliases = {"monthly_cost": "monthlyCost", "finish_date": "finishDate"}

    @classmethod
    def __pre_deserialize__(cls, d: dict[Any, Any]) -> dict[Any, Any]:
        return _drop_blank(d, "finishDate", "finish_date")


@dataclass
class MortgageScenario(DataClassORJSONMixin):
    loan_amount: Decimal
    interest_rate: Decimal
    loan_term: int
    start_date: Optional[datetime.date] = None
    service_payments: list[ServiceChargeRecord] = field(default_factory=list)

    class Config(RecordConfig):
        aliases = {
            "loan_amount": "loanAmount",
            "interest_rate": "interestRate",
            "loan_term": "loanTerm",
            "start_date": "startDate",
            "service_payments": "servicePayments",
        }

    @classmethod
    def __pre_deserialize__(cls, d: dict[Any, Any]) -> dict[Any, Any]:
        return _drop_blank(d, "startDate", "start_date", "servicePayments", "service_payments")

    @classmethod
    def from_domain(cls, loan: LoanParameters, service_charges: ServiceChargeSet | None = None) -> "MortgageScenario":
        return cls(
            loan_amount=loan.principal,
            interest_rate=loan.annual_rate,
            loan_term=loan.term_years,
            start_date=loan.start_date,
            service_payments=[
                ServiceChargeRecord(name=c.name, monthly_cost=c.monthly_cost, finish_date=c.finish_date)
                for c in (service_charges or ())
            ],
        )

    def to_loan(self) -> LoanParameters:
        return LoanParameters(
            principal=self.loan_amount,
            annual_rate=self.interest_rate,
            term_years=self.loan_term,
            start_date=self.start_date,
        )

    def to_service_charges(self) -> ServiceChargeSet:
        return ServiceChargeSet(
            [ServiceCharge(name=r.name, monthly_cost=r.monthly_cost, finish_date=r.finish_date) for r in self.service_payments]
        )


@dataclass
class OneOffPaymentRecord(DataClassORJSONMixin):
    amount: Decimal
    date: Optional[datetime.date] = None
    penalty: Decimal = Decimal("0")

    class Config(RecordConfig):
        pass

    @classmethod
    def __pre_deserialize__(cls, d: dict[Any, Any]) -> dict[Any, Any]:
        return _drop_blank(d, "date", "penalty")


@dataclass
class PeriodicPaymentRecord(DataClassORJSONMixin):
    amount: Decimal
    interval: int
    start_period: int
    end_period: int
    penalty: Decimal = Decimal("0")

    class Config(RecordConfig):
        aliases = {"start_period": "startPeriod", "end_period": "endPeriod"}

    @classmethod
    def __pre_deserialize__(cls, d: dict[Any, Any]) -> dict[Any, Any]:
        return _drop_blank(d, "penalty")


@dataclass
class AmortizationScenario(DataClassORJSONMixin):
    one_off_payments: list[OneOffPaymentRecord] = field(default_factory=list)
    periodic_payments: list[PeriodicPaymentRecord] = field(default_factory=list)

    class Config(RecordConfig):
        aliases = {"one_off_payments": "oneOffPayments", "periodic_payments": "periodicPayments"}

    @classmethod
    def __pre_deserialize__(cls, d: dict[Any, Any]) -> dict[Any, Any]:
        return _drop_blank(d, "oneOffPayments", "one_off_payments", "periodicPayments", "periodic_payments")

    @classmethod
    def from_domain(cls, extra_payments: ExtraPaymentSet) -> "AmortizationScenario":
        return cls(
            one_off_payments=[
                OneOffPaymentRecord(amount=p.amount, date=p.date, penalty=p.penalty) for p in extra_payments.one_off
            ],
            periodic_payments=[
                PeriodicPaymentRecord(
                    amount=p.amount,
                    interval=p.interval,
                    start_period=p.start_period,
                    end_period=p.end_period,
                    penalty=p.penalty,
                )
                for p in extra_payments.periodic
            ],
        )

    def to_extra_payments(self) -> ExtraPaymentSet:
        return ExtraPaymentSet(
            one_off=[OneOffPayment(amount=r.amount, date=r.date, penalty=r.penalty) for r in self.one_off_payments],
            periodic=[
                PeriodicPayment(
                    amount=r.amount,
                    interval=r.interval,
                    start_period=r.start_period,
                    end_period=r.end_period,
                    penalty=r.penalty,
                )
                for r in self.periodic_payments
            ],
        )


@dataclass
class SavedSimulation(DataClassORJSONMixin):
    name: str
    saved_at: Optional[str] = None
    mortgage: Optional[MortgageScenario] = None
    amortization: Optional[AmortizationScenario] = None

    class Config(RecordConfig):
        aliases = {
            "saved_at": "savedAt",
            "mortgage": "mortgageSimulation",
            "amortization": "amortizationSimulation",
        }


def is_legacy(raw: Mapping[str, Any]) -> bool:
    return "mortgageSimulation" not in raw and "amortizationSimulation" not in raw


def _lift_legacy(raw: Mapping[str, Any]) -> dict[str, Any]:
    nested: dict[str, Any] = {k: raw[k] for k in ("name", "savedAt") if k in raw}
    if any(k in raw for k in LEGACY_MORTGAGE_FIELDS):
        nested["mortgageSimulation"] = {k: raw[k] for k in LEGACY_MORTGAGE_FIELDS if k in raw}
    if any(k in raw for k in LEGACY_AMORTIZATION_FIELDS):
        nested["amortizationSimulation"] = {
            "oneOffPayments": raw.get("oneOffPayments") or raw.get("amortizationPayments") or [],
            "periodicPayments": raw.get("periodicPayments") or [],
        }
    return nested


def normalize_simulation(raw: Any) -> SavedSimulation:
    """Decode a saved simulation in either the nested or the legacy flat shape."""
    if not isinstance(raw, Mapping):
        raise MalformedRecordError(f"Expected a simulation record, got {type(raw).__name__}")
    data = _lift_legacy(raw) if is_legacy(raw) else dict(raw)
    try:
        return SavedSimulation.from_dict(data)
    except (MissingField, InvalidFieldValue, ValueError, TypeError, AttributeError, ArithmeticError) as exc:
        raise MalformedRecordError(str(exc)) from exc


def load_simulation(data: bytes | str) -> SavedSimulation:
    try:
        raw = orjson.loads(data)
    except orjson.JSONDecodeError as exc:
        raise MalformedRecordError(str(exc)) from exc
    return normalize_simulation(raw)


@dataclass
class SimulationRequest(DataClassORJSONMixin):
    mortgage: MortgageScenario
    amortization: AmortizationScenario = field(default_factory=AmortizationScenario)

    class Config(RecordConfig):
        aliases = {"mortgage": "mortgageSimulation", "amortization": "amortizationSimulation"}


@dataclass
class BalanceResponse(DataClassORJSONMixin):
    before: Decimal
    after: Decimal

    class Config(SchemaConfig):
        serialize_by_alias = True


@dataclass
class RunningTotalsResponse(DataClassORJSONMixin):
    interest: Decimal
    extra_principal: Decimal
    penalties: Decimal
    service_charges: Decimal
    paid: Decimal

    class Config(SchemaConfig):
        aliases = {"extra_principal": "extraPrincipal", "service_charges": "serviceCharges"}
        serialize_by_alias = True


@dataclass
class ScheduleRowResponse(DataClassORJSONMixin):
    period: int
    date: datetime.date
    month_name: str
    scheduled_payment: Decimal
    interest: Decimal
    principal: Decimal
    extra_one_off: Decimal
    extra_periodic: Decimal
    one_off_penalty: Decimal
    periodic_penalty: Decimal
    service_charges: Decimal
    total_paid: Decimal
    balance: BalanceResponse
    totals: RunningTotalsResponse

    class Config(SchemaConfig):
        aliases = {
            "month_name": "monthName",
            "scheduled_payment": "scheduledPayment",
            "extra_one_off": "extraOneOff",
            "extra_periodic": "extraPeriodic",
            "one_off_penalty": "oneOffPenalty",
            "periodic_penalty": "periodicPenalty",
            "service_charges": "serviceCharges",
            "total_paid": "totalPaid",
        }
        serialize_by_alias = True


@dataclass
class SummaryResponse(DataClassORJSONMixin):
    monthly_payment: Decimal
    total_interest: Decimal
    total_extra_principal: Decimal
    total_penalties: Decimal
    total_service_charges: Decimal
    total_paid: Decimal
    actual_months: int

    class Config(SchemaConfig):
        aliases = {
            "monthly_payment": "monthlyPayment",
            "total_interest": "totalInterest",
            "total_extra_principal": "totalExtraPrincipal",
            "total_penalties": "totalPenalties",
            "total_service_charges": "totalServiceCharges",
            "total_paid": "totalPaid",
            "actual_months": "actualMonths",
        }
        serialize_by_alias = True


@dataclass
class ScheduleResponse(DataClassORJSONMixin):
    rows: list[ScheduleRowResponse]
    summary: SummaryResponse

    class Config(SchemaConfig):
        serialize_by_alias = True


@dataclass
class SavingsResponse(DataClassORJSONMixin):
    interest: Decimal
    months: int
    total_paid: Decimal

    class Config(SchemaConfig):
        aliases = {"total_paid": "totalPaid"}
        serialize_by_alias = True


@dataclass
class ImpactResponse(DataClassORJSONMixin):
    with_extras: SummaryResponse
    baseline: SummaryResponse
    savings: SavingsResponse
    name: Optional[str] = None

    class Config(SchemaConfig):
        aliases = {"with_extras": "withExtras"}
        serialize_by_alias = True
        omit_none = True


@dataclass
class ComparisonResponse(DataClassORJSONMixin):
    amortization: str
    mortgages: list[ImpactResponse]

    class Config(SchemaConfig):
        serialize_by_alias = True
