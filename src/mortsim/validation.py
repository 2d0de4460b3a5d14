from mortsim.charges import ServiceChargeSet
from mortsim.extras import ExtraPaymentSet
from mortsim.loan import LoanParameters


class ValidationError(Exception):
    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


def validate_inputs(
    loan: LoanParameters,
    extra_payments: ExtraPaymentSet | None = None,
    service_charges: ServiceChargeSet | None = None,
) -> list[str]:
    """Collect every violation across the inputs of a simulation run."""
    errors = loan.validate()
    if service_charges is not None:
        errors.extend(service_charges.validate())
    if extra_payments is not None:
        errors.extend(extra_payments.validate())
    return errors


def ensure_valid(
    loan: LoanParameters,
    extra_payments: ExtraPaymentSet | None = None,
    service_charges: ServiceChargeSet | None = None,
) -> None:
    errors = validate_inputs(loan, extra_payments, service_charges)
    if errors:
        raise ValidationError(errors)
