"""Loan lifecycle: statuses, enumerated form values and EMI derivation.

Interest is flat: it is charged once on the full principal for every month
of the term, never on a reducing balance.
"""
from collections import namedtuple
from decimal import Decimal, InvalidOperation, Overflow, ROUND_HALF_UP
from enum import Enum

DEFAULT_INTEREST_RATE = 0.03
DOWN_PAYMENT_PERCENTAGE = 0.10

_CENT = Decimal("0.01")


class LoanStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    PAID = "Paid"


class LoanDuration(str, Enum):
    THREE_MONTHS = "3"
    SIX_MONTHS = "6"

    @property
    def months(self):
        return int(self.value)


class PaymentMethod(str, Enum):
    BKASH = "bKash"
    NAGAD = "Nagad"
    ROCKET = "Rocket"


# Statuses that stamp approved_rejected_at when entered.
DECISION_STATUSES = frozenset({LoanStatus.APPROVED, LoanStatus.REJECTED})

# Intended progression. Only enforced when strict transitions are enabled.
TRANSITIONS = {
    LoanStatus.PENDING: frozenset({LoanStatus.APPROVED, LoanStatus.REJECTED}),
    LoanStatus.APPROVED: frozenset({LoanStatus.PAID}),
    LoanStatus.REJECTED: frozenset(),
    LoanStatus.PAID: frozenset(),
}

LoanTerms = namedtuple(
    "LoanTerms",
    ["total_interest", "total_repayment", "emi_amount", "down_payment"],
)

ZERO_TERMS = LoanTerms(0.0, 0.0, 0.0, 0.0)


def round_cents(value):
    """Round half-up to the cent and return a float."""
    return float(_to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP))


def _to_decimal(value):
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def parse_months(duration):
    """Return the number of months in ``duration`` or 0 if it is unusable."""
    if isinstance(duration, LoanDuration):
        return duration.months
    try:
        return int(str(duration).strip())
    except (TypeError, ValueError):
        return 0


def calculate_loan_terms(principal, duration, interest_rate=None):
    """Derive interest, repayment, EMI and down payment for a flat-rate loan.

    Returns all zeros when the principal or the duration is not positive, or
    the amounts are too large to round to the cent, so the calculator can
    render something for any input.
    """
    if interest_rate is None:
        interest_rate = DEFAULT_INTEREST_RATE
    months = parse_months(duration)
    try:
        amount = _to_decimal(principal)
    except (InvalidOperation, ValueError):
        return ZERO_TERMS
    if not amount.is_finite() or amount <= 0 or months <= 0:
        return ZERO_TERMS

    try:
        rate = _to_decimal(interest_rate)
        total_interest = amount * rate * months
        total_repayment = amount + total_interest
        emi = total_repayment / months
        down_payment = amount * _to_decimal(DOWN_PAYMENT_PERCENTAGE)

        return LoanTerms(
            total_interest=round_cents(total_interest),
            total_repayment=round_cents(total_repayment),
            emi_amount=round_cents(emi),
            down_payment=round_cents(down_payment),
        )
    except (InvalidOperation, Overflow):
        # beyond what fits in the cent-quantized context
        return ZERO_TERMS


def is_allowed_transition(current, new):
    current = LoanStatus(current)
    new = LoanStatus(new)
    return new in TRANSITIONS[current]


def stamps_decision_time(status):
    return LoanStatus(status) in DECISION_STATUSES
