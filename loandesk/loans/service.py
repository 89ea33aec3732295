"""Submission, listing and review of loan applications."""
import logging
import math
import uuid
from datetime import datetime, timezone

from ..auth.users import UserStore
from ..db import LOANS_TABLE, first_row, rows, sb_exec
from ..errors import (
    AuthorizationError,
    LoanAmountOutOfRange,
    NotFoundError,
    ValidationError,
)
from ..lifecycle import (
    LoanDuration,
    LoanStatus,
    PaymentMethod,
    calculate_loan_terms,
    is_allowed_transition,
    stamps_decision_time,
)
from ..roles import Capability, Role, authorize, can_view_loan

log = logging.getLogger(__name__)

TEXT_FIELDS = [
    "full_name",
    "date_of_birth",
    "phone_number",
    "address",
    "national_id_number",
    "job_type",
    "bank_account_number",
    "emergency_contact_name",
    "emergency_contact_phone",
]

DOCUMENT_FIELDS = [
    "nid_front_url",
    "nid_back_url",
    "downpayment_screenshot_url",
]


def _utcnow():
    return datetime.now(timezone.utc)


def _parse_number(value, field):
    if isinstance(value, bool) or value is None or value == "":
        raise ValidationError(f"{field} must be a number", {"field": field})
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", {"field": field})
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a number", {"field": field})
    return number


def _parse_enum(enum_cls, value, field):
    try:
        return enum_cls(str(value).strip())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field} must be one of: {allowed}", {"field": field})


class ApplicationService:
    def __init__(self, client, settings, clock=None, strict_transitions=False):
        self.client = client
        self.settings = settings
        self.clock = clock or _utcnow
        self.strict_transitions = strict_transitions

    def _now(self):
        return self.clock().isoformat(timespec="microseconds")

    def validate(self, form):
        """Check a submitted form and return the cleaned client-settable fields."""
        form = form or {}
        if not isinstance(form, dict):
            raise ValidationError("Application form must be an object")
        missing = [f for f in TEXT_FIELDS + DOCUMENT_FIELDS if not str(form.get(f) or "").strip()]
        for field in ("loan_amount", "salary_amount", "loan_duration", "downpayment_method"):
            if form.get(field) in (None, ""):
                missing.append(field)
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                {"missing": missing},
            )

        cleaned = {f: str(form[f]).strip() for f in TEXT_FIELDS + DOCUMENT_FIELDS}
        amount = _parse_number(form["loan_amount"], "loan_amount")
        if amount <= 0:
            raise ValidationError("loan_amount must be positive", {"field": "loan_amount"})
        cleaned["loan_amount"] = amount
        cleaned["salary_amount"] = _parse_number(form["salary_amount"], "salary_amount")
        cleaned["loan_duration"] = _parse_enum(LoanDuration, form["loan_duration"], "loan_duration").value
        cleaned["downpayment_method"] = _parse_enum(
            PaymentMethod, form["downpayment_method"], "downpayment_method").value
        return cleaned

    def submit(self, owner_id, form):
        cleaned = self.validate(form)

        limits = self.settings.get_limits()
        minimum, maximum = float(limits["min"]), float(limits["max"])
        if not minimum <= cleaned["loan_amount"] <= maximum:
            raise LoanAmountOutOfRange(cleaned["loan_amount"], limits["min"], limits["max"])

        terms = calculate_loan_terms(
            cleaned["loan_amount"],
            cleaned["loan_duration"],
            self.settings.get_interest_rate(),
        )
        now = self._now()
        record = dict(
            cleaned,
            id=str(uuid.uuid4()),
            user_id=str(owner_id),
            status=LoanStatus.PENDING.value,
            emi_amount=terms.emi_amount,
            total_repayment=terms.total_repayment,
            applied_at=now,
            approved_rejected_at=None,
            updated_at=now,
        )
        resp = sb_exec(self.client.table(LOANS_TABLE).insert(record))
        log.info("Loan application %s submitted by %s for %s", record["id"], owner_id, cleaned["loan_amount"])
        return first_row(resp) or record

    def list(self, caller_role, caller_id, status=None):
        authorize(caller_role, Capability.VIEW_OWN_LOANS)
        query = self.client.table(LOANS_TABLE).select("*")
        if Role.parse(caller_role) == Role.USER:
            query = query.eq("user_id", str(caller_id))
        if status:
            query = query.eq("status", _parse_enum(LoanStatus, status, "status").value)
        loans = rows(sb_exec(query.order("applied_at", desc=True)))
        return self._with_owners(loans)

    def get(self, loan_id, caller_role, caller_id):
        authorize(caller_role, Capability.VIEW_OWN_LOANS)
        loan = self._fetch(loan_id)
        if not can_view_loan(caller_role, caller_id, loan):
            raise AuthorizationError("Not authorized")
        return self._with_owners([loan])[0]

    def set_status(self, loan_id, new_status, caller_role):
        authorize(caller_role, Capability.SET_LOAN_STATUS)
        if not new_status:
            raise ValidationError("status is required", {"field": "status"})
        status = _parse_enum(LoanStatus, new_status, "status")
        loan = self._fetch(loan_id)
        if self.strict_transitions and not is_allowed_transition(loan["status"], status):
            raise ValidationError(
                f"Cannot move a {loan['status']} application to {status.value}",
                {"from": loan["status"], "to": status.value},
            )

        # Only these fields change; emi_amount and total_repayment stay as created
        now = self._now()
        values = {"status": status.value, "updated_at": now}
        if stamps_decision_time(status):
            values["approved_rejected_at"] = now
        resp = sb_exec(self.client.table(LOANS_TABLE).update(values).eq("id", loan_id))
        log.info("Loan application %s moved %s -> %s", loan_id, loan["status"], status.value)
        return first_row(resp) or dict(loan, **values)

    def _fetch(self, loan_id):
        resp = sb_exec(self.client.table(LOANS_TABLE).select("*").eq("id", loan_id))
        loan = first_row(resp)
        if not loan:
            raise NotFoundError("Loan application", loan_id)
        return loan

    def _with_owners(self, loans):
        owners = UserStore(self.client).get_many(loan.get("user_id") for loan in loans)
        result = []
        for loan in loans:
            owner = owners.get(str(loan.get("user_id")))
            user = None
            if owner:
                user = {k: owner.get(k) for k in ("id", "full_name", "email")}
            result.append(dict(loan, user=user))
        return result
