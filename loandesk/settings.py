import logging
import math
import uuid
from datetime import datetime, timezone

from .db import SETTINGS_TABLE, first_row, sb_exec
from .errors import ValidationError
from .lifecycle import DEFAULT_INTEREST_RATE, PaymentMethod
from .roles import Capability, authorize

log = logging.getLogger(__name__)

PAYMENT_CHANNELS = [m.value for m in PaymentMethod]


class SettingsService:
    """Get-or-create access to the single settings row.

    Readers never see "no settings": the first read inserts the defaults.
    Writes require the super_admin role and replace whole sub-documents.
    """

    def __init__(self, client, defaults=None):
        self.client = client
        self.defaults = dict(defaults or {})

    @classmethod
    def from_config(cls, client, config):
        return cls(client, defaults={
            "min": config.get("DEFAULT_LOAN_MIN", 5000),
            "max": config.get("DEFAULT_LOAN_MAX", 100000),
            "interest_rate": config.get("DEFAULT_INTEREST_RATE", DEFAULT_INTEREST_RATE),
            "payment_number": config.get("DEFAULT_PAYMENT_NUMBER", "01XXXXXXXXX"),
        })

    def _default_record(self):
        number = self.defaults.get("payment_number", "01XXXXXXXXX")
        return {
            "id": str(uuid.uuid4()),
            "loan_limits": {
                "min": self.defaults.get("min", 5000),
                "max": self.defaults.get("max", 100000),
            },
            "payment_numbers": {channel: number for channel in PAYMENT_CHANNELS},
            "interest_rate": self.defaults.get("interest_rate", DEFAULT_INTEREST_RATE),
            "updated_at": _now(),
        }

    def get_or_create(self):
        resp = sb_exec(self.client.table(SETTINGS_TABLE).select("*").limit(1))
        record = first_row(resp)
        if record:
            return record
        record = self._default_record()
        resp = sb_exec(self.client.table(SETTINGS_TABLE).insert(record))
        log.info("Created default settings record %s", record["id"])
        return first_row(resp) or record

    def get_limits(self):
        limits = self.get_or_create().get("loan_limits") or {}
        return {"min": limits.get("min"), "max": limits.get("max")}

    def get_payment_numbers(self):
        numbers = self.get_or_create().get("payment_numbers") or {}
        return {channel: numbers.get(channel) for channel in PAYMENT_CHANNELS}

    def get_interest_rate(self):
        rate = self.get_or_create().get("interest_rate")
        if rate is None:
            return DEFAULT_INTEREST_RATE
        return float(rate)

    def set_limits(self, minimum, maximum, caller_role):
        authorize(caller_role, Capability.MANAGE_SETTINGS)
        limits = {
            "min": _number(minimum, "min"),
            "max": _number(maximum, "max"),
        }
        # min <= max is deliberately not enforced
        self._update({"loan_limits": limits})
        log.info("Loan limits set to %s-%s", limits["min"], limits["max"])
        return limits

    def set_payment_numbers(self, numbers, caller_role):
        authorize(caller_role, Capability.MANAGE_SETTINGS)
        numbers = numbers or {}
        if not isinstance(numbers, dict):
            raise ValidationError("Payment numbers must be an object")
        missing = [c for c in PAYMENT_CHANNELS if not str(numbers.get(c) or "").strip()]
        if missing:
            raise ValidationError(
                f"Payment numbers required for: {', '.join(missing)}",
                {"missing": missing},
            )
        replaced = {c: str(numbers[c]).strip() for c in PAYMENT_CHANNELS}
        self._update({"payment_numbers": replaced})
        log.info("Payment numbers replaced")
        return replaced

    def _update(self, values):
        record = self.get_or_create()
        values = dict(values, updated_at=_now())
        sb_exec(self.client.table(SETTINGS_TABLE).update(values).eq("id", record["id"]))


def _number(value, field):
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", {"field": field})
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", {"field": field})
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a number", {"field": field})
    return number


def _now():
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")
