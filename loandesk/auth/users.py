import logging
import re
import uuid
from datetime import datetime, timezone

from werkzeug.security import check_password_hash, generate_password_hash

from ..db import USERS_TABLE, first_row, rows, sb_exec
from ..errors import NotFoundError, ValidationError
from ..roles import Capability, Role, authorize

log = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")

PUBLIC_FIELDS = "id,full_name,email,phone_number,address,role,created_at"


def _text(value, field):
    """Return a stripped string, treating None as empty; other types are rejected."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", {"field": field})
    return value.strip()


def public_profile(user):
    """Strip the password hash from a user row."""
    return {k: v for k, v in user.items() if k != "password_hash"}


class UserStore:
    def __init__(self, client):
        self.client = client

    def create(self, full_name, email, password, phone_number=None, address=None, role=Role.USER):
        full_name = _text(full_name, "full_name")
        email = _text(email, "email").lower()
        phone_number = _text(phone_number, "phone_number")
        address = _text(address, "address")
        if password is not None and not isinstance(password, str):
            raise ValidationError("password must be a string", {"field": "password"})
        if not full_name:
            raise ValidationError("Full name is required", {"field": "full_name"})
        if not email or not EMAIL_RE.fullmatch(email):
            raise ValidationError("Invalid email", {"field": "email"})
        if not password:
            raise ValidationError("Password is required", {"field": "password"})
        parsed = Role.parse(role)
        if parsed is None:
            raise ValidationError(f"Invalid role: {role}", {"field": "role"})
        if self.find_by_email(email):
            raise ValidationError("User already exists", {"field": "email"})

        record = {
            "id": str(uuid.uuid4()),
            "full_name": full_name,
            "email": email,
            "phone_number": phone_number or None,
            "address": address or None,
            "role": parsed.value,
            "password_hash": generate_password_hash(password),
            "created_at": datetime.now(timezone.utc).isoformat(timespec="microseconds"),
        }
        resp = sb_exec(self.client.table(USERS_TABLE).insert(record))
        log.info("Registered user %s with role %s", record["id"], record["role"])
        return first_row(resp) or record

    def find_by_email(self, email):
        email = _text(email, "email").lower()
        if not email:
            return None
        resp = sb_exec(self.client.table(USERS_TABLE).select("*").eq("email", email))
        return first_row(resp)

    def get(self, user_id):
        resp = sb_exec(self.client.table(USERS_TABLE).select("*").eq("id", user_id))
        user = first_row(resp)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    def get_many(self, user_ids):
        """Return {id: public profile} for the given ids; unknown ids are skipped."""
        ids = sorted({str(i) for i in user_ids if i})
        if not ids:
            return {}
        resp = sb_exec(self.client.table(USERS_TABLE).select(PUBLIC_FIELDS).in_("id", ids))
        return {str(u["id"]): public_profile(u) for u in rows(resp)}

    def list_all(self, caller_role):
        authorize(caller_role, Capability.LIST_USERS)
        resp = sb_exec(self.client.table(USERS_TABLE).select(PUBLIC_FIELDS).order("created_at", desc=True))
        return [public_profile(u) for u in rows(resp)]

    def set_role(self, user_id, role, caller_role):
        authorize(caller_role, Capability.CHANGE_ROLE)
        parsed = Role.parse(role)
        if parsed is None:
            raise ValidationError(f"Invalid role: {role}", {"field": "role"})
        self.get(user_id)
        resp = sb_exec(self.client.table(USERS_TABLE).update({"role": parsed.value}).eq("id", user_id))
        log.info("User %s role changed to %s", user_id, parsed.value)
        updated = first_row(resp) or self.get(user_id)
        return public_profile(updated)

    def verify_password(self, user, password):
        return bool(password) and check_password_hash(user.get("password_hash") or "", password)
