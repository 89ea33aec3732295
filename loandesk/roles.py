"""Roles, capabilities and the access-control gate.

Every authorization decision in the service goes through :func:`check` or
:func:`authorize`. Roles are ordered ``user < admin < super_admin`` for
"at least" checks, but some capabilities (role changes, settings) belong to
``super_admin`` alone regardless of ordering.
"""
from collections import namedtuple
from enum import Enum

from .errors import AuthorizationError


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def rank(self):
        return _RANK[self]

    @classmethod
    def parse(cls, value):
        """Return the Role for ``value`` or None when it is not a known role."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None

    @property
    def is_staff(self):
        return self.rank >= Role.ADMIN.rank


_RANK = {
    Role.USER: 0,
    Role.ADMIN: 1,
    Role.SUPER_ADMIN: 2,
}


class Capability(str, Enum):
    APPLY_LOAN = "apply_loan"
    VIEW_OWN_LOANS = "view_own_loans"
    VIEW_ALL_LOANS = "view_all_loans"
    SET_LOAN_STATUS = "set_loan_status"
    LIST_USERS = "list_users"
    CHANGE_ROLE = "change_role"
    MANAGE_SETTINGS = "manage_settings"


# Roles allowed to exercise each capability. Not derived from the ordering:
# admins outrank users but never get CHANGE_ROLE or MANAGE_SETTINGS.
CAPABILITIES = {
    Capability.APPLY_LOAN: frozenset({Role.USER, Role.ADMIN, Role.SUPER_ADMIN}),
    Capability.VIEW_OWN_LOANS: frozenset({Role.USER, Role.ADMIN, Role.SUPER_ADMIN}),
    Capability.VIEW_ALL_LOANS: frozenset({Role.ADMIN, Role.SUPER_ADMIN}),
    Capability.SET_LOAN_STATUS: frozenset({Role.ADMIN, Role.SUPER_ADMIN}),
    Capability.LIST_USERS: frozenset({Role.ADMIN, Role.SUPER_ADMIN}),
    Capability.CHANGE_ROLE: frozenset({Role.SUPER_ADMIN}),
    Capability.MANAGE_SETTINGS: frozenset({Role.SUPER_ADMIN}),
}

Decision = namedtuple("Decision", ["allowed", "reason"])

ALLOW = Decision(True, None)


def check(caller_role, required):
    """Decide whether ``caller_role`` satisfies ``required``.

    ``required`` is either a :class:`Role` (caller must rank at least as
    high) or a :class:`Capability` (caller's role must be listed for it).
    """
    role = Role.parse(caller_role)
    if role is None:
        return Decision(False, "Not authorized, unknown role")

    if isinstance(required, Capability):
        if role in CAPABILITIES[required]:
            return ALLOW
        return Decision(False, f"Not authorized to {required.value.replace('_', ' ')}")

    needed = Role.parse(required)
    if needed is None:
        raise ValueError(f"Unknown requirement: {required!r}")
    if role.rank >= needed.rank:
        return ALLOW
    return Decision(False, f"Not authorized as {needed.value}")


def authorize(caller_role, required):
    """Like :func:`check` but raises AuthorizationError on deny."""
    decision = check(caller_role, required)
    if not decision.allowed:
        raise AuthorizationError(decision.reason)
    return decision


def can_view_loan(caller_role, caller_id, loan):
    role = Role.parse(caller_role)
    if role is None:
        return False
    if role.is_staff:
        return True
    return str(loan.get("user_id")) == str(caller_id)
