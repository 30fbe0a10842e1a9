"""Role and ownership checks for every operation of the service.

The rules are declared once in ``POLICY`` so they can be reviewed (and
tested) as a table instead of being scattered across the endpoints.
"""

import enum
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from components.core.exceptions import Forbidden, NotFound, Unauthenticated
from components.user.models import UserRole


class Capability(str, enum.Enum):
    CREATE_CREDIT = "create_credit"
    LIST_CREDITS = "list_credits"
    READ_CREDIT = "read_credit"
    APPROVE_CREDIT = "approve_credit"
    REJECT_CREDIT = "reject_credit"
    DELETE_CREDIT = "delete_credit"
    RECORD_PAYMENT = "record_payment"
    READ_PAYMENTS = "read_payments"
    VIEW_FUND_POOL = "view_fund_pool"
    MANAGE_FUND_POOL = "manage_fund_pool"
    MANAGE_USERS = "manage_users"
    VIEW_CLIENTS = "view_clients"
    VIEW_OWN_SUMMARY = "view_own_summary"
    VIEW_SUPERVISOR_SUMMARY = "view_supervisor_summary"
    VIEW_ADMIN_SUMMARY = "view_admin_summary"


@dataclass(frozen=True)
class Principal:
    """Authenticated actor as seen by the policy."""
    id: int
    role: UserRole


@dataclass(frozen=True)
class Rule:
    roles: FrozenSet[UserRole]
    owner_allowed: bool = False


STAFF = frozenset({UserRole.SUPERVISOR, UserRole.ADMINISTRATOR})
ADMIN_ONLY = frozenset({UserRole.ADMINISTRATOR})
EVERYONE = frozenset(UserRole)

POLICY: Dict[Capability, Rule] = {
    Capability.CREATE_CREDIT: Rule(ADMIN_ONLY, owner_allowed=True),
    Capability.LIST_CREDITS: Rule(STAFF, owner_allowed=True),
    Capability.READ_CREDIT: Rule(STAFF, owner_allowed=True),
    Capability.APPROVE_CREDIT: Rule(STAFF),
    Capability.REJECT_CREDIT: Rule(STAFF),
    Capability.DELETE_CREDIT: Rule(ADMIN_ONLY),
    Capability.RECORD_PAYMENT: Rule(STAFF, owner_allowed=True),
    Capability.READ_PAYMENTS: Rule(STAFF, owner_allowed=True),
    Capability.VIEW_FUND_POOL: Rule(ADMIN_ONLY),
    Capability.MANAGE_FUND_POOL: Rule(ADMIN_ONLY),
    Capability.MANAGE_USERS: Rule(ADMIN_ONLY),
    Capability.VIEW_CLIENTS: Rule(STAFF, owner_allowed=True),
    Capability.VIEW_OWN_SUMMARY: Rule(EVERYONE),
    Capability.VIEW_SUPERVISOR_SUMMARY: Rule(STAFF),
    Capability.VIEW_ADMIN_SUMMARY: Rule(ADMIN_ONLY),
}


def require_principal(principal: Optional[Principal]) -> Principal:
    if principal is None:
        raise Unauthenticated("Not authenticated")
    return principal


def is_staff(principal: Principal) -> bool:
    return principal.role in STAFF


def authorize(
    principal: Optional[Principal],
    capability: Capability,
    owner_id: Optional[int] = None,
) -> Principal:
    """Admit ``principal`` for ``capability`` or raise.

    ``owner_id`` is the user owning the target resource; it only matters for
    capabilities whose rule lets the owner through. Pass None when the
    resource has no owner or ownership must not grant access.
    """
    principal = require_principal(principal)
    rule = POLICY[capability]
    if principal.role in rule.roles:
        return principal
    if rule.owner_allowed and owner_id is not None and owner_id == principal.id:
        return principal
    raise Forbidden("Not authorized")


def authorize_owned(
    principal: Optional[Principal],
    capability: Capability,
    resource,
    not_found: str,
    owner_allowed: bool = True,
) -> Principal:
    """Like ``authorize`` for a looked-up ``resource`` (with a ``user_id``) that may be None.

    Principals admitted by role learn that the resource is missing; anyone
    else gets the same Forbidden for a missing resource as for somebody
    else's.
    """
    owner_id = resource.user_id if resource is not None and owner_allowed else None
    principal = authorize(principal, capability, owner_id=owner_id)
    if resource is None:
        raise NotFound(not_found)
    return principal
