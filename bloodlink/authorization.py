"""
Authorization engine: the single place where access decisions are made.

Every action the API exposes is bound to exactly one rule kind. The engine is
a pure function over data the caller has already fetched (the caller's
account and, for ownership rules, the target resource). It performs no I/O,
no logging and no mutation, so a deny can never leave partial state behind.
"""

from collections import namedtuple
from enum import Enum

from .exceptions import Forbidden, Unauthenticated

DONOR = "donor"
VOLUNTEER = "volunteer"
ADMIN = "admin"
ROLES = (DONOR, VOLUNTEER, ADMIN)

ACTIVE = "active"
BLOCKED = "blocked"
ACCOUNT_STATUSES = (ACTIVE, BLOCKED)


class Rule(Enum):
    ANY_AUTHENTICATED = "any-authenticated"
    VOLUNTEER_OR_ADMIN = "volunteer-or-admin"
    ADMIN_ONLY = "admin-only"
    OWNER_OR_ADMIN = "owner-or-admin"
    OWNER = "owner"


class Action(Enum):
    VIEW_ACCOUNT = "view-account"
    VIEW_ROLE = "view-role"
    UPDATE_PROFILE = "update-profile"
    LIST_ACCOUNTS = "list-accounts"
    CHANGE_ROLE = "change-role"
    CHANGE_STATUS = "change-status"

    CREATE_DONATION = "create-donation"
    VIEW_DONATION = "view-donation"
    LIST_USER_DONATIONS = "list-user-donations"
    UPDATE_DONATION = "update-donation"
    DELETE_DONATION = "delete-donation"
    TRANSITION_DONATION = "transition-donation"
    LIST_ALL_DONATIONS = "list-all-donations"

    VIEW_FUNDING = "view-funding"
    START_CHECKOUT = "start-checkout"
    CONFIRM_PAYMENT = "confirm-payment"

    @property
    def rule(self):
        return ACTION_RULES[self]


ACTION_RULES = {
    Action.VIEW_ACCOUNT: Rule.OWNER_OR_ADMIN,
    Action.VIEW_ROLE: Rule.OWNER_OR_ADMIN,
    Action.UPDATE_PROFILE: Rule.OWNER,
    Action.LIST_ACCOUNTS: Rule.ADMIN_ONLY,
    Action.CHANGE_ROLE: Rule.ADMIN_ONLY,
    Action.CHANGE_STATUS: Rule.ADMIN_ONLY,

    Action.CREATE_DONATION: Rule.ANY_AUTHENTICATED,
    Action.VIEW_DONATION: Rule.ANY_AUTHENTICATED,
    Action.LIST_USER_DONATIONS: Rule.OWNER_OR_ADMIN,
    Action.UPDATE_DONATION: Rule.OWNER_OR_ADMIN,
    Action.DELETE_DONATION: Rule.OWNER_OR_ADMIN,
    Action.TRANSITION_DONATION: Rule.VOLUNTEER_OR_ADMIN,
    Action.LIST_ALL_DONATIONS: Rule.VOLUNTEER_OR_ADMIN,

    Action.VIEW_FUNDING: Rule.ANY_AUTHENTICATED,
    Action.START_CHECKOUT: Rule.ANY_AUTHENTICATED,
    Action.CONFIRM_PAYMENT: Rule.ANY_AUTHENTICATED,
}


OWNERSHIP_RULES = (Rule.OWNER_OR_ADMIN, Rule.OWNER)

Resource = namedtuple("Resource", ["kind", "owner"])


def donation_resource(donation):
    return Resource("donation", donation.get("requesterEmail"))


def account_resource(account):
    return Resource("account", account.get("email"))


class Decision:
    __slots__ = ("allowed", "reason", "error")

    def __init__(self, allowed, reason=None, error=None):
        self.allowed = allowed
        self.reason = reason
        self.error = error

    def __bool__(self):
        return self.allowed

    def __repr__(self):
        if self.allowed:
            return "Allow()"
        return f"Deny({self.error.__name__}: {self.reason})"

    def raise_for_denial(self):
        if not self.allowed:
            raise self.error(self.reason)


ALLOW = Decision(True)


def deny(reason, error=Forbidden):
    return Decision(False, reason, error)


def authorize(caller_identity, caller_account, action, resource=None):
    """Decide whether ``caller_identity`` may perform ``action`` on ``resource``.

    ``caller_account`` is the stored account for the caller, or ``None`` when
    the verified identity has never registered. Ownership rules require the
    already-loaded ``resource``; a missing resource is the caller's job to
    report as NotFound before asking.
    """
    if caller_account is None:
        return deny("No account is registered for this identity", Unauthenticated)

    rule = action.rule
    role = caller_account.get("role", DONOR)

    if rule is Rule.ANY_AUTHENTICATED:
        return ALLOW

    if rule is Rule.VOLUNTEER_OR_ADMIN:
        if role in (VOLUNTEER, ADMIN):
            return ALLOW
        return deny("Volunteer or admin role required")

    if rule is Rule.ADMIN_ONLY:
        if role == ADMIN:
            return ALLOW
        return deny("Admin role required")

    if rule in OWNERSHIP_RULES:
        if resource is None:
            raise ValueError(f"{action.name} needs the target resource to decide ownership")
        if resource.owner == caller_identity:
            return ALLOW
        if rule is Rule.OWNER_OR_ADMIN and role == ADMIN:
            return ALLOW
        return deny(f"Forbidden: not your {resource.kind}")

    raise ValueError(f"Unknown rule {rule!r}")
