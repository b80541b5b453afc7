"""
Lifecycle orchestrator: the application layer behind every endpoint.

Each operation follows the same order:

1. fetch what the decision needs (caller account, target resource),
2. ask the authorization engine, raising on a deny,
3. validate the input,
4. perform a single-document mutation.

Nothing is written before steps 1 to 3 have passed, so a denied or invalid
request never leaves partial state. The orchestrator never retries: a
``Conflict`` or ``StorageUnavailable`` goes back to the caller, who knows
whether resubmitting is meaningful.
"""

import logging
import math

from . import reference
from .accounts import normalize_email, pick_profile
from .authorization import (
    ACCOUNT_STATUSES,
    BLOCKED,
    ROLES,
    Action,
    account_resource,
    authorize,
    donation_resource,
)
from .donations import USER_SEARCH_FIELDS, pick_content
from .exceptions import AccountBlocked, NotFound, ValidationFailed
from .ledger import ConfirmResult, Outcome

logger = logging.getLogger(__name__)

REQUIRED_DONATION_FIELDS = ("recipientName", "bloodGroup")


def _check_blood_group(data):
    if "bloodGroup" in data and data["bloodGroup"] and not reference.is_blood_group(data["bloodGroup"]):
        raise ValidationFailed(f"Unknown blood group '{data['bloodGroup']}'")


class LifecycleOrchestrator:
    def __init__(self, accounts, donations, ledger, payments):
        self.accounts = accounts
        self.donations = donations
        self.ledger = ledger
        self.payments = payments

    # -- authorization plumbing -------------------------------------------

    def _authorize(self, caller, action, resource=None):
        account = self.accounts.get(caller)
        decision = authorize(caller, account, action, resource)
        if not decision:
            logger.info("Denied %s for %s: %s", action.name, caller, decision.reason)
            decision.raise_for_denial()
        return account

    def _load_donation(self, donation_id):
        donation = self.donations.get(donation_id)
        if donation is None:
            raise NotFound("Donation not found")
        return donation

    def _load_account(self, email):
        account = self.accounts.get(email)
        if account is None:
            raise NotFound("User not found")
        return account

    # -- accounts ---------------------------------------------------------

    def register(self, caller, data):
        """Self-registration; the identifier always comes from the verified token."""
        _check_blood_group(data)
        return self.accounts.register(caller, data, uid=data.get("uid"))

    def get_role(self, caller, email):
        target = self._load_account(email)
        self._authorize(caller, Action.VIEW_ROLE, account_resource(target))
        return {"role": target.get("role"), "status": target.get("status")}

    def get_account(self, caller, email):
        target = self._load_account(email)
        self._authorize(caller, Action.VIEW_ACCOUNT, account_resource(target))
        return target

    def list_accounts(self, caller, search="", page=1, limit=10):
        self._authorize(caller, Action.LIST_ACCOUNTS)
        return self.accounts.scan(search, page, limit)

    def update_profile(self, caller, email, patch):
        target = self._load_account(email)
        self._authorize(caller, Action.UPDATE_PROFILE, account_resource(target))
        if not pick_profile(patch):
            raise ValidationFailed("No updatable profile fields supplied")
        _check_blood_group(patch)
        return self.accounts.update_profile(email, patch)

    def change_role(self, caller, email, role):
        self._authorize(caller, Action.CHANGE_ROLE)
        if role not in ROLES:
            raise ValidationFailed(f"Role must be one of {', '.join(ROLES)}")
        account = self.accounts.set_role(email, role)
        logger.info("%s set role of %s to %s", caller, email, role)
        return account

    def change_status(self, caller, email, status):
        self._authorize(caller, Action.CHANGE_STATUS)
        if status not in ACCOUNT_STATUSES:
            raise ValidationFailed(f"Status must be one of {', '.join(ACCOUNT_STATUSES)}")
        account = self.accounts.set_status(email, status)
        logger.info("%s set status of %s to %s", caller, email, status)
        return account

    def search_donors(self, blood_group=None, district=None, upazila=None):
        return self.accounts.search_donors(blood_group, district, upazila)

    # -- donation requests ------------------------------------------------

    def create_donation(self, caller, data):
        account = self._authorize(caller, Action.CREATE_DONATION)
        # Blocked users cannot post new requests
        if account.get("status") == BLOCKED:
            logger.info("Blocked account %s tried to create a donation request", caller)
            raise AccountBlocked("Your account is blocked. You cannot post donation requests.")

        content = pick_content(data)
        missing = [field for field in REQUIRED_DONATION_FIELDS if not content.get(field)]
        if missing:
            raise ValidationFailed(f"{', '.join(missing)} required")
        _check_blood_group(content)
        content.setdefault("requesterName", account.get("name"))

        return self.donations.insert(content, caller)

    def get_donation(self, caller, donation_id):
        self._authorize(caller, Action.VIEW_DONATION)
        return self._load_donation(donation_id)

    def update_donation(self, caller, donation_id, patch):
        donation = self._load_donation(donation_id)
        self._authorize(caller, Action.UPDATE_DONATION, donation_resource(donation))

        content = pick_content(patch)
        dropped = sorted(set(patch) - set(content))
        if dropped:
            logger.info("Ignoring protected fields %s in update of donation %s", dropped, donation_id)
        if not content:
            raise ValidationFailed("No updatable donation fields supplied")
        _check_blood_group(content)

        return self.donations.update_content(donation_id, content)

    def transition(self, caller, donation_id, new_status):
        donation = self._load_donation(donation_id)
        self._authorize(caller, Action.TRANSITION_DONATION)
        return self.donations.transition(donation_id, donation["status"], new_status)

    def delete_donation(self, caller, donation_id):
        donation = self._load_donation(donation_id)
        self._authorize(caller, Action.DELETE_DONATION, donation_resource(donation))
        deleted = self.donations.delete(donation_id)
        logger.info("Donation %s deleted by %s", donation_id, caller)
        return deleted

    def list_public_donations(self, status=None, page=1, limit=10):
        return self.donations.scan(status=status, page=page, limit=limit)

    def list_all_donations(self, caller, status=None, search="", page=1, limit=10):
        self._authorize(caller, Action.LIST_ALL_DONATIONS)
        return self.donations.scan(status=status, search=search, page=page, limit=limit)

    def list_user_donations(self, caller, email, status=None, search="", page=1, limit=10):
        target = self._load_account(email)
        self._authorize(caller, Action.LIST_USER_DONATIONS, account_resource(target))
        return self.donations.scan(
            status=status, search=search, page=page, limit=limit,
            requester_email=normalize_email(email), search_fields=USER_SEARCH_FIELDS,
        )

    # -- funding ----------------------------------------------------------

    def list_funding(self, caller, limit=10, session_id=None):
        self._authorize(caller, Action.VIEW_FUNDING)
        return self.ledger.recent(limit, session_id)

    def start_checkout(self, caller, data):
        account = self._authorize(caller, Action.START_CHECKOUT)
        try:
            amount = float(data.get("amount") or 0)
        except (TypeError, ValueError):
            amount = 0
        if not math.isfinite(amount) or amount <= 0:
            raise ValidationFailed("Invalid amount")

        return self.payments.create_checkout_session(
            amount,
            currency=data.get("currency") or "usd",
            purpose=data.get("purpose"),
            email=data.get("email") or caller,
            name=data.get("name") or account.get("name"),
            image=data.get("image") or account.get("photoURL"),
        )

    def confirm_payment(self, caller, session_reference):
        """Apply a processor's payment confirmation to the ledger at most once."""
        self._authorize(caller, Action.CONFIRM_PAYMENT)
        if not session_reference:
            raise ValidationFailed("sessionId is required")

        session = self.payments.retrieve_session(session_reference)
        if not session.is_complete:
            logger.info("Session %s not complete yet (%s)", session.session_id, session.status)
            return ConfirmResult(Outcome.NOT_COMPLETE)

        return self.ledger.record(session)
