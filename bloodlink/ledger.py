"""
Payment ledger: confirmed funding events, recorded at most once.

Idempotency is enforced by a UNIQUE index on ``idempotencyKey``. The
``find_one`` before the insert is only a fast path; when two confirmations for
the same payment race past it, the index rejects the second insert and the
loser reads back the winner's record instead of failing.
"""

import datetime
import logging
from enum import Enum

from django.utils import timezone
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from .db import serialize_doc, storage_errors

logger = logging.getLogger(__name__)

MAX_FUNDING_LIMIT = 100


class Outcome(Enum):
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    NOT_COMPLETE = "not_complete"


class ConfirmResult:
    __slots__ = ("outcome", "record")

    def __init__(self, outcome, record=None):
        self.outcome = outcome
        self.record = record

    @property
    def inserted(self):
        return self.outcome is Outcome.APPLIED

    @property
    def already_applied(self):
        return self.outcome is Outcome.ALREADY_APPLIED

    def as_dict(self):
        return {
            "inserted": self.inserted,
            "alreadyApplied": self.already_applied,
            "outcome": self.outcome.value,
            "record": serialize_doc(self.record),
        }


def funding_record(session):
    """Build the stored record for a completed checkout session."""
    created = datetime.datetime.fromtimestamp(session.created_at_epoch, tz=datetime.timezone.utc)
    return {
        "idempotencyKey": session.idempotency_key,
        "name": session.payer_name or "Anonymous",
        "email": session.payer_email,
        "image": session.metadata.get("userImage") or None,
        "amount": session.amount_minor_units / 100,
        "currency": session.currency,
        "paymentIntentId": session.transaction_id,
        "checkoutSessionId": session.session_id,
        "paymentStatus": session.payment_status,
        "paidAt": created,
        "confirmedAt": timezone.now(),
    }


class PaymentLedger:
    def __init__(self, db):
        self.collection = db.funding

    def ensure_indexes(self):
        with storage_errors("ledger index creation"):
            self.collection.create_index([("idempotencyKey", ASCENDING)], unique=True)

    def find(self, idempotency_key):
        with storage_errors("ledger lookup"):
            return self.collection.find_one({"idempotencyKey": idempotency_key})

    def count(self):
        with storage_errors("ledger count"):
            return self.collection.count_documents({})

    def record(self, session):
        """Insert the funding record for ``session`` unless one already exists."""
        key = session.idempotency_key
        existing = self.find(key)
        if existing is not None:
            logger.info("Idempotency replay: key=%s session=%s", key, session.session_id)
            return ConfirmResult(Outcome.ALREADY_APPLIED, existing)

        record = funding_record(session)
        try:
            with storage_errors("ledger insert"):
                self.collection.insert_one(record)
        except DuplicateKeyError:
            # Lost the race against a concurrent confirmation of the same payment
            logger.info("Idempotency race resolved: key=%s session=%s", key, session.session_id)
            return ConfirmResult(Outcome.ALREADY_APPLIED, self.find(key))

        logger.info("Funding recorded: key=%s amount=%s %s", key, record["amount"], record["currency"])
        return ConfirmResult(Outcome.APPLIED, record)

    def recent(self, limit=10, session_id=None):
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            limit = 10
        limit = min(max(limit, 1), MAX_FUNDING_LIMIT)

        query = {"checkoutSessionId": session_id} if session_id else {}
        with storage_errors("funding scan"):
            cursor = self.collection.find(query).sort("paidAt", DESCENDING).limit(limit)
            return [serialize_doc(doc) for doc in cursor]
