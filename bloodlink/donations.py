"""
Donation requests and their status state machine.

    pending ──> inprogress ──> completed
       │            │
       └────────────┴──────> canceled

``completed`` and ``canceled`` are terminal. Status only ever changes through
``DonationRepository.transition``, which is a compare-and-set on the status
the caller last read: two staff members racing on the same request cannot
both win, the loser gets ``Conflict``.
"""

import logging

from django.utils import timezone
from pymongo import ReturnDocument

from .db import paginate, search_clause, storage_errors, to_object_id
from .exceptions import Conflict, InvalidTransition, NotFound, ValidationFailed

logger = logging.getLogger(__name__)

PENDING = "pending"
IN_PROGRESS = "inprogress"
COMPLETED = "completed"
CANCELED = "canceled"
STATUSES = (PENDING, IN_PROGRESS, COMPLETED, CANCELED)

TRANSITIONS = {
    PENDING: frozenset({IN_PROGRESS, CANCELED}),
    IN_PROGRESS: frozenset({COMPLETED, CANCELED}),
    COMPLETED: frozenset(),
    CANCELED: frozenset(),
}
TERMINAL_STATUSES = frozenset(s for s, successors in TRANSITIONS.items() if not successors)
OPEN_STATUSES = tuple(s for s in STATUSES if s not in TERMINAL_STATUSES)

# Descriptive fields editable by the owner or an admin. Anything not listed
# (_id, requesterEmail, status, timestamps) is dropped from patches.
CONTENT_FIELDS = (
    "requesterName",
    "recipientName",
    "recipientDistrict",
    "recipientUpazila",
    "hospitalName",
    "fullAddress",
    "bloodGroup",
    "donationDate",
    "donationTime",
    "requestMessage",
)

PUBLIC_SEARCH_FIELDS = ("recipientName", "requesterName", "hospitalName", "bloodGroup")
USER_SEARCH_FIELDS = ("recipientName", "hospitalName")


def pick_content(data):
    return {key: data[key] for key in CONTENT_FIELDS if key in data}


def validate_transition(current, requested):
    if requested not in STATUSES:
        raise ValidationFailed("Invalid status value")
    if requested not in TRANSITIONS.get(current, ()):
        raise InvalidTransition(current, requested)


def status_filter(status):
    """Map a list endpoint's ``status`` query param onto a Mongo filter value."""
    if not status:
        return None
    status = status.strip().lower()
    if status in ("all", "all status"):
        return None
    return status


class DonationRepository:
    def __init__(self, db):
        self.collection = db.donations

    def get(self, donation_id):
        oid = to_object_id(donation_id, "Donation")
        with storage_errors("donation lookup"):
            return self.collection.find_one({"_id": oid})

    def count(self, query=None):
        with storage_errors("donation count"):
            return self.collection.count_documents(query or {})

    def insert(self, content, requester_email):
        """Insert a new request. Status is always ``pending`` whatever the input said."""
        now = timezone.now()
        donation = pick_content(content)
        donation.update({
            "requesterEmail": requester_email,
            "status": PENDING,
            "createdAt": now,
            "updatedAt": now,
        })
        with storage_errors("donation insert"):
            result = self.collection.insert_one(donation)
        donation["_id"] = result.inserted_id
        logger.info("Donation %s created by %s", result.inserted_id, requester_email)
        return donation

    def update_content(self, donation_id, patch):
        """Apply allow-listed content fields while the request is still open."""
        oid = to_object_id(donation_id, "Donation")
        fields = dict(pick_content(patch), updatedAt=timezone.now())
        with storage_errors("donation update"):
            updated = self.collection.find_one_and_update(
                {"_id": oid, "status": {"$in": list(OPEN_STATUSES)}},
                {"$set": fields},
                return_document=ReturnDocument.AFTER,
            )
        if updated is not None:
            return updated

        current = self.get(donation_id)
        if current is None:
            raise NotFound("Donation not found")
        raise InvalidTransition(
            current["status"], current["status"],
            f"A {current['status']} donation request can no longer be edited",
        )

    def transition(self, donation_id, expected_status, new_status):
        """Move ``expected_status`` to ``new_status`` atomically or raise.

        The update is keyed on the expected prior status, so a concurrent
        writer that got there first turns this call into a ``Conflict``.
        """
        validate_transition(expected_status, new_status)
        oid = to_object_id(donation_id, "Donation")

        with storage_errors("donation transition"):
            updated = self.collection.find_one_and_update(
                {"_id": oid, "status": expected_status},
                {"$set": {"status": new_status, "updatedAt": timezone.now()}},
                return_document=ReturnDocument.AFTER,
            )
        if updated is not None:
            logger.info("Donation %s moved %s -> %s", donation_id, expected_status, new_status)
            return updated

        current = self.get(donation_id)
        if current is None:
            raise NotFound("Donation not found")
        logger.info(
            "Donation %s transition %s -> %s lost a race, now %s",
            donation_id, expected_status, new_status, current["status"],
        )
        raise Conflict(
            f"Donation status changed concurrently (now '{current['status']}'); reload and retry"
        )

    def delete(self, donation_id):
        oid = to_object_id(donation_id, "Donation")
        with storage_errors("donation delete"):
            result = self.collection.delete_one({"_id": oid})
        return result.deleted_count

    def scan(self, status=None, search="", page=1, limit=10, requester_email=None,
             search_fields=PUBLIC_SEARCH_FIELDS):
        query = {}
        if requester_email:
            query["requesterEmail"] = requester_email
        status = status_filter(status)
        if status:
            query["status"] = status
        clause = search_clause(search, search_fields)
        if clause:
            query.update(clause)
        return paginate(self.collection, query, page, limit)
