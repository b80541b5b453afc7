import logging

from django.utils import timezone
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from .authorization import ACTIVE, DONOR
from .db import paginate, search_clause, serialize_doc, storage_errors
from .exceptions import AlreadyExists, NotFound

logger = logging.getLogger(__name__)

# Only whitelisted fields can be updated to prevent malicious overwrites
PROFILE_FIELDS = ("name", "phone", "bloodGroup", "district", "upazila", "photoURL")

USER_SEARCH_FIELDS = ("name", "email", "phone")


def normalize_email(email):
    return (email or "").strip().lower()


def pick_profile(data):
    return {key: data[key] for key in PROFILE_FIELDS if key in data}


class AccountDirectory:
    """Accounts keyed by email, stored in the ``users`` collection."""

    def __init__(self, db):
        self.collection = db.users

    def ensure_indexes(self):
        with storage_errors("account index creation"):
            self.collection.create_index([("email", ASCENDING)], unique=True)

    def get(self, email):
        with storage_errors("account lookup"):
            return self.collection.find_one({"email": normalize_email(email)})

    def register(self, email, profile, uid=None):
        """Insert a new account. Role and status are always the defaults."""
        now = timezone.now()
        account = pick_profile(profile)
        account.update({
            "email": normalize_email(email),
            "role": DONOR,
            "status": ACTIVE,
            "createdAt": now,
            "updatedAt": now,
        })
        if uid:
            account["uid"] = uid

        try:
            with storage_errors("account registration"):
                result = self.collection.insert_one(account)
        except DuplicateKeyError as exc:
            raise AlreadyExists("User already exists") from exc

        account["_id"] = result.inserted_id
        logger.info("Registered account %s", account["email"])
        return account

    def _set(self, email, fields, operation):
        fields = dict(fields, updatedAt=timezone.now())
        with storage_errors(operation):
            account = self.collection.find_one_and_update(
                {"email": normalize_email(email)},
                {"$set": fields},
                return_document=ReturnDocument.AFTER,
            )
        if account is None:
            raise NotFound("User not found")
        return account

    def update_profile(self, email, profile):
        return self._set(email, pick_profile(profile), "profile update")

    def set_role(self, email, role):
        return self._set(email, {"role": role}, "role change")

    def set_status(self, email, status):
        return self._set(email, {"status": status}, "status change")

    def scan(self, search="", page=1, limit=10):
        query = search_clause(search, USER_SEARCH_FIELDS) or {}
        return paginate(self.collection, query, page, limit)

    def search_donors(self, blood_group=None, district=None, upazila=None):
        query = {"role": DONOR, "status": ACTIVE}
        if blood_group:
            query["bloodGroup"] = blood_group
        if district:
            query["district"] = district
        if upazila:
            query["upazila"] = upazila

        with storage_errors("donor search"):
            return [serialize_doc(doc) for doc in self.collection.find(query)]
