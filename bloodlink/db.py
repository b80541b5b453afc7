import logging
import math
import re
from contextlib import contextmanager

from bson import ObjectId
from bson.errors import InvalidId
from django.conf import settings
from pymongo import MongoClient
from pymongo.errors import ConnectionFailure, ExecutionTimeout, NetworkTimeout

from .exceptions import NotFound, StorageUnavailable

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

_client = None


def get_client():
    global _client
    if _client is None:
        timeout = settings.MONGO_TIMEOUT_MS
        _client = MongoClient(
            settings.MONGO_URI,
            serverSelectionTimeoutMS=timeout,
            connectTimeoutMS=timeout,
            socketTimeoutMS=timeout,
        )
        logger.info("MongoDB client created for database %s", settings.MONGO_DB_NAME)
    return _client


def get_db():
    return get_client()[settings.MONGO_DB_NAME]


@contextmanager
def storage_errors(operation):
    """Translate transient pymongo failures into StorageUnavailable.

    Anything else (duplicate keys, write errors) propagates untouched so the
    caller can decide what it means.
    """
    try:
        yield
    except (ConnectionFailure, NetworkTimeout, ExecutionTimeout) as exc:
        logger.warning("Storage unavailable during %s: %s", operation, exc)
        raise StorageUnavailable(f"Storage unavailable during {operation}") from exc


def to_object_id(value, label="Document"):
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as exc:
        raise NotFound(f"{label} not found") from exc


def serialize_doc(doc):
    if not doc:
        return None
    doc = dict(doc)
    doc['id'] = str(doc.pop('_id'))
    return doc


def search_clause(term, fields):
    if not term:
        return None
    pattern = re.escape(term.strip())
    return {"$or": [{field: {"$regex": pattern, "$options": "i"}} for field in fields]}


def clamp_page(page, limit, default_limit=10):
    try:
        page = int(page)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = default_limit
    return max(page, 1), min(max(limit, 1), MAX_PAGE_SIZE)


def paginate(collection, query, page, limit, sort=("createdAt", -1)):
    """Run a filtered scan and return ``{"data", "pagination"}`` like the list endpoints expect."""
    page, limit = clamp_page(page, limit)
    skip = (page - 1) * limit
    with storage_errors(f"scan of {collection.name}"):
        cursor = collection.find(query).sort(*sort).skip(skip).limit(limit)
        data = [serialize_doc(doc) for doc in cursor]
        total = collection.count_documents(query)
    return {
        "data": data,
        "pagination": {
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit),
        },
    }
