"""
Process-wide wiring of the core's collaborators.

The storage database, identity resolver and payment processor are built once
per process on first use and handed to the orchestrator through its
constructor. Tests install their own bundle with ``install_services``.
"""

import logging
import threading

from .accounts import AccountDirectory
from .donations import DonationRepository
from .ledger import PaymentLedger
from .lifecycle import LifecycleOrchestrator

logger = logging.getLogger(__name__)

_services = None
_lock = threading.Lock()


class Services:
    def __init__(self, db, identity, payments):
        self.db = db
        self.identity = identity
        self.payments = payments
        self.accounts = AccountDirectory(db)
        self.donations = DonationRepository(db)
        self.ledger = PaymentLedger(db)
        self.lifecycle = LifecycleOrchestrator(self.accounts, self.donations, self.ledger, payments)

    def ensure_indexes(self):
        self.accounts.ensure_indexes()
        self.ledger.ensure_indexes()


def build_services():
    from .db import get_db
    from .identity import FirebaseIdentityResolver
    from .payments import StripePaymentProcessor

    services = Services(get_db(), FirebaseIdentityResolver(), StripePaymentProcessor())
    services.ensure_indexes()
    logger.info("Core services ready")
    return services


def get_services():
    global _services
    if _services is None:
        with _lock:
            if _services is None:
                _services = build_services()
    return _services


def install_services(services):
    global _services
    with _lock:
        _services = services


def reset_services():
    install_services(None)
