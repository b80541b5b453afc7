import time
import uuid

import mongomock
from django.test import SimpleTestCase

from bloodlink.authorization import ACTIVE, DONOR
from bloodlink.exceptions import InvalidCredential, NotFound
from bloodlink.payments import CheckoutSession
from bloodlink.services import Services, install_services, reset_services


class FakeIdentityResolver:
    """Maps bearer tokens straight to emails."""

    def __init__(self):
        self.tokens = {}

    def resolve(self, bearer):
        try:
            return self.tokens[bearer]
        except KeyError:
            raise InvalidCredential("Invalid token")


class FakePaymentProcessor:
    def __init__(self):
        self.sessions = {}
        self.retrievals = 0
        self.checkouts = []

    def add_session(self, session_id, status="complete", transaction_id="tx1",
                    amount_minor_units=5000, **kwargs):
        kwargs.setdefault("payer_name", "Rahim Uddin")
        kwargs.setdefault("payer_email", "rahim@example.com")
        kwargs.setdefault("currency", "usd")
        kwargs.setdefault("created_at_epoch", int(time.time()))
        kwargs.setdefault("payment_status", "paid" if status == "complete" else "unpaid")
        session = CheckoutSession(
            session_id, status, transaction_id=transaction_id,
            amount_minor_units=amount_minor_units, **kwargs
        )
        self.sessions[session_id] = session
        return session

    def retrieve_session(self, session_reference):
        self.retrievals += 1
        if session_reference not in self.sessions:
            raise NotFound("Checkout session not found")
        return self.sessions[session_reference]

    def create_checkout_session(self, amount, **kwargs):
        self.checkouts.append(dict(kwargs, amount=amount))
        return f"https://checkout.stripe.test/pay/cs_{len(self.checkouts)}"


def make_services():
    db = mongomock.MongoClient()[f"bloodlink_test_{uuid.uuid4().hex}"]
    services = Services(db, FakeIdentityResolver(), FakePaymentProcessor())
    services.ensure_indexes()
    return services


class CoreTestCase(SimpleTestCase):
    """
    Each test gets a fresh in-memory MongoDB and fresh boundary doubles,
    installed as the process-wide services so views see them too.
    """

    def setUp(self):
        self.services = make_services()
        self.lifecycle = self.services.lifecycle
        install_services(self.services)
        self.addCleanup(reset_services)

    def make_account(self, email, role=DONOR, status=ACTIVE, **profile):
        profile.setdefault("name", email.split("@")[0].title())
        self.services.accounts.register(email, profile)
        if role != DONOR:
            self.services.accounts.set_role(email, role)
        if status != ACTIVE:
            self.services.accounts.set_status(email, status)
        self.services.identity.tokens[f"tok-{email}"] = email
        return self.services.accounts.get(email)

    def make_donation(self, requester, **content):
        content.setdefault("recipientName", "Karim")
        content.setdefault("bloodGroup", "O+")
        content.setdefault("hospitalName", "Dhaka Medical College Hospital")
        return self.lifecycle.create_donation(requester, content)

    def force_status(self, donation, status):
        self.services.donations.collection.update_one(
            {"_id": donation["_id"]}, {"$set": {"status": status}}
        )
