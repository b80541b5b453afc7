import logging

import stripe
from django.conf import settings

from .exceptions import NotFound, PaymentProcessorError, PaymentProcessorUnavailable, ValidationFailed

logger = logging.getLogger(__name__)

COMPLETE = "complete"


class CheckoutSession:
    """What the core needs to know about a processor checkout session."""

    def __init__(self, session_id, status, transaction_id=None, payer_name=None,
                 payer_email=None, amount_minor_units=0, currency=None,
                 created_at_epoch=0, metadata=None, payment_status=None):
        self.session_id = session_id
        self.status = status
        self.transaction_id = transaction_id
        self.payer_name = payer_name
        self.payer_email = payer_email
        self.amount_minor_units = amount_minor_units or 0
        self.currency = currency
        self.created_at_epoch = created_at_epoch or 0
        self.metadata = metadata or {}
        self.payment_status = payment_status

    @property
    def is_complete(self):
        return self.status == COMPLETE

    @property
    def idempotency_key(self):
        # A completed session always maps to exactly one payment; fall back to
        # the session id when the processor reports no payment intent.
        return self.transaction_id or self.session_id

    def __repr__(self):
        return f"CheckoutSession({self.session_id!r}, status={self.status!r}, tx={self.transaction_id!r})"


def _field(obj, name, default=None):
    if obj is None:
        return default
    return getattr(obj, name, default)


def session_from_stripe(session):
    customer = _field(session, "customer_details")
    metadata = _field(session, "metadata") or {}
    payment_intent = _field(session, "payment_intent")
    if payment_intent is not None and not isinstance(payment_intent, str):
        payment_intent = payment_intent.id

    return CheckoutSession(
        session_id=session.id,
        status=_field(session, "status"),
        transaction_id=payment_intent,
        payer_name=_field(customer, "name"),
        payer_email=_field(customer, "email"),
        amount_minor_units=_field(session, "amount_total", 0),
        currency=_field(session, "currency"),
        created_at_epoch=_field(session, "created", 0),
        metadata={key: metadata[key] for key in metadata},
        payment_status=_field(session, "payment_status"),
    )


class StripePaymentProcessor:
    """Payment processor boundary backed by Stripe Checkout."""

    def __init__(self, api_key=None, client_domain=None, timeout=None):
        self.api_key = api_key or settings.STRIPE_SECRET_KEY
        self.client_domain = client_domain or settings.CLIENT_DOMAIN
        self.timeout = timeout or settings.STRIPE_TIMEOUT_SECONDS
        self._client = None

    @property
    def client(self):
        if self._client is None:
            if not self.api_key:
                raise PaymentProcessorError("Payment processor is not configured")
            self._client = stripe.StripeClient(
                self.api_key,
                max_network_retries=0,
                http_client=stripe.RequestsClient(timeout=self.timeout),
            )
        return self._client

    def _call(self, operation, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (stripe.APIConnectionError, stripe.RateLimitError) as exc:
            logger.warning("Stripe unavailable during %s: %s", operation, exc)
            raise PaymentProcessorUnavailable(f"Payment processor unavailable during {operation}") from exc
        except stripe.InvalidRequestError as exc:
            if exc.code == "resource_missing":
                raise NotFound("Checkout session not found") from exc
            logger.error("Stripe rejected %s: %s", operation, exc)
            raise PaymentProcessorError(f"Payment processor rejected {operation}") from exc
        except stripe.StripeError as exc:
            logger.error("Stripe error during %s: %s", operation, exc)
            raise PaymentProcessorError(f"Payment processor failed during {operation}") from exc

    def retrieve_session(self, session_reference):
        if not session_reference:
            raise ValidationFailed("sessionId is required")
        session = self._call(
            "session retrieval", self.client.checkout.sessions.retrieve, session_reference
        )
        return session_from_stripe(session)

    def create_checkout_session(self, amount, currency="usd", purpose=None, email=None,
                                name=None, image=None):
        """Create a hosted checkout page and return its URL."""
        params = {
            "line_items": [
                {
                    "price_data": {
                        "currency": currency or "usd",
                        "product_data": {"name": purpose or "Platform Funding"},
                        # Stripe expects the amount in minor units
                        "unit_amount": int(round(amount * 100)),
                    },
                    "quantity": 1,
                },
            ],
            "mode": "payment",
            "metadata": {"userName": name or "", "userImage": image or ""},
            "success_url": f"{self.client_domain}/dashboard/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{self.client_domain}/dashboard/payment-cancelled",
        }
        if email:
            params["customer_email"] = email

        session = self._call("checkout session creation", self.client.checkout.sessions.create, params=params)
        return session.url
