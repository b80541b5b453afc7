"""
Authentication utilities for Firebase ID token validation.

Ensures that:
1. A bearer token is present
2. The token verifies against the identity provider
3. The verified email is available to the view as ``request.caller``

Role and ownership checks are not made here; they belong to the
authorization engine, which the orchestrator consults per action.
"""
from functools import wraps

from .exceptions import Unauthenticated
from .services import get_services


def bearer_token(request):
    auth_header = request.headers.get('Authorization')
    if not auth_header or not auth_header.startswith('Bearer '):
        return None
    return auth_header.split(' ', 1)[1].strip() or None


def authenticate_request(view_func):
    """
    Decorator to validate the bearer token and inject the caller's identity.

    Usage:
        @authenticate_request
        def get(self, request):
            caller = request.caller  # Verified, lower-cased email
    """
    @wraps(view_func)
    def wrapper(self, request, *args, **kwargs):
        token = bearer_token(request)
        if token is None:
            raise Unauthenticated("Authorization token required")

        request.caller = get_services().identity.resolve(token)
        return view_func(self, request, *args, **kwargs)

    return wrapper
