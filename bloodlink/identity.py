import logging

from firebase_admin import auth

from .accounts import normalize_email
from .exceptions import IdentityUnavailable, InvalidCredential
from .firebase_config import initialize_firebase

logger = logging.getLogger(__name__)


class FirebaseIdentityResolver:
    """Turns a Firebase ID token into the verified email it was issued for."""

    def __init__(self, app=None, check_revoked=False):
        self.app = app
        self.check_revoked = check_revoked

    def _app(self):
        if self.app is None:
            self.app = initialize_firebase()
        if self.app is None:
            raise IdentityUnavailable("Identity provider is not configured")
        return self.app

    def resolve(self, bearer):
        if not bearer:
            raise InvalidCredential("Authorization token required")

        try:
            decoded = auth.verify_id_token(bearer, app=self._app(), check_revoked=self.check_revoked)
        except auth.CertificateFetchError as exc:
            logger.warning("Could not fetch Firebase certificates: %s", exc)
            raise IdentityUnavailable("Identity provider unavailable") from exc
        except auth.ExpiredIdTokenError as exc:
            raise InvalidCredential("Token has expired") from exc
        except (auth.InvalidIdTokenError, auth.RevokedIdTokenError, auth.UserDisabledError, ValueError) as exc:
            logger.info("Rejected ID token: %s", exc)
            raise InvalidCredential("Invalid token") from exc

        email = normalize_email(decoded.get("email"))
        if not email:
            raise InvalidCredential("Token carries no email address")
        # Only a verified address may map onto an account
        if decoded.get("email_verified") is not True:
            logger.info("Rejected ID token for unverified email %s", email)
            raise InvalidCredential("Email address is not verified")
        return email
