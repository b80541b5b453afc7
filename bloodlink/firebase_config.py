import base64
import json
import logging
from pathlib import Path

import firebase_admin
from django.conf import settings
from firebase_admin import credentials

logger = logging.getLogger(__name__)

# Path to Service Account Key (Local Fallback)
BASE_DIR = Path(__file__).resolve().parent.parent

possible_paths = [
    BASE_DIR / 'config' / 'serviceAccountKey.json',
    BASE_DIR / 'serviceAccountKey.json',
]


def _service_account():
    # 1. Raw JSON in the environment (Render style)
    if settings.FIREBASE_CREDENTIALS:
        return json.loads(settings.FIREBASE_CREDENTIALS), "FIREBASE_CREDENTIALS"

    # 2. Base64-encoded JSON
    if settings.FB_SERVICE_KEY:
        decoded = base64.b64decode(settings.FB_SERVICE_KEY).decode("utf-8")
        return json.loads(decoded), "FB_SERVICE_KEY"

    # 3. Local file
    for path in possible_paths:
        if path.exists():
            return str(path), str(path)

    return None, None


def initialize_firebase():
    if firebase_admin._apps:
        return firebase_admin.get_app()

    try:
        service_account, source = _service_account()
    except (ValueError, TypeError) as exc:
        logger.error("Firebase service account is not valid JSON: %s", exc)
        return None

    if service_account is None:
        logger.warning(
            "No Firebase service account configured (FIREBASE_CREDENTIALS, FB_SERVICE_KEY "
            "or serviceAccountKey.json). Token verification will fail."
        )
        return None

    app = firebase_admin.initialize_app(credentials.Certificate(service_account))
    logger.info("Firebase Admin initialized from %s", source)
    return app
