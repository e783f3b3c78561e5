"""Firebase Admin app used to deliver to platform (FCM) push tokens."""

import json
from pathlib import Path

import firebase_admin
from firebase_admin import credentials
from structlog import get_logger

logger = get_logger(__name__)

_firebase_app: firebase_admin.App | None = None


def initialize_firebase(
    firebase_credentials_path: str | None = None,
    firebase_config_json: str | None = None,
) -> bool:
    """
    Initialize the Firebase Admin SDK from a service account.

    The raw JSON wins over the file path. With neither configured Firebase
    stays off and only Web Push subscriptions can be delivered.

    Args:
        firebase_credentials_path: Path to a service account JSON file
        firebase_config_json: Service account JSON as a string

    Returns:
        Whether Firebase is available after the call

    Raises:
        ValueError: The service account is malformed
        OSError: The credentials file cannot be read
    """
    global _firebase_app

    if _firebase_app is not None:
        return True

    if firebase_config_json:
        cred = credentials.Certificate(json.loads(firebase_config_json))
        source = "json"
    elif firebase_credentials_path and Path(firebase_credentials_path).is_file():
        cred = credentials.Certificate(firebase_credentials_path)
        source = "file"
    else:
        logger.info("firebase_not_configured")
        return False

    _firebase_app = firebase_admin.initialize_app(cred)
    logger.info("firebase_initialized", source=source, project_id=_firebase_app.project_id)
    return True


def is_firebase_initialized() -> bool:
    return _firebase_app is not None
