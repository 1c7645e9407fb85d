"""
Firestore client bootstrap for admin tooling
"""
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.cloud import firestore as gcf

from rentat.core.config import Settings, get_settings
from rentat.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

# Collection names
COLLECTION_CHATS = "chats"
COLLECTION_MESSAGES = "messages"


def initialize_firebase_app(settings: Optional[Settings] = None) -> firebase_admin.App:
    """Initialize the default Firebase Admin app once per process"""
    settings = settings or get_settings()
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    if settings.firebase_credentials_path:
        cred = credentials.Certificate(settings.firebase_credentials_path)
    else:
        cred = credentials.ApplicationDefault()

    logger.info(f"Initializing Firebase Admin for project {settings.firebase_project_id}")
    return firebase_admin.initialize_app(cred, {"projectId": settings.firebase_project_id})


def get_firestore_client(settings: Optional[Settings] = None) -> gcf.Client:
    """
    Get a Firestore client

    Uses the Admin SDK client unless a regional API endpoint is configured,
    in which case a client bound to that endpoint is built from the same
    credentials.
    """
    settings = settings or get_settings()
    app = initialize_firebase_app(settings)

    if not settings.firestore_api_endpoint:
        return firestore.client(app)

    logger.debug(f"Using Firestore endpoint {settings.firestore_api_endpoint}")
    return gcf.Client(
        project=settings.firebase_project_id,
        credentials=app.credential.get_credential(),
        client_options={"api_endpoint": settings.firestore_api_endpoint},
    )
