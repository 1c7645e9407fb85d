"""
FastAPI dependencies resolving objects built by the composition root
"""
from fastapi import HTTPException, Request

from rentat.core.config import Settings, get_settings
from rentat.services.paymob_service import PaymobService


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def get_paymob_service(request: Request) -> PaymobService:
    """The PaymobService created in main.create_app"""
    service = getattr(request.app.state, "paymob_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Payment service is not available")
    return service
