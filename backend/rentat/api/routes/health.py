"""
Health check endpoints
"""
from fastapi import APIRouter, Depends

from rentat.api.dependencies import get_app_settings
from rentat.core.config import Settings
from rentat.utils.datetime_utils import utc_now

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(settings: Settings = Depends(get_app_settings)):
    """
    Basic health check endpoint

    Reports which payment secrets are present, never their values.
    """
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": settings.app_name,
        "environment": settings.app_env,
        "components": {
            "paymob": {
                "api_key_present": bool(settings.paymob_api_key),
                "integration_id_present": bool(settings.paymob_integration_id),
                "hmac_secret_present": bool(settings.paymob_hmac_secret),
                "iframe_id_present": bool(settings.paymob_iframe_id),
            }
        },
    }
