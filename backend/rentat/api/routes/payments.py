"""
Payment API routes: rental checkout, escrow transaction actions and the
Paymob webhook
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from rentat.api.dependencies import get_paymob_service
from rentat.core.logging_config import LoggingConfig
from rentat.models.payment import (AmountRequest, CheckoutRequest,
                                   RefundResult, RentalPayment,
                                   TransactionActionResult)
from rentat.services.paymob_service import PaymobError, PaymobService

router = APIRouter(prefix="/api/payments", tags=["payments"])
logger = LoggingConfig.get_logger(__name__)


def _to_http_error(error: Exception) -> HTTPException:
    if isinstance(error, ValueError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, PaymobError):
        return HTTPException(status_code=502, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


@router.post("/checkout", response_model=RentalPayment)
async def create_checkout(
    request: CheckoutRequest,
    service: PaymobService = Depends(get_paymob_service),
):
    """Create a Paymob order and payment key for a rental"""
    try:
        return await service.create_rental_payment(
            rental_id=request.rental_id,
            amount=request.amount,
            currency=request.currency,
            billing_data=request.billing_data,
        )
    except (ValueError, PaymobError) as e:
        raise _to_http_error(e)


@router.get("/transactions/{transaction_id}")
async def get_transaction(
    transaction_id: str,
    service: PaymobService = Depends(get_paymob_service),
):
    try:
        return await service.retrieve_transaction(transaction_id)
    except PaymobError as e:
        raise _to_http_error(e)


@router.post("/transactions/{transaction_id}/refund", response_model=RefundResult)
async def refund_transaction(
    transaction_id: str,
    request: Optional[AmountRequest] = None,
    service: PaymobService = Depends(get_paymob_service),
):
    amount = request.amount if request else None
    try:
        return await service.refund_transaction(transaction_id, amount)
    except (ValueError, PaymobError) as e:
        raise _to_http_error(e)


@router.post("/transactions/{transaction_id}/void", response_model=TransactionActionResult)
async def void_transaction(
    transaction_id: str,
    service: PaymobService = Depends(get_paymob_service),
):
    try:
        return await service.void_transaction(transaction_id)
    except PaymobError as e:
        raise _to_http_error(e)


@router.post("/transactions/{transaction_id}/capture", response_model=TransactionActionResult)
async def capture_transaction(
    transaction_id: str,
    request: Optional[AmountRequest] = None,
    service: PaymobService = Depends(get_paymob_service),
):
    amount = request.amount if request else None
    try:
        return await service.capture_transaction(transaction_id, amount)
    except (ValueError, PaymobError) as e:
        raise _to_http_error(e)


@router.post("/paymob/webhook")
async def paymob_webhook(
    payload: Dict[str, Any] = Body(...),
    received_hmac: Optional[str] = Query(default=None, alias="hmac"),
    service: PaymobService = Depends(get_paymob_service),
):
    """
    Paymob transaction callback

    Paymob posts {"type": "TRANSACTION", "obj": {...}} with the signature in
    the `hmac` query parameter.
    """
    transaction = payload.get("obj") if isinstance(payload.get("obj"), dict) else payload

    if not service.verify_hmac(transaction, received_hmac):
        logger.warning("Rejected Paymob webhook with invalid signature")
        raise HTTPException(status_code=401, detail="Invalid signature")

    order = transaction.get("order")
    order_id = order.get("id") if isinstance(order, dict) else order
    status = service.webhook_status(transaction)

    logger.info(
        f"Paymob webhook for transaction {transaction.get('id')}: {status.value}",
        extra={"order_id": order_id, "payment_status": status.value}
    )
    return {
        "received": True,
        "transaction_id": transaction.get("id"),
        "order_id": order_id,
        "status": status.value,
    }
