"""
Paymob payment service: auth token cache, orders, payment keys, transaction
actions and webhook HMAC verification
"""
import hashlib
import hmac
import time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Dict, Optional, Union

import httpx

from rentat.core.config import Settings
from rentat.core.logging_config import LoggingConfig
from rentat.models.payment import (BillingData, OrderResult, PaymentKeyResult,
                                   PaymentStatus, RefundResult, RentalPayment,
                                   TransactionActionResult)

logger = LoggingConfig.get_logger(__name__)

Amount = Union[int, float, Decimal]

# Paymob's documented concatenation order for transaction callbacks
HMAC_FIELDS = (
    "amount_cents",
    "created_at",
    "currency",
    "error_occured",
    "has_parent_transaction",
    "id",
    "integration_id",
    "is_3d_secure",
    "is_auth",
    "is_capture",
    "is_refunded",
    "is_standalone_payment",
    "is_voided",
    "order.id",
    "owner",
    "pending",
    "source_data.pan",
    "source_data.sub_type",
    "source_data.type",
    "success",
)

PAYMENT_KEY_EXPIRATION_SECONDS = 3600


class PaymobError(Exception):
    """Raised when a Paymob call does not succeed"""

    def __init__(self, message: str, response_text: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.response_text = response_text
        self.status_code = status_code


class PaymobAuthenticationError(PaymobError):
    pass


class PaymobOrderError(PaymobError):
    pass


class PaymobPaymentKeyError(PaymobError):
    pass


class PaymobTransactionError(PaymobError):
    """Retrieve, refund, void or capture failed"""

    def __init__(self, operation: str, message: str, response_text: Optional[str] = None,
                 status_code: Optional[int] = None):
        super().__init__(message, response_text=response_text, status_code=status_code)
        self.operation = operation


def to_minor_units(amount: Amount) -> int:
    """
    Convert an amount in major units to integer cents, rounding half up

    Decimal arithmetic keeps 12.345 at 1235 where float math would give
    1234.4999...

    Example:
        >>> to_minor_units(12.345)
        1235
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount!r}")
    if not value.is_finite():
        raise ValueError(f"Amount must be a finite number, got {amount}")
    cents = value * 100
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def positive_minor_units(amount: Optional[Amount], label: str = "Amount") -> int:
    """Minor units of an amount that must be a positive, finite number"""
    if amount is None:
        raise ValueError(f"{label} is required")
    cents = to_minor_units(amount)
    if cents <= 0:
        raise ValueError(f"{label} must be positive, got {amount}")
    return cents


def from_minor_units(amount_cents: int) -> float:
    """Convert integer cents back to major units"""
    return amount_cents / 100


def _hmac_value(value: Any) -> str:
    """Render a payload value the way Paymob does before hashing"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _lookup(payload: Dict[str, Any], path: str) -> Any:
    current: Any = payload
    for part in path.split("."):
        if not isinstance(current, dict):
            return None
        current = current.get(part)
    return current


class PaymobService:
    """
    Client for the Paymob Accept API

    Authentication is transparent to callers: every operation that needs a
    token goes through authenticate(), which reuses the cached token until
    its expiry. The cache is not locked; two calls racing on an expired
    token will each fetch a valid token.
    """

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.base_url = settings.paymob_base_url
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=settings.paymob_timeout_seconds)
        self._clock = clock
        self._auth_token: Optional[str] = None
        self._token_expiry: Optional[float] = None

        logger.info(
            "Paymob service initialized",
            extra={
                "api_key_present": bool(settings.paymob_api_key),
                "integration_id_present": bool(settings.paymob_integration_id),
                "hmac_secret_present": bool(settings.paymob_hmac_secret),
            }
        )

    async def aclose(self):
        """Close the HTTP client if this service created it"""
        if self._owns_client:
            await self._client.aclose()

    @property
    def token_expiry(self) -> Optional[float]:
        return self._token_expiry

    def _has_valid_token(self) -> bool:
        return (
            self._auth_token is not None
            and self._token_expiry is not None
            and self._clock() < self._token_expiry
        )

    async def _post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        return await self._client.post(f"{self.base_url}{path}", json=payload)

    async def authenticate(self) -> str:
        """
        Get an auth token, exchanging the API key only when the cached one expired

        Returns:
            Auth token

        Raises:
            PaymobAuthenticationError: If Paymob rejects the API key
        """
        if self._has_valid_token():
            return self._auth_token

        logger.info("Authenticating with Paymob")
        try:
            response = await self._post("/auth/tokens", {"api_key": self.settings.paymob_api_key})
            if not response.is_success:
                raise PaymobAuthenticationError(
                    f"Failed to authenticate with Paymob: {response.text}",
                    response_text=response.text,
                    status_code=response.status_code,
                )

            token = response.json()["token"]
        except Exception as e:
            logger.error(f"Error authenticating with Paymob: {e}")
            raise

        self._auth_token = token
        self._token_expiry = self._clock() + self.settings.paymob_token_ttl_seconds
        logger.info("Paymob authentication successful")
        return token

    async def create_order(self, amount: Amount, currency: str, merchant_order_id: str) -> OrderResult:
        """
        Register an order with Paymob

        Args:
            amount: Positive amount in major units
            currency: Currency code, e.g. EGP
            merchant_order_id: Our idempotency key (the rental id)

        Returns:
            OrderResult with the Paymob order id
        """
        amount_cents = positive_minor_units(amount, "Order amount")

        try:
            auth_token = await self.authenticate()
            response = await self._post(
                "/ecommerce/orders",
                {
                    "auth_token": auth_token,
                    "delivery_needed": "false",
                    "amount_cents": amount_cents,
                    "currency": currency,
                    "merchant_order_id": merchant_order_id,
                },
            )
            if not response.is_success:
                raise PaymobOrderError(
                    f"Failed to create order: {response.text}",
                    response_text=response.text,
                    status_code=response.status_code,
                )

            result = response.json()
        except Exception as e:
            logger.error(f"Error creating order: {e}")
            raise

        logger.info(f"Created Paymob order {result['id']} for {merchant_order_id}")
        return OrderResult(order_id=str(result["id"]))

    def _integration_id(self) -> int:
        if not self.settings.paymob_integration_id:
            raise ValueError("PAYMOB_INTEGRATION_ID is not configured")
        return int(self.settings.paymob_integration_id)

    async def create_payment_key(
        self,
        order_id: str,
        amount: Amount,
        currency: str,
        billing_data: Optional[Union[BillingData, Dict[str, Any]]] = None,
    ) -> PaymentKeyResult:
        """
        Create the payment key that drives Paymob's hosted checkout

        Missing billing fields are filled from BillingData defaults.
        """
        billing = BillingData.from_partial(billing_data)
        integration_id = self._integration_id()
        amount_cents = positive_minor_units(amount, "Payment amount")

        try:
            auth_token = await self.authenticate()
            response = await self._post(
                "/acceptance/payment_keys",
                {
                    "auth_token": auth_token,
                    "amount_cents": amount_cents,
                    "expiration": PAYMENT_KEY_EXPIRATION_SECONDS,
                    "order_id": order_id,
                    "billing_data": billing.model_dump(),
                    "currency": currency,
                    "integration_id": integration_id,
                },
            )
            if not response.is_success:
                raise PaymobPaymentKeyError(
                    f"Failed to create payment key: {response.text}",
                    response_text=response.text,
                    status_code=response.status_code,
                )

            result = response.json()
        except Exception as e:
            logger.error(f"Error creating payment key: {e}")
            raise

        return PaymentKeyResult(payment_key=result["token"])

    def build_checkout_url(self, payment_key: str) -> Optional[str]:
        """Hosted iframe URL for a payment key, None when no iframe is configured"""
        if not self.settings.paymob_iframe_id:
            return None
        return (
            f"{self.base_url}/acceptance/iframes/{self.settings.paymob_iframe_id}"
            f"?payment_token={payment_key}"
        )

    async def create_rental_payment(
        self,
        rental_id: str,
        amount: Amount,
        currency: Optional[str] = None,
        billing_data: Optional[Union[BillingData, Dict[str, Any]]] = None,
    ) -> RentalPayment:
        """Create the order and payment key for a rental in one go"""
        currency = currency or self.settings.paymob_default_currency
        order = await self.create_order(amount, currency, rental_id)
        key = await self.create_payment_key(order.order_id, amount, currency, billing_data)
        return RentalPayment(
            order_id=order.order_id,
            payment_key=key.payment_key,
            checkout_url=self.build_checkout_url(key.payment_key),
        )

    def _raise_for_transaction(self, operation: str, response: httpx.Response):
        if not response.is_success:
            raise PaymobTransactionError(
                operation,
                f"Failed to {operation} transaction: {response.text}",
                response_text=response.text,
                status_code=response.status_code,
            )

    async def retrieve_transaction(self, transaction_id: str) -> Dict[str, Any]:
        """Fetch a transaction as returned by Paymob"""
        try:
            response = await self._client.get(f"{self.base_url}/acceptance/transactions/{transaction_id}")
            self._raise_for_transaction("retrieve", response)
            return response.json()
        except Exception as e:
            logger.error(f"Error retrieving transaction: {e}")
            raise

    async def refund_transaction(self, transaction_id: str, amount: Optional[Amount] = None) -> RefundResult:
        """
        Refund a captured transaction, fully or partially

        Args:
            transaction_id: Paymob transaction id
            amount: Partial amount in major units (full refund when omitted)
        """
        payload: Dict[str, Any] = {"transaction_id": transaction_id}
        if amount is not None:
            payload["amount_cents"] = positive_minor_units(amount, "Refund amount")

        try:
            payload["auth_token"] = await self.authenticate()
            response = await self._post("/acceptance/void_refund/refund", payload)
            self._raise_for_transaction("refund", response)
            result = response.json()
        except Exception as e:
            logger.error(f"Error refunding transaction: {e}")
            raise

        refund_id = result.get("id")
        return RefundResult(success=True, refund_id=str(refund_id) if refund_id is not None else None)

    async def void_transaction(self, transaction_id: str) -> TransactionActionResult:
        """Void a same-day transaction"""
        try:
            auth_token = await self.authenticate()
            response = await self._post(
                "/acceptance/void_refund/void",
                {"auth_token": auth_token, "transaction_id": transaction_id},
            )
            self._raise_for_transaction("void", response)
        except Exception as e:
            logger.error(f"Error voiding transaction: {e}")
            raise

        return TransactionActionResult(success=True)

    async def capture_transaction(self, transaction_id: str, amount: Optional[Amount] = None) -> TransactionActionResult:
        """Capture an authorized (held) transaction"""
        payload: Dict[str, Any] = {"transaction_id": transaction_id}
        if amount is not None:
            payload["amount_cents"] = positive_minor_units(amount, "Capture amount")

        try:
            payload["auth_token"] = await self.authenticate()
            response = await self._post("/acceptance/capture", payload)
            self._raise_for_transaction("capture", response)
        except Exception as e:
            logger.error(f"Error capturing transaction: {e}")
            raise

        return TransactionActionResult(success=True)

    def calculate_hmac(self, payload: Dict[str, Any]) -> str:
        """HMAC-SHA512 hex digest of the ordered callback fields"""
        concatenated = "".join(
            _hmac_value(value)
            for value in (_lookup(payload, field) for field in HMAC_FIELDS)
            if value is not None
        )
        return hmac.new(
            self.settings.paymob_hmac_secret.encode("utf-8"),
            concatenated.encode("utf-8"),
            hashlib.sha512,
        ).hexdigest()

    def verify_hmac(self, payload: Dict[str, Any], received_hmac: Optional[str]) -> bool:
        """
        Check a webhook signature

        Never raises: a malformed payload is reported the same way as a bad
        signature.
        """
        try:
            if not self.settings.paymob_hmac_secret:
                logger.warning("HMAC secret not configured")
                return False
            if not received_hmac:
                return False

            return hmac.compare_digest(self.calculate_hmac(payload), received_hmac)
        except Exception as e:
            logger.error(f"Error verifying HMAC: {e}")
            return False

    @staticmethod
    def webhook_status(payload: Dict[str, Any]) -> PaymentStatus:
        if payload.get("success") is True:
            return PaymentStatus.SUCCESS
        if payload.get("pending") is True:
            return PaymentStatus.PENDING
        return PaymentStatus.FAILED
