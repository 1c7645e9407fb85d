"""
Payment models exchanged with the Paymob service
"""
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class PaymentStatus(str, Enum):
    """Transaction outcome reported by a webhook"""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class BillingData(BaseModel):
    """
    Billing details sent with a payment key request

    Every field Paymob requires is listed here with the value used when the
    caller does not know it. Missing, None and empty values all fall back to
    the default. Numbers such as floor or postal code are sent as strings.
    Both snake_case and the mobile client's camelCase names are accepted.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    first_name: str = Field(default="Guest", validation_alias=AliasChoices("first_name", "firstName"))
    last_name: str = Field(default="User", validation_alias=AliasChoices("last_name", "lastName"))
    email: str = "customer@example.com"
    phone_number: str = Field(
        default="+201000000000",
        validation_alias=AliasChoices("phone_number", "phoneNumber", "phone"),
    )
    apartment: str = "NA"
    floor: str = "NA"
    street: str = "NA"
    building: str = "NA"
    shipping_method: str = Field(default="NA", validation_alias=AliasChoices("shipping_method", "shippingMethod"))
    postal_code: str = Field(default="NA", validation_alias=AliasChoices("postal_code", "postalCode"))
    city: str = "Cairo"
    country: str = "EG"
    state: str = "NA"

    @model_validator(mode="before")
    @classmethod
    def drop_empty_values(cls, data: Any) -> Any:
        """Let defaults apply to None and empty strings"""
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value not in (None, "")}
        return data

    @classmethod
    def from_partial(cls, data: Optional[Dict[str, Any]] = None) -> "BillingData":
        if isinstance(data, BillingData):
            return data
        return cls.model_validate(data or {})


class OrderResult(BaseModel):
    order_id: str


class PaymentKeyResult(BaseModel):
    payment_key: str


class RentalPayment(BaseModel):
    """Order and payment key created for a rental checkout"""
    order_id: str
    payment_key: str
    checkout_url: Optional[str] = None


class RefundResult(BaseModel):
    success: bool = True
    refund_id: Optional[str] = None


class TransactionActionResult(BaseModel):
    success: bool = True


class CheckoutRequest(BaseModel):
    """Body of POST /api/payments/checkout"""
    rental_id: str = Field(..., min_length=1, description="Rental used as merchant order id")
    amount: float = Field(..., gt=0, allow_inf_nan=False, description="Amount in major units")
    currency: Optional[str] = Field(default=None, description="Currency code (settings default when omitted)")
    billing_data: Dict[str, Any] = Field(default_factory=dict)


class AmountRequest(BaseModel):
    """Optional partial amount for capture and refund"""
    amount: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)
