"""
Pydantic models
"""
from rentat.models.chat import (ChatAuditReport, ChatRepairResult,  # noqa: F401
                                MessageIssue, MessageIssueType)
from rentat.models.payment import (AmountRequest, BillingData,  # noqa: F401
                                   CheckoutRequest, OrderResult,
                                   PaymentKeyResult, PaymentStatus,
                                   RefundResult, RentalPayment,
                                   TransactionActionResult)
