from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .settings import APP_NAME, PAYMENT_METHOD


class Phase(str, Enum):
    IDLE = "IDLE"
    CREATING_ORDER = "CREATING_ORDER"
    AWAITING_GATEWAY = "AWAITING_GATEWAY"
    VERIFYING = "VERIFYING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class PurchaseRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    target_id: str
    payment_method: str = PAYMENT_METHOD
    # client-requested amount in minor units, only compared against the order
    amount: Optional[int] = Field(default=None, ge=0)
    upi_id: Optional[str] = None
    app_name: str = APP_NAME
    description: Optional[str] = None


class Order(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    amount: int = Field(ge=0)
    currency: str = Field(min_length=3, max_length=3)
    status: str = "created"
    # public gateway key issued with the order, when the backend sends one
    key_id: Optional[str] = None


class GatewayResult(BaseModel):
    """Completion payload handed back by the checkout widget."""

    model_config = ConfigDict(frozen=True)

    payment_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("payment_id", "razorpay_payment_id", "paymentId"),
    )
    order_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("order_id", "razorpay_order_id", "orderId"),
    )
    signature: str = Field(
        min_length=1,
        validation_alias=AliasChoices("signature", "razorpay_signature"),
    )


class UserCancelled(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: str


class VerificationOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    verified: bool
    order_id: str
    payment_id: str
    status_code: int
    raw_response: Any = None

    def is_for(self, result: GatewayResult) -> bool:
        return self.order_id == result.order_id and self.payment_id == result.payment_id


class Prefill(BaseModel):
    name: str = ""
    email: str = ""
    contact: str = ""


class GatewayUIConfig(BaseModel):
    key_id: str
    merchant_name: str
    description: str = ""
    theme_color: str = "#3399cc"
    prefill: Prefill = Field(default_factory=Prefill)


class CheckoutOptions(BaseModel):
    """Options the checkout widget is configured with for one session."""

    model_config = ConfigDict(frozen=True)

    key: str
    amount: int = Field(ge=0)
    currency: str
    name: str
    description: str = ""
    order_id: str
    prefill: Prefill = Field(default_factory=Prefill)
    theme: dict = Field(default_factory=dict)


class PurchaseSession(BaseModel):
    request_id: str
    request: PurchaseRequest
    phase: Phase = Phase.IDLE
    order: Optional[Order] = None
    gateway_result: Optional[GatewayResult] = None
    outcome: Optional[VerificationOutcome] = None
    amount_mismatch: bool = False


class PurchaseOutcome(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    request_id: str
    phase: Phase
    order_id: Optional[str] = None
    payment_id: Optional[str] = None
    message: str
    error: Optional[Exception] = None
    amount_mismatch: bool = False

    @property
    def ok(self) -> bool:
        return self.phase == Phase.COMPLETED


# ---------- wire bodies ----------

class CreatePurchaseBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payment_method: str = Field(alias="paymentMethod")
    upi_id: Optional[str] = Field(default=None, alias="upiId")
    app_name: str = Field(alias="appName")


class VerifyPaymentBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    gateway_payment_id: str = Field(alias="gatewayPaymentId")
    gateway_order_id: str = Field(alias="gatewayOrderId")
    gateway_signature: str = Field(alias="gatewaySignature")
    user_id: str = Field(alias="userId")
    target_id: str = Field(alias="targetId")
