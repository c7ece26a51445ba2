from typing import Any, Optional


class CheckoutError(Exception):
    """Base class for every terminal failure of a purchase attempt."""

    message = "Purchase failed"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail
        super().__init__(detail or self.message)

    def user_message(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


# ---------- order initiation ----------

class InitiationError(CheckoutError):
    message = "Failed to create purchase"


class OrderRejected(InitiationError):
    message = "Order creation rejected"

    def __init__(self, detail: Optional[str] = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(detail)


class MalformedResponse(InitiationError):
    message = "Order response has no usable order id"

    def __init__(self, detail: Optional[str] = None, payload: Any = None):
        self.payload = payload
        super().__init__(detail)


class InitiationNetworkFailure(InitiationError):
    message = "Could not reach the order service"


# ---------- widget ----------

class LoadError(CheckoutError):
    message = "Failed to load checkout script"


class SessionError(CheckoutError):
    message = "Checkout session failed"


class WidgetUnavailable(SessionError):
    message = "Checkout widget unavailable"


class InternalGatewayError(SessionError):
    message = "Payment gateway reported an error"


# ---------- verification ----------

class VerificationError(CheckoutError):
    message = "Verification failed"


class VerificationRejected(VerificationError):
    message = "Verification failed"

    def __init__(self, detail: Optional[str] = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(detail)


class VerificationNetworkFailure(VerificationError):
    message = "Error verifying payment"


class AlreadyInProgress(CheckoutError):
    message = "A purchase is already in progress"
