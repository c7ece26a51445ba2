import logging
from typing import Optional

import httpx

from .client import BackendClient, json_body, response_detail
from .errors import VerificationNetworkFailure, VerificationRejected
from .models import GatewayResult, PurchaseRequest, VerificationOutcome, VerifyPaymentBody

log = logging.getLogger(__name__)


def body_verdict(body) -> bool:
    """A 2xx counts as verified unless the body explicitly says otherwise."""
    if isinstance(body, dict):
        for key in ("verified", "success"):
            if body.get(key) is False:
                return False
    return True


class PaymentVerifier:
    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def verify(
        self,
        result: GatewayResult,
        request: PurchaseRequest,
        token: Optional[str] = None,
    ) -> VerificationOutcome:
        body = VerifyPaymentBody(
            gateway_payment_id=result.payment_id,
            gateway_order_id=result.order_id,
            gateway_signature=result.signature,
            user_id=request.user_id,
            target_id=request.target_id,
        ).model_dump(by_alias=True)
        try:
            resp = await self.backend.post_json("/purchase/verify", body, token=token)
        except (httpx.TimeoutException, httpx.TransportError) as e:
            raise VerificationNetworkFailure(str(e) or type(e).__name__) from e

        if not resp.is_success:
            detail = response_detail(resp, f"HTTP {resp.status_code}")
            log.error("verification of payment %s rejected: %s", result.payment_id, detail)
            raise VerificationRejected(detail, status_code=resp.status_code)

        raw = json_body(resp)
        if raw is None:
            raw = resp.text
        return VerificationOutcome(
            verified=body_verdict(raw),
            order_id=result.order_id,
            payment_id=result.payment_id,
            status_code=resp.status_code,
            raw_response=raw,
        )
