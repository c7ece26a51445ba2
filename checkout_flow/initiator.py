import logging
from typing import Any, Mapping, Optional, Sequence
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .client import BackendClient, json_body, response_detail
from .errors import InitiationNetworkFailure, MalformedResponse, OrderRejected
from .models import CreatePurchaseBody, Order, PurchaseRequest
from .settings import DEFAULT_CURRENCY

log = logging.getLogger(__name__)

# The backend has shipped the order id under several names; earlier entries win.
ORDER_ID_KEYS = ("gatewayOrderId", "razorpayOrderId", "id", "orderId", "order_id")
AMOUNT_KEYS = ("amount", "amount_in_paise", "amountInPaise", "amount_minor")
CURRENCY_KEYS = ("currency", "currencyCode")
KEY_ID_KEYS = ("key", "keyId", "razorpayKeyId")


def extract_first(payload: Mapping[str, Any], keys: Sequence[str]) -> Optional[Any]:
    """
    Return the value of the first key in ``keys`` present in ``payload``.

    ``None`` and empty strings count as absent, so a backend that sends
    ``{"razorpayOrderId": "", "id": "ord_1"}`` resolves to ``"ord_1"``.
    """
    for key in keys:
        value = payload.get(key)
        if value is None or value == "":
            continue
        return value
    return None


def order_from_payload(payload: Any, requested_amount: Optional[int] = None) -> Order:
    if not isinstance(payload, dict):
        raise MalformedResponse("expected a JSON object", payload=payload)

    order_id = extract_first(payload, ORDER_ID_KEYS)
    if order_id is None:
        raise MalformedResponse(f"none of {', '.join(ORDER_ID_KEYS)} present", payload=payload)

    amount = extract_first(payload, AMOUNT_KEYS)
    if amount is None:
        if requested_amount is None:
            raise MalformedResponse("order amount missing", payload=payload)
        log.warning("order %s carries no amount; using requested amount %s", order_id, requested_amount)
        amount = requested_amount

    currency = extract_first(payload, CURRENCY_KEYS) or DEFAULT_CURRENCY

    try:
        return Order(
            id=str(order_id),
            amount=amount,
            currency=str(currency).upper(),
            status=str(payload.get("status") or "created"),
            key_id=extract_first(payload, KEY_ID_KEYS),
        )
    except ValidationError as e:
        raise MalformedResponse(str(e), payload=payload) from e


class OrderInitiator:
    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def create_order(
        self,
        request: PurchaseRequest,
        token: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> Order:
        path = f"/purchase/create/{quote(request.user_id, safe='')}/{quote(request.target_id, safe='')}"
        body = CreatePurchaseBody(
            payment_method=request.payment_method,
            upi_id=request.upi_id,
            app_name=request.app_name,
        ).model_dump(by_alias=True)
        try:
            resp = await self.backend.post_json(path, body, token=token, idempotency_key=idempotency_key)
        except (httpx.TimeoutException, httpx.TransportError) as e:
            raise InitiationNetworkFailure(str(e) or type(e).__name__) from e

        if not resp.is_success:
            raise OrderRejected(response_detail(resp, "Failed to create purchase"), status_code=resp.status_code)

        payload = json_body(resp)
        try:
            order = order_from_payload(payload, requested_amount=request.amount)
        except MalformedResponse:
            log.warning("order id missing from backend response: %r", payload)
            raise
        log.info("order %s created for %s/%s", order.id, request.user_id, request.target_id)
        return order
