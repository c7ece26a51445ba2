"""
Stand-in purchase backend and checkout widget for local runs and tests.

The FastAPI app implements the two endpoints the client calls; the
simulated runtime plays the part of the loaded checkout script and signs
completions with the same secret the app verifies against.
"""

import asyncio
import hashlib
import hmac
import json
import uuid
from typing import List, Optional

from fastapi import FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse

from .models import CheckoutOptions, CreatePurchaseBody, VerifyPaymentBody
from .settings import DEFAULT_CURRENCY, SIMULATOR_KEY_SECRET, SIMULATOR_PRICE_MINOR


def sha256_json(obj: dict) -> str:
    raw = json.dumps(obj, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(raw).hexdigest()


def sign_payment(secret: str, order_id: str, payment_id: str) -> str:
    return hmac.new(secret.encode("utf-8"), f"{order_id}|{payment_id}".encode("utf-8"), hashlib.sha256).hexdigest()


class SimulatorState:
    def __init__(self, secret: str, price_minor: int, currency: str):
        self.secret = secret
        self.price_minor = price_minor
        self.currency = currency
        self.orders: dict = {}
        self.idempotency_keys: dict = {}
        self.create_calls = 0
        self.verify_calls = 0


def create_app(
    secret: str = SIMULATOR_KEY_SECRET,
    price_minor: int = SIMULATOR_PRICE_MINOR,
    currency: str = DEFAULT_CURRENCY,
) -> FastAPI:
    app = FastAPI(title="Purchase Backend Simulator", version="0.1.0")
    state = SimulatorState(secret, price_minor, currency)
    app.state.sim = state

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.post("/purchase/create/{user_id}/{target_id}")
    def create_purchase(
        user_id: str,
        target_id: str,
        body: CreatePurchaseBody,
        idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
    ):
        state.create_calls += 1
        request_hash = sha256_json({"user_id": user_id, "target_id": target_id, **body.model_dump()})

        # 1) Idempotency lookup
        if idempotency_key:
            existing = state.idempotency_keys.get(idempotency_key)
            if existing:
                if existing["request_hash"] != request_hash:
                    raise HTTPException(status_code=409, detail="Idempotency-Key reuse with different request body")
                return JSONResponse(status_code=200, content=existing["response_json"])

        # 2) Create order
        order_id = f"order_{uuid.uuid4().hex[:14]}"
        state.orders[order_id] = {
            "user_id": user_id,
            "target_id": target_id,
            "amount": state.price_minor,
            "currency": state.currency,
            "status": "created",
        }
        resp = {
            "razorpayOrderId": order_id,
            "amount": state.price_minor,
            "currency": state.currency,
            "status": "created",
        }

        # 3) Store idempotent response
        if idempotency_key:
            state.idempotency_keys[idempotency_key] = {"request_hash": request_hash, "response_json": resp}
        return resp

    @app.post("/purchase/verify")
    def verify_payment(body: VerifyPaymentBody):
        state.verify_calls += 1
        order = state.orders.get(body.gateway_order_id)
        if not order:
            raise HTTPException(status_code=404, detail="Order not found")
        if order["user_id"] != body.user_id or order["target_id"] != body.target_id:
            raise HTTPException(status_code=400, detail="Order does not belong to this user and target")

        expected = sign_payment(state.secret, body.gateway_order_id, body.gateway_payment_id)
        if not hmac.compare_digest(expected, body.gateway_signature):
            raise HTTPException(status_code=400, detail="Signature mismatch")

        if order["status"] == "paid" and order.get("payment_id") != body.gateway_payment_id:
            raise HTTPException(status_code=409, detail="Order already paid by another payment")
        order["status"] = "paid"
        order["payment_id"] = body.gateway_payment_id
        return {"success": True, "message": "Payment verified"}

    return app


app = create_app()


class SimulatedWidget:
    def __init__(self, runtime: "SimulatedCheckoutRuntime", options: CheckoutOptions, handlers):
        self.runtime = runtime
        self.options = options
        self.handlers = handlers

    def open(self) -> None:
        self.runtime.opened.append(self.options)
        # the user answers on a later loop iteration, never inside open()
        asyncio.get_running_loop().call_soon(self._respond)

    def _respond(self) -> None:
        behaviour = self.runtime.behaviour
        if behaviour == "dismiss":
            self.handlers.on_dismiss()
        elif behaviour == "fail":
            self.handlers.on_error({"error": {"code": "BAD_REQUEST_ERROR", "description": "Payment failed"}})
        else:
            payment_id = f"pay_{uuid.uuid4().hex[:14]}"
            self.handlers.on_success({
                "razorpay_payment_id": payment_id,
                "razorpay_order_id": self.options.order_id,
                "razorpay_signature": sign_payment(self.runtime.secret, self.options.order_id, payment_id),
            })


class SimulatedCheckoutRuntime:
    """
    Behaves like the loaded checkout script.

    ``behaviour`` is one of ``"complete"`` (signed success), ``"dismiss"``
    (user closes the modal) or ``"fail"`` (gateway error).
    """

    def __init__(self, secret: str = SIMULATOR_KEY_SECRET, behaviour: str = "complete"):
        self.secret = secret
        self.behaviour = behaviour
        self.opened: List[CheckoutOptions] = []

    def create(self, options: CheckoutOptions, handlers) -> SimulatedWidget:
        return SimulatedWidget(self, options, handlers)
