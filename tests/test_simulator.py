import httpx
import pytest

from checkout_flow.client import BackendClient
from checkout_flow.gateway import GatewaySession
from checkout_flow.initiator import OrderInitiator
from checkout_flow.models import Phase, PurchaseRequest
from checkout_flow.orchestrator import PurchaseOrchestrator
from checkout_flow.simulator import SimulatedCheckoutRuntime, create_app, sign_payment
from checkout_flow.verifier import PaymentVerifier

from conftest import make_loader

REQUEST = PurchaseRequest(user_id="u1", target_id="univ-x", payment_method="RAZORPAY", amount=99900)
CREATE_BODY = {"paymentMethod": "RAZORPAY", "upiId": None, "appName": "WebApp"}


def asgi_client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


def orchestrator_for(app, runtime, **kwargs):
    backend = BackendClient(base_url="http://testserver", client=asgi_client(app))
    return PurchaseOrchestrator(
        OrderInitiator(backend),
        GatewaySession(make_loader(runtime)),
        PaymentVerifier(backend),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_end_to_end_against_simulator():
    app = create_app(secret="s3cret", price_minor=99900)
    completed = []
    orchestrator = orchestrator_for(app, SimulatedCheckoutRuntime(secret="s3cret"), on_success=completed.append)

    outcome = await orchestrator.buy(REQUEST)

    assert outcome.phase == Phase.COMPLETED
    assert completed == [outcome]
    order = app.state.sim.orders[outcome.order_id]
    assert order["status"] == "paid"
    assert order["payment_id"] == outcome.payment_id


@pytest.mark.asyncio
async def test_wrong_signing_key_fails_verification():
    app = create_app(secret="s3cret")
    outcome = await orchestrator_for(app, SimulatedCheckoutRuntime(secret="forged")).buy(REQUEST)

    assert outcome.phase == Phase.FAILED
    assert "Signature mismatch" in outcome.message


@pytest.mark.asyncio
async def test_dismissed_checkout_never_reaches_verify():
    app = create_app()
    outcome = await orchestrator_for(app, SimulatedCheckoutRuntime(behaviour="dismiss")).buy(REQUEST)

    assert outcome.phase == Phase.CANCELLED
    assert app.state.sim.verify_calls == 0


@pytest.mark.asyncio
async def test_gateway_failure_reported():
    app = create_app()
    outcome = await orchestrator_for(app, SimulatedCheckoutRuntime(behaviour="fail")).buy(REQUEST)

    assert outcome.phase == Phase.FAILED
    assert "Payment failed" in outcome.message


@pytest.mark.asyncio
async def test_create_replays_idempotent_response():
    async with asgi_client(create_app()) as client:
        headers = {"Idempotency-Key": "k1"}
        first = await client.post("/purchase/create/u1/univ-x", json=CREATE_BODY, headers=headers)
        second = await client.post("/purchase/create/u1/univ-x", json=CREATE_BODY, headers=headers)
        conflict = await client.post("/purchase/create/u2/univ-x", json=CREATE_BODY, headers=headers)

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()
    assert first.json()["razorpayOrderId"].startswith("order_")
    assert conflict.status_code == 409


@pytest.mark.asyncio
async def test_verify_checks_order_ownership_and_existence():
    async with asgi_client(create_app(secret="k")) as client:
        order_id = (await client.post("/purchase/create/u1/univ-x", json=CREATE_BODY)).json()["razorpayOrderId"]
        body = {
            "gatewayPaymentId": "pay_1",
            "gatewayOrderId": order_id,
            "gatewaySignature": sign_payment("k", order_id, "pay_1"),
            "userId": "u2",
            "targetId": "univ-x",
        }
        wrong_user = await client.post("/purchase/verify", json=body)
        missing = await client.post("/purchase/verify", json={**body, "gatewayOrderId": "order_nope"})
        ok = await client.post("/purchase/verify", json={**body, "userId": "u1"})

    assert wrong_user.status_code == 400
    assert missing.status_code == 404
    assert ok.status_code == 200
    assert ok.json()["success"] is True


@pytest.mark.asyncio
async def test_health():
    async with asgi_client(create_app()) as client:
        r = await client.get("/health")
    assert r.json() == {"ok": True}


@pytest.mark.asyncio
async def test_build_orchestrator_wires_components():
    from checkout_flow import build_orchestrator

    app = create_app(secret="s3cret")
    loader = make_loader(SimulatedCheckoutRuntime(secret="s3cret"))
    orchestrator = build_orchestrator(
        lambda text: SimulatedCheckoutRuntime(secret="s3cret"),
        backend=BackendClient(base_url="http://testserver", client=asgi_client(app)),
        loader=loader,
        key_id="rzp_test_key",
    )

    outcome = await orchestrator.buy(REQUEST)
    assert outcome.phase == Phase.COMPLETED
    assert loader.load_count == 1
