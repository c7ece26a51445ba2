import asyncio
import json
from typing import Callable, List

import httpx
import pytest

from checkout_flow.client import BackendClient
from checkout_flow.loader import ScriptResourceLoader

BASE_URL = "http://backend.test/api"


class RecordingBackend:
    """
    MockTransport handler that routes by path suffix and keeps every request.

    ``routes`` maps "create" / "verify" to callables returning an
    ``httpx.Response`` (or raising an httpx error).
    """

    def __init__(self, create: Callable = None, verify: Callable = None):
        self.routes = {"create": create, "verify": verify}
        self.requests: List[httpx.Request] = []

    def calls(self, kind: str) -> List[httpx.Request]:
        marker = "/purchase/create/" if kind == "create" else "/purchase/verify"
        return [r for r in self.requests if marker in r.url.path]

    def body(self, kind: str, index: int = 0) -> dict:
        return json.loads(self.calls(kind)[index].content)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        kind = "create" if "/purchase/create/" in request.url.path else "verify"
        route = self.routes[kind]
        if route is None:
            return httpx.Response(500, text=f"no {kind} route")
        return route(request)

    def client(self) -> BackendClient:
        return BackendClient(base_url=BASE_URL, client=httpx.AsyncClient(transport=httpx.MockTransport(self)))


class ScriptedWidget:
    def __init__(self, runtime, options, handlers):
        self.runtime = runtime
        self.options = options
        self.handlers = handlers

    def open(self):
        self.runtime.opened.append(self.options)
        asyncio.get_running_loop().call_soon(self.runtime.script, self.handlers, self.options)


class ScriptedRuntime:
    """Widget runtime whose user behaviour is a plain function."""

    def __init__(self, script: Callable):
        self.script = script
        self.opened = []

    def create(self, options, handlers):
        return ScriptedWidget(self, options, handlers)


def complete_with(payment_id="pay_1", order_id=None, signature="sig_1"):
    def script(handlers, options):
        handlers.on_success({
            "razorpay_payment_id": payment_id,
            "razorpay_order_id": order_id or options.order_id,
            "razorpay_signature": signature,
        })
    return script


def dismiss(handlers, options):
    handlers.on_dismiss()


class CountingInjector:
    def __init__(self, runtime=None, error: Exception = None):
        self.runtime = runtime
        self.error = error
        self.calls = 0

    async def __call__(self, src):
        self.calls += 1
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.runtime


def make_loader(runtime=None, error: Exception = None) -> ScriptResourceLoader:
    return ScriptResourceLoader(CountingInjector(runtime, error), src="https://checkout.test/v1/checkout.js")


def order_response(order_id="ord_1", amount=99900, currency="INR"):
    return lambda request: httpx.Response(200, json={"id": order_id, "amount": amount, "currency": currency})


def verified_response(request):
    return httpx.Response(200, json={"success": True, "message": "Payment verified"})


@pytest.fixture
def backend():
    return RecordingBackend(create=order_response(), verify=verified_response)
