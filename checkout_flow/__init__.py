"""
Client-side orchestration of a gateway-backed purchase: create the order,
open the checkout widget, verify the completion with the backend.
"""

from typing import Callable, Optional

from .client import BackendClient
from .gateway import GatewaySession
from .initiator import OrderInitiator
from .loader import ScriptResourceLoader, WidgetRuntime, default_loader
from .models import Order, Phase, PurchaseOutcome, PurchaseRequest
from .orchestrator import PurchaseOrchestrator
from .storage import KeyValueStore
from .verifier import PaymentVerifier


def build_orchestrator(
    runtime_factory: Callable[[str], WidgetRuntime],
    store: Optional[KeyValueStore] = None,
    backend: Optional[BackendClient] = None,
    loader: Optional[ScriptResourceLoader] = None,
    **kwargs,
) -> PurchaseOrchestrator:
    """Wire an orchestrator; the widget loader is shared process-wide unless given."""
    backend = backend or BackendClient()
    loader = loader or default_loader(runtime_factory)
    return PurchaseOrchestrator(
        OrderInitiator(backend),
        GatewaySession(loader),
        PaymentVerifier(backend),
        store=store,
        **kwargs,
    )


__all__ = [
    "BackendClient",
    "GatewaySession",
    "Order",
    "OrderInitiator",
    "PaymentVerifier",
    "Phase",
    "PurchaseOrchestrator",
    "PurchaseOutcome",
    "PurchaseRequest",
    "ScriptResourceLoader",
    "build_orchestrator",
]
