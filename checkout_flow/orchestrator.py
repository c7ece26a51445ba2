"""
Drives one purchase attempt end to end:

    IDLE -> CREATING_ORDER -> AWAITING_GATEWAY -> VERIFYING -> COMPLETED
                 |                  |    \\               |
                 v                  v     -> CANCELLED    v
               FAILED             FAILED                FAILED

Only one attempt runs at a time per orchestrator. The guard is taken before
the first await of ``buy()``, so two buys scheduled back to back on the same
loop cannot both create an order.
"""

import logging
import uuid
from typing import Callable, Optional

from .client import body_detail
from .errors import (
    AlreadyInProgress,
    CheckoutError,
    InitiationError,
    SessionError,
    VerificationError,
    VerificationRejected,
)
from .gateway import GatewaySession
from .initiator import OrderInitiator
from .models import (
    GatewayUIConfig,
    Phase,
    PurchaseOutcome,
    PurchaseRequest,
    PurchaseSession,
    UserCancelled,
)
from .settings import GATEWAY_KEY_ID, MERCHANT_NAME, THEME_COLOR
from .storage import KeyValueStore, MappingStore, read_prefill, read_token
from .verifier import PaymentVerifier

log = logging.getLogger(__name__)

Callback = Callable[[PurchaseOutcome], None]


class PurchaseOrchestrator:
    def __init__(
        self,
        initiator: OrderInitiator,
        gateway: GatewaySession,
        verifier: PaymentVerifier,
        store: Optional[KeyValueStore] = None,
        key_id: str = GATEWAY_KEY_ID,
        merchant_name: str = MERCHANT_NAME,
        theme_color: str = THEME_COLOR,
        on_success: Optional[Callback] = None,
        on_failure: Optional[Callback] = None,
        on_cancel: Optional[Callback] = None,
    ):
        self.initiator = initiator
        self.gateway = gateway
        self.verifier = verifier
        self.store = store if store is not None else MappingStore()
        self.key_id = key_id
        self.merchant_name = merchant_name
        self.theme_color = theme_color
        self.on_success = on_success
        self.on_failure = on_failure
        self.on_cancel = on_cancel
        self._session: Optional[PurchaseSession] = None

    @property
    def phase(self) -> Phase:
        return self._session.phase if self._session is not None else Phase.IDLE

    @property
    def in_progress(self) -> bool:
        return self._session is not None

    async def buy(self, request: PurchaseRequest) -> PurchaseOutcome:
        # no await may come before the guard is taken
        if self._session is not None:
            log.warning("buy for %s/%s rejected: attempt %s still running",
                        request.user_id, request.target_id, self._session.request_id)
            raise AlreadyInProgress()
        session = PurchaseSession(request_id=uuid.uuid4().hex, request=request)
        self._session = session
        self._enter(session, Phase.CREATING_ORDER)
        try:
            outcome = await self._run(session)
        finally:
            self._session = None
        self._notify(outcome)
        return outcome

    def _enter(self, session: PurchaseSession, phase: Phase) -> None:
        log.info("purchase %s -> %s", session.phase.value, phase.value, extra={"request_id": session.request_id})
        session.phase = phase

    def _ui_config(self, request: PurchaseRequest) -> GatewayUIConfig:
        return GatewayUIConfig(
            key_id=self.key_id,
            merchant_name=self.merchant_name,
            description=request.description or f"Purchase of {request.target_id}",
            theme_color=self.theme_color,
            prefill=read_prefill(self.store),
        )

    async def _run(self, session: PurchaseSession) -> PurchaseOutcome:
        request = session.request
        token = read_token(self.store)

        try:
            order = await self.initiator.create_order(request, token=token, idempotency_key=session.request_id)
        except InitiationError as e:
            return self._fail(session, e)
        session.order = order
        if request.amount is not None and request.amount != order.amount:
            session.amount_mismatch = True
            log.warning(
                "order %s amount %s differs from requested %s; charging the order amount",
                order.id, order.amount, request.amount,
                extra={"request_id": session.request_id},
            )

        self._enter(session, Phase.AWAITING_GATEWAY)
        try:
            result = await self.gateway.open(order, self._ui_config(request))
        except SessionError as e:
            return self._fail(session, e)
        if isinstance(result, UserCancelled):
            return self._finish(session, Phase.CANCELLED, "Checkout dismissed")
        session.gateway_result = result

        self._enter(session, Phase.VERIFYING)
        try:
            outcome = await self.verifier.verify(result, request, token=token)
        except VerificationError as e:
            return self._fail(session, e)
        if not outcome.is_for(result):
            return self._fail(session, VerificationError("verification answered for a different payment"))
        session.outcome = outcome
        if not outcome.verified:
            return self._fail(
                session,
                VerificationRejected(body_detail(outcome.raw_response), status_code=outcome.status_code),
            )
        return self._finish(session, Phase.COMPLETED, "Payment successful")

    def _fail(self, session: PurchaseSession, error: CheckoutError) -> PurchaseOutcome:
        log.error("purchase failed in %s: %s", session.phase.value, error.user_message(),
                  extra={"request_id": session.request_id})
        return self._finish(session, Phase.FAILED, error.user_message(), error)

    def _finish(
        self,
        session: PurchaseSession,
        phase: Phase,
        message: str,
        error: Optional[CheckoutError] = None,
    ) -> PurchaseOutcome:
        self._enter(session, phase)
        return PurchaseOutcome(
            request_id=session.request_id,
            phase=phase,
            order_id=session.order.id if session.order else None,
            payment_id=session.gateway_result.payment_id if session.gateway_result else None,
            message=message,
            error=error,
            amount_mismatch=session.amount_mismatch,
        )

    def _notify(self, outcome: PurchaseOutcome) -> None:
        if outcome.phase == Phase.COMPLETED:
            callback = self.on_success
        elif outcome.phase == Phase.CANCELLED:
            callback = self.on_cancel
        else:
            callback = self.on_failure
        if callback is not None:
            callback(outcome)
