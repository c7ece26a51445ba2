import asyncio
import logging
from typing import Union

from pydantic import ValidationError

from .errors import InternalGatewayError, LoadError, SessionError, WidgetUnavailable
from .loader import ScriptResourceLoader
from .models import CheckoutOptions, GatewayResult, GatewayUIConfig, Order, UserCancelled

log = logging.getLogger(__name__)

GatewayOutcome = Union[GatewayResult, UserCancelled]


def checkout_options(order: Order, ui_config: GatewayUIConfig) -> CheckoutOptions:
    # amount and currency always come from the server-side order
    return CheckoutOptions(
        key=order.key_id or ui_config.key_id,
        amount=order.amount,
        currency=order.currency,
        name=ui_config.merchant_name,
        description=ui_config.description,
        order_id=order.id,
        prefill=ui_config.prefill,
        theme={"color": ui_config.theme_color},
    )


class _Completion:
    """Widget handlers that settle one future, first signal wins."""

    def __init__(self, order: Order, future: asyncio.Future):
        self.order = order
        self.future = future

    def _settle(self, signal: str, value=None, error: Exception = None) -> None:
        if self.future.done():
            log.warning("ignoring %s from checkout widget for order %s: session already settled", signal, self.order.id)
            return
        if error is not None:
            self.future.set_exception(error)
        else:
            self.future.set_result(value)

    def on_success(self, payload: dict) -> None:
        try:
            result = GatewayResult.model_validate(payload)
        except ValidationError as e:
            self._settle("success", error=InternalGatewayError(f"invalid completion payload: {e.error_count()} error(s)"))
            return
        if result.order_id != self.order.id:
            self._settle(
                "success",
                error=InternalGatewayError(f"completion for order {result.order_id}, expected {self.order.id}"),
            )
            return
        self._settle("success", value=result)

    def on_dismiss(self) -> None:
        self._settle("dismiss", value=UserCancelled(order_id=self.order.id))

    def on_error(self, payload: dict) -> None:
        error = (payload or {}).get("error", payload)
        if isinstance(error, dict):
            detail = error.get("description") or error.get("reason") or error.get("code")
        else:
            detail = error
        self._settle("error", error=InternalGatewayError(str(detail) if detail else None))


class GatewaySession:
    def __init__(self, loader: ScriptResourceLoader):
        self.loader = loader

    async def open(self, order: Order, ui_config: GatewayUIConfig) -> GatewayOutcome:
        """
        Open the checkout UI for ``order`` and wait for the user.

        Returns a ``GatewayResult`` or ``UserCancelled``; raises
        ``SessionError`` if the widget is unavailable or reports a failure.
        """
        try:
            # the load is shared with other attempts; cancelling this one must not cancel it
            runtime = await asyncio.shield(self.loader.ensure_loaded())
        except LoadError as e:
            raise WidgetUnavailable(e.detail) from e

        loop = asyncio.get_running_loop()
        completion = _Completion(order, loop.create_future())
        options = checkout_options(order, ui_config)
        try:
            widget = runtime.create(options, completion)
            widget.open()
        except SessionError:
            raise
        except Exception as e:
            raise InternalGatewayError(str(e) or type(e).__name__) from e

        log.info("checkout opened for order %s (%s %s)", order.id, options.amount, options.currency)
        return await completion.future
