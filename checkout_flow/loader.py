"""
Loads the checkout widget runtime at most once per process.

``ScriptResourceLoader.ensure_loaded()`` hands every caller the same
future: the first call starts the injector, overlapping calls join the
in-flight load, later calls get the settled result. A failed load stays
failed; nothing here retries.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol

import httpx

from .errors import LoadError
from .models import CheckoutOptions
from .settings import GATEWAY_SCRIPT_URL, HTTP_TIMEOUT_SECONDS

log = logging.getLogger(__name__)


class CheckoutHandlers(Protocol):
    def on_success(self, payload: dict) -> None: ...

    def on_dismiss(self) -> None: ...

    def on_error(self, payload: dict) -> None: ...


class Widget(Protocol):
    def open(self) -> None: ...


class WidgetRuntime(Protocol):
    """What a loaded checkout script exposes: a way to build widgets."""

    def create(self, options: CheckoutOptions, handlers: CheckoutHandlers) -> Widget: ...


Injector = Callable[[str], Awaitable[WidgetRuntime]]


class HttpScriptInjector:
    """Fetches the script over HTTP and builds the runtime from its text."""

    def __init__(
        self,
        runtime_factory: Callable[[str], WidgetRuntime],
        timeout: float = HTTP_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.runtime_factory = runtime_factory
        self.timeout = timeout
        self._client = client

    async def _get(self, src: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(src, timeout=self.timeout)
        async with httpx.AsyncClient(follow_redirects=True) as client:
            return await client.get(src, timeout=self.timeout)

    async def __call__(self, src: str) -> WidgetRuntime:
        try:
            r = await self._get(src)
            r.raise_for_status()
        except httpx.HTTPError as e:
            raise LoadError(f"{src}: {e}") from e
        if not r.text.strip():
            raise LoadError(f"{src}: empty script")
        return self.runtime_factory(r.text)


class ScriptResourceLoader:
    def __init__(self, injector: Injector, src: str = GATEWAY_SCRIPT_URL):
        self.src = src
        self.injector = injector
        self.load_count = 0
        self._future: Optional[asyncio.Future] = None

    @property
    def loaded(self) -> bool:
        f = self._future
        return f is not None and f.done() and not f.cancelled() and f.exception() is None

    def ensure_loaded(self) -> "asyncio.Future[WidgetRuntime]":
        if self._future is None:
            self._future = asyncio.ensure_future(self._load())
        return self._future

    async def _load(self) -> WidgetRuntime:
        self.load_count += 1
        log.info("loading checkout script %s", self.src)
        try:
            runtime = await self.injector(self.src)
        except LoadError:
            log.error("checkout script %s failed to load", self.src)
            raise
        except Exception as e:
            log.error("checkout script %s failed to load: %s", self.src, e)
            raise LoadError(str(e) or type(e).__name__) from e
        log.info("checkout script %s ready", self.src)
        return runtime


_default_loader: Optional[ScriptResourceLoader] = None


def default_loader(runtime_factory: Callable[[str], WidgetRuntime]) -> ScriptResourceLoader:
    """Process-wide loader; created on first use and never torn down."""
    global _default_loader
    if _default_loader is None:
        _default_loader = ScriptResourceLoader(HttpScriptInjector(runtime_factory))
    return _default_loader
