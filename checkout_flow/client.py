from typing import Optional

import httpx

from .settings import HTTP_TIMEOUT_SECONDS, PURCHASE_API_URL


class BackendClient:
    """
    JSON-over-HTTP access to the purchase backend.

    A fresh ``httpx.AsyncClient`` is opened per call unless one is injected
    (tests pass a client bound to a mock or ASGI transport).
    """

    def __init__(
        self,
        base_url: str = PURCHASE_API_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    @staticmethod
    def headers(token: Optional[str] = None, idempotency_key: Optional[str] = None) -> dict:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        return headers

    async def post_json(
        self,
        path: str,
        payload: dict,
        token: Optional[str] = None,
        idempotency_key: Optional[str] = None,
    ) -> httpx.Response:
        """POST ``payload``; transport errors propagate as httpx exceptions."""
        headers = self.headers(token, idempotency_key)
        if self._client is not None:
            return await self._client.post(self.url(path), json=payload, headers=headers, timeout=self.timeout)
        async with httpx.AsyncClient() as client:
            return await client.post(self.url(path), json=payload, headers=headers, timeout=self.timeout)


def json_body(resp: httpx.Response):
    try:
        return resp.json()
    except ValueError:
        return None


def body_detail(body) -> Optional[str]:
    """Failure text carried by a decoded backend body: a detail/message/error field, or the body itself."""
    if isinstance(body, dict):
        for key in ("detail", "message", "error"):
            if isinstance(body.get(key), str) and body[key].strip():
                return body[key].strip()
        return None
    if isinstance(body, str) and body.strip():
        return body.strip()
    return None


def response_detail(resp: httpx.Response, fallback: str) -> str:
    """Error text from a backend response: a JSON detail/message field, else the raw body."""
    body = json_body(resp)
    if isinstance(body, dict):
        detail = body_detail(body)
        if detail:
            return detail
    return resp.text.strip() or fallback
