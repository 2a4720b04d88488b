"""Callback discovery and trigger over the Workflow Executions REST API."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Iterator, List, Optional

import google.auth
import httpx
from google.auth.transport.requests import Request
from pydantic import BaseModel, ValidationError

from .config import CALLBACKS_API_BASE
from .errors import (
    ArgumentEncodingFailed,
    CallbackRequestFailed,
    RemoteCallFailed,
    classify_exception,
    classify_message,
)
from .models import CallbackDescriptor

logger = logging.getLogger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class GoogleCredentialsAuth(httpx.Auth):
    """Attach an Application Default Credentials bearer token to requests."""

    def __init__(self, scopes: tuple = (CLOUD_PLATFORM_SCOPE,)) -> None:
        self._scopes = list(scopes)
        self._credentials: Any = None

    def _token(self) -> str:
        if self._credentials is None:
            self._credentials, _ = google.auth.default(scopes=self._scopes)
        if not self._credentials.valid:
            self._credentials.refresh(Request())
        return self._credentials.token

    def sync_auth_flow(self, request: httpx.Request) -> Iterator[httpx.Request]:
        request.headers["Authorization"] = f"Bearer {self._token()}"
        yield request

    async def async_auth_flow(self, request: httpx.Request) -> AsyncIterator[httpx.Request]:
        # credential refresh does blocking I/O
        token = await asyncio.to_thread(self._token)
        request.headers["Authorization"] = f"Bearer {token}"
        yield request


class _CallbackEntry(BaseModel):
    name: str
    method: str = "POST"


class _CallbacksResponse(BaseModel):
    callbacks: Optional[List[_CallbackEntry]] = None


class CallbackClient:
    """Lists and fires callbacks of paused executions."""

    def __init__(
        self,
        base_url: str = CALLBACKS_API_BASE,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(
            auth=GoogleCredentialsAuth(), timeout=timeout
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def callback_url(self, name: str) -> str:
        return f"{self._base_url}/{name.lstrip('/')}"

    async def list_callbacks(self, execution_name: str) -> List[CallbackDescriptor]:
        """Return pending callbacks for ``execution_name``.

        An execution without pending callbacks yields an empty list.
        """
        url = f"{self._base_url}/{execution_name}/callbacks"
        logger.debug(f"Listing callbacks: GET {url}")
        try:
            response = await self._client.get(url)
        except Exception as exc:
            raise RemoteCallFailed(classify_exception("listing callbacks", exc)) from exc

        if response.status_code != httpx.codes.OK:
            body = response.text
            error = classify_message(
                "listing callbacks",
                f"HTTP {response.status_code}: {body}",
                response.status_code,
            )
            raise CallbackRequestFailed(error, response.status_code, body)

        try:
            parsed = _CallbacksResponse.model_validate_json(response.content or b"{}")
        except ValidationError as exc:
            raise RemoteCallFailed(
                classify_message("parsing callbacks response", str(exc))
            ) from exc

        return [
            CallbackDescriptor(name=cb.name, method=cb.method, url=self.callback_url(cb.name))
            for cb in parsed.callbacks or []
        ]

    async def trigger_callback(
        self,
        url: str,
        method: Optional[str] = None,
        payload: Optional[dict] = None,
    ) -> None:
        """Send ``payload`` to a callback URL to resume a paused execution.

        Any 2xx answer counts as success. Other statuses raise
        :class:`CallbackRequestFailed` with the response body verbatim.
        """
        method = (method or "POST").upper()
        kwargs: dict = {}
        if payload:
            try:
                kwargs["content"] = json.dumps(payload)
            except (TypeError, ValueError) as exc:
                raise ArgumentEncodingFailed(f"marshaling callback data: {exc}") from exc
            kwargs["headers"] = {"Content-Type": "application/json"}

        logger.info(f"Triggering callback: {method} {url}")
        try:
            response = await self._client.request(method, url, **kwargs)
        except Exception as exc:
            raise RemoteCallFailed(classify_exception("triggering callback", exc)) from exc

        if not response.is_success:
            body = response.text
            error = classify_message(
                "triggering callback",
                f"HTTP {response.status_code}: {body}",
                response.status_code,
            )
            raise CallbackRequestFailed(error, response.status_code, body)
