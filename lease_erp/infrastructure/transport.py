"""HTTP transport for the ``{mode, parameters}`` dispatch contract."""
from __future__ import annotations

import os
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from lease_erp.core.envelope import RequestEnvelope, ResponseEnvelope
from lease_erp.core.errors import TransportError
from lease_erp.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000/api"


class DispatchTransport:
    """POSTs request envelopes to entity endpoints and decodes the reply.

    Only HTTP-layer problems raise (``TransportError``); a ``Status=0`` body
    is a normal return value.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        parsed = httpx.URL(base_url)
        if not parsed.scheme or not parsed.host:
            raise ValueError("base_url must include scheme and host")
        self._base_url = base_url.rstrip("/")
        self._headers = dict(headers or {})
        self._client = http_client or httpx.Client(timeout=timeout)
        self._owns_client = http_client is None

    @classmethod
    def from_env(cls, *, http_client: httpx.Client | None = None) -> "DispatchTransport":
        base_url = os.getenv("LEASE_API_BASE_URL") or DEFAULT_BASE_URL
        timeout = float(os.getenv("LEASE_API_TIMEOUT") or 30)
        return cls(base_url, timeout=timeout, http_client=http_client)

    @property
    def base_url(self) -> str:
        return self._base_url

    def url_for(self, endpoint: str) -> str:
        return f"{self._base_url}/{endpoint.lstrip('/')}"

    def execute(self, endpoint: str, envelope: RequestEnvelope) -> ResponseEnvelope:
        url = self.url_for(endpoint)
        logger.debug("dispatch %s mode=%s", endpoint, envelope.mode)
        try:
            response = self._client.post(url, json=envelope.model_dump(), headers=self._headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"{endpoint} returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Request to {endpoint} failed: {exc}") from exc

        try:
            body: Any = response.json()
        except ValueError as exc:
            raise TransportError(f"{endpoint} returned a non-JSON body") from exc
        if not isinstance(body, dict):
            raise TransportError(f"{endpoint} returned an unexpected payload")
        try:
            return ResponseEnvelope.model_validate(body)
        except PydanticValidationError as exc:
            raise TransportError(f"{endpoint} returned a malformed envelope") from exc

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "DispatchTransport":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


__all__ = ["DEFAULT_BASE_URL", "DispatchTransport"]
