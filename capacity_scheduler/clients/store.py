from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from capacity_scheduler.services.exceptions import DownstreamServiceError

logger = logging.getLogger(__name__)

# Idempotent reads get one extra attempt after a timeout; writes never do.
READ_ATTEMPTS = 2


class StoreClient:
    """Async HTTP client for the durable appointment and business store."""

    def __init__(
        self,
        base_url: str | None,
        *,
        timeout: float = 10.0,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = str(base_url).rstrip("/") if base_url else None
        self._timeout = timeout
        self._transport = transport
        self._headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if token:
            self._headers["Authorization"] = f"Bearer {token}"
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def configured(self) -> bool:
        return self._base_url is not None

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=self._headers,
            transport=self._transport,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if not self._base_url:
            raise RuntimeError("Store client used without a configured base URL")
        if self._client is None:
            self._client = self._build_client()
        return self._client

    async def get(
        self,
        path: str,
        params: Dict[str, Any] | None = None,
        *,
        missing_ok: bool = False,
    ) -> Any:
        client = self._ensure_client()
        attempt = 0
        while True:
            attempt += 1
            try:
                response = await client.get(path, params=params)
                if missing_ok and response.status_code == 404:
                    return None
                response.raise_for_status()
                return response.json()
            except httpx.TimeoutException as exc:
                if attempt < READ_ATTEMPTS:
                    logger.warning("Store read %s timed out; retrying once", path)
                    continue
                logger.exception("Store read %s timed out after retry", path)
                raise DownstreamServiceError(
                    "Durable store timed out", status_code=None, cause=exc
                ) from exc
            except httpx.HTTPStatusError as exc:
                raise self._status_error(exc) from exc
            except httpx.RequestError as exc:
                logger.exception("Unable to reach durable store: %s", exc)
                raise DownstreamServiceError(
                    "Unable to reach durable store", status_code=None, cause=exc
                ) from exc

    async def post(self, path: str, payload: Dict[str, Any]) -> Any:
        return await self._send("POST", path, payload)

    async def patch(self, path: str, payload: Dict[str, Any]) -> Any:
        return await self._send("PATCH", path, payload)

    async def delete(self, path: str) -> Any:
        return await self._send("DELETE", path, None)

    async def _send(self, method: str, path: str, payload: Dict[str, Any] | None) -> Any:
        client = self._ensure_client()
        try:
            response = await client.request(method, path, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise self._status_error(exc) from exc
        except httpx.RequestError as exc:
            logger.exception("Store write %s %s failed: %s", method, path, exc)
            raise DownstreamServiceError(
                "Unable to reach durable store", status_code=None, cause=exc
            ) from exc
        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _status_error(exc: httpx.HTTPStatusError) -> DownstreamServiceError:
        status = exc.response.status_code
        if status >= 500:
            logger.exception("Durable store returned error %s", status)
        else:
            logger.info("Durable store returned %s for %s", status, exc.request.url)
        return DownstreamServiceError(
            "Durable store returned an error response", status_code=status, cause=exc
        )
