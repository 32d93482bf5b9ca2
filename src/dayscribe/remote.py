"""HTTP access to the hosted backend (REST tables, auth and edge functions)."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

logger = logging.getLogger(__name__)

TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


@dataclass
class RemoteResponse:
    status: int
    data: Any
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def error_message(self) -> str:
        if isinstance(self.data, dict):
            for key in ("error", "message", "msg"):
                if self.data.get(key):
                    return str(self.data[key])
        return f"HTTP {self.status}: {self.text[:500]}"


class RemoteClient:
    """Thin wrapper around one ``aiohttp.ClientSession``.

    Every request carries the project ``apikey`` and, when present, the
    signed-in user's bearer token. ``timeout_seconds=None`` leaves requests
    unbounded.
    """

    def __init__(
        self,
        url: str,
        anon_key: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        if not url:
            raise ValueError("A backend url is required.")
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.access_token = access_token
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, store_config) -> "RemoteClient":
        return cls(
            url=store_config.url,
            anon_key=store_config.anon_key,
            access_token=store_config.access_token,
            timeout_seconds=store_config.timeout_seconds,
        )

    async def __aenter__(self) -> "RemoteClient":
        return self

    async def __aexit__(self, *_exc) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.anon_key:
            headers["apikey"] = self.anon_key
        token = self.access_token or self.anon_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        payload: Any = None,
        extra_headers: Optional[Dict[str, str]] = None,
    ) -> RemoteResponse:
        headers = self.headers()
        if extra_headers:
            headers.update(extra_headers)
        url = f"{self.url}/{path.lstrip('/')}"
        logger.debug("%s %s params=%s", method, url, params)
        async with self._get_session().request(
            method,
            url,
            params=params,
            json=payload,
            headers=headers,
            timeout=self.timeout,
        ) as response:
            text = await response.text()
            data = None
            if text:
                try:
                    data = json.loads(text)
                except json.JSONDecodeError:
                    data = None
            return RemoteResponse(status=response.status, data=data, text=text)

    async def invoke_function(self, name: str, body: Dict[str, Any]) -> RemoteResponse:
        return await self.request("POST", f"functions/v1/{name}", payload=body)
