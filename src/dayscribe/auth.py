"""Who is signed in."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from .errors import SyncError
from .remote import TRANSPORT_ERRORS, RemoteClient

logger = logging.getLogger(__name__)


class AuthContext(Protocol):
    async def get_current_user(self) -> Optional[str]:
        ...


class StaticAuth:
    def __init__(self, user_id: Optional[str]) -> None:
        self.user_id = user_id

    async def get_current_user(self) -> Optional[str]:
        return self.user_id


class TokenAuth:
    """Resolves the user behind the client's access token."""

    def __init__(self, client: RemoteClient) -> None:
        self.client = client

    async def get_current_user(self) -> Optional[str]:
        if not self.client.access_token:
            return None
        try:
            response = await self.client.request("GET", "auth/v1/user")
        except TRANSPORT_ERRORS as exc:
            raise SyncError(f"Could not reach auth service: {exc}") from exc
        if response.status in (401, 403):
            logger.info("Access token rejected (HTTP %s)", response.status)
            return None
        if not response.ok:
            raise SyncError(response.error_message())
        if not isinstance(response.data, dict) or not response.data.get("id"):
            return None
        return str(response.data["id"])
