"""Row-level access to the four insight collections."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Protocol

from .errors import SyncError
from .models import EntityKind, Record
from .remote import TRANSPORT_ERRORS, RemoteClient

logger = logging.getLogger(__name__)


class InsightStore(Protocol):
    async def list(self, kind: EntityKind, user_id: str) -> List[Record]:
        ...

    async def update(self, kind: EntityKind, record_id: str, fields: Dict[str, Any]) -> None:
        ...

    async def delete(self, kind: EntityKind, record_id: str) -> None:
        ...


def build_list_params(kind: EntityKind, user_id: str) -> Dict[str, str]:
    spec = kind.spec
    direction = "asc" if spec.ascending else "desc"
    params = {
        "select": "*",
        "user_id": f"eq.{user_id}",
        "order": f"{spec.order_by}.{direction}",
    }
    if spec.limit is not None:
        params["limit"] = str(spec.limit)
    return params


def build_id_params(record_id: str) -> Dict[str, str]:
    return {"id": f"eq.{record_id}"}


class RestStore:
    """PostgREST-style tables under ``/rest/v1``."""

    def __init__(self, client: RemoteClient) -> None:
        self.client = client

    async def _call(self, method: str, kind: EntityKind, params, payload=None):
        try:
            response = await self.client.request(
                method,
                f"rest/v1/{kind.collection}",
                params=params,
                payload=payload,
                extra_headers={"Prefer": "return=minimal"} if method != "GET" else None,
            )
        except TRANSPORT_ERRORS as exc:
            raise SyncError(f"{method} {kind.collection} failed: {exc}") from exc
        if not response.ok:
            raise SyncError(f"{method} {kind.collection}: {response.error_message()}")
        return response

    async def list(self, kind: EntityKind, user_id: str) -> List[Record]:
        response = await self._call("GET", kind, build_list_params(kind, user_id))
        if not isinstance(response.data, list):
            raise SyncError(f"Unexpected payload for {kind.collection}")
        try:
            return [kind.from_row(row) for row in response.data]
        except (KeyError, TypeError, ValueError) as exc:
            raise SyncError(f"Malformed {kind.collection} row: {exc}") from exc

    async def update(self, kind: EntityKind, record_id: str, fields: Dict[str, Any]) -> None:
        await self._call("PATCH", kind, build_id_params(record_id), payload=fields)
        logger.debug("Updated %s %s: %s", kind.collection, record_id, sorted(fields))

    async def delete(self, kind: EntityKind, record_id: str) -> None:
        await self._call("DELETE", kind, build_id_params(record_id))
        logger.debug("Deleted %s %s", kind.collection, record_id)
