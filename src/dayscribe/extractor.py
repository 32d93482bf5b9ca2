"""Journal processing service."""

from __future__ import annotations

import logging
from typing import Protocol

from .errors import ExtractionError
from .remote import TRANSPORT_ERRORS, RemoteClient

logger = logging.getLogger(__name__)


class ExtractionService(Protocol):
    async def process_journal(self, journal_content: str, user_id: str) -> None:
        ...


class RemoteExtractor:
    """Hands a journal entry to the processing function.

    The function writes tasks, events, notes and health mentions for the user
    as a side effect; nothing comes back but success or failure.
    """

    def __init__(self, client: RemoteClient, function_name: str = "process-journal") -> None:
        self.client = client
        self.function_name = function_name

    async def process_journal(self, journal_content: str, user_id: str) -> None:
        try:
            response = await self.client.invoke_function(
                self.function_name,
                {"journalContent": journal_content, "userId": user_id},
            )
        except TRANSPORT_ERRORS as exc:
            raise ExtractionError(f"Journal service unreachable: {exc}") from exc
        if not response.ok:
            raise ExtractionError(response.error_message())
        if isinstance(response.data, dict) and response.data.get("error"):
            raise ExtractionError(str(response.data["error"]))
        logger.info("Journal processed for user %s (%d chars)", user_id, len(journal_content))
