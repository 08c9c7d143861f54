"""aiohttp client for the REST API."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import aiohttp

from coach_realtime.domain.models import Conversation, EntityType, Invoice, Message, Session

if TYPE_CHECKING:
    from coach_realtime.adapters.config import ClientConfig
    from coach_realtime.domain.models import SharedEntity

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """API request failed with structured error info."""

    def __init__(self, message: str, status_code: int | None = None, detail: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail if detail is not None else message


class PracticeApiClient:
    """Reads and writes sessions, invoices and messages as one user."""

    def __init__(
        self, session: aiohttp.ClientSession, config: ClientConfig, token: str | None = None
    ) -> None:
        """Initialize the client.

        Args:
            session: Shared aiohttp session.
            config: Client configuration providing the server URL and timeout.
            token: Bearer token sent with every request.
        """
        self._session = session
        self._config = config
        self.token = token

    async def _request(self, method: str, path: str, payload: Any = None) -> Any:
        url = f"{self._config.server_url}{path}"
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout_seconds)

        async with self._session.request(
            method, url, json=payload, headers=headers, timeout=timeout
        ) as response:
            if response.status >= 400:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = None
                detail = body.get("error") if isinstance(body, dict) else None
                logger.warning(f"{method} {path} failed with status {response.status}: {detail}")
                raise ApiError(
                    f"{method} {path} failed with status {response.status}",
                    status_code=response.status,
                    detail=detail,
                )
            return await response.json()

    # Sessions

    async def list_sessions(self) -> list[Session]:
        data = await self._request("GET", "/api/sessions")
        return [Session.model_validate(item) for item in data]

    async def create_session(self, data: dict[str, Any]) -> Session:
        return Session.model_validate(await self._request("POST", "/api/sessions", data))

    async def update_session(self, session_id: str, changes: dict[str, Any]) -> Session:
        return Session.model_validate(
            await self._request("PUT", f"/api/sessions/{session_id}", changes)
        )

    async def delete_session(self, session_id: str) -> None:
        await self._request("DELETE", f"/api/sessions/{session_id}")

    # Invoices

    async def list_invoices(self) -> list[Invoice]:
        data = await self._request("GET", "/api/invoices")
        return [Invoice.model_validate(item) for item in data]

    async def create_invoice(self, data: dict[str, Any]) -> Invoice:
        return Invoice.model_validate(await self._request("POST", "/api/invoices", data))

    async def update_invoice(self, invoice_id: str, changes: dict[str, Any]) -> Invoice:
        return Invoice.model_validate(
            await self._request("PUT", f"/api/invoices/{invoice_id}", changes)
        )

    async def delete_invoice(self, invoice_id: str) -> None:
        await self._request("DELETE", f"/api/invoices/{invoice_id}")

    # Messaging

    async def list_conversations(self) -> list[Conversation]:
        data = await self._request("GET", "/api/conversations")
        return [Conversation.model_validate(item) for item in data]

    async def find_or_create_conversation(self, participant_id: str) -> Conversation:
        data = await self._request(
            "POST", "/api/conversations/find-or-create", {"participantId": participant_id}
        )
        return Conversation.model_validate(data)

    async def list_messages(self, conversation_id: str) -> list[Message]:
        data = await self._request("GET", f"/api/conversations/{conversation_id}/messages")
        return [Message.model_validate(item) for item in data]

    async def post_message(self, conversation_id: str, content: str) -> Message:
        data = await self._request(
            "POST", f"/api/conversations/{conversation_id}/messages", {"content": content}
        )
        return Message.model_validate(data)

    async def mark_read(self, message_id: str) -> Message:
        data = await self._request("POST", f"/api/messages/{message_id}/read")
        return Message.model_validate(data)

    def fetcher_for(
        self, entity_type: EntityType | str
    ) -> Callable[[], Awaitable[list[SharedEntity]]]:
        """Return the list call backing a live collection of the given type.

        Raises:
            ValueError: For messages, which are listed per conversation.
        """
        fetchers: dict[EntityType, Callable[[], Awaitable[Any]]] = {
            EntityType.SESSION: self.list_sessions,
            EntityType.INVOICE: self.list_invoices,
            EntityType.CONVERSATION: self.list_conversations,
        }
        entity_type = EntityType(entity_type)
        if entity_type not in fetchers:
            raise ValueError(f"{entity_type} lists need a conversation id")
        return fetchers[entity_type]
