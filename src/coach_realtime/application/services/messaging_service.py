"""Conversations between two users and the messages posted in them."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from coach_realtime.domain.errors import NotFoundError, PermissionDeniedError
from coach_realtime.domain.models import (
    ChangeKind,
    Conversation,
    EntityType,
    Message,
    new_entity_id,
    utc_now,
)

if TYPE_CHECKING:
    from coach_realtime.domain.contracts import MutationBroadcasterProtocol
    from coach_realtime.domain.ports import EntityRepository

logger = logging.getLogger(__name__)


class ConversationService:
    """Finds or creates conversations and posts messages, broadcasting each write."""

    def __init__(
        self,
        conversations: EntityRepository[Conversation],
        messages: EntityRepository[Message],
        broadcaster: MutationBroadcasterProtocol,
    ) -> None:
        self._conversations = conversations
        self._messages = messages
        self._broadcaster = broadcaster

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        conversations = await self._conversations.list_for_user(user_id)
        return sorted(conversations, key=lambda c: c.updated_at, reverse=True)

    async def find_or_create_conversation(
        self, user_id: str, participant_id: str
    ) -> tuple[Conversation, bool]:
        if not participant_id:
            raise ValueError("participantId is required")
        if participant_id == user_id:
            raise ValueError("cannot create a conversation with yourself")

        first, second = sorted((user_id, participant_id))
        existing = await self._conversations.find(lambda c: c.participants == (first, second))
        if existing:
            return existing[0], False

        conversation = await self._conversations.save(
            Conversation(id=new_entity_id(), participants=(first, second))
        )
        self._broadcaster.broadcast(EntityType.CONVERSATION, conversation, ChangeKind.CREATED)
        logger.info(f"Created conversation {conversation.id} between {first} and {second}")
        return conversation, True

    async def list_messages(self, conversation_id: str, user_id: str) -> list[Message]:
        await self._get_conversation_for(conversation_id, user_id)
        messages = await self._messages.find(lambda m: m.conversation_id == conversation_id)
        return sorted(messages, key=lambda m: m.created_at)

    async def post_message(self, conversation_id: str, sender_id: str, content: str) -> Message:
        conversation = await self._get_conversation_for(conversation_id, sender_id)
        message = await self._messages.save(
            Message(
                id=new_entity_id(),
                conversation_id=conversation.id,
                sender_id=sender_id,
                recipient_id=conversation.other_participant(sender_id),
                content=content,
                read_by=(sender_id,),
            )
        )
        self._broadcaster.broadcast(EntityType.MESSAGE, message, ChangeKind.CREATED)

        # The conversation list is ordered by last activity.
        touched = await self._conversations.save(
            conversation.model_copy(update={"updated_at": message.created_at})
        )
        self._broadcaster.broadcast(EntityType.CONVERSATION, touched, ChangeKind.UPDATED)
        return message

    async def mark_read(self, message_id: str, user_id: str) -> Message:
        message = await self._messages.get(message_id)
        if message is None:
            raise NotFoundError(f"message {message_id} not found")
        if not message.is_stakeholder(user_id):
            raise PermissionDeniedError(f"user {user_id} cannot read message {message_id}")
        if user_id in message.read_by:
            return message

        updated = await self._messages.save(
            message.model_copy(
                update={"read_by": (*message.read_by, user_id), "updated_at": utc_now()}
            )
        )
        self._broadcaster.broadcast(EntityType.MESSAGE, updated, ChangeKind.UPDATED)
        return updated

    async def _get_conversation_for(self, conversation_id: str, user_id: str) -> Conversation:
        conversation = await self._conversations.get(conversation_id)
        if conversation is None:
            raise NotFoundError(f"conversation {conversation_id} not found")
        if not conversation.is_stakeholder(user_id):
            raise PermissionDeniedError(
                f"user {user_id} is not a participant of conversation {conversation_id}"
            )
        return conversation
