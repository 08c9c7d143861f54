"""Messaging service port."""

from typing import Protocol

from coach_realtime.domain.models.conversation import Conversation, Message


class MessagingService(Protocol):
    """Port for conversations and the messages posted in them."""

    async def list_conversations(self, user_id: str) -> list[Conversation]:
        """List the user's conversations, most recently active first."""
        ...

    async def find_or_create_conversation(
        self, user_id: str, participant_id: str
    ) -> tuple[Conversation, bool]:
        """Return the pair's conversation and whether it was just created."""
        ...

    async def list_messages(self, conversation_id: str, user_id: str) -> list[Message]:
        """List messages of a conversation the user participates in, oldest first."""
        ...

    async def post_message(self, conversation_id: str, sender_id: str, content: str) -> Message:
        """Commit a message and broadcast it to both participants."""
        ...

    async def mark_read(self, message_id: str, user_id: str) -> Message:
        """Record that the user has read the message."""
        ...
