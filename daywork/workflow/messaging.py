"""Direct conversations between two users."""

import logging
from typing import List, Optional

from daywork.core.errors import InvalidInput, NotFound, PermissionDenied
from daywork.schemas import Conversation, ConversationSummary, Message, User
from daywork.storage import Storage

logger = logging.getLogger(__name__)


def _participant_conversation(storage: Storage, actor: User, conversation_id: int) -> Conversation:
    conversation = storage.get_conversation(conversation_id)
    if conversation is None:
        raise NotFound("Conversation not found")
    if not conversation.has_participant(actor.id):
        raise PermissionDenied("You don't have access to this conversation")
    return conversation


def list_conversations(storage: Storage, actor: User) -> List[ConversationSummary]:
    return storage.get_conversations_by_user(actor.id)


def start_conversation(storage: Storage, actor: User, participant_id: int, job_id: Optional[int] = None) -> Conversation:
    """Return the existing conversation with ``participant_id`` or open a new one."""
    if participant_id == actor.id:
        raise InvalidInput("You cannot start a conversation with yourself", field="participant_id")
    if storage.get_user(participant_id) is None:
        raise NotFound("User not found")
    if job_id is not None and storage.get_job(job_id) is None:
        raise NotFound("Job not found")
    return storage.create_conversation(participant1_id=actor.id, participant2_id=participant_id, job_id=job_id)


def open_conversation(storage: Storage, actor: User, conversation_id: int) -> dict:
    conversation = _participant_conversation(storage, actor, conversation_id)
    storage.mark_messages_as_read(conversation_id, actor.id)
    return {
        "conversation": conversation,
        "other_participant": storage.get_user(conversation.other_participant(actor.id)),
        "messages": storage.get_messages_by_conversation(conversation_id),
    }


def send_message(storage: Storage, actor: User, conversation_id: int, content: str,
                 metadata: Optional[dict] = None) -> Message:
    if not content or not content.strip():
        raise InvalidInput("Message content is required", field="content")
    _participant_conversation(storage, actor, conversation_id)
    return storage.create_message(
        conversation_id=conversation_id, sender_id=actor.id, content=content, metadata=metadata
    )


def mark_conversation_read(storage: Storage, actor: User, conversation_id: int) -> int:
    _participant_conversation(storage, actor, conversation_id)
    return storage.mark_messages_as_read(conversation_id, actor.id)


def mark_message_read(storage: Storage, actor: User, message_id: int) -> Message:
    """Mark one received message as read. Own messages are left untouched."""
    message = storage.get_message(message_id)
    if message is None:
        raise NotFound("Message not found")
    _participant_conversation(storage, actor, message.conversation_id)
    storage.mark_messages_as_read(message.conversation_id, actor.id, message_id=message_id)
    return storage.get_message(message_id)
