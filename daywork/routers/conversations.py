
from typing import Optional

from fastapi import APIRouter, Depends, status

from daywork.routers import deps
from daywork.schemas import ConversationCreate, MessageCreate, User, UserSearchResult
from daywork.storage import Storage
from daywork.workflow import accounts, messaging

router = APIRouter(
    tags=["messaging"],
    dependencies=[Depends(deps.get_current_user)]
)


@router.get("/conversations")
async def list_conversations(
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return messaging.list_conversations(storage, user)


@router.get("/conversations/{id}")
async def get_conversation(
    id: int,
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return messaging.open_conversation(storage, user, id)


@router.post("/conversations", status_code=status.HTTP_201_CREATED)
async def start_conversation(
    data: ConversationCreate,
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return messaging.start_conversation(storage, user, data.participant_id, data.job_id)


@router.post("/conversations/{id}/messages", status_code=status.HTTP_201_CREATED)
async def send_message(
    id: int,
    data: MessageCreate,
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return messaging.send_message(storage, user, id, data.content, data.metadata)


@router.patch("/conversations/{id}/read")
async def mark_conversation_read(
    id: int,
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    changed = messaging.mark_conversation_read(storage, user, id)
    return {"message": "Messages marked as read", "updated": changed}


@router.patch("/messages/{id}/read")
async def mark_message_read(
    id: int,
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return messaging.mark_message_read(storage, user, id)


@router.get("/search/users")
async def search_users(
    query: Optional[str] = None,
    role: Optional[str] = None,
    storage: Storage = Depends(deps.get_storage),
    user: User = Depends(deps.get_current_user),
):
    return [UserSearchResult.model_validate(u, from_attributes=True) for u in accounts.search_users(storage, user, query, role)]
