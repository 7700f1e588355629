from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from dispatchlink.api.deps import get_current_user, get_registry
from dispatchlink.core.errors import NotFoundError
from dispatchlink.core.logging import get_logger
from dispatchlink.db.session import get_db
from dispatchlink.models import Channel as ChannelModel, User
from dispatchlink.schemas import Channel, ChannelCreate, ChatMessage, ChatMessageCreate, MessageAcknowledge
from dispatchlink.crud.chat import (
    acknowledge_message,
    create_channel,
    create_chat_message,
    get_channel_messages,
    get_channel_or_404,
    get_chat_message,
    get_user_channels,
    is_member,
)
from dispatchlink.services.connection_registry import ConnectionRegistry

logger = get_logger("dispatchlink.chat")

router = APIRouter()


def check_membership(channel: ChannelModel, user: User) -> None:
    if not is_member(channel, user.id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a member of this channel",
        )


@router.post("/channels", response_model=Channel, status_code=status.HTTP_201_CREATED)
async def create_new_channel(
    channel_in: ChannelCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
) -> Any:
    """
    Create a chat channel. Every member is told to refresh their channel list.
    """
    channel = await create_channel(db, obj_in=channel_in, owner=current_user)
    logger.info(f"Channel {channel.name} created by {current_user.username}")

    for member in channel.members:
        await registry.send_to_user(member.id, "updateGroups", {"channelId": channel.id})

    return channel


@router.get("/channels", response_model=List[Channel])
async def read_channels(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Channels the current user belongs to.
    """
    return await get_user_channels(db, user_id=current_user.id)


@router.post("/channels/{channel_id}/messages", response_model=ChatMessage, status_code=status.HTTP_201_CREATED)
async def post_message(
    channel_id: int,
    message_in: ChatMessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
) -> Any:
    """
    Post a message to a channel and push it to every member.
    """
    channel = await get_channel_or_404(db, id=channel_id)
    check_membership(channel, current_user)

    message = await create_chat_message(db, channel=channel, obj_in=message_in, sender_id=current_user.id)

    payload = {
        "id": message.id,
        "channelId": channel.id,
        "content": message.content,
        "senderId": message.sender_id,
        "senderName": current_user.username,
        "sentAt": message.sent_at.isoformat(),
        "isAlert": message.is_alert,
    }
    for member in channel.members:
        await registry.send_to_user(member.id, "new-message", payload)

    return message


@router.get("/channels/{channel_id}/messages", response_model=List[ChatMessage])
async def read_messages(
    channel_id: int,
    skip: int = 0,
    limit: int = 100,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    channel = await get_channel_or_404(db, id=channel_id)
    check_membership(channel, current_user)
    return await get_channel_messages(db, channel_id=channel.id, skip=skip, limit=limit)


@router.patch("/channels/{channel_id}/messages/acknowledge", response_model=ChatMessage)
async def acknowledge_alert(
    channel_id: int,
    acknowledge_in: MessageAcknowledge,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
) -> Any:
    """
    Acknowledge an alert message. The sender is told who acknowledged it.
    """
    channel = await get_channel_or_404(db, id=channel_id)
    check_membership(channel, current_user)

    message = await get_chat_message(db, id=acknowledge_in.message_id)
    if not message or message.channel_id != channel.id:
        raise NotFoundError(f"Message with ID {acknowledge_in.message_id} not found")

    message = await acknowledge_message(db, db_obj=message, user_id=current_user.id)
    await registry.send_to_user(
        message.sender_id,
        "acknowledge-alert",
        {
            "messageId": message.id,
            "channelId": channel.id,
            "acknowledgedBy": current_user.id,
            "acknowledgedAt": message.acknowledged_at.isoformat(),
        },
    )
    return message
