from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dispatchlink.core.errors import AlreadyExistsError, InvalidStateError, NotFoundError, ValidationError
from dispatchlink.models import Channel, ChatMessage, User, channel_members
from dispatchlink.schemas import ChannelCreate, ChatMessageCreate


async def get_channel(db: AsyncSession, id: int) -> Optional[Channel]:
    """
    Get a channel by ID.
    """
    result = await db.execute(select(Channel).filter(Channel.id == id))
    return result.scalars().first()


async def get_channel_or_404(db: AsyncSession, id: int) -> Channel:
    channel = await get_channel(db, id=id)
    if not channel:
        raise NotFoundError(f"Channel with ID {id} not found")
    return channel


async def get_channel_by_name(db: AsyncSession, name: str) -> Optional[Channel]:
    result = await db.execute(select(Channel).filter(Channel.name == name))
    return result.scalars().first()


async def get_user_channels(db: AsyncSession, user_id: int) -> List[Channel]:
    """
    Get all channels a user is a member of.
    """
    result = await db.execute(
        select(Channel)
        .join(channel_members, channel_members.c.channel_id == Channel.id)
        .filter(channel_members.c.user_id == user_id)
        .order_by(Channel.name)
    )
    return result.scalars().all()


async def create_channel(db: AsyncSession, obj_in: ChannelCreate, owner: User) -> Channel:
    """
    Create a new channel. The owner is always a member.
    """
    if await get_channel_by_name(db, name=obj_in.name):
        raise AlreadyExistsError(f'Channel "{obj_in.name}" already exists')

    member_ids = set(obj_in.member_ids) - {owner.id}
    members = [owner]
    if member_ids:
        result = await db.execute(select(User).filter(User.id.in_(member_ids)).order_by(User.id))
        found = result.scalars().all()
        missing = member_ids - {user.id for user in found}
        if missing:
            raise ValidationError(f"Unknown channel members: {sorted(missing)}")
        members.extend(found)

    db_obj = Channel(
        name=obj_in.name,
        description=obj_in.description,
        owner_id=owner.id,
        members=members,
    )
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    await db.refresh(db_obj, attribute_names=["members"])
    return db_obj


def is_member(channel: Channel, user_id: int) -> bool:
    return any(member.id == user_id for member in channel.members)


async def get_channel_messages(
    db: AsyncSession, channel_id: int, skip: int = 0, limit: int = 100
) -> List[ChatMessage]:
    """
    Get chat messages for a channel in send order.
    """
    result = await db.execute(
        select(ChatMessage)
        .filter(ChatMessage.channel_id == channel_id)
        .order_by(ChatMessage.sent_at.asc(), ChatMessage.id.asc())
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()


async def get_chat_message(db: AsyncSession, id: int) -> Optional[ChatMessage]:
    result = await db.execute(select(ChatMessage).filter(ChatMessage.id == id))
    return result.scalars().first()


async def create_chat_message(
    db: AsyncSession, channel: Channel, obj_in: ChatMessageCreate, sender_id: int
) -> ChatMessage:
    """
    Create a new chat message in an open channel.
    """
    if channel.closed:
        raise InvalidStateError(f'Channel "{channel.name}" is closed')

    db_obj = ChatMessage(
        content=obj_in.content,
        sender_id=sender_id,
        channel_id=channel.id,
        is_alert=obj_in.is_alert,
        acknowledged_by=[],
    )
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def acknowledge_message(db: AsyncSession, db_obj: ChatMessage, user_id: int) -> ChatMessage:
    """
    Record that a user acknowledged an alert message.
    """
    if not db_obj.is_alert:
        raise InvalidStateError(f"Message {db_obj.id} is not an alert")

    if user_id not in (db_obj.acknowledged_by or []):
        db_obj.acknowledged_by = list(db_obj.acknowledged_by or []) + [user_id]
    db_obj.acknowledged_at = datetime.utcnow()

    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj
