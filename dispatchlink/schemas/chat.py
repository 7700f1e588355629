from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime


# Shared properties
class ChannelBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    description: Optional[str] = None


# Properties to receive on channel creation
class ChannelCreate(ChannelBase):
    member_ids: List[int] = []


class ChannelMember(BaseModel):
    id: int
    username: str

    class Config:
        from_attributes = True


# Properties to return to client
class Channel(ChannelBase):
    id: int
    owner_id: int
    closed: bool
    members: List[ChannelMember] = []

    class Config:
        from_attributes = True


# Properties to receive on chat message creation
class ChatMessageCreate(BaseModel):
    content: str = Field(..., min_length=1)
    is_alert: bool = False


# Properties to return to client
class ChatMessage(BaseModel):
    id: int
    content: str
    sender_id: int
    channel_id: int
    sent_at: datetime
    is_alert: bool
    acknowledged_by: List[int] = []
    acknowledged_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MessageAcknowledge(BaseModel):
    message_id: int
