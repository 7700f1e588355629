from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Table, Text
from sqlalchemy.orm import relationship
from datetime import datetime

from dispatchlink.db.base_class import Base


channel_members = Table(
    "channelmember",
    Base.metadata,
    Column("channel_id", Integer, ForeignKey("channel.id"), primary_key=True),
    Column("user_id", Integer, ForeignKey("user.id"), primary_key=True),
)


class Channel(Base):
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(128), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    closed = Column(Boolean, default=False, nullable=False)

    owner_id = Column(Integer, ForeignKey("user.id"), nullable=False)
    members = relationship("User", secondary=channel_members, order_by="User.id", lazy="selectin")


class ChatMessage(Base):
    id = Column(Integer, primary_key=True, index=True)
    content = Column(Text, nullable=False)
    sent_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    sender_id = Column(Integer, ForeignKey("user.id"), nullable=False)
    channel_id = Column(Integer, ForeignKey("channel.id"), index=True, nullable=False)

    # Priority alerts must be acknowledged by their recipients
    is_alert = Column(Boolean, default=False, nullable=False)
    acknowledged_by = Column(JSON, default=list, nullable=False)
    acknowledged_at = Column(DateTime, nullable=True)
